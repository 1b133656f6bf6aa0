"""
app/flow/engine.py

Purpose: Per-user invoice conversation state machine

- Starts a conversation when the start keyword appears
- Records one answer per turn and sends the next prompt
- On the last answer, removes the session and hands the answers to submission
- Serializes turns per user through the session store lock
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from app.core.config import Settings
from app.core.logging import get_logger, LogContext
from app.flow.states import ConversationState, TurnAction, state_for_step
from app.flow.steps import StepScript, INVOICE_STEPS
from app.models.session import Session
from app.services.session_service import SessionStore
from app.services.submission_service import SubmissionOrchestrator, SubmissionResult
from app.services.whatsapp_service import notify_user
from utils.time_utils import is_session_expired, utc_now
from utils.validation_utils import matches_start_keyword, sanitize_answer

logger = get_logger(__name__)


@dataclass
class TurnResult:
    """
    What one inbound message did. `step` is the cursor after the turn
    (0 once the session is gone).
    """
    action: TurnAction
    step: int
    reply: Optional[str] = None
    submission: Optional[SubmissionResult] = None


class ConversationEngine:
    """
    Drives one user's turn at a time against the injected store.

    A blank answer re-sends the current prompt and the step stays put.
    With `advance_on_blank_answer=True` it moves on instead, leaving the
    field empty; submission then fails with a missing-fields notice.
    """

    def __init__(
        self,
        store: SessionStore,
        notifier,
        orchestrator: SubmissionOrchestrator,
        script: StepScript = INVOICE_STEPS,
        start_keyword: str = "factura",
        session_timeout_minutes: int = 30,
        advance_on_blank_answer: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.notifier = notifier
        self.orchestrator = orchestrator
        self.script = script
        self.start_keyword = start_keyword
        self.session_timeout_minutes = session_timeout_minutes
        self.advance_on_blank_answer = advance_on_blank_answer
        self.clock = clock

    async def handle_message(self, user_id: str, text: Optional[str]) -> TurnResult:
        """
        Processes one inbound message for user_id.

        Args:
            user_id: Sender identifier from the messaging channel
            text: Raw message text (None or blank is allowed)

        Returns:
            TurnResult describing the transition
        """
        with LogContext(user_id=user_id):
            async with self.store.lock(user_id):
                return await self._turn(user_id, sanitize_answer(text))

    async def _turn(self, user_id: str, answer: str) -> TurnResult:
        now = self.clock()
        session = self._load(user_id, now)
        state = state_for_step(session.step, len(self.script))

        if state == ConversationState.IDLE:
            return await self._start(session, answer, now)

        step = self.script.step_at(session.step)

        if answer:
            session.record(step.key, answer)
            logger.info(f"Recorded '{step.key}' at step {session.step}/{len(self.script)}")
        elif not self.advance_on_blank_answer:
            session.touch(now)
            self.store.put(user_id, session)
            logger.info(f"Blank answer at step {session.step}, asking again")
            await notify_user(self.notifier, user_id, step.prompt)
            return TurnResult(TurnAction.REPROMPTED, session.step, reply=step.prompt)
        else:
            logger.warning(f"Blank answer at step {session.step}, advancing without '{step.key}'")

        if not session.is_last_step:
            next_step = self.script.step_at(session.advance())
            session.touch(now)
            self.store.put(user_id, session)
            await notify_user(self.notifier, user_id, next_step.prompt)
            return TurnResult(TurnAction.ADVANCED, session.step, reply=next_step.prompt)

        return await self._finalize(session)

    def _load(self, user_id: str, now: datetime) -> Session:
        """
        Returns the stored session, or a fresh unsaved idle one when there
        is none or the stored one went idle for too long.
        """
        session = self.store.get(user_id)

        if session is not None and is_session_expired(
            session.last_interaction, self.session_timeout_minutes, now=now
        ):
            logger.info(f"Session expired at step {session.step}, starting over")
            self.store.delete(user_id)
            session = None

        if session is None:
            session = Session(user_id=user_id, total_steps=len(self.script), created_at=now, last_interaction=now)

        return session

    async def _start(self, session: Session, text: str, now: datetime) -> TurnResult:
        if not matches_start_keyword(text, self.start_keyword):
            logger.debug("Idle message without start keyword ignored")
            return TurnResult(TurnAction.IGNORED, 0)

        first = self.script.step_at(session.advance())
        session.touch(now)
        self.store.put(session.user_id, session)
        logger.info("🚀 Invoice conversation started")

        await notify_user(self.notifier, session.user_id, first.prompt)
        return TurnResult(TurnAction.STARTED, session.step, reply=first.prompt)

    async def _finalize(self, session: Session) -> TurnResult:
        # The session leaves the store before any billing call is made.
        self.store.delete(session.user_id)
        fields = dict(session.fields)
        logger.info(f"Conversation complete with {len(fields)} answer(s), submitting")

        submission = await self.orchestrator.submit(session.user_id, fields)
        return TurnResult(
            TurnAction.FINALIZED,
            0,
            reply=submission.message,
            submission=submission,
        )


def build_engine(config: Settings, store: SessionStore, notifier, billing) -> ConversationEngine:
    """
    Wires an engine from settings and collaborators.
    """
    orchestrator = SubmissionOrchestrator(billing=billing, notifier=notifier, config=config)
    return ConversationEngine(
        store=store,
        notifier=notifier,
        orchestrator=orchestrator,
        start_keyword=config.START_KEYWORD,
        session_timeout_minutes=config.SESSION_TIMEOUT_MINUTES,
        advance_on_blank_answer=config.ADVANCE_ON_BLANK_ANSWER,
    )
