"""
app/services/session_service.py

Purpose: Session storage and per-user serialization

- Keeps in-progress conversations keyed by user ID
- Explicit absent signal (None) on lookup
- Per-user async lock so two deliveries for one user never interleave
- Idle expiry sweep
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, List, Optional

from app.models.session import Session
from app.core.logging import get_logger
from utils.time_utils import is_session_expired, utc_now

logger = get_logger(__name__)


class SessionStore(ABC):
    """
    Contract the conversation engine relies on.
    """

    @abstractmethod
    def get(self, user_id: str) -> Optional[Session]:
        """Returns the session for user_id, or None when there is none."""

    @abstractmethod
    def put(self, user_id: str, session: Session) -> None:
        """Stores or replaces the session for user_id."""

    @abstractmethod
    def delete(self, user_id: str) -> None:
        """Removes the session for user_id. Missing keys are ignored."""

    @abstractmethod
    def lock(self, user_id: str):
        """Async context manager giving exclusive access to one user's session."""

    @abstractmethod
    def sweep_expired(self, timeout_minutes: int, now: Optional[datetime] = None) -> int:
        """Drops sessions idle longer than timeout_minutes. Returns how many."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored sessions."""


class _KeyLock:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.holders = 0


class InMemorySessionStore(SessionStore):
    """
    Process-local session store. State does not survive a restart.
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, _KeyLock] = {}

    def get(self, user_id: str) -> Optional[Session]:
        return self._sessions.get(user_id)

    def put(self, user_id: str, session: Session) -> None:
        if session.user_id != user_id:
            raise ValueError(f"Session belongs to {session.user_id}, not {user_id}")
        self._sessions[user_id] = session

    def delete(self, user_id: str) -> None:
        if self._sessions.pop(user_id, None) is not None:
            logger.debug(f"Session deleted for {user_id}")

    @asynccontextmanager
    async def lock(self, user_id: str):
        # Entries are reference counted and dropped once nobody holds or awaits them.
        entry = self._locks.get(user_id)
        if entry is None:
            entry = self._locks[user_id] = _KeyLock()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[user_id]

    def sweep_expired(self, timeout_minutes: int, now: Optional[datetime] = None) -> int:
        now = now or utc_now()
        expired: List[str] = [
            user_id
            for user_id, session in self._sessions.items()
            if is_session_expired(session.last_interaction, timeout_minutes, now=now)
            and not self.is_locked(user_id)
        ]

        for user_id in expired:
            del self._sessions[user_id]

        if expired:
            logger.info(
                f"Swept {len(expired)} idle session(s)",
                extra={"timeout_minutes": timeout_minutes}
            )

        return len(expired)

    def is_locked(self, user_id: str) -> bool:
        return user_id in self._locks

    def count(self) -> int:
        return len(self._sessions)


async def run_session_sweeper(store: SessionStore, timeout_minutes: int, interval_seconds: float):
    """
    Background loop that evicts idle sessions until cancelled.
    """
    logger.info(
        f"Session sweeper started (timeout={timeout_minutes}m, every {interval_seconds}s)"
    )
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            store.sweep_expired(timeout_minutes)
        except Exception as e:
            logger.error(f"Session sweep failed: {e}", exc_info=True)
