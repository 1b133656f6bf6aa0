"""
app/flow/states.py

Purpose: Defines the conversation states

- Idle: no conversation in progress (step 0)
- Collecting: awaiting the answer for step 1..N
- Complete: transient, consumed by submission and never stored
- Outcome of a single inbound turn
"""

from enum import Enum


class ConversationState(str, Enum):
    """
    Coarse state of a user's invoice conversation.
    """

    IDLE = "IDLE"
    COLLECTING = "COLLECTING"
    COMPLETE = "COMPLETE"


class TurnAction(str, Enum):
    """
    What the engine did with one inbound message.
    """

    IGNORED = "IGNORED"          # idle and no trigger, nothing sent
    STARTED = "STARTED"          # step 1 prompt sent
    REPROMPTED = "REPROMPTED"    # blank answer, same prompt sent again
    ADVANCED = "ADVANCED"        # answer recorded, next prompt sent
    FINALIZED = "FINALIZED"      # last answer recorded, submission ran


def state_for_step(step: int, total_steps: int) -> ConversationState:
    """
    Maps a step cursor onto a conversation state.

    Args:
        step: Session cursor
        total_steps: Length of the step script

    Returns:
        IDLE for step 0, COLLECTING for 1..total_steps
    """
    if step == 0:
        return ConversationState.IDLE
    if 1 <= step <= total_steps:
        return ConversationState.COLLECTING
    raise ValueError(f"step {step} outside 0..{total_steps}")
