"""
app/models/session.py

Purpose: In-progress invoice conversation for one user
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict

from utils.time_utils import utc_now


@dataclass
class Session:
    """
    One user's conversation.

    `step` is 0 before the flow starts and 1..total_steps while the answer
    for that step is awaited. `fields` maps step keys to raw answers.
    """
    user_id: str
    total_steps: int
    step: int = 0
    fields: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    last_interaction: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if not 0 <= self.step <= self.total_steps:
            raise ValueError(f"step {self.step} outside 0..{self.total_steps}")

    @property
    def is_last_step(self) -> bool:
        return self.step == self.total_steps

    def advance(self) -> int:
        """Moves the cursor one step forward and returns the new step."""
        if self.step >= self.total_steps:
            raise ValueError(f"cannot advance past step {self.total_steps}")
        self.step += 1
        return self.step

    def record(self, key: str, answer: str):
        self.fields[key] = answer

    def touch(self, now: datetime = None):
        self.last_interaction = now or utc_now()
