"""
app/flow/steps.py

Purpose: The ordered prompts of the invoice intake

- Each step pairs a stable field key with the question sent to the user
- The script is immutable and shared by every conversation
"""

from dataclasses import dataclass
from typing import Iterable, Tuple

from app.core.exceptions import StepOutOfRangeError
from utils.constants import (
    FIELD_RFC, FIELD_CP, FIELD_REGIMEN, FIELD_NOMBRE, FIELD_USO,
    FIELD_METODO, FIELD_FORMA, FIELD_DESCRIPCION, FIELD_IMPORTE,
    ASK_RFC_MESSAGE, ASK_CP_MESSAGE, ASK_REGIMEN_MESSAGE, ASK_NOMBRE_MESSAGE,
    ASK_USO_MESSAGE, ASK_METODO_MESSAGE, ASK_FORMA_MESSAGE,
    ASK_DESCRIPCION_MESSAGE, ASK_IMPORTE_MESSAGE,
)


@dataclass(frozen=True)
class Step:
    key: str
    prompt: str


class StepScript:
    """
    Ordered, read-only sequence of steps. Steps are numbered from 1.
    """

    def __init__(self, steps: Iterable[Step]):
        self._steps: Tuple[Step, ...] = tuple(steps)

        if not self._steps:
            raise ValueError("A step script needs at least one step")

        keys = [step.key for step in self._steps]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate step keys in script: {keys}")

    def length(self) -> int:
        return len(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def step_at(self, index: int) -> Step:
        """
        Returns the step numbered `index`.

        Raises:
            StepOutOfRangeError: If index is outside 1..N
        """
        if not 1 <= index <= len(self._steps):
            raise StepOutOfRangeError(index, len(self._steps))
        return self._steps[index - 1]

    def keys(self) -> Tuple[str, ...]:
        return tuple(step.key for step in self._steps)


INVOICE_STEPS = StepScript([
    Step(FIELD_RFC, ASK_RFC_MESSAGE),
    Step(FIELD_CP, ASK_CP_MESSAGE),
    Step(FIELD_REGIMEN, ASK_REGIMEN_MESSAGE),
    Step(FIELD_NOMBRE, ASK_NOMBRE_MESSAGE),
    Step(FIELD_USO, ASK_USO_MESSAGE),
    Step(FIELD_METODO, ASK_METODO_MESSAGE),
    Step(FIELD_FORMA, ASK_FORMA_MESSAGE),
    Step(FIELD_DESCRIPCION, ASK_DESCRIPCION_MESSAGE),
    Step(FIELD_IMPORTE, ASK_IMPORTE_MESSAGE),
])
