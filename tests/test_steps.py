import pytest

from app.core.exceptions import StepOutOfRangeError
from app.flow.states import ConversationState, state_for_step
from app.flow.steps import INVOICE_STEPS, Step, StepScript


def test_invoice_script_order():
    assert INVOICE_STEPS.length() == 9
    assert len(INVOICE_STEPS) == 9
    assert INVOICE_STEPS.keys() == (
        "rfc", "cp", "regimen", "nombre", "uso", "metodo", "forma", "descripcion", "importe",
    )


def test_step_at_is_one_based():
    assert INVOICE_STEPS.step_at(1) == Step("rfc", "Para facturar, comparte tu RFC (receptor).")
    assert INVOICE_STEPS.step_at(9).key == "importe"


@pytest.mark.parametrize("index", [0, -1, 10])
def test_step_at_out_of_range(index):
    with pytest.raises(StepOutOfRangeError) as exc_info:
        INVOICE_STEPS.step_at(index)

    assert exc_info.value.details == {"index": index, "length": 9}


def test_script_rejects_empty_and_duplicate_keys():
    with pytest.raises(ValueError):
        StepScript([])
    with pytest.raises(ValueError):
        StepScript([Step("a", "A?"), Step("a", "A again?")])


def test_steps_are_immutable():
    with pytest.raises(Exception):
        INVOICE_STEPS.step_at(1).prompt = "changed"


@pytest.mark.parametrize("step, state", [
    (0, ConversationState.IDLE),
    (1, ConversationState.COLLECTING),
    (9, ConversationState.COLLECTING),
])
def test_state_for_step(step, state):
    assert state_for_step(step, 9) == state


def test_state_for_step_rejects_out_of_range():
    with pytest.raises(ValueError):
        state_for_step(10, 9)
