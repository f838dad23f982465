"""Step progression rules."""

import uuid
from dataclasses import dataclass

import pytest

from promptlab.progress.steps import (
    STEP_ORDER,
    TOTAL_STEPS,
    is_locked,
    next_step,
    step_percentage,
    step_states,
    steps_completed,
)


@dataclass
class FakeModule:
    prerequisite_module_id: uuid.UUID | None


def test_step_order_is_fixed() -> None:
    assert STEP_ORDER == ("socratic_dialogue", "prompt_writing", "comparison_lab", "reflection_journal")
    assert TOTAL_STEPS == 4


@pytest.mark.parametrize(
    ("current_step", "is_completed", "expected"),
    [
        (None, False, 0),
        ("socratic_dialogue", False, 0),
        ("prompt_writing", False, 1),
        ("comparison_lab", False, 2),
        ("reflection_journal", False, 3),
        (None, True, 4),
        ("prompt_writing", True, 4),
    ],
)
def test_steps_completed(current_step: str | None, is_completed: bool, expected: int) -> None:
    assert steps_completed(current_step, is_completed) == expected


def test_step_percentage_rounds() -> None:
    assert step_percentage(None, False) == 0
    assert step_percentage("comparison_lab", False) == 50
    assert step_percentage("reflection_journal", False) == 75
    assert step_percentage(None, True) == 100


def test_next_step_walks_the_order() -> None:
    assert next_step("socratic_dialogue") == "prompt_writing"
    assert next_step("prompt_writing") == "comparison_lab"
    assert next_step("comparison_lab") == "reflection_journal"
    assert next_step("reflection_journal") is None


def test_module_without_prerequisite_is_unlocked() -> None:
    assert is_locked(FakeModule(prerequisite_module_id=None), set()) is False


def test_module_locked_until_prerequisite_completed() -> None:
    prerequisite = uuid.uuid4()
    module = FakeModule(prerequisite_module_id=prerequisite)

    assert is_locked(module, set()) is True
    assert is_locked(module, {uuid.uuid4()}) is True
    assert is_locked(module, {prerequisite}) is False


def test_step_states_without_progress_points_at_first_step() -> None:
    states = step_states(None, False)

    assert [state.type for state in states] == list(STEP_ORDER)
    assert [state.is_current for state in states] == [True, False, False, False]
    assert not any(state.is_completed for state in states)


def test_step_states_mid_module() -> None:
    states = step_states("comparison_lab", False)

    assert [state.is_completed for state in states] == [True, True, False, False]
    assert [state.is_current for state in states] == [False, False, True, False]


def test_step_states_completed_module() -> None:
    states = step_states(None, True)

    assert all(state.is_completed for state in states)
    assert not any(state.is_current for state in states)
