"""Step progression rules shared by the modules and progress features.

Every module walks through the same four steps in a fixed order. The helpers
here are pure: they take stored values and return derived ones.
"""

from collections.abc import Collection
from dataclasses import dataclass
from typing import Literal, Protocol
from uuid import UUID


StepType = Literal["socratic_dialogue", "prompt_writing", "comparison_lab", "reflection_journal"]
ProgressStatus = Literal["not_started", "in_progress", "completed"]

STEP_ORDER: tuple[StepType, ...] = (
    "socratic_dialogue",
    "prompt_writing",
    "comparison_lab",
    "reflection_journal",
)
TOTAL_STEPS = len(STEP_ORDER)

STEP_TITLES: dict[StepType, str] = {
    "socratic_dialogue": "Socratic Dialogue",
    "prompt_writing": "Prompt Writing",
    "comparison_lab": "Comparison Lab",
    "reflection_journal": "Reflection Journal",
}


class HasPrerequisite(Protocol):
    """Anything carrying an optional prerequisite module id."""

    prerequisite_module_id: UUID | None


@dataclass(frozen=True)
class StepState:
    """Display state of one step within a module."""

    type: StepType
    title: str
    is_completed: bool
    is_current: bool


def step_index(step: str | None) -> int:
    """Return the zero-based position of ``step``; -1 when unknown or None."""
    if step is None or step not in STEP_ORDER:
        return -1
    return STEP_ORDER.index(step)


def steps_completed(current_step: str | None, is_module_completed: bool) -> int:
    """Return how many steps are behind the learner (0..4)."""
    if is_module_completed:
        return TOTAL_STEPS
    return max(step_index(current_step), 0)


def step_percentage(current_step: str | None, is_module_completed: bool) -> int:
    """Return module completion as a rounded percentage."""
    return round(steps_completed(current_step, is_module_completed) / TOTAL_STEPS * 100)


def next_step(step: str) -> StepType | None:
    """Return the step after ``step`` or None when it is the last one."""
    index = step_index(step)
    if index == -1 or index >= TOTAL_STEPS - 1:
        return None
    return STEP_ORDER[index + 1]


def is_locked(module: HasPrerequisite, completed_module_ids: Collection[UUID]) -> bool:
    """A module is locked while its prerequisite is not completed."""
    if module.prerequisite_module_id is None:
        return False
    return module.prerequisite_module_id not in completed_module_ids


def step_states(current_step: str | None, is_module_completed: bool) -> list[StepState]:
    """Return per-step flags for a module detail view.

    A module without progress is shown as sitting on the first step.
    """
    current = current_step or STEP_ORDER[0]
    current_index = step_index(current)
    return [
        StepState(
            type=step,
            title=STEP_TITLES[step],
            is_completed=is_module_completed or index < current_index,
            is_current=not is_module_completed and step == current,
        )
        for index, step in enumerate(STEP_ORDER)
    ]
