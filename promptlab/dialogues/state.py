"""Socratic dialogue state machine.

A dialogue moves ``created -> active -> eligible -> completed``. Transitions
only happen when a student message is sent; the functions below derive the
state from the transcript so nothing besides ``is_completed`` is stored.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from .schemas import Message, SocraticQuestion


DEFAULT_MIN_STUDENT_TURNS = 3

DEFAULT_OPENING_QUESTION = SocraticQuestion(
    question_type="exploration",
    question_text="When you ask an AI something, what do you think shapes the quality of its answer?",
)


class DialogueState(str, Enum):
    """Lifecycle of a Socratic dialogue."""

    CREATED = "created"
    ACTIVE = "active"
    ELIGIBLE = "eligible"
    COMPLETED = "completed"


@dataclass(frozen=True)
class TurnOutcome:
    """Flags reported after an exchange."""

    can_proceed: bool
    is_completed: bool


def count_student_turns(messages: Iterable[Message]) -> int:
    """Number of student messages in a transcript."""
    return sum(1 for message in messages if message.role == "student")


def dialogue_state(student_turns: int, min_student_turns: int, *, is_completed: bool) -> DialogueState:
    """Derive the current state from the student-turn count and the stored flag."""
    if is_completed:
        return DialogueState.COMPLETED
    if student_turns == 0:
        return DialogueState.CREATED
    if student_turns >= min_student_turns:
        return DialogueState.ELIGIBLE
    return DialogueState.ACTIVE


def next_question(questions: Sequence[SocraticQuestion], message_count: int) -> SocraticQuestion | None:
    """Pick the scripted question for a transcript of ``message_count`` messages.

    Messages alternate tutor/student, so after the student's n-th answer the
    transcript holds 2n messages and question n (zero-based) is next.
    """
    index = message_count // 2
    if index >= len(questions):
        return None
    return questions[index]


def evaluate_turn(student_turns: int, min_student_turns: int, *, ready: bool, final: bool) -> TurnOutcome:
    """Combine the turn-count gate with the tutor's readiness signals."""
    can_proceed = student_turns >= min_student_turns and ready
    return TurnOutcome(can_proceed=can_proceed, is_completed=can_proceed and final)
