"""Tutor strategies that produce the tutor side of a Socratic dialogue."""

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol
from uuid import UUID

from promptlab.config.settings import Settings
from promptlab.dialogues.schemas import Message, QuestionType, SocraticQuestion

from .client import LLMClient
from .errors import AIRuntimeError
from .models import TutorReply
from .prompts import READY_MARKER, TUTOR_UNAVAILABLE_MESSAGE, WRAP_UP_HINT, get_socratic_system_prompt


logger = logging.getLogger(__name__)

ACKNOWLEDGEMENTS: tuple[str, ...] = (
    "That's a good thought.",
    "Interesting perspective.",
    "I see how you're thinking about it.",
    "Got it, thanks.",
    "Good point.",
)

CLOSING_REMARK = (
    "This conversation has surfaced some useful insights about writing prompts. "
    "Shall we move on to the next step and write a prompt of your own?"
)


@dataclass(frozen=True)
class TutorTurn:
    """One tutor reply plus the signals that drive dialogue completion.

    ``ready`` means the learner may move on; ``final`` means the tutor has
    nothing more to ask. ``failed`` marks a recoverable error turn.
    """

    content: str
    question_type: QuestionType
    ready: bool
    final: bool
    failed: bool = False


@dataclass(frozen=True)
class TutorContext:
    """Everything a tutor needs to answer the latest student message."""

    history: Sequence[Message]
    student_message: str
    next_question: SocraticQuestion | None
    student_turns: int
    min_student_turns: int
    module_order_index: int | None = None
    user_id: UUID | str | None = None


class Tutor(Protocol):
    """Strategy interface used by the dialogue service."""

    async def respond(self, context: TutorContext) -> TutorTurn: ...


def split_ready_marker(text: str) -> tuple[str, bool]:
    """Strip the readiness marker from a reply and report whether it was present."""
    if READY_MARKER not in text:
        return text.strip(), False
    return text.replace(READY_MARKER, "").strip(), True


def _question_type_for(next_question: SocraticQuestion | None) -> QuestionType:
    return next_question.question_type if next_question else "reflection"


class ScriptedTutor:
    """Acknowledge the answer and ask the next scripted question."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    async def respond(self, context: TutorContext) -> TutorTurn:
        acknowledgement = self._rng.choice(ACKNOWLEDGEMENTS)
        question = context.next_question
        if question is None:
            return TutorTurn(
                content=f"{acknowledgement} {CLOSING_REMARK}",
                question_type="reflection",
                ready=True,
                final=True,
            )
        return TutorTurn(
            content=f"{acknowledgement} {question.question_text}",
            question_type=question.question_type,
            ready=True,
            final=False,
        )


class LLMTutor:
    """Tutor backed by a hosted model through LiteLLM."""

    def __init__(self, client: LLMClient) -> None:
        self._client = client

    def build_messages(
        self,
        *,
        module_order_index: int | None,
        history: Sequence[dict[str, str]],
        student_message: str,
        wrap_up: bool,
    ) -> list[dict[str, Any]]:
        """Assemble the chat payload: system prompt, prior turns, latest student message."""
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": get_socratic_system_prompt(module_order_index)},
        ]
        messages.extend({"role": turn["role"], "content": turn["content"]} for turn in history)
        content = student_message + WRAP_UP_HINT if wrap_up else student_message
        messages.append({"role": "user", "content": content})
        return messages

    async def reply(
        self,
        *,
        module_order_index: int | None,
        history: Sequence[dict[str, str]],
        student_message: str,
        wrap_up: bool,
        user_id: UUID | str | None = None,
    ) -> tuple[str, bool]:
        """Return ``(message, ready)`` for one turn.

        Raises:
            AIRuntimeError: When the model call fails.
        """
        messages = self.build_messages(
            module_order_index=module_order_index,
            history=history,
            student_message=student_message,
            wrap_up=wrap_up,
        )
        result = await self._client.get_completion(messages, response_model=TutorReply, user_id=user_id)
        message, marker_found = split_ready_marker(result.message)
        return message, result.ready_for_next_step or marker_found

    async def respond(self, context: TutorContext) -> TutorTurn:
        history = [
            {"role": "assistant" if message.role == "tutor" else "user", "content": message.content}
            for message in context.history
        ]
        try:
            message, ready = await self.reply(
                module_order_index=context.module_order_index,
                history=history,
                student_message=context.student_message,
                wrap_up=context.student_turns >= context.min_student_turns,
                user_id=context.user_id,
            )
        except AIRuntimeError as exc:
            logger.warning("Tutor reply failed (%s); returning recoverable turn", exc.category.value)
            return TutorTurn(
                content=TUTOR_UNAVAILABLE_MESSAGE,
                question_type=_question_type_for(context.next_question),
                ready=False,
                final=False,
                failed=True,
            )

        # The model closes the conversation in the same turn it marks the learner ready
        return TutorTurn(
            content=message,
            question_type=_question_type_for(context.next_question),
            ready=ready,
            final=ready,
        )


def build_tutor(settings: Settings, client: LLMClient | None = None) -> Tutor:
    """Select the tutor strategy configured by ``TUTOR_STRATEGY``."""
    strategy = settings.TUTOR_STRATEGY.lower()
    if strategy == "scripted":
        return ScriptedTutor()
    if strategy == "llm":
        return LLMTutor(client or LLMClient(settings))
    msg = f"Unknown tutor strategy: {settings.TUTOR_STRATEGY}"
    raise ValueError(msg)
