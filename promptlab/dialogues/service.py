"""Business logic for Socratic dialogues."""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from promptlab.ai.tutors import Tutor, TutorContext
from promptlab.exceptions import ForbiddenError, InvalidStateError, ResourceNotFoundError
from promptlab.modules.models import Module, SocraticQuestionTemplate
from promptlab.progress.models import UserProgress

from .models import Dialogue
from .schemas import (
    CreateDialogueResponse,
    DialogueResponse,
    InitialMessage,
    Message,
    SendMessageResponse,
    SocraticQuestion,
)
from .state import (
    DEFAULT_MIN_STUDENT_TURNS,
    DEFAULT_OPENING_QUESTION,
    count_student_turns,
    dialogue_state,
    evaluate_turn,
    next_question,
)


logger = logging.getLogger(__name__)


async def load_questions(session: AsyncSession, module_id: UUID) -> list[SocraticQuestion]:
    """Return the scripted questions of a module in order."""
    rows = await session.execute(
        select(SocraticQuestionTemplate.question_type, SocraticQuestionTemplate.question_text)
        .where(
            SocraticQuestionTemplate.module_id == module_id,
            SocraticQuestionTemplate.is_active.is_(True),
        )
        .order_by(SocraticQuestionTemplate.order_index)
    )
    return [SocraticQuestion(question_type=row.question_type, question_text=row.question_text) for row in rows]


def opening_question(questions: list[SocraticQuestion]) -> SocraticQuestion:
    """First scripted question, or the generic opener for modules without a script."""
    return questions[0] if questions else DEFAULT_OPENING_QUESTION


def _dump(messages: list[Message]) -> list[dict[str, Any]]:
    return [message.model_dump(mode="json", by_alias=True, exclude_none=True) for message in messages]


def _load(raw_messages: list[dict[str, Any]] | None) -> list[Message]:
    return [Message.model_validate(raw) for raw in raw_messages or []]


class DialogueService:
    """Service for creating and advancing Socratic dialogues."""

    def __init__(
        self,
        session: AsyncSession,
        tutor: Tutor,
        min_student_turns: int = DEFAULT_MIN_STUDENT_TURNS,
    ) -> None:
        self.session = session
        self.tutor = tutor
        self.min_student_turns = min_student_turns

    async def create_dialogue(self, progress_id: UUID, user_id: UUID) -> CreateDialogueResponse:
        """Open the dialogue for a progress record, or return the existing one."""
        progress = await self.session.get(UserProgress, progress_id)
        if progress is None:
            raise ResourceNotFoundError("Progress", progress_id)
        if progress.user_id != user_id:
            raise ForbiddenError

        existing = await self._find_by_progress(progress_id)
        if existing is not None:
            return self._existing_response(existing)

        question = opening_question(await load_questions(self.session, progress.module_id))
        initial = Message(
            role="tutor",
            content=question.question_text,
            question_type=question.question_type,
            timestamp=datetime.now(UTC),
        )
        dialogue = Dialogue(progress_id=progress_id, messages=_dump([initial]), is_completed=False)
        self.session.add(dialogue)
        try:
            await self.session.commit()
        except IntegrityError:
            # A concurrent request created the dialogue first; hand back theirs
            await self.session.rollback()
            existing = await self._find_by_progress(progress_id)
            if existing is None:
                raise
            return self._existing_response(existing)

        logger.info("Created dialogue %s for progress %s", dialogue.id, progress_id)
        return CreateDialogueResponse(
            dialogue_id=dialogue.id,
            initial_message=InitialMessage(content=question.question_text, question_type=question.question_type),
        )

    async def send_message(self, dialogue_id: UUID, content: str, user_id: UUID) -> SendMessageResponse:
        """Append a student answer and the tutor's reply."""
        dialogue, progress = await self._get_owned(dialogue_id, user_id)
        if dialogue.is_completed:
            msg = "Dialogue already completed"
            raise InvalidStateError(msg)

        history = _load(dialogue.messages)
        user_message = Message(role="student", content=content, timestamp=datetime.now(UTC))
        transcript = [*history, user_message]

        questions = await load_questions(self.session, progress.module_id)
        student_turns = count_student_turns(transcript)
        order_index = await self.session.scalar(select(Module.order_index).where(Module.id == progress.module_id))

        turn = await self.tutor.respond(
            TutorContext(
                history=history,
                student_message=content,
                next_question=next_question(questions, len(transcript)),
                student_turns=student_turns,
                min_student_turns=self.min_student_turns,
                module_order_index=order_index,
                user_id=user_id,
            )
        )
        outcome = evaluate_turn(student_turns, self.min_student_turns, ready=turn.ready, final=turn.final)

        tutor_message = Message(
            role="tutor",
            content=turn.content,
            question_type=turn.question_type,
            timestamp=datetime.now(UTC),
        )
        # Reassign so the JSON column is flagged dirty
        dialogue.messages = _dump([*transcript, tutor_message])
        dialogue.is_completed = outcome.is_completed
        await self.session.commit()

        logger.info(
            "Dialogue %s: student turn %d (can proceed: %s, completed: %s, tutor failed: %s)",
            dialogue_id,
            student_turns,
            outcome.can_proceed,
            outcome.is_completed,
            turn.failed,
        )

        return SendMessageResponse(
            user_message=user_message,
            tutor_response=tutor_message,
            is_completed=outcome.is_completed,
            can_proceed=outcome.can_proceed,
        )

    async def get_dialogue(self, dialogue_id: UUID, user_id: UUID) -> DialogueResponse:
        """Return the transcript and derived state of a dialogue."""
        dialogue, _ = await self._get_owned(dialogue_id, user_id)
        messages = _load(dialogue.messages)
        state = dialogue_state(
            count_student_turns(messages),
            self.min_student_turns,
            is_completed=dialogue.is_completed,
        )
        return DialogueResponse(
            dialogue_id=dialogue.id,
            messages=messages,
            is_completed=dialogue.is_completed,
            state=state.value,
        )

    async def _find_by_progress(self, progress_id: UUID) -> Dialogue | None:
        return await self.session.scalar(select(Dialogue).where(Dialogue.progress_id == progress_id))

    async def _get_owned(self, dialogue_id: UUID, user_id: UUID) -> tuple[Dialogue, UserProgress]:
        row = (
            await self.session.execute(
                select(Dialogue, UserProgress)
                .join(UserProgress, UserProgress.id == Dialogue.progress_id)
                .where(Dialogue.id == dialogue_id)
            )
        ).first()
        if row is None:
            raise ResourceNotFoundError("Dialogue", dialogue_id)
        dialogue, progress = row
        if progress.user_id != user_id:
            raise ForbiddenError
        return dialogue, progress

    def _existing_response(self, dialogue: Dialogue) -> CreateDialogueResponse:
        messages = _load(dialogue.messages)
        first_tutor = next((message for message in messages if message.role == "tutor"), None)
        if first_tutor is None:
            content = DEFAULT_OPENING_QUESTION.question_text
            question_type = DEFAULT_OPENING_QUESTION.question_type
        else:
            content = first_tutor.content
            question_type = first_tutor.question_type or "exploration"
        return CreateDialogueResponse(
            dialogue_id=dialogue.id,
            initial_message=InitialMessage(content=content, question_type=question_type),
        )
