"""Schemas for the dialogues API."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


MessageRole = Literal["tutor", "student"]
QuestionType = Literal["exploration", "clarification", "assumption", "consequence", "reflection"]
DialogueStateName = Literal["created", "active", "eligible", "completed"]


class Message(BaseModel):
    """One transcript entry. Stored as JSON on the dialogue row."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    role: MessageRole
    content: str
    question_type: QuestionType | None = Field(None, alias="questionType")
    timestamp: datetime


class SocraticQuestion(BaseModel):
    """Scripted tutor question."""

    model_config = ConfigDict(frozen=True)

    question_type: QuestionType
    question_text: str


class CreateDialogueRequest(BaseModel):
    """Request body for opening the dialogue of a progress record."""

    model_config = ConfigDict(populate_by_name=True)

    progress_id: UUID = Field(..., alias="progressId")


class InitialMessage(BaseModel):
    """First tutor message of a dialogue."""

    model_config = ConfigDict(populate_by_name=True)

    role: Literal["tutor"] = "tutor"
    content: str
    question_type: QuestionType = Field(..., alias="questionType")


class CreateDialogueResponse(BaseModel):
    """Identifier and opening message of a dialogue."""

    model_config = ConfigDict(populate_by_name=True)

    dialogue_id: UUID = Field(..., alias="dialogueId")
    initial_message: InitialMessage = Field(..., alias="initialMessage")


class SendMessageRequest(BaseModel):
    """Student answer."""

    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=1, max_length=4000, description="Student message")


class SendMessageResponse(BaseModel):
    """Result of one exchange."""

    model_config = ConfigDict(populate_by_name=True)

    user_message: Message = Field(..., alias="userMessage")
    tutor_response: Message = Field(..., alias="tutorResponse")
    is_completed: bool = Field(..., alias="isCompleted")
    can_proceed: bool = Field(..., alias="canProceed")


class DialogueResponse(BaseModel):
    """Full dialogue transcript."""

    model_config = ConfigDict(populate_by_name=True)

    dialogue_id: UUID = Field(..., alias="dialogueId")
    messages: list[Message]
    is_completed: bool = Field(..., alias="isCompleted")
    state: DialogueStateName
