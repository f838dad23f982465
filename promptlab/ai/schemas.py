"""Request/response schemas for the AI exercise endpoints."""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ChatTurn(BaseModel):
    """One prior turn of a stateless tutor conversation."""

    role: Literal["user", "assistant"]
    content: str


class SocraticRequest(BaseModel):
    """Stateless Socratic tutor turn."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    module_id: UUID = Field(..., alias="moduleId")
    user_message: str = Field(..., min_length=1, max_length=4000, alias="userMessage")
    conversation_history: list[ChatTurn] = Field(default_factory=list, alias="conversationHistory")


class SocraticResponse(BaseModel):
    """Tutor reply and whether the learner may move on."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    can_proceed: bool = Field(..., alias="canProceed")


class PromptAnalysisRequest(BaseModel):
    """Prompt written by the learner in the prompt-writing step."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    module_id: UUID = Field(..., alias="moduleId")
    prompt: str = Field(..., min_length=1, max_length=8000)
    scenario_context: str | None = Field(None, alias="scenarioContext")


class ComparisonRequest(BaseModel):
    """Two prompts to compare in the comparison lab."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    module_id: UUID = Field(..., alias="moduleId")
    prompt_a: str = Field(..., min_length=1, max_length=8000, alias="promptA")
    prompt_b: str = Field(..., min_length=1, max_length=8000, alias="promptB")


class ComparisonResponse(BaseModel):
    """Expected answers to both prompts and the verdict."""

    model_config = ConfigDict(populate_by_name=True)

    response_a: str = Field(..., alias="responseA")
    response_b: str = Field(..., alias="responseB")
    analysis: str
    better_prompt: Literal["A", "B"] = Field(..., alias="betterPrompt")
