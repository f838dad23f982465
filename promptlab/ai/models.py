"""Structured output models requested from the LLM."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TutorReply(BaseModel):
    """One Socratic tutor turn."""

    model_config = ConfigDict(extra="forbid")

    message: str = Field(..., description="Text shown to the learner")
    ready_for_next_step: bool = Field(
        ...,
        description="True once the learner has demonstrated the module's key idea",
    )


class PromptAnalysis(BaseModel):
    """Feedback on a learner-written prompt."""

    model_config = ConfigDict(extra="forbid")

    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    score: int = Field(..., description="Overall quality from 0 to 100")
    feedback: str

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value: object) -> int:
        score = round(float(value))  # type: ignore[arg-type]
        return max(0, min(100, score))


class PromptComparison(BaseModel):
    """Side-by-side evaluation of two prompts."""

    model_config = ConfigDict(extra="forbid")

    response_a: str = Field(..., description="Expected answer to prompt A")
    response_b: str = Field(..., description="Expected answer to prompt B")
    analysis: str
    better_prompt: Literal["A", "B"]
