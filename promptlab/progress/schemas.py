"""Schemas for progress API."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .steps import TOTAL_STEPS, ProgressStatus, StepType


class CompleteStepRequest(BaseModel):
    """Schema for completing the current step of a module."""

    model_config = ConfigDict(populate_by_name=True)

    step_type: StepType = Field(..., alias="stepType", description="Step the learner just finished")


class CompleteStepResponse(BaseModel):
    """Outcome of a step completion."""

    model_config = ConfigDict(populate_by_name=True)

    next_step: StepType | None = Field(None, alias="nextStep")
    module_completed: bool = Field(False, alias="moduleCompleted")
    unlocked_module: str | None = Field(None, alias="unlockedModule")


class OverallProgress(BaseModel):
    """Curriculum-wide completion."""

    model_config = ConfigDict(populate_by_name=True)

    completed_modules: int = Field(..., alias="completedModules")
    total_modules: int = Field(..., alias="totalModules")
    percentage: int


class ModuleProgressSummary(BaseModel):
    """Progress of one module in the overview."""

    model_config = ConfigDict(populate_by_name=True)

    module_id: UUID = Field(..., alias="moduleId")
    module_title: str = Field(..., alias="moduleTitle")
    status: ProgressStatus
    current_step: StepType | None = Field(None, alias="currentStep")
    steps_completed: int = Field(..., ge=0, le=TOTAL_STEPS, alias="stepsCompleted")
    total_steps: int = Field(TOTAL_STEPS, alias="totalSteps")
    completed_at: datetime | None = Field(None, alias="completedAt")


class BadgeResponse(BaseModel):
    """Earned technique badge."""

    model_config = ConfigDict(populate_by_name=True)

    technique: str
    module_title: str = Field(..., alias="moduleTitle")
    earned_at: datetime = Field(..., alias="earnedAt")


class ActivityItem(BaseModel):
    """Recent learner activity entry."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["module_started", "step_completed", "module_completed"]
    module_title: str = Field(..., alias="moduleTitle")
    timestamp: datetime


class ProgressOverviewResponse(BaseModel):
    """Schema for the learner's progress dashboard."""

    overall: OverallProgress
    modules: list[ModuleProgressSummary]
    badges: list[BadgeResponse]
    recent_activity: list[ActivityItem] = Field(default_factory=list, alias="recentActivity")

    model_config = ConfigDict(populate_by_name=True)
