"""Schemas for the modules API."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from promptlab.progress.steps import ProgressStatus, StepType


class ModuleBase(BaseModel):
    """Catalog fields shared by list and detail views."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    title: str
    title_en: str | None = Field(None, alias="titleEn")
    description: str | None = None
    description_en: str | None = Field(None, alias="descriptionEn")
    techniques: list[str] = Field(default_factory=list)
    policy_context: str = Field("", alias="policyContext")
    order_index: int = Field(..., alias="orderIndex")
    is_active: bool = Field(True, alias="isActive")
    prerequisite_module_id: UUID | None = Field(None, alias="prerequisiteModuleId")


class ModuleProgress(BaseModel):
    """Caller's progress on a module in the list view."""

    model_config = ConfigDict(populate_by_name=True)

    status: ProgressStatus
    current_step: StepType | None = Field(None, alias="currentStep")
    percentage: int = Field(..., ge=0, le=100)


class ModuleWithProgress(ModuleBase):
    """Module plus lock flag and progress."""

    is_locked: bool = Field(..., alias="isLocked")
    progress: ModuleProgress | None = None


class OverallModuleProgress(BaseModel):
    """Completed modules over all active modules."""

    completed: int
    total: int
    percentage: int


class ModulesListResponse(BaseModel):
    """Response for the module list."""

    model_config = ConfigDict(populate_by_name=True)

    modules: list[ModuleWithProgress]
    overall_progress: OverallModuleProgress = Field(..., alias="overallProgress")


class StepStateResponse(BaseModel):
    """One step of a module as shown in its detail view."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    type: StepType
    title: str
    is_completed: bool = Field(..., alias="isCompleted")
    is_current: bool = Field(..., alias="isCurrent")


class ScenarioResponse(BaseModel):
    """Practice scenario."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    title: str
    title_en: str | None = Field(None, alias="titleEn")
    category: str
    context: str
    context_en: str | None = Field(None, alias="contextEn")


class ModuleDetail(ModuleBase):
    """Module with its steps and scenarios."""

    steps: list[StepStateResponse]
    scenarios: list[ScenarioResponse] = Field(default_factory=list)


class ModuleDetailProgress(BaseModel):
    """Caller's progress on a module in the detail view."""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    status: ProgressStatus
    current_step: StepType | None = Field(None, alias="currentStep")
    started_at: datetime | None = Field(None, alias="startedAt")


class ModuleDetailResponse(BaseModel):
    """Response for a single module."""

    module: ModuleDetail
    progress: ModuleDetailProgress | None = None


class FirstStep(BaseModel):
    """Entry point of a freshly started module."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["socratic_dialogue"] = "socratic_dialogue"
    initial_message: str = Field(..., alias="initialMessage")


class StartModuleResponse(BaseModel):
    """Progress record created (or found) by starting a module."""

    model_config = ConfigDict(populate_by_name=True)

    progress_id: UUID = Field(..., alias="progressId")
    first_step: FirstStep = Field(..., alias="firstStep")
