"""Business logic for the module catalog."""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from promptlab.dialogues.service import load_questions, opening_question
from promptlab.exceptions import InvalidStateError, ResourceNotFoundError
from promptlab.progress.models import UserProgress
from promptlab.progress.steps import STEP_ORDER, is_locked, step_percentage, step_states

from .models import Module, Scenario
from .schemas import (
    FirstStep,
    ModuleBase,
    ModuleDetail,
    ModuleDetailProgress,
    ModuleDetailResponse,
    ModuleProgress,
    ModulesListResponse,
    ModuleWithProgress,
    OverallModuleProgress,
    ScenarioResponse,
    StartModuleResponse,
    StepStateResponse,
)


logger = logging.getLogger(__name__)


def _module_fields(module: Module) -> dict[str, Any]:
    return ModuleBase.model_validate(module).model_dump()


class ModuleService:
    """Service for listing, describing and starting modules."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_modules(self, user_id: UUID) -> ModulesListResponse:
        """List active modules with the caller's lock state and progress."""
        modules = (
            await self.session.scalars(
                select(Module).where(Module.is_active.is_(True)).order_by(Module.order_index)
            )
        ).all()
        progress_map = await self._progress_by_module(user_id)
        completed_ids = {module_id for module_id, row in progress_map.items() if row.status == "completed"}

        items = []
        for module in modules:
            progress = progress_map.get(module.id)
            items.append(
                ModuleWithProgress(
                    **_module_fields(module),
                    is_locked=is_locked(module, completed_ids),
                    progress=ModuleProgress(
                        status=progress.status,
                        current_step=progress.current_step,
                        percentage=step_percentage(progress.current_step, progress.status == "completed"),
                    )
                    if progress
                    else None,
                )
            )

        completed = sum(1 for item in items if item.progress and item.progress.status == "completed")
        total = len(items)
        return ModulesListResponse(
            modules=items,
            overall_progress=OverallModuleProgress(
                completed=completed,
                total=total,
                percentage=round(completed / total * 100) if total else 0,
            ),
        )

    async def get_module_detail(self, module_id: UUID, user_id: UUID) -> ModuleDetailResponse:
        """Return a module with its steps, scenarios and the caller's progress."""
        module = await self._get_active_module(module_id)
        scenarios = (
            await self.session.scalars(
                select(Scenario).where(Scenario.module_id == module_id, Scenario.is_active.is_(True))
            )
        ).all()
        progress = await self._get_progress(user_id, module_id)

        states = step_states(
            progress.current_step if progress else None,
            progress is not None and progress.status == "completed",
        )
        detail = ModuleDetail(
            **_module_fields(module),
            steps=[StepStateResponse.model_validate(state) for state in states],
            scenarios=[ScenarioResponse.model_validate(scenario) for scenario in scenarios],
        )
        return ModuleDetailResponse(
            module=detail,
            progress=ModuleDetailProgress(
                id=progress.id,
                status=progress.status,
                current_step=progress.current_step,
                started_at=progress.started_at,
            )
            if progress
            else None,
        )

    async def start_module(self, module_id: UUID, user_id: UUID) -> StartModuleResponse:
        """Create the caller's progress on a module, or return the existing record."""
        module = await self._get_active_module(module_id)

        progress = await self._get_progress(user_id, module_id)
        if progress is None:
            completed_ids = {
                completed_id
                for completed_id, row in (await self._progress_by_module(user_id)).items()
                if row.status == "completed"
            }
            if is_locked(module, completed_ids):
                msg = "Complete the previous module first"
                raise InvalidStateError(msg)
            progress = await self._create_progress(user_id, module_id)

        question = opening_question(await load_questions(self.session, module_id))
        return StartModuleResponse(
            progress_id=progress.id,
            first_step=FirstStep(initial_message=question.question_text),
        )

    async def _create_progress(self, user_id: UUID, module_id: UUID) -> UserProgress:
        progress = UserProgress(
            user_id=user_id,
            module_id=module_id,
            status="in_progress",
            current_step=STEP_ORDER[0],
            started_at=datetime.now(UTC),
        )
        self.session.add(progress)
        try:
            await self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent start of the same module
            await self.session.rollback()
            existing = await self._get_progress(user_id, module_id)
            if existing is None:
                raise
            return existing

        logger.info("User %s started module %s (progress %s)", user_id, module_id, progress.id)
        return progress

    async def _get_active_module(self, module_id: UUID) -> Module:
        module = await self.session.scalar(
            select(Module).where(Module.id == module_id, Module.is_active.is_(True))
        )
        if module is None:
            raise ResourceNotFoundError("Module", module_id)
        return module

    async def _get_progress(self, user_id: UUID, module_id: UUID) -> UserProgress | None:
        return await self.session.scalar(
            select(UserProgress).where(UserProgress.user_id == user_id, UserProgress.module_id == module_id)
        )

    async def _progress_by_module(self, user_id: UUID) -> dict[UUID, UserProgress]:
        rows = (await self.session.scalars(select(UserProgress).where(UserProgress.user_id == user_id))).all()
        return {row.module_id: row for row in rows}
