"""Business logic for progress tracking."""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from promptlab.database.dialects import insert_for
from promptlab.exceptions import InvalidStepError, ResourceNotFoundError
from promptlab.modules.models import Module

from .models import TechniqueBadge, UserProgress
from .schemas import (
    ActivityItem,
    BadgeResponse,
    CompleteStepResponse,
    ModuleProgressSummary,
    OverallProgress,
    ProgressOverviewResponse,
)
from .steps import TOTAL_STEPS, StepType, next_step, steps_completed


logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 10


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class ProgressService:
    """Service for step completion and the progress dashboard."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize progress service."""
        self.session = session

    async def get_overview(self, user_id: UUID) -> ProgressOverviewResponse:
        """Build the learner's progress overview across all active modules."""
        modules = list(
            (
                await self.session.scalars(
                    select(Module).where(Module.is_active.is_(True)).order_by(Module.order_index)
                )
            ).all()
        )
        progress_rows = (
            await self.session.scalars(select(UserProgress).where(UserProgress.user_id == user_id))
        ).all()
        progress_map = {row.module_id: row for row in progress_rows}
        titles = {module.id: module.title for module in modules}

        summaries = []
        for module in modules:
            progress = progress_map.get(module.id)
            status = progress.status if progress else "not_started"
            current_step = progress.current_step if progress else None
            summaries.append(
                ModuleProgressSummary(
                    module_id=module.id,
                    module_title=module.title,
                    status=status,
                    current_step=current_step,
                    steps_completed=steps_completed(current_step, status == "completed"),
                    total_steps=TOTAL_STEPS,
                    completed_at=progress.completed_at if progress else None,
                )
            )

        completed_count = sum(1 for summary in summaries if summary.status == "completed")
        total_count = len(summaries)

        badge_rows = await self.session.execute(
            select(TechniqueBadge.technique_name, TechniqueBadge.earned_at, Module.title)
            .join(Module, Module.id == TechniqueBadge.module_id)
            .where(TechniqueBadge.user_id == user_id)
            .order_by(TechniqueBadge.earned_at.desc())
        )
        badges = [
            BadgeResponse(technique=row.technique_name, module_title=row.title, earned_at=row.earned_at)
            for row in badge_rows
        ]

        return ProgressOverviewResponse(
            overall=OverallProgress(
                completed_modules=completed_count,
                total_modules=total_count,
                percentage=round(completed_count / total_count * 100) if total_count else 0,
            ),
            modules=summaries,
            badges=badges,
            recent_activity=self._recent_activity(progress_rows, titles),
        )

    def _recent_activity(self, progress_rows: list[UserProgress], titles: dict[UUID, str]) -> list[ActivityItem]:
        activity: list[ActivityItem] = []
        for progress in progress_rows:
            module_title = titles.get(progress.module_id, "")
            if progress.started_at:
                activity.append(
                    ActivityItem(
                        type="module_started",
                        module_title=module_title,
                        timestamp=_as_utc(progress.started_at),
                    )
                )
            if progress.completed_at:
                activity.append(
                    ActivityItem(
                        type="module_completed",
                        module_title=module_title,
                        timestamp=_as_utc(progress.completed_at),
                    )
                )
        activity.sort(key=lambda item: item.timestamp, reverse=True)
        return activity[:RECENT_ACTIVITY_LIMIT]

    async def complete_step(self, progress_id: UUID, step_type: StepType, user_id: UUID) -> CompleteStepResponse:
        """Advance a progress record past ``step_type``.

        The update is a compare-and-swap on ``current_step`` so a duplicated or
        concurrent submission of the same step fails instead of skipping ahead.
        """
        progress = await self.session.scalar(
            select(UserProgress)
            .where(UserProgress.id == progress_id, UserProgress.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if progress is None:
            raise ResourceNotFoundError("Progress", progress_id)

        if progress.current_step != step_type:
            raise InvalidStepError(step_type, progress.current_step)

        upcoming = next_step(step_type)
        module_completed = upcoming is None
        now = datetime.now(UTC)

        values: dict[str, object] = {"current_step": upcoming, "updated_at": now}
        if module_completed:
            values["status"] = "completed"
            values["completed_at"] = now

        result = await self.session.execute(
            update(UserProgress)
            .where(UserProgress.id == progress_id, UserProgress.current_step == step_type)
            .values(**values)
        )
        if result.rowcount == 0:
            # Another request advanced this step between our read and write
            await self.session.rollback()
            raise InvalidStepError(step_type, None)

        unlocked_module: str | None = None
        if module_completed:
            module = await self.session.get(Module, progress.module_id)
            if module is not None:
                await self._award_badges(user_id, module, now)
                unlocked_module = await self.session.scalar(
                    select(Module.title).where(
                        Module.is_active.is_(True),
                        Module.order_index == module.order_index + 1,
                    )
                )

        await self.session.commit()

        logger.info(
            "User %s completed step %s of progress %s (module completed: %s)",
            user_id,
            step_type,
            progress_id,
            module_completed,
        )

        return CompleteStepResponse(
            next_step=upcoming,
            module_completed=module_completed,
            unlocked_module=unlocked_module,
        )

    async def _award_badges(self, user_id: UUID, module: Module, earned_at: datetime) -> None:
        """Upsert one badge per module technique; existing badges are kept as-is."""
        for technique in module.techniques or []:
            statement = (
                insert_for(self.session, TechniqueBadge)
                .values(user_id=user_id, technique_name=technique, module_id=module.id, earned_at=earned_at)
                .on_conflict_do_nothing(index_elements=["user_id", "technique_name"])
            )
            await self.session.execute(statement)
