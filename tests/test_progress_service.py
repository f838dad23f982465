"""ProgressService: step completion, badges and overview."""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import patch

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from promptlab.exceptions import InvalidStepError, ResourceNotFoundError
from promptlab.modules.models import Module
from promptlab.modules.service import ModuleService
from promptlab.progress.models import TechniqueBadge, UserProgress
from promptlab.progress.service import ProgressService
from promptlab.progress.steps import STEP_ORDER
from tests.conftest import OTHER_USER_ID, USER_ID


async def _start(session: AsyncSession, module: Module) -> UserProgress:
    started = await ModuleService(session).start_module(module.id, USER_ID)
    progress = await session.get(UserProgress, started.progress_id)
    assert progress is not None
    return progress


async def _complete_module(session: AsyncSession, progress: UserProgress) -> list:
    service = ProgressService(session)
    return [await service.complete_step(progress.id, step, USER_ID) for step in STEP_ORDER]


@pytest.mark.asyncio
async def test_steps_advance_in_order(db_session: AsyncSession, modules: list[Module]) -> None:
    progress = await _start(db_session, modules[0])
    service = ProgressService(db_session)

    result = await service.complete_step(progress.id, "socratic_dialogue", USER_ID)

    assert result.next_step == "prompt_writing"
    assert result.module_completed is False
    assert result.unlocked_module is None

    await db_session.refresh(progress)
    assert progress.current_step == "prompt_writing"
    assert progress.status == "in_progress"


@pytest.mark.asyncio
async def test_wrong_step_is_rejected(db_session: AsyncSession, modules: list[Module]) -> None:
    progress = await _start(db_session, modules[0])

    with pytest.raises(InvalidStepError) as exc_info:
        await ProgressService(db_session).complete_step(progress.id, "comparison_lab", USER_ID)

    assert exc_info.value.expected == "socratic_dialogue"
    await db_session.refresh(progress)
    assert progress.current_step == "socratic_dialogue"


@pytest.mark.asyncio
async def test_repeated_submission_of_same_step_fails(db_session: AsyncSession, modules: list[Module]) -> None:
    progress = await _start(db_session, modules[0])
    service = ProgressService(db_session)

    await service.complete_step(progress.id, "socratic_dialogue", USER_ID)
    with pytest.raises(InvalidStepError):
        await service.complete_step(progress.id, "socratic_dialogue", USER_ID)


@pytest.mark.asyncio
async def test_step_advanced_after_read_is_not_applied_again(
    db_session: AsyncSession,
    session_maker: async_sessionmaker[AsyncSession],
    modules: list[Module],
) -> None:
    progress = await _start(db_session, modules[0])
    read = db_session.scalar

    async def read_then_other_request_advances(statement: Any, *args: Any, **kwargs: Any) -> Any:
        row = await read(statement, *args, **kwargs)
        # Another request completes this step and the next before our update lands
        async with session_maker() as other:
            await other.execute(
                update(UserProgress).where(UserProgress.id == progress.id).values(current_step=STEP_ORDER[2])
            )
            await other.commit()
        return row

    with (
        patch.object(db_session, "scalar", new=read_then_other_request_advances),
        pytest.raises(InvalidStepError) as exc_info,
    ):
        await ProgressService(db_session).complete_step(progress.id, "socratic_dialogue", USER_ID)

    assert exc_info.value.submitted == "socratic_dialogue"
    assert exc_info.value.expected is None
    await db_session.refresh(progress)
    assert progress.current_step == STEP_ORDER[2]
    assert progress.status == "in_progress"


@pytest.mark.asyncio
async def test_other_users_progress_is_not_found(db_session: AsyncSession, modules: list[Module]) -> None:
    progress = await _start(db_session, modules[0])

    with pytest.raises(ResourceNotFoundError):
        await ProgressService(db_session).complete_step(progress.id, "socratic_dialogue", OTHER_USER_ID)


@pytest.mark.asyncio
async def test_last_step_completes_module_and_unlocks_next(db_session: AsyncSession, modules: list[Module]) -> None:
    progress = await _start(db_session, modules[0])

    results = await _complete_module(db_session, progress)

    final = results[-1]
    assert final.next_step is None
    assert final.module_completed is True
    assert final.unlocked_module == modules[1].title

    await db_session.refresh(progress)
    assert progress.status == "completed"
    assert progress.current_step is None
    assert progress.completed_at is not None

    badges = (
        await db_session.scalars(select(TechniqueBadge.technique_name).where(TechniqueBadge.user_id == USER_ID))
    ).all()
    assert sorted(badges) == sorted(modules[0].techniques)


@pytest.mark.asyncio
async def test_completed_module_rejects_further_steps(db_session: AsyncSession, modules: list[Module]) -> None:
    progress = await _start(db_session, modules[0])
    await _complete_module(db_session, progress)

    with pytest.raises(InvalidStepError):
        await ProgressService(db_session).complete_step(progress.id, "reflection_journal", USER_ID)


@pytest.mark.asyncio
async def test_existing_badge_is_kept(db_session: AsyncSession, modules: list[Module]) -> None:
    technique = modules[0].techniques[0]
    earned_at = datetime(2024, 1, 1, tzinfo=UTC)
    db_session.add(
        TechniqueBadge(user_id=USER_ID, technique_name=technique, module_id=modules[0].id, earned_at=earned_at)
    )
    await db_session.commit()

    progress = await _start(db_session, modules[0])
    await _complete_module(db_session, progress)

    count = await db_session.scalar(
        select(func.count())
        .select_from(TechniqueBadge)
        .where(TechniqueBadge.user_id == USER_ID, TechniqueBadge.technique_name == technique)
    )
    assert count == 1
    badge = await db_session.scalar(
        select(TechniqueBadge).where(TechniqueBadge.user_id == USER_ID, TechniqueBadge.technique_name == technique)
    )
    assert badge.earned_at.year == 2024


@pytest.mark.asyncio
async def test_last_module_unlocks_nothing(db_session: AsyncSession, modules: list[Module]) -> None:
    for module in modules:
        progress = await _start(db_session, module)
        results = await _complete_module(db_session, progress)

    assert results[-1].module_completed is True
    assert results[-1].unlocked_module is None


@pytest.mark.asyncio
async def test_overview(db_session: AsyncSession, modules: list[Module]) -> None:
    first = await _start(db_session, modules[0])
    await _complete_module(db_session, first)
    await _start(db_session, modules[1])

    overview = await ProgressService(db_session).get_overview(USER_ID)

    assert overview.overall.completed_modules == 1
    assert overview.overall.total_modules == len(modules)
    assert overview.overall.percentage == round(100 / len(modules))

    by_module = {summary.module_id: summary for summary in overview.modules}
    assert by_module[modules[0].id].status == "completed"
    assert by_module[modules[0].id].steps_completed == 4
    assert by_module[modules[1].id].status == "in_progress"
    assert by_module[modules[1].id].current_step == "socratic_dialogue"
    assert by_module[modules[1].id].steps_completed == 0
    assert by_module[modules[2].id].status == "not_started"

    assert {badge.technique for badge in overview.badges} == set(modules[0].techniques)
    assert all(badge.module_title == modules[0].title for badge in overview.badges)

    activity_types = [item.type for item in overview.recent_activity]
    assert sorted(activity_types) == ["module_completed", "module_started", "module_started"]
    timestamps = [item.timestamp for item in overview.recent_activity]
    assert timestamps == sorted(timestamps, reverse=True)


@pytest.mark.asyncio
async def test_overview_for_new_user(db_session: AsyncSession, modules: list[Module]) -> None:
    overview = await ProgressService(db_session).get_overview(OTHER_USER_ID)

    assert overview.overall.completed_modules == 0
    assert overview.overall.percentage == 0
    assert all(summary.status == "not_started" for summary in overview.modules)
    assert overview.badges == []
    assert overview.recent_activity == []
