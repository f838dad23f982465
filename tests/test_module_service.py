"""ModuleService start paths that race with other requests."""

from datetime import UTC, datetime
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from promptlab.modules.models import Module
from promptlab.modules.service import ModuleService
from promptlab.progress.models import UserProgress
from tests.conftest import USER_ID


@pytest.mark.asyncio
async def test_concurrent_start_returns_the_committed_progress(
    db_session: AsyncSession,
    session_maker: async_sessionmaker[AsyncSession],
    modules: list[Module],
) -> None:
    module_id = modules[0].id
    winner = UserProgress(
        user_id=USER_ID,
        module_id=module_id,
        status="in_progress",
        current_step="socratic_dialogue",
        started_at=datetime.now(UTC),
    )
    commit = db_session.commit

    async def commit_after_other_request() -> None:
        async with session_maker() as other:
            other.add(winner)
            await other.commit()
        await commit()

    with patch.object(db_session, "commit", new=commit_after_other_request):
        started = await ModuleService(db_session).start_module(module_id, USER_ID)

    assert started.progress_id == winner.id
    count = await db_session.scalar(
        select(func.count())
        .select_from(UserProgress)
        .where(UserProgress.user_id == USER_ID, UserProgress.module_id == module_id)
    )
    assert count == 1


@pytest.mark.asyncio
async def test_start_creates_progress_on_first_step(db_session: AsyncSession, modules: list[Module]) -> None:
    started = await ModuleService(db_session).start_module(modules[0].id, USER_ID)

    progress = await db_session.get(UserProgress, started.progress_id)
    assert progress is not None
    assert progress.current_step == "socratic_dialogue"
    assert progress.status == "in_progress"
