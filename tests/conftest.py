"""Shared fixtures.

Testing strategy:
1. Database: in-memory SQLite through aiosqlite, tables created from the models
2. AI: the LLM client is a mock; the dialogue tutor is the scripted strategy
3. Authentication: single-user mode, callers picked with the X-Test-User-Id header
"""

import random
import uuid
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from promptlab.ai.client import LLMClient
from promptlab.ai.tutors import ScriptedTutor
from promptlab.config.settings import Settings
from promptlab.database.engine import create_app_engine
from promptlab.database.init import init_database
from promptlab.database.seed import seed_curriculum
from promptlab.database.session import create_session_maker
from promptlab.main import create_app
from promptlab.modules.models import Module


USER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
OTHER_USER_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")


@pytest.fixture
def settings() -> Settings:
    """Settings for an isolated test app."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite+aiosqlite://",
        ENVIRONMENT="test",
        AUTH_PROVIDER="none",
        TUTOR_STRATEGY="scripted",
        DIALOGUE_MIN_STUDENT_TURNS=3,
        RATE_LIMIT_ENABLED=False,
    )


@pytest.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """In-memory database with every table created."""
    db_engine = create_app_engine(settings.DATABASE_URL)
    await init_database(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_maker(engine)


@pytest.fixture
async def db_session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
async def modules(db_session: AsyncSession) -> list[Module]:
    """The seeded curriculum, ordered by order_index."""
    await seed_curriculum(db_session)
    return list((await db_session.scalars(select(Module).order_by(Module.order_index))).all())


@pytest.fixture
def llm_client() -> MagicMock:
    """Mock LLM client; tests set ``get_completion`` return values."""
    client = MagicMock(spec=LLMClient)
    client.get_completion = AsyncMock()
    return client


@pytest.fixture
def app(settings: Settings, engine: AsyncEngine, llm_client: MagicMock) -> FastAPI:
    return create_app(
        settings,
        engine=engine,
        tutor=ScriptedTutor(random.Random(0)),
        llm_client=llm_client,
    )


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client acting as USER_ID."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Test-User-Id": str(USER_ID)},
    ) as http_client:
        yield http_client


@pytest.fixture
async def other_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client acting as OTHER_USER_ID."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Test-User-Id": str(OTHER_USER_ID)},
    ) as http_client:
        yield http_client
