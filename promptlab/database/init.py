"""Database initialization - registers every model and creates the tables."""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine

# Import all models to register them with Base metadata
from promptlab.dialogues.models import Dialogue  # noqa: F401
from promptlab.modules.models import Module, Scenario, SocraticQuestionTemplate  # noqa: F401
from promptlab.progress.models import TechniqueBadge, UserProgress  # noqa: F401

from .base import Base


logger = logging.getLogger(__name__)


async def init_database(db_engine: AsyncEngine) -> None:
    """Create all tables from models."""
    async with db_engine.begin() as conn:
        logger.info("Creating database tables from models...")
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialization completed successfully")
