import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv


# Load .env FIRST before any other imports that might need env vars
PROJECT_DIR = Path(__file__).parent.parent
ENV_PATH = PROJECT_DIR / ".env"
load_dotenv(ENV_PATH)

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.middleware.gzip import GZipMiddleware  # noqa: E402
from sqlalchemy.exc import OperationalError  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine  # noqa: E402

from .ai.client import LLMClient  # noqa: E402
from .ai.router import router as ai_router  # noqa: E402
from .ai.tutors import Tutor, build_tutor  # noqa: E402
from .auth.manager import AuthManager  # noqa: E402
from .config.logging import setup_logging  # noqa: E402
from .config.settings import Settings, get_settings  # noqa: E402
from .database.engine import create_app_engine  # noqa: E402
from .database.session import create_session_maker  # noqa: E402
from .dialogues.router import router as dialogues_router  # noqa: E402
from .middleware.error_handlers import register_error_handlers  # noqa: E402
from .middleware.security import SimpleSecurityMiddleware, limiter  # noqa: E402
from .modules.router import router as modules_router  # noqa: E402
from .progress.router import router as progress_router  # noqa: E402


setup_logging()
logger = logging.getLogger(__name__)


def _register_routers(app: FastAPI) -> None:
    """Register all application routers."""
    app.include_router(modules_router)
    app.include_router(dialogues_router)
    app.include_router(progress_router)
    app.include_router(ai_router)


async def _startup_database(engine: AsyncEngine) -> None:
    """Initialize database with retry logic."""
    from promptlab.database.init import init_database

    max_retries = 5
    retry_delay = 1  # seconds

    for attempt in range(max_retries):
        try:
            await init_database(engine)
            break
        except OperationalError:
            if attempt == max_retries - 1:
                logger.exception("Startup failed after %d attempts", max_retries)
                raise

            logger.warning(
                "Database connection attempt %d failed, retrying in %ds...",
                attempt + 1,
                retry_delay,
            )
            await asyncio.sleep(retry_delay)
            retry_delay *= 2  # Exponential backoff


async def _shutdown_cleanup(engine: AsyncEngine) -> None:
    """Clean up resources on shutdown."""
    logger.info("Starting graceful shutdown...")
    try:
        await engine.dispose()
        logger.info("Database engine disposed successfully")
    except Exception as e:
        logger.warning("Error disposing database engine: %s", e)
    logger.info("Shutdown complete")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    await _startup_database(app.state.engine)
    yield
    await _shutdown_cleanup(app.state.engine)


def create_app(
    settings: Settings | None = None,
    *,
    engine: AsyncEngine | None = None,
    tutor: Tutor | None = None,
    auth_manager: AuthManager | None = None,
    llm_client: LLMClient | None = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Collaborators default to ones built from ``settings``; tests pass their own.
    """
    if settings is None:
        try:
            settings = get_settings()
        except Exception:
            logger.exception("Failed to load settings")
            raise

    app = FastAPI(
        title="PromptLab API",
        description="Prompt-engineering course: modules, Socratic dialogues and progress tracking",
        version="0.1.0",
        debug=settings.DEBUG,
        lifespan=lifespan if settings.ENVIRONMENT != "test" else None,
    )

    engine = engine or create_app_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    llm_client = llm_client or LLMClient(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_maker = create_session_maker(engine)
    app.state.llm_client = llm_client
    app.state.tutor = tutor or build_tutor(settings, llm_client)
    app.state.auth_manager = auth_manager or AuthManager(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SimpleSecurityMiddleware)

    # Rate limiting
    limiter.enabled = settings.RATE_LIMIT_ENABLED
    app.state.limiter = limiter

    register_error_handlers(app)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Check application health status."""
        return {"status": "healthy"}

    _register_routers(app)

    logger.info(
        "PromptLab API configured (auth: %s, tutor: %s)",
        settings.AUTH_PROVIDER,
        type(app.state.tutor).__name__,
    )
    return app


if __name__ == "__main__":
    import uvicorn

    from promptlab.config import env

    host = env("API_HOST", "127.0.0.1")
    port = int(env("API_PORT", "8080"))

    uvicorn.run("promptlab.main:create_app", factory=True, host=host, port=port)
