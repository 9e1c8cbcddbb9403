from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from gitforge.project_service.db.engine import create_engine, create_session_factory
from gitforge.project_service.log import setup_logging
from gitforge.project_service.managers.reconcile import reconcile
from gitforge.project_service.repositories.base import RepositoryManager
from gitforge.project_service.repositories.http import HttpRepositoryManager
from gitforge.project_service.repositories.memory import InMemoryRepositoryManager
from gitforge.project_service.settings import GitforgeSettings, get_settings


def create_repository_manager(settings: GitforgeSettings) -> RepositoryManager:
    """Create the repository manager client based on configuration."""
    if settings.repo_manager_url:
        return HttpRepositoryManager(settings.repo_manager_url, timeout=settings.repo_manager_timeout)
    return InMemoryRepositoryManager()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level, json=settings.log_json)

    logger.info("Project Service starting (host={}, port={})", settings.host, settings.port)

    # -- Initialise state fields (always present, possibly None) ----------------
    _app.state.db_engine = None
    _app.state.db_session_factory = None
    _app.state.rpc_timeout = settings.repo_manager_timeout

    # -- Repository manager ----------------------------------------------------
    _app.state.repositories = create_repository_manager(settings)
    if settings.repo_manager_url:
        logger.info(
            "Repository manager: {} (timeout={}s)",
            settings.repo_manager_url,
            settings.repo_manager_timeout,
        )
    else:
        logger.warning("GITFORGE_REPO_MANAGER_URL not set -- using in-memory repository manager")

    # -- Database --------------------------------------------------------------
    if settings.database_url:
        engine = create_engine(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )
        _app.state.db_engine = engine
        _app.state.db_session_factory = create_session_factory(engine)
        logger.info(
            "Database: connected (pool_size={}, max_overflow={})",
            settings.db_pool_size,
            settings.db_max_overflow,
        )
    else:
        logger.warning("GITFORGE_DATABASE_URL not set -- project endpoints disabled")

    # -- Startup reconciliation ------------------------------------------------
    if settings.reconcile_on_startup and _app.state.db_session_factory is not None:
        async with _app.state.db_session_factory() as db:
            report = await reconcile(
                db,
                _app.state.repositories,
                stale_after=timedelta(seconds=settings.reconcile_stale_after),
                apply=True,
            )
        if report.failed_paths:
            logger.warning("Startup reconcile left {} items unrepaired", len(report.failed_paths))

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Project Service shutting down")

    await _app.state.repositories.aclose()

    # Dispose DB engine (closes all pooled connections).
    if _app.state.db_engine is not None:
        await _app.state.db_engine.dispose()
        logger.info("Database: disposed")


app = FastAPI(title="Gitforge Project Service", lifespan=lifespan)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Unexpected store failures surface as a plain 500, details stay in the log."""
    logger.opt(exception=exc).error("Database error: {}", exc.__class__.__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal database error."},
    )


# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


from gitforge.project_service.routers.projects import router as projects_router  # noqa: E402

api.include_router(projects_router)

app.include_router(api)
