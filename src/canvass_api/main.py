"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from canvass_api.core.background import job_queue
from canvass_api.core.config import get_settings
from canvass_api.core.database import dispose_engine, init_engine, ping
from canvass_api.core.dependencies import get_async_session, get_object_store
from canvass_api.core.logging import setup_logging
from canvass_api.lib.storage import ObjectNotAccessibleError, ObjectStore


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Init the engine and import worker (after checking the upload bucket) on startup, dispose on shutdown."""
    from canvass_api.services.import_service import start_import_worker

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)
    await start_import_worker(job_queue, settings)

    yield

    await job_queue.drain()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Canvass API",
        description="Multi-tenant field canvassing backend with voter import and identity reconciliation",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    from canvass_api.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/ready", tags=["health"])
    async def ready(
        session: Annotated[AsyncSession, Depends(get_async_session)],
        storage: Annotated[ObjectStore | None, Depends(get_object_store)],
    ) -> JSONResponse:
        """Report whether the database and upload bucket can serve requests."""
        checks: dict[str, str] = {}
        try:
            await ping(session)
            checks["database"] = "ok"
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"Readiness: database unreachable: {e}")
            checks["database"] = "fail"
        if storage is None:
            checks["storage"] = "not_configured"
        else:
            try:
                await storage.ensure_bucket()
                checks["storage"] = "ok"
            except ObjectNotAccessibleError as e:
                logger.warning(f"Readiness: {e}")
                checks["storage"] = "fail"
        is_ready = "fail" not in checks.values()
        return JSONResponse(
            status_code=200 if is_ready else 503,
            content={"status": "ready" if is_ready else "not_ready", "checks": checks},
        )

    return app
