"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from canvass_api.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware, setup_cors
from canvass_api.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from canvass_api.api.v1.audit import audit_router
    from canvass_api.api.v1.imports import imports_router, jobs_router
    from canvass_api.api.v1.merge_alerts import merge_alerts_router
    from canvass_api.api.v1.voters import voters_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(jobs_router)
    root_router.include_router(imports_router)
    root_router.include_router(voters_router)
    root_router.include_router(merge_alerts_router)
    root_router.include_router(audit_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
