"""Provisio Infra FastAPI -- error handlers, middleware, app factory."""

from provisio.infra.fastapi._health import router as health_router
from provisio.infra.fastapi.app_factory import create_app
from provisio.infra.fastapi.error_handlers import (
    ProblemDetail,
    register_exception_handlers,
)
from provisio.infra.fastapi.middleware.request_id import (
    RequestIdMiddleware,
    get_request_id,
)
from provisio.infra.fastapi.settings import AppSettings, CORSSettings

__all__ = [
    "AppSettings",
    "CORSSettings",
    "ProblemDetail",
    "RequestIdMiddleware",
    "create_app",
    "get_request_id",
    "health_router",
    "register_exception_handlers",
]
