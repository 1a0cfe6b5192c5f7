"""Aggregated health check endpoint.

Reports per-subsystem health status for the registry database and the
identity backend, plus overall application readiness.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from provisio.infra.identity.settings import get_identity_settings
from provisio.infra.persistence.database import get_database_manager

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


def _check_database() -> dict[str, str]:
    """Check database connectivity via SELECT 1."""
    try:
        engine = get_database_manager().get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as exc:
        logger.warning("health_check: database unhealthy: %s", exc)
        return {"status": "error", "detail": str(exc)}


def _check_identity() -> dict[str, str]:
    """Check that the identity backend serves its admin realm."""
    try:
        settings = get_identity_settings()
        response = httpx.get(
            f"{settings.base_url}/realms/{settings.admin_realm}",
            timeout=settings.timeout,
        )
        response.raise_for_status()
        return {"status": "ok"}
    except Exception as exc:
        logger.warning("health_check: identity unhealthy: %s", exc)
        return {"status": "error", "detail": str(exc)}


@router.get("/healthz")
def healthz() -> Any:
    """Aggregated health check endpoint.

    Returns HTTP 200 when all subsystems are healthy, HTTP 503 when any
    subsystem is degraded.
    """
    checks: dict[str, dict[str, str]] = {
        "database": _check_database(),
        "identity": _check_identity(),
    }

    all_ok = all(c["status"] == "ok" for c in checks.values())
    result = {
        "status": "ok" if all_ok else "degraded",
        "checks": checks,
    }

    status_code = 200 if all_ok else 503
    return JSONResponse(content=result, status_code=status_code)
