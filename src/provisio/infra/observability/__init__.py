"""Provisio Infra Observability -- structlog logging configuration."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from provisio.infra.observability.logging import (
    LoggingSettings,
    configure_logging,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@asynccontextmanager
async def observability_lifespan(app: Any) -> AsyncIterator[None]:
    """Lifespan hook that configures logging on startup."""
    configure_logging()
    yield


__all__ = [
    "LoggingSettings",
    "configure_logging",
    "observability_lifespan",
]
