"""Persistence lifespan hook for startup/shutdown resource management.

Handles:
- Database health check on startup (SELECT 1)
- Engine disposal on shutdown
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from provisio.infra.persistence.database import get_database_manager

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def persistence_lifespan(app: Any) -> AsyncIterator[None]:
    """Manage persistence resources across the application lifecycle.

    Startup:
        1. Execute ``SELECT 1`` health check on the engine.
        2. Log the connection budget.

    Shutdown:
        1. Dispose the engine and connection pool.
    """
    manager = get_database_manager()

    engine = manager.get_engine()
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info("persistence_lifespan: database health check passed")

    settings = manager.settings
    logger.info(
        "persistence_lifespan: connection budget %d",
        settings.pool_size + settings.max_overflow,
    )

    try:
        yield
    finally:
        manager.dispose()
        logger.info("persistence_lifespan: database engine disposed")

