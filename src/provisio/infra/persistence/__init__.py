"""Provisio Infra Persistence -- engine and session factories."""

from provisio.infra.persistence.database import (
    DatabaseManager,
    DatabaseSettings,
    get_database_manager,
)
from provisio.infra.persistence.lifespan import persistence_lifespan

__all__ = [
    "DatabaseManager",
    "DatabaseSettings",
    "get_database_manager",
    "persistence_lifespan",
]
