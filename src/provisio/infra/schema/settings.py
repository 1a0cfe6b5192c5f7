"""Tenant schema migration settings.

Environment Variables:
    SCHEMA_SCRIPT_LOCATION: Alembic script directory with tenant migrations
    SCHEMA_VERSION_TABLE: Name of the per-schema revision ledger table
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_BUNDLED_MIGRATIONS = Path(__file__).parent / "migrations"


class SchemaSettings(BaseSettings):
    """Settings for per-tenant schema creation and migration.

    Example:
        >>> SchemaSettings().version_table
        'alembic_version'
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHEMA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    script_location: str = Field(
        default=str(_BUNDLED_MIGRATIONS),
        description="Alembic script directory applied to every tenant schema",
    )
    version_table: str = Field(
        default="alembic_version",
        description="Revision ledger table created inside each tenant schema",
    )


@lru_cache(maxsize=1)
def get_schema_settings() -> SchemaSettings:
    """Get singleton SchemaSettings instance.

    Clear cache with ``get_schema_settings.cache_clear()`` for testing.
    """
    return SchemaSettings()
