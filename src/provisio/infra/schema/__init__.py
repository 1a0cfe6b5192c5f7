"""Provisio Infra Schema -- schema-per-tenant creation and Alembic migrations."""

from provisio.infra.schema.schema_manager import (
    PostgresSchemaManager,
    SchemaOperationError,
    validate_schema_name,
)
from provisio.infra.schema.settings import SchemaSettings, get_schema_settings

__all__ = [
    "PostgresSchemaManager",
    "SchemaOperationError",
    "SchemaSettings",
    "get_schema_settings",
    "validate_schema_name",
]
