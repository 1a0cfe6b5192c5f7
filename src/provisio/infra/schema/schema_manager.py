"""PostgreSQL schema-per-tenant manager backed by Alembic.

Implements SchemaBackendPort. Each tenant gets its own schema with its
own Alembic revision ledger, so migration state is tracked per tenant.

Schema names are validated against a strict pattern and always emitted
as quoted identifiers, never interpolated raw into SQL.
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import TYPE_CHECKING

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from alembic.util.exc import CommandError
from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError

from provisio.foundation.domain.exceptions import (
    BackendUnavailableError,
    ValidationError,
)
from provisio.foundation.domain.tenant_value_objects import is_reserved_schema_name

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection, Engine

    from provisio.infra.schema.settings import SchemaSettings

logger = logging.getLogger(__name__)

_BACKEND = "schema"
_SCHEMA_NAME_PATTERN = re.compile(r"^[a-z0-9_]{1,63}$")


class SchemaOperationError(Exception):
    """Raised when a schema step fails for a reason other than connectivity.

    Attributes:
        schema_name: Schema the operation targeted.
        step: Failed step ("create_schema", "set_search_path", "migrate",
            "drop_schema").
    """

    def __init__(self, schema_name: str, step: str, reason: str) -> None:
        self.schema_name = schema_name
        self.step = step
        self.reason = reason
        super().__init__(f"Schema step '{step}' failed for '{schema_name}': {reason}")


def validate_schema_name(schema_name: str) -> str:
    """Reject schema names that are not safe tenant schema names.

    Raises:
        ValidationError: If the name is malformed or reserved.
    """
    if not _SCHEMA_NAME_PATTERN.match(schema_name):
        raise ValidationError(
            "schema_name",
            "must be 1-63 lowercase alphanumeric or underscore characters",
            value=schema_name,
        )
    if is_reserved_schema_name(schema_name):
        raise ValidationError("schema_name", "reserved schema name", value=schema_name)
    return schema_name


class PostgresSchemaManager:
    """Creates, migrates and drops tenant schemas.

    Args:
        engine: SQLAlchemy engine for the shared tenant database.
        settings: Migration script location and ledger table name.
    """

    def __init__(self, engine: Engine, settings: SchemaSettings) -> None:
        self._engine = engine
        self._settings = settings

    # ------------------------------------------------------------------
    # SchemaBackendPort
    # ------------------------------------------------------------------

    def create_and_migrate(self, schema_name: str) -> None:
        """Create the schema if absent, then apply every pending migration.

        Re-running against a fully migrated schema is a no-op. On failure
        the schema may be left behind with migrations partially applied.

        Raises:
            ValidationError: If the schema name is invalid.
            BackendUnavailableError: If the database cannot be reached.
            SchemaOperationError: If a step fails for another reason.
        """
        validate_schema_name(schema_name)
        quoted = self._quote(schema_name)

        with self._connect(schema_name, "create_schema") as conn:
            with self._step(schema_name, "create_schema"):
                conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {quoted}"))
                conn.commit()
            logger.info("schema_created", extra={"schema_name": schema_name})

            # SET LOCAL keeps the search_path scoped to the migration
            # transaction so the pooled connection is returned clean.
            with self._step(schema_name, "set_search_path"):
                conn.execute(text(f"SET LOCAL search_path TO {quoted}"))

            with self._step(schema_name, "migrate"):
                command.upgrade(self._alembic_config(conn, schema_name), "head", tag=schema_name)
                conn.commit()
        logger.info(
            "schema_migrated",
            extra={"schema_name": schema_name, "revision": self.head_revision()},
        )

    def drop_schema(self, schema_name: str) -> None:
        """Drop the schema and everything in it. Absent schemas are ignored.

        Raises:
            ValidationError: If the schema name is invalid.
            BackendUnavailableError: If the database cannot be reached.
            SchemaOperationError: If the drop fails for another reason.
        """
        validate_schema_name(schema_name)
        quoted = self._quote(schema_name)
        with self._connect(schema_name, "drop_schema") as conn:
            with self._step(schema_name, "drop_schema"):
                conn.execute(text(f"DROP SCHEMA IF EXISTS {quoted} CASCADE"))
                conn.commit()
        logger.info("schema_dropped", extra={"schema_name": schema_name})

    def schema_exists(self, schema_name: str) -> bool:
        with self._connect(schema_name, "schema_exists") as conn:
            with self._step(schema_name, "schema_exists"):
                result = conn.execute(
                    text("SELECT EXISTS(SELECT 1 FROM pg_namespace WHERE nspname = :name)"),
                    {"name": schema_name},
                )
                return bool(result.scalar())

    def current_revision(self, schema_name: str) -> str | None:
        validate_schema_name(schema_name)
        with self._connect(schema_name, "current_revision") as conn:
            with self._step(schema_name, "current_revision"):
                migration_context = MigrationContext.configure(
                    conn,
                    opts={
                        "version_table": self._settings.version_table,
                        "version_table_schema": schema_name,
                    },
                )
                return migration_context.get_current_revision()

    def head_revision(self) -> str | None:
        script = ScriptDirectory.from_config(self._alembic_config())
        return script.get_current_head()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _quote(self, schema_name: str) -> str:
        return self._engine.dialect.identifier_preparer.quote_identifier(schema_name)

    def _alembic_config(
        self,
        connection: Connection | None = None,
        schema_name: str | None = None,
    ) -> Config:
        cfg = Config()
        cfg.set_main_option("script_location", self._settings.script_location)
        cfg.set_main_option("version_table", self._settings.version_table)
        if connection is not None:
            cfg.attributes["connection"] = connection
            cfg.attributes["schema_name"] = schema_name
        return cfg

    @contextmanager
    def _connect(self, schema_name: str, step: str) -> Iterator[Connection]:
        try:
            with self._engine.connect() as conn:
                yield conn
        except (OperationalError, InterfaceError) as exc:
            raise BackendUnavailableError(_BACKEND, str(exc.orig or exc), step=step) from exc

    @contextmanager
    def _step(self, schema_name: str, step: str) -> Iterator[None]:
        """Translate driver failures of one step into the schema error taxonomy."""
        try:
            yield
        except (OperationalError, InterfaceError):
            raise
        except (SQLAlchemyError, CommandError) as exc:
            logger.error(
                "schema_step_failed",
                extra={"schema_name": schema_name, "step": step},
            )
            raise SchemaOperationError(schema_name, step, str(exc)) from exc
