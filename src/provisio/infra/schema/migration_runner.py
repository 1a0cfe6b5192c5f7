"""Alembic ``env.py`` helpers for migrating a single tenant schema.

The tenant migration environment never opens its own connection. The
schema manager passes an open connection and the target schema name via
``Config.attributes``, and the schema name as the Alembic ``tag``:

    cfg.attributes["connection"] = connection
    cfg.attributes["schema_name"] = "acme_corp"
    command.upgrade(cfg, "head", tag="acme_corp")

Revision scripts call :func:`tenant_schema` to qualify the objects they
create, and the revision ledger lives inside the tenant schema so every
tenant tracks its own migration state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alembic import context

if TYPE_CHECKING:
    from sqlalchemy import Connection, MetaData


class MigrationContextError(RuntimeError):
    """Raised when the tenant environment is invoked without a connection."""


def tenant_schema() -> str:
    """Return the schema the running migration targets.

    Raises:
        MigrationContextError: If no schema tag was supplied.
    """
    schema = context.get_tag_argument()
    if not schema:
        msg = "Tenant migrations require the target schema as the Alembic tag"
        raise MigrationContextError(msg)
    return str(schema)


def _do_run_migrations(
    connection: Connection,
    schema_name: str,
    version_table: str,
    target_metadata: MetaData | None,
) -> None:
    """Run migrations within the caller's connection and transaction.

    Args:
        connection: Open SQLAlchemy connection with ``search_path`` set.
        schema_name: Tenant schema receiving the migrations.
        version_table: Revision ledger table name.
        target_metadata: Metadata for autogenerate support, if any.
    """
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        version_table=version_table,
        version_table_schema=schema_name,
        compare_type=True,
        compare_server_default=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_tenant_migrations(target_metadata: MetaData | None = None) -> None:
    """Entry point for the tenant migration ``env.py``.

    Raises:
        MigrationContextError: If the environment is used offline or without
            the attributes the schema manager supplies.
    """
    if context.is_offline_mode():
        msg = "Tenant migrations cannot run in offline mode"
        raise MigrationContextError(msg)

    config = context.config
    connection = config.attributes.get("connection")
    schema_name = config.attributes.get("schema_name")
    if connection is None or not schema_name:
        msg = "Tenant migrations must be run through the schema manager"
        raise MigrationContextError(msg)

    version_table = config.get_main_option("version_table") or "alembic_version"
    _do_run_migrations(connection, schema_name, version_table, target_metadata)
