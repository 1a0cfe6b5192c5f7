"""Registry table definitions.

The registry lives in the shared database's default schema, next to (but
separate from) the per-tenant schemas. Uniqueness of identifier, realm
and schema name is enforced here, which is what serializes concurrent
creates for the same identifier.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

registry_metadata = MetaData()

tenants_table = Table(
    "tenants",
    registry_metadata,
    Column("id", Uuid, primary_key=True),
    Column("identifier", String(63), nullable=False),
    Column("name", String(255), nullable=False),
    Column("contact_email", String(320), nullable=False),
    Column("active", Boolean, nullable=False, default=True),
    Column("identity_realm", String(63), nullable=False),
    Column("schema_name", String(63), nullable=False),
    Column("status", String(16), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("identifier", name="uq_tenants_identifier"),
    UniqueConstraint("identity_realm", name="uq_tenants_identity_realm"),
    UniqueConstraint("schema_name", name="uq_tenants_schema_name"),
    Index("ix_tenants_created_at", "created_at"),
)

orphaned_resources_table = Table(
    "tenant_orphaned_resources",
    registry_metadata,
    Column("identifier", String(63), primary_key=True),
    Column("identity_realm", String(63), nullable=False),
    Column("schema_name", String(63), nullable=False),
    Column("realm_pending", Boolean, nullable=False),
    Column("schema_pending", Boolean, nullable=False),
    Column("origin", String(16), nullable=False),
    Column("status", String(16), nullable=False),
    Column("reason", Text, nullable=False, default=""),
    Column("recorded_at", DateTime(timezone=True), nullable=False),
)


def ensure_tables_exist(engine: Engine) -> None:
    """Create the registry tables if they do not exist.

    Called during application startup. Idempotent.
    """
    registry_metadata.create_all(engine, checkfirst=True)
    logger.info("registry_tables_ensured")
