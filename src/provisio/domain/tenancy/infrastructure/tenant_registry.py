"""SQL-backed tenant registry.

Sync repository over a SQLAlchemy session factory. Unfiltered: this is a
control-plane store and the operator sees every tenant.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from provisio.domain.tenancy.infrastructure.tables import tenants_table
from provisio.domain.tenancy.tenant import Tenant
from provisio.foundation.domain.exceptions import (
    BackendUnavailableError,
    DuplicateIdentifierError,
    TenantNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from contextlib import AbstractContextManager
    from uuid import UUID

    from sqlalchemy import Row
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@contextmanager
def registry_session(session_factory: Callable[[], Session]) -> Iterator[Session]:
    """Open a session; connection failures become BackendUnavailableError."""
    try:
        with session_factory() as session:
            yield session
    except (OperationalError, InterfaceError) as exc:
        raise BackendUnavailableError("registry", str(exc.orig or exc)) from exc


def _row_to_tenant(row: Row[Any]) -> Tenant:
    m = row._mapping
    return Tenant(
        id=m["id"],
        identifier=m["identifier"],
        name=m["name"],
        contact_email=m["contact_email"],
        active=m["active"],
        identity_realm=m["identity_realm"],
        schema_name=m["schema_name"],
        status=m["status"],
        created_at=m["created_at"],
        updated_at=m["updated_at"],
    )


class SqlTenantRegistry:
    """Read/write access to the ``tenants`` table.

    Connection-level failures raise BackendUnavailableError; other storage
    errors propagate unchanged.

    Args:
        session_factory: Callable returning a SQLAlchemy Session context manager.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def _session(self) -> AbstractContextManager[Session]:
        return registry_session(self._session_factory)

    def save(self, tenant: Tenant) -> Tenant:
        """Insert a new tenant row, assigning id and timestamps.

        The identifier unique constraint is the arbiter of concurrent
        creates: the losing insert raises DuplicateIdentifierError.

        Raises:
            DuplicateIdentifierError: If the identifier is already registered.
        """
        now = datetime.now(UTC)
        tenant_id = tenant.id or uuid4()
        values = {
            "id": tenant_id,
            "identifier": tenant.identifier,
            "name": tenant.name,
            "contact_email": tenant.contact_email,
            "active": tenant.active,
            "identity_realm": tenant.identity_realm,
            "schema_name": tenant.schema_name,
            "status": tenant.status,
            "created_at": now,
            "updated_at": now,
        }
        try:
            with self._session() as session:
                session.execute(tenants_table.insert().values(**values))
                session.commit()
        except IntegrityError as err:
            if self.exists_by_identifier(tenant.identifier):
                logger.info(
                    "registry_duplicate_identifier",
                    extra={"identifier": tenant.identifier},
                )
                raise DuplicateIdentifierError(tenant.identifier) from err
            raise

        tenant.id = tenant_id
        tenant.created_at = now
        tenant.updated_at = now
        return tenant

    def update(self, tenant: Tenant) -> Tenant:
        """Persist the mutable fields of an existing tenant.

        Raises:
            TenantNotFoundError: If no row matches ``tenant.id``.
        """
        if tenant.id is None:
            raise TenantNotFoundError(tenant.identifier)
        now = datetime.now(UTC)
        with self._session() as session:
            result = session.execute(
                update(tenants_table)
                .where(tenants_table.c.id == tenant.id)
                .values(
                    name=tenant.name,
                    contact_email=tenant.contact_email,
                    active=tenant.active,
                    status=tenant.status,
                    updated_at=now,
                )
            )
            matched = result.rowcount
            session.commit()
        if matched == 0:
            raise TenantNotFoundError(tenant.id)
        tenant.updated_at = now
        return tenant

    def get(self, tenant_id: UUID) -> Tenant | None:
        return self._fetch_one(tenants_table.c.id == tenant_id)

    def delete(self, tenant_id: UUID) -> None:
        """Delete a tenant row. Idempotent (no error if the row is absent)."""
        with self._session() as session:
            session.execute(delete(tenants_table).where(tenants_table.c.id == tenant_id))
            session.commit()

    def exists_by_identifier(self, identifier: str) -> bool:
        with self._session() as session:
            stmt = select(exists().where(tenants_table.c.identifier == identifier))
            return bool(session.execute(stmt).scalar())

    def find_by_identifier(self, identifier: str) -> Tenant | None:
        return self._fetch_one(tenants_table.c.identifier == identifier)

    def find_by_realm(self, realm: str) -> Tenant | None:
        return self._fetch_one(tenants_table.c.identity_realm == realm)

    def find_by_schema(self, schema_name: str) -> Tenant | None:
        return self._fetch_one(tenants_table.c.schema_name == schema_name)

    def list_all(
        self,
        active: bool | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Tenant]:
        """List tenants ordered by creation time (oldest first).

        Args:
            active: Optional filter on the active flag.
            limit: Maximum number of rows to return (None for all).
            offset: Number of rows to skip.
        """
        stmt = select(tenants_table).order_by(
            tenants_table.c.created_at, tenants_table.c.identifier
        )
        if active is not None:
            stmt = stmt.where(tenants_table.c.active.is_(active))
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session() as session:
            rows = session.execute(stmt).fetchall()
        return [_row_to_tenant(row) for row in rows]

    def _fetch_one(self, criterion: Any) -> Tenant | None:
        with self._session() as session:
            row = session.execute(select(tenants_table).where(criterion)).fetchone()
        if row is None:
            return None
        return _row_to_tenant(row)
