"""Port interfaces for tenant record storage.

The registry is the durable source of truth for tenant records; the
orphan ledger remembers identity/schema resources whose cleanup failed.
Both are implemented over SQLAlchemy in ``infrastructure`` and in memory
in tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from provisio.domain.tenancy.tenant import OrphanRecord, Tenant


@runtime_checkable
class TenantRegistryPort(Protocol):
    """Durable store of Tenant records.

    Uniqueness of ``identifier``, ``identity_realm`` and ``schema_name`` is
    enforced by the store. A concurrent insert of the same identifier
    raises DuplicateIdentifierError; any other storage failure propagates
    as the store's own exception.
    """

    def save(self, tenant: Tenant) -> Tenant:
        """Insert a new record, assigning id and timestamps.

        Raises:
            DuplicateIdentifierError: If the identifier is already taken.
        """
        ...

    def update(self, tenant: Tenant) -> Tenant:
        """Persist mutable fields of an existing record and refresh updated_at.

        Raises:
            TenantNotFoundError: If no record has ``tenant.id``.
        """
        ...

    def get(self, tenant_id: UUID) -> Tenant | None: ...

    def delete(self, tenant_id: UUID) -> None: ...

    def exists_by_identifier(self, identifier: str) -> bool: ...

    def find_by_identifier(self, identifier: str) -> Tenant | None: ...

    def find_by_realm(self, realm: str) -> Tenant | None: ...

    def find_by_schema(self, schema_name: str) -> Tenant | None: ...

    def list_all(
        self,
        active: bool | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Tenant]:
        """Return records ordered by creation time, optionally filtered."""
        ...


@runtime_checkable
class OrphanLedgerPort(Protocol):
    """Record of resources that may have outlived their tenant."""

    def record(self, orphan: OrphanRecord) -> None:
        """Insert or replace the entry for ``orphan.identifier``."""
        ...

    def get(self, identifier: str) -> OrphanRecord | None: ...

    def list_unresolved(self) -> list[OrphanRecord]: ...

    def resolve(self, identifier: str) -> None:
        """Remove the entry for ``identifier``. Absent entries are ignored."""
        ...
