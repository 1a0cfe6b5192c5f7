"""Application service for the tenant lifecycle.

Wraps the provisioning saga with the registry-only operations (lookup,
listing, activation, metadata updates) and the operator views over
provisioning state (per-tenant report, orphan ledger).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from provisio.foundation.domain.exceptions import TenantNotFoundError

if TYPE_CHECKING:
    from uuid import UUID

    from provisio.domain.tenancy.ports import OrphanLedgerPort, TenantRegistryPort
    from provisio.domain.tenancy.provisioning import (
        CreateTenantRequest,
        ProvisioningOrchestrator,
        TeardownReport,
    )
    from provisio.domain.tenancy.tenant import OrphanRecord, Tenant
    from provisio.foundation.domain.ports import IdentityBackendPort, SchemaBackendPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TenantMetadataUpdate:
    """Descriptive fields to change. ``None`` leaves a field as is."""

    name: str | None = None
    contact_email: str | None = None


@dataclass(frozen=True, slots=True)
class ProvisioningReport:
    """Live view of a tenant's external resources.

    Attributes:
        tenant_id: Registry id.
        identifier: Tenant identifier.
        status: Persisted provisioning status.
        realm_exists: Whether the identity realm currently exists.
        schema_exists: Whether the schema currently exists.
        schema_revision: Last migration applied to the schema.
        head_revision: Newest migration available.
    """

    tenant_id: UUID
    identifier: str
    status: str
    realm_exists: bool
    schema_exists: bool
    schema_revision: str | None
    head_revision: str | None

    @property
    def schema_up_to_date(self) -> bool:
        return self.schema_exists and self.schema_revision == self.head_revision

    @property
    def healthy(self) -> bool:
        return self.realm_exists and self.schema_up_to_date


class TenantLifecycleService:
    """Entry point for every tenant operation exposed by the control plane.

    Args:
        orchestrator: Provisioning saga (create, destroy, reconcile).
        registry: Tenant registry for lookups and mutations.
        ledger: Orphan ledger for the operator view.
        identity: Identity backend, used read-only by reports.
        schemas: Schema backend, used read-only by reports.
    """

    def __init__(
        self,
        orchestrator: ProvisioningOrchestrator,
        registry: TenantRegistryPort,
        ledger: OrphanLedgerPort,
        identity: IdentityBackendPort,
        schemas: SchemaBackendPort,
    ) -> None:
        self._orchestrator = orchestrator
        self._registry = registry
        self._ledger = ledger
        self._identity = identity
        self._schemas = schemas

    def create(self, request: CreateTenantRequest) -> Tenant:
        return self._orchestrator.create(request)

    def get(self, tenant_id: UUID) -> Tenant:
        """Raises TenantNotFoundError if absent."""
        tenant = self._registry.get(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant

    def get_by_identifier(self, identifier: str) -> Tenant:
        """Raises TenantNotFoundError if absent."""
        tenant = self._registry.find_by_identifier(identifier)
        if tenant is None:
            raise TenantNotFoundError(identifier)
        return tenant

    def find_by_realm(self, realm: str) -> Tenant | None:
        return self._registry.find_by_realm(realm)

    def find_by_schema(self, schema_name: str) -> Tenant | None:
        return self._registry.find_by_schema(schema_name)

    def list_tenants(
        self,
        active: bool | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Tenant]:
        return self._registry.list_all(active=active, limit=limit, offset=offset)

    def update_metadata(self, tenant_id: UUID, update: TenantMetadataUpdate) -> Tenant:
        """Change name and/or contact email. Registry-only.

        Raises:
            TenantNotFoundError: If absent.
            ValidationError: If a new value is invalid.
            InvalidStateTransitionError: If the tenant is being destroyed.
        """
        tenant = self.get(tenant_id)
        tenant.update_metadata(name=update.name, contact_email=update.contact_email)
        updated = self._registry.update(tenant)
        logger.info("tenant_metadata_updated", extra={"tenant_id": str(tenant_id)})
        return updated

    def activate(self, tenant_id: UUID) -> Tenant:
        """Set active=True. Idempotent; registry-only."""
        tenant = self.get(tenant_id)
        was_active = tenant.active
        tenant.activate()
        if was_active:
            return tenant
        updated = self._registry.update(tenant)
        logger.info("tenant_activated", extra={"tenant_id": str(tenant_id)})
        return updated

    def deactivate(self, tenant_id: UUID) -> Tenant:
        """Set active=False. Idempotent; registry-only."""
        tenant = self.get(tenant_id)
        was_active = tenant.active
        tenant.deactivate()
        if not was_active:
            return tenant
        updated = self._registry.update(tenant)
        logger.info("tenant_deactivated", extra={"tenant_id": str(tenant_id)})
        return updated

    def delete(self, tenant_id: UUID) -> TeardownReport:
        return self._orchestrator.destroy(tenant_id)

    def provisioning_report(self, tenant_id: UUID) -> ProvisioningReport:
        """Inspect the realm, schema and migration state of a tenant.

        Raises:
            TenantNotFoundError: If absent.
            BackendUnavailableError: If a backend cannot be reached.
        """
        tenant = self.get(tenant_id)
        schema_exists = self._schemas.schema_exists(tenant.schema_name)
        return ProvisioningReport(
            tenant_id=tenant_id,
            identifier=tenant.identifier,
            status=tenant.status,
            realm_exists=self._identity.realm_exists(tenant.identity_realm),
            schema_exists=schema_exists,
            schema_revision=(
                self._schemas.current_revision(tenant.schema_name) if schema_exists else None
            ),
            head_revision=self._schemas.head_revision(),
        )

    def list_orphans(self) -> list[OrphanRecord]:
        return self._ledger.list_unresolved()

    def reconcile(self, identifier: str) -> OrphanRecord:
        return self._orchestrator.reconcile(identifier)
