"""Provisio Domain Tenancy -- tenant records, provisioning saga and lifecycle."""

from provisio.domain.tenancy.lifecycle import (
    ProvisioningReport,
    TenantLifecycleService,
    TenantMetadataUpdate,
)
from provisio.domain.tenancy.ports import OrphanLedgerPort, TenantRegistryPort
from provisio.domain.tenancy.provisioning import (
    CreateTenantRequest,
    IdentityBootstrap,
    ProvisioningOrchestrator,
    TeardownReport,
    TenantAdmin,
)
from provisio.domain.tenancy.tenant import OrphanRecord, Tenant

__all__ = [
    "CreateTenantRequest",
    "IdentityBootstrap",
    "OrphanLedgerPort",
    "OrphanRecord",
    "ProvisioningOrchestrator",
    "ProvisioningReport",
    "TeardownReport",
    "Tenant",
    "TenantAdmin",
    "TenantLifecycleService",
    "TenantMetadataUpdate",
    "TenantRegistryPort",
]
