"""Provisio Domain Tenancy Infrastructure -- SQL registry and orphan ledger."""

from provisio.domain.tenancy.infrastructure.orphan_ledger import SqlOrphanLedger
from provisio.domain.tenancy.infrastructure.tables import (
    ensure_tables_exist,
    orphaned_resources_table,
    registry_metadata,
    tenants_table,
)
from provisio.domain.tenancy.infrastructure.tenant_registry import SqlTenantRegistry

__all__ = [
    "SqlOrphanLedger",
    "SqlTenantRegistry",
    "ensure_tables_exist",
    "orphaned_resources_table",
    "registry_metadata",
    "tenants_table",
]
