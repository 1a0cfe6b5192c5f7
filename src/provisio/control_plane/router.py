"""Tenant control-plane REST API router.

Thin translation between JSON bodies and :class:`TenantLifecycleService`.
Domain errors propagate to the RFC 7807 exception handlers.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID  # noqa: TC003  FastAPI needs UUID at runtime for path params

from fastapi import APIRouter, Query

from provisio.control_plane.dependencies import LifecycleService  # noqa: TC001
from provisio.control_plane.schemas import (
    CreateTenantBody,
    OrphanResponse,
    ProvisioningReportResponse,
    TeardownResponse,
    TenantResponse,
    UpdateTenantBody,
)

router = APIRouter(prefix="/api/tenants", tags=["tenants"])


# -- Collection ---------------------------------------------------------------


@router.post("/", status_code=201)
def create_tenant(body: CreateTenantBody, service: LifecycleService) -> TenantResponse:
    """Provision identity realm and schema, then register the tenant."""
    tenant = service.create(body.to_request())
    return TenantResponse.from_tenant(tenant)


@router.get("/")
def list_tenants(
    service: LifecycleService,
    active: bool | None = None,
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[TenantResponse]:
    """List tenants, oldest first."""
    tenants = service.list_tenants(active=active, limit=limit, offset=offset)
    return [TenantResponse.from_tenant(t) for t in tenants]


# -- Orphans (declared before /{tenant_id}) -----------------------------------


@router.get("/orphans")
def list_orphans(service: LifecycleService) -> list[OrphanResponse]:
    """Identity realms and schemas whose cleanup has not succeeded yet."""
    return [OrphanResponse.from_record(o) for o in service.list_orphans()]


@router.post("/orphans/{identifier}/reconcile")
def reconcile_orphans(identifier: str, service: LifecycleService) -> OrphanResponse:
    """Retry cleanup for an identifier; ``resolved`` is true once it can be reused."""
    return OrphanResponse.from_record(service.reconcile(identifier))


@router.get("/by-identifier/{identifier}")
def get_tenant_by_identifier(identifier: str, service: LifecycleService) -> TenantResponse:
    return TenantResponse.from_tenant(service.get_by_identifier(identifier))


# -- Single tenant ------------------------------------------------------------


@router.get("/{tenant_id}")
def get_tenant(tenant_id: UUID, service: LifecycleService) -> TenantResponse:
    return TenantResponse.from_tenant(service.get(tenant_id))


@router.put("/{tenant_id}")
def update_tenant(
    tenant_id: UUID,
    body: UpdateTenantBody,
    service: LifecycleService,
) -> TenantResponse:
    """Change display name and/or contact email."""
    return TenantResponse.from_tenant(service.update_metadata(tenant_id, body.to_update()))


@router.put("/{tenant_id}/activate")
def activate_tenant(tenant_id: UUID, service: LifecycleService) -> TenantResponse:
    return TenantResponse.from_tenant(service.activate(tenant_id))


@router.put("/{tenant_id}/deactivate")
def deactivate_tenant(tenant_id: UUID, service: LifecycleService) -> TenantResponse:
    return TenantResponse.from_tenant(service.deactivate(tenant_id))


@router.delete("/{tenant_id}")
def delete_tenant(tenant_id: UUID, service: LifecycleService) -> TeardownResponse:
    """Tear down realm and schema, then remove the record.

    A ``DEGRADED`` status means the record is gone but some resource
    cleanup failed; see ``GET /api/tenants/orphans``.
    """
    return TeardownResponse.from_report(service.delete(tenant_id))


@router.get("/{tenant_id}/provisioning")
def get_provisioning_report(
    tenant_id: UUID,
    service: LifecycleService,
) -> ProvisioningReportResponse:
    """Live check of the tenant's realm, schema and migration revision."""
    return ProvisioningReportResponse.from_report(service.provisioning_report(tenant_id))
