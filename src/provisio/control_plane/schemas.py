"""Request and response bodies for the tenant control-plane API.

JSON uses camelCase field names (``contactEmail``, ``identityRealm``);
Python code uses the snake_case attribute names.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003  pydantic resolves annotations at runtime
from uuid import UUID  # noqa: TC003

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from provisio.domain.tenancy import (
    CreateTenantRequest,
    OrphanRecord,
    ProvisioningReport,
    TeardownReport,
    Tenant,
    TenantAdmin,
    TenantMetadataUpdate,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -- Requests -----------------------------------------------------------------


class TenantAdminBody(_CamelModel):
    username: str
    email: str
    password: str = Field(repr=False)
    first_name: str = ""
    last_name: str = ""


class CreateTenantBody(_CamelModel):
    identifier: str
    name: str
    contact_email: str
    admin: TenantAdminBody | None = None

    def to_request(self) -> CreateTenantRequest:
        admin = None
        if self.admin is not None:
            admin = TenantAdmin(
                username=self.admin.username,
                email=self.admin.email,
                password=self.admin.password,
                first_name=self.admin.first_name,
                last_name=self.admin.last_name,
            )
        return CreateTenantRequest(
            identifier=self.identifier,
            name=self.name,
            contact_email=self.contact_email,
            admin=admin,
        )


class UpdateTenantBody(_CamelModel):
    name: str | None = None
    contact_email: str | None = None

    def to_update(self) -> TenantMetadataUpdate:
        return TenantMetadataUpdate(name=self.name, contact_email=self.contact_email)


# -- Responses ----------------------------------------------------------------


class TenantResponse(_CamelModel):
    id: UUID
    identifier: str
    name: str
    contact_email: str
    active: bool
    identity_realm: str
    schema_name: str
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_tenant(cls, tenant: Tenant) -> TenantResponse:
        return cls(
            id=tenant.id,
            identifier=tenant.identifier,
            name=tenant.name,
            contact_email=tenant.contact_email,
            active=tenant.active,
            identity_realm=tenant.identity_realm,
            schema_name=tenant.schema_name,
            status=tenant.status,
            created_at=tenant.created_at,
            updated_at=tenant.updated_at,
        )


class TeardownResponse(_CamelModel):
    tenant_id: UUID
    identifier: str
    status: str
    realm_deleted: bool
    schema_dropped: bool
    failed_steps: list[str]

    @classmethod
    def from_report(cls, report: TeardownReport) -> TeardownResponse:
        return cls(
            tenant_id=report.tenant_id,
            identifier=report.identifier,
            status=report.status.value,
            realm_deleted=report.realm_deleted,
            schema_dropped=report.schema_dropped,
            failed_steps=list(report.failed_steps),
        )


class ProvisioningReportResponse(_CamelModel):
    tenant_id: UUID
    identifier: str
    status: str
    healthy: bool
    realm_exists: bool
    schema_exists: bool
    schema_revision: str | None
    head_revision: str | None
    schema_up_to_date: bool

    @classmethod
    def from_report(cls, report: ProvisioningReport) -> ProvisioningReportResponse:
        return cls(
            tenant_id=report.tenant_id,
            identifier=report.identifier,
            status=report.status,
            healthy=report.healthy,
            realm_exists=report.realm_exists,
            schema_exists=report.schema_exists,
            schema_revision=report.schema_revision,
            head_revision=report.head_revision,
            schema_up_to_date=report.schema_up_to_date,
        )


class OrphanResponse(_CamelModel):
    identifier: str
    identity_realm: str
    schema_name: str
    realm_pending: bool
    schema_pending: bool
    resolved: bool
    origin: str
    status: str
    reason: str
    recorded_at: datetime | None = None

    @classmethod
    def from_record(cls, record: OrphanRecord) -> OrphanResponse:
        return cls(
            identifier=record.identifier,
            identity_realm=record.identity_realm,
            schema_name=record.schema_name,
            realm_pending=record.realm_pending,
            schema_pending=record.schema_pending,
            resolved=record.resolved,
            origin=record.origin,
            status=record.status,
            reason=record.reason,
            recorded_at=record.recorded_at,
        )
