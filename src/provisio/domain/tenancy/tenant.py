"""Tenant registry record with its provisioning state machine.

A Tenant row exists in the registry only while both its identity realm
and its schema exist (or are being destroyed). The realm and schema names
are derived from the identifier at construction and never change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from provisio.foundation.domain.exceptions import (
    InvalidStateTransitionError,
    ValidationError,
)
from provisio.foundation.domain.tenant_value_objects import (
    ContactEmail,
    ProvisioningStatus,
    TenantIdentifier,
    TenantName,
)

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


def _validated(field_name: str, factory: type, raw: str) -> str:
    try:
        return factory(raw).value  # type: ignore[no-any-return]
    except ValueError as exc:
        raise ValidationError(field_name, str(exc)) from exc


def parse_identifier(raw: str) -> TenantIdentifier:
    """Validate a raw identifier string.

    Raises:
        ValidationError: If the identifier is malformed.
    """
    try:
        return TenantIdentifier(raw)
    except ValueError as exc:
        raise ValidationError("identifier", str(exc)) from exc


@dataclass
class Tenant:
    """Durable unit of multi-tenancy.

    State machine (persisted part)::

        PROVISIONED --mark_destroying()--> DESTROYING

    Attributes:
        identifier: Immutable, globally unique slug.
        name: Human-readable display name.
        contact_email: Primary contact address.
        identity_realm: Realm name (equals identifier).
        schema_name: Schema name (identifier with hyphens as underscores).
        active: Lifecycle flag, True at creation.
        status: Persisted ProvisioningStatus value.
        id: Surrogate key assigned by the registry on save.
        created_at: Set by the registry on save.
        updated_at: Refreshed by the registry on every write.
    """

    identifier: str
    name: str
    contact_email: str
    identity_realm: str
    schema_name: str
    active: bool = True
    status: str = ProvisioningStatus.PROVISIONED.value
    id: UUID | None = None
    created_at: datetime | None = field(default=None)
    updated_at: datetime | None = field(default=None)

    @classmethod
    def new(cls, *, identifier: str, name: str, contact_email: str) -> Tenant:
        """Build an unsaved, active Tenant with derived realm and schema names.

        Raises:
            ValidationError: If any field fails validation.
        """
        tenant_identifier = parse_identifier(identifier)
        return cls(
            identifier=tenant_identifier.value,
            name=_validated("name", TenantName, name),
            contact_email=_validated("contact_email", ContactEmail, contact_email),
            identity_realm=tenant_identifier.identity_realm,
            schema_name=tenant_identifier.schema_name,
        )

    @property
    def is_destroying(self) -> bool:
        return self.status == ProvisioningStatus.DESTROYING.value

    def activate(self) -> None:
        """Set active=True. Idempotent.

        Raises:
            InvalidStateTransitionError: If the tenant is being destroyed.
        """
        self._require_provisioned("activate")
        self.active = True

    def deactivate(self) -> None:
        """Set active=False. Idempotent.

        Raises:
            InvalidStateTransitionError: If the tenant is being destroyed.
        """
        self._require_provisioned("deactivate")
        self.active = False

    def update_metadata(
        self,
        *,
        name: str | None = None,
        contact_email: str | None = None,
    ) -> None:
        """Replace descriptive metadata. ``None`` leaves a field unchanged.

        Raises:
            ValidationError: If a new value fails validation.
            InvalidStateTransitionError: If the tenant is being destroyed.
        """
        self._require_provisioned("update metadata for")
        if name is not None:
            self.name = _validated("name", TenantName, name)
        if contact_email is not None:
            self.contact_email = _validated("contact_email", ContactEmail, contact_email)

    def mark_destroying(self) -> None:
        """PROVISIONED -> DESTROYING. Idempotent for an already-destroying tenant."""
        if self.is_destroying:
            return
        if self.status != ProvisioningStatus.PROVISIONED.value:
            raise InvalidStateTransitionError(
                f"Cannot destroy tenant {self.identifier}: "
                f"current status is {self.status}, expected PROVISIONED",
                current_status=self.status,
            )
        self.status = ProvisioningStatus.DESTROYING.value

    def _require_provisioned(self, action: str) -> None:
        if self.status != ProvisioningStatus.PROVISIONED.value:
            raise InvalidStateTransitionError(
                f"Cannot {action} tenant {self.identifier}: "
                f"current status is {self.status}, expected PROVISIONED",
                current_status=self.status,
            )


@dataclass
class OrphanRecord:
    """Identity/schema resources that may outlive their tenant.

    Written when a create compensation or a destroy cleanup fails, so the
    partial state is queryable rather than only visible in logs.

    Attributes:
        identifier: Tenant identifier the resources belong to.
        identity_realm: Realm that may still exist.
        schema_name: Schema that may still exist.
        realm_pending: True while the realm still needs deleting.
        schema_pending: True while the schema still needs dropping.
        origin: "create" (failed compensation) or "destroy" (failed cleanup).
        status: FAILED for create, DEGRADED for destroy.
        reason: Last error message observed.
        recorded_at: Set by the ledger.
    """

    identifier: str
    identity_realm: str
    schema_name: str
    realm_pending: bool
    schema_pending: bool
    origin: str
    status: str
    reason: str = ""
    recorded_at: datetime | None = None

    @property
    def resolved(self) -> bool:
        return not (self.realm_pending or self.schema_pending)
