"""Tenant provisioning saga.

Coordinates the identity backend, the schema backend and the registry,
which share no transaction. Create runs a forward chain with compensating
actions:

1. Pre-check: identifier well-formed and not the admin realm, not
   registered, no unreconciled orphans.
2. Identity: ensure realm, default client, default admin role and the
   optional initial admin user.
3. Schema: create and migrate the tenant schema.
4. Registry: persist the Tenant row (the unique index arbitrates races).

A failure at step N undoes, in reverse order, only what this request
created in steps before N, then raises exactly one terminal error naming
the failed step. Compensation is best-effort: its failures are logged
and written to the orphan ledger, never raised.

Destroy reverses the chain: mark the row DESTROYING, delete the realm,
drop the schema, delete the row. Only the registry steps are fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from provisio.domain.tenancy.tenant import OrphanRecord, Tenant
from provisio.foundation.domain.exceptions import (
    ConflictError,
    DuplicateIdentifierError,
    IdentityProvisioningFailedError,
    NotFoundError,
    OrphanedResourcesError,
    RegistryWriteFailedError,
    SchemaProvisioningFailedError,
    TenantAlreadyExistsError,
    TenantNotFoundError,
    ValidationError,
)
from provisio.foundation.domain.tenant_value_objects import ProvisioningStatus

if TYPE_CHECKING:
    from uuid import UUID

    from provisio.domain.tenancy.ports import OrphanLedgerPort, TenantRegistryPort
    from provisio.foundation.domain.ports import IdentityBackendPort, SchemaBackendPort

logger = logging.getLogger(__name__)

ORIGIN_CREATE = "create"
ORIGIN_DESTROY = "destroy"


@dataclass(frozen=True, slots=True)
class TenantAdmin:
    """Initial administrator account created in a new tenant realm."""

    username: str
    email: str
    password: str = field(repr=False)
    first_name: str = ""
    last_name: str = ""


@dataclass(frozen=True, slots=True)
class CreateTenantRequest:
    """Input for :meth:`ProvisioningOrchestrator.create`.

    Attributes:
        identifier: Requested tenant slug.
        name: Display name (also used as the realm display name).
        contact_email: Primary contact address.
        admin: Optional initial realm administrator.
    """

    identifier: str
    name: str
    contact_email: str
    admin: TenantAdmin | None = None


@dataclass(frozen=True, slots=True)
class IdentityBootstrap:
    """Objects created in every tenant realm next to the realm itself.

    Attributes:
        client_id: Confidential client for tenant applications.
        client_secret: Secret of that client.
        admin_role: Realm role granted to the initial admin user.
        admin_realm: Realm the admin client authenticates against. No
            tenant may claim it.
    """

    client_id: str = "product-management"
    client_secret: str = field(default="", repr=False)
    admin_role: str = "tenant-admin"
    admin_realm: str = "master"


@dataclass
class TeardownReport:
    """Outcome of :meth:`ProvisioningOrchestrator.destroy`.

    ``realm_deleted`` and ``schema_dropped`` mean the resource no longer
    exists (whether this call removed it or it was already absent).
    """

    tenant_id: UUID
    identifier: str
    realm_deleted: bool = False
    schema_dropped: bool = False
    failed_steps: list[str] = field(default_factory=list)

    @property
    def status(self) -> ProvisioningStatus:
        if self.failed_steps:
            return ProvisioningStatus.DEGRADED
        return ProvisioningStatus.DESTROYED


@dataclass
class _SagaState:
    """Resources this create request itself brought into existence."""

    realm_created: bool = False
    schema_created: bool = False
    client_created: bool = False
    role_created: bool = False
    admin_created: bool = False


class ProvisioningOrchestrator:
    """Saga coordinator for tenant create, destroy and orphan reconciliation.

    Args:
        identity: Identity backend (realm/client/role/user ensure operations).
        schemas: Schema backend (create/migrate/drop per-tenant schemas).
        registry: Durable tenant registry.
        ledger: Record of resources whose cleanup failed.
        bootstrap: Default client and role created in every realm.
    """

    def __init__(
        self,
        identity: IdentityBackendPort,
        schemas: SchemaBackendPort,
        registry: TenantRegistryPort,
        ledger: OrphanLedgerPort,
        bootstrap: IdentityBootstrap | None = None,
    ) -> None:
        self._identity = identity
        self._schemas = schemas
        self._registry = registry
        self._ledger = ledger
        self._bootstrap = bootstrap or IdentityBootstrap()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: CreateTenantRequest) -> Tenant:
        """Provision identity realm and schema, then register the tenant.

        Returns:
            The persisted Tenant (status PROVISIONED, active).

        Raises:
            ValidationError: Malformed identifier, name or contact email, or an
                identifier that claims the admin realm.
            TenantAlreadyExistsError: Identifier already registered (no side effects).
            OrphanedResourcesError: Identifier has unreconciled orphans (no side effects).
            IdentityProvisioningFailedError: Identity phase failed.
            SchemaProvisioningFailedError: Schema phase failed.
            DuplicateIdentifierError: A concurrent create for the same identifier won.
            RegistryWriteFailedError: The registry write failed for another reason.
        """
        tenant = Tenant.new(
            identifier=request.identifier,
            name=request.name,
            contact_email=request.contact_email,
        )
        ctx = {
            "identifier": tenant.identifier,
            "identity_realm": tenant.identity_realm,
            "schema_name": tenant.schema_name,
        }

        if tenant.identity_realm == self._bootstrap.admin_realm:
            logger.info("tenant_create_rejected", extra={**ctx, "reason": "reserved_realm"})
            raise ValidationError(
                "identifier", "reserved identity realm", value=tenant.identifier
            )
        if self._registry.exists_by_identifier(tenant.identifier):
            logger.info("tenant_create_rejected", extra={**ctx, "reason": "already_exists"})
            raise TenantAlreadyExistsError(tenant.identifier)
        orphan = self._ledger.get(tenant.identifier)
        if orphan is not None and not orphan.resolved:
            logger.warning("tenant_create_rejected", extra={**ctx, "reason": "orphaned_resources"})
            raise OrphanedResourcesError(
                tenant.identifier,
                realm_pending=orphan.realm_pending,
                schema_pending=orphan.schema_pending,
            )

        logger.info(
            "tenant_create_started",
            extra={**ctx, "status": ProvisioningStatus.PENDING.value},
        )
        state = _SagaState()

        try:
            self._provision_identity(tenant, request.admin, state)
        except Exception as exc:
            logger.warning("tenant_identity_step_failed", extra={**ctx, "error": str(exc)})
            self._compensate(tenant, state, reason=str(exc))
            raise IdentityProvisioningFailedError(tenant.identifier, str(exc)) from exc

        try:
            self._provision_schema(tenant, state)
        except Exception as exc:
            logger.warning("tenant_schema_step_failed", extra={**ctx, "error": str(exc)})
            self._compensate(tenant, state, reason=str(exc))
            raise SchemaProvisioningFailedError(tenant.identifier, str(exc)) from exc

        try:
            saved = self._registry.save(tenant)
        except DuplicateIdentifierError as exc:
            logger.warning("tenant_registry_race_lost", extra=ctx)
            self._compensate(tenant, state, reason=str(exc))
            raise
        except Exception as exc:
            logger.warning("tenant_registry_step_failed", extra={**ctx, "error": str(exc)})
            self._compensate(tenant, state, reason=str(exc))
            raise RegistryWriteFailedError(tenant.identifier, str(exc)) from exc

        logger.info(
            "tenant_create_completed",
            extra={
                **ctx,
                "tenant_id": str(saved.id),
                "status": saved.status,
                "realm_created": state.realm_created,
                "schema_created": state.schema_created,
            },
        )
        return saved

    def _provision_identity(
        self,
        tenant: Tenant,
        admin: TenantAdmin | None,
        state: _SagaState,
    ) -> None:
        realm = tenant.identity_realm
        state.realm_created = self._identity.ensure_realm(realm, tenant.name)
        _, state.client_created = self._identity.ensure_client(
            realm, self._bootstrap.client_id, self._bootstrap.client_secret
        )
        state.role_created = self._identity.ensure_role(realm, self._bootstrap.admin_role)
        if admin is not None:
            _, state.admin_created = self._identity.ensure_user(
                realm,
                admin.username,
                admin.email,
                admin.password,
                admin.first_name,
                admin.last_name,
                self._bootstrap.admin_role,
            )
        logger.debug(
            "tenant_identity_ready",
            extra={
                "identifier": tenant.identifier,
                "realm_created": state.realm_created,
                "client_created": state.client_created,
                "role_created": state.role_created,
                "admin_created": state.admin_created,
            },
        )

    def _provision_schema(self, tenant: Tenant, state: _SagaState) -> None:
        schema_name = tenant.schema_name
        # A pre-existing schema is adopted and migrated but never dropped
        # by this request's compensation.
        state.schema_created = not self._schemas.schema_exists(schema_name)
        self._schemas.create_and_migrate(schema_name)

    def _compensate(self, tenant: Tenant, state: _SagaState, reason: str) -> None:
        """Undo, in reverse order, what this request created. Never raises."""
        schema_pending = False
        realm_pending = False

        if state.schema_created:
            try:
                self._schemas.drop_schema(tenant.schema_name)
                logger.info(
                    "tenant_compensation_schema_dropped",
                    extra={"identifier": tenant.identifier, "schema_name": tenant.schema_name},
                )
            except Exception:
                schema_pending = True
                logger.exception(
                    "tenant_compensation_failed",
                    extra={
                        "identifier": tenant.identifier,
                        "step": "drop_schema",
                        "schema_name": tenant.schema_name,
                    },
                )

        if state.realm_created:
            try:
                self._identity.delete_realm(tenant.identity_realm)
                logger.info(
                    "tenant_compensation_realm_deleted",
                    extra={
                        "identifier": tenant.identifier,
                        "identity_realm": tenant.identity_realm,
                    },
                )
            except Exception:
                realm_pending = True
                logger.exception(
                    "tenant_compensation_failed",
                    extra={
                        "identifier": tenant.identifier,
                        "step": "delete_realm",
                        "identity_realm": tenant.identity_realm,
                    },
                )

        if realm_pending or schema_pending:
            self._record_orphan(
                OrphanRecord(
                    identifier=tenant.identifier,
                    identity_realm=tenant.identity_realm,
                    schema_name=tenant.schema_name,
                    realm_pending=realm_pending,
                    schema_pending=schema_pending,
                    origin=ORIGIN_CREATE,
                    status=ProvisioningStatus.FAILED.value,
                    reason=reason,
                )
            )

    def _record_orphan(self, orphan: OrphanRecord) -> None:
        try:
            self._ledger.record(orphan)
        except Exception:
            logger.exception(
                "orphan_ledger_write_failed",
                extra={
                    "identifier": orphan.identifier,
                    "realm_pending": orphan.realm_pending,
                    "schema_pending": orphan.schema_pending,
                },
            )

    def _clear_orphan(self, identifier: str) -> None:
        """Drop a ledger entry left by an earlier attempt. Never raises."""
        try:
            if self._ledger.get(identifier) is None:
                return
            self._ledger.resolve(identifier)
            logger.info("orphan_cleared_by_destroy", extra={"identifier": identifier})
        except Exception:
            logger.exception("orphan_ledger_resolve_failed", extra={"identifier": identifier})

    # ------------------------------------------------------------------
    # Destroy
    # ------------------------------------------------------------------

    def destroy(self, tenant_id: UUID) -> TeardownReport:
        """Tear down a tenant's realm and schema, then delete its record.

        Realm deletion and schema drop failures are logged, recorded in
        the orphan ledger and reported, but do not stop the teardown. A
        teardown whose cleanup steps all succeed clears any ledger entry
        an earlier, interrupted attempt recorded.

        Raises:
            TenantNotFoundError: No tenant with ``tenant_id``.
            RegistryWriteFailedError: The row could not be marked DESTROYING
                or could not be deleted. The tenant still exists.
        """
        tenant = self._registry.get(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        ctx = {"tenant_id": str(tenant_id), "identifier": tenant.identifier}
        logger.info("tenant_destroy_started", extra=ctx)

        tenant.mark_destroying()
        try:
            self._registry.update(tenant)
        except TenantNotFoundError:
            raise
        except Exception as exc:
            logger.error("tenant_destroy_mark_failed", extra={**ctx, "error": str(exc)})
            raise RegistryWriteFailedError(tenant.identifier, str(exc)) from exc

        report = TeardownReport(tenant_id=tenant_id, identifier=tenant.identifier)
        errors: list[str] = []

        try:
            self._identity.delete_realm(tenant.identity_realm)
            report.realm_deleted = True
        except Exception as exc:
            report.failed_steps.append("delete_realm")
            errors.append(str(exc))
            logger.exception("tenant_destroy_step_failed", extra={**ctx, "step": "delete_realm"})

        try:
            self._schemas.drop_schema(tenant.schema_name)
            report.schema_dropped = True
        except Exception as exc:
            report.failed_steps.append("drop_schema")
            errors.append(str(exc))
            logger.exception("tenant_destroy_step_failed", extra={**ctx, "step": "drop_schema"})

        if report.failed_steps:
            self._record_orphan(
                OrphanRecord(
                    identifier=tenant.identifier,
                    identity_realm=tenant.identity_realm,
                    schema_name=tenant.schema_name,
                    realm_pending=not report.realm_deleted,
                    schema_pending=not report.schema_dropped,
                    origin=ORIGIN_DESTROY,
                    status=ProvisioningStatus.DEGRADED.value,
                    reason="; ".join(errors),
                )
            )
        else:
            self._clear_orphan(tenant.identifier)

        try:
            self._registry.delete(tenant_id)
        except Exception as exc:
            logger.error(
                "tenant_destroy_registry_delete_failed", extra={**ctx, "error": str(exc)}
            )
            raise RegistryWriteFailedError(tenant.identifier, str(exc)) from exc

        logger.info(
            "tenant_destroy_completed",
            extra={
                **ctx,
                "status": report.status.value,
                "failed_steps": report.failed_steps,
            },
        )
        return report

    # ------------------------------------------------------------------
    # Reconcile
    # ------------------------------------------------------------------

    def reconcile(self, identifier: str) -> OrphanRecord:
        """Retry cleanup of orphaned resources recorded for ``identifier``.

        The ledger entry is removed once both the realm and the schema are
        gone, which unblocks re-provisioning of the identifier. Otherwise
        the entry is updated with what is still pending.

        Raises:
            NotFoundError: No ledger entry for ``identifier``.
            ConflictError: The identifier belongs to a registered tenant.
        """
        orphan = self._ledger.get(identifier)
        if orphan is None:
            raise NotFoundError("OrphanedResources", identifier)
        if self._registry.exists_by_identifier(identifier):
            raise ConflictError(
                f"Identifier '{identifier}' is registered to a live tenant",
                identifier=identifier,
            )

        errors: list[str] = []

        if orphan.realm_pending:
            try:
                self._identity.delete_realm(orphan.identity_realm)
                orphan.realm_pending = False
            except Exception as exc:
                errors.append(str(exc))
                logger.exception(
                    "orphan_reconcile_step_failed",
                    extra={"identifier": identifier, "step": "delete_realm"},
                )

        if orphan.schema_pending:
            try:
                self._schemas.drop_schema(orphan.schema_name)
                orphan.schema_pending = False
            except Exception as exc:
                errors.append(str(exc))
                logger.exception(
                    "orphan_reconcile_step_failed",
                    extra={"identifier": identifier, "step": "drop_schema"},
                )

        if orphan.resolved:
            self._ledger.resolve(identifier)
            logger.info("orphan_reconciled", extra={"identifier": identifier})
        else:
            orphan.reason = "; ".join(errors)
            self._ledger.record(orphan)
            logger.warning(
                "orphan_reconcile_incomplete",
                extra={
                    "identifier": identifier,
                    "realm_pending": orphan.realm_pending,
                    "schema_pending": orphan.schema_pending,
                },
            )
        return orphan
