"""Shared fixtures: in-memory backends for the provisioning saga.

The fakes implement the identity, schema, registry and ledger ports with
plain dictionaries. Each records the operations it receives in ``calls``
and raises the exception registered in ``failures`` for an operation
name, so tests can fail any saga step on demand.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import pytest
import structlog

from provisio.domain.tenancy import (
    IdentityBootstrap,
    ProvisioningOrchestrator,
    TenantLifecycleService,
)
from provisio.foundation.domain.exceptions import (
    BackendUnavailableError,
    DuplicateIdentifierError,
    TenantNotFoundError,
)
from provisio.infra.observability.logging import STDLIB_HANDLER_NAME

if TYPE_CHECKING:
    from collections.abc import Iterator
    from uuid import UUID

    from provisio.domain.tenancy import OrphanRecord, Tenant

HEAD_REVISION = "0002_create_product_audit_log"


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Undo any logging configuration a test installed."""
    root = logging.getLogger()
    level = root.level
    yield
    structlog.reset_defaults()
    for handler in [h for h in root.handlers if h.get_name() == STDLIB_HANDLER_NAME]:
        root.removeHandler(handler)
    root.setLevel(level)


class _FailureInjection:
    """Records calls and raises the registered failure for an operation."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, Exception] = {}

    def fail(self, operation: str, exc: Exception | None = None) -> None:
        self.failures[operation] = exc or BackendUnavailableError(
            "fake", f"{operation} failed"
        )

    def heal(self, operation: str | None = None) -> None:
        if operation is None:
            self.failures.clear()
        else:
            self.failures.pop(operation, None)

    def _enter(self, operation: str, target: str) -> None:
        self.calls.append((operation, target))
        exc = self.failures.get(operation)
        if exc is not None:
            raise exc

    def called(self, operation: str) -> list[str]:
        return [target for op, target in self.calls if op == operation]


class FakeIdentityBackend(_FailureInjection):
    def __init__(self) -> None:
        super().__init__()
        self.realms: dict[str, dict[str, Any]] = {}

    def realm_exists(self, name: str) -> bool:
        self._enter("realm_exists", name)
        return name in self.realms

    def ensure_realm(self, name: str, display_name: str) -> bool:
        self._enter("ensure_realm", name)
        if name in self.realms:
            return False
        self.realms[name] = {
            "display_name": display_name,
            "clients": {},
            "roles": set(),
            "users": {},
        }
        return True

    def ensure_client(self, realm: str, client_id: str, secret: str) -> tuple[str, bool]:
        self._enter("ensure_client", realm)
        clients = self.realms[realm]["clients"]
        if client_id in clients:
            return clients[client_id], False
        clients[client_id] = f"{realm}-{client_id}-id"
        return clients[client_id], True

    def ensure_role(self, realm: str, role_name: str) -> bool:
        self._enter("ensure_role", realm)
        roles = self.realms[realm]["roles"]
        if role_name in roles:
            return False
        roles.add(role_name)
        return True

    def ensure_user(
        self,
        realm: str,
        username: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role_name: str,
    ) -> tuple[str, bool]:
        self._enter("ensure_user", realm)
        users = self.realms[realm]["users"]
        if username in users:
            return users[username]["id"], False
        users[username] = {"id": f"user-{username}", "email": email, "roles": [role_name]}
        return users[username]["id"], True

    def delete_realm(self, name: str) -> bool:
        self._enter("delete_realm", name)
        return self.realms.pop(name, None) is not None


class FakeSchemaBackend(_FailureInjection):
    def __init__(self) -> None:
        super().__init__()
        self.schemas: dict[str, str | None] = {}

    def create_and_migrate(self, schema_name: str) -> None:
        self._enter("create_and_migrate", schema_name)
        self.schemas[schema_name] = HEAD_REVISION

    def drop_schema(self, schema_name: str) -> None:
        self._enter("drop_schema", schema_name)
        self.schemas.pop(schema_name, None)

    def schema_exists(self, schema_name: str) -> bool:
        self._enter("schema_exists", schema_name)
        return schema_name in self.schemas

    def current_revision(self, schema_name: str) -> str | None:
        self._enter("current_revision", schema_name)
        return self.schemas.get(schema_name)

    def head_revision(self) -> str | None:
        return HEAD_REVISION


class InMemoryTenantRegistry(_FailureInjection):
    def __init__(self) -> None:
        super().__init__()
        self.tenants: dict[UUID, Tenant] = {}

    def save(self, tenant: Tenant) -> Tenant:
        self._enter("save", tenant.identifier)
        if any(t.identifier == tenant.identifier for t in self.tenants.values()):
            raise DuplicateIdentifierError(tenant.identifier)
        now = datetime.now(UTC)
        tenant.id = tenant.id or uuid4()
        tenant.created_at = now
        tenant.updated_at = now
        self.tenants[tenant.id] = replace(tenant)
        return tenant

    def update(self, tenant: Tenant) -> Tenant:
        self._enter("update", tenant.identifier)
        if tenant.id not in self.tenants:
            raise TenantNotFoundError(tenant.identifier)
        tenant.updated_at = datetime.now(UTC)
        self.tenants[tenant.id] = replace(tenant)
        return tenant

    def get(self, tenant_id: UUID) -> Tenant | None:
        tenant = self.tenants.get(tenant_id)
        return replace(tenant) if tenant is not None else None

    def delete(self, tenant_id: UUID) -> None:
        self._enter("delete", str(tenant_id))
        self.tenants.pop(tenant_id, None)

    def exists_by_identifier(self, identifier: str) -> bool:
        return self.find_by_identifier(identifier) is not None

    def find_by_identifier(self, identifier: str) -> Tenant | None:
        return self._find(lambda t: t.identifier == identifier)

    def find_by_realm(self, realm: str) -> Tenant | None:
        return self._find(lambda t: t.identity_realm == realm)

    def find_by_schema(self, schema_name: str) -> Tenant | None:
        return self._find(lambda t: t.schema_name == schema_name)

    def list_all(
        self,
        active: bool | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Tenant]:
        tenants = [replace(t) for t in self.tenants.values()]
        if active is not None:
            tenants = [t for t in tenants if t.active is active]
        tenants = tenants[offset:]
        return tenants[:limit] if limit is not None else tenants

    def _find(self, predicate: Any) -> Tenant | None:
        for tenant in self.tenants.values():
            if predicate(tenant):
                return replace(tenant)
        return None


class InMemoryOrphanLedger(_FailureInjection):
    def __init__(self) -> None:
        super().__init__()
        self.entries: dict[str, OrphanRecord] = {}

    def record(self, orphan: OrphanRecord) -> None:
        self._enter("record", orphan.identifier)
        orphan.recorded_at = datetime.now(UTC)
        self.entries[orphan.identifier] = replace(orphan)

    def get(self, identifier: str) -> OrphanRecord | None:
        entry = self.entries.get(identifier)
        return replace(entry) if entry is not None else None

    def list_unresolved(self) -> list[OrphanRecord]:
        self._enter("list_unresolved", "")
        return [replace(e) for e in self.entries.values() if not e.resolved]

    def resolve(self, identifier: str) -> None:
        self._enter("resolve", identifier)
        self.entries.pop(identifier, None)


@pytest.fixture()
def identity() -> FakeIdentityBackend:
    return FakeIdentityBackend()


@pytest.fixture()
def schemas() -> FakeSchemaBackend:
    return FakeSchemaBackend()


@pytest.fixture()
def registry() -> InMemoryTenantRegistry:
    return InMemoryTenantRegistry()


@pytest.fixture()
def ledger() -> InMemoryOrphanLedger:
    return InMemoryOrphanLedger()


@pytest.fixture()
def orchestrator(
    identity: FakeIdentityBackend,
    schemas: FakeSchemaBackend,
    registry: InMemoryTenantRegistry,
    ledger: InMemoryOrphanLedger,
) -> ProvisioningOrchestrator:
    return ProvisioningOrchestrator(
        identity=identity,
        schemas=schemas,
        registry=registry,
        ledger=ledger,
        bootstrap=IdentityBootstrap(client_secret="s3cret"),
    )


@pytest.fixture()
def lifecycle(
    orchestrator: ProvisioningOrchestrator,
    registry: InMemoryTenantRegistry,
    ledger: InMemoryOrphanLedger,
    identity: FakeIdentityBackend,
    schemas: FakeSchemaBackend,
) -> TenantLifecycleService:
    return TenantLifecycleService(
        orchestrator=orchestrator,
        registry=registry,
        ledger=ledger,
        identity=identity,
        schemas=schemas,
    )
