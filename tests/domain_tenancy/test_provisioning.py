"""Unit tests for ProvisioningOrchestrator: create, compensation, destroy, reconcile."""

from __future__ import annotations

import logging
from uuid import uuid4

import pytest

from provisio.domain.tenancy import (
    CreateTenantRequest,
    IdentityBootstrap,
    ProvisioningOrchestrator,
    Tenant,
    TenantAdmin,
)
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

SAGA_LOGGER = "provisio.domain.tenancy.provisioning"


def _request(identifier: str = "beta", **kwargs: object) -> CreateTenantRequest:
    return CreateTenantRequest(
        identifier=identifier,
        name=kwargs.pop("name", "Beta Inc"),  # type: ignore[arg-type]
        contact_email=kwargs.pop("contact_email", "a@b.com"),  # type: ignore[arg-type]
        **kwargs,  # type: ignore[arg-type]
    )


def _share_journal(*fakes: object) -> list[tuple[str, str]]:
    """Make the fakes append to one list so cross-backend order is visible."""
    journal: list[tuple[str, str]] = []
    for fake in fakes:
        fake.calls = journal  # type: ignore[attr-defined]
    return journal


@pytest.mark.unit
class TestCreateHappyPath:
    def test_end_to_end_beta(self, orchestrator, identity, schemas, registry) -> None:
        tenant = orchestrator.create(_request())

        assert tenant.id is not None
        assert tenant.active is True
        assert tenant.identity_realm == "beta"
        assert tenant.schema_name == "beta"
        assert tenant.status == ProvisioningStatus.PROVISIONED
        assert tenant.created_at is not None
        assert "beta" in identity.realms
        assert schemas.schemas["beta"] == schemas.head_revision()
        assert registry.get(tenant.id) is not None

    def test_derives_schema_name_from_hyphenated_identifier(
        self, orchestrator, identity, schemas
    ) -> None:
        tenant = orchestrator.create(_request("acme-corp", name="ACME"))
        assert tenant.identity_realm == "acme-corp"
        assert tenant.schema_name == "acme_corp"
        assert "acme-corp" in identity.realms
        assert "acme_corp" in schemas.schemas

    def test_bootstraps_default_client_and_role(self, orchestrator, identity) -> None:
        orchestrator.create(_request())
        realm = identity.realms["beta"]
        assert "product-management" in realm["clients"]
        assert realm["roles"] == {"tenant-admin"}
        assert realm["users"] == {}

    def test_creates_initial_admin_with_role(self, orchestrator, identity) -> None:
        admin = TenantAdmin(username="root", email="root@beta.io", password="pw")
        orchestrator.create(_request(admin=admin))
        user = identity.realms["beta"]["users"]["root"]
        assert user["roles"] == ["tenant-admin"]

    def test_step_order_is_identity_schema_registry(
        self, orchestrator, identity, schemas, registry
    ) -> None:
        journal = _share_journal(identity, schemas, registry)
        orchestrator.create(_request())
        operations = [op for op, _ in journal]
        assert operations.index("ensure_realm") < operations.index("create_and_migrate")
        assert operations.index("create_and_migrate") < operations.index("save")

    def test_normalizes_contact_email(self, orchestrator) -> None:
        tenant = orchestrator.create(_request(contact_email="  Ops@Beta.IO "))
        assert tenant.contact_email == "ops@beta.io"


@pytest.mark.unit
class TestCreatePreChecks:
    @pytest.mark.parametrize("identifier", ["", "a", "Beta", "-beta", "beta-", "be_ta"])
    def test_invalid_identifier_has_no_side_effects(
        self, orchestrator, identity, identifier: str
    ) -> None:
        with pytest.raises(ValidationError):
            orchestrator.create(_request(identifier))
        assert identity.calls == []

    def test_invalid_email_rejected(self, orchestrator, identity) -> None:
        with pytest.raises(ValidationError, match="contact_email"):
            orchestrator.create(_request(contact_email="not-an-email"))
        assert identity.calls == []

    def test_existing_identifier_rejected_without_side_effects(
        self, orchestrator, identity, schemas
    ) -> None:
        orchestrator.create(_request())
        identity.calls.clear()
        schemas.calls.clear()

        with pytest.raises(TenantAlreadyExistsError):
            orchestrator.create(_request(name="Other"))

        assert identity.calls == []
        assert schemas.calls == []
        assert "beta" in identity.realms

    @pytest.mark.parametrize(
        "identifier", ["public", "information-schema", "pg-temp", "pg-catalog"]
    )
    def test_identifier_mapping_to_system_schema_has_no_side_effects(
        self, orchestrator, identity, schemas, identifier: str
    ) -> None:
        with pytest.raises(ValidationError, match="reserved schema"):
            orchestrator.create(_request(identifier))
        assert identity.calls == []
        assert schemas.calls == []

    def test_admin_realm_cannot_be_claimed(self, orchestrator, identity, schemas) -> None:
        identity.ensure_realm("master", "Master")
        identity.calls.clear()

        with pytest.raises(ValidationError, match="reserved identity realm"):
            orchestrator.create(_request("master"))

        assert identity.calls == []
        assert schemas.calls == []
        assert identity.realms["master"]["clients"] == {}

    def test_configured_admin_realm_is_reserved(
        self, identity, schemas, registry, ledger
    ) -> None:
        orchestrator = ProvisioningOrchestrator(
            identity=identity,
            schemas=schemas,
            registry=registry,
            ledger=ledger,
            bootstrap=IdentityBootstrap(admin_realm="ops-admin"),
        )

        with pytest.raises(ValidationError):
            orchestrator.create(_request("ops-admin"))
        assert orchestrator.create(_request("master")).identity_realm == "master"


@pytest.mark.unit
class TestCreateCompensation:
    def test_realm_failure_surfaces_identity_error(
        self, orchestrator, identity, schemas, registry
    ) -> None:
        identity.fail("ensure_realm")

        with pytest.raises(IdentityProvisioningFailedError) as exc_info:
            orchestrator.create(_request())

        assert exc_info.value.step == "identity"
        assert exc_info.value.__cause__ is identity.failures["ensure_realm"]
        assert schemas.calls == []
        assert registry.tenants == {}
        assert identity.called("delete_realm") == []

    def test_client_failure_deletes_created_realm(self, orchestrator, identity, schemas) -> None:
        identity.fail("ensure_client")

        with pytest.raises(IdentityProvisioningFailedError):
            orchestrator.create(_request())

        assert identity.called("delete_realm") == ["beta"]
        assert identity.realms == {}
        assert schemas.calls == []

    def test_schema_failure_rolls_back_realm(
        self, orchestrator, identity, schemas, registry, ledger
    ) -> None:
        schemas.fail("create_and_migrate")

        with pytest.raises(SchemaProvisioningFailedError) as exc_info:
            orchestrator.create(_request())

        assert exc_info.value.step == "schema"
        assert identity.realms == {}
        assert schemas.called("drop_schema") == ["beta"]
        assert registry.tenants == {}
        assert ledger.entries == {}

    def test_compensation_runs_in_reverse_order(
        self, orchestrator, identity, schemas, registry
    ) -> None:
        journal = _share_journal(identity, schemas, registry)
        registry.fail("save", RuntimeError("disk full"))

        with pytest.raises(RegistryWriteFailedError):
            orchestrator.create(_request())

        operations = [op for op, _ in journal]
        assert operations.index("drop_schema") < operations.index("delete_realm")

    def test_preexisting_realm_is_not_deleted(self, orchestrator, identity, schemas) -> None:
        identity.ensure_realm("beta", "Someone else")
        identity.calls.clear()
        schemas.fail("create_and_migrate")

        with pytest.raises(SchemaProvisioningFailedError):
            orchestrator.create(_request())

        assert "beta" in identity.realms
        assert identity.called("delete_realm") == []

    def test_preexisting_schema_is_not_dropped(self, orchestrator, identity, schemas) -> None:
        schemas.schemas["beta"] = None
        schemas.fail("create_and_migrate")

        with pytest.raises(SchemaProvisioningFailedError):
            orchestrator.create(_request())

        assert "beta" in schemas.schemas
        assert schemas.called("drop_schema") == []
        assert identity.realms == {}

    def test_lost_registry_race_surfaces_duplicate_identifier(
        self, orchestrator, identity, schemas, registry
    ) -> None:
        registry.fail("save", DuplicateIdentifierError("beta"))

        with pytest.raises(DuplicateIdentifierError):
            orchestrator.create(_request())

        assert schemas.called("drop_schema") == ["beta"]
        assert identity.called("delete_realm") == ["beta"]

    def test_other_registry_failure_surfaces_registry_write_failed(
        self, orchestrator, registry
    ) -> None:
        cause = RuntimeError("disk full")
        registry.fail("save", cause)

        with pytest.raises(RegistryWriteFailedError) as exc_info:
            orchestrator.create(_request())

        assert exc_info.value.step == "registry"
        assert exc_info.value.__cause__ is cause

    def test_failed_compensation_keeps_original_error_and_records_orphan(
        self, orchestrator, identity, schemas, ledger, caplog
    ) -> None:
        schemas.fail("create_and_migrate")
        identity.fail("delete_realm")

        caplog.set_level(logging.INFO, logger=SAGA_LOGGER)
        with pytest.raises(SchemaProvisioningFailedError):
            orchestrator.create(_request())

        failures = [r for r in caplog.records if r.getMessage() == "tenant_compensation_failed"]
        assert len(failures) == 1
        assert failures[0].levelno == logging.ERROR
        assert failures[0].step == "delete_realm"
        assert failures[0].exc_info is not None

        orphan = ledger.entries["beta"]
        assert orphan.realm_pending is True
        assert orphan.schema_pending is False
        assert orphan.origin == "create"
        assert orphan.status == ProvisioningStatus.FAILED

    def test_ledger_write_failure_is_logged_not_raised(
        self, orchestrator, identity, schemas, ledger, caplog
    ) -> None:
        schemas.fail("create_and_migrate")
        identity.fail("delete_realm")
        ledger.fail("record")

        caplog.set_level(logging.INFO, logger=SAGA_LOGGER)
        with pytest.raises(SchemaProvisioningFailedError):
            orchestrator.create(_request())

        assert any(r.getMessage() == "orphan_ledger_write_failed" for r in caplog.records)

    def test_create_logs_saga_events(self, orchestrator, caplog) -> None:
        caplog.set_level(logging.DEBUG, logger=SAGA_LOGGER)
        orchestrator.create(_request())

        records = [r for r in caplog.records if r.name == SAGA_LOGGER]
        assert records[0].getMessage() == "tenant_create_started"
        assert records[-1].getMessage() == "tenant_create_completed"
        assert records[-1].schema_name == "beta"


@pytest.mark.unit
class TestOrphanBlockingAndReconcile:
    @pytest.fixture()
    def orphaned(self, orchestrator, identity, schemas) -> None:
        schemas.fail("create_and_migrate")
        identity.fail("delete_realm")
        with pytest.raises(SchemaProvisioningFailedError):
            orchestrator.create(_request())
        schemas.heal()

    @pytest.mark.usefixtures("orphaned")
    def test_orphans_block_reprovisioning(self, orchestrator, identity) -> None:
        identity.calls.clear()

        with pytest.raises(OrphanedResourcesError) as exc_info:
            orchestrator.create(_request())

        assert exc_info.value.context["realm_pending"] is True
        assert identity.calls == []

    @pytest.mark.usefixtures("orphaned")
    def test_reconcile_clears_entry_and_unblocks_create(
        self, orchestrator, identity, ledger
    ) -> None:
        identity.heal()

        orphan = orchestrator.reconcile("beta")

        assert orphan.resolved is True
        assert ledger.entries == {}
        assert identity.realms == {}
        tenant = orchestrator.create(_request())
        assert tenant.identifier == "beta"

    @pytest.mark.usefixtures("orphaned")
    def test_incomplete_reconcile_keeps_entry(self, orchestrator, ledger) -> None:
        orphan = orchestrator.reconcile("beta")

        assert orphan.resolved is False
        assert ledger.entries["beta"].realm_pending is True
        assert "delete_realm failed" in ledger.entries["beta"].reason

    def test_reconcile_unknown_identifier(self, orchestrator) -> None:
        with pytest.raises(NotFoundError):
            orchestrator.reconcile("nobody")

    @pytest.mark.usefixtures("orphaned")
    def test_reconcile_refuses_live_tenant(self, orchestrator, registry) -> None:
        # A live row for the same identifier must never lose its realm.
        registry.save(Tenant.new(identifier="beta", name="Beta", contact_email="a@b.com"))

        with pytest.raises(ConflictError):
            orchestrator.reconcile("beta")


@pytest.mark.unit
class TestDestroy:
    def test_destroy_removes_everything(self, orchestrator, identity, schemas, registry) -> None:
        tenant = orchestrator.create(_request())

        report = orchestrator.destroy(tenant.id)

        assert report.status == ProvisioningStatus.DESTROYED
        assert report.realm_deleted is True
        assert report.schema_dropped is True
        assert report.failed_steps == []
        assert identity.realms == {}
        assert schemas.schemas == {}
        assert registry.tenants == {}

    def test_destroy_order(self, orchestrator, identity, schemas, registry) -> None:
        tenant = orchestrator.create(_request())
        journal = _share_journal(identity, schemas, registry)

        orchestrator.destroy(tenant.id)

        assert [op for op, _ in journal] == ["update", "delete_realm", "drop_schema", "delete"]

    def test_realm_failure_is_not_fatal(
        self, orchestrator, identity, schemas, registry, ledger
    ) -> None:
        tenant = orchestrator.create(_request())
        identity.fail("delete_realm")

        report = orchestrator.destroy(tenant.id)

        assert report.status == ProvisioningStatus.DEGRADED
        assert report.failed_steps == ["delete_realm"]
        assert report.schema_dropped is True
        assert "beta" not in schemas.schemas
        assert registry.tenants == {}
        orphan = ledger.entries["beta"]
        assert orphan.origin == "destroy"
        assert orphan.status == ProvisioningStatus.DEGRADED
        assert orphan.realm_pending is True
        assert orphan.schema_pending is False

    def test_unknown_tenant(self, orchestrator) -> None:
        with pytest.raises(TenantNotFoundError):
            orchestrator.destroy(uuid4())

    def test_mark_failure_stops_before_teardown(self, orchestrator, identity, registry) -> None:
        tenant = orchestrator.create(_request())
        registry.fail("update", RuntimeError("read-only"))

        with pytest.raises(RegistryWriteFailedError):
            orchestrator.destroy(tenant.id)

        assert identity.called("delete_realm") == []
        assert registry.get(tenant.id) is not None

    def test_registry_delete_failure_is_fatal(self, orchestrator, registry) -> None:
        tenant = orchestrator.create(_request())
        registry.fail("delete", RuntimeError("lock timeout"))

        with pytest.raises(RegistryWriteFailedError):
            orchestrator.destroy(tenant.id)

        remaining = registry.get(tenant.id)
        assert remaining is not None
        assert remaining.status == ProvisioningStatus.DESTROYING

    def test_identifier_reusable_after_destroy(self, orchestrator) -> None:
        tenant = orchestrator.create(_request())
        orchestrator.destroy(tenant.id)

        again = orchestrator.create(_request())

        assert again.id != tenant.id

    def test_resumed_destroy_clears_earlier_orphan_entry(
        self, orchestrator, identity, registry, ledger
    ) -> None:
        tenant = orchestrator.create(_request())
        identity.fail("delete_realm")
        registry.fail("delete", RuntimeError("lock timeout"))
        with pytest.raises(RegistryWriteFailedError):
            orchestrator.destroy(tenant.id)
        assert ledger.entries["beta"].realm_pending is True

        identity.heal()
        registry.heal()
        report = orchestrator.destroy(tenant.id)

        assert report.status == ProvisioningStatus.DESTROYED
        assert ledger.entries == {}
        assert orchestrator.create(_request()).identifier == "beta"

    def test_clean_destroy_without_entry_leaves_ledger_untouched(
        self, orchestrator, ledger
    ) -> None:
        tenant = orchestrator.create(_request())

        orchestrator.destroy(tenant.id)

        assert ledger.calls == []

    def test_ledger_clear_failure_does_not_fail_destroy(
        self, orchestrator, identity, registry, ledger
    ) -> None:
        tenant = orchestrator.create(_request())
        identity.fail("delete_realm")
        registry.fail("delete", RuntimeError("lock timeout"))
        with pytest.raises(RegistryWriteFailedError):
            orchestrator.destroy(tenant.id)
        identity.heal()
        registry.heal()
        ledger.fail("resolve")

        report = orchestrator.destroy(tenant.id)

        assert report.status == ProvisioningStatus.DESTROYED
        assert registry.tenants == {}
        assert "beta" in ledger.entries
