"""Wiring of the lifecycle service for the HTTP boundary.

The service graph (registry, ledger, identity client, schema manager,
orchestrator) is built once at startup by :func:`control_plane_lifespan`
and stored on ``app.state``. Route handlers receive it through
:func:`get_lifecycle_service`, which tests replace via
``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends, Request

from provisio.domain.tenancy import (
    IdentityBootstrap,
    ProvisioningOrchestrator,
    TenantLifecycleService,
)
from provisio.domain.tenancy.infrastructure import (
    SqlOrphanLedger,
    SqlTenantRegistry,
    ensure_tables_exist,
)
from provisio.infra.identity import KeycloakAdminClient, get_identity_settings
from provisio.infra.persistence import get_database_manager
from provisio.infra.schema import PostgresSchemaManager, get_schema_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from sqlalchemy.orm import Session

    from provisio.foundation.domain.ports import IdentityBackendPort, SchemaBackendPort
    from provisio.infra.identity import IdentitySettings

logger = logging.getLogger(__name__)


def bootstrap_from_settings(settings: IdentitySettings) -> IdentityBootstrap:
    """Default client and role created in every tenant realm."""
    return IdentityBootstrap(
        client_id=settings.default_client_id,
        client_secret=settings.default_client_secret,
        admin_role=settings.default_admin_role,
        admin_realm=settings.admin_realm,
    )


def build_lifecycle_service(
    session_factory: Callable[[], Session],
    identity: IdentityBackendPort,
    schemas: SchemaBackendPort,
    bootstrap: IdentityBootstrap | None = None,
) -> TenantLifecycleService:
    """Assemble the lifecycle service over SQL registry and ledger storage."""
    registry = SqlTenantRegistry(session_factory)
    ledger = SqlOrphanLedger(session_factory)
    orchestrator = ProvisioningOrchestrator(
        identity=identity,
        schemas=schemas,
        registry=registry,
        ledger=ledger,
        bootstrap=bootstrap,
    )
    return TenantLifecycleService(
        orchestrator=orchestrator,
        registry=registry,
        ledger=ledger,
        identity=identity,
        schemas=schemas,
    )


@asynccontextmanager
async def control_plane_lifespan(app: Any) -> AsyncIterator[None]:
    """Build the service graph on startup and release the identity client on shutdown.

    Startup:
        1. Create the registry tables if missing.
        2. Open the identity admin client and the schema manager.
        3. Store the lifecycle service on ``app.state``.
    """
    manager = get_database_manager()
    engine = manager.get_engine()
    ensure_tables_exist(engine)

    identity_settings = get_identity_settings()
    identity = KeycloakAdminClient(identity_settings)
    schemas = PostgresSchemaManager(engine, get_schema_settings())
    app.state.lifecycle_service = build_lifecycle_service(
        manager.get_session_factory(),
        identity,
        schemas,
        bootstrap=bootstrap_from_settings(identity_settings),
    )
    logger.info(
        "control_plane_lifespan: lifecycle service ready (identity=%s)",
        identity_settings.base_url,
    )

    try:
        yield
    finally:
        identity.close()
        logger.info("control_plane_lifespan: identity client closed")


def get_lifecycle_service(request: Request) -> TenantLifecycleService:
    """FastAPI dependency returning the service built at startup."""
    service: TenantLifecycleService = request.app.state.lifecycle_service
    return service


LifecycleService = Annotated[TenantLifecycleService, Depends(get_lifecycle_service)]
