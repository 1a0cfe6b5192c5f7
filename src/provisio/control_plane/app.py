"""Control-plane application factory.

Usage::

    from provisio.control_plane.app import create_control_plane_app

    app = create_control_plane_app()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from provisio.control_plane.dependencies import control_plane_lifespan
from provisio.control_plane.router import router as tenants_router
from provisio.infra.fastapi import AppSettings, create_app, health_router
from provisio.infra.observability import observability_lifespan
from provisio.infra.persistence import persistence_lifespan

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fastapi import FastAPI

    from provisio.infra.fastapi.app_factory import LifespanHook

# Started in order: logging, database check, then table creation and wiring.
DEFAULT_LIFESPAN_HOOKS: tuple[LifespanHook, ...] = (
    observability_lifespan,
    persistence_lifespan,
    control_plane_lifespan,
)


def create_control_plane_app(
    settings: AppSettings | None = None,
    *,
    lifespan_hooks: Sequence[LifespanHook] = DEFAULT_LIFESPAN_HOOKS,
) -> FastAPI:
    """Create the tenant control-plane app.

    Args:
        settings: Application settings. If ``None``, loaded from environment.
        lifespan_hooks: Startup/shutdown hooks. Defaults to logging setup,
            the database health check and the lifecycle service wiring.
    """
    return create_app(
        settings=settings,
        routers=[tenants_router, health_router],
        lifespan_hooks=lifespan_hooks,
    )
