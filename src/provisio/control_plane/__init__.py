"""Provisio Control Plane -- HTTP API for tenant provisioning and lifecycle."""

from provisio.control_plane.app import create_control_plane_app
from provisio.control_plane.dependencies import (
    build_lifecycle_service,
    get_lifecycle_service,
)
from provisio.control_plane.router import router

__all__ = [
    "build_lifecycle_service",
    "create_control_plane_app",
    "get_lifecycle_service",
    "router",
]
