"""Provisio Infra Identity -- Keycloak admin adapter."""

from provisio.infra.identity.admin_client import IdentityRequestError, KeycloakAdminClient
from provisio.infra.identity.settings import IdentitySettings, get_identity_settings

__all__ = [
    "IdentityRequestError",
    "IdentitySettings",
    "KeycloakAdminClient",
    "get_identity_settings",
]
