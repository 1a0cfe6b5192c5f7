"""Identity backend configuration settings.

Loaded from environment variables with IDENTITY_ prefix.

Environment Variables:
    IDENTITY_BASE_URL: Keycloak base URL (e.g. http://keycloak:8080)
    IDENTITY_ADMIN_REALM: Realm the admin account authenticates against
    IDENTITY_ADMIN_CLIENT_ID: Client used for the admin password grant
    IDENTITY_ADMIN_USERNAME: Admin account username
    IDENTITY_ADMIN_PASSWORD: Admin account password
    IDENTITY_TIMEOUT: HTTP timeout in seconds
    IDENTITY_DEFAULT_CLIENT_ID: Client created in every tenant realm
    IDENTITY_DEFAULT_CLIENT_SECRET: Secret of that client
    IDENTITY_DEFAULT_ADMIN_ROLE: Realm role created in every tenant realm
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class IdentitySettings(BaseSettings):
    """Identity backend configuration loaded from environment variables.

    Example:
        >>> settings = IdentitySettings()
        >>> settings.admin_realm
        'master'
        >>> settings.default_admin_role
        'tenant-admin'
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = Field(
        default="http://localhost:8080",
        description="Keycloak base URL",
    )
    admin_realm: str = Field(default="master", description="Admin authentication realm")
    admin_client_id: str = Field(default="admin-cli", description="Admin grant client_id")
    admin_username: str = Field(default="admin", description="Admin account username")
    admin_password: str = Field(
        default="admin",
        repr=False,  # Security: never log admin password
        description="Admin account password",
    )
    timeout: float = Field(default=10.0, gt=0, le=120, description="HTTP timeout in seconds")

    default_client_id: str = Field(
        default="product-management",
        description="Confidential client created in every tenant realm",
    )
    default_client_secret: str = Field(
        default="",
        repr=False,  # Security: never log client secret
        description="Secret for the default tenant client",
    )
    default_admin_role: str = Field(
        default="tenant-admin",
        description="Realm role created in every tenant realm",
    )

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            msg = "IDENTITY_BASE_URL must be a valid HTTP(S) URL"
            raise ValueError(msg)
        return v.rstrip("/")


@lru_cache(maxsize=1)
def get_identity_settings() -> IdentitySettings:
    """Get singleton IdentitySettings instance.

    Clear cache with ``get_identity_settings.cache_clear()`` for testing.
    """
    return IdentitySettings()
