"""HTTP boundary settings.

Environment Variables:
    APP_TITLE: OpenAPI title
    APP_VERSION: OpenAPI version (defaults to the installed distribution version)
    APP_DOCS_URL: Swagger UI path; empty disables it
    CORS_ALLOW_ORIGINS: Comma-separated allowed origins
    CORS_ALLOW_METHODS: Comma-separated allowed methods
    CORS_ALLOW_HEADERS: Comma-separated allowed request headers
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

CommaSeparated = Annotated[list[str], NoDecode]


def _installed_version() -> str:
    try:
        return version("provisio")
    except PackageNotFoundError:
        return "0.0.0"


class CORSSettings(BaseSettings):
    """Cross-origin policy for browser-based operator consoles.

    The control plane issues no cookies, so credentials are never allowed.

    Example:
        >>> CORSSettings(allow_origins="https://ops.example.com").allow_origins
        ['https://ops.example.com']
    """

    model_config = SettingsConfigDict(env_prefix="CORS_", extra="ignore")

    allow_origins: CommaSeparated = Field(default=["*"])
    allow_methods: CommaSeparated = Field(default=["GET", "POST", "PUT", "DELETE"])
    allow_headers: CommaSeparated = Field(default=["*"])

    @field_validator("allow_origins", "allow_methods", "allow_headers", mode="before")
    @classmethod
    def _split(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v


class AppSettings(BaseSettings):
    """Control-plane application settings (``APP_`` prefix)."""

    model_config = SettingsConfigDict(env_prefix="APP_", extra="ignore")

    title: str = Field(default="Provisio Control Plane")
    version: str = Field(default_factory=_installed_version)
    docs_url: str | None = Field(default="/docs")
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("docs_url", mode="before")
    @classmethod
    def _empty_disables_docs(cls, v: Any) -> Any:
        return v or None
