"""Value objects for the Tenant record.

Immutable, validated domain primitives. All validation occurs at
construction time. The identity realm name and the schema name are
derived from the identifier and are never supplied independently.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum


class ProvisioningStatus(StrEnum):
    """Provisioning lifecycle states.

    State machine::

        PENDING ----------> PROVISIONED ----------> DESTROYING ---> DESTROYED
           |                                            |
           v                                            v
         FAILED                                      DEGRADED

    PENDING, FAILED and DESTROYED only exist while a saga runs (no registry
    row exists in those states). PROVISIONED and DESTROYING are persisted
    on the tenant row. DEGRADED is persisted in the orphan ledger.

    Uses StrEnum for native JSON serialization.
    """

    PENDING = "PENDING"
    PROVISIONED = "PROVISIONED"
    FAILED = "FAILED"
    DESTROYING = "DESTROYING"
    DESTROYED = "DESTROYED"
    DEGRADED = "DEGRADED"


_IDENTIFIER_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

RESERVED_SCHEMA_NAMES = frozenset({"public", "information_schema"})


@dataclass(frozen=True, slots=True)
class TenantIdentifier:
    """Validated tenant identifier (immutable after creation).

    Format: lowercase alphanumeric + hyphens, 2-63 chars.
    Must start and end with alphanumeric character.

    Attributes:
        value: The validated identifier string.

    Raises:
        ValueError: If identifier does not meet format or length requirements.

    Example:
        >>> TenantIdentifier("acme-corp").schema_name
        'acme_corp'
    """

    value: str

    def __post_init__(self) -> None:
        if len(self.value) < 2:
            msg = f"Tenant identifier too short: '{self.value}' (min 2 chars)"
            raise ValueError(msg)
        if len(self.value) > 63:
            msg = f"Tenant identifier too long: '{self.value}' (max 63 chars)"
            raise ValueError(msg)
        if not _IDENTIFIER_PATTERN.match(self.value):
            msg = (
                f"Invalid tenant identifier '{self.value}': must be lowercase "
                "alphanumeric with hyphens, starting and ending with alphanumeric"
            )
            raise ValueError(msg)
        if is_reserved_schema_name(derive_schema_name(self.value)):
            msg = (
                f"Invalid tenant identifier '{self.value}': maps to reserved "
                f"schema '{derive_schema_name(self.value)}'"
            )
            raise ValueError(msg)

    @property
    def identity_realm(self) -> str:
        """Identity realm name; identical to the identifier."""
        return self.value

    @property
    def schema_name(self) -> str:
        """Database schema name; hyphens become underscores."""
        return derive_schema_name(self.value)


def derive_schema_name(identifier: str) -> str:
    """Derive the database schema name for a tenant identifier.

    Schema names in PostgreSQL cannot contain unquoted hyphens, so hyphens
    are replaced with underscores.

    Args:
        identifier: Tenant identifier (already validated).

    Returns:
        Schema name string.

    Example:
        >>> derive_schema_name("acme-corp")
        'acme_corp'
    """
    return identifier.replace("-", "_")


def is_reserved_schema_name(schema_name: str) -> bool:
    """True for PostgreSQL system schemas a tenant may never own."""
    return schema_name in RESERVED_SCHEMA_NAMES or schema_name.startswith("pg_")


@dataclass(frozen=True, slots=True)
class TenantName:
    """Validated tenant display name.

    Attributes:
        value: The validated name string (1-255 chars, unicode OK).

    Raises:
        ValueError: If name is empty, whitespace-only, or exceeds 255 chars.
    """

    value: str

    def __post_init__(self) -> None:
        stripped = self.value.strip()
        if not stripped:
            msg = "Tenant name cannot be empty"
            raise ValueError(msg)
        if len(stripped) > 255:
            msg = f"Tenant name too long: {len(stripped)} chars (max 255)"
            raise ValueError(msg)
        # Store the stripped value (bypass frozen with object.__setattr__)
        object.__setattr__(self, "value", stripped)


@dataclass(frozen=True, slots=True)
class ContactEmail:
    """Validated contact email address (stored lowercased and stripped)."""

    value: str

    def __post_init__(self) -> None:
        normalized = self.value.strip().lower()
        if len(normalized) > 320 or not _EMAIL_PATTERN.match(normalized):
            msg = f"Invalid contact email: '{self.value}'"
            raise ValueError(msg)
        object.__setattr__(self, "value", normalized)
