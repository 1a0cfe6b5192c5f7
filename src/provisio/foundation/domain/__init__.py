"""Provisio Foundation Domain -- pure Python domain primitives.

This package provides the foundational building blocks for the tenant
control plane: exceptions, tenant value objects and backend port
interfaces.
"""

from provisio.foundation.domain.exceptions import (
    BackendUnavailableError,
    ConflictDetectedError,
    ConflictError,
    DomainError,
    DuplicateIdentifierError,
    IdentityProvisioningFailedError,
    InvalidStateTransitionError,
    NotFoundError,
    OrphanedResourcesError,
    ProvisioningError,
    RegistryWriteFailedError,
    SchemaProvisioningFailedError,
    TenantAlreadyExistsError,
    TenantNotFoundError,
    ValidationError,
)
from provisio.foundation.domain.ports import IdentityBackendPort, SchemaBackendPort
from provisio.foundation.domain.tenant_value_objects import (
    ContactEmail,
    ProvisioningStatus,
    TenantIdentifier,
    TenantName,
    derive_schema_name,
)

__all__ = [
    "BackendUnavailableError",
    "ConflictDetectedError",
    "ConflictError",
    "ContactEmail",
    "DomainError",
    "DuplicateIdentifierError",
    "IdentityBackendPort",
    "IdentityProvisioningFailedError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "OrphanedResourcesError",
    "ProvisioningError",
    "ProvisioningStatus",
    "RegistryWriteFailedError",
    "SchemaBackendPort",
    "SchemaProvisioningFailedError",
    "TenantAlreadyExistsError",
    "TenantIdentifier",
    "TenantName",
    "TenantNotFoundError",
    "ValidationError",
    "derive_schema_name",
]
