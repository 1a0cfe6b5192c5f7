"""Domain exception hierarchy for type-safe error handling.

This module provides the base exception hierarchy for all control-plane
errors. Exceptions include structured error codes and context for
consistent API error handling and logging.

Provisioning failures are modelled as one terminal error per saga step
(identity, schema, registry). Backend connectivity problems surface as
BackendUnavailableError, and create races detected by a backend surface as
ConflictDetectedError (which ensure-operations absorb).

Example:
    >>> from provisio.foundation.domain.exceptions import NotFoundError
    >>> raise NotFoundError("Tenant", "acme-corp")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from uuid import UUID

__all__ = [
    "BackendUnavailableError",
    "ConflictDetectedError",
    "ConflictError",
    "DomainError",
    "DuplicateIdentifierError",
    "IdentityProvisioningFailedError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "OrphanedResourcesError",
    "ProvisioningError",
    "RegistryWriteFailedError",
    "SchemaProvisioningFailedError",
    "TenantAlreadyExistsError",
    "TenantNotFoundError",
    "ValidationError",
]


class DomainError(Exception):
    """Base class for all domain errors.

    Provides error code and structured context for debugging. All domain
    exceptions inherit from this class to enable consistent API error
    handling and logging.

    Attributes:
        error_code: Machine-readable error code for client handling.
        message: Human-readable error description.
        context: Structured debugging information (tenant ids, step names).

    Example:
        >>> raise DomainError("Operation failed", context={"identifier": "acme"})
        DomainError: Operation failed (identifier=acme)
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize domain error with message and optional context.

        Args:
            message: Human-readable error description.
            context: Structured debugging information. Keys should be snake_case.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """String representation including context for logging."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class NotFoundError(DomainError):
    """Raised when a requested resource does not exist.

    Maps to HTTP 404 Not Found.

    Attributes:
        error_code: "RESOURCE_NOT_FOUND" (class constant).
        resource_type: Type of missing resource.
        resource_id: Identifier of missing resource.
    """

    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        resource_type: str,
        resource_id: UUID | str,
        **extra_context: Any,
    ) -> None:
        """Initialize not found error.

        Args:
            resource_type: Type of resource (e.g., "Tenant").
            resource_id: Identifier of missing resource. UUID is converted to string.
            **extra_context: Additional debugging context.
        """
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type} not found: {resource_id}"
        context = {
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            **extra_context,
        }
        super().__init__(message, context)


class TenantNotFoundError(NotFoundError):
    """Raised when no Tenant record matches the given id or lookup key."""

    error_code: str = "TENANT_NOT_FOUND"

    def __init__(self, tenant_ref: UUID | str, **extra_context: Any) -> None:
        super().__init__("Tenant", tenant_ref, **extra_context)


class ValidationError(DomainError):
    """Raised when input fails domain validation rules.

    Maps to HTTP 422 Unprocessable Entity.

    Attributes:
        error_code: "VALIDATION_ERROR" (class constant).
        field: Field path that failed validation.
        reason: Human-readable validation failure reason.

    Example:
        >>> raise ValidationError("identifier", "must be lowercase")
        ValidationError: Validation failed for 'identifier': must be lowercase
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        field: str,
        reason: str,
        **extra_context: Any,
    ) -> None:
        """Initialize validation error.

        Args:
            field: Field path that failed validation.
            reason: Human-readable validation failure reason.
            **extra_context: Additional debugging context.
        """
        self.field = field
        self.reason = reason
        message = f"Validation failed for '{field}': {reason}"
        context = {
            "field": field,
            "reason": reason,
            **extra_context,
        }
        super().__init__(message, context)


class ConflictError(DomainError):
    """Raised when operation conflicts with current system state.

    Maps to HTTP 409 Conflict. Use for duplicate resource creation or
    state transition conflicts.

    Attributes:
        error_code: "CONFLICT" (class constant).
        reason: Description of the conflict.
    """

    error_code: str = "CONFLICT"

    def __init__(
        self,
        reason: str,
        **context: Any,
    ) -> None:
        """Initialize conflict error.

        Args:
            reason: Description of conflict (e.g., "Resource already exists").
            **context: Additional debugging context.
        """
        self.reason = reason
        message = f"Conflict: {reason}"
        super().__init__(message, context)


class InvalidStateTransitionError(ConflictError):
    """Raised when a tenant status transition is not allowed.

    Maps to HTTP 409 Conflict.

    Example:
        >>> raise InvalidStateTransitionError(
        ...     "Cannot activate tenant: current status is DESTROYING"
        ... )
    """

    error_code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, **context)


class TenantAlreadyExistsError(ConflictError):
    """Raised by the create pre-check when the identifier is already registered.

    No side effects have happened when this is raised.
    """

    error_code: str = "TENANT_ALREADY_EXISTS"

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(
            f"Tenant with identifier '{identifier}' already exists",
            identifier=identifier,
        )


class DuplicateIdentifierError(ConflictError):
    """Raised by the registry when a write violates the identifier unique index.

    Distinct from generic storage errors: this is the signal that another
    request won a concurrent create for the same identifier.
    """

    error_code: str = "DUPLICATE_IDENTIFIER"

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(
            f"Identifier '{identifier}' is already registered",
            identifier=identifier,
        )


class ConflictDetectedError(ConflictError):
    """Raised by a backend when a create lost a race with a concurrent actor.

    Ensure-operations treat this as "already existed" and never let it
    escape to their callers.
    """

    error_code: str = "CONFLICT_DETECTED"

    def __init__(self, resource_type: str, resource_id: str, **context: Any) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"{resource_type} '{resource_id}' was created concurrently",
            resource_type=resource_type,
            resource_id=resource_id,
            **context,
        )


class OrphanedResourcesError(ConflictError):
    """Raised when an identifier still has unreconciled identity/schema resources.

    A previous create compensation or destroy cleanup failed for this
    identifier. The identifier cannot be provisioned again until the
    orphans are reconciled.
    """

    error_code: str = "ORPHANED_RESOURCES"

    def __init__(self, identifier: str, **context: Any) -> None:
        self.identifier = identifier
        super().__init__(
            f"Identifier '{identifier}' has unreconciled orphaned resources",
            identifier=identifier,
            **context,
        )


class BackendUnavailableError(DomainError):
    """Raised when an external backend cannot be reached or refuses service.

    Covers network failures, timeouts, authentication failures against
    the backend's admin API and server-side errors.

    Maps to HTTP 503 Service Unavailable.
    """

    error_code: str = "BACKEND_UNAVAILABLE"

    def __init__(self, backend: str, reason: str, **extra_context: Any) -> None:
        self.backend = backend
        self.reason = reason
        message = f"{backend} backend unavailable: {reason}"
        super().__init__(message, {"backend": backend, **extra_context})


class ProvisioningError(DomainError):
    """Base class for terminal provisioning saga failures.

    Every subclass identifies the saga step that failed. The original
    cause is chained via ``raise ... from``.

    Maps to HTTP 502 Bad Gateway.

    Attributes:
        step: Name of the failed step ("identity", "schema", "registry").
        identifier: Tenant identifier the saga was running for.
    """

    error_code: str = "PROVISIONING_FAILED"
    step: str = "unknown"

    def __init__(self, identifier: str, reason: str, **extra_context: Any) -> None:
        self.identifier = identifier
        self.reason = reason
        message = f"Provisioning step '{self.step}' failed for '{identifier}': {reason}"
        context = {"identifier": identifier, "step": self.step, **extra_context}
        super().__init__(message, context)


class IdentityProvisioningFailedError(ProvisioningError):
    """The identity realm (or its default client/role/admin) could not be ensured."""

    error_code: str = "IDENTITY_PROVISIONING_FAILED"
    step: str = "identity"


class SchemaProvisioningFailedError(ProvisioningError):
    """The tenant schema could not be created or migrated."""

    error_code: str = "SCHEMA_PROVISIONING_FAILED"
    step: str = "schema"


class RegistryWriteFailedError(ProvisioningError):
    """The registry could not persist (or remove) the tenant record."""

    error_code: str = "REGISTRY_WRITE_FAILED"
    step: str = "registry"
