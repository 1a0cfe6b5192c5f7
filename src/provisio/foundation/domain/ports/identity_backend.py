"""Port interface for the identity-management backend.

Every mutating operation is an *ensure*: idempotent and safe to call
when the target may already exist. Implementations absorb create races
(ConflictDetectedError) and report ``created=False`` for them.

Example:
    >>> from provisio.foundation.domain.ports import IdentityBackendPort
    >>> def bootstrap(identity: IdentityBackendPort) -> bool:
    ...     return identity.ensure_realm("acme-corp", "ACME Corp")
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class IdentityBackendPort(Protocol):
    """Port for realm/client/role/user management in the identity backend.

    All identifiers are plain strings. Network, timeout and admin
    authentication failures raise BackendUnavailableError.
    """

    def realm_exists(self, name: str) -> bool:
        """Return True if a realm named ``name`` exists."""
        ...

    def ensure_realm(self, name: str, display_name: str) -> bool:
        """Create an enabled realm with self-registration disabled.

        Returns:
            True if the realm was created, False if it already existed
            (an existing realm is never mutated).
        """
        ...

    def ensure_client(self, realm: str, client_id: str, secret: str) -> tuple[str, bool]:
        """Ensure a confidential client exists in ``realm``.

        Returns:
            Tuple of (backend-assigned client UUID, created flag).
        """
        ...

    def ensure_role(self, realm: str, role_name: str) -> bool:
        """Ensure a realm-level role exists.

        Returns:
            True if the role was created, False if it already existed.
        """
        ...

    def ensure_user(
        self,
        realm: str,
        username: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role_name: str,
    ) -> tuple[str, bool]:
        """Ensure a user exists with a permanent password and realm role.

        Password and role assignment are only applied when the user is
        created. Re-provisioning an existing user is a no-op.

        Returns:
            Tuple of (user id, created flag).
        """
        ...

    def delete_realm(self, name: str) -> bool:
        """Delete a realm and everything in it (irreversible).

        Returns:
            True if a realm was deleted, False if it did not exist.
        """
        ...
