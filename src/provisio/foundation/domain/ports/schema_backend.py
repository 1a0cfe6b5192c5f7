"""Port interface for the schema-management backend.

Example:
    >>> from provisio.foundation.domain.ports import SchemaBackendPort
    >>> def prepare(schemas: SchemaBackendPort) -> None:
    ...     schemas.create_and_migrate("acme_corp")
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SchemaBackendPort(Protocol):
    """Port for per-tenant schema creation, migration and removal.

    ``create_and_migrate`` is re-runnable but not atomic: on failure the
    schema may exist with migrations incomplete. Callers must drop it
    before retrying.
    """

    def create_and_migrate(self, schema_name: str) -> None:
        """Create the schema if absent and apply all pending migrations to it."""
        ...

    def drop_schema(self, schema_name: str) -> None:
        """Drop the schema with everything in it. Absent schemas are ignored."""
        ...

    def schema_exists(self, schema_name: str) -> bool:
        """Return True if the schema exists."""
        ...

    def current_revision(self, schema_name: str) -> str | None:
        """Return the last migration revision applied to the schema, if any."""
        ...

    def head_revision(self) -> str | None:
        """Return the newest migration revision available."""
        ...
