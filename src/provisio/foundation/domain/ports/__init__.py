"""Domain port interfaces for hexagonal architecture.

Ports define abstract interfaces that the domain layer uses to interact
with external backends. Implementations (adapters) live in infrastructure.
"""

from provisio.foundation.domain.ports.identity_backend import IdentityBackendPort
from provisio.foundation.domain.ports.schema_backend import SchemaBackendPort

__all__ = ["IdentityBackendPort", "SchemaBackendPort"]
