"""SQL-backed ledger of resources whose cleanup failed.

One row per identifier. A row is written when create compensation or
destroy cleanup cannot remove the realm or schema, and removed once a
reconcile succeeds.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, or_, select

from provisio.domain.tenancy.infrastructure.tables import orphaned_resources_table
from provisio.domain.tenancy.infrastructure.tenant_registry import registry_session
from provisio.domain.tenancy.tenant import OrphanRecord

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy import Row
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_t = orphaned_resources_table


def _row_to_record(row: Row[Any]) -> OrphanRecord:
    m = row._mapping
    return OrphanRecord(
        identifier=m["identifier"],
        identity_realm=m["identity_realm"],
        schema_name=m["schema_name"],
        realm_pending=m["realm_pending"],
        schema_pending=m["schema_pending"],
        origin=m["origin"],
        status=m["status"],
        reason=m["reason"],
        recorded_at=m["recorded_at"],
    )


class SqlOrphanLedger:
    """Read/write access to the ``tenant_orphaned_resources`` table.

    Lives in the registry database: connection failures raise
    BackendUnavailableError with backend ``registry``.

    Args:
        session_factory: Callable returning a SQLAlchemy Session context manager.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def record(self, orphan: OrphanRecord) -> None:
        """Insert or replace the entry for ``orphan.identifier``."""
        now = datetime.now(UTC)
        with registry_session(self._session_factory) as session:
            session.execute(delete(_t).where(_t.c.identifier == orphan.identifier))
            session.execute(
                _t.insert().values(
                    identifier=orphan.identifier,
                    identity_realm=orphan.identity_realm,
                    schema_name=orphan.schema_name,
                    realm_pending=orphan.realm_pending,
                    schema_pending=orphan.schema_pending,
                    origin=orphan.origin,
                    status=orphan.status,
                    reason=orphan.reason,
                    recorded_at=now,
                )
            )
            session.commit()
        orphan.recorded_at = now
        logger.warning(
            "orphan_recorded",
            extra={
                "identifier": orphan.identifier,
                "realm_pending": orphan.realm_pending,
                "schema_pending": orphan.schema_pending,
                "origin": orphan.origin,
            },
        )

    def get(self, identifier: str) -> OrphanRecord | None:
        with registry_session(self._session_factory) as session:
            row = session.execute(select(_t).where(_t.c.identifier == identifier)).fetchone()
        return _row_to_record(row) if row is not None else None

    def list_unresolved(self) -> list[OrphanRecord]:
        with registry_session(self._session_factory) as session:
            rows = session.execute(
                select(_t)
                .where(or_(_t.c.realm_pending.is_(True), _t.c.schema_pending.is_(True)))
                .order_by(_t.c.recorded_at)
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def resolve(self, identifier: str) -> None:
        with registry_session(self._session_factory) as session:
            session.execute(delete(_t).where(_t.c.identifier == identifier))
            session.commit()
