"""
Append-only audit trail of minted download permissions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from dlgate.common.models import AuditRecord

from .database import DownloadAuditRow

if TYPE_CHECKING:
    from sqlalchemy.orm import sessionmaker


class AuditLog:
    """Writes one row per issued download URL. Rows are never updated."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def append(self, record: AuditRecord) -> None:
        with self.session_factory() as session, session.begin():
            session.add(DownloadAuditRow(**record.model_dump()))

    def records(self, file_id: str | None = None) -> list[AuditRecord]:
        """Read back audit rows, oldest first."""
        query = select(DownloadAuditRow).order_by(DownloadAuditRow.id)
        if file_id is not None:
            query = query.where(DownloadAuditRow.file_id == file_id)
        with self.session_factory() as session:
            return [
                AuditRecord(
                    file_id=row.file_id,
                    client_id=row.client_id,
                    source_ip=row.source_ip,
                    timestamp=row.timestamp,
                    user_agent=row.user_agent,
                    issued_at=row.issued_at,
                    request_id=row.request_id,
                    license_key=row.license_key,
                )
                for row in session.scalars(query)
            ]
