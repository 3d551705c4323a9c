"""
License record storage backed by the ``licenses`` table.

The gateway only reads from it; ``add``/``list_all``/``remove`` serve the
administration commands.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, select

from dlgate.common.models import LicenseProfile

from .database import LicenseRow

if TYPE_CHECKING:
    from sqlalchemy.orm import sessionmaker


def parse_products(raw: str | None) -> frozenset[str]:
    """Split a comma-separated product list, dropping blanks."""
    if not raw:
        return frozenset()
    return frozenset(p.strip() for p in raw.split(",") if p.strip())


def _to_profile(row: LicenseRow) -> LicenseProfile:
    return LicenseProfile(
        key=row.key,
        organization=row.organization,
        license_type=row.license_type,
        products=parse_products(row.products),
        expiry=row.expiry,
        support_contact=row.support_email or "",
    )


class LicenseStore:
    """Handles loading and saving license records."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self, key: str) -> LicenseProfile | None:
        """Exact, case-sensitive lookup by key."""
        with self.session_factory() as session:
            row = session.scalars(
                select(LicenseRow).where(LicenseRow.key == key)
            ).one_or_none()
            return _to_profile(row) if row is not None else None

    def add(self, profile: LicenseProfile) -> None:
        """Insert a new license record."""
        with self.session_factory() as session, session.begin():
            session.add(
                LicenseRow(
                    key=profile.key.strip(),
                    organization=profile.organization,
                    license_type=profile.license_type,
                    expiry=profile.expiry,
                    products=",".join(sorted(profile.products)),
                    support_email=profile.support_contact,
                )
            )

    def list_all(self) -> list[LicenseProfile]:
        """Return every license record ordered by key."""
        with self.session_factory() as session:
            rows = session.scalars(select(LicenseRow).order_by(LicenseRow.key)).all()
            return [_to_profile(row) for row in rows]

    def remove(self, key: str) -> bool:
        """Delete a license record. Returns False when no record matched."""
        with self.session_factory() as session, session.begin():
            result = session.execute(delete(LicenseRow).where(LicenseRow.key == key))
            return result.rowcount > 0
