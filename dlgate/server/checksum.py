"""
Integrity metadata for catalog files.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dlgate.common.exceptions import NotFound, UpstreamFailure

if TYPE_CHECKING:
    from dlgate.common.interfaces import IBlobStore
    from dlgate.common.models import LicenseProfile, ObjectInfo

    from .catalog import CatalogResolver

SHA256_METADATA_KEY = "sha256"


def extract_checksum(info: ObjectInfo) -> tuple[str, str] | None:
    """Pick the strongest checksum the object carries.

    A ``sha256`` user-metadata entry wins. Otherwise the ETag is used; a
    single-part ETag is the object's MD5, a multipart one is opaque.
    """
    sha256 = info.metadata.get(SHA256_METADATA_KEY)
    if sha256:
        return sha256.strip().lower(), "sha256"
    if info.etag:
        return info.etag, "etag" if "-" in info.etag else "md5"
    return None


class ChecksumService:
    """Looks up checksums for files a license may see."""

    def __init__(self, catalog: CatalogResolver, blob_store: IBlobStore):
        self.catalog = catalog
        self.blob_store = blob_store

    def checksum(self, file_id: str, profile: LicenseProfile) -> tuple[str, str]:
        """Return ``(value, algorithm)`` for ``file_id``.

        Files outside the license's entitlement report ``NotFound`` too.
        """
        entry = self.catalog.resolve(file_id)
        if not self.catalog.entitled(profile, entry):
            raise NotFound

        result = extract_checksum(self.blob_store.head(entry.storage_key))
        if result is None:
            msg = "Checksum unavailable"
            raise UpstreamFailure(msg)
        return result
