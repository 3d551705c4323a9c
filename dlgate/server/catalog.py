"""
Server-owned catalog mapping file ids to storage keys and entitlements.

Clients only ever name a ``file_id``; the storage key comes from this table and
is never derived from request input.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from dlgate.common.exceptions import NotFound
from dlgate.common.models import (
    CatalogEntry,
    CatalogManifest,
    ContentType,
    ManifestEntry,
)

from .checksum import extract_checksum

if TYPE_CHECKING:
    from dlgate.common.interfaces import IBlobStore
    from dlgate.common.models import LicenseProfile, ObjectInfo

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]+")


def load_manifest(path: Path | None) -> CatalogManifest:
    """Load a manifest file; no path means every object is listed as-is."""
    if path is None:
        return CatalogManifest()
    with path.open() as f:
        return CatalogManifest.model_validate(json.load(f))


def file_id_for_key(storage_key: str) -> str:
    """Server-side id for an object that has no manifest entry."""
    return _NON_ALNUM.sub("-", storage_key).strip("-").lower()


def classify(name: str) -> tuple[ContentType, str, str]:
    """Return ``(content type, os, icon)`` guessed from an object name."""
    lowered = name.lower()
    if lowered.endswith(".pdf"):
        return ContentType.PDF, "All", "📚"
    # "darwin" contains "win"
    if "mac" in lowered or "darwin" in lowered:
        os_name = "macOS"
    elif "win" in lowered:
        os_name = "Windows"
    elif "linux" in lowered:
        os_name = "Linux"
    else:
        os_name = "Unknown"
    if "gui" in lowered:
        icon = "🎨"
    else:
        icon = {"Windows": "🪟", "Linux": "🐧", "macOS": "🍎"}.get(os_name, "📦")
    return ContentType.BINARY, os_name, icon


class CatalogResolver:
    """Resolves file ids against the last catalog snapshot."""

    def __init__(self, blob_store: IBlobStore, manifest: CatalogManifest | None = None):
        self.blob_store = blob_store
        self.manifest = manifest or CatalogManifest()
        self._entries: dict[str, CatalogEntry] = {}
        self._lock = threading.Lock()

    def resolve(self, file_id: str) -> CatalogEntry:
        with self._lock:
            entry = self._entries.get(file_id)
        if entry is None:
            raise NotFound
        return entry

    def entries(self) -> list[CatalogEntry]:
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.file_id)

    @staticmethod
    def entitled(profile: LicenseProfile, entry: CatalogEntry) -> bool:
        """True iff the license holds every product the entry requires."""
        return entry.required_products <= profile.products

    def refresh(self) -> int:
        """Rebuild the snapshot from the blob listing. Returns the entry count."""
        objects = {obj.key: obj for obj in self.blob_store.list_objects()}
        entries: dict[str, CatalogEntry] = {}
        claimed: set[str] = set()

        for item in self.manifest.files:
            obj = objects.get(item.storage_key)
            if obj is None:
                logger.warning(
                    "Catalog file %s points at a missing object", item.file_id
                )
                continue
            claimed.add(item.storage_key)
            self._add_entry(entries, item, obj)

        if self.manifest.include_unlisted:
            for key, obj in objects.items():
                if key in claimed:
                    continue
                file_id = file_id_for_key(key)
                if not file_id or file_id in entries:
                    logger.warning("Skipping object with conflicting id %s", file_id)
                    continue
                item = ManifestEntry(
                    fileId=file_id,
                    storageKey=key,
                    requiredProducts=self.manifest.default_required_products,
                )
                self._add_entry(entries, item, obj)

        with self._lock:
            self._entries = entries
        logger.info("Catalog refreshed with %d files", len(entries))
        return len(entries)

    def _add_entry(
        self, entries: dict[str, CatalogEntry], item: ManifestEntry, obj: ObjectInfo
    ) -> None:
        try:
            entries[item.file_id] = self._build_entry(item, obj)
        except NotFound:
            # Deleted between listing and head
            logger.warning("Object for %s vanished during refresh", item.file_id)

    def _build_entry(self, item: ManifestEntry, obj: ObjectInfo) -> CatalogEntry:
        name = item.display_name or obj.key.rsplit("/", 1)[-1]
        content_type, os_name, icon = classify(name)
        checksum = extract_checksum(self.blob_store.head(obj.key))
        return CatalogEntry(
            file_id=item.file_id,
            storage_key=obj.key,
            display_name=name,
            content_type=content_type,
            required_products=frozenset(item.required_products),
            version=item.version,
            size=obj.size,
            os=os_name,
            icon=icon,
            checksum=checksum[0] if checksum else None,
            checksum_algorithm=checksum[1] if checksum else None,
        )
