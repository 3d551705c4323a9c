"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from typing import Protocol

from dlgate.common.models import AuditRecord, LicenseProfile, ObjectInfo


class ILicenseStore(Protocol):
    """Protocol for license record lookups."""

    def get(self, key: str) -> LicenseProfile | None: ...


class IBlobStore(Protocol):
    """Protocol for the object store holding downloadable artifacts."""

    def list_objects(self) -> list[ObjectInfo]: ...

    def head(self, key: str) -> ObjectInfo: ...

    def sign_get(self, key: str, ttl: int, filename: str) -> str: ...


class IAuditLog(Protocol):
    """Protocol for the append-only download audit sink."""

    def append(self, record: AuditRecord) -> None: ...
