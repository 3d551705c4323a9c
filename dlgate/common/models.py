"""
Pydantic models for request/response validation and gateway state.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_TIMESTAMP_MS = 2**53


class LicenseType(str, Enum):
    """Types the CLI offers; stored records may carry others."""

    FULL = "Full"
    LITE = "Lite"
    TRIAL = "Trial"


class ContentType(str, Enum):
    PDF = "PDF"
    BINARY = "Binary"


class LicenseProfile(BaseModel):
    key: str
    organization: str
    license_type: str
    products: frozenset[str] = Field(default_factory=frozenset)
    expiry: date
    support_contact: str = ""

    @field_validator("license_type", mode="before")
    @classmethod
    def _plain_license_type(cls, value: object) -> object:
        return value.value if isinstance(value, Enum) else value

    @property
    def expires_at(self) -> float:
        """Expiry as a UTC instant: the license lapses at 00:00 UTC of ``expiry``."""
        return datetime.combine(self.expiry, time.min, tzinfo=timezone.utc).timestamp()


class SessionData(BaseModel):
    token: str
    license_key: str
    profile: LicenseProfile
    issued_at: float
    expires_at: float


class VerifyLicenseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    license_key: str | None = Field(default=None, alias="licenseKey")


class DownloadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_id: str = Field(alias="fileId", min_length=1)
    client_id: str = Field(alias="clientId", min_length=1)
    timestamp: int = Field(ge=0, le=MAX_TIMESTAMP_MS)  # epoch milliseconds
    user_agent: str | None = Field(default=None, alias="userAgent")


class ObjectInfo(BaseModel):
    """Blob store metadata for one object."""

    key: str
    size: int = 0
    etag: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)


class ManifestEntry(BaseModel):
    file_id: str = Field(alias="fileId", min_length=1)
    storage_key: str = Field(alias="storageKey", min_length=1)
    display_name: str | None = Field(default=None, alias="displayName")
    required_products: list[str] = Field(
        default_factory=list, alias="requiredProducts"
    )
    version: str = "1.0"


class CatalogManifest(BaseModel):
    """Server-owned description of the downloadable files."""

    files: list[ManifestEntry] = Field(default_factory=list)
    include_unlisted: bool = Field(default=True, alias="includeUnlisted")
    default_required_products: list[str] = Field(
        default_factory=list, alias="defaultRequiredProducts"
    )


class CatalogEntry(BaseModel):
    file_id: str
    storage_key: str
    display_name: str
    content_type: ContentType
    required_products: frozenset[str] = Field(default_factory=frozenset)
    version: str = "1.0"
    size: int = 0
    os: str = "Unknown"
    icon: str = "📦"
    checksum: str | None = None
    checksum_algorithm: str | None = None


class DownloadPermission(BaseModel):
    url: str
    issued_at: float
    expires_at: float
    checksum: str | None = None


class AuditRecord(BaseModel):
    file_id: str
    client_id: str
    source_ip: str
    timestamp: int
    user_agent: str | None = None
    issued_at: float
    request_id: str
    license_key: str
