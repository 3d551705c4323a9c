"""Business logic services for the download gateway.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

from dlgate.common.exceptions import Malformed
from dlgate.server.blocking import call_blocking
from dlgate.server.checksum import ChecksumService
from dlgate.server.domain.download_handler import DownloadAuthorizer, DownloadContext
from dlgate.server.domain.verify_handler import VerifyHandler

if TYPE_CHECKING:
    from dlgate.common.config import Config
    from dlgate.common.interfaces import IAuditLog, IBlobStore
    from dlgate.common.models import CatalogEntry, VerifyLicenseRequest
    from dlgate.server.catalog import CatalogResolver
    from dlgate.server.freshness import FreshnessGuard
    from dlgate.server.license_validator import LicenseValidator
    from dlgate.server.rate_limiter import RateLimiter
    from dlgate.server.session_manager import SessionManager


def to_iso(instant: float) -> str:
    """Render an epoch instant the way browsers do: ``2024-01-01T00:00:00.000Z``."""
    dt = datetime.fromtimestamp(instant, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_size(size: int) -> str:
    return f"{size / (1024 * 1024):.1f} MB"


class GatewayService:
    """Handles business logic for the download gateway."""

    def __init__(  # noqa: PLR0913
        self,
        config: Config,
        rate_limiter: RateLimiter,
        license_validator: LicenseValidator,
        session_manager: SessionManager,
        freshness_guard: FreshnessGuard,
        catalog: CatalogResolver,
        blob_store: IBlobStore,
        audit_log: IAuditLog,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.session_manager = session_manager
        self.catalog = catalog
        self.clock = clock
        self.logger = logging.getLogger(__name__)

        self.verify_handler = VerifyHandler(
            rate_limiter=rate_limiter,
            license_validator=license_validator,
            session_manager=session_manager,
            store_timeout=config.DB_TIMEOUT,
        )
        self.download_authorizer = DownloadAuthorizer(
            rate_limiter=rate_limiter,
            session_manager=session_manager,
            freshness_guard=freshness_guard,
            catalog=catalog,
            blob_store=blob_store,
            audit_log=audit_log,
            signed_url_ttl=config.SIGNED_URL_TTL,
            blob_timeout=config.BLOB_TIMEOUT,
            audit_timeout=config.DB_TIMEOUT,
            clock=clock,
        )
        self.checksum_service = ChecksumService(catalog, blob_store)

    def require_request_id(self, request_id: str | None) -> str:
        """Reject requests without a usable ``X-Request-Id`` header."""
        request_id = (request_id or "").strip()
        if not request_id:
            msg = "Missing request id"
            raise Malformed(msg)
        if len(request_id) > self.config.MAX_REQUEST_ID_LEN:
            msg = "Invalid request id"
            raise Malformed(msg)
        return request_id

    def health(self) -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "timestamp": int(self.clock())}

    async def verify_license(
        self, req: VerifyLicenseRequest, identity: str
    ) -> dict[str, Any]:
        """Handle verify-license business logic."""
        return await self.verify_handler.handle_verify(req, identity)

    async def list_files(self, token: str | None, request_id: str | None) -> dict:
        """List the catalog files the session's license may download."""
        self.require_request_id(request_id)
        profile = self.session_manager.validate(token)
        files = [
            self._describe(entry)
            for entry in self.catalog.entries()
            if self.catalog.entitled(profile, entry)
        ]
        return {"success": True, "files": files}

    async def request_download(self, ctx: DownloadContext) -> dict[str, Any]:
        """Handle download-request business logic."""
        permission = await self.download_authorizer.authorize(ctx)
        return {
            "success": True,
            "downloadUrl": permission.url,
            "expiresAt": to_iso(permission.expires_at),
            "checksum": permission.checksum,
        }

    async def checksum(
        self, token: str | None, request_id: str | None, file_id: str
    ) -> dict[str, str]:
        """Handle checksum business logic."""
        request_id = self.require_request_id(request_id)
        profile = self.session_manager.validate(token)
        value, algorithm = await call_blocking(
            self.checksum_service.checksum,
            file_id,
            profile,
            timeout=self.config.BLOB_TIMEOUT,
            what="Checksum lookup",
            request_id=request_id,
        )
        return {"checksum": value, "algorithm": algorithm}

    async def refresh_catalog(self) -> int:
        """Rebuild the catalog snapshot from the blob store."""
        return await call_blocking(
            self.catalog.refresh,
            timeout=self.config.BLOB_TIMEOUT * 10,
            what="Catalog refresh",
        )

    @staticmethod
    def _describe(entry: CatalogEntry) -> dict[str, Any]:
        return {
            "id": entry.file_id,
            "name": entry.display_name,
            "type": entry.content_type.value,
            "size": format_size(entry.size),
            "os": entry.os,
            "icon": entry.icon,
            "requiresLicense": bool(entry.required_products),
            "version": entry.version,
            "checksum": entry.checksum,
        }
