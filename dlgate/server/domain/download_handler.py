"""
Download authorization: the gate between a session and a signed blob URL.

A request walks ``Received -> SessionChecked -> FreshnessChecked -> Entitled ->
Signed -> Audited -> Completed``. Any step may reject it; the first rejection
ends the request and nothing after it runs.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from dlgate.common.exceptions import (
    GatewayError,
    NotEntitled,
    RateLimitError,
    RequestRejected,
    UpstreamFailure,
)
from dlgate.common.models import AuditRecord, DownloadPermission
from dlgate.server.blocking import call_blocking
from dlgate.server.freshness import FreshnessVerdict
from dlgate.server.rate_limiter import EndpointClass

if TYPE_CHECKING:
    from dlgate.common.interfaces import IAuditLog, IBlobStore
    from dlgate.common.models import DownloadRequest
    from dlgate.server.catalog import CatalogResolver
    from dlgate.server.freshness import FreshnessGuard
    from dlgate.server.rate_limiter import RateLimiter
    from dlgate.server.session_manager import SessionManager


class DownloadState(str, Enum):
    RECEIVED = "received"
    SESSION_CHECKED = "session_checked"
    FRESHNESS_CHECKED = "freshness_checked"
    ENTITLED = "entitled"
    SIGNED = "signed"
    AUDITED = "audited"
    COMPLETED = "completed"
    REJECTED = "rejected"


@dataclass
class DownloadContext:
    """Everything the authorizer needs to know about one inbound request."""

    request: DownloadRequest
    token: str | None
    request_id: str
    identity: str
    source_ip: str
    state: DownloadState = DownloadState.RECEIVED


class DownloadAuthorizer:
    """Handles download request logic."""

    def __init__(  # noqa: PLR0913
        self,
        rate_limiter: RateLimiter,
        session_manager: SessionManager,
        freshness_guard: FreshnessGuard,
        catalog: CatalogResolver,
        blob_store: IBlobStore,
        audit_log: IAuditLog,
        signed_url_ttl: int,
        blob_timeout: float,
        audit_timeout: float,
        clock: Callable[[], float] = time.time,
    ):
        self.rate_limiter = rate_limiter
        self.session_manager = session_manager
        self.freshness_guard = freshness_guard
        self.catalog = catalog
        self.blob_store = blob_store
        self.audit_log = audit_log
        self.signed_url_ttl = signed_url_ttl
        self.blob_timeout = blob_timeout
        self.audit_timeout = audit_timeout
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    async def authorize(self, ctx: DownloadContext) -> DownloadPermission:
        """Run the request through every gate and mint a download URL."""
        try:
            return await self._authorize(ctx)
        except UpstreamFailure:
            self.logger.exception(
                "Upstream failure after %s [request_id=%s]",
                ctx.state.value,
                ctx.request_id,
            )
            ctx.state = DownloadState.REJECTED
            raise
        except GatewayError as e:
            self.logger.info(
                "Download rejected after %s: %s [request_id=%s]",
                ctx.state.value,
                type(e).__name__,
                ctx.request_id,
            )
            ctx.state = DownloadState.REJECTED
            raise
        except Exception:
            ctx.state = DownloadState.REJECTED
            raise

    async def _authorize(self, ctx: DownloadContext) -> DownloadPermission:
        req = ctx.request

        admission = self.rate_limiter.admit(ctx.identity, EndpointClass.DOWNLOAD)
        if not admission.allowed:
            msg = "Too many download requests. Please try again later."
            raise RateLimitError(msg, admission.retry_after)

        profile = self.session_manager.validate(ctx.token)
        self._advance(ctx, DownloadState.SESSION_CHECKED)

        verdict = self.freshness_guard.check(req.timestamp, ctx.request_id)
        if verdict is not FreshnessVerdict.FRESH:
            # Same message for stale and replayed requests
            raise RequestRejected(verdict=verdict.value)
        self._advance(ctx, DownloadState.FRESHNESS_CHECKED)

        entry = self.catalog.resolve(req.file_id)
        if not self.catalog.entitled(profile, entry):
            raise NotEntitled
        self._advance(ctx, DownloadState.ENTITLED)

        issued_at = self.clock()
        url = await call_blocking(
            self.blob_store.sign_get,
            entry.storage_key,
            self.signed_url_ttl,
            entry.display_name,
            timeout=self.blob_timeout,
            what="URL signing",
            request_id=ctx.request_id,
            failure_message="Download failed",
        )
        self._advance(ctx, DownloadState.SIGNED)

        await self._audit(
            AuditRecord(
                file_id=req.file_id,
                client_id=req.client_id,
                source_ip=ctx.source_ip,
                timestamp=req.timestamp,
                user_agent=req.user_agent,
                issued_at=issued_at,
                request_id=ctx.request_id,
                license_key=profile.key,
            )
        )
        self._advance(ctx, DownloadState.AUDITED)

        permission = DownloadPermission(
            url=url,
            issued_at=issued_at,
            expires_at=issued_at + self.signed_url_ttl,
            checksum=entry.checksum,
        )
        self._advance(ctx, DownloadState.COMPLETED)
        return permission

    async def _audit(self, record: AuditRecord) -> None:
        # The signed URL is already owed to the client; a lost audit row is logged only
        try:
            await call_blocking(
                self.audit_log.append,
                record,
                timeout=self.audit_timeout,
                what="Audit write",
                request_id=record.request_id,
            )
        except Exception:  # noqa: BLE001
            self.logger.exception(
                "Audit write failed for %s [request_id=%s]",
                record.file_id,
                record.request_id,
            )

    def _advance(self, ctx: DownloadContext, state: DownloadState) -> None:
        self.logger.debug("Download %s -> %s", ctx.request_id, state.value)
        ctx.state = state
