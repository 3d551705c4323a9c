import asyncio
import time
from datetime import date
from unittest.mock import Mock

import pytest

from dlgate.common.exceptions import (
    Forbidden,
    NotEntitled,
    NotFound,
    RateLimitError,
    RequestRejected,
    Unauthenticated,
    UpstreamFailure,
)
from dlgate.common.models import (
    CatalogManifest,
    DownloadRequest,
    LicenseProfile,
    LicenseType,
)
from dlgate.server.catalog import CatalogResolver
from dlgate.server.domain.download_handler import (
    DownloadAuthorizer,
    DownloadContext,
    DownloadState,
)
from dlgate.server.freshness import FreshnessGuard
from dlgate.server.rate_limiter import EndpointClass, RateLimiter, RateLimitRule
from dlgate.server.session_manager import SessionManager
from tests.conftest import DOC_SHA256, NOW, FakeBlobStore, FakeClock


@pytest.fixture
def sessions(clock: FakeClock) -> SessionManager:
    return SessionManager(session_ttl=900, clock=clock)


@pytest.fixture
def token(sessions: SessionManager) -> str:
    profile = LicenseProfile(
        key="KEY-1",
        organization="Acme Corp",
        license_type=LicenseType.LITE,
        products=frozenset({"docs"}),
        expiry=date(2099, 1, 1),
    )
    return sessions.issue(profile).token


@pytest.fixture
def audit_log() -> Mock:
    return Mock()


@pytest.fixture
def authorizer(
    clock: FakeClock,
    sessions: SessionManager,
    blob_store: FakeBlobStore,
    manifest: CatalogManifest,
    audit_log: Mock,
) -> DownloadAuthorizer:
    catalog = CatalogResolver(blob_store, manifest)
    catalog.refresh()
    return DownloadAuthorizer(
        rate_limiter=RateLimiter(
            {EndpointClass.DOWNLOAD: RateLimitRule(max_count=3, window=900)},
            clock=clock,
        ),
        session_manager=sessions,
        freshness_guard=FreshnessGuard(skew_window=300, clock=clock),
        catalog=catalog,
        blob_store=blob_store,
        audit_log=audit_log,
        signed_url_ttl=60,
        blob_timeout=5,
        audit_timeout=5,
        clock=clock,
    )


def make_ctx(
    token: str | None,
    file_id: str = "documentation",
    request_id: str = "req-1",
    timestamp_ms: int = int(NOW * 1000),
) -> DownloadContext:
    return DownloadContext(
        request=DownloadRequest(
            fileId=file_id, clientId="client-1", timestamp=timestamp_ms
        ),
        token=token,
        request_id=request_id,
        identity="ip:127.0.0.1",
        source_ip="127.0.0.1",
    )


def test_authorize_success(
    authorizer: DownloadAuthorizer, token: str, audit_log: Mock
) -> None:
    ctx = make_ctx(token)
    permission = asyncio.run(authorizer.authorize(ctx))

    assert ctx.state is DownloadState.COMPLETED
    assert permission.issued_at == NOW
    assert permission.expires_at == NOW + 60
    assert permission.checksum == DOC_SHA256
    audit_log.append.assert_called_once()
    record = audit_log.append.call_args.args[0]
    assert record.file_id == "documentation"
    assert record.client_id == "client-1"
    assert record.source_ip == "127.0.0.1"
    assert record.license_key == "KEY-1"


def test_audit_failure_does_not_unwind(
    authorizer: DownloadAuthorizer, token: str, audit_log: Mock
) -> None:
    audit_log.append.side_effect = RuntimeError("disk full")
    ctx = make_ctx(token)

    permission = asyncio.run(authorizer.authorize(ctx))

    assert permission.url.startswith("https://")
    assert ctx.state is DownloadState.COMPLETED


def test_rate_limit_checked_first(authorizer: DownloadAuthorizer) -> None:
    for i in range(3):
        with pytest.raises(Unauthenticated):
            asyncio.run(authorizer.authorize(make_ctx(None, request_id=f"r{i}")))

    ctx = make_ctx(None, request_id="r4")
    with pytest.raises(RateLimitError) as exc_info:
        asyncio.run(authorizer.authorize(ctx))
    assert exc_info.value.status_code == 429
    assert ctx.state is DownloadState.REJECTED


def test_stale_and_replayed_share_one_error(
    authorizer: DownloadAuthorizer, token: str
) -> None:
    with pytest.raises(RequestRejected) as stale:
        asyncio.run(
            authorizer.authorize(make_ctx(token, timestamp_ms=int((NOW - 600) * 1000)))
        )
    asyncio.run(authorizer.authorize(make_ctx(token, request_id="same")))
    with pytest.raises(RequestRejected) as replayed:
        asyncio.run(authorizer.authorize(make_ctx(token, request_id="same")))

    assert stale.value.verdict == "stale"
    assert replayed.value.verdict == "replayed"
    assert stale.value.message == replayed.value.message


def test_unknown_and_unentitled_are_distinguishable(
    authorizer: DownloadAuthorizer, token: str, blob_store: FakeBlobStore
) -> None:
    with pytest.raises(NotFound):
        asyncio.run(authorizer.authorize(make_ctx(token, file_id="nonexistent")))

    with pytest.raises(NotEntitled) as exc_info:
        asyncio.run(
            authorizer.authorize(make_ctx(token, file_id="marengo-win", request_id="r2"))
        )
    assert isinstance(exc_info.value, Forbidden)
    assert blob_store.signed == []


def test_sign_failure_is_upstream_and_not_audited(
    authorizer: DownloadAuthorizer,
    token: str,
    blob_store: FakeBlobStore,
    audit_log: Mock,
) -> None:
    blob_store.fail_sign = True
    ctx = make_ctx(token)

    with pytest.raises(UpstreamFailure):
        asyncio.run(authorizer.authorize(ctx))

    audit_log.append.assert_not_called()
    assert ctx.state is DownloadState.REJECTED


def test_signing_timeout_is_upstream(
    authorizer: DownloadAuthorizer, token: str, blob_store: FakeBlobStore
) -> None:
    def slow_sign(key: str, ttl: int, filename: str) -> str:
        time.sleep(0.5)
        return "https://late.example.com"

    blob_store.sign_get = slow_sign  # type: ignore[method-assign]
    authorizer.blob_timeout = 0.05

    with pytest.raises(UpstreamFailure) as exc_info:
        asyncio.run(authorizer.authorize(make_ctx(token)))
    assert exc_info.value.message == "Download failed"
