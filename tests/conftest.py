from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from dlgate.common.config import Config
from dlgate.common.exceptions import NotFound, UpstreamFailure
from dlgate.common.models import (
    CatalogManifest,
    LicenseProfile,
    LicenseType,
    ObjectInfo,
)
from dlgate.server.core import GatewayServer
from dlgate.server.database import build_session_factory
from dlgate.server.license_store import LicenseStore

NOW = 1767225600.0  # 2026-01-01T00:00:00Z
VALID_KEY = "MNGO-AAAA-BBBB-CCCC"
LITE_KEY = "MNGO-LITE-0000-0001"
EXPIRED_KEY = "MNGO-OLD0-0000-0002"
DOC_SHA256 = "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08"


class FakeClock:
    """Settable clock returning epoch seconds."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBlobStore:
    """In-memory stand-in for the MinIO bucket."""

    def __init__(self, objects: list[ObjectInfo]) -> None:
        self.objects = {obj.key: obj for obj in objects}
        self.signed: list[tuple[str, int, str]] = []
        self.head_calls = 0
        self.fail_sign = False

    def list_objects(self) -> list[ObjectInfo]:
        return list(self.objects.values())

    def head(self, key: str) -> ObjectInfo:
        self.head_calls += 1
        if key not in self.objects:
            raise NotFound
        return self.objects[key]

    def sign_get(self, key: str, ttl: int, filename: str) -> str:
        if self.fail_sign:
            raise UpstreamFailure("Download failed")
        self.signed.append((key, ttl, filename))
        return f"https://blob.example.com/{key}?X-Amz-Expires={ttl}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore(
        [
            ObjectInfo(
                key="docs/Marengo-Manual.pdf",
                size=3 * 1024 * 1024,
                etag="0cc175b9c0f1b6a831c399e269772661",
                metadata={"sha256": DOC_SHA256},
            ),
            ObjectInfo(
                key="bin/marengo-win-x64.zip",
                size=50 * 1024 * 1024,
                etag="92eb5ffee6ae2fec3ad71c777531578f",
            ),
            ObjectInfo(
                key="bin/marengo-pro-linux.tar.gz",
                size=80 * 1024 * 1024,
                etag="4a8a08f09d37b73795649038408b5f33-3",
            ),
        ]
    )


@pytest.fixture
def manifest() -> CatalogManifest:
    return CatalogManifest.model_validate(
        {
            "includeUnlisted": False,
            "files": [
                {"fileId": "documentation", "storageKey": "docs/Marengo-Manual.pdf"},
                {
                    "fileId": "marengo-win",
                    "storageKey": "bin/marengo-win-x64.zip",
                    "requiredProducts": ["marengo"],
                    "version": "2.4.1",
                },
                {
                    "fileId": "marengo-pro",
                    "storageKey": "bin/marengo-pro-linux.tar.gz",
                    "requiredProducts": ["marengo", "pro"],
                },
            ],
        }
    )


@pytest.fixture
def session_factory(tmp_path: Path):
    return build_session_factory(f"sqlite:///{tmp_path / 'dlgate.db'}")


@pytest.fixture
def license_store(session_factory) -> LicenseStore:
    store = LicenseStore(session_factory)
    store.add(
        LicenseProfile(
            key=VALID_KEY,
            organization="Acme Corp",
            license_type=LicenseType.FULL,
            products=frozenset({"marengo", "docs"}),
            expiry=date(2099, 1, 1),
            support_contact="support@acme.test",
        )
    )
    store.add(
        LicenseProfile(
            key=LITE_KEY,
            organization="Tiny Ltd",
            license_type=LicenseType.LITE,
            products=frozenset({"docs"}),
            expiry=date(2099, 1, 1),
        )
    )
    store.add(
        LicenseProfile(
            key=EXPIRED_KEY,
            organization="Gone Inc",
            license_type=LicenseType.TRIAL,
            products=frozenset({"marengo"}),
            expiry=date(2020, 1, 1),
        )
    )
    return store


@pytest.fixture
def server(
    session_factory,
    license_store: LicenseStore,
    clock: FakeClock,
    blob_store: FakeBlobStore,
    manifest: CatalogManifest,
) -> GatewayServer:
    gateway = GatewayServer(
        Config(),
        clock=clock,
        session_factory=session_factory,
        license_store=license_store,
        blob_store=blob_store,
        manifest=manifest,
        refresh_on_startup=False,
    )
    gateway.catalog.refresh()
    return gateway


@pytest.fixture
def http(server: GatewayServer) -> TestClient:
    return TestClient(server.app)
