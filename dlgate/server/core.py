"""
Download gateway server wiring components into a FastAPI app.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable

from fastapi import FastAPI

from dlgate.common.config import Config
from dlgate.common.exceptions import GatewayError

from .audit_log import AuditLog
from .blob_store import build_blob_store
from .catalog import CatalogResolver, load_manifest
from .database import build_session_factory
from .freshness import FreshnessGuard
from .license_store import LicenseStore
from .license_validator import LicenseValidator
from .rate_limiter import EndpointClass, RateLimiter, RateLimitRule
from .routes import GatewayRoutes, make_identity_extractor
from .services import GatewayService
from .session_manager import SessionManager

if TYPE_CHECKING:
    from fastapi import Request
    from sqlalchemy.orm import sessionmaker

    from dlgate.common.interfaces import IAuditLog, IBlobStore, ILicenseStore
    from dlgate.common.models import CatalogManifest


class GatewayServer:
    """Main gateway class owning shared state and the HTTP app.

    Collaborators default to the configured SQL database and MinIO bucket;
    tests pass their own along with a fixed clock.
    """

    def __init__(  # noqa: PLR0913
        self,
        config: Config | None = None,
        *,
        clock: Callable[[], float] = time.time,
        identity_extractor: Callable[[Request], str] | None = None,
        session_factory: sessionmaker | None = None,
        license_store: ILicenseStore | None = None,
        audit_log: IAuditLog | None = None,
        blob_store: IBlobStore | None = None,
        manifest: CatalogManifest | None = None,
        refresh_on_startup: bool = True,
    ):
        self.config = config or Config()
        self.clock = clock
        self.logger = logging.getLogger(__name__)

        if license_store is None or audit_log is None:
            session_factory = session_factory or build_session_factory(
                self.config.DATABASE_URL, self.config.DB_TIMEOUT
            )
        self.license_store = license_store or LicenseStore(session_factory)
        self.audit_log = audit_log or AuditLog(session_factory)
        self.blob_store = blob_store or build_blob_store(self.config)

        self.rate_limiter = RateLimiter(
            {
                EndpointClass.VERIFICATION: RateLimitRule(
                    self.config.VERIFY_MAX_ATTEMPTS, self.config.VERIFY_WINDOW
                ),
                EndpointClass.DOWNLOAD: RateLimitRule(
                    self.config.DOWNLOAD_MAX_ATTEMPTS, self.config.DOWNLOAD_WINDOW
                ),
            },
            clock=clock,
        )
        self.license_validator = LicenseValidator(self.license_store, clock=clock)
        self.session_manager = SessionManager(self.config.SESSION_TTL, clock=clock)
        self.freshness_guard = FreshnessGuard(self.config.SKEW_WINDOW, clock=clock)
        self.catalog = CatalogResolver(
            self.blob_store,
            manifest or load_manifest(self.config.CATALOG_MANIFEST),
        )

        self.service = GatewayService(
            config=self.config,
            rate_limiter=self.rate_limiter,
            license_validator=self.license_validator,
            session_manager=self.session_manager,
            freshness_guard=self.freshness_guard,
            catalog=self.catalog,
            blob_store=self.blob_store,
            audit_log=self.audit_log,
            clock=clock,
        )
        self.refresh_on_startup = refresh_on_startup

        self.app = FastAPI(title="dlgate", lifespan=self._lifespan)
        GatewayRoutes(
            self.service,
            identity_extractor
            or make_identity_extractor(self.config.TRUST_CLIENT_ID_HEADER),
        ).setup_routes(self.app)

    @property
    def server_host(self) -> str:
        return self.config.SERVER_HOST

    @property
    def server_port(self) -> int:
        return self.config.SERVER_PORT

    @contextlib.asynccontextmanager
    async def _lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        task: asyncio.Task[Any] | None = None
        if self.refresh_on_startup:
            await self._refresh_catalog()
            task = asyncio.create_task(self._refresh_periodically())
        self.logger.info(
            "Gateway listening on http://%s:%s", self.server_host, self.server_port
        )
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    async def _refresh_periodically(self) -> None:
        while True:
            await asyncio.sleep(self.config.CATALOG_REFRESH_INTERVAL)
            await self._refresh_catalog()

    async def _refresh_catalog(self) -> None:
        # A failed refresh keeps serving the previous snapshot
        try:
            await self.service.refresh_catalog()
        except GatewayError:
            self.logger.exception("Catalog refresh failed")


def create_app() -> FastAPI:
    """Application factory for ``uvicorn --factory``."""
    return GatewayServer().app
