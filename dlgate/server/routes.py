"""
Routes for the download gateway.
"""

import logging
import math
from typing import Any, Callable, Optional

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dlgate.common.exceptions import GatewayError, RateLimitError
from dlgate.common.models import DownloadRequest, VerifyLicenseRequest
from dlgate.server.domain.download_handler import DownloadContext
from dlgate.server.session_manager import parse_bearer

from .services import GatewayService

CLIENT_ID_HEADER = "x-client-id"

logger = logging.getLogger(__name__)


def source_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def make_identity_extractor(
    trust_client_id_header: bool,  # noqa: FBT001
) -> Callable[[Request], str]:
    """Build the function that names the caller for rate limiting."""

    def identity(request: Request) -> str:
        if trust_client_id_header:
            client_id = request.headers.get(CLIENT_ID_HEADER, "").strip()
            if client_id:
                return f"client:{client_id}"
        return f"ip:{source_ip(request)}"

    return identity


class GatewayRoutes:
    """Handles FastAPI routes for the download gateway."""

    def __init__(
        self, service: GatewayService, identity_extractor: Callable[[Request], str]
    ):
        self.service = service
        self.identity_extractor = identity_extractor

    def setup_routes(self, app: FastAPI) -> None:
        """Setup API routes and error rendering on the FastAPI app."""
        app.add_exception_handler(GatewayError, self.gateway_error)
        app.add_exception_handler(RequestValidationError, self.validation_error)
        app.add_exception_handler(Exception, self.unexpected_error)

        app.get("/health")(self.health)
        app.post("/api/auth/verify-license")(self.verify_license)
        app.get("/api/downloads/available")(self.available)
        app.post("/api/downloads/request")(self.request_download)
        app.get("/api/downloads/{file_id:path}/checksum")(self.checksum)

    async def gateway_error(self, request: Request, exc: GatewayError) -> JSONResponse:
        headers = None
        if isinstance(exc, RateLimitError):
            headers = {"Retry-After": str(max(1, math.ceil(exc.retry_after)))}
        return JSONResponse(
            {"success": False, "error": exc.message},
            status_code=exc.status_code,
            headers=headers,
        )

    async def validation_error(
        self, request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.debug("Rejected malformed body on %s: %s", request.url.path, exc)
        return JSONResponse(
            {"success": False, "error": "Invalid request"}, status_code=400
        )

    async def unexpected_error(self, request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error on %s [request_id=%s]",
            request.url.path,
            request.headers.get("x-request-id"),
            exc_info=exc,
        )
        return JSONResponse(
            {"success": False, "error": "Internal server error"}, status_code=500
        )

    async def health(self) -> dict[str, Any]:
        """Handle /health endpoint."""
        return self.service.health()

    async def verify_license(
        self, req: VerifyLicenseRequest, request: Request
    ) -> dict[str, Any]:
        """Handle /api/auth/verify-license endpoint."""
        return await self.service.verify_license(req, self.identity_extractor(request))

    async def available(
        self,
        authorization: Optional[str] = Header(default=None),
        x_request_id: Optional[str] = Header(default=None),
    ) -> dict[str, Any]:
        """Handle /api/downloads/available endpoint."""
        return await self.service.list_files(parse_bearer(authorization), x_request_id)

    async def request_download(
        self,
        req: DownloadRequest,
        request: Request,
        authorization: Optional[str] = Header(default=None),
        x_request_id: Optional[str] = Header(default=None),
    ) -> dict[str, Any]:
        """Handle /api/downloads/request endpoint."""
        request_id = self.service.require_request_id(x_request_id)
        ctx = DownloadContext(
            request=req,
            token=parse_bearer(authorization),
            request_id=request_id,
            identity=self.identity_extractor(request),
            source_ip=source_ip(request),
        )
        return await self.service.request_download(ctx)

    async def checksum(
        self,
        file_id: str,
        authorization: Optional[str] = Header(default=None),
        x_request_id: Optional[str] = Header(default=None),
    ) -> dict[str, str]:
        """Handle /api/downloads/{file_id}/checksum endpoint."""
        return await self.service.checksum(
            parse_bearer(authorization), x_request_id, file_id
        )
