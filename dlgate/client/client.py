"""
HTTP client for the download gateway.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any
from urllib.parse import quote

import requests

from dlgate.common.config import Config
from dlgate.common.exceptions import GatewayClientError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"


class DownloadClient:
    """Verifies a license once, then lists and fetches files with the session."""

    def __init__(
        self,
        server_url: str | None = None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.server_url = (server_url or Config().SERVER_URL).rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()
        self.session_id: str | None = None
        self.profile: dict[str, Any] | None = None

    def verify_license(self, license_key: str) -> dict[str, Any]:
        """Exchange a license key for a session; returns the license profile."""
        data = self._call(
            "POST",
            "/api/auth/verify-license",
            json={"licenseKey": license_key},
            authenticated=False,
        )
        self.session_id = data["sessionId"]
        self.profile = data["data"]
        logger.info("License verified for %s", self.profile.get("organization"))
        return self.profile

    def list_files(self) -> list[dict[str, Any]]:
        return self._call("GET", "/api/downloads/available")["files"]

    def request_download(
        self, file_id: str, client_id: str, user_agent: str | None = None
    ) -> dict[str, Any]:
        """Ask for a signed URL. Each call is a new attempt with a new request id."""
        body: dict[str, Any] = {
            "fileId": file_id,
            "clientId": client_id,
            "timestamp": int(time.time() * 1000),
        }
        if user_agent:
            body["userAgent"] = user_agent
        return self._call("POST", "/api/downloads/request", json=body)

    def get_checksum(self, file_id: str) -> dict[str, str]:
        return self._call("GET", f"/api/downloads/{quote(file_id, safe='')}/checksum")

    def _call(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        authenticated: bool = True,  # noqa: FBT001, FBT002
    ) -> Any:
        headers = {}
        if authenticated:
            if not self.session_id:
                msg = "verify_license must succeed before calling the gateway"
                raise GatewayClientError(msg, 401)
            headers["Authorization"] = f"Bearer {self.session_id}"
            headers[REQUEST_ID_HEADER] = str(uuid.uuid4())

        response = self.http.request(
            method,
            f"{self.server_url}{path}",
            json=json,
            headers=headers,
            timeout=self.timeout,
        )
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400:  # noqa: PLR2004
            message = data.get("error") if isinstance(data, dict) else None
            raise GatewayClientError(
                message or f"HTTP {response.status_code}", response.status_code
            )
        return data
