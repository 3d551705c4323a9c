"""
License verification handler: rate limit, validate, issue session.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dlgate.common.exceptions import Forbidden, NotFound, RateLimitError
from dlgate.server.blocking import call_blocking
from dlgate.server.rate_limiter import EndpointClass

if TYPE_CHECKING:
    from dlgate.common.models import VerifyLicenseRequest
    from dlgate.server.license_validator import LicenseValidator
    from dlgate.server.rate_limiter import RateLimiter
    from dlgate.server.session_manager import SessionManager


class VerifyHandler:
    """Handles verify-license request logic."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        license_validator: LicenseValidator,
        session_manager: SessionManager,
        store_timeout: float,
    ):
        self.rate_limiter = rate_limiter
        self.license_validator = license_validator
        self.session_manager = session_manager
        self.store_timeout = store_timeout
        self.logger = logging.getLogger(__name__)

    async def handle_verify(
        self, req: VerifyLicenseRequest, identity: str
    ) -> dict[str, Any]:
        """Handle verify-license request."""
        admission = self.rate_limiter.admit(identity, EndpointClass.VERIFICATION)
        if not admission.allowed:
            self.logger.warning("Verification rate limit hit for %s", identity)
            msg = "Too many attempts. Please try again later."
            raise RateLimitError(msg, admission.retry_after)

        try:
            profile = await call_blocking(
                self.license_validator.validate,
                req.license_key,
                timeout=self.store_timeout,
                what="License lookup",
            )
        except NotFound as e:
            # Unknown keys are reported as forbidden, whatever their shape
            raise Forbidden(e.message) from e

        session = self.session_manager.issue(profile)
        return {
            "success": True,
            "sessionId": session.token,
            "data": {
                "organization": profile.organization,
                "licenseType": profile.license_type,
                "products": sorted(profile.products),
                "expiryDate": profile.expiry.isoformat(),
                "supportContact": profile.support_contact,
                "sessionId": session.token,
            },
        }
