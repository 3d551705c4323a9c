"""
License validation utilities.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable

from dlgate.common.exceptions import Expired, Malformed, NotFound

if TYPE_CHECKING:
    from dlgate.common.interfaces import ILicenseStore
    from dlgate.common.models import LicenseProfile


class LicenseValidator:
    """Handles license key lookup and expiry checking."""

    def __init__(
        self,
        store: ILicenseStore,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    def validate(self, raw_key: str | None) -> LicenseProfile:
        """Return the profile for ``raw_key`` or raise.

        Raises:
            Malformed: the key is empty or whitespace-only
            NotFound: no record has exactly this key
            Expired: the current instant is at or past the license expiry
        """
        key = (raw_key or "").strip()
        if not key:
            msg = "License key is required."
            raise Malformed(msg)

        profile = self.store.get(key)
        if profile is None:
            self.logger.info("License lookup failed for unknown key")
            msg = "Invalid license key."
            raise NotFound(msg)

        now = self.clock()
        if now >= profile.expires_at:
            self.logger.info(
                "License for %s expired on %s", profile.organization, profile.expiry
            )
            raise Expired

        self.logger.debug("License for %s valid", profile.organization)
        return profile
