"""
Session management for the download gateway.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Callable

from dlgate.common.exceptions import Unauthenticated
from dlgate.common.models import LicenseProfile, SessionData

SESSION_PREFIX = "sess-"
BEARER_PREFIX = "Bearer "


def parse_bearer(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX) :].strip()
    return token or None


class SessionManager:
    """Issues and validates in-memory session tokens."""

    def __init__(self, session_ttl: int, clock: Callable[[], float] = time.time):
        self.session_ttl = session_ttl
        self.clock = clock
        self.sessions: dict[str, SessionData] = {}
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def issue(self, profile: LicenseProfile) -> SessionData:
        """Create a session bound to a validated license."""
        now = self.clock()
        # uuid4 draws from os.urandom
        token = f"{SESSION_PREFIX}{uuid.uuid4()}"
        session = SessionData(
            token=token,
            license_key=profile.key,
            profile=profile,
            issued_at=now,
            expires_at=min(now + self.session_ttl, profile.expires_at),
        )
        with self._lock:
            self._clean_expired(now)
            self.sessions[token] = session
        self.logger.info("Session issued for %s", profile.organization)
        return session

    def validate(self, token: str | None) -> LicenseProfile:
        """Return the license profile behind a live session token."""
        if not token or not token.startswith(SESSION_PREFIX):
            raise Unauthenticated
        now = self.clock()
        with self._lock:
            session = self.sessions.get(token)
            if session is None:
                raise Unauthenticated
            if not (session.issued_at <= now < session.expires_at):
                del self.sessions[token]
                raise Unauthenticated
            return session.profile

    def get_session(self, token: str) -> SessionData | None:
        """Get session by token."""
        with self._lock:
            return self.sessions.get(token)

    def clean_expired_sessions(self) -> None:
        """Drop every session past its expiry."""
        with self._lock:
            self._clean_expired(self.clock())

    def _clean_expired(self, now: float) -> None:
        expired = [t for t, s in self.sessions.items() if s.expires_at <= now]
        for token in expired:
            self.sessions.pop(token, None)
