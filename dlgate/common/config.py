"""
Configuration settings for the download gateway.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:  # noqa: FBT001
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Central configuration class for all system settings."""

    def __init__(self) -> None:
        # Session and replay settings
        self.SESSION_TTL: int = int(
            os.getenv("DLGATE_SESSION_TTL", "900")
        )  # 15 minutes
        self.SIGNED_URL_TTL: int = int(os.getenv("DLGATE_SIGNED_URL_TTL", "60"))
        self.SKEW_WINDOW: int = int(
            os.getenv("DLGATE_SKEW_WINDOW", "300")
        )  # Max client clock drift in seconds
        self.MAX_REQUEST_ID_LEN: int = 128

        # Rate limiting: verification is tighter than download
        self.VERIFY_MAX_ATTEMPTS: int = int(
            os.getenv("DLGATE_VERIFY_MAX_ATTEMPTS", "10")
        )
        self.VERIFY_WINDOW: int = int(os.getenv("DLGATE_VERIFY_WINDOW", "900"))
        self.DOWNLOAD_MAX_ATTEMPTS: int = int(
            os.getenv("DLGATE_DOWNLOAD_MAX_ATTEMPTS", "20")
        )
        self.DOWNLOAD_WINDOW: int = int(os.getenv("DLGATE_DOWNLOAD_WINDOW", "900"))
        self.TRUST_CLIENT_ID_HEADER: bool = _env_bool(
            "DLGATE_TRUST_CLIENT_ID_HEADER", False
        )

        # Server settings
        self.SERVER_HOST: str = os.getenv("DLGATE_SERVER_HOST", "127.0.0.1")
        self.SERVER_PORT: int = int(os.getenv("DLGATE_SERVER_PORT", "3001"))
        self.SERVER_URL: str = f"http://{self.SERVER_HOST}:{self.SERVER_PORT}"

        # License store and audit sink
        self.BASE_DIR: Path = Path.cwd()
        self.DATABASE_URL: str = os.getenv(
            "DLGATE_DATABASE_URL", f"sqlite:///{self.BASE_DIR / 'dlgate.db'}"
        )
        self.DB_TIMEOUT: float = float(os.getenv("DLGATE_DB_TIMEOUT", "5"))

        # Blob store
        self.BLOB_ENDPOINT: str = os.getenv(
            "DLGATE_BLOB_ENDPOINT", "https://s3.amazonaws.com"
        )
        self.BLOB_ACCESS_KEY: str | None = os.getenv("DLGATE_BLOB_ACCESS_KEY")
        self.BLOB_SECRET_KEY: str | None = os.getenv("DLGATE_BLOB_SECRET_KEY")
        self.BLOB_BUCKET: str = os.getenv("DLGATE_BLOB_BUCKET", "rythenox-downloads")
        self.BLOB_REGION: str = os.getenv("DLGATE_BLOB_REGION", "us-east-1")
        self.BLOB_SECURE: bool | None = (
            _env_bool("DLGATE_BLOB_SECURE", True)
            if os.getenv("DLGATE_BLOB_SECURE") is not None
            else None
        )
        self.BLOB_TIMEOUT: float = float(os.getenv("DLGATE_BLOB_TIMEOUT", "10"))

        # Catalog
        manifest = os.getenv("DLGATE_CATALOG_MANIFEST")
        self.CATALOG_MANIFEST: Path | None = Path(manifest) if manifest else None
        self.CATALOG_REFRESH_INTERVAL: int = int(
            os.getenv("DLGATE_CATALOG_REFRESH_INTERVAL", "300")
        )

        # Logging
        self.LOG_LEVEL: int = getattr(
            logging, os.getenv("DLGATE_LOG_LEVEL", "INFO").upper(), logging.INFO
        )
        log_file = os.getenv("DLGATE_LOG_FILE")
        self.LOG_FILE: Path | None = Path(log_file) if log_file else None
