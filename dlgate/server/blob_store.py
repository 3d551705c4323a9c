"""
Blob store access through the MinIO/S3 client.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import urllib3
from minio import Minio
from minio.error import InvalidResponseError, S3Error, ServerError

from dlgate.common.exceptions import NotFound, UpstreamFailure
from dlgate.common.models import ObjectInfo

if TYPE_CHECKING:
    from dlgate.common.config import Config

logger = logging.getLogger(__name__)

BLOB_ERRORS = (S3Error, ServerError, InvalidResponseError, urllib3.exceptions.HTTPError)
MISSING_OBJECT_CODES = {"NoSuchKey", "NoSuchObject"}
USER_METADATA_PREFIX = "x-amz-meta-"


class StorageConfigurationError(RuntimeError):
    """Raised when storage configuration is invalid."""


def _clean_etag(etag: str | None) -> str | None:
    return etag.strip('"') if etag else None


class MinioBlobStore:
    """Thin wrapper around MinIO exposing list, head and signed GET URLs."""

    def __init__(self, *, client: Minio, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    @property
    def bucket(self) -> str:
        return self._bucket

    def list_objects(self) -> list[ObjectInfo]:
        """List every object in the bucket."""
        try:
            return [
                ObjectInfo(
                    key=obj.object_name,
                    size=obj.size or 0,
                    etag=_clean_etag(obj.etag),
                )
                for obj in self._client.list_objects(self._bucket, recursive=True)
                if not obj.is_dir
            ]
        except BLOB_ERRORS as exc:
            logger.exception("Failed to list bucket %s", self._bucket)
            msg = "Failed to list files"
            raise UpstreamFailure(msg) from exc

    def head(self, key: str) -> ObjectInfo:
        """Fetch object metadata; user metadata keys lose their ``x-amz-meta-`` prefix."""
        try:
            stat = self._client.stat_object(self._bucket, key)
        except S3Error as exc:
            if exc.code in MISSING_OBJECT_CODES:
                raise NotFound from exc
            logger.exception("Failed to stat object")
            raise UpstreamFailure from exc
        except BLOB_ERRORS as exc:
            logger.exception("Failed to stat object")
            raise UpstreamFailure from exc

        metadata: dict[str, str] = {}
        for name, value in (stat.metadata or {}).items():
            lowered = name.lower()
            if lowered.startswith(USER_METADATA_PREFIX):
                metadata[lowered[len(USER_METADATA_PREFIX) :]] = value
        return ObjectInfo(
            key=key,
            size=stat.size or 0,
            etag=_clean_etag(stat.etag),
            metadata=metadata,
        )

    def sign_get(self, key: str, ttl: int, filename: str) -> str:
        """Mint a presigned GET URL that downloads as an attachment."""
        safe_name = filename.replace('"', "")
        try:
            return self._client.presigned_get_object(
                self._bucket,
                key,
                expires=timedelta(seconds=ttl),
                response_headers={
                    "response-content-disposition": f'attachment; filename="{safe_name}"'
                },
            )
        except BLOB_ERRORS as exc:
            raise UpstreamFailure("Download failed") from exc


def build_blob_store(config: Config) -> MinioBlobStore:
    """Instantiate a blob store from configuration.

    Requests time out after ``BLOB_TIMEOUT`` seconds and are never retried.
    """
    if not all([config.BLOB_ENDPOINT, config.BLOB_BUCKET]):
        msg = "Blob store endpoint and bucket must be set"
        raise StorageConfigurationError(msg)

    parsed = urlparse(config.BLOB_ENDPOINT)
    secure = (
        config.BLOB_SECURE
        if config.BLOB_SECURE is not None
        else parsed.scheme == "https"
    )
    http_client = urllib3.PoolManager(
        timeout=urllib3.Timeout(connect=config.BLOB_TIMEOUT, read=config.BLOB_TIMEOUT),
        retries=urllib3.Retry(total=0),
    )
    client = Minio(
        parsed.netloc or parsed.path,
        access_key=config.BLOB_ACCESS_KEY,
        secret_key=config.BLOB_SECRET_KEY,
        secure=secure,
        region=config.BLOB_REGION,
        http_client=http_client,
    )
    return MinioBlobStore(client=client, bucket=config.BLOB_BUCKET)
