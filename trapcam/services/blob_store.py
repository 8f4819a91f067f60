# trapcam/services/blob_store.py
"""
Blob store gateway — S3-compatible object storage (AWS S3 or MinIO).

Two buckets are used: one for archived email bodies, one for images. Both
carry an expiration lifecycle rule so archived content expires on its own.

Compressed uploads are gzipped and stored under "<key>.gz". Downloads of an
unsuffixed key fall back to the ".gz" variant, so callers can keep storing
the plain key.
"""

import gzip
from functools import lru_cache
from typing import Optional
from urllib.parse import urlparse, urlunparse

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from trapcam.config import settings
from trapcam.exceptions import BlobNotFoundError, BlobStoreError
from trapcam.utils.logger import get_logger

logger = get_logger(__name__)

COMPRESSED_SUFFIX = ".gz"

_CONTENT_TYPES = {
    ".gz": "application/gzip",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".html": "text/html",
    ".txt": "text/plain",
    ".json": "application/json",
}

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


def content_type_for(key: str) -> str:
    lower = key.lower()
    for ext, content_type in _CONTENT_TYPES.items():
        if lower.endswith(ext):
            return content_type
    return "application/octet-stream"


def compress(data: bytes) -> bytes:
    return gzip.compress(data)


def decompress(data: bytes) -> bytes:
    return gzip.decompress(data)


class BlobStore:
    """Thin wrapper over a boto3 S3 client."""

    def __init__(self, client, email_archive_bucket: str, image_bucket: str,
                 public_url: Optional[str] = None, ttl_days: Optional[dict] = None):
        self.client = client
        self.email_archive_bucket = email_archive_bucket
        self.image_bucket = image_bucket
        self.public_url = public_url
        self.ttl_days = ttl_days or {}

    # ── Upload ───────────────────────────────────────────────────────────
    def upload_bytes(self, bucket: str, key: str, data: bytes, compress_data: bool = False) -> str:
        """Store bytes and return the key they were stored under."""
        if compress_data:
            data = compress(data)
            key = f"{key}{COMPRESSED_SUFFIX}"
        try:
            self.client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type_for(key),
            )
        except (BotoCoreError, ClientError) as e:
            raise BlobStoreError(f"Failed to upload {bucket}/{key}: {e}") from e
        logger.info(f"[BLOB] Uploaded {bucket}/{key} ({len(data)} bytes)")
        return key

    def upload_text(self, bucket: str, key: str, text: str, compress_data: bool = True) -> str:
        return self.upload_bytes(bucket, key, text.encode("utf-8"), compress_data=compress_data)

    # ── Download ─────────────────────────────────────────────────────────
    def _get_object(self, bucket: str, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                raise BlobNotFoundError(bucket, key) from e
            raise BlobStoreError(f"Failed to download {bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise BlobStoreError(f"Failed to download {bucket}/{key}: {e}") from e

    def download_bytes(self, bucket: str, key: str, decompress_data: bool = True) -> bytes:
        is_compressed = key.lower().endswith(COMPRESSED_SUFFIX)
        try:
            data = self._get_object(bucket, key)
        except BlobNotFoundError:
            if is_compressed:
                raise
            gz_key = f"{key}{COMPRESSED_SUFFIX}"
            logger.info(f"[BLOB] {bucket}/{key} not found, trying {gz_key}")
            data = self._get_object(bucket, gz_key)
            is_compressed = True

        if decompress_data and is_compressed:
            return decompress(data)
        return data

    def download_text(self, bucket: str, key: str, decompress_data: bool = True) -> str:
        return self.download_bytes(bucket, key, decompress_data=decompress_data).decode("utf-8")

    # ── URLs / deletion ──────────────────────────────────────────────────
    def presigned_url(self, bucket: str, key: str, ttl_minutes: int = 60) -> str:
        try:
            url = self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=ttl_minutes * 60,
            )
        except (BotoCoreError, ClientError) as e:
            raise BlobStoreError(f"Failed to presign {bucket}/{key}: {e}") from e
        return self._rewrite_host(url)

    def _rewrite_host(self, url: str) -> str:
        """Swap the internal S3 host for the browser-reachable one, if configured."""
        if not self.public_url:
            return url
        signed = urlparse(url)
        public = urlparse(self.public_url)
        return urlunparse((public.scheme, public.netloc, signed.path,
                           signed.params, signed.query, signed.fragment))

    def delete(self, bucket: str, key: str) -> None:
        try:
            self.client.delete_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise BlobStoreError(f"Failed to delete {bucket}/{key}: {e}") from e
        logger.info(f"[BLOB] Deleted {bucket}/{key}")

    # ── Provisioning ─────────────────────────────────────────────────────
    def ensure_buckets(self) -> None:
        """Create missing buckets and (re)apply their expiration rule."""
        for bucket in (self.email_archive_bucket, self.image_bucket):
            try:
                self.client.head_bucket(Bucket=bucket)
            except ClientError:
                logger.info(f"[BLOB] Creating bucket {bucket}")
                self.client.create_bucket(Bucket=bucket)
            ttl = self.ttl_days.get(bucket)
            if ttl:
                self._configure_lifecycle(bucket, ttl)

    def _configure_lifecycle(self, bucket: str, ttl_days: int) -> None:
        self.client.put_bucket_lifecycle_configuration(
            Bucket=bucket,
            LifecycleConfiguration={
                "Rules": [{
                    "ID": f"expire-after-{ttl_days}-days",
                    "Status": "Enabled",
                    "Filter": {"Prefix": ""},
                    "Expiration": {"Days": ttl_days},
                }]
            },
        )
        logger.info(f"[BLOB] Lifecycle on {bucket}: objects expire after {ttl_days} days")


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    """Process-wide blob store built from settings."""
    client = boto3.client(
        "s3",
        endpoint_url=settings.S3_SERVICE_URL or None,
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
        config=BotoConfig(
            signature_version="s3v4",
            s3={"addressing_style": "path" if settings.S3_FORCE_PATH_STYLE else "auto"},
        ),
    )
    return BlobStore(
        client,
        email_archive_bucket=settings.EMAIL_ARCHIVE_BUCKET,
        image_bucket=settings.IMAGE_BUCKET,
        public_url=settings.S3_PUBLIC_URL,
        ttl_days={
            settings.EMAIL_ARCHIVE_BUCKET: settings.EMAIL_ARCHIVE_TTL_DAYS,
            settings.IMAGE_BUCKET: settings.IMAGE_TTL_DAYS,
        },
    )
