# This project was developed with assistance from AI tools.
"""S3-compatible object storage service backed by MinIO.

Uses boto3 synchronous client run in a thread-pool executor for async
compatibility. The module exposes a singleton initialised at app startup
via ``init_storage_service()``.

Listing images and workflow documents are uploaded *after* their owning
row exists; ``store_blobs`` runs that second phase and tolerates partial
failure, returning whatever URLs succeeded.
"""

import asyncio
import base64
import binascii
import logging
import os
import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import partial

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import Settings, settings
from ..core.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
}

ALLOWED_DOCUMENT_TYPES = ALLOWED_IMAGE_TYPES | {"application/pdf"}

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/pdf": "pdf",
}


@dataclass(frozen=True)
class UploadBlob:
    """A byte buffer waiting to be stored."""

    filename: str
    content_type: str
    data: bytes

    @property
    def extension(self) -> str:
        _, ext = os.path.splitext(os.path.basename(self.filename))
        return ext.lstrip(".").lower() or _EXTENSIONS.get(self.content_type, "bin")


_DATA_URL = re.compile(r"^data:(?P<type>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)


def decode_base64_blob(field: str, value: str, default_type: str = "application/pdf") -> UploadBlob:
    """Decode a base64 payload (bare or ``data:`` URL) into an UploadBlob.

    Malformed payloads raise ValidationError so that nothing is persisted.
    """
    content_type = default_type
    payload = value.strip()
    match = _DATA_URL.match(payload)
    if match:
        content_type = match.group("type").lower()
        payload = match.group("data")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"{field} is not valid base64", field=field) from exc
    if not data:
        raise ValidationError(f"{field} is empty", field=field)
    extension = _EXTENSIONS.get(content_type, "bin")
    return UploadBlob(filename=f"{field}.{extension}", content_type=content_type, data=data)


def validate_blob(blob: UploadBlob, field: str, allowed_types: set[str]) -> None:
    """Reject unsupported or oversized blobs before any row is written."""
    if blob.content_type not in allowed_types:
        raise ValidationError(
            f"Unsupported content type: {blob.content_type}. "
            f"Allowed: {', '.join(sorted(allowed_types))}",
            field=field,
        )
    max_bytes = settings.UPLOAD_MAX_SIZE_MB * 1024 * 1024
    if len(blob.data) > max_bytes:
        raise ValidationError(
            f"File size {len(blob.data)} exceeds maximum of {settings.UPLOAD_MAX_SIZE_MB}MB",
            field=field,
        )


class StorageService:
    """Thin wrapper around a boto3 S3 client."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        buckets: Sequence[str],
        region: str = "us-east-1",
        public_url: str | None = None,
    ):
        self._public_url = (public_url or endpoint).rstrip("/")
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=BotoConfig(
                signature_version="s3v4",
                s3={
                    "addressing_style": "path",
                    "use_accelerate_endpoint": False,
                },
            ),
        )
        for bucket in buckets:
            self._ensure_bucket(bucket)

    def _ensure_bucket(self, bucket: str) -> None:
        """Create the bucket if it doesn't already exist (dev convenience)."""
        try:
            self._client.head_bucket(Bucket=bucket)
        except ClientError:
            logger.info("Creating S3 bucket: %s", bucket)
            self._client.create_bucket(Bucket=bucket)

    def public_url(self, bucket: str, object_key: str) -> str:
        return f"{self._public_url}/{bucket}/{object_key}"

    async def upload_file(
        self,
        bucket: str,
        file_data: bytes,
        object_key: str,
        content_type: str,
    ) -> str:
        """Upload bytes to S3 and return the object's durable URL."""
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                partial(
                    self._client.put_object,
                    Bucket=bucket,
                    Key=object_key,
                    Body=file_data,
                    ContentType=content_type,
                ),
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Upload of {bucket}/{object_key} failed: {exc}") from exc
        return self.public_url(bucket, object_key)

    @staticmethod
    def build_object_key(prefix: str, name: str, blob: UploadBlob) -> str:
        """Build ``{prefix}/{name}_{millis}.{ext}``.

        Only the extension of the client filename is kept, so path
        components can never leak into the key.
        """
        return f"{prefix}/{name}_{int(time.time() * 1000)}.{blob.extension}"


async def store_blobs(
    storage: StorageService,
    bucket: str,
    blobs: Sequence[UploadBlob],
    key_for: Callable[[int, UploadBlob], str],
) -> tuple[list[str | None], int]:
    """Upload each blob independently.

    Returns one URL (or None on failure) per blob, in input order, plus the
    failure count. Failures are logged and never raised.
    """
    urls: list[str | None] = []
    failed = 0
    for index, blob in enumerate(blobs):
        key = key_for(index, blob)
        try:
            urls.append(await storage.upload_file(bucket, blob.data, key, blob.content_type))
        except StorageError:
            logger.exception("Blob upload failed (bucket=%s key=%s)", bucket, key)
            urls.append(None)
            failed += 1
    return urls, failed


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_service: StorageService | None = None


def init_storage_service(cfg: Settings) -> StorageService:
    """Initialise the singleton (called once from app lifespan)."""
    global _service  # noqa: PLW0603
    _service = StorageService(
        endpoint=cfg.S3_ENDPOINT,
        access_key=cfg.S3_ACCESS_KEY,
        secret_key=cfg.S3_SECRET_KEY,
        buckets=[
            cfg.S3_PROPERTY_IMAGES_BUCKET,
            cfg.S3_BANK_DOCUMENTS_BUCKET,
            cfg.S3_LOAN_DOCUMENTS_BUCKET,
        ],
        region=cfg.S3_REGION,
        public_url=cfg.S3_PUBLIC_URL,
    )
    logger.info("StorageService initialised (endpoint=%s)", cfg.S3_ENDPOINT)
    return _service


def get_storage_service() -> StorageService:
    """Return the initialised StorageService singleton."""
    if _service is None:
        raise RuntimeError("StorageService not initialised -- call init_storage_service() first")
    return _service
