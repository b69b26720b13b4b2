"""Binary storage for generated images.

Two implementations share the :class:`BlobStore` contract:

- :class:`S3BlobStore` stores objects in an S3 bucket through ``boto3`` and
  signs time-limited read URLs with ``generate_presigned_url``.
- :class:`LocalBlobStore` stores objects as files in a single directory.  It
  has no URL signer, so :meth:`LocalBlobStore.sign` always returns ``None``
  and callers fall back to the raw ``/download/<key>`` locator.

Keys are chosen by the orchestrator (``<uuid4>_generated_image.<ext>``) and
are treated as opaque strings here.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from promptcanvas.core.config import PromptCanvasConfig
from promptcanvas.core.errors import NotFound, StorageFailed
from promptcanvas.core.models import content_type_for_extension

logger = logging.getLogger(__name__)

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


def content_type_for_key(key: str) -> str:
    """Infer the stored content type from a blob key's extension."""
    return content_type_for_extension(Path(key).suffix)


class BlobStore(Protocol):
    """put / get / sign contract used by the orchestrator and catalog."""

    def put(self, key: str, data: bytes, content_type: str) -> None: ...

    def get(self, key: str) -> bytes: ...

    def sign(self, key: str, ttl_seconds: int) -> str | None: ...


class S3BlobStore:
    """S3-backed :class:`BlobStore`."""

    def __init__(self, bucket_name: str, client=None, region_name: str | None = None):
        """Initialize the store.

        Args:
            bucket_name: Bucket holding generated images.
            client: Pre-built boto3 S3 client.  Built from the default
                credential chain when omitted.
            region_name: Region used when building the client.
        """
        self.bucket_name = bucket_name
        self._client = client or boto3.client("s3", region_name=region_name)

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentLength=len(data),
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error storing s3://{self.bucket_name}/{key}: {e}")
            raise StorageFailed(f"could not store blob {key}: {e}") from e

        logger.info(f"Stored s3://{self.bucket_name}/{key} ({len(data)} bytes)")

    def get(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket_name, Key=key)
            return response["Body"].read()
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_KEY_CODES:
                raise NotFound(f"blob not found: {key}") from e
            logger.error(f"Error reading s3://{self.bucket_name}/{key}: {e}")
            raise StorageFailed(f"could not read blob {key}: {e}") from e
        except BotoCoreError as e:
            logger.error(f"Error reading s3://{self.bucket_name}/{key}: {e}")
            raise StorageFailed(f"could not read blob {key}: {e}") from e

    def sign(self, key: str, ttl_seconds: int) -> str | None:
        """Create a presigned GET URL, or ``None`` if signing fails."""
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Could not sign URL for {key}: {e}")
            return None


class LocalBlobStore:
    """Directory-backed :class:`BlobStore` for development and tests."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        # Keys are single path components; anything else cannot have been
        # written by this store.
        if not key or key in {".", ".."} or "/" in key or "\\" in key:
            raise NotFound(f"blob not found: {key}")
        return self.root / key

    def put(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path_for(key)
        try:
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Error storing {path}: {e}")
            raise StorageFailed(f"could not store blob {key}: {e}") from e

        logger.info(f"Stored {path} ({len(data)} bytes, {content_type})")

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.is_file():
            raise NotFound(f"blob not found: {key}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageFailed(f"could not read blob {key}: {e}") from e

    def sign(self, key: str, ttl_seconds: int) -> str | None:
        return None


def blob_store_from_config(config: PromptCanvasConfig) -> BlobStore:
    """Build the BlobStore selected by ``config.blob_backend``."""
    if config.blob_backend == "s3":
        return S3BlobStore(config.s3_bucket_name, region_name=config.aws_region)
    return LocalBlobStore(config.blob_dir)
