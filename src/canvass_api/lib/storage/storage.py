"""S3/R2 object storage for uploaded voter files.

Provides boto3 client creation and blocking get/put helpers, plus an
``ObjectStore`` protocol with an async S3 implementation that runs the
blocking calls in a worker thread.
"""

import asyncio
from typing import Any, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from canvass_api.core.config import Settings


class ObjectNotAccessibleError(Exception):
    """The bucket or key is missing, or access to it was denied."""

    def __init__(self, bucket: str, key: str | None, reason: str) -> None:
        self.bucket = bucket
        self.key = key
        self.reason = reason
        location = f"s3://{bucket}/{key}" if key else f"s3://{bucket}"
        super().__init__(f"Object not accessible: {location} ({reason})")


def create_storage_client(
    access_key_id: str,
    secret_access_key: str,
    endpoint_url: str | None = None,
    region: str = "auto",
) -> Any:
    """Create a boto3 S3 client for AWS S3 or an S3-compatible store such as R2.

    Applies the checksum workaround R2 needs with boto3 v1.36.0+.

    Args:
        access_key_id: Access key.
        secret_access_key: Secret key.
        endpoint_url: Custom endpoint; None targets AWS.
        region: Region name ("auto" for R2).

    Returns:
        Configured boto3 S3 client.
    """
    config = Config(
        request_checksum_calculation="when_required",
        response_checksum_validation="when_required",
    )
    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
        region_name=region,
        config=config,
    )


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", "Unknown"))


def put_object(
    client: Any,
    bucket: str,
    key: str,
    body: bytes,
    content_type: str = "application/octet-stream",
) -> None:
    """Store ``body`` under ``key``.

    Raises:
        ObjectNotAccessibleError: If the bucket is missing or the write is denied.
    """
    try:
        client.put_object(Bucket=bucket, Key=key, Body=body, ContentType=content_type)
    except ClientError as exc:
        raise ObjectNotAccessibleError(bucket, key, _error_code(exc)) from exc
    logger.info("Stored {} bytes at s3://{}/{}", len(body), bucket, key)


def get_object_bytes(client: Any, bucket: str, key: str) -> bytes:
    """Read the full body of ``key``.

    Raises:
        ObjectNotAccessibleError: If the bucket or key is missing or the read is denied.
    """
    try:
        response = client.get_object(Bucket=bucket, Key=key)
        return response["Body"].read()
    except ClientError as exc:
        raise ObjectNotAccessibleError(bucket, key, _error_code(exc)) from exc


def ensure_bucket(client: Any, bucket: str) -> None:
    """Verify the bucket exists and is reachable with the configured credentials.

    Raises:
        ObjectNotAccessibleError: If the bucket is missing or access is denied.
    """
    try:
        client.head_bucket(Bucket=bucket)
    except ClientError as exc:
        raise ObjectNotAccessibleError(bucket, None, _error_code(exc)) from exc
    except BotoCoreError as exc:
        raise ObjectNotAccessibleError(bucket, None, str(exc)) from exc


class ObjectStore(Protocol):
    """Async object store bound to a single bucket."""

    async def get(self, key: str) -> bytes:
        """Return the bytes stored under ``key``.

        Raises:
            ObjectNotAccessibleError: If the key is missing or unreadable.
        """
        ...

    async def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        """Store ``data`` under ``key``, replacing any existing object.

        Raises:
            ObjectNotAccessibleError: If the write is rejected.
        """
        ...

    async def ensure_bucket(self) -> None:
        """Check the store is reachable.

        Raises:
            ObjectNotAccessibleError: If it is not.
        """
        ...


class S3ObjectStore:
    """ObjectStore backed by a boto3 client; blocking calls run via ``asyncio.to_thread``.

    Args:
        client: boto3 S3 client.
        bucket: Bucket every key is resolved against.
    """

    def __init__(self, client: Any, bucket: str) -> None:
        self._client = client
        self.bucket = bucket

    async def get(self, key: str) -> bytes:
        return await asyncio.to_thread(get_object_bytes, self._client, self.bucket, key)

    async def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        await asyncio.to_thread(put_object, self._client, self.bucket, key, data, content_type)

    async def ensure_bucket(self) -> None:
        """Fail fast when the bucket is missing or unreachable.

        Raises:
            ObjectNotAccessibleError: If the bucket cannot be reached.
        """
        await asyncio.to_thread(ensure_bucket, self._client, self.bucket)


def create_object_store(settings: Settings) -> S3ObjectStore | None:
    """Build the configured object store, or None when storage is not configured."""
    if not settings.storage_enabled:
        return None
    client = create_storage_client(
        access_key_id=settings.s3_access_key_id,  # type: ignore[arg-type]
        secret_access_key=settings.s3_secret_access_key,  # type: ignore[arg-type]
        endpoint_url=settings.s3_endpoint_url,
        region=settings.s3_region,
    )
    return S3ObjectStore(client, settings.s3_bucket)  # type: ignore[arg-type]
