"""Object storage for staged import files and generated exports.

Local directory by default; S3 (or any S3-compatible endpoint such as
MinIO) when STORAGE_BACKEND=s3.
"""

import logging
import os
import re

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from voterfield.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class StorageObjectNotFoundError(StorageError):
    pass


# =============================================================================
# Storage Backend
# =============================================================================

def _get_s3_client():
    """Get boto3 S3 client."""
    kwargs = {
        "region_name": settings.S3_REGION,
        "aws_access_key_id": settings.AWS_ACCESS_KEY_ID or None,
        "aws_secret_access_key": settings.AWS_SECRET_ACCESS_KEY or None,
    }
    if settings.S3_ENDPOINT_URL:
        kwargs["endpoint_url"] = settings.S3_ENDPOINT_URL
    return boto3.client("s3", **kwargs)


def _get_storage_backend() -> str:
    return settings.STORAGE_BACKEND


def _get_local_storage_path() -> str:
    """Get local storage directory path."""
    path = settings.LOCAL_STORAGE_PATH
    os.makedirs(path, exist_ok=True)
    return path


def _local_path(key: str) -> str:
    root = os.path.realpath(_get_local_storage_path())
    path = os.path.realpath(os.path.join(root, key))
    if not path.startswith(root + os.sep):
        raise StorageError("Invalid storage key")
    return path


def safe_filename(filename: str | None) -> str:
    name = os.path.basename(filename or "upload.csv")
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return name[:120] or "upload.csv"


# =============================================================================
# Object Operations
# =============================================================================

def put_object(key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
    backend = _get_storage_backend()
    if backend == "s3":
        try:
            _get_s3_client().put_object(
                Bucket=settings.S3_BUCKET, Key=key, Body=data, ContentType=content_type
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to store object: {exc}") from exc
        return

    path = _local_path(key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)


def get_object(key: str) -> bytes:
    backend = _get_storage_backend()
    if backend == "s3":
        try:
            response = _get_s3_client().get_object(Bucket=settings.S3_BUCKET, Key=key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404"):
                raise StorageObjectNotFoundError(f"Object not found: {key}") from exc
            raise StorageError(f"Failed to read object: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to read object: {exc}") from exc
        return response["Body"].read()

    path = _local_path(key)
    if not os.path.exists(path):
        raise StorageObjectNotFoundError(f"Object not found: {key}")
    with open(path, "rb") as f:
        return f.read()


def check_ready() -> None:
    """Raise StorageError if the backend cannot be reached."""
    backend = _get_storage_backend()
    if backend == "s3":
        try:
            _get_s3_client().head_bucket(Bucket=settings.S3_BUCKET)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Bucket unavailable: {exc}") from exc
        return
    path = _get_local_storage_path()
    if not os.access(path, os.W_OK):
        raise StorageError("Local storage path not writable")
