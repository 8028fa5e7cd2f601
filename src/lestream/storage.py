"""S3-compatible JSON document storage backed by MinIO client."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from io import BytesIO
from typing import TYPE_CHECKING, Any

logger = logging.getLogger(__name__)


if TYPE_CHECKING:
    from minio import Minio


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Runtime configuration for S3-compatible object storage."""

    endpoint: str
    access_key: str
    secret_key: str
    bucket: str
    secure: bool
    region: str | None
    prefix: str


@lru_cache(maxsize=1)
def load_storage_config() -> StorageConfig:
    """Load storage configuration from environment."""

    return StorageConfig(
        endpoint=os.getenv("LESTREAM_S3_ENDPOINT", "minio:9000"),
        access_key=os.getenv("LESTREAM_S3_ACCESS_KEY", "minioadmin"),
        secret_key=os.getenv("LESTREAM_S3_SECRET_KEY", "minioadmin"),
        bucket=os.getenv("LESTREAM_S3_BUCKET", "lestream-ledger"),
        secure=os.getenv("LESTREAM_S3_SECURE", "false").lower() in {"1", "true", "yes", "on"},
        region=os.getenv("LESTREAM_S3_REGION"),
        prefix=os.getenv("LESTREAM_S3_PREFIX", ""),
    )


class StorageError(RuntimeError):
    """Base error for object storage failures."""


class StorageReadError(StorageError):
    """Raised when a ledger document cannot be read from object storage."""


class StorageWriteError(StorageError):
    """Raised when a ledger document cannot be written to object storage."""


@lru_cache(maxsize=1)
def get_storage_client() -> Any:
    """Build and cache a MinIO client for object storage."""

    from minio import Minio

    config = load_storage_config()
    return Minio(
        endpoint=config.endpoint,
        access_key=config.access_key,
        secret_key=config.secret_key,
        secure=config.secure,
        region=config.region,
    )


def _object_name(config: StorageConfig, name: str) -> str:
    return f"{config.prefix.rstrip('/')}/{name}" if config.prefix else name


def read_json_object(name: str) -> dict | None:
    """Return the decoded JSON document, or ``None`` when it does not exist."""

    from minio.error import S3Error

    config = load_storage_config()
    client = get_storage_client()
    response = None
    try:
        response = client.get_object(bucket_name=config.bucket, object_name=_object_name(config, name))
        return json.loads(response.read().decode("utf-8"))
    except S3Error as error:
        if error.code in {"NoSuchKey", "NoSuchBucket", "NoSuchObject"}:
            return None
        raise StorageReadError(f"failed to read {name}") from error
    finally:
        if response is not None:
            response.close()
            response.release_conn()


def write_json_object(name: str, payload: dict) -> None:
    """Persist a JSON document, creating the bucket on first use."""

    config = load_storage_config()
    encoded = json.dumps(payload, indent=2, sort_keys=True).encode("utf-8")
    try:
        client = get_storage_client()
        if not client.bucket_exists(config.bucket):
            client.make_bucket(config.bucket)

        client.put_object(
            bucket_name=config.bucket,
            object_name=_object_name(config, name),
            data=BytesIO(encoded),
            length=len(encoded),
            content_type="application/json",
        )
    except Exception as error:
        logger.warning("Ledger document write failed.", exc_info=error)
        raise StorageWriteError(f"failed to write {name}") from error


def list_object_names(prefix: str) -> list[str]:
    """List stored document names under ``prefix`` (without the configured key prefix)."""

    config = load_storage_config()
    client = get_storage_client()
    if not client.bucket_exists(config.bucket):
        return []

    full_prefix = _object_name(config, prefix)
    strip = len(_object_name(config, "")) if config.prefix else 0
    return sorted(
        item.object_name[strip:]
        for item in client.list_objects(config.bucket, prefix=full_prefix, recursive=True)
    )
