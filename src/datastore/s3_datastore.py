"""S3-compatible object storage backend.

This module stores dump objects in an AWS S3 bucket or a GCS bucket through
its S3 interoperability endpoint. Transient failures are retried with bounded
exponential backoff; authentication and not-found failures surface at once.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Iterator, TypeVar

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError

from core.config import S3Config
from core.constants import READ_BLOCK_SIZE
from core.errors import VaultDatastoreError, VaultObjectNotFoundError
from core.logging_config import get_logger
from datastore.retry import RetryPolicy, call_with_backoff

T = TypeVar("T")

_LOGGER = get_logger(__name__)
_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})
_MISSING_BUCKET_CODES = frozenset({"NoSuchBucket", "404", "NotFound"})
_TRANSIENT_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "SlowDown",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "RequestTimeout",
        "RequestTimeoutException",
        "InternalError",
        "ServiceUnavailable",
    }
)


class S3Datastore:
    """Datastore storing each key as an object in one bucket."""

    def __init__(
        self,
        config: S3Config,
        client: Any,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._client = client
        self._bucket = config.bucket
        self._prefix = f"{config.prefix.strip('/')}/" if config.prefix.strip("/") else ""
        self._retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    @classmethod
    def connect(cls, config: S3Config, retry_policy: RetryPolicy | None = None) -> "S3Datastore":
        """Create a client for the configured flavor and ensure the bucket exists.

        Args:
            config: S3 backend settings.
            retry_policy: Optional backoff override.

        Returns:
            Connected datastore.
        """
        datastore = cls(config, create_s3_client(config), retry_policy)
        datastore.ensure_bucket()
        return datastore

    def ensure_bucket(self) -> None:
        """Create the configured bucket when it does not exist."""
        try:
            self._client.head_bucket(Bucket=self._bucket)
            return
        except ClientError as error:
            if _error_code(error) not in _MISSING_BUCKET_CODES:
                raise _translate_error(error, f"head bucket {self._bucket}") from error
        except BotoCoreError as error:
            raise _translate_error(error, f"head bucket {self._bucket}") from error
        _LOGGER.info("bucket_created", bucket=self._bucket, region=self._config.region)
        create_kwargs: dict[str, Any] = {"Bucket": self._bucket}
        if self._config.flavor == "aws" and self._config.region != "us-east-1":
            create_kwargs["CreateBucketConfiguration"] = {
                "LocationConstraint": self._config.region
            }
        self._call(lambda: self._client.create_bucket(**create_kwargs), "create bucket")

    def init(self) -> None:
        _LOGGER.debug("s3_datastore_ready", bucket=self._bucket, prefix=self._prefix)

    def put(self, key: str, data: bytes) -> None:
        object_key = self._object_key(key)
        self._call(
            lambda: self._client.put_object(Bucket=self._bucket, Key=object_key, Body=data),
            f"put {key}",
        )

    def get(self, key: str) -> Iterator[bytes]:
        object_key = self._object_key(key)
        response = self._call(
            lambda: self._client.get_object(Bucket=self._bucket, Key=object_key),
            f"get {key}",
        )
        return _iter_body_blocks(key, response["Body"])

    def list(self, prefix: str) -> list[str]:
        return self._call(lambda: self._list_keys(prefix), f"list {prefix}")

    def delete(self, key: str) -> None:
        object_key = self._object_key(key)
        self._call(
            lambda: self._client.delete_object(Bucket=self._bucket, Key=object_key),
            f"delete {key}",
        )

    def exists(self, key: str) -> bool:
        object_key = self._object_key(key)
        try:
            self._call(
                lambda: self._client.head_object(Bucket=self._bucket, Key=object_key),
                f"head {key}",
            )
        except VaultObjectNotFoundError:
            return False
        return True

    def _list_keys(self, prefix: str) -> list[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self._bucket, Prefix=self._object_key(prefix)):
            for item in page.get("Contents", []):
                keys.append(str(item["Key"])[len(self._prefix) :])
        return sorted(keys)

    def _object_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _call(self, operation: Callable[[], T], description: str) -> T:
        """Run one client call with error translation and backoff."""

        def translated() -> T:
            try:
                return operation()
            except (ClientError, BotoCoreError) as error:
                raise _translate_error(error, description) from error

        return call_with_backoff(translated, description, self._retry_policy, self._sleep)


def create_s3_client(config: S3Config) -> Any:
    """Create a boto3 S3 client for the configured flavor.

    Args:
        config: S3 backend settings.

    Returns:
        Boto3 S3 client.
    """
    session_kwargs: dict[str, str] = {"region_name": config.region}
    if config.profile:
        session_kwargs["profile_name"] = config.profile
    session = boto3.session.Session(**session_kwargs)
    client_kwargs: dict[str, Any] = {
        # retries are handled by call_with_backoff
        "config": BotoConfig(retries={"max_attempts": 1, "mode": "standard"}),
    }
    if config.endpoint:
        client_kwargs["endpoint_url"] = config.endpoint
    if config.access_key_id and config.secret_access_key:
        client_kwargs["aws_access_key_id"] = config.access_key_id
        client_kwargs["aws_secret_access_key"] = config.secret_access_key
    if config.session_token:
        client_kwargs["aws_session_token"] = config.session_token
    return session.client("s3", **client_kwargs)


def _iter_body_blocks(key: str, body: Any) -> Iterator[bytes]:
    try:
        for block in body.iter_chunks(chunk_size=READ_BLOCK_SIZE):
            if block:
                yield block
    except (ClientError, BotoCoreError) as error:
        raise _translate_error(error, f"read {key}") from error
    finally:
        body.close()


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _translate_error(error: Exception, description: str) -> VaultDatastoreError:
    """Map botocore failures onto the datastore error taxonomy."""
    if isinstance(error, ClientError):
        code = _error_code(error)
        status = int(error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0) or 0)
        if code in _NOT_FOUND_CODES:
            return VaultObjectNotFoundError(f"Object not found during {description} ({code}).")
        retryable = code in _TRANSIENT_CODES or status == 429 or status >= 500
        hint = "Retry later." if retryable else "Check bucket permissions and credentials."
        return VaultDatastoreError(
            f"S3 {description} failed with {code or status}: {error}. {hint}",
            retryable=retryable,
        )
    if isinstance(error, (BotoConnectionError, HTTPClientError)):
        return VaultDatastoreError(
            f"S3 {description} failed with a connection error: {error}. Retry later.",
            retryable=True,
        )
    return VaultDatastoreError(
        f"S3 {description} failed: {error}. Check credentials and endpoint settings."
    )
