"""
S3-based storage backend using one object per record.

Object key: {prefix}/{record key}, e.g. checkpoints/pebble/0000000042.rec.
Zero-padded indices keep lexicographic order equal to index order.

Paginator: boto3 list_objects_v2 returns max 1000 keys per call, so listing
always goes through a paginator.
"""

import os
from typing import Iterator, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..core.errors import StorageFailure
from .store import StorageBackend

# Header lines are small; one ranged GET normally covers them.
HEADER_RANGE_BYTES = 4096


class S3Storage(StorageBackend):
    """
    S3 (or S3-compatible: MinIO, localstack) storage.

    Credentials come from the environment (AWS_ACCESS_KEY_ID, ...).
    Set PEBBLE_S3_SKIP_BUCKET_CHECK=true to skip the head_bucket check.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "checkpoints",
        endpoint_url: Optional[str] = None,
        region: str = "us-east-1",
    ) -> None:
        """
        Initialize S3 storage.

        Args:
            bucket: S3 bucket name
            prefix: Key prefix for records (default: "checkpoints")
            endpoint_url: S3 endpoint URL (for MinIO, localstack, etc.)
            region: AWS region (default: us-east-1)

        Raises:
            StorageFailure: If the client cannot be created or the bucket
                is not accessible
        """
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.endpoint_url = endpoint_url
        self.region = region

        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                region_name=region,
            )
        except (BotoCoreError, ValueError) as e:
            raise StorageFailure(f"Failed to create S3 client: {e}") from e

        if os.getenv("PEBBLE_S3_SKIP_BUCKET_CHECK", "").lower() != "true":
            try:
                self.s3_client.head_bucket(Bucket=bucket)
            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "Unknown")
                raise StorageFailure(
                    f"Bucket '{bucket}' not accessible (code: {error_code})"
                ) from e
            except BotoCoreError as e:
                raise StorageFailure(f"Bucket '{bucket}' not accessible: {e}") from e

    def _object_key(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    def _record_key(self, object_key: str) -> Optional[str]:
        if not self.prefix:
            return object_key
        head = self.prefix + "/"
        if not object_key.startswith(head):
            return None
        return object_key[len(head) :]

    def write(self, key: str, data: bytes) -> None:
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=self._object_key(key),
                Body=data,
                ContentType="application/octet-stream",
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageFailure(f"write {key} to S3 failed: {e}") from e

    def _get(self, key: str, byte_range: Optional[str] = None) -> bytes:
        kwargs = {"Bucket": self.bucket, "Key": self._object_key(key)}
        if byte_range is not None:
            kwargs["Range"] = byte_range
        try:
            response = self.s3_client.get_object(**kwargs)
            return response["Body"].read()
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("NoSuchKey", "404"):
                raise StorageFailure(f"missing record {key}") from e
            raise StorageFailure(f"read {key} from S3 failed (code: {error_code})") from e
        except BotoCoreError as e:
            raise StorageFailure(f"read {key} from S3 failed: {e}") from e

    def read(self, key: str) -> bytes:
        return self._get(key)

    def read_header(self, key: str) -> bytes:
        head = self._get(key, byte_range=f"bytes=0-{HEADER_RANGE_BYTES - 1}")
        header, sep, _ = head.partition(b"\n")
        if sep:
            return header
        return self.read(key).partition(b"\n")[0]

    def keys(self, prefix: str = "") -> Iterator[str]:
        paginator = self.s3_client.get_paginator("list_objects_v2")
        found = []
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self._object_key(prefix)):
                for obj in page.get("Contents", []):
                    key = self._record_key(obj["Key"])
                    if key is not None and key.startswith(prefix):
                        found.append(key)
        except (BotoCoreError, ClientError) as e:
            raise StorageFailure(f"listing s3://{self.bucket}/{self.prefix} failed: {e}") from e
        found.sort()
        return iter(found)
