"""
S3 Storage Service

Every image the platform shows lives in one S3 bucket:
- employment/<uuid>.jpg          job posting images
- profile/<email>/<filename>     profile pictures
- <year>/<groupName>/<filename>  senior project designs and member photos
- banner/<id>                    main page banners

The database only stores the object key; URLs are presigned on read.
"""

import logging
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import get_settings
from app.core.errors import StorageError

settings = get_settings()
logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NotFound", "NoSuchKey"}


class S3Storage:
    """
    Thin wrapper around a boto3 S3 client bound to the configured bucket.
    """

    def __init__(self, client=None, bucket: str = None):
        self.client = client or boto3.client(
            "s3",
            aws_access_key_id=settings.s3_access_key_id or None,
            aws_secret_access_key=settings.s3_secret_access_key or None,
            region_name=settings.s3_region,
        )
        self.bucket = bucket or settings.s3_bucket_name

    def exists(self, key: Optional[str]) -> Optional[dict]:
        """HEAD the object. None when the key is empty or missing."""
        if not key:
            return None
        try:
            return self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                return None
            raise StorageError(f"head_object failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"head_object failed for {key}: {e}") from e

    def upload_file(self, data: bytes, key: str, content_type: Optional[str] = None) -> str:
        """Upload bytes and return the stored key."""
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"put_object failed for {key}: {e}") from e
        logger.info("Uploaded %s (%d bytes)", key, len(data))
        return key

    def get_object_url(self, key: Optional[str]) -> Optional[str]:
        """Presigned GET URL, or None when the object does not exist."""
        if not self.exists(key):
            return None
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"presign failed for {key}: {e}") from e

    def get_public_url(self, key: Optional[str]) -> Optional[str]:
        """Object URL without the signature query (for public-read objects)."""
        url = self.get_object_url(key)
        return url.split("?")[0] if url else None

    def delete_object(self, key: Optional[str]) -> bool:
        """Delete the object if it exists. Returns whether anything was deleted."""
        if not self.exists(key):
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"delete_object failed for {key}: {e}") from e
        logger.info("Deleted %s", key)
        return True


# Singleton instance
_storage: S3Storage = None


def get_storage() -> S3Storage:
    """Get or create the S3 storage client (singleton pattern)"""
    global _storage
    if _storage is None:
        _storage = S3Storage()
    return _storage


def test_s3_connection() -> bool:
    """Check that the configured bucket is reachable."""
    try:
        storage = get_storage()
        storage.client.head_bucket(Bucket=storage.bucket)
        return True
    except Exception as e:
        logger.error("S3 connection failed: %s", e)
        return False
