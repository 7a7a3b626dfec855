"""S3 service for material and group file storage."""

import asyncio
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from studpal.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class StorageError(Exception):
    """Raised when an object-storage operation fails."""


def user_prefix(user_id) -> str:
    """Key prefix under which every object uploaded by a user lives."""
    return f"users/{user_id}/"


class S3Service:
    """Service for interacting with S3 (or an S3-compatible store)."""

    def __init__(self):
        """Initialize S3 client with credentials from settings."""
        client_kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
            "region_name": settings.aws_s3_region,
        }
        # Support MinIO / LocalStack by pointing to a custom endpoint
        if settings.aws_s3_endpoint_url:
            client_kwargs["endpoint_url"] = settings.aws_s3_endpoint_url

        self.s3_client = boto3.client("s3", **client_kwargs)
        self.bucket = settings.aws_s3_bucket

    async def generate_presigned_upload_url(
        self,
        file_key: str,
        content_type: str,
        expiration: int = 300,
    ) -> dict:
        """
        Generate presigned POST data for a direct client upload.

        Args:
            file_key: S3 object key (path) for the file
            content_type: MIME type the upload must declare
            expiration: URL expiration time in seconds (default: 5 minutes)

        Returns:
            Dictionary with presigned POST data including url and fields

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            return await asyncio.to_thread(
                self.s3_client.generate_presigned_post,
                self.bucket,
                file_key,
                Fields={"Content-Type": content_type},
                Conditions=[
                    {"Content-Type": content_type},
                    ["content-length-range", 1, settings.max_upload_size_bytes],
                ],
                ExpiresIn=expiration,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to generate presigned upload URL: {e}") from e

    async def generate_presigned_download_url(self, file_key: str, expiration: int = 300) -> str:
        """Generate a presigned GET URL for downloading an object."""
        try:
            return await asyncio.to_thread(
                self.s3_client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": file_key},
                ExpiresIn=expiration,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to generate presigned download URL: {e}") from e

    async def delete_object(self, file_key: str) -> None:
        """
        Delete an object from S3.

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            await asyncio.to_thread(self.s3_client.delete_object, Bucket=self.bucket, Key=file_key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete object from S3: {e}") from e

    async def get_object_size(self, file_key: str) -> int:
        """
        Return the stored size of an object in bytes.

        Raises:
            StorageError: If the object is missing or S3 fails
        """
        try:
            response = await asyncio.to_thread(
                self.s3_client.head_object, Bucket=self.bucket, Key=file_key
            )
            return int(response["ContentLength"])
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to read object metadata from S3: {e}") from e


# Singleton instance
s3_service = S3Service()
