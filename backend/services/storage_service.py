"""Avatar storage — uploads images to MinIO and deletes them."""

import logging
import os
import uuid
from dataclasses import dataclass

import urllib3
from minio import Minio
from minio.error import S3Error

from backend.core.config import Settings
from backend.core.exceptions import StorageError

logger = logging.getLogger("saraha.storage")


@dataclass
class StoredImage:
    url: str
    storage_id: str


class AvatarStorage:
    """Stores profile pictures in a MinIO bucket."""

    def __init__(self, settings: Settings):
        timeout = settings.STORAGE_TIMEOUT_SECONDS
        self.client = Minio(
            settings.MINIO_ENDPOINT,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_SECURE,
            http_client=urllib3.PoolManager(
                timeout=urllib3.Timeout(connect=timeout, read=timeout),
                retries=False,
            ),
        )
        self.bucket = settings.MINIO_BUCKET
        self.public_url = settings.MINIO_PUBLIC_URL.rstrip("/")

    def ensure_bucket(self) -> None:
        """Create the default bucket if it doesn't exist."""
        if not self.client.bucket_exists(self.bucket):
            self.client.make_bucket(self.bucket)

    def upload_image(self, path: str, folder: str, content_type: str) -> StoredImage:
        """Upload a local file and return its public URL and object key."""
        ext = os.path.splitext(path)[1].lower()
        key = f"{folder.strip('/')}/{uuid.uuid4().hex}{ext}"
        try:
            self.client.fput_object(self.bucket, key, path, content_type=content_type)
        except (S3Error, urllib3.exceptions.HTTPError) as e:
            logger.error("Upload to MinIO failed: %s", e)
            raise StorageError("something went wrong on the website's server")
        return StoredImage(url=f"{self.public_url}/{self.bucket}/{key}", storage_id=key)

    def delete_image(self, storage_id: str) -> None:
        """Delete an object from MinIO."""
        try:
            self.client.remove_object(self.bucket, storage_id)
        except (S3Error, urllib3.exceptions.HTTPError) as e:
            logger.error("Delete from MinIO failed: %s", e)
            raise StorageError("something went wrong on the website's server")
