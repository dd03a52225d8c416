import asyncio
import logging
from pathlib import Path

import aioboto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from scriptura.errors import StorageError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class StorageClient:
    """S3-compatible object storage client (Backblaze B2, Spaces, MinIO, ...)."""

    def __init__(
        self,
        bucket: str,
        *,
        endpoint_url: str | None = None,
        region: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        public_base_url: str | None = None,
    ):
        self.bucket = bucket
        self._session = aioboto3.Session()
        self._client_params = {
            "service_name": "s3",
            "region_name": region,
            "endpoint_url": endpoint_url,
            "aws_access_key_id": access_key,
            "aws_secret_access_key": secret_key,
            "config": Config(signature_version="s3v4"),
        }
        base = public_base_url or f"{(endpoint_url or '').rstrip('/')}/{bucket}"
        self.public_base_url = base.rstrip("/")

    @classmethod
    def from_settings(cls, settings) -> "StorageClient":
        return cls(
            settings.storage_bucket,
            endpoint_url=settings.storage_endpoint,
            region=settings.storage_region,
            access_key=settings.storage_key,
            secret_key=settings.storage_secret,
            public_base_url=settings.storage_public_url,
        )

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    async def exists(self, key: str) -> bool:
        """Return True if *key* exists in the bucket."""
        try:
            async with self._session.client(**self._client_params) as s3:
                await s3.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                return False
            raise StorageError(f"Existence check failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Existence check failed for {key}: {e}") from e

    async def download_bytes(self, key: str) -> bytes:
        """Download an object and return its body."""
        try:
            async with self._session.client(**self._client_params) as s3:
                response = await s3.get_object(Bucket=self.bucket, Key=key)
                async with response["Body"] as stream:
                    return await stream.read()
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Download failed for {key}: {e}") from e

    async def upload_file(self, key: str, file_path: str | Path, content_type: str) -> str:
        """Upload a local file as a public object and return its URL.

        The local file is removed once the attempt completes, whether it
        succeeded or not.
        """
        path = Path(file_path)
        try:
            data = await asyncio.to_thread(path.read_bytes)
            async with self._session.client(**self._client_params) as s3:
                await s3.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=data,
                    ContentType=content_type,
                    ACL="public-read",
                )
            url = self.public_url(key)
            logger.info(f"[Storage] Upload successful: {key} -> {url}")
            return url
        except (ClientError, BotoCoreError, OSError) as e:
            logger.error(f"[Storage] Upload failed for {key}: {e}")
            raise StorageError(f"Upload failed for key {key}: {e}") from e
        finally:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to delete local file {path} after upload attempt: {e}")
