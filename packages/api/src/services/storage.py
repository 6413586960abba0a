# This project was developed with assistance from AI tools.
"""S3-compatible object storage for actor documents.

Uses boto3 synchronous client run in a thread-pool executor for async
compatibility. Clients upload directly with a presigned PUT URL; the API
only signs URLs, checks that objects landed and deletes them. The module
exposes a singleton initialised at app startup via ``init_storage_service()``.
"""

import asyncio
import logging
import os
from functools import partial

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import Settings
from ..core.errors import InfrastructureError

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


class StorageService:
    """Thin wrapper around a boto3 S3 client."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        region: str = "us-east-1",
    ):
        self._bucket = bucket
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=BotoConfig(
                signature_version="s3v4",
                s3={
                    "addressing_style": "path",
                    "use_accelerate_endpoint": False,
                },
            ),
        )
        self._ensure_bucket()

    def _ensure_bucket(self) -> None:
        """Create the bucket if it doesn't already exist (dev convenience)."""
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except ClientError:
            logger.info("Creating S3 bucket: %s", self._bucket)
            self._client.create_bucket(Bucket=self._bucket)

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(func, *args, **kwargs))
        except (ClientError, BotoCoreError) as exc:
            raise InfrastructureError(f"Storage request failed: {exc}") from exc

    async def generate_upload_url(self, object_key: str, content_type: str, expires_in: int) -> str:
        """Return a presigned PUT URL bound to the content type."""
        return await self._run(
            self._client.generate_presigned_url,
            "put_object",
            Params={"Bucket": self._bucket, "Key": object_key, "ContentType": content_type},
            ExpiresIn=expires_in,
        )

    async def get_download_url(
        self,
        object_key: str,
        expires_in: int = 3600,
        filename: str | None = None,
    ) -> str:
        """Return a presigned GET URL for the given object key."""
        params = {"Bucket": self._bucket, "Key": object_key}
        if filename:
            params["ResponseContentDisposition"] = f'attachment; filename="{filename}"'
        return await self._run(
            self._client.generate_presigned_url,
            "get_object",
            Params=params,
            ExpiresIn=expires_in,
        )

    async def object_exists(self, object_key: str) -> bool:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                partial(self._client.head_object, Bucket=self._bucket, Key=object_key),
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return False
            raise InfrastructureError(f"Storage request failed: {exc}") from exc
        except BotoCoreError as exc:
            raise InfrastructureError(f"Storage request failed: {exc}") from exc
        return True

    async def delete_object(self, object_key: str) -> None:
        await self._run(self._client.delete_object, Bucket=self._bucket, Key=object_key)

    @staticmethod
    def build_object_key(
        policy_id: int,
        actor_type: str,
        actor_id: int,
        category: str,
        document_id: int,
        filename: str,
    ) -> str:
        """Build the S3 object key: {policy}/{actor_type}/{actor}/{category}/{document}-{name}.

        Strips path components from filename to prevent path traversal attacks.
        """
        safe_name = os.path.basename(filename.replace("\\", "/")) or f"doc-{document_id}"
        return f"{policy_id}/{actor_type}/{actor_id}/{category}/{document_id}-{safe_name}"


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_service: StorageService | None = None


def init_storage_service(cfg: Settings) -> StorageService:
    """Initialise the singleton (called once from app lifespan)."""
    global _service  # noqa: PLW0603
    _service = StorageService(
        endpoint=cfg.S3_ENDPOINT,
        access_key=cfg.S3_ACCESS_KEY,
        secret_key=cfg.S3_SECRET_KEY,
        bucket=cfg.S3_BUCKET,
        region=cfg.S3_REGION,
    )
    logger.info("StorageService initialised (bucket=%s)", cfg.S3_BUCKET)
    return _service


def get_storage_service() -> StorageService:
    """Return the initialised StorageService singleton."""
    if _service is None:
        raise InfrastructureError("StorageService not initialised -- call init_storage_service() first")
    return _service
