"""
Asynchronous facade over a boto3 S3 client, scoped to one bucket.

boto3 is blocking, so every call is pushed onto Starlette's thread pool. That
gives every storage operation the same shape: an awaitable that suspends the
request, never the event loop.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from pdf_gateway.errors import GatewayError, translate_store_error
from pdf_gateway.settings import Settings

try:
    from mypy_boto3_s3 import S3Client
except ImportError:
    ...

logger = logging.getLogger(__name__)


def create_s3_client(settings: Settings) -> "S3Client":
    """Create an S3 client from explicit settings; falls back to boto3's credential chain."""
    client_kwargs: Dict[str, Any] = {"region_name": settings.aws_region}

    if settings.aws_access_key_id:
        client_kwargs["aws_access_key_id"] = settings.aws_access_key_id
    if settings.aws_secret_access_key:
        client_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
    if settings.aws_endpoint_url:
        client_kwargs["endpoint_url"] = settings.aws_endpoint_url

    logger.debug("Creating S3 client for region %s (endpoint: %s)", settings.aws_region, settings.aws_endpoint_url)
    return boto3.client("s3", **client_kwargs)


class ObjectStore:
    """Key/blob operations against a single bucket."""

    def __init__(
        self,
        bucket_name: str,
        s3_client: "S3Client",
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        transfer_config: Optional[TransferConfig] = None,
    ):
        self.bucket_name = bucket_name
        self.region = region
        self.endpoint_url = endpoint_url
        self._client = s3_client
        self._transfer_config = transfer_config or TransferConfig()

    @classmethod
    def from_settings(cls, settings: Settings, s3_client: Optional["S3Client"] = None) -> "ObjectStore":
        transfer_config = TransferConfig(
            multipart_threshold=settings.multipart_chunk_bytes,
            multipart_chunksize=settings.multipart_chunk_bytes,
            max_concurrency=settings.transfer_max_concurrency,
        )
        return cls(
            bucket_name=settings.s3_bucket_name,
            s3_client=s3_client or create_s3_client(settings),
            region=settings.aws_region,
            endpoint_url=settings.aws_endpoint_url,
            transfer_config=transfer_config,
        )

    async def _call(self, operation: str, func, *args, key: Optional[str] = None, **kwargs):
        try:
            return await run_in_threadpool(func, *args, **kwargs)
        except GatewayError:
            raise
        except (ClientError, BotoCoreError) as err:
            logger.error("S3 %s failed for bucket=%s key=%s: %s", operation, self.bucket_name, key, err)
            raise translate_store_error(err, key=key) from err

    async def put_stream(self, key: str, stream, metadata: Dict[str, str], content_type: str) -> None:
        """
        Stream ``stream`` into the bucket under ``key``.

        Returns only after S3 has confirmed the object; a failure part-way
        through aborts the multipart upload so nothing partial is left behind.
        """
        await self._call(
            "upload",
            self._client.upload_fileobj,
            stream,
            self.bucket_name,
            key,
            ExtraArgs={"ContentType": content_type, "Metadata": metadata},
            Config=self._transfer_config,
            key=key,
        )

    async def get_stream(self, key: str) -> Dict[str, Any]:
        """Open ``key`` for reading; the response ``Body`` is an unread stream."""
        return await self._call("get_object", self._client.get_object, Bucket=self.bucket_name, Key=key, key=key)

    async def list(self, max_keys: int) -> List[Dict[str, Any]]:
        """First page of objects in the bucket, at most ``max_keys`` entries."""
        response = await self._call("list_objects_v2", self._client.list_objects_v2, Bucket=self.bucket_name, MaxKeys=max_keys)
        return response.get("Contents", [])[:max_keys]

    async def delete(self, key: str) -> Dict[str, Any]:
        return await self._call("delete_object", self._client.delete_object, Bucket=self.bucket_name, Key=key, key=key)

    async def sign_get(self, key: str, ttl_seconds: int) -> str:
        return await self._call(
            "generate_presigned_url",
            self._client.generate_presigned_url,
            "get_object",
            Params={"Bucket": self.bucket_name, "Key": key},
            ExpiresIn=ttl_seconds,
            key=key,
        )

    def object_url(self, key: str) -> str:
        """Public location of ``key``, in the same form S3 reports for uploads."""
        quoted_key = quote(key, safe="/")
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{quoted_key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{quoted_key}"
