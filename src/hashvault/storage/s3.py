"""S3-compatible object store."""

import asyncio
import logging
from typing import Any, AsyncIterator, Callable, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from hashvault.core.exceptions import ObjectNotFoundError, StoreError
from hashvault.storage.base import (
    DEFAULT_CONTENT_TYPE,
    ObjectStore,
    StoredObject,
    iter_readable,
)

logger = logging.getLogger(__name__)

MIN_PART_SIZE = 5 * 1024 * 1024

# Connection-level failures worth another attempt
TRANSIENT_ERRORS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}


def to_store_error(operation: str, key: str, error: Exception) -> StoreError:
    """Collapse a botocore exception into a StoreError with backend detail."""
    if isinstance(error, ClientError):
        err = error.response.get("Error", {})
        status_code = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        return StoreError(
            operation,
            key,
            err.get("Code", "Unknown"),
            status_code=status_code,
            detail=err.get("Message"),
        )
    return StoreError(operation, key, str(error))


def is_not_found(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code")
    status_code = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in NOT_FOUND_CODES or status_code == 404


class S3ObjectStore(ObjectStore):
    """Object store backed by an S3-compatible bucket.

    Streamed writes hold at most one multipart part in memory. Streams that
    fit in a single part are written with one PUT.
    """

    def __init__(
        self,
        bucket_name: str,
        region: str = "",
        endpoint_url: str = "",
        access_key: str = "",
        secret_key: str = "",
        path_style: bool = True,
        part_size: int = 8 * 1024 * 1024,
        chunk_size: int = 65536,
        retry_attempts: int = 3,
        retry_wait: float = 0.5,
    ):
        if not bucket_name:
            raise ValueError("UPLOAD_BUCKET_NAME not configured")

        self.bucket_name = bucket_name
        self.part_size = max(part_size, MIN_PART_SIZE)
        self.chunk_size = chunk_size
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait

        cfg = BotoConfig(s3={"addressing_style": "path" if path_style else "virtual"})
        self.client = boto3.client(
            "s3",
            endpoint_url=endpoint_url or None,
            region_name=region or None,
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            config=cfg,
        )

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_wait, max=5),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )

    async def _call(self, fn: Callable[..., Any], **kwargs: Any) -> Any:
        """Run a blocking client call in a worker thread with retries."""
        return await asyncio.to_thread(self._retrying(), fn, **kwargs)

    async def put_stream(
        self, key: str, chunks: AsyncIterator[bytes], content_type: str
    ) -> None:
        buffer = bytearray()
        upload_id: Optional[str] = None
        parts: list[dict] = []

        try:
            async for chunk in chunks:
                buffer.extend(chunk)
                while len(buffer) >= self.part_size:
                    if upload_id is None:
                        upload_id = await self._create_multipart_upload(key, content_type)
                    body = bytes(buffer[: self.part_size])
                    del buffer[: self.part_size]
                    parts.append(await self._upload_part(key, upload_id, len(parts) + 1, body))

            if upload_id is None:
                await self._call(
                    self.client.put_object,
                    Bucket=self.bucket_name,
                    Key=key,
                    Body=bytes(buffer),
                    ContentType=content_type,
                )
            else:
                if buffer:
                    parts.append(await self._upload_part(key, upload_id, len(parts) + 1, bytes(buffer)))
                await self._call(
                    self.client.complete_multipart_upload,
                    Bucket=self.bucket_name,
                    Key=key,
                    UploadId=upload_id,
                    MultipartUpload={"Parts": parts},
                )
        except (BotoCoreError, ClientError) as e:
            await self._abort_multipart_upload(key, upload_id)
            raise to_store_error("put", key, e) from e
        except BaseException:
            await self._abort_multipart_upload(key, upload_id)
            raise

        logger.debug(
            "Stored object",
            extra={"key": key, "content_type": content_type, "parts": len(parts)},
        )

    async def _create_multipart_upload(self, key: str, content_type: str) -> str:
        response = await self._call(
            self.client.create_multipart_upload,
            Bucket=self.bucket_name,
            Key=key,
            ContentType=content_type,
        )
        return response["UploadId"]

    async def _upload_part(self, key: str, upload_id: str, part_number: int, body: bytes) -> dict:
        response = await self._call(
            self.client.upload_part,
            Bucket=self.bucket_name,
            Key=key,
            UploadId=upload_id,
            PartNumber=part_number,
            Body=body,
        )
        return {"ETag": response["ETag"], "PartNumber": part_number}

    async def _abort_multipart_upload(self, key: str, upload_id: Optional[str]) -> None:
        if upload_id is None:
            return
        try:
            await self._call(
                self.client.abort_multipart_upload,
                Bucket=self.bucket_name,
                Key=key,
                UploadId=upload_id,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to abort multipart upload",
                extra={"key": key, "upload_id": upload_id, "error": str(e)},
            )

    async def copy(self, src_key: str, dst_key: str) -> None:
        try:
            await self._call(
                self.client.copy_object,
                Bucket=self.bucket_name,
                Key=dst_key,
                CopySource={"Bucket": self.bucket_name, "Key": src_key},
            )
        except (BotoCoreError, ClientError) as e:
            raise to_store_error("copy", src_key, e) from e

    async def delete(self, key: str) -> None:
        try:
            await self._call(self.client.delete_object, Bucket=self.bucket_name, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise to_store_error("delete", key, e) from e

    async def get_stream(self, key: str) -> StoredObject:
        try:
            response = await self._call(self.client.get_object, Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if is_not_found(e):
                raise ObjectNotFoundError(key) from e
            raise to_store_error("get", key, e) from e
        except BotoCoreError as e:
            raise to_store_error("get", key, e) from e

        return StoredObject(
            key=key,
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
            size=response.get("ContentLength"),
            chunks=iter_readable(response["Body"], self.chunk_size),
        )

    async def list_keys(self, prefix: str = "") -> list[str]:
        def _list() -> list[str]:
            paginator = self.client.get_paginator("list_objects_v2")
            return [
                obj["Key"]
                for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix)
                for obj in page.get("Contents", [])
            ]

        try:
            return await self._call(_list)
        except (BotoCoreError, ClientError) as e:
            raise to_store_error("list", prefix, e) from e

    def get_backend_name(self) -> str:
        return "s3"
