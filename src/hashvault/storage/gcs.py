"""Google Cloud Storage object store."""

import asyncio
import logging
from typing import Any, AsyncIterator, Callable, Optional

from google.api_core import retry
from google.api_core.exceptions import GoogleAPIError, NotFound
from google.cloud import storage

from hashvault.core.exceptions import ObjectNotFoundError, StoreError
from hashvault.storage.base import (
    DEFAULT_CONTENT_TYPE,
    ObjectStore,
    StoredObject,
    iter_readable,
)

logger = logging.getLogger(__name__)

# Resumable upload chunks must be a multiple of 256KB
WRITE_CHUNK_ALIGNMENT = 256 * 1024


class GCSObjectStore(ObjectStore):
    """Object store backed by a Google Cloud Storage bucket."""

    def __init__(
        self,
        bucket_name: str,
        project_id: str = "",
        write_chunk_size: int = 8 * 1024 * 1024,
        chunk_size: int = 65536,
    ):
        if not bucket_name:
            raise ValueError("UPLOAD_BUCKET_NAME not configured")

        self.bucket_name = bucket_name
        self.project_id = project_id
        self.write_chunk_size = max(
            WRITE_CHUNK_ALIGNMENT,
            write_chunk_size - write_chunk_size % WRITE_CHUNK_ALIGNMENT,
        )
        self.chunk_size = chunk_size
        self._client: Optional[storage.Client] = None
        self._bucket: Optional[storage.Bucket] = None

        # Configure retry with exponential backoff for idempotent calls
        self.retry_policy = retry.Retry(
            initial=1.0,
            maximum=10.0,
            multiplier=2.0,
            deadline=60.0,
            predicate=retry.if_transient_error,
        )

    def _get_bucket(self) -> storage.Bucket:
        """Lazy-load and cache GCS bucket."""
        if self._bucket is None:
            self._client = storage.Client(project=self.project_id or None)
            self._bucket = self._client.bucket(self.bucket_name)
        return self._bucket

    async def _backend(self, operation: str, key: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a blocking GCS call in a worker thread, mapping its failures."""
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except GoogleAPIError as e:
            raise StoreError(
                operation,
                key,
                type(e).__name__,
                status_code=getattr(e, "code", None),
                detail=getattr(e, "message", None) or str(e),
            ) from e
        except Exception as e:
            raise StoreError(operation, key, str(e)) from e

    async def put_stream(
        self, key: str, chunks: AsyncIterator[bytes], content_type: str
    ) -> None:
        """Write chunks through a resumable upload.

        The writer is only closed after the stream is drained. On any failure
        it is terminated instead, which cancels the resumable session, so a
        failed stream never finalizes a partial object.
        """
        blob = self._get_bucket().blob(key)
        writer = await self._backend(
            "put",
            key,
            blob.open,
            "wb",
            chunk_size=self.write_chunk_size,
            content_type=content_type,
        )
        try:
            async for chunk in chunks:
                await self._backend("put", key, writer.write, chunk)
        except BaseException:
            await self._terminate(key, writer)
            raise
        await self._backend("put", key, writer.close)

        logger.debug("Stored object", extra={"key": key, "content_type": content_type})

    @staticmethod
    async def _terminate(key: str, writer: Any) -> None:
        """Cancel a resumable upload, keeping the original failure."""
        try:
            await asyncio.to_thread(writer.terminate)
        except Exception:
            logger.warning(
                "Failed to cancel resumable upload", extra={"key": key}, exc_info=True
            )

    async def copy(self, src_key: str, dst_key: str) -> None:
        bucket = self._get_bucket()
        await self._backend(
            "copy",
            src_key,
            bucket.copy_blob,
            bucket.blob(src_key),
            bucket,
            new_name=dst_key,
            retry=self.retry_policy,
        )

    async def delete(self, key: str) -> None:
        blob = self._get_bucket().blob(key)
        try:
            await self._backend("delete", key, blob.delete, retry=self.retry_policy)
        except StoreError as e:
            # Already gone, e.g. the write failed before the object existed
            if not isinstance(e.__cause__, NotFound):
                raise

    async def get_stream(self, key: str) -> StoredObject:
        blob = self._get_bucket().blob(key)
        try:
            await asyncio.to_thread(blob.reload, retry=self.retry_policy)
        except NotFound as e:
            raise ObjectNotFoundError(key) from e
        except GoogleAPIError as e:
            raise StoreError(
                "get",
                key,
                type(e).__name__,
                status_code=getattr(e, "code", None),
                detail=getattr(e, "message", None) or str(e),
            ) from e

        reader = await self._backend("get", key, blob.open, "rb", chunk_size=self.chunk_size)
        return StoredObject(
            key=key,
            content_type=blob.content_type or DEFAULT_CONTENT_TYPE,
            size=blob.size,
            chunks=iter_readable(reader, self.chunk_size),
        )

    async def list_keys(self, prefix: str = "") -> list[str]:
        bucket = self._get_bucket()

        def _list() -> list[str]:
            return [b.name for b in self._client.list_blobs(bucket, prefix=prefix or None)]

        return await self._backend("list", prefix, _list)

    def get_backend_name(self) -> str:
        return "gcs"
