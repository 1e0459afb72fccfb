"""Streaming content-addressed upload service."""

import logging
from typing import AsyncIterator, Optional, Union

from starlette.datastructures import UploadFile

from hashvault.core.exceptions import (
    GatewayError,
    ObjectNotFoundError,
    StoreError,
    StreamError,
)
from hashvault.core.logging import object_key_context
from hashvault.storage.base import DEFAULT_CONTENT_TYPE, ObjectStore, StoredObject
from hashvault.uploads.digest import DigestingStream
from hashvault.uploads.keys import derive_final_key, new_temporary_key

logger = logging.getLogger(__name__)


async def iter_upload_file(
    upload: Union[UploadFile, str], chunk_size: int = 65536
) -> AsyncIterator[bytes]:
    """Read a multipart field chunk by chunk.

    Plain text fields are stored as their UTF-8 bytes.
    """
    if isinstance(upload, str):
        data = upload.encode()
        for start in range(0, len(data), chunk_size):
            yield data[start:start + chunk_size]
        return

    while chunk := await upload.read(chunk_size):
        yield chunk


class StreamingDigestUploader:
    """Writes uploads to a temporary key and promotes them by digest.

    Every upload is written to ``tmp/<random>`` while its SHA-256 is folded
    in chunk by chunk. Once the write completes the temporary object is
    copied to ``<digest>[.<ext>]``. The temporary object is deleted on every
    exit path; a failed delete is logged and never changes the outcome.
    """

    def __init__(self, store: ObjectStore):
        self.store = store

    async def upload(
        self,
        chunks: AsyncIterator[bytes],
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> str:
        """Store a byte stream under its content-addressed key.

        Args:
            chunks: Inbound byte stream
            filename: Client filename, used only for its extension
            content_type: Client MIME type, stored as the object content type

        Returns:
            The final object key

        Raises:
            StreamError: If the inbound stream fails
            StoreError: If the write or the promotion copy fails
        """
        temp_key = new_temporary_key()
        stream = DigestingStream(chunks)
        token = None
        try:
            try:
                await self._write(temp_key, stream, content_type or DEFAULT_CONTENT_TYPE)
                final_key = derive_final_key(stream.hexdigest(), filename)
                token = object_key_context.set(final_key)
                await self._promote(temp_key, final_key)
            finally:
                await self._discard(temp_key)

            logger.info(
                "Upload completed",
                extra={"key": final_key, "size_bytes": stream.size, "content_type": content_type},
            )
            return final_key
        finally:
            if token is not None:
                object_key_context.reset(token)

    async def _write(self, temp_key: str, stream: DigestingStream, content_type: str) -> None:
        try:
            await self.store.put_stream(temp_key, stream, content_type)
        except StreamError as e:
            logger.warning(
                "Upload stream aborted",
                extra={"temp_key": temp_key, "size_bytes": stream.size, "error": str(e)},
            )
            raise
        except StoreError as e:
            self._log_store_error("Failed to write temporary object", e)
            raise
        except GatewayError:
            raise
        except Exception as e:
            logger.error("Unexpected error writing temporary object", exc_info=True)
            raise StoreError("put", temp_key, str(e)) from e

        if not stream.exhausted:
            raise StoreError("put", temp_key, "store returned before the stream was drained")

    async def _promote(self, temp_key: str, final_key: str) -> None:
        try:
            await self.store.copy(temp_key, final_key)
        except StoreError as e:
            self._log_store_error("Failed to promote temporary object", e)
            raise
        except Exception as e:
            logger.error("Unexpected error promoting temporary object", exc_info=True)
            raise StoreError("copy", temp_key, str(e)) from e

    async def _discard(self, temp_key: str) -> None:
        try:
            await self.store.delete(temp_key)
        except StoreError as e:
            self._log_store_error("Failed to delete temporary object", e)
        except Exception:
            logger.error(
                "Unexpected error deleting temporary object",
                extra={"temp_key": temp_key},
                exc_info=True,
            )

    async def download(self, key: str) -> StoredObject:
        """Open a stored object for a streamed read.

        Raises:
            ObjectNotFoundError: If the key does not exist
            StoreError: On any other store failure
        """
        token = object_key_context.set(key)
        try:
            return await self.store.get_stream(key)
        except ObjectNotFoundError:
            logger.info("Object not found", extra={"key": key})
            raise
        except StoreError as e:
            self._log_store_error("Failed to read object", e)
            raise
        except Exception as e:
            logger.error("Unexpected error reading object", extra={"key": key}, exc_info=True)
            raise StoreError("get", key, str(e)) from e
        finally:
            object_key_context.reset(token)

    @staticmethod
    def _log_store_error(message: str, error: StoreError) -> None:
        logger.error(
            message,
            extra={
                "operation": error.operation,
                "key": error.key,
                "status_code": error.status_code,
                "detail": error.detail,
                "error": str(error),
            },
        )
