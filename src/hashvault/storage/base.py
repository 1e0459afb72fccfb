"""Abstract object store interface."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, BinaryIO, Optional

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class StoredObject:
    """An object opened for a streamed read."""

    key: str
    content_type: str
    size: Optional[int]
    chunks: AsyncIterator[bytes]


async def iter_readable(fileobj: BinaryIO, chunk_size: int) -> AsyncIterator[bytes]:
    """Read a blocking file object chunk by chunk without blocking the loop.

    The file object is closed once exhausted or when the consumer stops early.
    """
    try:
        while chunk := await asyncio.to_thread(fileobj.read, chunk_size):
            yield chunk
    finally:
        await asyncio.to_thread(fileobj.close)


class ObjectStore(ABC):
    """Abstract base class for durable blob stores.

    Implementations must be safe for concurrent use by many in-flight
    operations. Backend failures raise StoreError; a missing key on read
    raises ObjectNotFoundError.
    """

    @abstractmethod
    async def put_stream(
        self, key: str, chunks: AsyncIterator[bytes], content_type: str
    ) -> None:
        """Write an object from a chunk stream.

        Args:
            key: Destination key
            chunks: Byte chunks, consumed one at a time
            content_type: MIME type stored with the object

        Raises:
            StoreError: If the backend write fails. Exceptions raised by
                ``chunks`` propagate unchanged once partial state is discarded.
        """
        pass

    @abstractmethod
    async def copy(self, src_key: str, dst_key: str) -> None:
        """Copy an object, overwriting the destination if it exists."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete an object."""
        pass

    @abstractmethod
    async def get_stream(self, key: str) -> StoredObject:
        """Open an object for a streamed read.

        Existence is checked before returning, so ObjectNotFoundError is
        raised here rather than while iterating the chunks.
        """
        pass

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> list[str]:
        """List keys starting with prefix."""
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass
