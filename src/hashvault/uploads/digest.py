"""Digest computation over a streamed upload."""

import hashlib
from typing import AsyncIterator

from hashvault.core.exceptions import StreamError


class DigestingStream:
    """Pipeline stage that hashes chunks as they pass through.

    Sits between the inbound chunk source and the store write. Each chunk is
    folded into a SHA-256 accumulator owned by this stage and then yielded
    unchanged, so hashing and writing advance one chunk at a time in the
    order bytes reach storage.

    The digest is only available after the source is exhausted. Any error
    raised by the source is re-raised as StreamError.
    """

    def __init__(self, source: AsyncIterator[bytes]):
        self._source = source
        self._hash = hashlib.sha256()
        self._started = False
        self._exhausted = False
        self.size = 0

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._started:
            raise RuntimeError("DigestingStream can only be iterated once")
        self._started = True
        return self._forward()

    async def _forward(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._source:
                self._hash.update(chunk)
                self.size += len(chunk)
                yield chunk
        except StreamError:
            raise
        except Exception as e:
            raise StreamError(f"Upload stream failed after {self.size} bytes: {e}") from e
        self._exhausted = True

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def hexdigest(self) -> str:
        """Return the lowercase hex SHA-256 of every byte forwarded."""
        if not self._exhausted:
            raise RuntimeError("Digest requested before the stream was fully read")
        return self._hash.hexdigest()
