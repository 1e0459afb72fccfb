"""Tests for the local filesystem object store."""

import pytest

from hashvault.core.exceptions import ObjectNotFoundError, StoreError, StreamError
from hashvault.storage.local import LocalObjectStore


async def source(*chunks):
    for chunk in chunks:
        yield chunk


async def failing_source():
    yield b"half"
    raise StreamError("client disconnected")


async def read_all(stored) -> bytes:
    return b"".join([chunk async for chunk in stored.chunks])


@pytest.fixture
def local_store(tmp_path):
    return LocalObjectStore(tmp_path, chunk_size=3)


class TestLocalObjectStore:
    """Tests for local object store."""

    @pytest.mark.asyncio
    async def test_put_and_get_stream(self, local_store, tmp_path):
        """Test a streamed write followed by a streamed read."""
        await local_store.put_stream("tmp/abc", source(b"name,", b"age\n"), "text/csv")

        assert (tmp_path / "tmp" / "abc").read_bytes() == b"name,age\n"

        stored = await local_store.get_stream("tmp/abc")
        assert stored.size == 9
        assert stored.content_type == "application/octet-stream"
        assert await read_all(stored) == b"name,age\n"

    @pytest.mark.asyncio
    async def test_content_type_guessed_from_key(self, local_store):
        """Test that reads guess the content type from the extension."""
        await local_store.put_stream("abc.txt", source(b"hi"), "text/plain")

        stored = await local_store.get_stream("abc.txt")
        assert stored.content_type == "text/plain"
        await read_all(stored)

    @pytest.mark.asyncio
    async def test_failed_stream_removes_partial_file(self, local_store):
        """Test that a stream error leaves nothing behind."""
        with pytest.raises(StreamError):
            await local_store.put_stream("tmp/partial", failing_source(), "text/plain")

        assert await local_store.list_keys() == []

    @pytest.mark.asyncio
    async def test_copy_overwrites_destination(self, local_store):
        """Test that copy replaces an existing destination."""
        await local_store.put_stream("src", source(b"new"), "text/plain")
        await local_store.put_stream("dst", source(b"old"), "text/plain")

        await local_store.copy("src", "dst")

        assert await read_all(await local_store.get_stream("dst")) == b"new"
        assert await local_store.list_keys() == ["dst", "src"]

    @pytest.mark.asyncio
    async def test_copy_missing_source(self, local_store):
        """Test that copying a missing object is a store error."""
        with pytest.raises(StoreError):
            await local_store.copy("missing", "dst")

        assert await local_store.list_keys() == []

    @pytest.mark.asyncio
    async def test_delete(self, local_store):
        """Test delete of present and absent keys."""
        await local_store.put_stream("tmp/x", source(b"x"), "text/plain")

        await local_store.delete("tmp/x")
        await local_store.delete("tmp/x")

        assert await local_store.list_keys() == []

    @pytest.mark.asyncio
    async def test_get_missing_key(self, local_store):
        """Test that a missing key is not found."""
        with pytest.raises(ObjectNotFoundError):
            await local_store.get_stream("nope")

    @pytest.mark.asyncio
    async def test_keys_outside_root(self, local_store):
        """Test that path traversal never escapes the storage root."""
        with pytest.raises(ObjectNotFoundError):
            await local_store.get_stream("../etc/passwd")

        with pytest.raises(StoreError):
            await local_store.put_stream("../escape", source(b"x"), "text/plain")

    @pytest.mark.asyncio
    async def test_list_keys_with_prefix(self, local_store):
        """Test prefix filtering of listed keys."""
        await local_store.put_stream("tmp/a", source(b"1"), "text/plain")
        await local_store.put_stream("final.txt", source(b"2"), "text/plain")

        assert await local_store.list_keys("tmp/") == ["tmp/a"]
        assert await local_store.list_keys() == ["final.txt", "tmp/a"]

    @pytest.mark.asyncio
    async def test_list_keys_missing_root(self, tmp_path):
        """Test listing before anything was written."""
        store = LocalObjectStore(tmp_path / "not-yet")
        assert await store.list_keys() == []

    def test_get_backend_name(self, local_store):
        """Test backend name."""
        assert local_store.get_backend_name() == "local"
