"""Local filesystem object store."""

import asyncio
import logging
import mimetypes
import os
import secrets
import shutil
from pathlib import Path
from typing import AsyncIterator, Optional

from hashvault.core.exceptions import ObjectNotFoundError, StoreError
from hashvault.storage.base import (
    DEFAULT_CONTENT_TYPE,
    ObjectStore,
    StoredObject,
    iter_readable,
)

logger = logging.getLogger(__name__)


class LocalObjectStore(ObjectStore):
    """Object store keeping each key as a file under a root directory."""

    def __init__(self, base_path: str | Path, chunk_size: int = 65536):
        self.base_path = Path(base_path)
        self.chunk_size = chunk_size

    def _resolve(self, key: str) -> Optional[Path]:
        """Map a key to a path under base_path, or None if it escapes it."""
        if not key or key.endswith("/"):
            return None
        root = self.base_path.resolve()
        path = (root / key).resolve()
        if path == root or not path.is_relative_to(root):
            return None
        return path

    def _require_path(self, operation: str, key: str) -> Path:
        path = self._resolve(key)
        if path is None:
            raise StoreError(operation, key, "key resolves outside the storage root")
        return path

    async def put_stream(
        self, key: str, chunks: AsyncIterator[bytes], content_type: str
    ) -> None:
        """Write chunks to a file, removing the partial file on any failure."""
        path = self._require_path("put", key)
        try:
            await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
            f = await asyncio.to_thread(open, path, "wb")
        except OSError as e:
            raise StoreError("put", key, str(e)) from e

        try:
            try:
                async for chunk in chunks:
                    await asyncio.to_thread(f.write, chunk)
            finally:
                await asyncio.to_thread(f.close)
        except OSError as e:
            await asyncio.to_thread(path.unlink, missing_ok=True)
            raise StoreError("put", key, str(e)) from e
        except BaseException:
            await asyncio.to_thread(path.unlink, missing_ok=True)
            raise

        logger.debug("Stored object", extra={"key": key, "content_type": content_type})

    async def copy(self, src_key: str, dst_key: str) -> None:
        """Copy via a sibling temp file and an atomic rename."""
        src = self._require_path("copy", src_key)
        dst = self._require_path("copy", dst_key)
        partial = dst.with_name(f".{dst.name}.{secrets.token_hex(8)}.part")

        def _copy() -> None:
            dst.parent.mkdir(parents=True, exist_ok=True)
            try:
                shutil.copyfile(src, partial)
                os.replace(partial, dst)
            except BaseException:
                partial.unlink(missing_ok=True)
                raise

        try:
            await asyncio.to_thread(_copy)
        except OSError as e:
            raise StoreError("copy", src_key, f"to {dst_key}: {e}") from e

    async def delete(self, key: str) -> None:
        path = self._require_path("delete", key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            raise StoreError("delete", key, str(e)) from e

    async def get_stream(self, key: str) -> StoredObject:
        path = self._resolve(key)
        if path is None or not await asyncio.to_thread(path.is_file):
            raise ObjectNotFoundError(key)

        try:
            size = (await asyncio.to_thread(path.stat)).st_size
            f = await asyncio.to_thread(open, path, "rb")
        except FileNotFoundError as e:
            raise ObjectNotFoundError(key) from e
        except OSError as e:
            raise StoreError("get", key, str(e)) from e

        content_type, _ = mimetypes.guess_type(path.name)
        return StoredObject(
            key=key,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            size=size,
            chunks=iter_readable(f, self.chunk_size),
        )

    async def list_keys(self, prefix: str = "") -> list[str]:
        root = self.base_path.resolve()

        def _walk() -> list[str]:
            if not root.exists():
                return []
            keys = (p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())
            return sorted(k for k in keys if k.startswith(prefix))

        try:
            return await asyncio.to_thread(_walk)
        except OSError as e:
            raise StoreError("list", prefix, str(e)) from e

    def get_backend_name(self) -> str:
        return "local"
