"""Byte stores backed by a local directory or by process memory."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath

from routegraph.errors import StorageError

logger = logging.getLogger(__name__)

def _check_key(key: str) -> str:
    parts = PurePosixPath(key).parts
    if not key or key.startswith("/") or ".." in parts:
        raise StorageError("validate", key, "keys must be relative and stay inside the store")
    return key

class LocalDirectoryStore:
    """Store each key as a file below *root*.

    The CLI uses ``<project>/.routegraph-cache`` as the root.  File I/O runs
    in worker threads so callers on the event loop are not blocked.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def _path(self, key: str) -> Path:
        return self.root / _check_key(key)

    async def upload(self, key: str, data: bytes) -> None:
        path = self._path(key)

        def write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(path.name + ".tmp")
            tmp.write_bytes(data)
            tmp.replace(path)

        try:
            await asyncio.to_thread(write)
        except OSError as exc:
            raise StorageError("upload", key, str(exc)) from exc
        logger.debug("Wrote %d bytes to %s", len(data), path)

    async def download(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise StorageError("download", key, "not found") from exc
        except OSError as exc:
            raise StorageError("download", key, str(exc)) from exc

    async def list(self, prefix: str = "") -> list[str]:
        def scan() -> list[str]:
            if not self.root.is_dir():
                return []
            keys = [
                p.relative_to(self.root).as_posix()
                for p in self.root.rglob("*")
                if p.is_file() and not p.name.endswith(".tmp")
            ]
            return sorted(k for k in keys if k.startswith(prefix))

        try:
            return await asyncio.to_thread(scan)
        except OSError as exc:
            raise StorageError("list", prefix, str(exc)) from exc

    async def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            await asyncio.to_thread(lambda: path.unlink(missing_ok=True))
        except OSError as exc:
            raise StorageError("delete", key, str(exc)) from exc

class MemoryStore:
    """A dict-backed store, used by tests and short-lived analyzers."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}

    async def upload(self, key: str, data: bytes) -> None:
        self.blobs[_check_key(key)] = bytes(data)

    async def download(self, key: str) -> bytes:
        try:
            return self.blobs[key]
        except KeyError as exc:
            raise StorageError("download", key, "not found") from exc

    async def list(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self.blobs if k.startswith(prefix))

    async def delete(self, key: str) -> None:
        self.blobs.pop(key, None)
