"""Byte-store abstraction for persisted graph blobs.

Defines the :class:`ByteStore` protocol that every storage backend
(local directory, in-memory, object storage, etc.) must satisfy.  The graph
store only ever moves opaque bytes through it.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

@runtime_checkable
class ByteStore(Protocol):
    """Protocol for a flat key/value store of byte blobs.

    Keys are ``/``-separated strings.  Implementations raise
    :class:`~routegraph.errors.StorageError` on failure, including
    :meth:`download` of a missing key.
    """

    async def upload(self, key: str, data: bytes) -> None:
        """Store *data* under *key*, replacing any previous value."""
        ...

    async def download(self, key: str) -> bytes:
        """Return the bytes stored under *key*."""
        ...

    async def list(self, prefix: str = "") -> list[str]:
        """Return the sorted keys that start with *prefix*."""
        ...

    async def delete(self, key: str) -> None:
        """Remove *key*.  Deleting a missing key is not an error."""
        ...
