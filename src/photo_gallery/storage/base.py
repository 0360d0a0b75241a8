from __future__ import annotations

from typing import Protocol


class GalleryError(RuntimeError):
    """Base class for photo gallery failures."""


class StorageIOError(GalleryError):
    """Raised when blob or preference storage cannot complete an operation."""


class NotFound(StorageIOError):
    """Raised when a named blob does not exist."""


class SnapshotCorrupt(GalleryError):
    """Raised when the persisted photo snapshot cannot be parsed."""


class BlobStore(Protocol):
    async def write(self, name: str, payload: str) -> str:
        """Store base64 ``payload`` under ``name`` and return its locator."""

    async def read(self, locator: str) -> str:
        """Return the base64 content stored at ``locator``."""

    async def delete(self, name: str) -> None:
        """Remove the blob stored under ``name``."""


class PreferencesStore(Protocol):
    async def get(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None when absent."""

    async def set(self, key: str, value: str) -> None:
        """Atomically replace the value stored under ``key``."""
