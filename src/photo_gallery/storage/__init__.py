from .base import (
    BlobStore,
    GalleryError,
    NotFound,
    PreferencesStore,
    SnapshotCorrupt,
    StorageIOError,
)
from .filesystem import FilesystemBlobStore
from .preferences import SqlitePreferencesStore

__all__ = [
    "BlobStore",
    "FilesystemBlobStore",
    "GalleryError",
    "NotFound",
    "PreferencesStore",
    "SnapshotCorrupt",
    "SqlitePreferencesStore",
    "StorageIOError",
]
