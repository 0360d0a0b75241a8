"""Photo asset manager.

Owns the newest-first photo collection and keeps three surfaces in step: the
in-memory list, the JSON snapshot in the preference store and the blob files.
Every mutation rewrites the whole snapshot, and mutations are serialized by a
single asyncio lock so two in-flight operations never persist stale lists.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from typing import Callable

from pydantic import TypeAdapter, ValidationError

from ..adapters.camera.base import CameraAdapter
from ..domain.models import CaptureDescriptor, PhotoRecord, Platform
from ..storage.base import BlobStore, NotFound, PreferencesStore, SnapshotCorrupt, StorageIOError
from .encoding import EncodingAdapter, build_data_uri, convert_file_src

LOGGER = logging.getLogger(__name__)

PHOTO_STORAGE_KEY = "photos"
DEFAULT_WEBVIEW_SERVER_URL = "http://localhost"

_SNAPSHOT_ADAPTER = TypeAdapter(list[PhotoRecord])
_GENERATED_NAME = re.compile(r"^photo_(\d+)\.jpeg$")


def parse_snapshot(value: str | None) -> list[PhotoRecord]:
    if value is None or not value.strip():
        return []
    try:
        return _SNAPSHOT_ADAPTER.validate_json(value)
    except ValidationError as exc:
        raise SnapshotCorrupt("Persisted photo snapshot could not be parsed") from exc


def _newest_generated_millis(photos: list[PhotoRecord]) -> int:
    newest = 0
    for photo in photos:
        match = _GENERATED_NAME.match(photo.file_name)
        if match:
            newest = max(newest, int(match.group(1)))
    return newest


def dump_snapshot(photos: list[PhotoRecord], *, include_display_path: bool) -> str:
    exclude = None if include_display_path else {"display_path"}
    payload = [
        photo.model_dump(mode="json", by_alias=True, exclude_none=True, exclude=exclude)
        for photo in photos
    ]
    return json.dumps(payload, ensure_ascii=True, separators=(",", ":"))


class PhotoAssetManager:
    def __init__(
        self,
        *,
        camera: CameraAdapter,
        encoder: EncodingAdapter,
        blob_store: BlobStore,
        preferences: PreferencesStore,
        platform: Platform,
        storage_key: str = PHOTO_STORAGE_KEY,
        webview_server_url: str = DEFAULT_WEBVIEW_SERVER_URL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._camera = camera
        self._encoder = encoder
        self._blob_store = blob_store
        self._preferences = preferences
        self._platform = platform
        self._storage_key = storage_key
        self._webview_server_url = webview_server_url
        self._clock = clock
        self._photos: list[PhotoRecord] = []
        self._lock = asyncio.Lock()
        self._last_issued_millis = 0

    @property
    def platform(self) -> Platform:
        return self._platform

    def get_photos(self) -> tuple[PhotoRecord, ...]:
        return tuple(self._photos)

    async def add_new_to_gallery(self) -> PhotoRecord:
        """Capture a photo, store its content and record it at the front of the gallery.

        Capture and encoding touch no gallery state and run before the lock is
        taken. A failed blob write creates nothing; a failed snapshot write
        removes the blob it just wrote and leaves the collection as it was.
        """
        descriptor = await self._camera.get_photo()
        payload = await self._encoder.encode(descriptor, self._platform)

        async with self._lock:
            file_name = self._next_file_name()
            locator = await self._blob_store.write(file_name, payload)
            record = self._build_record(descriptor, file_name, locator)

            photos = [record, *self._photos]
            try:
                await self._persist(photos)
            except StorageIOError:
                LOGGER.exception("Snapshot write failed after storing '%s'", file_name)
                await self._discard_blob(file_name)
                raise

            self._photos = photos

        LOGGER.info("Added photo '%s' (%d in gallery)", record.file_path, len(photos))
        return record

    add_photo = add_new_to_gallery

    async def load_saved(self) -> tuple[PhotoRecord, ...]:
        async with self._lock:
            value = await self._preferences.get(self._storage_key)
            try:
                photos = parse_snapshot(value)
            except SnapshotCorrupt:
                LOGGER.warning(
                    "Snapshot under '%s' is corrupt; starting with an empty gallery",
                    self._storage_key,
                    exc_info=True,
                )
                photos = []

            if self._platform.is_hybrid:
                photos = [self._with_native_display_path(photo) for photo in photos]
            else:
                results = await asyncio.gather(
                    *(self._with_data_uri(photo) for photo in photos),
                    return_exceptions=True,
                )
                for result in results:
                    if isinstance(result, BaseException):
                        raise result
                photos = list(results)

            self._photos = photos
            self._last_issued_millis = max(self._last_issued_millis, _newest_generated_millis(photos))

        LOGGER.info("Loaded %d saved photos (%s)", len(photos), self._platform.value)
        return tuple(photos)

    async def delete_picture(self, photo: PhotoRecord, position: int) -> PhotoRecord:
        """Remove the photo at ``position`` and then its blob.

        Deletion is positional: whatever record occupies ``position`` is
        removed, and the blob named by ``photo.file_path`` is deleted. The
        snapshot is rewritten before the blob is touched, so a blob failure
        leaves an orphaned file rather than a resurrectable record.
        """
        async with self._lock:
            if not 0 <= position < len(self._photos):
                raise IndexError(f"No photo at position {position}")

            photos = list(self._photos)
            removed = photos.pop(position)
            if removed.file_path != photo.file_path:
                LOGGER.warning(
                    "Position %d holds '%s', not '%s'; removing the positional record",
                    position,
                    removed.file_path,
                    photo.file_path,
                )

            await self._persist(photos)
            self._photos = photos

            file_name = photo.file_name
            try:
                await self._blob_store.delete(file_name)
            except NotFound:
                LOGGER.info("Blob '%s' was already absent", file_name)
            except StorageIOError:
                LOGGER.exception("Blob '%s' could not be deleted; it is now orphaned", file_name)
                raise

        LOGGER.info("Deleted photo '%s' (%d in gallery)", removed.file_path, len(photos))
        return removed

    def _next_file_name(self) -> str:
        millis = int(self._clock() * 1000)
        if millis <= self._last_issued_millis:
            millis = self._last_issued_millis + 1
        taken = {photo.file_name for photo in self._photos}
        while f"photo_{millis}.jpeg" in taken:
            millis += 1
        self._last_issued_millis = millis
        return f"photo_{millis}.jpeg"

    def _build_record(self, descriptor: CaptureDescriptor, file_name: str, locator: str) -> PhotoRecord:
        if self._platform.is_hybrid:
            return PhotoRecord(
                file_path=locator,
                display_path=convert_file_src(locator, self._webview_server_url),
            )
        return PhotoRecord(file_path=file_name, display_path=descriptor.web_path)

    def _with_native_display_path(self, photo: PhotoRecord) -> PhotoRecord:
        if photo.display_path is not None:
            return photo
        return photo.with_display_path(convert_file_src(photo.file_path, self._webview_server_url))

    async def _with_data_uri(self, photo: PhotoRecord) -> PhotoRecord:
        payload = await self._blob_store.read(photo.file_path)
        return photo.with_display_path(build_data_uri(payload))

    async def _persist(self, photos: list[PhotoRecord]) -> None:
        snapshot = dump_snapshot(photos, include_display_path=self._platform.is_hybrid)
        await self._preferences.set(self._storage_key, snapshot)

    async def _discard_blob(self, file_name: str) -> None:
        try:
            await self._blob_store.delete(file_name)
        except StorageIOError:
            LOGGER.warning("Could not remove blob '%s' after failed snapshot write", file_name, exc_info=True)
