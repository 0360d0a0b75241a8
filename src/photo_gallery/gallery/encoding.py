from __future__ import annotations

import asyncio
import base64
import logging
import re
from pathlib import Path
from urllib.error import URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from ..adapters.camera.base import CaptureFailed
from ..domain.models import CaptureDescriptor, Platform
from ..storage.base import BlobStore, StorageIOError

LOGGER = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"
DEFAULT_TIMEOUT_SECONDS = 10
CAPACITOR_FILE_PREFIX = "/_capacitor_file_"

_DATA_URI_PREFIX = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)


def build_data_uri(payload: str, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    return f"data:{mime_type};base64,{payload}"


def strip_data_uri_prefix(value: str) -> str:
    return _DATA_URI_PREFIX.sub("", value, count=1)


def convert_file_src(locator: str, server_url: str) -> str:
    """Rewrite a device-local locator into a URL the webview server can resolve.

    ``file:///data/photo.jpeg`` and ``/data/photo.jpeg`` both become
    ``<server_url>/_capacitor_file_/data/photo.jpeg``; anything else is
    returned unchanged.
    """
    base_url = server_url.rstrip("/")
    if locator.startswith("file://"):
        return f"{base_url}{CAPACITOR_FILE_PREFIX}{urlparse(locator).path}"
    if locator.startswith("/"):
        return f"{base_url}{CAPACITOR_FILE_PREFIX}{locator}"
    return locator


def _mime_type_from_header(content_type: str | None) -> str:
    if not content_type:
        return DEFAULT_MIME_TYPE
    mime_type = content_type.split(";", 1)[0].strip().lower()
    if not mime_type.startswith("image/"):
        return DEFAULT_MIME_TYPE
    return mime_type


async def read_as_data_uri(content: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    encoded = await asyncio.to_thread(base64.b64encode, content)
    return build_data_uri(encoded.decode("ascii"), mime_type)


class EncodingAdapter:
    """Turns a capture descriptor into bare base64 ready for a blob write."""

    def __init__(self, *, blob_store: BlobStore, fetch_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._blob_store = blob_store
        self._fetch_timeout_seconds = fetch_timeout_seconds

    async def encode(self, descriptor: CaptureDescriptor, platform: Platform) -> str:
        if platform.is_hybrid:
            return await self._read_native(descriptor)
        return await self._read_web(descriptor)

    async def _read_native(self, descriptor: CaptureDescriptor) -> str:
        if not descriptor.path:
            raise CaptureFailed("Capture did not provide a device-local path")
        if not (descriptor.path.startswith("file:") or Path(descriptor.path).is_absolute()):
            raise CaptureFailed(f"Capture path is not absolute: {descriptor.path}")
        return await self._blob_store.read(descriptor.path)

    async def _read_web(self, descriptor: CaptureDescriptor) -> str:
        if not descriptor.web_path:
            raise CaptureFailed("Capture did not provide a web path")
        content, mime_type = await asyncio.to_thread(self._fetch, descriptor.web_path)
        data_uri = await read_as_data_uri(content, mime_type)
        return strip_data_uri_prefix(data_uri)

    def _fetch(self, url: str) -> tuple[bytes, str]:
        request = Request(url, headers={"User-Agent": "photo-gallery/0.1"})
        try:
            with urlopen(request, timeout=self._fetch_timeout_seconds) as response:
                content = response.read()
                content_type = response.headers.get("Content-Type")
        except (URLError, TimeoutError, OSError, ValueError) as exc:
            raise StorageIOError(f"Unable to fetch captured image: {url}") from exc

        LOGGER.debug("Fetched %d bytes from %s", len(content), url)
        return content, _mime_type_from_header(content_type)
