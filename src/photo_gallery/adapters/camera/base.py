from __future__ import annotations

from typing import Protocol

from ...domain.models import CaptureDescriptor
from ...storage.base import GalleryError


class CaptureFailed(GalleryError):
    """Raised when a capture is cancelled, denied or yields nothing usable."""


class CameraAdapter(Protocol):
    async def get_photo(self) -> CaptureDescriptor:
        """Capture one image and describe where its content can be read."""
