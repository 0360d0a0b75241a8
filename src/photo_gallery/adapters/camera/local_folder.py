from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable

from ...domain.models import CaptureDescriptor
from .base import CaptureFailed

DEFAULT_EXTENSIONS = (".jpg", ".jpeg")


def normalize_extensions(extensions: Iterable[str]) -> set[str]:
    normalized: set[str] = set()
    for raw_extension in extensions:
        extension = raw_extension.strip().lower()
        if not extension:
            continue
        if not extension.startswith("."):
            extension = f".{extension}"
        normalized.add(extension)
    if not normalized:
        raise ValueError("At least one capture extension must be configured")
    return normalized


class LocalFolderCameraAdapter:
    """Capture source that hands out the newest image dropped into an inbox folder."""

    def __init__(self, *, folder: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> None:
        self._folder = Path(folder)
        self._extensions = normalize_extensions(extensions)

    @property
    def folder(self) -> Path:
        return self._folder

    async def get_photo(self) -> CaptureDescriptor:
        latest = await asyncio.to_thread(self._find_latest)
        return CaptureDescriptor(path=str(latest), web_path=latest.as_uri())

    def _find_latest(self) -> Path:
        if not self._folder.exists():
            raise CaptureFailed(f"Capture folder does not exist: {self._folder}")
        if not self._folder.is_dir():
            raise CaptureFailed(f"Capture folder is not a directory: {self._folder}")

        candidates: list[tuple[float, str, Path]] = []
        for file_path in self._folder.iterdir():
            if not file_path.is_file():
                continue
            if file_path.suffix.lower() not in self._extensions:
                continue
            try:
                modified = file_path.stat().st_mtime
            except OSError:
                continue
            candidates.append((modified, file_path.name, file_path))

        if not candidates:
            raise CaptureFailed(f"No image available to capture in {self._folder}")
        return max(candidates)[2].resolve()
