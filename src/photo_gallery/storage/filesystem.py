from __future__ import annotations

import asyncio
import base64
import binascii
import os
import tempfile
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

from .base import NotFound, StorageIOError


def _validate_blob_name(name: str) -> str:
    text = name.strip()
    if not text or text in (".", ".."):
        raise ValueError(f"Invalid blob name: {name!r}")
    if "/" in text or "\\" in text:
        raise ValueError(f"Blob name must not contain path separators: {name!r}")
    return text


def _decode_payload(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Blob payload must be bare base64 content") from exc


class FilesystemBlobStore:
    """Base64 blob storage rooted at one directory.

    Writes land in a temporary file next to the target and are moved into
    place with ``os.replace``, so a reader never sees a half-written blob.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def resolve(self, name: str) -> Path:
        return self._directory / _validate_blob_name(name)

    def resolve_locator(self, locator: str) -> Path:
        text = locator.strip()
        if text.startswith("file:"):
            parsed = urlparse(text)
            return Path(url2pathname(parsed.path))
        candidate = Path(text)
        if candidate.is_absolute():
            return candidate
        return self.resolve(text)

    async def write(self, name: str, payload: str) -> str:
        target = self.resolve(name)
        content = _decode_payload(payload)
        await asyncio.to_thread(self._write_atomic, target, content)
        return target.resolve().as_uri()

    async def read(self, locator: str) -> str:
        source = self.resolve_locator(locator)
        content = await asyncio.to_thread(self._read_bytes, source)
        return base64.b64encode(content).decode("ascii")

    async def delete(self, name: str) -> None:
        target = self.resolve(name)
        await asyncio.to_thread(self._unlink, target)

    def _write_atomic(self, target: Path, content: bytes) -> None:
        temp_name: str | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(prefix=".tmp-", dir=target.parent)
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, target)
            temp_name = None
        except OSError as exc:
            raise StorageIOError(f"Unable to write blob: {target}") from exc
        finally:
            if temp_name is not None:
                Path(temp_name).unlink(missing_ok=True)

    def _read_bytes(self, source: Path) -> bytes:
        try:
            return source.read_bytes()
        except FileNotFoundError as exc:
            raise NotFound(f"Blob not found: {source}") from exc
        except OSError as exc:
            raise StorageIOError(f"Unable to read blob: {source}") from exc

    def _unlink(self, target: Path) -> None:
        try:
            target.unlink()
        except FileNotFoundError as exc:
            raise NotFound(f"Blob not found: {target}") from exc
        except OSError as exc:
            raise StorageIOError(f"Unable to delete blob: {target}") from exc
