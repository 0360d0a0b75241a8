from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse

from .adapters.camera import CaptureFailed, LocalFolderCameraAdapter
from .domain.models import PhotoRecord
from .gallery.encoding import CAPACITOR_FILE_PREFIX, EncodingAdapter
from .gallery.service import PhotoAssetManager
from .settings import AppSettings, load_settings
from .storage import FilesystemBlobStore, SqlitePreferencesStore, StorageIOError

LOGGER = logging.getLogger(__name__)


def _get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def _get_manager(request: Request) -> PhotoAssetManager:
    return request.app.state.manager


def _serialize(photo: PhotoRecord) -> dict[str, Any]:
    return photo.model_dump(mode="json", by_alias=True, exclude_none=True)


def build_manager(settings: AppSettings) -> PhotoAssetManager:
    blob_store = FilesystemBlobStore(settings.blob_dir)
    preferences = SqlitePreferencesStore(settings.db_path)
    preferences.initialize()
    return PhotoAssetManager(
        camera=LocalFolderCameraAdapter(
            folder=settings.inbox_path,
            extensions=settings.yaml.capture.extensions,
        ),
        encoder=EncodingAdapter(
            blob_store=blob_store,
            fetch_timeout_seconds=settings.yaml.encoding.fetch_timeout_seconds,
        ),
        blob_store=blob_store,
        preferences=preferences,
        platform=settings.platform,
        storage_key=settings.yaml.storage.snapshot_key,
        webview_server_url=settings.yaml.webview.server_url,
    )


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = load_settings()
    logging.getLogger("photo_gallery").setLevel(settings.env.photo_gallery_log_level)
    manager = build_manager(settings)
    try:
        await manager.load_saved()
    except StorageIOError:
        LOGGER.exception("Initial gallery load failed")

    application.state.settings = settings
    application.state.manager = manager
    application.state.started_at_utc = datetime.now(timezone.utc)
    yield


app = FastAPI(title="Photo Gallery", version="0.1.0", lifespan=lifespan)


@app.get("/health", response_class=JSONResponse)
async def health(request: Request) -> JSONResponse:
    settings = _get_settings(request)
    manager = _get_manager(request)
    return JSONResponse(
        {
            "status": "ok",
            "service": "photo-gallery",
            "environment": settings.env.photo_gallery_env,
            "platform": manager.platform.value,
            "photo_count": len(manager.get_photos()),
            "started_at_utc": request.app.state.started_at_utc.isoformat(),
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
    )


@app.get("/api/photos", response_class=JSONResponse)
async def list_photos(request: Request) -> JSONResponse:
    manager = _get_manager(request)
    return JSONResponse([_serialize(photo) for photo in manager.get_photos()])


@app.post("/api/photos", response_class=JSONResponse, status_code=201)
async def add_photo(request: Request) -> JSONResponse:
    manager = _get_manager(request)
    try:
        record = await manager.add_new_to_gallery()
    except CaptureFailed as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except StorageIOError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return JSONResponse(_serialize(record), status_code=201)


@app.post("/api/photos/reload", response_class=JSONResponse)
async def reload_photos(request: Request) -> JSONResponse:
    manager = _get_manager(request)
    try:
        photos = await manager.load_saved()
    except StorageIOError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return JSONResponse([_serialize(photo) for photo in photos])


@app.delete("/api/photos/{position}", response_class=JSONResponse)
async def delete_photo(request: Request, position: int, filepath: str | None = None) -> JSONResponse:
    manager = _get_manager(request)
    photos = manager.get_photos()
    if not 0 <= position < len(photos):
        raise HTTPException(status_code=404, detail="Photo not found")

    photo = PhotoRecord(file_path=filepath) if filepath and filepath.strip() else photos[position]
    try:
        removed = await manager.delete_picture(photo, position)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail="Photo not found") from exc
    except StorageIOError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return JSONResponse(_serialize(removed))


@app.get(CAPACITOR_FILE_PREFIX + "/{photo_path:path}", response_class=FileResponse)
async def photo_file(request: Request, photo_path: str) -> FileResponse:
    settings = _get_settings(request)
    root_path = settings.blob_dir.resolve()
    target_path = Path("/" + photo_path.lstrip("/")).resolve()
    try:
        target_path.relative_to(root_path)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail="Photo not found") from exc

    if not target_path.is_file():
        raise HTTPException(status_code=404, detail="Photo not found")

    return FileResponse(target_path, media_type="image/jpeg")
