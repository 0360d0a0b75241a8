from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .adapters.camera.local_folder import normalize_extensions
from .domain.models import Platform

PROJECT_ROOT = Path(__file__).resolve().parents[2]


class PlatformSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mode: Platform = Platform.BROWSER


class StorageSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    directory: Path = Path("data/photos")
    snapshot_key: str = "photos"

    @field_validator("directory")
    @classmethod
    def validate_directory(cls, value: Path) -> Path:
        text = str(value).strip()
        if not text:
            raise ValueError("storage.directory must not be empty")
        return Path(text)

    @field_validator("snapshot_key")
    @classmethod
    def validate_snapshot_key(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("storage.snapshot_key must not be empty")
        return text


class CaptureSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    inbox: Path = Path("inbox")
    extensions: list[str] = Field(default_factory=lambda: [".jpg", ".jpeg"])

    @field_validator("inbox")
    @classmethod
    def validate_inbox(cls, value: Path) -> Path:
        text = str(value).strip()
        if not text:
            raise ValueError("capture.inbox must not be empty")
        return Path(text)

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, values: list[str]) -> list[str]:
        for raw_extension in values:
            if not isinstance(raw_extension, str):
                raise ValueError("capture.extensions entries must be strings")
            if not raw_extension.strip():
                raise ValueError("capture.extensions entries must not be empty")
        try:
            normalized = normalize_extensions(values)
        except ValueError as exc:
            raise ValueError("capture.extensions must contain at least one extension") from exc
        return sorted(normalized)


class EncodingSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    fetch_timeout_seconds: float = Field(default=10, ge=1, le=120)


class WebviewSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    server_url: str = "http://localhost"

    @field_validator("server_url")
    @classmethod
    def validate_server_url(cls, value: str) -> str:
        text = value.strip().rstrip("/")
        parsed = urlparse(text)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("webview.server_url must be an absolute http(s) URL")
        return text


class GalleryYamlSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    platform: PlatformSettings = Field(default_factory=PlatformSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    encoding: EncodingSettings = Field(default_factory=EncodingSettings)
    webview: WebviewSettings = Field(default_factory=WebviewSettings)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    photo_gallery_env: Literal["dev", "test", "prod"] = "dev"
    photo_gallery_config_path: Path = Path("config/gallery.yaml")
    photo_gallery_db_path: Path = Path("data/preferences.db")
    photo_gallery_platform: Platform | None = None
    photo_gallery_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("photo_gallery_log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class AppSettings(BaseModel):
    env: EnvSettings
    yaml: GalleryYamlSettings
    project_root: Path
    config_path: Path
    db_path: Path
    blob_dir: Path
    inbox_path: Path
    platform: Platform


def _resolve_project_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (PROJECT_ROOT / path).resolve()


def _load_yaml_settings(path: Path) -> GalleryYamlSettings:
    if not path.exists():
        raise FileNotFoundError(f"Gallery config file not found: {path}")

    raw_config = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ValueError("Gallery config must be a YAML mapping/object at the top level")
    return GalleryYamlSettings.model_validate(raw_config)


def resolve_platform(env: EnvSettings, yaml_settings: GalleryYamlSettings) -> Platform:
    if env.photo_gallery_platform is not None:
        return env.photo_gallery_platform
    return yaml_settings.platform.mode


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    env = EnvSettings()
    config_path = _resolve_project_path(env.photo_gallery_config_path)
    db_path = _resolve_project_path(env.photo_gallery_db_path)
    yaml_settings = _load_yaml_settings(config_path)
    return AppSettings(
        env=env,
        yaml=yaml_settings,
        project_root=PROJECT_ROOT,
        config_path=config_path,
        db_path=db_path,
        blob_dir=_resolve_project_path(yaml_settings.storage.directory),
        inbox_path=_resolve_project_path(yaml_settings.capture.inbox),
        platform=resolve_platform(env, yaml_settings),
    )
