from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Platform(str, Enum):
    HYBRID = "hybrid"
    BROWSER = "browser"

    @property
    def is_hybrid(self) -> bool:
        return self is Platform.HYBRID


class CaptureDescriptor(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    path: str | None = None
    web_path: str | None = Field(default=None, alias="webPath")


class PhotoRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    file_path: str = Field(alias="filepath")
    display_path: str | None = Field(default=None, alias="webviewPath")

    @field_validator("file_path")
    @classmethod
    def validate_file_path(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("photo filepath must not be empty")
        return text

    @property
    def file_name(self) -> str:
        return self.file_path[self.file_path.rfind("/") + 1 :]

    def with_display_path(self, display_path: str) -> PhotoRecord:
        return self.model_copy(update={"display_path": display_path})
