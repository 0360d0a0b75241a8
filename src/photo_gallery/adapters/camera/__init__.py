from .base import CameraAdapter, CaptureFailed
from .local_folder import LocalFolderCameraAdapter

__all__ = ["CameraAdapter", "CaptureFailed", "LocalFolderCameraAdapter"]
