from .encoding import EncodingAdapter, build_data_uri, convert_file_src, strip_data_uri_prefix
from .service import PHOTO_STORAGE_KEY, PhotoAssetManager, dump_snapshot, parse_snapshot

__all__ = [
    "EncodingAdapter",
    "PHOTO_STORAGE_KEY",
    "PhotoAssetManager",
    "build_data_uri",
    "convert_file_src",
    "dump_snapshot",
    "parse_snapshot",
    "strip_data_uri_prefix",
]
