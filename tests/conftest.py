import base64

import pytest

from photo_gallery.adapters.camera import CaptureFailed
from photo_gallery.domain.models import CaptureDescriptor, Platform
from photo_gallery.gallery.encoding import EncodingAdapter
from photo_gallery.gallery.service import PhotoAssetManager
from photo_gallery.storage import NotFound, StorageIOError

BLOB_ROOT = "file:///data/photos/"
JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg-body\xff\xd9"
JPEG_BASE64 = base64.b64encode(JPEG_BYTES).decode("ascii")


class FakeBlobStore:
    """In-memory blob store; ``external`` holds readable content outside the blob directory."""

    def __init__(self):
        self.blobs = {}
        self.external = {}
        self.deleted = []
        self.fail_write = False
        self.fail_delete = False

    async def write(self, name, payload):
        if self.fail_write:
            raise StorageIOError(f"write failed: {name}")
        self.blobs[name] = payload
        return BLOB_ROOT + name

    async def read(self, locator):
        if locator in self.external:
            return self.external[locator]
        name = locator[locator.rfind("/") + 1 :]
        if name not in self.blobs:
            raise NotFound(locator)
        return self.blobs[name]

    async def delete(self, name):
        self.deleted.append(name)
        if self.fail_delete:
            raise StorageIOError(f"delete failed: {name}")
        if name not in self.blobs:
            raise NotFound(name)
        del self.blobs[name]


class FakePreferences:
    def __init__(self):
        self.values = {}
        self.set_calls = 0
        self.fail_set = False

    async def get(self, key):
        return self.values.get(key)

    async def set(self, key, value):
        if self.fail_set:
            raise StorageIOError(f"set failed: {key}")
        self.set_calls += 1
        self.values[key] = value


class FakeCamera:
    def __init__(self, descriptor=None):
        self.descriptor = descriptor or CaptureDescriptor(path="/tmp/a.jpg", web_path="blob:http://localhost/a")
        self.cancelled = False
        self.calls = 0

    async def get_photo(self):
        self.calls += 1
        if self.cancelled:
            raise CaptureFailed("User cancelled photos app")
        return self.descriptor


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now


@pytest.fixture
def blob_store():
    store = FakeBlobStore()
    store.external["/tmp/a.jpg"] = JPEG_BASE64
    return store


@pytest.fixture
def preferences():
    return FakePreferences()


@pytest.fixture
def camera():
    return FakeCamera()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_manager(blob_store, preferences, camera, clock):
    def _make(platform, **overrides):
        options = {
            "camera": camera,
            "encoder": EncodingAdapter(blob_store=blob_store),
            "blob_store": blob_store,
            "preferences": preferences,
            "platform": platform,
            "webview_server_url": "http://localhost",
            "clock": clock,
        }
        options.update(overrides)
        return PhotoAssetManager(**options)

    return _make


@pytest.fixture
def hybrid_manager(make_manager):
    return make_manager(Platform.HYBRID)
