from azure_blob_assets.azureclient import BlobUploadStream
from azure_blob_assets.errors import BackendUnavailable
from azure_blob_assets.errors import BlobNotFound
from azure_blob_assets.interfaces import IBlobStore
from azure_blob_assets.interfaces import IEventPublisher
from azure_blob_assets.model import BlobEntry
from azure_blob_assets.model import ContainerEntry
from azure_blob_assets.model import ListingEntry
from azure_blob_assets.provider import AzureBlobProvider
from datetime import datetime
from datetime import timezone
from zope.interface import implementer

import functools
import io
import pytest
import threading


ACCOUNT_URL = "https://qademovc3.blob.core.windows.net/"


class _StoredBlob:
    def __init__(self, data, content_type=None, cache_control=None, created_at=None):
        now = datetime.now(timezone.utc)
        self.data = data
        self.content_type = content_type
        self.cache_control = cache_control
        self.created_at = created_at or now
        self.modified_at = now


@implementer(IBlobStore)
class InMemoryBlobStore:
    """IBlobStore keeping containers and objects in dictionaries.

    ``fail_on[(operation, key)] = exc`` makes that operation raise exc.
    """

    def __init__(self, url=ACCOUNT_URL):
        self.url = url
        self.containers = {}  # {name: {key: _StoredBlob}}
        self.container_modified = {}
        self.public_access = {}
        self.fail_on = {}
        self._lock = threading.Lock()

    def _check(self, operation, key):
        error = self.fail_on.get((operation, key))
        if error is not None:
            raise error

    # -- Helpers for tests --

    def put(self, container, key, data=b"data", content_type=None):
        self.create_container_if_absent(container)
        self.upload(container, key, data, content_type=content_type)

    def keys(self, container):
        return sorted(self.containers.get(container, {}))

    def data(self, container, key):
        return self.containers[container][key].data

    # -- IBlobStore --

    def create_container_if_absent(self, name, public_access=False):
        with self._lock:
            if name not in self.containers:
                self.containers[name] = {}
                self.container_modified[name] = datetime(2024, 1, 2, tzinfo=timezone.utc)
                self.public_access[name] = public_access

    def container_exists(self, name):
        return name in self.containers

    def get_container_properties(self, name):
        if name not in self.containers:
            return None
        return ContainerEntry(name=name, modified_at=self.container_modified[name])

    def delete_container(self, name):
        with self._lock:
            return self.containers.pop(name, None) is not None

    def list_containers(self, prefix=None):
        return [
            ContainerEntry(name=name, modified_at=self.container_modified[name])
            for name in sorted(self.containers)
            if name.startswith(prefix or "")
        ]

    def get_properties(self, container, key):
        self._check("get_properties", key)
        blob = self.containers.get(container, {}).get(key)
        if blob is None:
            return None
        return self._entry(key, blob)

    def _entry(self, key, blob):
        return BlobEntry(
            name=key,
            size=len(blob.data),
            content_type=blob.content_type,
            created_at=blob.created_at,
            modified_at=blob.modified_at,
        )

    def open_read(self, container, key):
        blob = self.containers.get(container, {}).get(key)
        if blob is None:
            raise BlobNotFound(key)
        return io.BytesIO(blob.data)

    def open_write(
        self, container, key, content_type=None, cache_control=None, on_close=None
    ):
        upload = functools.partial(
            self.upload,
            container,
            key,
            content_type=content_type,
            cache_control=cache_control,
        )
        return BlobUploadStream(upload, on_close=on_close)

    def upload(self, container, key, data, content_type=None, cache_control=None):
        self._check("upload", key)
        if hasattr(data, "read"):
            data = data.read()
        with self._lock:
            if container not in self.containers:
                raise BackendUnavailable(f"ContainerNotFound: {container}")
            old = self.containers[container].get(key)
            self.containers[container][key] = _StoredBlob(
                bytes(data),
                content_type=content_type,
                cache_control=cache_control,
                created_at=old.created_at if old else None,
            )

    def list_blobs(self, container, prefix=None, delimiter=None):
        self._check("list_blobs", prefix)
        prefix = prefix or ""
        blobs = self.containers.get(container, {})
        entries = []
        seen = set()
        for key in sorted(blobs):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if delimiter and delimiter in rest:
                common = prefix + rest[: rest.index(delimiter) + 1]
                if common not in seen:
                    seen.add(common)
                    entries.append(ListingEntry(name=common, is_prefix=True))
                continue
            entries.append(ListingEntry(name=key, blob=self._entry(key, blobs[key])))
        return entries

    def has_blobs(self, container, prefix=None):
        self._check("has_blobs", prefix)
        return any(key.startswith(prefix or "") for key in self.containers.get(container, {}))

    def copy(self, src_container, src_key, dst_container, dst_key):
        self._check("copy", src_key)
        with self._lock:
            source = self.containers.get(src_container, {}).get(src_key)
            if source is None or dst_container not in self.containers:
                raise BackendUnavailable(f"CannotVerifyCopySource: {src_key}")
            self.containers[dst_container][dst_key] = _StoredBlob(
                source.data,
                content_type=source.content_type,
                cache_control=source.cache_control,
            )

    def delete(self, container, key):
        self._check("delete", key)
        with self._lock:
            return self.containers.get(container, {}).pop(key, None) is not None


@implementer(IEventPublisher)
class RecordingPublisher:
    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)


@pytest.fixture
def store():
    return InMemoryBlobStore()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def provider(store, publisher):
    return AzureBlobProvider(store, event_publisher=publisher)
