from azure.core.exceptions import AzureError
from azure.core.exceptions import ResourceExistsError
from azure.core.exceptions import ResourceNotFoundError
from azure.storage.blob import BlobPrefix
from azure.storage.blob import BlobServiceClient
from azure.storage.blob import ContentSettings
from azure_blob_assets.errors import BackendUnavailable
from azure_blob_assets.errors import BlobNotFound
from azure_blob_assets.interfaces import IBlobStore
from azure_blob_assets.model import BlobEntry
from azure_blob_assets.model import ContainerEntry
from azure_blob_assets.model import ListingEntry
from zope.interface import implementer

import functools
import io
import logging
import tempfile
import time


logger = logging.getLogger(__name__)

SPOOL_MAX_SIZE = 4 * 1024 * 1024


class BlobUploadStream(io.RawIOBase):
    """Write-only stream staging data locally and uploading it on close.

    Leaving a ``with`` block through an exception discards the data
    instead of uploading a partial object.
    """

    def __init__(self, upload, on_close=None):
        super().__init__()
        self._upload = upload
        self._on_close = on_close
        self._buffer = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)

    def writable(self):
        return True

    def write(self, data):
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        return self._buffer.write(data)

    def tell(self):
        return self._buffer.tell()

    def discard(self):
        """Close without uploading."""
        if self.closed:
            return
        self._buffer.close()
        super().close()

    def close(self):
        if self.closed:
            return
        try:
            self._buffer.seek(0)
            self._upload(self._buffer)
        finally:
            self._buffer.close()
            super().close()
        if self._on_close is not None:
            self._on_close()

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.discard()
        else:
            self.close()

    def __del__(self):
        # never upload from the garbage collector
        self.discard()


def _blob_entry(properties):
    content_settings = properties.content_settings
    return BlobEntry(
        name=properties.name,
        size=properties.size or 0,
        content_type=content_settings.content_type if content_settings else None,
        created_at=properties.creation_time,
        modified_at=properties.last_modified,
    )


@implementer(IBlobStore)
class AzureBlobStore:
    """Thin azure-storage-blob wrapper for one storage account."""

    def __init__(self, connection_string, copy_poll_interval=0.5, **client_kwargs):
        self._service = BlobServiceClient.from_connection_string(
            connection_string, **client_kwargs
        )
        self.copy_poll_interval = copy_poll_interval

    @property
    def url(self):
        return self._service.url

    def __repr__(self):
        return f"<AzureBlobStore {self.url!r}>"

    def _container(self, name):
        return self._service.get_container_client(name)

    def _blob(self, container, key):
        return self._container(container).get_blob_client(key)

    def _wrap_error(self, e, operation, name):
        """Wrap AzureError in a generic error, logging the original at DEBUG."""
        logger.debug("Azure %s failed for %s: %s", operation, name, e)
        code = getattr(e, "error_code", None) or e.__class__.__name__
        raise BackendUnavailable(f"Azure {operation} failed for {name}: {code}") from e

    # -- Containers --

    def create_container_if_absent(self, name, public_access=False):
        container = self._container(name)
        try:
            if container.exists():
                return
            container.create_container(public_access="blob" if public_access else None)
            logger.info("Created container %s", name)
        except ResourceExistsError:
            # created concurrently
            pass
        except AzureError as e:
            self._wrap_error(e, "create container", name)

    def container_exists(self, name):
        try:
            return self._container(name).exists()
        except AzureError as e:
            self._wrap_error(e, "container exists", name)

    def get_container_properties(self, name):
        try:
            properties = self._container(name).get_container_properties()
        except ResourceNotFoundError:
            return None
        except AzureError as e:
            self._wrap_error(e, "container properties", name)
        return ContainerEntry(name=properties.name, modified_at=properties.last_modified)

    def delete_container(self, name):
        try:
            self._container(name).delete_container()
        except ResourceNotFoundError:
            return False
        except AzureError as e:
            self._wrap_error(e, "delete container", name)
        return True

    def list_containers(self, prefix=None):
        try:
            return [
                ContainerEntry(name=item.name, modified_at=item.last_modified)
                for item in self._service.list_containers(name_starts_with=prefix or None)
            ]
        except AzureError as e:
            self._wrap_error(e, "list containers", prefix or "")

    # -- Blobs --

    def get_properties(self, container, key):
        try:
            properties = self._blob(container, key).get_blob_properties()
        except ResourceNotFoundError:
            return None
        except AzureError as e:
            self._wrap_error(e, "get properties", key)
        return _blob_entry(properties)

    def open_read(self, container, key):
        stream = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
        try:
            try:
                self._blob(container, key).download_blob().readinto(stream)
            except ResourceNotFoundError as e:
                raise BlobNotFound(
                    f"Blob {key!r} not found in container {container!r}"
                ) from e
            except AzureError as e:
                self._wrap_error(e, "download", key)
        except BaseException:
            stream.close()
            raise
        stream.seek(0)
        return stream

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
        settings = ContentSettings(content_type=content_type, cache_control=cache_control)
        try:
            self._blob(container, key).upload_blob(
                data, overwrite=True, content_settings=settings
            )
        except AzureError as e:
            self._wrap_error(e, "upload", key)

    def list_blobs(self, container, prefix=None, delimiter=None):
        client = self._container(container)
        entries = []
        try:
            if delimiter:
                items = client.walk_blobs(name_starts_with=prefix or None, delimiter=delimiter)
            else:
                items = client.list_blobs(name_starts_with=prefix or None)
            for item in items:
                if isinstance(item, BlobPrefix):
                    entries.append(ListingEntry(name=item.name, is_prefix=True))
                else:
                    entries.append(ListingEntry(name=item.name, blob=_blob_entry(item)))
        except ResourceNotFoundError:
            return []
        except AzureError as e:
            self._wrap_error(e, "list", prefix or "")
        return entries

    def has_blobs(self, container, prefix=None):
        try:
            # the pager fetches one page lazily
            items = self._container(container).list_blobs(
                name_starts_with=prefix or None, results_per_page=1
            )
            return next(iter(items), None) is not None
        except ResourceNotFoundError:
            return False
        except AzureError as e:
            self._wrap_error(e, "list", prefix or "")

    def copy(self, src_container, src_key, dst_container, dst_key):
        source = self._blob(src_container, src_key)
        target = self._blob(dst_container, dst_key)
        try:
            status = target.start_copy_from_url(source.url).get("copy_status")
            while status == "pending":
                time.sleep(self.copy_poll_interval)
                status = target.get_blob_properties().copy.status
        except AzureError as e:
            self._wrap_error(e, "copy", src_key)
        if status != "success":
            raise BackendUnavailable(
                f"Azure copy of {src_key} to {dst_key} ended with status {status!r}"
            )

    def delete(self, container, key):
        try:
            self._blob(container, key).delete_blob()
        except ResourceNotFoundError:
            return False
        except AzureError as e:
            self._wrap_error(e, "delete", key)
        return True
