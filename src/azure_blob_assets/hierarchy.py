from azure_blob_assets.concurrency import DEFAULT_MAX_WORKERS
from azure_blob_assets.concurrency import gather
from azure_blob_assets.errors import AzureBlobAssetsError
from azure_blob_assets.errors import InvalidLocator
from azure_blob_assets.model import BlobDeletedEvent
from azure_blob_assets.model import BlobEventInfo
from azure_blob_assets.model import BlobRecord
from azure_blob_assets.model import DELIMITER
from azure_blob_assets.model import FolderRecord
from azure_blob_assets.model import MARKER_NAME
from azure_blob_assets.model import SearchResult
from azure_blob_assets.urlcodec import combine
from azure_blob_assets.urlcodec import is_absolute

import functools
import logging
import mimetypes


logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def guess_content_type(path):
    return mimetypes.guess_type(path)[0] or DEFAULT_CONTENT_TYPE


def _leaf_name(key):
    return key.rsplit(DELIMITER, 1)[-1]


def is_marker(key):
    """Markers and empty-named objects never show up in listings."""
    return _leaf_name(key) in ("", MARKER_NAME)


class HierarchyEmulator:
    """Presents the flat blob namespace as nested folders.

    A folder holding objects exists only as the common key prefix of those
    objects. An empty folder is kept visible by a zero-byte MARKER_NAME
    object below its prefix.
    """

    def __init__(
        self,
        store,
        resolver,
        allow_public_access=True,
        event_publisher=None,
        max_workers=DEFAULT_MAX_WORKERS,
    ):
        self._store = store
        self._resolver = resolver
        self.allow_public_access = allow_public_access
        self._event_publisher = event_publisher
        self.max_workers = max_workers

    def ensure_container(self, container_name):
        self._store.create_container_if_absent(
            container_name, public_access=self.allow_public_access
        )

    # -- Folders --

    def create_folder(self, folder):
        path = folder.name
        if folder.parent_url:
            parent_url = folder.parent_url
            if is_absolute(parent_url):
                parent_url = self._resolver.relative_url(parent_url)
            path = combine(parent_url, folder.name)

        locator = self._resolver.locate(path)
        self.ensure_container(locator.container_name)
        if locator.directory_path:
            self._store.upload(
                locator.container_name, locator.directory_path + MARKER_NAME, b""
            )

    # -- Listing --

    def search(self, folder_url=None, keyword=None):
        """List one folder level, or the containers when no folder is given.

        ``keyword`` is a name prefix inside the folder (or of container
        names), not a full-text search. With a root path configured the
        store-wide listing shows the root folder instead of containers.
        """
        if not folder_url and self._resolver.root_path:
            folder_url = DELIMITER
        if folder_url:
            results = self._search_folder(folder_url, keyword)
        else:
            results = self._search_containers(keyword)
        return SearchResult(results=tuple(results), total_count=len(results))

    def _search_folder(self, folder_url, keyword):
        locator = self._resolver.locate(folder_url)
        container = locator.container_name
        properties = self._store.get_container_properties(container)
        if properties is None:
            return []

        prefix = (locator.directory_path or "") + (keyword or "")
        results = []
        for entry in self._store.list_blobs(container, prefix=prefix, delimiter=DELIMITER):
            if entry.is_prefix:
                results.append(
                    self.folder_record(container, entry.name, properties.modified_at)
                )
            elif not is_marker(entry.name):
                results.append(self.blob_record(container, entry.blob))
        return results

    def _search_containers(self, keyword):
        return [
            self.container_record(entry)
            for entry in self._store.list_containers(prefix=keyword or None)
        ]

    # -- Records --

    def blob_record(self, container, entry):
        url = self._resolver.blob_url(container, entry.name)
        name = _leaf_name(entry.name)
        return BlobRecord(
            url=url,
            relative_url=self._resolver.relative_url(url),
            name=name,
            content_type=entry.content_type or guess_content_type(name),
            size=entry.size or 0,
            created_at=entry.created_at,
            modified_at=entry.modified_at,
        )

    def folder_record(self, container, prefix, modified_at=None):
        segments = prefix.rstrip(DELIMITER).split(DELIMITER)
        parent = DELIMITER.join(segments[:-1])
        url = self._resolver.folder_url(container, prefix)
        return FolderRecord(
            name=segments[-1],
            url=url,
            relative_url=self._resolver.relative_url(url),
            parent_url=self._resolver.folder_url(
                container, parent + DELIMITER if parent else None
            ),
            created_at=modified_at,
            modified_at=modified_at,
        )

    def container_record(self, entry):
        url = self._resolver.container_url(entry.name)
        return FolderRecord(
            name=entry.name,
            url=url,
            relative_url=self._resolver.relative_url(url),
            created_at=entry.modified_at,
            modified_at=entry.modified_at,
        )

    # -- Removal --

    def remove_many(self, urls):
        """Remove files, folders or whole containers.

        Every URL is attempted. URLs removed without error are announced in
        one BlobDeletedEvent, then the first failure, if any, is raised.
        Removing something that does not exist is not an error.
        """
        urls = [url for url in urls if url and url.strip()]
        if not urls:
            return

        removed = []
        first_error = None
        for url in urls:
            try:
                self._remove(url)
            except AzureBlobAssetsError as e:
                logger.warning("Failed to remove %s", url, exc_info=True)
                if first_error is None:
                    first_error = e
                continue
            removed.append(url)

        self._publish_deleted(removed)
        if first_error is not None:
            raise first_error

    def _remove(self, url):
        locator = self._resolver.locate(url)
        container = locator.container_name
        is_directory = self._resolver.is_directory(url)
        prefix = locator.directory_path if is_directory else locator.file_path

        if not prefix:
            if self._resolver.root_path:
                raise InvalidLocator(
                    f"Refusing to remove container {container!r} "
                    f"below root path {self._resolver.root_path!r}"
                )
            if self._store.delete_container(container):
                logger.info("Removed container %s", container)
            return

        if not is_directory:
            self._store.delete(container, prefix)
            return

        keys = [entry.name for entry in self._store.list_blobs(container, prefix=prefix)]
        gather(
            [functools.partial(self._store.delete, container, key) for key in keys],
            self.max_workers,
        )
        logger.info("Removed %d object(s) below %s/%s", len(keys), container, prefix)

    def _publish_deleted(self, urls):
        if self._event_publisher is None or not urls:
            return
        self._event_publisher.publish(
            BlobDeletedEvent(entries=tuple(BlobEventInfo(id=url, uri=url) for url in urls))
        )
