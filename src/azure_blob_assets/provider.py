from azure_blob_assets.concurrency import DEFAULT_MAX_WORKERS
from azure_blob_assets.errors import AzureBlobAssetsError
from azure_blob_assets.errors import BlobNotFound
from azure_blob_assets.errors import ExtensionNotAllowed
from azure_blob_assets.errors import InvalidLocator
from azure_blob_assets.hierarchy import guess_content_type
from azure_blob_assets.hierarchy import HierarchyEmulator
from azure_blob_assets.interfaces import IAzureBlobProvider
from azure_blob_assets.model import BlobCreatedEvent
from azure_blob_assets.model import BlobEventInfo
from azure_blob_assets.model import BlobLookup
from azure_blob_assets.paths import PathResolver
from azure_blob_assets.policy import ExtensionPolicy
from azure_blob_assets.transfer import TransferOrchestrator
from zope.interface import implementer

import functools
import logging


logger = logging.getLogger(__name__)

# Leverage browser caching: 7 days
CACHE_CONTROL = "public, max-age=604800"


@implementer(IAzureBlobProvider)
class AzureBlobProvider:
    """Asset storage provider backed by Azure Blob Storage.

    Accepts absolute, root-relative (``/catalog/a.png``) and
    container-relative (``catalog/a.png``) URLs everywhere. Folders are
    virtual, see HierarchyEmulator.
    """

    def __init__(
        self,
        store,
        extension_policy=None,
        event_publisher=None,
        cdn_url=None,
        allow_blob_public_access=True,
        root_path=None,
        max_workers=DEFAULT_MAX_WORKERS,
    ):
        self._store = store
        self._extension_policy = extension_policy or ExtensionPolicy()
        self._event_publisher = event_publisher
        self.resolver = PathResolver(store.url, cdn_url=cdn_url, root_path=root_path)
        self.hierarchy = HierarchyEmulator(
            store,
            self.resolver,
            allow_public_access=allow_blob_public_access,
            event_publisher=event_publisher,
            max_workers=max_workers,
        )
        self.transfers = TransferOrchestrator(
            store,
            self.resolver,
            self.hierarchy,
            extension_policy=self._extension_policy,
            max_workers=max_workers,
        )

    def __repr__(self):
        return f"<AzureBlobProvider for {self._store!r}>"

    # -- IBlobReader --

    def find_blob_info(self, url):
        try:
            locator = self.resolver.locate(url)
            if not locator.file_path or self.resolver.is_directory(url):
                return BlobLookup()
            entry = self._store.get_properties(locator.container_name, locator.file_path)
        except AzureBlobAssetsError as e:
            return BlobLookup(error=e)
        if entry is None:
            return BlobLookup()
        return BlobLookup(info=self.hierarchy.blob_record(locator.container_name, entry))

    def get_blob_info(self, url):
        # One round trip: a failed lookup reads as "not found".
        lookup = self.find_blob_info(url)
        if lookup.error is not None:
            logger.debug("Blob lookup failed for %s: %s", url, lookup.error)
        return lookup.info

    def exists(self, url):
        if self.get_blob_info(url) is not None:
            return True
        try:
            return self._folder_exists(url)
        except AzureBlobAssetsError:
            logger.debug("Folder lookup failed for %s", url, exc_info=True)
            return False

    def _folder_exists(self, url):
        locator = self.resolver.locate(url)
        if not locator.directory_path:
            return self._store.container_exists(locator.container_name)
        return self._store.has_blobs(locator.container_name, prefix=locator.directory_path)

    def open_read(self, url):
        locator = self.resolver.locate(url)
        if not locator.file_path:
            raise BlobNotFound(f"No blob at {url!r}")
        return self._store.open_read(locator.container_name, locator.file_path)

    # -- IBlobWriter --

    def open_write(self, url):
        locator = self.resolver.locate(url)
        file_path = locator.file_path
        if not file_path or self.resolver.is_directory(url):
            raise InvalidLocator(f"Cannot get file path from URL {url!r}")
        if not self._extension_policy.is_extension_allowed(file_path):
            raise ExtensionNotAllowed(file_path)

        self.hierarchy.ensure_container(locator.container_name)
        return self._store.open_write(
            locator.container_name,
            file_path,
            content_type=guess_content_type(file_path),
            cache_control=CACHE_CONTROL,
            on_close=functools.partial(self._publish_created, url),
        )

    def _publish_created(self, url):
        if self._event_publisher is None:
            return
        self._event_publisher.publish(
            BlobCreatedEvent(entries=(BlobEventInfo(id=url, uri=url),))
        )

    def remove(self, urls):
        self.hierarchy.remove_many(urls)

    def move(self, src_url, dest_url):
        self.transfers.transfer(src_url, dest_url, is_copy=False)

    def copy(self, src_url, dest_url):
        self.transfers.transfer(src_url, dest_url, is_copy=True)

    # -- IBlobHierarchy --

    def search(self, folder_url=None, keyword=None):
        return self.hierarchy.search(folder_url, keyword)

    def create_folder(self, folder):
        self.hierarchy.create_folder(folder)

    # -- IBlobUrlResolver --

    def get_absolute_url(self, blob_key):
        return self.resolver.absolute_url(blob_key)

    def get_relative_url(self, url):
        return self.resolver.relative_url(url)
