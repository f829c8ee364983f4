from zope.interface import Attribute
from zope.interface import Interface


class IBlobStore(Interface):
    """Abstraction over the Azure Blob Storage service client."""

    url = Attribute("Base URL of the storage account.")

    def create_container_if_absent(name, public_access=False):
        """Create a container unless it exists already."""

    def container_exists(name):
        """Return True if the container exists."""

    def get_container_properties(name):
        """Return a ContainerEntry, or None if the container is missing."""

    def delete_container(name):
        """Delete a container; return False if it did not exist."""

    def list_containers(prefix=None):
        """Return every ContainerEntry whose name starts with prefix."""

    def get_properties(container, key):
        """Return a BlobEntry for an object, or None if not found."""

    def open_read(container, key):
        """Return a readable binary stream; raise BlobNotFound if absent."""

    def open_write(container, key, content_type=None, cache_control=None,
                   on_close=None):
        """Return a write-only binary stream uploading the object on close."""

    def upload(container, key, data, content_type=None, cache_control=None):
        """Create or overwrite an object."""

    def list_blobs(container, prefix=None, delimiter=None):
        """Return the complete listing (all pages) as ListingEntry items.

        With a delimiter, keys sharing a prefix up to the next delimiter
        are folded into one entry with is_prefix set.
        """

    def has_blobs(container, prefix=None):
        """Return True if any object name starts with prefix.

        Stops at the first match instead of listing everything.
        """

    def copy(src_container, src_key, dst_container, dst_key):
        """Server-side copy; return once the copy has completed."""

    def delete(container, key):
        """Delete an object; return False if it did not exist."""


class IExtensionPolicy(Interface):
    """Decides which file extensions may be written."""

    def is_extension_allowed(path):
        """Return True if a blob may be written at path."""


class IEventPublisher(Interface):
    """Receives change notifications."""

    def publish(event):
        """Publish a BlobDeletedEvent or BlobCreatedEvent."""


class IBlobReader(Interface):

    def get_blob_info(url):
        """Return a BlobRecord, or None when absent or on any lookup error."""

    def find_blob_info(url):
        """Return a BlobLookup telling absence and failure apart."""

    def exists(url):
        """Return True if a blob, virtual folder or container exists."""

    def open_read(url):
        """Return a readable binary stream for the blob."""


class IBlobWriter(Interface):

    def open_write(url):
        """Return a write-only binary stream for the blob."""

    def remove(urls):
        """Remove blobs, folders or containers."""

    def move(src_url, dest_url):
        """Move a blob or a folder."""

    def copy(src_url, dest_url):
        """Copy a blob or a folder."""


class IBlobUrlResolver(Interface):

    def get_absolute_url(blob_key):
        """Return the absolute (CDN, if configured) URL of a blob key."""

    def get_relative_url(url):
        """Return the store-relative URL, always starting with '/'."""


class IBlobHierarchy(Interface):

    def search(folder_url=None, keyword=None):
        """List a folder, or the containers when no folder is given."""

    def create_folder(folder):
        """Create an empty virtual folder."""


class IAzureBlobProvider(IBlobReader, IBlobWriter, IBlobUrlResolver,
                         IBlobHierarchy):
    """Marker for the Azure-backed asset provider."""
