import posixpath


class AzureBlobAssetsError(Exception):
    """Base class for errors raised by azure_blob_assets."""


class InvalidLocator(AzureBlobAssetsError, ValueError):
    """A URL from which no container or blob path can be derived."""


class ExtensionNotAllowed(AzureBlobAssetsError):
    """The extension policy rejected a write, move or copy target."""

    def __init__(self, path):
        self.path = path
        self.extension = posixpath.splitext(path or "")[1]
        super().__init__(
            f"File extension {self.extension!r} is not allowed. "
            "Please contact administrator."
        )


class BlobNotFound(AzureBlobAssetsError, LookupError):
    """Read of an object that does not exist."""


class BackendUnavailable(AzureBlobAssetsError):
    """Wraps Azure SDK errors to avoid leaking storage account details."""
