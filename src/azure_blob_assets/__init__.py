"""Azure Blob Storage as a virtual file/folder tree for asset management."""

from azure_blob_assets.provider import AzureBlobProvider  # noqa: F401
