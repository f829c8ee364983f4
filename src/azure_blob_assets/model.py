"""Value types shared by the resolver, the hierarchy layer and the provider.

Every record is an immutable snapshot built from backend metadata on each
call; nothing here is persisted or cached.
"""

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from typing import Optional


DELIMITER = "/"
MARKER_NAME = ".keep"
PROVIDER_NAME = "AzureBlobStorage"


@dataclass(frozen=True)
class StorageLocator:
    """Container and path coordinates derived from a URL."""

    container_name: str
    directory_path: Optional[str] = None  # always ends with DELIMITER
    file_path: Optional[str] = None


@dataclass(frozen=True)
class BlobRecord:
    url: str
    relative_url: str
    name: str
    content_type: Optional[str] = None
    size: int = 0
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None


@dataclass(frozen=True)
class FolderRecord:
    """A virtual folder (or a container).

    Only ``name`` and ``parent_url`` are read when a folder is created.
    """

    name: str
    url: Optional[str] = None
    relative_url: Optional[str] = None
    parent_url: Optional[str] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None


@dataclass(frozen=True)
class SearchResult:
    results: tuple = ()
    total_count: int = 0


@dataclass(frozen=True)
class BlobEntry:
    """Backend properties of a single object."""

    name: str
    size: int = 0
    content_type: Optional[str] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None


@dataclass(frozen=True)
class ListingEntry:
    """One item of a prefix listing: a common prefix or an object."""

    name: str
    is_prefix: bool = False
    blob: Optional[BlobEntry] = None


@dataclass(frozen=True)
class ContainerEntry:
    name: str
    modified_at: Optional[datetime] = None


@dataclass(frozen=True)
class BlobLookup:
    """Outcome of a strict lookup.

    ``info`` is None when the object is absent or the lookup failed;
    ``error`` tells the two apart.
    """

    info: Optional[BlobRecord] = None
    error: Optional[Exception] = None

    @property
    def found(self):
        return self.info is not None


@dataclass(frozen=True)
class BlobEventInfo:
    id: str
    uri: str
    provider: str = PROVIDER_NAME


@dataclass(frozen=True)
class BlobDeletedEvent:
    entries: tuple = field(default_factory=tuple)

    @property
    def ids(self):
        return [entry.id for entry in self.entries]


@dataclass(frozen=True)
class BlobCreatedEvent:
    entries: tuple = field(default_factory=tuple)

    @property
    def ids(self):
        return [entry.id for entry in self.entries]
