from azure_blob_assets.errors import InvalidLocator
from azure_blob_assets.model import DELIMITER
from azure_blob_assets.model import StorageLocator
from azure_blob_assets.urlcodec import escape
from azure_blob_assets.urlcodec import escape_path
from azure_blob_assets.urlcodec import is_absolute
from azure_blob_assets.urlcodec import resolve_absolute
from azure_blob_assets.urlcodec import segmentize
from azure_blob_assets.urlcodec import split_url
from azure_blob_assets.urlcodec import unescape
from urllib.parse import urlsplit
from urllib.parse import urlunsplit

import re


def _validate_root_path(root_path):
    root_path = (root_path or "").strip(DELIMITER)
    if not re.fullmatch(r"[a-zA-Z0-9._/-]*", root_path):
        raise ValueError(
            f"root-path contains invalid characters: {root_path!r}. "
            "Only alphanumeric characters, dots, hyphens, underscores, "
            "and slashes are allowed."
        )
    if ".." in root_path.split(DELIMITER):
        raise ValueError(f"root-path must not contain '..': {root_path!r}")
    return root_path


def _with_trailing_delimiter(path):
    return path if path.endswith(DELIMITER) else path + DELIMITER


class PathResolver:
    """Maps URLs to container/blob coordinates and back.

    The container is always the first path segment. ``base_url`` is the
    storage account URL; if it has a path of its own (emulators serve
    accounts below ``/<account>``) that path is skipped, not taken as the
    container. The same holds for a ``cdn_url`` given as a full base URL.
    ``root_path`` confines every locator to ``container/sub/tree``:
    relative input is resolved below it and absolute input must lie in it.
    """

    def __init__(self, base_url, cdn_url=None, root_path=None):
        parts = urlsplit(base_url)
        self.base_url = base_url
        self.cdn_url = cdn_url or None
        self.root_path = _validate_root_path(root_path)
        self._scheme = parts.scheme
        # (host, path segments) of every base whose path precedes the container
        self._base_segments = [
            (parts.netloc, [s for s in parts.path.split(DELIMITER) if s])
        ]
        if self.cdn_url and "://" in self.cdn_url:
            cdn = urlsplit(self.cdn_url)
            self._base_segments.append(
                (cdn.netloc, [s for s in cdn.path.split(DELIMITER) if s])
            )
        self._root_segments = [
            escape(s) for s in self.root_path.split(DELIMITER) if s
        ]

    # -- Bases --

    def _account_base(self, use_cdn=False):
        """Account (or CDN) URL path ending with the delimiter, no root."""
        if use_cdn and self.cdn_url:
            if "://" in self.cdn_url:
                return _with_trailing_delimiter(self.cdn_url)
            return urlunsplit(
                (self._scheme, self.cdn_url.strip(DELIMITER), DELIMITER, "", "")
            )
        parts = urlsplit(self.base_url)
        return urlunsplit(
            (
                parts.scheme,
                parts.netloc,
                _with_trailing_delimiter(parts.path),
                parts.query,
                "",
            )
        )

    def _rooted(self, base):
        if not self.root_path:
            return base
        parts = urlsplit(base)
        path = parts.path + DELIMITER.join(self._root_segments) + DELIMITER
        return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))

    @property
    def store_url(self):
        """Account URL plus root path; relative input resolves below it."""
        return self._rooted(self._account_base())

    @property
    def public_url(self):
        """Like store_url, with the CDN host when one is configured."""
        return self._rooted(self._account_base(use_cdn=True))

    def _base_paths(self):
        paths = [urlsplit(self.store_url).path, urlsplit(self.public_url).path]
        return sorted(set(paths), key=len, reverse=True)

    # -- URL to locator --

    def segments(self, url):
        """Return the raw (still escaped) segments, container first."""
        if url is None:
            raise InvalidLocator("URL must not be None")

        if is_absolute(url):
            segments = segmentize(url, decode=False)
            host = urlsplit(url.lstrip(DELIMITER)).netloc
            for netloc, base in self._base_segments:
                if base and host == netloc and segments[: len(base)] == base:
                    segments = segments[len(base):]
                    break
            root = [unescape(s) for s in self._root_segments]
            if root and [unescape(s) for s in segments[: len(root)]] != root:
                raise InvalidLocator(
                    f"URL {url!r} is outside of the root path {self.root_path!r}"
                )
        else:
            segments = segmentize(url)
            if segments == [""]:
                segments = []
            segments = self._root_segments + segments

        if any(unescape(s) == ".." for s in segments):
            raise InvalidLocator(f"URL must not contain '..': {url!r}")
        if not segments or not segments[0]:
            raise InvalidLocator(f"Cannot get container name from URL {url!r}")
        return segments

    def is_directory(self, url):
        """A trailing delimiter marks a directory; anything else is a file."""
        if is_absolute(url):
            path = urlsplit(url.lstrip(DELIMITER)).path
        else:
            path = split_url(url)[0]
        return path.endswith((DELIMITER, "\\"))

    def container_name(self, url):
        return unescape(self.segments(url)[0])

    def _remainder(self, url):
        return DELIMITER.join(self.segments(url)[1:])

    def directory_path(self, url):
        remainder = self._remainder(url)
        return unescape(remainder) + DELIMITER if remainder else None

    def file_path(self, url):
        remainder = self._remainder(url)
        return unescape(remainder) if remainder else None

    def locate(self, url):
        segments = self.segments(url)
        remainder = unescape(DELIMITER.join(segments[1:]))
        return StorageLocator(
            container_name=unescape(segments[0]),
            directory_path=remainder + DELIMITER if remainder else None,
            file_path=remainder or None,
        )

    # -- Locator to URL --

    def absolute_url(self, url, use_cdn=True):
        """Resolve a blob key or URL to an absolute URL.

        Absolute input is kept (re-encoded); relative input resolves below
        the root path on the CDN host if configured, else the account.
        """
        if not url:
            raise InvalidLocator("URL must not be empty")
        if not is_absolute(url) and ".." in segmentize(url):
            raise InvalidLocator(f"URL must not contain '..': {url!r}")
        base = self.public_url if use_cdn else self.store_url
        return resolve_absolute(base, url)

    def locator_url(self, locator, use_cdn=False):
        path = locator.file_path or locator.directory_path or ""
        return (
            self._account_base(use_cdn).split("?", 1)[0]
            + escape(locator.container_name)
            + DELIMITER
            + escape_path(path)
        )

    def container_url(self, container_name):
        return self.locator_url(StorageLocator(container_name))

    def blob_url(self, container_name, key):
        return self.locator_url(StorageLocator(container_name, file_path=key))

    def folder_url(self, container_name, directory_path):
        if not directory_path:
            return self.container_url(container_name)
        return self.locator_url(
            StorageLocator(container_name, directory_path=directory_path)
        )

    def relative_url(self, url):
        """Path of url relative to the store base, with one leading '/'.

        The query string is dropped.
        """
        if is_absolute(url):
            path = urlsplit(url.lstrip(DELIMITER)).path
        else:
            path = split_url(url)[0]
        for base_path in self._base_paths():
            if path.startswith(base_path):
                path = path[len(base_path):]
                break
        return DELIMITER + path.lstrip(DELIMITER)
