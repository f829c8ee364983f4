"""Pure URL and path-segment helpers.

Nothing in this module touches the network or holds state. A trailing
delimiter is the only signal used anywhere in the package to tell a
directory URL (``catalog/images/``) from a file URL (``catalog/a.png``).
"""

from azure_blob_assets.errors import InvalidLocator
from azure_blob_assets.model import DELIMITER
from urllib.parse import quote
from urllib.parse import unquote
from urllib.parse import urljoin
from urllib.parse import urlsplit
from urllib.parse import urlunsplit

import re


_SEPARATORS_RE = re.compile(r"[/\\]")

# Characters RFC 3986 allows unescaped inside a path segment.
_SEGMENT_SAFE = "!$&'()*+,;=:@"
_PATH_SAFE = _SEGMENT_SAFE + "/%"
_QUERY_SAFE = _SEGMENT_SAFE + "/?%"


def is_absolute(url):
    """Return True for URLs carrying a scheme and a host."""
    if not url:
        return False
    parts = urlsplit(url.lstrip("/"))
    return bool(parts.scheme and parts.netloc)


def split_url(url):
    """Split a URL or path into (path, query, fragment) without decoding."""
    rest, _, fragment = (url or "").partition("#")
    path, _, query = rest.partition("?")
    return path, query, fragment


def segmentize(url, decode=True):
    """Return the path segments of an absolute or relative URL.

    For absolute URLs the path component is used (percent-decoded unless
    ``decode`` is false); relative input is taken as-is up to any query
    string. One leading and one trailing delimiter are stripped; empty
    segments in between are kept.
    """
    if is_absolute(url):
        path = urlsplit(url.lstrip("/")).path
        if decode:
            path = unquote(path)
    else:
        path = split_url(url)[0]
    if path[:1] in ("/", "\\"):
        path = path[1:]
    if path[-1:] in ("/", "\\"):
        path = path[:-1]
    return _SEPARATORS_RE.split(path)


def escape(segment):
    """Percent-encode a single path segment, including '/' and '%'."""
    return quote(segment, safe=_SEGMENT_SAFE)


def unescape(segment):
    """Inverse of escape(); '+' is left alone."""
    return unquote(segment)


def escape_path(path):
    """Escape every segment of a raw blob name, keeping the delimiters."""
    return DELIMITER.join(escape(segment) for segment in path.split(DELIMITER))


def encode_path(path):
    """Encode user supplied path text; existing %XX escapes are kept."""
    return quote(path.replace("\\", DELIMITER), safe=_PATH_SAFE)


def encode_query(query):
    return quote(query, safe=_QUERY_SAFE)


def _join_queries(*queries):
    return "&".join(query for query in queries if query)


def resolve_absolute(base_url, url):
    """Resolve ``url`` against ``base_url`` and return an absolute URL.

    Absolute input only gets its encoding normalized. Relative input is
    forced below the base path (a leading '/' never climbs to the host
    root) and both query strings are kept.
    """
    if not url:
        raise InvalidLocator("URL must not be empty")

    if is_absolute(url):
        parts = urlsplit(url.lstrip("/"))
        return urlunsplit(
            (
                parts.scheme,
                parts.netloc,
                encode_path(parts.path),
                encode_query(parts.query),
                parts.fragment,
            )
        )

    base = urlsplit(base_url)
    base_path = base.path if base.path.endswith(DELIMITER) else base.path + DELIMITER
    path, query, fragment = split_url(url)
    path = path.replace("\\", DELIMITER)
    if path.startswith(DELIMITER):
        path = "." + path
    elif not path.startswith("."):
        path = "./" + path

    joined = urlsplit(
        urljoin(
            urlunsplit((base.scheme, base.netloc, base_path, "", "")),
            encode_path(path),
        )
    )
    return urlunsplit(
        (
            joined.scheme,
            joined.netloc,
            joined.path,
            _join_queries(base.query, encode_query(query)),
            fragment,
        )
    )


def combine(*parts):
    """Join URL parts with exactly one delimiter between them."""
    parts = [part for part in parts if part]
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0]
    middle = [part.strip(DELIMITER) for part in parts[1:-1]]
    return DELIMITER.join(
        [parts[0].rstrip(DELIMITER)] + middle + [parts[-1].lstrip(DELIMITER)]
    )
