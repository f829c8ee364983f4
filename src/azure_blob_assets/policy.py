from azure_blob_assets.interfaces import IExtensionPolicy
from zope.interface import implementer

import posixpath


def extension_of(path):
    """Return the lower-cased extension of path, with its leading dot."""
    return posixpath.splitext(path or "")[1].lower()


def _normalize(extensions):
    return frozenset(
        "." + ext.lower().lstrip(".") for ext in extensions if ext.strip(".")
    )


@implementer(IExtensionPolicy)
class ExtensionPolicy:
    """Allow/deny list of file extensions, compared case-insensitively.

    With no allow list every extension not blocked is accepted.
    """

    def __init__(self, allowed=None, blocked=()):
        self.allowed = _normalize(allowed) if allowed else None
        self.blocked = _normalize(blocked or ())

    def is_extension_allowed(self, path):
        extension = extension_of(path)
        if extension in self.blocked:
            return False
        if self.allowed is None:
            return True
        return extension in self.allowed
