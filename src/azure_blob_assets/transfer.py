from azure_blob_assets.concurrency import DEFAULT_MAX_WORKERS
from azure_blob_assets.concurrency import gather
from azure_blob_assets.errors import ExtensionNotAllowed
from azure_blob_assets.errors import InvalidLocator
from azure_blob_assets.hierarchy import is_marker
from azure_blob_assets.policy import ExtensionPolicy

import functools
import logging


logger = logging.getLogger(__name__)


class TransferOrchestrator:
    """Moves or copies a blob or an emulated folder.

    The source keys are listed once, then one task per key copies it to the
    destination key (same path with the old prefix replaced by the new one)
    and, when moving, deletes the source after the copy has completed.
    Listing and transfer are not a snapshot: keys created under the source
    after the listing are not transferred, keys removed meanwhile are
    skipped.
    """

    def __init__(
        self,
        store,
        resolver,
        hierarchy,
        extension_policy=None,
        max_workers=DEFAULT_MAX_WORKERS,
    ):
        self._store = store
        self._resolver = resolver
        self._hierarchy = hierarchy
        self._extension_policy = extension_policy or ExtensionPolicy()
        self.max_workers = max_workers

    def transfer(self, source_url, dest_url, is_copy=False):
        is_folder = self._resolver.is_directory(source_url)
        source = self._resolver.locate(source_url)
        target = self._resolver.locate(dest_url)
        if is_folder:
            old_prefix, new_prefix = source.directory_path, target.directory_path
        else:
            old_prefix, new_prefix = source.file_path, target.file_path
        if not old_prefix or not new_prefix:
            raise InvalidLocator(
                f"Cannot transfer {source_url!r} to {dest_url!r}: "
                "whole containers cannot be moved or copied"
            )

        self._hierarchy.ensure_container(target.container_name)

        keys = [
            entry.name
            for entry in self._store.list_blobs(source.container_name, prefix=old_prefix)
        ]
        if not is_folder:
            # a file prefix also matches longer names ("a.txt" vs "a.txt.bak")
            keys = [key for key in keys if key == old_prefix]

        tasks = [
            functools.partial(
                self._transfer_object,
                source.container_name,
                key,
                target.container_name,
                new_prefix + key[len(old_prefix):],
                is_copy,
            )
            for key in keys
        ]
        done = sum(gather(tasks, self.max_workers))
        logger.info(
            "%s %d of %d object(s) from %s to %s",
            "Copied" if is_copy else "Moved",
            done,
            len(keys),
            source_url,
            dest_url,
        )

    def _transfer_object(self, src_container, src_key, dst_container, dst_key, is_copy):
        """Transfer one object; return True if anything was copied."""
        if not is_marker(dst_key) and not self._extension_policy.is_extension_allowed(
            dst_key
        ):
            raise ExtensionNotAllowed(dst_key)

        if self._store.get_properties(dst_container, dst_key) is not None:
            logger.debug("Skipping %s/%s: target exists", dst_container, dst_key)
            return False
        if self._store.get_properties(src_container, src_key) is None:
            logger.debug("Skipping %s/%s: source is gone", src_container, src_key)
            return False

        self._store.copy(src_container, src_key, dst_container, dst_key)
        if not is_copy:
            self._store.delete(src_container, src_key)
        return True
