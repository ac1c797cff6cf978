"""
Filesystem document store for one workspace.

Layout:
    <base>/<workspace>/<directory>/<key>                                active document
    <base>/<workspace>/<directory>/_DEL_<ts>_!@#-<key>                  soft-deleted copy
    <base>/<workspace>/<directory>/_OVR_<ts>_!@#-<key>                  overridden copy

Documents are never overwritten or removed in place. put() renames the current
version to an overridden marker before writing, delete() renames it to a
soft-delete marker, and only purge() removes files for good.

Invariants:
    - Exactly one active entry per (directory, key)
    - Marker timestamps are taken per rename, not per batch
    - Listings never return soft-deleted names
    - No operation is allowed on a soft-deleted workspace until it is reset

How to change safely:
    - put() is rename-then-write, two filesystem steps with no rollback
    - Callers are expected to have a single writer per key
    - Keep all marker naming in fsdms.versioning
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable, Mapping
from datetime import date, datetime
from pathlib import Path
from typing import Any, TypeVar

from ..errors import (
    DocumentExistsError,
    DocumentNotFoundError,
    InvalidArgumentError,
    StoreIOError,
)
from ..period import find_redundant_keys
from ..versioning import is_obsolete, is_soft_deleted, overridden_path, soft_deleted_path
from . import content
from .names import validate_directory, validate_key
from .workspace import WorkspaceLifecycle

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)

Content = str | bytes | Mapping[str, str]


class DocumentStore:
    """Keyed documents in directories of one workspace.

    Thread safety:
        No locking is done. Concurrent writers to the same key may interleave
        between the rename and the write of put(), and between the existence
        check and the write of add().

    Example:
        >>> store = DocumentStore("/var/lib/dms", "statements")
        >>> store.put("2024", "jan.csv", "date,amount\\n")
        True
        >>> store.get_keys("2024")
        ['jan.csv']
        >>> store.delete("2024", "jan.csv")
        >>> store.purge("2024")
        1
    """

    def __init__(
        self,
        base_path: Path | str,
        workspace: str,
        clock: Callable[[], datetime] = datetime.now,
        default_charset: str = content.DEFAULT_CHARSET,
        alternative_charset: str | None = None,
    ) -> None:
        """Open (creating if needed) a workspace under base_path.

        Args:
            base_path: Directory holding all workspaces
            workspace: Workspace name
            clock: Source of "now" for marker timestamps
            default_charset: Charset used when a call passes none
            alternative_charset: Fallback charset for text reads that pass none
        """
        self._lifecycle = WorkspaceLifecycle(base_path, workspace, clock=clock)
        self._clock = clock
        self.default_charset = default_charset
        self.alternative_charset = alternative_charset

    @property
    def workspace(self) -> str:
        return self._lifecycle.workspace

    @property
    def workspace_path(self) -> Path:
        return self._lifecycle.path

    @property
    def workspace_deleted(self) -> bool:
        return self._lifecycle.deleted

    # --- paths ---------------------------------------------------------------

    def _directory_path(self, directory: str) -> Path:
        """Resolve a directory, which must be a directory if it exists at all."""
        path = self.workspace_path / directory
        if path.exists() and not path.is_dir():
            raise InvalidArgumentError(
                f"Not a directory: {path}, workspace={self.workspace}",
                workspace=self.workspace,
                directory=directory,
            )
        return path

    def _get_or_create_directory(self, directory: str) -> Path:
        path = self._directory_path(directory)
        if not path.exists():
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StoreIOError(f"Failed to create directory: {path}", path) from e
        return path

    def _existing_document(self, directory: str, key: str) -> Path:
        self._lifecycle.ensure_active()
        validate_directory(directory)
        validate_key(key)
        path = self.workspace_path / directory / key
        if not path.exists():
            raise DocumentNotFoundError(self.workspace, directory, key)
        return path

    def _rename(self, source: Path, target: Path) -> None:
        # Path.rename silently replaces an existing target on POSIX
        if target.exists():
            raise StoreIOError(f"Failed to move {source} -> {target}: target exists", target)
        try:
            source.rename(target)
        except OSError as e:
            raise StoreIOError(f"Failed to move {source} -> {target}", source) from e

    def _serialize(self, value: Content, charset: str | None) -> bytes:
        """Encode content up front, so invalid input never touches the filesystem."""
        charset = charset or self.default_charset
        if isinstance(value, str):
            return content.encode_text(value, charset)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        if isinstance(value, Mapping):
            return content.encode_properties(value, charset)
        raise InvalidArgumentError(f"Unsupported content type: {type(value).__name__}")

    def _charsets(self, charset: str | None, alternative_charset: str | None) -> list[str]:
        if charset is None:
            charset = self.default_charset
            alternative_charset = alternative_charset or self.alternative_charset
        charsets = [charset]
        if alternative_charset is not None and alternative_charset != charset:
            charsets.append(alternative_charset)
        return charsets

    # --- listing -------------------------------------------------------------

    def get_keys(self, directory: str) -> list[str]:
        """Active keys of a directory in ascending order.

        A directory that doesn't exist has no keys.
        """
        self._lifecycle.ensure_active()
        validate_directory(directory)
        path = self._directory_path(directory)
        if not path.exists():
            return []
        try:
            names = [entry.name for entry in path.iterdir()]
        except OSError as e:
            raise StoreIOError(f"Failed to list files at path: {path}", path) from e
        return sorted(name for name in names if not is_soft_deleted(name))

    def exists(self, directory: str, key: str) -> bool:
        self._lifecycle.ensure_active()
        validate_directory(directory)
        validate_key(key)
        path = self._directory_path(directory)
        if not path.exists():
            return False
        return (path / key).exists()

    # --- writing -------------------------------------------------------------

    def add(self, directory: str, key: str, value: str | bytes, charset: str | None = None) -> None:
        """Add a new document.

        Raises:
            DocumentExistsError: If an active document with this key exists
        """
        self._lifecycle.ensure_active()
        validate_directory(directory)
        validate_key(key)
        data = self._serialize(value, charset)
        path = self._get_or_create_directory(directory) / key
        if path.exists():
            raise DocumentExistsError(self.workspace, directory, key)
        content.write_bytes(path, data)

    def put(self, directory: str, key: str, value: Content, charset: str | None = None) -> bool:
        """Add or replace a document.

        An existing version is kept as an overridden copy until purged.

        Returns:
            True if the key was new, False if an existing version was replaced.
        """
        self._lifecycle.ensure_active()
        validate_directory(directory)
        validate_key(key)
        data = self._serialize(value, charset)
        path = self._get_or_create_directory(directory) / key
        is_new = not path.exists()
        if not is_new:
            target = overridden_path(path, self._clock())
            self._rename(path, target)
            logger.debug(f"Overridden: {path} -> {target.name}")
        content.write_bytes(path, data)
        return is_new

    def put_properties(
        self,
        directory: str,
        key: str,
        properties: Mapping[str, str],
        charset: str | None = None,
    ) -> bool:
        return self.put(directory, key, properties, charset)

    # --- reading -------------------------------------------------------------

    def get_text_content(
        self,
        directory: str,
        key: str,
        charset: str | None = None,
        alternative_charset: str | None = None,
    ) -> str:
        """Read a document as text.

        Args:
            charset: Charset to decode with (store default if None)
            alternative_charset: Charset tried if the first one fails to decode

        Raises:
            DocumentNotFoundError: If the key has no active document
            ContentDecodingError: If no charset decodes the content
        """
        path = self._existing_document(directory, key)
        return content.read_text_with_fallback(path, self._charsets(charset, alternative_charset))

    def get_text_lines(
        self,
        directory: str,
        key: str,
        limit: int | None = None,
        charset: str | None = None,
        alternative_charset: str | None = None,
    ) -> list[str]:
        """Read a document as lines, optionally only the first ``limit`` ones."""
        path = self._existing_document(directory, key)
        return content.read_lines_with_fallback(path, self._charsets(charset, alternative_charset), limit)

    def get_binary_content(self, directory: str, key: str) -> bytes:
        return content.read_bytes(self._existing_document(directory, key))

    def get_properties_content(self, directory: str, key: str, charset: str | None = None) -> dict[str, str]:
        path = self._existing_document(directory, key)
        return content.read_properties(path, charset or self.default_charset)

    def get_last_modified_time(self, directory: str, key: str) -> datetime:
        """Modification time of the active document, as naive local time."""
        path = self._existing_document(directory, key)
        try:
            return datetime.fromtimestamp(path.stat().st_mtime)
        except OSError as e:
            raise StoreIOError(f"Failed to get the last modified time {path}", path) from e

    # --- deleting ------------------------------------------------------------

    def delete(self, directory: str, keys: str | Iterable[str]) -> None:
        """Soft-delete one or more documents.

        All keys are validated before anything is renamed. Keys are then
        processed in order; a missing key raises DocumentNotFoundError and
        renames already done in this call stay done.
        """
        self._lifecycle.ensure_active()
        validate_directory(directory)
        key_list = [keys] if isinstance(keys, str) else list(keys)
        for key in key_list:
            validate_key(key)

        directory_path = self.workspace_path / directory
        for key in key_list:
            path = directory_path / key
            if not path.exists():
                raise DocumentNotFoundError(self.workspace, directory, key)
            target = soft_deleted_path(path, self._clock())
            self._rename(path, target)
            logger.debug(f"Soft-deleted: {path} -> {target.name}")

    def purge(self, directory: str, original_key: str | None = None, cutoff: datetime | None = None) -> int:
        """Hard-delete obsolete (soft-deleted or overridden) copies in a directory.

        Args:
            directory: Directory to purge
            original_key: If given, only copies of this key
            cutoff: If given, only copies that became obsolete strictly before it

        Returns:
            Number of files removed.
        """
        self._lifecycle.ensure_active()
        validate_directory(directory)
        if original_key is not None:
            validate_key(original_key)
        path = self._directory_path(directory)
        if not path.exists():
            return 0
        try:
            to_delete = [entry for entry in path.iterdir() if is_obsolete(entry.name, original_key, cutoff)]
        except OSError as e:
            raise StoreIOError(f"Failed to list files at path: {path}", path) from e

        for file_path in to_delete:
            logger.info(f"Hard deleting: {file_path}")
            try:
                file_path.unlink()
            except OSError as e:
                raise StoreIOError(f"Failed to delete: {file_path}", file_path) from e
        return len(to_delete)

    # --- period keys ---------------------------------------------------------

    def get_redundant_period_keys(
        self,
        directory: str,
        key_fn: Callable[[str], K | None],
        start_fn: Callable[[K], date],
        end_fn: Callable[[K], date],
    ) -> dict[K, str]:
        """Find documents whose period is covered by neighboring documents.

        Args:
            directory: Directory to analyze
            key_fn: Derives a period key from a raw key; None skips the document
            start_fn: Inclusive start date of a period key
            end_fn: Inclusive end date of a period key

        Returns:
            Redundant period keys mapped to their raw keys, in listing order.

        Raises:
            InvalidArgumentError: If two raw keys derive the same period key
        """
        derived: dict[K, str] = {}
        for raw_key in self.get_keys(directory):
            period_key = key_fn(raw_key)
            if period_key is None:
                continue
            if period_key in derived:
                raise InvalidArgumentError(
                    f"Duplicate key: {raw_key}, {period_key}",
                    raw_key=raw_key,
                    other_raw_key=derived[period_key],
                )
            derived[period_key] = raw_key
        redundant = set(find_redundant_keys(derived, start_fn, end_fn))
        return {k: raw for k, raw in derived.items() if k in redundant}

    def get_redundant_keys(
        self,
        keys: Iterable[Any],
        start_fn: Callable[[Any], date],
        end_fn: Callable[[Any], date],
    ) -> list[Any]:
        """Redundant subset of caller-supplied period keys, in (start, end) order."""
        return find_redundant_keys(keys, start_fn, end_fn)

    # --- workspace -----------------------------------------------------------

    def reset_workspace(self) -> None:
        """Soft-delete the whole workspace and start again with an empty one."""
        self._lifecycle.reset_workspace()

    def delete_workspace(self) -> None:
        """Soft-delete the whole workspace; this instance is unusable until reset."""
        self._lifecycle.delete_workspace()

    def purge_workspace(self, cutoff: datetime | None = None) -> int:
        """Hard-delete soft-deleted copies of this workspace."""
        return self._lifecycle.purge_workspace(cutoff)
