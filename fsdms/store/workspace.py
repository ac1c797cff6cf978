"""
Workspace lifecycle: soft-delete, reset and purge of whole workspaces.

The version marker scheme used for documents is applied one level up, to the
workspace's own folder under the base path:

    <base>/<workspace>                              active workspace
    <base>/_DEL_<yyyyMMdd_HHmmss_SSS>_!@#-<workspace>  soft-deleted copy

Invariants:
    - At most one active folder per workspace name
    - Workspaces are only ever soft-deleted, never overridden
    - Once deleted, the instance rejects document operations until reset
    - Reset is two steps (rename, then mkdir) and is not atomic
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from ..errors import InvalidArgumentError, StoreIOError, WorkspaceDeletedError
from ..versioning import is_obsolete, soft_deleted_path
from .names import validate_workspace

logger = logging.getLogger(__name__)


def _raise_walk_error(error: OSError) -> None:
    raise StoreIOError(f"Failed to walk {error.filename}", error.filename) from error


class WorkspaceLifecycle:
    """Lifecycle state of one workspace folder.

    Attributes:
        workspace: Workspace name
        path: Active workspace folder
    """

    def __init__(
        self,
        base_path: Path | str,
        workspace: str,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.workspace = validate_workspace(workspace)
        self.path = Path(base_path) / workspace
        self._clock = clock
        self._deleted = False

        if not self.path.exists():
            try:
                self.path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StoreIOError(f"Failed to create workspace: {self.path}", self.path) from e
            logger.info(f"Created workspace {self.workspace} at {self.path}")
        elif not self.path.is_dir():
            raise InvalidArgumentError(
                f"Workspace is not a directory: {self.workspace}", workspace=self.workspace
            )

    @property
    def deleted(self) -> bool:
        """Whether this workspace has been soft-deleted and not reset since."""
        return self._deleted

    def ensure_active(self) -> None:
        """Raise WorkspaceDeletedError if the workspace is soft-deleted."""
        if self._deleted:
            raise WorkspaceDeletedError(self.workspace)

    def delete_workspace(self) -> None:
        """Soft-delete the workspace by renaming its folder to a marker.

        Raises:
            WorkspaceDeletedError: If already deleted
            StoreIOError: If the rename fails
        """
        self.ensure_active()
        target = soft_deleted_path(self.path, self._clock())
        if target.exists():
            raise StoreIOError(f"Failed to move {self.path} -> {target}: target exists", target)
        try:
            self.path.rename(target)
        except OSError as e:
            raise StoreIOError(f"Failed to move {self.path} -> {target}", self.path) from e
        self._deleted = True
        logger.info(f"Soft-deleted workspace {self.workspace} -> {target.name}")

    def reset_workspace(self) -> None:
        """Soft-delete the workspace (unless already deleted) and start an empty one."""
        if not self._deleted:
            self.delete_workspace()
        try:
            self.path.mkdir()
        except OSError as e:
            raise StoreIOError(f"Failed to init workspace {self.path}", self.path) from e
        self._deleted = False
        logger.info(f"Reset workspace {self.workspace}")

    def purge_workspace(self, cutoff: datetime | None = None) -> int:
        """Hard-delete obsolete copies of this workspace.

        Args:
            cutoff: If given, only copies that became obsolete strictly before it

        Returns:
            Number of obsolete workspace trees removed.
        """
        parent = self.path.parent
        try:
            candidates = sorted(
                entry for entry in parent.iterdir() if is_obsolete(entry.name, self.workspace, cutoff)
            )
        except OSError as e:
            raise StoreIOError(f"Failed to list files at path: {parent}", parent) from e

        for obsolete in candidates:
            logger.info(f"Recursively hard-deleting: {obsolete}")
            _remove_tree(obsolete)
        return len(candidates)


def _remove_tree(root: Path) -> None:
    """Remove root and everything below it, children before parents."""
    try:
        if root.is_symlink() or not root.is_dir():
            root.unlink()
            return
        for dirpath, dirnames, filenames in os.walk(root, topdown=False, onerror=_raise_walk_error):
            for name in filenames:
                file_path = Path(dirpath) / name
                logger.debug(f"Hard deleting: {file_path}")
                file_path.unlink()
            for name in dirnames:
                dir_path = Path(dirpath) / name
                logger.debug(f"Hard deleting: {dir_path}")
                if dir_path.is_symlink():
                    dir_path.unlink()
                else:
                    dir_path.rmdir()
        root.rmdir()
    except OSError as e:
        raise StoreIOError(f"Failed to delete: {e.filename or root}", e.filename or root) from e
