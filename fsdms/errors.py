"""
Error types for the filesystem document store.

This module defines all exception types raised by fsdms:
- DmsError: Base exception, carries an ErrorKind
- InvalidArgumentError: Malformed names, path collisions, duplicate keys
- DocumentNotFoundError: No active entry for the requested key
- WorkspaceDeletedError: Operation on a soft-deleted workspace
- StoreIOError: Underlying filesystem failure
- ContentDecodingError: Charset decoding failed for every configured charset

Invariants:
    - All errors inherit from DmsError
    - Every error has exactly one ErrorKind
    - IO and decoding errors carry the offending path
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any


class ErrorKind(Enum):
    """Error kinds for programmatic handling."""

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    ILLEGAL_STATE = "ILLEGAL_STATE"
    IO_FAILURE = "IO_FAILURE"
    DECODING_FAILURE = "DECODING_FAILURE"


class DmsError(Exception):
    """Base exception for all document store errors.

    Attributes:
        message: Error message
        kind: Error kind
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.details = details or {}

    @property
    def code(self) -> str:
        """Error code string, same as the kind value."""
        return self.kind.value


class InvalidArgumentError(DmsError):
    """Invalid argument.

    Raised when:
    - Workspace, directory or key name is empty or malformed
    - A path that must be a directory is something else
    - A derived period key is produced twice
    """

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message, ErrorKind.INVALID_ARGUMENT, details)


class DocumentExistsError(InvalidArgumentError):
    """Document with this key already exists (raised by add)."""

    def __init__(self, workspace: str, directory: str, key: str) -> None:
        super().__init__(
            f"Document already exists: workspace='{workspace}', directory='{directory}', key='{key}'",
            workspace=workspace,
            directory=directory,
            key=key,
        )
        self.workspace = workspace
        self.directory = directory
        self.key = key


class DocumentNotFoundError(DmsError):
    """No active document for the key.

    Raised when:
    - Reading a key that doesn't exist
    - Deleting a key that doesn't exist
    - Stat-ing a key that doesn't exist
    """

    def __init__(self, workspace: str, directory: str, key: str) -> None:
        super().__init__(
            f"Document doesn't exist: workspace='{workspace}', directory='{directory}', key='{key}'",
            ErrorKind.NOT_FOUND,
            {"workspace": workspace, "directory": directory, "key": key},
        )
        self.workspace = workspace
        self.directory = directory
        self.key = key


class WorkspaceDeletedError(DmsError):
    """Workspace is soft-deleted; reset it before further use."""

    def __init__(self, workspace: str) -> None:
        super().__init__(
            f"Workspace already deleted - '{workspace}'",
            ErrorKind.ILLEGAL_STATE,
            {"workspace": workspace},
        )
        self.workspace = workspace


class StoreIOError(DmsError):
    """Filesystem operation failed.

    Attributes:
        path: Path the failing operation worked on
    """

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(
            message,
            ErrorKind.IO_FAILURE,
            {"path": str(path) if path is not None else None},
        )
        self.path = path
        self.suppressed: list[BaseException] = []


class ContentDecodingError(DmsError):
    """Content could not be decoded with any of the given charsets.

    The error describes the most recent failure; failures of the charsets
    tried before it are kept in ``suppressed``.

    Attributes:
        path: File being decoded
        charset: Charset of the most recent failed attempt
        suppressed: Earlier decoding failures, oldest first
    """

    def __init__(
        self,
        message: str,
        path: Path | str | None = None,
        charset: str | None = None,
        suppressed: list[BaseException] | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorKind.DECODING_FAILURE,
            {"path": str(path) if path is not None else None, "charset": charset},
        )
        self.path = path
        self.charset = charset
        self.suppressed = suppressed or []
