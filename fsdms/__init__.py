"""
fsdms - Filesystem-backed document management.

Documents are stored as plain files, keyed by name, grouped into directories
inside named workspaces:

    <base>/<workspace>/<directory>/<key>

Nothing is overwritten or removed in place. Replaced and deleted documents
(and deleted workspaces) are renamed to timestamped marker names and stay
recoverable until purged.

Example:
    >>> from fsdms import DmsFactory
    >>>
    >>> factory = DmsFactory("/var/lib/dms")
    >>> dms = factory.get_dms("broker-statements")
    >>> dms.put("2024", "statement_2024-01.csv", "date,amount\\n")
    True
    >>> dms.delete("2024", "statement_2024-01.csv")
    >>> dms.purge("2024")
    1

Invariants:
    - Exactly one active document per (directory, key)
    - One DocumentStore instance per workspace name per factory
    - No internal threading; callers own their concurrency

Version: 1.0.0
"""

__version__ = "1.0.0"

from .config import DmsConfig, ObservabilityConfig, StorageConfig
from .errors import (
    ContentDecodingError,
    DmsError,
    DocumentExistsError,
    DocumentNotFoundError,
    ErrorKind,
    InvalidArgumentError,
    StoreIOError,
    WorkspaceDeletedError,
)
from .factory import DmsFactory
from .period import PeriodReducer, find_redundant_keys
from .store import DocumentStore, WorkspaceLifecycle
from .versioning import MarkerKind, VersionMarker

__all__ = [
    # Version
    "__version__",
    # Entry points
    "DmsFactory",
    "DocumentStore",
    "WorkspaceLifecycle",
    # Versioning
    "MarkerKind",
    "VersionMarker",
    # Period keys
    "PeriodReducer",
    "find_redundant_keys",
    # Configuration
    "DmsConfig",
    "StorageConfig",
    "ObservabilityConfig",
    # Errors
    "DmsError",
    "ErrorKind",
    "InvalidArgumentError",
    "DocumentExistsError",
    "DocumentNotFoundError",
    "WorkspaceDeletedError",
    "StoreIOError",
    "ContentDecodingError",
]
