"""
Version markers for soft-deleted and overridden entries.
"""

from .markers import (
    PREFIX_LENGTH,
    MarkerKind,
    VersionMarker,
    decode,
    encode,
    encode_overridden,
    encode_soft_deleted,
    overridden_path,
    soft_deleted_path,
)
from .obsolescence import is_obsolete, is_soft_deleted, marker_timestamp

__all__ = [
    "PREFIX_LENGTH",
    "MarkerKind",
    "VersionMarker",
    "decode",
    "encode",
    "encode_overridden",
    "encode_soft_deleted",
    "overridden_path",
    "soft_deleted_path",
    "is_obsolete",
    "is_soft_deleted",
    "marker_timestamp",
]
