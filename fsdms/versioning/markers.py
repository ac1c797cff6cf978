"""
Version marker filename codec.

An obsolete document or workspace is never overwritten or removed in place.
It is renamed to a sibling whose name carries a fixed-width marker prefix:

    _DEL_<yyyyMMdd_HHmmss_SSS>_!@#-<original name>   (soft-deleted)
    _OVR_<yyyyMMdd_HHmmss_SSS>_!@#-<original name>   (overridden by a newer write)

Timestamps are local time with millisecond resolution. Since the timestamp is
zero-padded and most-significant first, lexicographic order of encoded
timestamps is chronological order.

Invariants:
    - The prefix is exactly PREFIX_LENGTH characters
    - A name not longer than PREFIX_LENGTH is never a marker
    - Nothing outside this module builds or parses the raw prefix
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
_TIMESTAMP_LENGTH = len("yyyyMMdd_HHmmss_SSS")
_DELIMITER = "_!@#-"


class MarkerKind(Enum):
    """Why an entry is no longer active."""

    SOFT_DELETED = "_DEL_"
    OVERRIDDEN = "_OVR_"

    @property
    def tag(self) -> str:
        return self.value


PREFIX_LENGTH = len(MarkerKind.SOFT_DELETED.tag) + _TIMESTAMP_LENGTH + len(_DELIMITER)

_PREFIX_PATTERNS = {
    kind: re.compile("^" + re.escape(kind.tag) + r"(\d{8}_\d{6}_\d{3})" + re.escape(_DELIMITER) + "$")
    for kind in MarkerKind
}


@dataclass(frozen=True)
class VersionMarker:
    """Decoded marker of an obsolete entry.

    Attributes:
        kind: Soft-deleted or overridden
        timestamp: When the entry became obsolete (local, millisecond resolution),
            or None if the encoded stamp is not a real date (e.g. month 13)
        original_name: Name the entry had while it was active
        stamp: Timestamp text as encoded in the filename
    """

    kind: MarkerKind
    timestamp: datetime | None
    original_name: str
    stamp: str = field(default="", compare=False)

    @property
    def filename(self) -> str:
        """Encoded filename of this marker."""
        stamp = self.stamp or format_timestamp(self.timestamp)
        return f"{self.kind.tag}{stamp}{_DELIMITER}{self.original_name}"


def format_timestamp(timestamp: datetime) -> str:
    """Format a timestamp as yyyyMMdd_HHmmss_SSS."""
    return timestamp.strftime("%Y%m%d_%H%M%S_") + f"{timestamp.microsecond // 1000:03d}"


def parse_timestamp(text: str) -> datetime:
    """Parse a yyyyMMdd_HHmmss_SSS timestamp.

    Raises:
        ValueError: If the text is not a valid date and time
    """
    # %f reads "123" as 123000 microseconds, i.e. 123 ms
    return datetime.strptime(text, _TIMESTAMP_FORMAT)


def encode(kind: MarkerKind, original_name: str, timestamp: datetime) -> str:
    """Build the marker filename for an entry that became obsolete at timestamp."""
    return f"{kind.tag}{format_timestamp(timestamp)}{_DELIMITER}{original_name}"


def encode_soft_deleted(original_name: str, timestamp: datetime) -> str:
    return encode(MarkerKind.SOFT_DELETED, original_name, timestamp)


def encode_overridden(original_name: str, timestamp: datetime) -> str:
    return encode(MarkerKind.OVERRIDDEN, original_name, timestamp)


def decode(filename: str) -> VersionMarker | None:
    """Decode a filename into its version marker.

    Args:
        filename: Bare file name (no directory part)

    Returns:
        The marker, or None if the name belongs to an active entry.
    """
    if len(filename) <= PREFIX_LENGTH:
        return None
    prefix = filename[:PREFIX_LENGTH]
    for kind, pattern in _PREFIX_PATTERNS.items():
        match = pattern.match(prefix)
        if match is None:
            continue
        stamp = match.group(1)
        try:
            timestamp = parse_timestamp(stamp)
        except ValueError:
            # Digits in the right places but not a real date, e.g. month 13.
            # Still a marker: the grammar matched, only the age is unknown.
            timestamp = None
        return VersionMarker(kind=kind, timestamp=timestamp, original_name=filename[PREFIX_LENGTH:], stamp=stamp)
    return None


def soft_deleted_path(path: Path, timestamp: datetime) -> Path:
    """Sibling path an entry is renamed to when it is soft-deleted."""
    return path.parent / encode_soft_deleted(path.name, timestamp)


def overridden_path(path: Path, timestamp: datetime) -> Path:
    """Sibling path an entry is renamed to when a newer version replaces it."""
    return path.parent / encode_overridden(path.name, timestamp)
