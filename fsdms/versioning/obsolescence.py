"""
Obsolescence matching on top of the version marker codec.

Two questions are asked of a filename:
- Listings ask "was this entry deleted?" and hide only soft-deleted names.
  An overridden copy is not hidden there because its replacement already
  occupies the original name.
- Purges ask "is this an obsolete copy matching the filter?" and reclaim
  both soft-deleted and overridden copies.
"""

from __future__ import annotations

from datetime import datetime

from .markers import MarkerKind, decode


def is_soft_deleted(filename: str) -> bool:
    """True iff filename is a soft-delete marker."""
    marker = decode(filename)
    return marker is not None and marker.kind is MarkerKind.SOFT_DELETED


def is_obsolete(
    filename: str,
    original_name: str | None = None,
    cutoff: datetime | None = None,
) -> bool:
    """Check whether filename is an obsolete version matching the filter.

    Args:
        filename: Bare file name
        original_name: If given, the marker must belong to this original name
        cutoff: If given, the marker timestamp must be strictly before it.
            A marker whose stamp is not a real date never passes a cutoff.

    Returns:
        True for a soft-deleted or overridden marker passing both filters.
    """
    marker = decode(filename)
    if marker is None:
        return False
    if original_name is not None and marker.original_name != original_name:
        return False
    if cutoff is not None and (marker.timestamp is None or not marker.timestamp < cutoff):
        return False
    return True


def marker_timestamp(filename: str) -> datetime | None:
    """Timestamp of a marker filename, None for active names and undatable markers."""
    marker = decode(filename)
    return marker.timestamp if marker is not None else None
