"""
Redundant period key detection.

Documents are often keyed by the period they cover, e.g. a monthly statement
and a yearly statement for the same account. Given keys mapped to closed date
intervals, this module finds the keys whose coverage is already provided by
their neighbors, so callers can drop them.

Algorithm:
    1. Sort by (start, end).
    2. Walk left to right, comparing each element with the last element judged
       useful and with its immediate right neighbor:
       - first element: useful iff it starts strictly before the next one
       - last element: useful iff it ends strictly after the last useful one
         (the first element when none is useful yet), or it is the second
         of exactly two elements and the first is redundant
       - middle element, no gap between last useful and next:
         useful iff not within [last useful start, next end]
       - middle element, gap between last useful and next:
         useful iff not contained in either neighbor

Invariants:
    - Inputs with fewer than two keys have no redundant keys
    - Bounds are inclusive; adjacent periods (end + 1 day == start) have no gap
    - Only neighbors are inspected, not the full transitive union, so the
      result is not guaranteed to be a minimal cover. Three or more identical
      periods are all redundant.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import date, timedelta
from typing import Generic, TypeVar

K = TypeVar("K")

_ONE_DAY = timedelta(days=1)


def _sort_by_period(keys: Iterable[K], start_fn: Callable[[K], date], end_fn: Callable[[K], date]) -> list[K]:
    return sorted(keys, key=lambda k: (start_fn(k), end_fn(k)))


def _usefulness(
    sorted_keys: Sequence[K],
    start_fn: Callable[[K], date],
    end_fn: Callable[[K], date],
) -> list[bool]:
    """Judge each element of an already sorted sequence in a single pass."""
    size = len(sorted_keys)
    if size < 2:
        return [True] * size

    flags: list[bool] = []
    last_useful: int | None = None
    for i, mid in enumerate(sorted_keys):
        if i == 0:
            useful = start_fn(mid) < start_fn(sorted_keys[1])
        elif i == size - 1:
            if last_useful is None and size == 2:
                # Two identical periods: keep the second
                useful = True
            else:
                prev = sorted_keys[last_useful if last_useful is not None else 0]
                useful = end_fn(mid) > end_fn(prev)
        else:
            prev = sorted_keys[last_useful if last_useful is not None else 0]
            nxt = sorted_keys[i + 1]
            if end_fn(prev) + _ONE_DAY >= start_fn(nxt):
                inside = start_fn(mid) >= start_fn(prev) and end_fn(mid) <= end_fn(nxt)
                useful = not inside
            else:
                inside_prev = start_fn(mid) >= start_fn(prev) and end_fn(mid) <= end_fn(prev)
                inside_next = start_fn(mid) >= start_fn(nxt) and end_fn(mid) <= end_fn(nxt)
                useful = not inside_prev and not inside_next

        if useful:
            last_useful = i
        flags.append(useful)
    return flags


def find_redundant_keys(
    keys: Iterable[K],
    start_fn: Callable[[K], date],
    end_fn: Callable[[K], date],
) -> list[K]:
    """Find keys whose period is covered by their neighbors.

    Args:
        keys: Keys to analyze
        start_fn: Inclusive start date of a key
        end_fn: Inclusive end date of a key

    Returns:
        Redundant keys in (start, end) order.
    """
    sorted_keys = _sort_by_period(keys, start_fn, end_fn)
    flags = _usefulness(sorted_keys, start_fn, end_fn)
    return [k for k, useful in zip(sorted_keys, flags) if not useful]


class PeriodReducer(Generic[K]):
    """Reusable pairing of period accessors.

    Example:
        >>> reducer = PeriodReducer(lambda k: k.start, lambda k: k.end)
        >>> reducer.redundant(statement_keys)
    """

    def __init__(self, start_fn: Callable[[K], date], end_fn: Callable[[K], date]) -> None:
        self.start_fn = start_fn
        self.end_fn = end_fn

    def redundant(self, keys: Iterable[K]) -> list[K]:
        """Redundant subset of keys, in (start, end) order."""
        return find_redundant_keys(keys, self.start_fn, self.end_fn)

    def useful(self, keys: Iterable[K]) -> list[K]:
        """Complement of redundant(), in (start, end) order."""
        sorted_keys = _sort_by_period(keys, self.start_fn, self.end_fn)
        flags = _usefulness(sorted_keys, self.start_fn, self.end_fn)
        return [k for k, useful in zip(sorted_keys, flags) if useful]
