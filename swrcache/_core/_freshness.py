from __future__ import annotations

import math
from typing import Optional

from swrcache._core._headers import FETCHED_ON_HEADER
from swrcache._core.models import Entry
from swrcache._utils import parse_date


def get_fetched_at(entry: Entry) -> Optional[float]:
    """
    Returns the moment the entry was fetched from the origin.

    The explicit `fetched_at` field wins; entries without it fall back to the
    synthetic fetched-on header. Returns None when neither is usable.
    """
    if entry.fetched_at is not None:
        return entry.fetched_at
    header_value = entry.response.headers.get(FETCHED_ON_HEADER)
    if header_value is None:
        return None
    parsed = parse_date(header_value)
    return float(parsed) if parsed is not None else None


def get_age(entry: Entry, now: float) -> float:
    """
    Computes the age of an entry in seconds.

    An entry whose retrieval time is unknown is infinitely old.
    """
    fetched_at = get_fetched_at(entry)
    if fetched_at is None:
        return math.inf
    return now - fetched_at


def is_fresh(entry: Optional[Entry], now: float, window: float) -> bool:
    """
    Determines whether a cached entry may be served without blocking on the origin.

    Parameters:
    ----------
    entry : Optional[Entry]
        The cached entry, or None on a cache miss.
    now : float
        The current POSIX timestamp.
    window : float
        The freshness window in seconds.

    Returns:
    -------
    bool
        True iff the entry exists and its age is strictly below the window.

    Examples:
    --------
    >>> entry = Entry(key="k", request=request, response=response, body=b"", fetched_at=0.0)
    >>> is_fresh(entry, now=30.0, window=60.0)
    True
    >>> is_fresh(entry, now=60.0, window=60.0)
    False
    >>> is_fresh(None, now=0.0, window=60.0)
    False
    """
    if entry is None:
        return False
    return get_age(entry, now) < window
