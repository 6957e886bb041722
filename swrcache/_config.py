from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class CacheOptions:
    """
    Configuration of a cache proxy.

    Options are fixed when the proxy is created and never change afterwards.

    Attributes:
    ----------
    freshness_window : float
        Maximum age, in seconds, at which a cached entry is served without
        waiting for the origin. Must be greater than zero.

        Default: 60.0 (one minute)

        Examples:
        --------
        >>> options = CacheOptions(freshness_window=600)
        >>> CacheOptions(freshness_window=0)
        Traceback (most recent call last):
        ...
        ValueError: freshness_window must be greater than zero, got 0

    cache_namespace : str
        Name isolating one cache generation from another. Changing it on a new
        deployment makes the cache start from an empty store. Pass it to the
        storage constructor, e.g. `AsyncSqliteStorage(namespace=options.cache_namespace)`;
        a proxy given a storage with another namespace raises ValueError.

        Default: "swr-cache-v1"

    supported_methods : list[str]
        Methods whose responses take part in caching. Requests with any other
        method are forwarded to the origin untouched.

        Default: ["GET"]

    prefetch : bool
        When True, HTML responses are scanned for same-origin links which are
        then fetched in the background.

    max_prefetch : Optional[int]
        Upper bound on the number of links prefetched per scanned page.
        None means no limit.

    coalesce : bool
        When True, a background refresh is not scheduled for a key that
        already has one in flight.
    """

    freshness_window: float = 60.0
    """Maximum age in seconds of an entry served without blocking on the origin."""

    cache_namespace: str = "swr-cache-v1"
    """Cache generation name."""

    supported_methods: list[str] = field(default_factory=lambda: ["GET"])
    """HTTP methods that are allowed to be cached."""

    prefetch: bool = True
    """Whether HTML responses trigger link prefetching."""

    max_prefetch: Optional[int] = None
    """Maximum number of links prefetched per page."""

    coalesce: bool = True
    """Whether to skip duplicate background refreshes of the same key."""

    def __post_init__(self) -> None:
        if not self.freshness_window > 0:
            raise ValueError(f"freshness_window must be greater than zero, got {self.freshness_window}")
        if self.max_prefetch is not None and self.max_prefetch < 0:
            raise ValueError(f"max_prefetch must not be negative, got {self.max_prefetch}")
