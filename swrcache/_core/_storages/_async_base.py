from __future__ import annotations

import abc
import typing as tp

from swrcache._exceptions import StorageError

from ..models import Entry


class AsyncBaseStorage(abc.ABC):
    """
    Key/value store of cache entries.

    Args:
        namespace: Cache generation name. Entries written under one namespace
            are invisible under any other.
    """

    def __init__(self, namespace: str = "swr-cache-v1") -> None:
        self.namespace = namespace

    @abc.abstractmethod
    async def get(self, key: str) -> tp.Optional[Entry]:
        """
        Retrieve the entry stored under the given key.

        Args:
            key: Cache key of the request.

        Returns:
            The stored entry, or None when nothing is cached for the key.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def put(self, key: str, entry: Entry) -> None:
        """
        Store an entry, replacing whatever was stored under the key.

        The replacement must be atomic: readers see either the previous entry
        or the new one, never a mix of both.

        Args:
            key: Cache key of the request.
            entry: The entry to store.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def remove(self, key: str) -> None:
        """
        Remove the entry stored under the given key, if any.
        """
        raise NotImplementedError()

    async def close(self) -> None:
        pass

    def ensure_key_matches(self, key: str, entry: Entry) -> None:
        if entry.key != key:
            raise StorageError(f"Entry key mismatch: storing entry {entry.key!r} under {key!r}")
