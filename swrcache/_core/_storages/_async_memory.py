from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Optional

from swrcache._core._storages._async_base import AsyncBaseStorage
from swrcache._core.models import Entry
from swrcache._synchronization import AsyncLock

logger = logging.getLogger("swrcache.storages")


class AsyncInMemoryStorage(AsyncBaseStorage):
    """
    A simple in-memory storage.

    Entries are kept in least-recently-used order; once `capacity` entries are
    stored, writing a new key evicts the least recently used one.

    :param namespace: Cache generation name, defaults to "swr-cache-v1"
    :type namespace: str, optional
    :param capacity: The maximum number of entries that can be cached, defaults to 128
    :type capacity: int, optional
    """

    def __init__(self, namespace: str = "swr-cache-v1", capacity: int = 128) -> None:
        super().__init__(namespace)

        if capacity <= 0:
            raise ValueError("Capacity must be positive")

        self.capacity = capacity
        self._entries: OrderedDict[tuple[str, str], Entry] = OrderedDict()
        self._lock = AsyncLock()

    async def get(self, key: str) -> Optional[Entry]:
        async with self._lock:
            entry = self._entries.get((self.namespace, key))
            if entry is not None:
                self._entries.move_to_end((self.namespace, key))
            return entry

    async def put(self, key: str, entry: Entry) -> None:
        self.ensure_key_matches(key, entry)
        async with self._lock:
            self._entries[(self.namespace, key)] = entry
            self._entries.move_to_end((self.namespace, key))
            while len(self._entries) > self.capacity:
                evicted_key, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicting cache entry {evicted_key[1]}")

    async def remove(self, key: str) -> None:
        async with self._lock:
            self._entries.pop((self.namespace, key), None)

    def __len__(self) -> int:
        return len(self._entries)
