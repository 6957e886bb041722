from __future__ import annotations

import logging
import time
import types
from typing import Any, Awaitable, Callable, Mapping, Optional, Set, Union

from swrcache._background import BackgroundTasks
from swrcache._config import CacheOptions
from swrcache._core._freshness import get_fetched_at, is_fresh
from swrcache._core._headers import FETCHED_ON_HEADER
from swrcache._core._keygen import make_cache_key, resolve_path
from swrcache._core._links import extract_prefetch_targets
from swrcache._core._storages import AsyncBaseStorage, AsyncInMemoryStorage
from swrcache._core._storages._packing import filter_out_swr_metadata
from swrcache._core.models import Entry, Request, Response, ResponseMetadata
from swrcache._utils import generate_http_date

logger = logging.getLogger("swrcache.proxy")


class AsyncCacheProxy:
    """
    A stale-while-revalidate cache in front of an origin.

    This class is independent of any specific HTTP library and works only with internal models.
    It delegates request execution to a user-provided callable, making it compatible with any
    HTTP client.

    Fresh entries are served immediately while a background refresh updates the store; stale
    entries and misses wait for the origin. When the origin fails, any cached copy is served,
    whatever its age. HTML responses are scanned for same-origin links, which are fetched in the
    background so the next navigation finds them in the cache.

    Background work runs in a task group, so the proxy has to be used as an async context
    manager. Leaving the context waits for pending background work.

    Args:
        request_sender: Callable that sends HTTP requests to the origin and returns responses.
        storage: Storage backend for cache entries. Defaults to AsyncInMemoryStorage using the
            configured cache namespace.
        options: Cache configuration. Defaults to CacheOptions() with the storage's namespace.
            A `cache_namespace` that differs from the storage's namespace raises ValueError.
    """

    def __init__(
        self,
        request_sender: Callable[[Request], Awaitable[Response]],
        storage: AsyncBaseStorage | None = None,
        options: CacheOptions | None = None,
    ) -> None:
        self.send_request = request_sender
        if options is None:
            options = CacheOptions() if storage is None else CacheOptions(cache_namespace=storage.namespace)
        elif storage is not None and storage.namespace != options.cache_namespace:
            raise ValueError(
                f"Storage namespace {storage.namespace!r} does not match "
                f"cache_namespace {options.cache_namespace!r}"
            )
        self.options = options
        self.storage = storage if storage is not None else AsyncInMemoryStorage(namespace=self.options.cache_namespace)
        self.background = BackgroundTasks()
        self._refreshing: Set[str] = set()

    async def __aenter__(self) -> "AsyncCacheProxy":
        await self.background.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        await self.background.__aexit__(exc_type, exc_value, traceback)

    async def aclose(self) -> None:
        await self.storage.close()

    async def handle_request(self, request: Request) -> Response:
        if request.method.upper() not in self.options.supported_methods:
            logger.debug(f"Method {request.method} is not cached, sending request to the origin")
            return await self.send_request(request)

        self._ensure_running()
        key = make_cache_key(request)
        entry = await self.storage.get(key)

        if entry is None:
            logger.debug(f"Cache miss: {request.url}")
            return await self.revalidate(request)

        if is_fresh(entry, time.time(), self.options.freshness_window):
            logger.debug(f"Cache hit (fresh): {request.url}")
            self._schedule_refresh(request, key, prefetch=True)
            return self._response_from_entry(entry)

        logger.debug(f"Cache hit (stale, revalidating): {request.url}")
        return await self.revalidate(request)

    async def revalidate(self, request: Request, prefetch: bool = True) -> Response:
        """
        Fetches a fresh copy from the origin and stores it when the status is 200.

        The entry is written before the response is returned. If the origin cannot be
        reached, the cached entry for the same key is returned regardless of its age;
        without one, the origin's exception propagates.

        Args:
            request: The request to send to the origin.
            prefetch: Whether an HTML response should have its links prefetched.

        Returns:
            The origin response with its original headers and body, or the cached
            fallback when the origin failed.
        """
        self._ensure_running()
        key = make_cache_key(request)

        try:
            response = await self.send_request(request)
            # A body cut off mid-stream counts as an origin failure.
            body = await response.aread() if response.status_code == 200 else None
        except Exception:
            fallback = await self.storage.get(key)
            if fallback is None:
                raise
            logger.debug(f"Serving stale response after origin failure: {request.url}")
            return self._response_from_entry(fallback, stale=True)

        if body is None:
            logger.debug(f"Response with status {response.status_code} was not stored")
            response.metadata = ResponseMetadata(swr_from_cache=False, swr_stored=False)
            return response

        fetched_at = time.time()
        stored_headers = response.headers.copy()
        stored_headers.set(FETCHED_ON_HEADER, generate_http_date(fetched_at))

        entry = Entry(
            key=key,
            request=Request(
                method=request.method,
                url=request.url,
                headers=request.headers.copy(),
                metadata={k: v for k, v in request.metadata.items() if k.startswith("swr_")},
            ),
            response=Response(
                status_code=response.status_code,
                reason_phrase=response.reason_phrase,
                headers=stored_headers,
            ),
            body=body,
            fetched_at=fetched_at,
        )

        logger.debug("Storing response in cache")
        await self.storage.put(key, entry)

        if prefetch and self.options.prefetch and "text/html" in response.headers.get("Content-Type", "").lower():
            self.background.start_soon(
                self.scan_and_prefetch,
                body,
                request.url,
                filter_out_swr_metadata(request.metadata),
                name=f"scan {request.url}",
            )

        response.metadata = ResponseMetadata(swr_from_cache=False, swr_stored=True, swr_fetched_at=fetched_at)
        return response

    async def scan_and_prefetch(
        self,
        html: Union[str, bytes],
        base_url: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        Schedules background refreshes for the same-origin links found in an HTML document.

        Links whose entries are still fresh are skipped. Prefetched pages are not scanned
        themselves, so a single page causes at most one level of extra requests.

        `metadata` is attached to every prefetch request, which lets request senders
        apply the settings of the page request (such as its timeout) to the prefetches.
        """
        scheduled = 0
        for path in extract_prefetch_targets(html):
            if self.options.max_prefetch is not None and scheduled >= self.options.max_prefetch:
                logger.debug(f"Prefetch limit of {self.options.max_prefetch} reached for {base_url}")
                break

            request = Request(method="GET", url=resolve_path(base_url, path), metadata=dict(metadata or {}))
            key = make_cache_key(request)
            if is_fresh(await self.storage.get(key), time.time(), self.options.freshness_window):
                continue

            if self._schedule_refresh(request, key, prefetch=False):
                logger.debug(f"Prefetching: {request.url}")
                scheduled += 1

    def _schedule_refresh(self, request: Request, key: str, prefetch: bool) -> bool:
        if self.options.coalesce and key in self._refreshing:
            logger.debug(f"Refresh already in flight: {request.url}")
            return False
        self._refreshing.add(key)
        self.background.start_soon(self._refresh, request, key, prefetch, name=f"revalidate {request.url}")
        return True

    async def _refresh(self, request: Request, key: str, prefetch: bool) -> None:
        try:
            response = await self.revalidate(request, prefetch=prefetch)
            # Drain bodies that were not stored so the origin connection is released.
            await response.aread()
        finally:
            self._refreshing.discard(key)

    def _ensure_running(self) -> None:
        if not self.background.running:
            raise RuntimeError(
                "AsyncCacheProxy must be used as an async context manager, "
                "e.g. `async with AsyncCacheProxy(...) as proxy: ...`"
            )

    def _response_from_entry(self, entry: Entry, stale: bool = False) -> Response:
        response = entry.to_response()
        metadata = ResponseMetadata(swr_from_cache=True, swr_stored=False, swr_stale=stale)
        fetched_at = get_fetched_at(entry)
        if fetched_at is not None:
            metadata["swr_fetched_at"] = fetched_at
        response.metadata = metadata
        return response
