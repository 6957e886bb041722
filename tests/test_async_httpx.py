import gzip

import httpx
import pytest
from httpx import MockTransport
from inline_snapshot import snapshot
from time_machine import travel

from swrcache import AsyncInMemoryStorage, AsyncSqliteStorage, CacheOptions, Request
from swrcache.httpx import AsyncCacheClient, AsyncCacheTransport


class Origin:
    def __init__(self) -> None:
        self.version = 1
        self.offline = False
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("Connection refused", request=request)
        if request.url.path == "/":
            return httpx.Response(
                200,
                headers={"Content-Type": "text/html"},
                content=f'<h1>v{self.version}</h1><a href="/about">about</a>'.encode(),
            )
        if request.url.path == "/about":
            return httpx.Response(200, headers={"Content-Type": "text/html"}, content=b"about")
        if request.url.path == "/app.js":
            return httpx.Response(200, headers={"Content-Type": "text/javascript"}, content=b"run()")
        if request.url.path == "/api/items":
            return httpx.Response(200, headers={"Content-Type": "application/json"}, json=[self.version])
        return httpx.Response(404, content=b"not found")

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


def create_client(origin: Origin, **kwargs) -> httpx.AsyncClient:
    transport = AsyncCacheTransport(
        next_transport=MockTransport(origin),
        storage=kwargs.pop("storage", None) or AsyncInMemoryStorage(),
        options=CacheOptions(freshness_window=60),
        **kwargs,
    )
    return httpx.AsyncClient(transport=transport)


@pytest.mark.anyio
async def test_navigation_is_cached_and_links_prefetched() -> None:
    origin = Origin()

    with travel(0, tick=False):
        async with create_client(origin) as client:
            first = await client.get("https://example.com/", headers={"Accept": "text/html"})

    assert origin.paths() == ["/", "/about"]
    assert first.status_code == 200
    assert first.text == '<h1>v1</h1><a href="/about">about</a>'
    assert first.extensions["swr_from_cache"] is False
    assert first.extensions["swr_stored"] is True


@pytest.mark.anyio
async def test_fresh_response_comes_from_cache() -> None:
    origin = Origin()
    storage = AsyncInMemoryStorage()

    with travel(0, tick=False) as traveller:
        async with create_client(origin, storage=storage) as client:
            await client.get("https://example.com/app.js")
            traveller.move_to(30)
            response = await client.get("https://example.com/app.js")

    assert response.text == "run()"
    assert response.headers["Content-Type"] == "text/javascript"
    assert {key: value for key, value in response.extensions.items() if key.startswith("swr_")} == snapshot(
        {"swr_from_cache": True, "swr_stored": False, "swr_stale": False, "swr_fetched_at": 0.0}
    )
    assert origin.paths() == ["/app.js", "/app.js"]


@pytest.mark.anyio
async def test_stale_response_is_served_when_origin_is_down() -> None:
    origin = Origin()

    with travel(0, tick=False) as traveller:
        async with create_client(origin) as client:
            await client.get("https://example.com/", headers={"Accept": "text/html"})
            origin.version = 2
            origin.offline = True
            traveller.move_to(3600)
            response = await client.get("https://example.com/", headers={"Accept": "text/html"})

    assert response.status_code == 200
    assert response.text == '<h1>v1</h1><a href="/about">about</a>'
    assert response.extensions["swr_stale"] is True


@pytest.mark.anyio
async def test_transport_error_without_cached_copy_propagates() -> None:
    origin = Origin()
    origin.offline = True

    async with create_client(origin) as client:
        with pytest.raises(httpx.ConnectError):
            await client.get("https://example.com/", headers={"Accept": "text/html"})


@pytest.mark.anyio
async def test_other_requests_bypass_the_cache() -> None:
    origin = Origin()

    async with create_client(origin) as client:
        await client.get("https://example.com/api/items", headers={"Accept": "application/json"})
        origin.version = 2
        response = await client.get("https://example.com/api/items", headers={"Accept": "application/json"})

    assert response.json() == [2]
    assert "swr_from_cache" not in response.extensions
    assert origin.paths() == ["/api/items", "/api/items"]


@pytest.mark.anyio
async def test_custom_classifier() -> None:
    origin = Origin()

    def cache_api(request: Request) -> bool:
        return request.url.endswith("/api/items")

    with travel(0, tick=False):
        async with create_client(origin, classifier=cache_api) as client:
            await client.get("https://example.com/api/items")
            origin.version = 2
            response = await client.get("https://example.com/api/items")

    assert response.json() == [1]
    assert response.extensions["swr_from_cache"] is True


@pytest.mark.anyio
async def test_not_found_is_not_cached() -> None:
    origin = Origin()

    async with create_client(origin) as client:
        first = await client.get("https://example.com/missing.css")
        second = await client.get("https://example.com/missing.css")

    assert (first.status_code, second.status_code) == (404, 404)
    assert origin.paths() == ["/missing.css", "/missing.css"]


@pytest.mark.anyio
async def test_sqlite_storage_survives_new_clients(tmp_path) -> None:
    origin = Origin()
    database_path = tmp_path / "swr.db"

    with travel(0, tick=False):
        async with create_client(origin, storage=AsyncSqliteStorage(database_path=database_path)) as client:
            await client.get("https://example.com/app.js")

        async with create_client(origin, storage=AsyncSqliteStorage(database_path=database_path)) as client:
            response = await client.get("https://example.com/app.js")

    assert response.text == "run()"
    assert response.extensions["swr_from_cache"] is True


@pytest.mark.anyio
async def test_gzip_content_is_stored_decoded() -> None:
    compressed = gzip.compress(b'<a href="/about">about</a>')
    requests: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request.url.path)
        return httpx.Response(
            200,
            headers={"Content-Type": "text/html", "Content-Encoding": "gzip"},
            content=compressed,
        )

    storage = AsyncInMemoryStorage()
    transport = AsyncCacheTransport(next_transport=MockTransport(handler), storage=storage)

    with travel(0, tick=False):
        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get("https://example.com/", headers={"Accept": "text/html"})

    assert response.text == '<a href="/about">about</a>'
    assert "content-encoding" not in response.headers
    assert requests == ["/", "/about"]


def test_cache_client_installs_cache_transport() -> None:
    storage = AsyncInMemoryStorage(namespace="client")
    client = AsyncCacheClient(storage=storage, options=CacheOptions(freshness_window=5, cache_namespace="client"))

    assert isinstance(client._transport, AsyncCacheTransport)
    assert client._transport.storage is storage


def test_cache_client_rejects_mismatched_namespace() -> None:
    with pytest.raises(ValueError, match="does not match cache_namespace"):
        AsyncCacheClient(
            storage=AsyncSqliteStorage(namespace="swr-cache-v1"),
            options=CacheOptions(cache_namespace="swr-cache-v2"),
        )


@pytest.mark.anyio
async def test_client_timeout_reaches_the_origin() -> None:
    origin = Origin()
    timeouts = []

    def handler(request: httpx.Request) -> httpx.Response:
        timeouts.append(request.extensions.get("timeout"))
        return origin(request)

    transport = AsyncCacheTransport(next_transport=MockTransport(handler))

    async with httpx.AsyncClient(transport=transport, timeout=3.0) as client:
        await client.get("https://example.com/", headers={"Accept": "text/html"})

    assert origin.paths() == ["/", "/about"]
    assert timeouts == [
        {"connect": 3.0, "read": 3.0, "write": 3.0, "pool": 3.0},
        {"connect": 3.0, "read": 3.0, "write": 3.0, "pool": 3.0},
    ]
