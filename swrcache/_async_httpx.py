from __future__ import annotations

import ssl
import types
import typing as t
from typing import (
    AsyncIterable,
    AsyncIterator,
    Callable,
    Union,
    cast,
    overload,
)

from httpx import RequestNotRead

from swrcache import AsyncCacheProxy, CacheOptions, Headers, Request, Response
from swrcache._core._classify import should_handle
from swrcache._core._storages import AsyncBaseStorage
from swrcache._utils import filter_pairs, make_async_iterator

try:
    import httpx
except ImportError as e:
    raise ImportError(
        "httpx is required to use swrcache.httpx module. "
        "Please install swrcache with the 'httpx' extra, "
        "e.g., 'pip install swrcache[httpx]'."
    ) from e

# 128 KB
CHUNK_SIZE = 131072


@overload
def _internal_to_httpx(
    value: Request,
) -> httpx.Request: ...
@overload
def _internal_to_httpx(
    value: Response,
) -> httpx.Response: ...
def _internal_to_httpx(
    value: Union[Request, Response],
) -> Union[httpx.Request, httpx.Response]:
    """
    Convert internal Request/Response to httpx.Request/httpx.Response.
    """
    if isinstance(value, Request):
        return httpx.Request(
            method=value.method,
            url=value.url,
            headers=value.headers.multi_items(),
            stream=_IteratorStream(value.stream),
            extensions=dict(value.metadata),
        )
    elif isinstance(value, Response):
        extensions: dict[str, t.Any] = dict(value.metadata)
        if value.reason_phrase:
            extensions["reason_phrase"] = value.reason_phrase.encode("ascii", errors="ignore")
        return httpx.Response(
            status_code=value.status_code,
            headers=value.headers.multi_items(),
            stream=_IteratorStream(value._aiter_stream()),
            extensions=extensions,
        )


@overload
def _httpx_to_internal(
    value: httpx.Request,
) -> Request: ...
@overload
def _httpx_to_internal(
    value: httpx.Response,
) -> Response: ...
def _httpx_to_internal(
    value: Union[httpx.Request, httpx.Response],
) -> Union[Request, Response]:
    """
    Convert httpx.Request/httpx.Response to internal Request/Response.
    """
    headers = Headers(filter_pairs(value.headers.multi_items(), ["Transfer-Encoding"]))
    if isinstance(value, httpx.Request):
        # Extensions such as "timeout" travel with the request to the next transport.
        metadata = dict(value.extensions)

        try:
            stream = make_async_iterator([value.content])
        except RequestNotRead:
            stream = cast(AsyncIterator[bytes], value.stream)

        return Request(
            method=value.method,
            url=str(value.url),
            headers=headers,
            stream=stream,
            metadata=metadata,
        )
    elif isinstance(value, httpx.Response):
        stream = (
            make_async_iterator([value.content]) if value.is_stream_consumed else value.aiter_raw(chunk_size=CHUNK_SIZE)
        )

        if value.is_stream_consumed and "content-encoding" in value.headers:
            # The decoded content is all we have, so describe it as such.
            headers = Headers(
                filter_pairs(headers.multi_items(), ["Content-Encoding", "Content-Length"])
                + [("content-length", str(len(value.content)))]
            )

        return Response(
            status_code=value.status_code,
            reason_phrase=value.reason_phrase,
            headers=headers,
            stream=stream,
            metadata={},
        )


class _IteratorStream(httpx.AsyncByteStream):
    def __init__(self, iterator: AsyncIterator[bytes]) -> None:
        self.iterator = iterator

    async def __aiter__(self) -> AsyncIterator[bytes]:
        assert isinstance(self.iterator, (AsyncIterator, AsyncIterable))
        async for chunk in self.iterator:
            yield chunk


class AsyncCacheTransport(httpx.AsyncBaseTransport):
    """
    httpx transport answering pages, stylesheets and scripts from a stale-while-revalidate cache.

    Requests rejected by `classifier` go straight to `next_transport`. Background refreshes
    and prefetches run while the transport (or the client owning it) is open as an async
    context manager.
    """

    def __init__(
        self,
        next_transport: httpx.AsyncBaseTransport,
        storage: AsyncBaseStorage | None = None,
        options: CacheOptions | None = None,
        classifier: Callable[[Request], bool] = should_handle,
    ) -> None:
        self.next_transport = next_transport
        self.classifier = classifier
        self._cache_proxy: AsyncCacheProxy = AsyncCacheProxy(
            request_sender=self.request_sender,
            storage=storage,
            options=options,
        )
        self.storage = self._cache_proxy.storage

    async def __aenter__(self) -> "AsyncCacheTransport":
        await self.next_transport.__aenter__()
        await self._cache_proxy.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        try:
            await self._cache_proxy.__aexit__(exc_type, exc_value, traceback)
        finally:
            await self.aclose()

    async def handle_async_request(
        self,
        request: httpx.Request,
    ) -> httpx.Response:
        internal_request = _httpx_to_internal(request)
        if not self.classifier(internal_request):
            return await self.next_transport.handle_async_request(request)
        internal_response = await self._cache_proxy.handle_request(internal_request)
        response = _internal_to_httpx(internal_response)
        return response

    async def aclose(self) -> None:
        await self.next_transport.aclose()
        await self.storage.close()

    async def request_sender(self, request: Request) -> Response:
        httpx_request = _internal_to_httpx(request)
        httpx_response = await self.next_transport.handle_async_request(httpx_request)
        # Bodies are kept decoded so cached pages can be scanned for links.
        await httpx_response.aread()
        return _httpx_to_internal(httpx_response)


class AsyncCacheClient(httpx.AsyncClient):
    def __init__(self, *args: t.Any, **kwargs: t.Any) -> None:
        self.storage: AsyncBaseStorage | None = kwargs.pop("storage", None)
        self.options: CacheOptions | None = kwargs.pop("options", None)
        super().__init__(*args, **kwargs)

    def _init_transport(
        self,
        verify: ssl.SSLContext | str | bool = True,
        cert: t.Union[str, t.Tuple[str, str], t.Tuple[str, str, str], None] = None,
        trust_env: bool = True,
        http1: bool = True,
        http2: bool = False,
        limits: httpx.Limits = httpx.Limits(max_connections=100, max_keepalive_connections=20),
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: t.Any,
    ) -> httpx.AsyncBaseTransport:
        if transport is not None:
            return transport

        return AsyncCacheTransport(
            next_transport=httpx.AsyncHTTPTransport(
                verify=verify,
                cert=cert,
                trust_env=trust_env,
                http1=http1,
                http2=http2,
                limits=limits,
            ),
            storage=self.storage,
            options=self.options,
        )

    def _init_proxy_transport(
        self,
        proxy: httpx.Proxy,
        verify: ssl.SSLContext | str | bool = True,
        cert: t.Union[str, t.Tuple[str, str], t.Tuple[str, str, str], None] = None,
        trust_env: bool = True,
        http1: bool = True,
        http2: bool = False,
        limits: httpx.Limits = httpx.Limits(max_connections=100, max_keepalive_connections=20),
        **kwargs: t.Any,
    ) -> httpx.AsyncBaseTransport:
        return AsyncCacheTransport(
            next_transport=httpx.AsyncHTTPTransport(
                verify=verify,
                cert=cert,
                trust_env=trust_env,
                http1=http1,
                http2=http2,
                limits=limits,
                proxy=proxy,
            ),
            storage=self.storage,
            options=self.options,
        )
