from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Mapping,
    Optional,
    TypedDict,
    cast,
)

from swrcache._core._headers import Headers
from swrcache._utils import make_async_iterator


class RequestMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "swr_" to avoid collisions with user data
    swr_mode: str | None
    """Request mode as reported by the client, e.g. "navigate"."""

    swr_destination: str | None
    """Request destination as reported by the client, e.g. "style" or "script"."""


@dataclass
class Request:
    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    stream: AsyncIterator[bytes] = field(default_factory=lambda: make_async_iterator([]))
    metadata: RequestMetadata | Mapping[str, Any] = field(default_factory=dict)

    async def aread(self) -> bytes:
        """
        Asynchronously reads the entire request body without consuming the stream.
        """
        if hasattr(self, "collected_body"):
            return cast(bytes, getattr(self, "collected_body"))

        if not isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            raise TypeError("Request stream is not an AsyncIterator")

        collected = b"".join([chunk async for chunk in self.stream])
        setattr(self, "collected_body", collected)
        self.stream = make_async_iterator([collected])
        return collected


class ResponseMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "swr_" to avoid collisions with user data
    swr_from_cache: bool
    """Indicates whether the response was served from cache."""

    swr_stored: bool
    """Indicates whether the response was written to the cache."""

    swr_stale: bool
    """Indicates that a cached copy was served because the origin could not be reached."""

    swr_fetched_at: float
    """Timestamp when the served content was fetched from the origin."""


@dataclass
class Response:
    status_code: int
    headers: Headers = field(default_factory=Headers)
    stream: AsyncIterator[bytes] = field(default_factory=lambda: make_async_iterator([]))
    reason_phrase: str = ""
    metadata: ResponseMetadata | Mapping[str, Any] = field(default_factory=dict)

    async def _aiter_stream(self) -> AsyncIterator[bytes]:
        if hasattr(self, "collected_body"):
            yield getattr(self, "collected_body")
            return
        if isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            async for chunk in self.stream:
                yield chunk
        else:
            raise TypeError("Response stream is not an AsyncIterator")

    async def aread(self) -> bytes:
        """
        Asynchronously reads the entire response body without consuming the stream.

        The collected body is kept on the instance, so the response can be read
        again (for example once to store it and once to return it).
        """
        if hasattr(self, "collected_body"):
            return cast(bytes, getattr(self, "collected_body"))

        if not isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            raise TypeError("Response stream is not an AsyncIterator")

        collected = b"".join([chunk async for chunk in self.stream])
        setattr(self, "collected_body", collected)
        self.stream = make_async_iterator([collected])
        return collected


@dataclass(frozen=True)
class Entry:
    """
    A cached response.

    Entries are immutable; storages replace them whole.
    """

    key: str
    request: Request
    response: Response
    body: bytes
    fetched_at: Optional[float] = None

    def to_response(self) -> Response:
        """
        Build a new response carrying the stored content.

        Every call returns an independent stream so concurrent readers don't
        compete for the same iterator.
        """
        response = Response(
            status_code=self.response.status_code,
            reason_phrase=self.response.reason_phrase,
            headers=self.response.headers.copy(),
            stream=make_async_iterator([self.body]),
            metadata={},
        )
        setattr(response, "collected_body", self.body)
        return response
