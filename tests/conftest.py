from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Set

import anysqlite
import pytest

from swrcache import Headers, Request, Response, normalize_url
from swrcache._utils import make_async_iterator


@dataclass
class Route:
    body: bytes
    status_code: int = 200
    content_type: str = "text/plain"


class MockOrigin:
    """
    In-process origin used as a request sender.

    Serves registered routes, answers 404 for everything else and raises
    ConnectionError while offline or for URLs listed in `failing`.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, Route] = {}
        self.requests: List[Request] = []
        self.failing: Set[str] = set()
        self.offline = False

    def serve(self, url: str, body: bytes, status_code: int = 200, content_type: str = "text/plain") -> None:
        self.routes[normalize_url(url)] = Route(body=body, status_code=status_code, content_type=content_type)

    def fetched(self, url: str) -> int:
        return sum(1 for request in self.requests if normalize_url(request.url) == normalize_url(url))

    @property
    def fetched_urls(self) -> List[str]:
        return [normalize_url(request.url) for request in self.requests]

    async def __call__(self, request: Request) -> Response:
        self.requests.append(request)
        url = normalize_url(request.url)
        if self.offline or url in self.failing:
            raise ConnectionError(f"Could not connect to {url}")
        route = self.routes.get(url)
        if route is None:
            return Response(
                status_code=404,
                reason_phrase="Not Found",
                headers=Headers({"Content-Type": "text/plain"}),
                stream=make_async_iterator([b"not found"]),
            )
        return Response(
            status_code=route.status_code,
            reason_phrase="OK" if route.status_code == 200 else "",
            headers=Headers({"Content-Type": route.content_type}),
            stream=make_async_iterator([route.body]),
        )


@pytest.fixture
def origin() -> MockOrigin:
    return MockOrigin()


async def aprint_sqlite_state(conn: anysqlite.Connection) -> str:
    """
    Print the stored entries in a pretty format suitable for inline snapshots.

    Args:
        conn: SQLite database connection

    Returns:
        Formatted string representation of the entries table
    """
    cursor = await conn.cursor()
    await cursor.execute("SELECT namespace, cache_key, fetched_at FROM entries ORDER BY namespace, cache_key")
    rows = await cursor.fetchall()

    output_lines = [f"Rows: {len(rows)}"]
    for namespace, cache_key, fetched_at in rows:
        fetched_on = (
            "NULL" if fetched_at is None else datetime.fromtimestamp(fetched_at, tz=timezone.utc).isoformat()
        )
        output_lines.append(f"  {namespace} | {cache_key[:12]} | {fetched_on}")

    return "\n".join(output_lines)
