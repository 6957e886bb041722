from __future__ import annotations

from typing import Any, Mapping, Optional, overload

import msgpack
from typing_extensions import cast

from swrcache._core._headers import Headers
from swrcache._core.models import Entry, Request, Response


def filter_out_swr_metadata(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if not k.startswith("swr_")}


def pack(value: Entry, /) -> bytes:
    return cast(
        bytes,
        msgpack.packb(
            {
                "key": value.key,
                "request": {
                    "method": value.request.method,
                    "url": value.request.url,
                    "headers": value.request.headers.multi_items(),
                    "extra": filter_out_swr_metadata(value.request.metadata),
                },
                "response": {
                    "status_code": value.response.status_code,
                    "reason_phrase": value.response.reason_phrase,
                    "headers": value.response.headers.multi_items(),
                    "extra": filter_out_swr_metadata(value.response.metadata),
                },
                "body": value.body,
                "fetched_at": value.fetched_at,
            }
        ),
    )


@overload
def unpack(value: bytes, /) -> Entry: ...


@overload
def unpack(value: Optional[bytes], /) -> Optional[Entry]: ...


def unpack(value: Optional[bytes], /) -> Optional[Entry]:
    if value is None:
        return None
    data = msgpack.unpackb(value)
    return Entry(
        key=data["key"],
        request=Request(
            method=data["request"]["method"],
            url=data["request"]["url"],
            headers=Headers([tuple(item) for item in data["request"]["headers"]]),
            metadata=data["request"]["extra"],
        ),
        response=Response(
            status_code=data["response"]["status_code"],
            reason_phrase=data["response"]["reason_phrase"],
            headers=Headers([tuple(item) for item in data["response"]["headers"]]),
            metadata=data["response"]["extra"],
        ),
        body=data["body"],
        fetched_at=data["fetched_at"],
    )
