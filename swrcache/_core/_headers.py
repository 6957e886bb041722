from __future__ import annotations

from typing import (
    Any,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Tuple,
    Union,
)

FETCHED_ON_HEADER = "X-SWR-Fetched-On"
"""Synthetic header carrying the HTTP-date at which a stored response was fetched."""


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive, multi-valued header mapping.

    Keys are stored lowercased in insertion order. Reading a header joins its
    values with ", "; `get_list` returns every value as it was received.
    Assigning with `[]=` appends, use `set` to replace all existing values.
    """

    def __init__(self, headers: Union[Mapping[str, Union[str, List[str]]], List[Tuple[str, str]], None] = None) -> None:
        self._headers: dict[str, List[str]] = {}
        if headers is None:
            return
        items = headers.items() if isinstance(headers, Mapping) else headers
        for key, value in items:
            if isinstance(value, str):
                self._headers.setdefault(key.lower(), []).append(value)
            else:
                self._headers.setdefault(key.lower(), []).extend(value)

    def get_list(self, key: str) -> Optional[List[str]]:
        return self._headers.get(key.lower(), None)

    def set(self, key: str, value: str) -> None:
        self._headers[key.lower()] = [value]

    def multi_items(self) -> List[Tuple[str, str]]:
        return [(key, value) for key, values in self._headers.items() for value in values]

    def copy(self) -> "Headers":
        return Headers({key: values[:] for key, values in self._headers.items()})

    def __getitem__(self, key: str) -> str:
        return ", ".join(self._headers[key.lower()])

    def __setitem__(self, key: str, value: str) -> None:
        self._headers.setdefault(key.lower(), []).append(value)

    def __delitem__(self, key: str) -> None:
        del self._headers[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return repr(self._headers)

    def __str__(self) -> str:
        return str(self._headers)

    def __eq__(self, other_headers: Any) -> bool:
        return isinstance(other_headers, Headers) and self._headers == other_headers._headers
