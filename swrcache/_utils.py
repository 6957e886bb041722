from __future__ import annotations

import calendar
import typing as tp
from email.utils import formatdate, parsedate_tz
from pathlib import Path
from typing import AsyncIterator, Iterable

T = tp.TypeVar("T")


def parse_date(date: str) -> tp.Optional[int]:
    expires = parsedate_tz(date)
    if expires is None:
        return None
    timestamp = calendar.timegm(expires[:6])
    return timestamp


async def make_async_iterator(
    iterable: Iterable[bytes],
) -> AsyncIterator[bytes]:
    for item in iterable:
        yield item


def filter_pairs(
    pairs: tp.Iterable[tp.Tuple[str, T]], keys_to_exclude: tp.Iterable[str]
) -> tp.List[tp.Tuple[str, T]]:
    """
        Filter out specified keys from a list of key/value pairs using case-insensitive comparison.

        Repeated keys are kept as separate pairs, which preserves multi-valued headers.

        Args:
            pairs: The input key/value pairs to filter.
            keys_to_exclude: An iterable of string keys to exclude (case-insensitive).

        Returns:
            A new list with the specified keys excluded.

        Example:
    ```python
            original = [('a', 1), ('B', 2), ('a', 3)]
            filtered = filter_pairs(original, ['b'])
            # filtered will be [('a', 1), ('a', 3)]
    ```
    """
    exclude_set = {k.lower() for k in keys_to_exclude}
    return [(k, v) for k, v in pairs if k.lower() not in exclude_set]


def ensure_cache_dict(base_path: Path | None = None) -> Path:
    _base_path = base_path if base_path is not None else Path(".cache/swrcache")
    _gitignore_file = _base_path / ".gitignore"

    _base_path.mkdir(parents=True, exist_ok=True)

    if not _gitignore_file.is_file():
        with open(_gitignore_file, "w", encoding="utf-8") as f:
            f.write("# Automatically created by swrcache\n*")
    return _base_path


def generate_http_date(timeval: float | None = None) -> str:
    """
    Format a POSIX timestamp as an HTTP-date (RFC 1123).
    Uses the current time when `timeval` is omitted.

    Example output: 'Sun, 26 Oct 2025 12:34:56 GMT'
    """
    return formatdate(timeval=timeval, localtime=False, usegmt=True)
