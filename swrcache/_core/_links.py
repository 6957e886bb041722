from __future__ import annotations

import re
from typing import List, Union

# Best-effort scan, not an HTML parser. Quoted href values must start with a
# single "/" and have at least one more character; "//host/..." is skipped.
HREF_PATTERN = re.compile(r"""href=['"](/(?!/)[^'"]+)['"]""")


def extract_prefetch_targets(html: Union[str, bytes]) -> List[str]:
    """
    Extract same-origin absolute-path links from an HTML document.

    Links are deduplicated by exact string and returned in the order they
    first appear. Undecodable bytes are replaced rather than rejected, so
    malformed input yields fewer links instead of an error.

    Examples:
        >>> extract_prefetch_targets('<a href="/a"></a><a href="/a"></a><a href="https://other.example/b"></a>')
        ['/a']
    """
    if isinstance(html, bytes):
        html = html.decode("utf-8", errors="replace")

    seen: dict[str, None] = {}
    for match in HREF_PATTERN.finditer(html):
        seen.setdefault(match.group(1), None)
    return list(seen)
