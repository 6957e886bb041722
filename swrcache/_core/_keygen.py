from __future__ import annotations

import hashlib
from urllib.parse import urljoin, urlsplit, urlunsplit

from swrcache._core.models import Request

DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(url: str) -> str:
    """
    Normalize an absolute URL so equivalent spellings share a cache key.

    The scheme and host are lowercased, default ports are dropped, an empty
    path becomes "/" and the fragment is removed. The query is kept verbatim.

    Examples:
        >>> normalize_url("HTTPS://Example.COM:443?a=1#top")
        'https://example.com/?a=1'
        >>> normalize_url("http://example.com:8080/page")
        'http://example.com:8080/page'
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if parts.port is not None and DEFAULT_PORTS.get(scheme) != parts.port:
        netloc = f"{host}:{parts.port}"
    if parts.username is not None:
        userinfo = parts.username if parts.password is None else f"{parts.username}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"
    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, ""))


def origin_of(url: str) -> str:
    """
    Return the scheme and authority of `url`, e.g. "https://example.com".
    """
    parts = urlsplit(normalize_url(url))
    return f"{parts.scheme}://{parts.netloc}"


def resolve_path(base_url: str, path: str) -> str:
    return normalize_url(urljoin(origin_of(base_url) + "/", path))


def make_cache_key(request: Request) -> str:
    identity = f"{request.method.upper()} {normalize_url(request.url)}"
    return hashlib.sha256(identity.encode("utf-8")).hexdigest()
