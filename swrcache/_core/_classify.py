"""
Request classification.

Only navigations, stylesheets and scripts are served by the cache; everything
else should be routed around it by the integration layer.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from swrcache._core.models import Request


def _mode(request: Request) -> str:
    mode = request.metadata.get("swr_mode") or request.headers.get("Sec-Fetch-Mode") or ""
    return str(mode).lower()


def _destination(request: Request) -> str:
    destination = request.metadata.get("swr_destination") or request.headers.get("Sec-Fetch-Dest") or ""
    return str(destination).lower()


def _path(request: Request) -> str:
    return urlsplit(request.url).path


def is_navigation(request: Request) -> bool:
    return _mode(request) == "navigate" or "text/html" in request.headers.get("Accept", "")


def is_stylesheet(request: Request) -> bool:
    return _path(request).endswith(".css") or _destination(request) == "style"


def is_script(request: Request) -> bool:
    return _path(request).endswith(".js") or _destination(request) == "script"


def should_handle(request: Request) -> bool:
    if request.method.upper() != "GET":
        return False
    return is_navigation(request) or is_stylesheet(request) or is_script(request)
