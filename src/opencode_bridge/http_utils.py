from __future__ import annotations

"""HTTP helper utilities shared by the request and streaming clients."""

from typing import Any, Optional
from urllib.parse import urlsplit

HTTP_SUCCESS_MIN = 200
HTTP_SUCCESS_MAX = 299

# Companion server endpoints
IDENTITY_PATH = "/path"
EVENT_STREAM_PATH = "/event"
PUBLISH_PATH = "/tui/publish"


def is_aiohttp_session_open(session: Optional[Any]) -> bool:
    """Return True when the provided aiohttp session exists and remains open."""
    if session is None:
        return False
    if not hasattr(session, "closed"):
        return False
    return not bool(session.closed)


def is_success_status(status: int) -> bool:
    return HTTP_SUCCESS_MIN <= status <= HTTP_SUCCESS_MAX


def ensure_http_url(request_url: str) -> str:
    """Ensure the provided URL uses an allowed HTTP/HTTPS scheme."""
    parsed = urlsplit(request_url)
    scheme = parsed.scheme.lower()
    if scheme not in {"http", "https"}:
        raise ValueError(f"Unsupported URL scheme: {request_url}")
    if not parsed.netloc:
        raise ValueError(f"URL missing network location: {request_url}")
    return request_url


def build_url(host: str, port: int, path: str) -> str:
    """Build ``http://host:port/path`` for a companion endpoint."""
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    if not path.startswith("/"):
        path = f"/{path}"
    return ensure_http_url(f"http://{host}:{port}{path}")


__all__ = [
    "EVENT_STREAM_PATH",
    "IDENTITY_PATH",
    "PUBLISH_PATH",
    "build_url",
    "ensure_http_url",
    "is_aiohttp_session_open",
    "is_success_status",
]
