"""Request classification for the gateway's two dialects."""
from enum import Enum

from ..core.errors import ErrorKind, ProxyError

OPENAI_PATH_PREFIX = "/v1/chat/completions"
LEGACY_KEY_PREFIX = "/?key="

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


class RouteKind(Enum):
    LEGACY = "legacy"
    OPENAI = "openai"
    UNKNOWN = "unknown"


def classify_url(url: str) -> RouteKind:
    """Classify a raw request target (path plus query string)."""
    if url.startswith(OPENAI_PATH_PREFIX):
        return RouteKind.OPENAI
    if url == "/" or url.startswith(LEGACY_KEY_PREFIX):
        return RouteKind.LEGACY
    return RouteKind.UNKNOWN


def route_request(method: str, url: str) -> RouteKind:
    """Return the route for a non-preflight request or raise ProxyError."""
    kind = classify_url(url)
    if kind is RouteKind.UNKNOWN:
        raise ProxyError(ErrorKind.NOT_FOUND, "Unknown path!")
    if method.upper() != "POST":
        raise ProxyError(ErrorKind.METHOD_NOT_ALLOWED, "Only POST method allowed for this endpoint!")
    return kind
