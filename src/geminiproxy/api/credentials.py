"""Backend API key extraction for both request dialects."""
from urllib.parse import parse_qs

from ..core.errors import ErrorKind, ProxyError

BEARER_PREFIX = "Bearer "


def key_from_query(query_string: str) -> str:
    """Return the ``key`` query parameter used by legacy requests."""
    values = parse_qs(query_string or "").get("key") or [""]
    key = values[0]
    if not key:
        raise ProxyError(ErrorKind.BAD_REQUEST, "add param key to url!")
    return key


def key_from_header(auth_header: str | None) -> str:
    """Return the key carried in an ``Authorization: Bearer`` header."""
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise ProxyError(
            ErrorKind.BAD_REQUEST,
            'Missing or invalid Authorization header! Format: "Bearer YOUR_API_KEY"',
        )
    return auth_header[len(BEARER_PREFIX):]
