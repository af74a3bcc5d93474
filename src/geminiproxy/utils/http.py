"""HTTP helpers and error responses."""
from flask import jsonify, request

from ..core.errors import with_marker


def get_client_ip() -> str:
    """Resolve client IP with basic X-Forwarded-For support."""
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.remote_addr or "unknown"


def raw_url() -> str:
    """Return the request target as the client sent it: path plus query.

    The server's raw URI is preferred so that an empty query (``/?``) is kept.
    """
    raw = request.environ.get("RAW_URI") or request.environ.get("REQUEST_URI")
    if raw:
        return raw
    query = request.query_string.decode("latin-1")
    return f"{request.path}?{query}" if query else request.path


def error_response(message: str, status: int = 500):
    """Return the gateway's JSON error payload."""
    payload = {
        "error": {
            "code": status,
            "message": with_marker(message),
        }
    }
    return jsonify(payload), status
