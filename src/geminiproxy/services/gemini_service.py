"""Outbound calls to the Gemini generateContent endpoint."""
import json
import socket
from dataclasses import dataclass
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from ..core.errors import ErrorKind, ProxyError, classify_message

GENERATE_CONTENT_METHOD = "generateContent"
JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass
class GeminiRequest:
    url: str
    body: bytes
    headers: dict


def build_generate_url(base_url: str, model: str, key: str) -> str:
    """Return ``{base}/{model}:generateContent?key={key}``."""
    return f"{base_url.rstrip('/')}/{model}:{GENERATE_CONTENT_METHOD}?key={quote(key, safe='')}"


def build_request(base_url: str, model: str, key: str, body) -> GeminiRequest:
    """Build the outgoing request; dict bodies are JSON-encoded, bytes pass as-is."""
    if not isinstance(body, (bytes, bytearray)):
        body = json.dumps(body, ensure_ascii=False).encode("utf-8")
    return GeminiRequest(
        url=build_generate_url(base_url, model, key),
        body=bytes(body),
        headers=dict(JSON_HEADERS),
    )


def _is_timeout(err: BaseException) -> bool:
    reason = getattr(err, "reason", err)
    return isinstance(reason, (socket.timeout, TimeoutError)) or "timed out" in str(reason)


def open_generate_content(gemini_request: GeminiRequest, timeout: float | None = None):
    """POST to Gemini and return the open response, whatever its status.

    The caller owns the returned object and must close it. Backend 4xx/5xx
    responses are returned rather than raised so they can be relayed.
    """
    req = Request(
        gemini_request.url,
        data=gemini_request.body,
        headers=gemini_request.headers,
        method="POST",
    )
    try:
        return urlopen(req, timeout=timeout)
    except HTTPError as e:
        return e
    except (URLError, OSError) as e:
        if _is_timeout(e):
            raise ProxyError(ErrorKind.GATEWAY_TIMEOUT, f"Upstream request timed out: {e}") from e
        message = f"Upstream request failed: {getattr(e, 'reason', e)}"
        raise ProxyError(classify_message(message), message) from e


def response_status(resp) -> int:
    return getattr(resp, "status", None) or getattr(resp, "code", None) or 502


def generate_content_json(gemini_request: GeminiRequest, timeout: float | None = None):
    """POST to Gemini and return ``(status, parsed_json)``."""
    resp = open_generate_content(gemini_request, timeout=timeout)
    try:
        status = response_status(resp)
        raw = resp.read()
    except (socket.timeout, TimeoutError) as e:
        raise ProxyError(ErrorKind.GATEWAY_TIMEOUT, f"Upstream response timed out: {e}") from e
    finally:
        resp.close()
    try:
        return status, json.loads(raw)
    except ValueError as e:
        raise ProxyError(
            ErrorKind.INTERNAL_ERROR,
            f"Upstream returned non-JSON response (status {status})",
        ) from e
