"""Relay of upstream response bodies to the client."""
import socket

from flask import Response, stream_with_context

from ..services.gemini_service import response_status
from ..utils.logging import log_event

CHUNK_SIZE = 8192
NO_BODY_STATUSES = (204, 304)
DEFAULT_CONTENT_TYPE = "application/json"


def _has_body(resp, status: int) -> bool:
    if status in NO_BODY_STATUSES or (100 <= status < 200):
        return False
    return resp.headers.get("Content-Length") != "0"


def iter_upstream_body(resp, request_id: str = "", chunk_size: int = CHUNK_SIZE):
    """Yield the upstream body in chunks; the upstream is always closed.

    Closing the generator (client disconnect) runs the ``finally`` block too.
    """
    sent = 0
    try:
        while True:
            chunk = resp.read(chunk_size)
            if not chunk:
                break
            sent += len(chunk)
            yield chunk
    except (socket.timeout, TimeoutError, OSError) as e:
        # Headers are already out; all we can do is stop the body.
        log_event(40, "upstream_stream_error", request_id=request_id, error=str(e), bytes_sent=sent)
    finally:
        resp.close()


def relay_upstream(resp, request_id: str = "") -> Response:
    """Build a streamed Flask response mirroring the upstream status."""
    status = response_status(resp)
    content_type = resp.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE
    if not _has_body(resp, status):
        resp.close()
        return Response(status=status, content_type=content_type)
    return Response(
        stream_with_context(iter_upstream_body(resp, request_id)),
        status=status,
        content_type=content_type,
    )
