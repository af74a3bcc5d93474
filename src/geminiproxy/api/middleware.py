"""Flask middleware registration for CORS, preflight, and request logging."""
import time
import uuid

from flask import Response, g, request

from ..utils.http import get_client_ip
from ..utils.logging import log_event, redact_headers
from .routing import CORS_HEADERS

REDACTED_HEADERS = ("authorization", "x-api-key", "api-key")


def register_middlewares(app, settings):
    """Register Flask middlewares on the app."""

    @app.before_request
    def attach_request_context():
        g.request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
        g.request_start = time.time()

    @app.before_request
    def answer_preflight():
        if request.method == "OPTIONS":
            return Response(status=204)
        return None

    @app.after_request
    def add_headers(response):
        response.headers["X-Request-ID"] = getattr(g, "request_id", "")
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value

        latency_ms = None
        if hasattr(g, "request_start"):
            latency_ms = int((time.time() - g.request_start) * 1000)
        log_event(
            20,
            "request",
            request_id=getattr(g, "request_id", ""),
            method=request.method,
            path=request.path,
            route=getattr(g, "route_kind", None),
            status=response.status_code,
            latency_ms=latency_ms,
            model=getattr(g, "resolved_model", None),
            upstream_url=getattr(g, "upstream_url", None),
            upstream_status=getattr(g, "upstream_status", None),
            image_processed=getattr(g, "image_processed", None),
            client_ip=get_client_ip(),
        )
        if settings.log_level.upper() == "DEBUG":
            log_event(
                10,
                "request_detail",
                request_id=getattr(g, "request_id", ""),
                headers=redact_headers(dict(request.headers), REDACTED_HEADERS),
                query=redact_headers(request.args.to_dict(), ("key",)),
            )
        return response
