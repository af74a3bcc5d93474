"""Route handlers for the gateway's legacy and OpenAI-compatible endpoints."""
import json

from flask import Response, g, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from ..core.config import GatewayConfig
from ..core.errors import ErrorKind, ProxyError, classify_message
from ..services.gemini_service import (
    build_request,
    generate_content_json,
    open_generate_content,
)
from ..services.translator import build_gemini_body, translate_messages
from ..utils.http import error_response, raw_url
from ..utils.logging import log_event, redact_url
from .credentials import key_from_header, key_from_query
from .routing import RouteKind, classify_url, route_request
from .schemas import ChatCompletionsRequest
from .streaming import relay_upstream

ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _parse_json_body(raw: bytes):
    try:
        return json.loads(raw or b"")
    except ValueError as e:
        raise ProxyError(ErrorKind.BAD_REQUEST, "Invalid JSON received in request body!") from e


def _parse_chat_request(raw: bytes) -> ChatCompletionsRequest:
    data = _parse_json_body(raw)
    if not isinstance(data, dict):
        raise ProxyError(ErrorKind.BAD_REQUEST, "Request body must be a JSON object!")
    try:
        return ChatCompletionsRequest.model_validate(data)
    except ValidationError as e:
        raise ProxyError(ErrorKind.BAD_REQUEST, f"Invalid request body: {e}") from e


def handle_legacy(config: GatewayConfig) -> Response:
    """Forward a Gemini-native body to the configured legacy model."""
    key = key_from_query(request.query_string.decode("latin-1"))
    body = request.get_data()
    gemini_request = build_request(config.base_url, config.legacy_model, key, body)
    g.resolved_model = config.legacy_model
    g.upstream_url = redact_url(gemini_request.url)

    upstream_status, payload = generate_content_json(gemini_request, timeout=config.upstream_timeout)
    g.upstream_status = upstream_status
    status = upstream_status if config.legacy_relay_status else 200
    response = jsonify(payload)
    response.status_code = status
    return response


def handle_chat_completions(config: GatewayConfig) -> Response:
    """Translate an OpenAI chat request and stream Gemini's reply back."""
    key = key_from_header(request.headers.get("Authorization"))
    chat_request = _parse_chat_request(request.get_data())
    model = chat_request.model
    if not model:
        raise ProxyError(
            ErrorKind.BAD_REQUEST,
            'Missing "model" field in request body! This proxy requires it to determine the target Gemini model URL.',
        )
    g.resolved_model = model

    if chat_request.is_gemini_native:
        # Already in generateContent shape; forward as received.
        body = request.get_data()
    else:
        messages = [message.model_dump() for message in chat_request.messages or []]
        result = translate_messages(
            messages,
            image_fetch_timeout=config.image_fetch_timeout,
            max_workers=config.image_fetch_workers,
        )
        g.image_processed = result.image_processed
        if len(result.contents) != len(messages):
            log_event(
                20,
                "messages_dropped",
                request_id=getattr(g, "request_id", ""),
                received=len(messages),
                forwarded=len(result.contents),
            )
        body = build_gemini_body(result, chat_request.gemini_generation_config)

    gemini_request = build_request(config.base_url, model, key, body)
    g.upstream_url = redact_url(gemini_request.url)
    resp = open_generate_content(gemini_request, timeout=config.upstream_timeout)
    return relay_upstream(resp, getattr(g, "request_id", ""))


def register_routes(app, config: GatewayConfig):
    """Register the catch-all gateway route and error handlers on the app."""

    @app.route("/", defaults={"path": ""}, methods=ROUTED_METHODS)
    @app.route("/<path:path>", methods=ROUTED_METHODS)
    def gateway(path):
        kind = route_request(request.method, raw_url())
        g.route_kind = kind.value
        if kind is RouteKind.OPENAI:
            return handle_chat_completions(config)
        return handle_legacy(config)

    @app.errorhandler(ProxyError)
    def handle_proxy_error(error):
        if error.status >= 500:
            log_event(40, "proxy_error", request_id=getattr(g, "request_id", ""), error=error.message)
        return error_response(error.message, error.status)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        if error.code == 405 and classify_url(raw_url()) is RouteKind.UNKNOWN:
            return error_response("Unknown path!", 404)
        if error.code == 404:
            return error_response("Unknown path!", 404)
        if error.code == 413:
            return error_response("Request body too large", 413)
        return error_response(error.description or error.name, error.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        message = str(error) or "An unknown error occurred"
        kind = classify_message(message)
        log_event(40, "unhandled_error", request_id=getattr(g, "request_id", ""), error=message, status=kind.status)
        return error_response(message, kind.status)
