"""Application factory and entrypoint."""
import time

from flask import Flask

from .config import GatewayConfig, get_config_errors, get_gateway_config, get_server_port
from ..utils.logging import log_event, setup_logging
from ..api.middleware import register_middlewares
from ..api.handlers import register_routes
from .settings import get_settings


def create_app(gateway_config: GatewayConfig | None = None, settings=None) -> Flask:
    """Create and configure the Flask application."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    if gateway_config is None:
        gateway_config = get_gateway_config(settings)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_content_length
    app.config["APP_STARTED_AT"] = time.time()
    app.config["SETTINGS"] = settings
    app.config["GATEWAY"] = gateway_config

    register_middlewares(app, settings)
    register_routes(app, gateway_config)
    return app


def run() -> None:
    """Run the gateway on the werkzeug server."""
    app = create_app()
    settings = app.config["SETTINGS"]

    if settings.strict_config:
        config_errors = get_config_errors()
        if config_errors:
            for err in config_errors:
                log_event(40, "config_error", error=err)
            raise SystemExit("Strict config enabled; fix config.json errors.")

    port = get_server_port() or settings.port
    gateway = app.config["GATEWAY"]
    log_event(20, "server_start", port=port, base_url=gateway.base_url, legacy_model=gateway.legacy_model)
    app.run(host="0.0.0.0", port=port, threaded=True)


if __name__ == "__main__":
    run()
