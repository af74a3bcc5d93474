"""Config loader for the gateway's backend target and server options."""
from dataclasses import dataclass
import json
import logging
import os

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", ".."))
DEFAULT_CONFIG_PATH = os.path.join(BASE_DIR, "config.json")
CONFIG_PATH = os.getenv("CONFIG_PATH", DEFAULT_CONFIG_PATH)

_CONFIG_CACHE = {
    "config": None,
    "mtime": None,
}

logger = logging.getLogger("geminiproxy.config")


@dataclass(frozen=True)
class GatewayConfig:
    """Per-app forwarding options, handed to the router and forwarder."""

    base_url: str
    legacy_model: str
    upstream_timeout: float | None = None
    image_fetch_timeout: float | None = None
    image_fetch_workers: int = 8
    legacy_relay_status: bool = False


def _empty_config():
    return {"gemini": {}, "server": {}, "errors": []}


def load_config(path=None):
    """Load and cache config.json with a simple mtime check."""
    path = path or CONFIG_PATH
    try:
        mtime = os.path.getmtime(path)
    except FileNotFoundError:
        return _empty_config()

    cached = _CONFIG_CACHE["config"]
    if cached is not None and _CONFIG_CACHE["mtime"] == (path, mtime):
        return cached

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return _empty_config()

    if not isinstance(raw, dict):
        raw = {}

    config = {
        "gemini": raw.get("gemini", {}) if isinstance(raw.get("gemini"), dict) else {},
        "server": raw.get("server", {}) if isinstance(raw.get("server"), dict) else {},
    }

    config_errors = validate_config(config)
    config["errors"] = config_errors
    if config_errors:
        logger.warning("Config validation warnings: %s", "; ".join(config_errors))

    _CONFIG_CACHE["config"] = config
    _CONFIG_CACHE["mtime"] = (path, mtime)
    return config


def validate_config(config):
    """Validate config shape; return list of warnings."""
    errors = []
    gemini = config.get("gemini", {})
    base_url = gemini.get("base_url")
    if base_url is not None:
        if not isinstance(base_url, str) or not base_url.strip():
            errors.append("gemini.base_url must be a non-empty string")
        elif not base_url.startswith(("http://", "https://")):
            errors.append("gemini.base_url must start with http:// or https://")
    legacy_model = gemini.get("legacy_model")
    if legacy_model is not None and (not isinstance(legacy_model, str) or not legacy_model.strip()):
        errors.append("gemini.legacy_model must be a non-empty string")

    server = config.get("server", {})
    if "port" in server:
        try:
            port = int(server.get("port"))
            if port <= 0 or port > 65535:
                errors.append("server.port must be between 1 and 65535")
        except (TypeError, ValueError):
            errors.append("server.port must be an integer")
    return errors


def get_config_errors():
    """Return validation warnings for current config."""
    return load_config().get("errors", [])


def get_server_port():
    """Return server port from config.json, if set."""
    port = load_config().get("server", {}).get("port")
    try:
        return int(port)
    except (TypeError, ValueError):
        return None


def get_gateway_config(settings) -> GatewayConfig:
    """Merge config.json over environment settings into a GatewayConfig."""
    gemini = load_config().get("gemini", {})
    base_url = gemini.get("base_url")
    if not isinstance(base_url, str) or not base_url.strip():
        base_url = settings.base_url
    legacy_model = gemini.get("legacy_model")
    if not isinstance(legacy_model, str) or not legacy_model.strip():
        legacy_model = settings.legacy_model
    return GatewayConfig(
        base_url=base_url.rstrip("/"),
        legacy_model=legacy_model.strip(),
        upstream_timeout=settings.upstream_timeout,
        image_fetch_timeout=settings.image_fetch_timeout,
        image_fetch_workers=settings.image_fetch_workers,
        legacy_relay_status=settings.legacy_relay_status,
    )
