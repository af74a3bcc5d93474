"""Structured logging helpers."""
import json
import logging
import os
import re
import sys
import time
from logging.handlers import RotatingFileHandler

logger = logging.getLogger("geminiproxy")

_KEY_PARAM = re.compile(r"([?&]key=)[^&]*")


def _resolve_log_dir(log_dir: str | None) -> str | None:
    if log_dir:
        return log_dir
    env_dir = os.getenv("LOG_DIR")
    if env_dir:
        return env_dir
    return None


def _file_logging_enabled() -> bool:
    return os.getenv("LOG_TO_FILE", "False").lower() in ("1", "true", "yes", "on")


def _build_rotating_handler(log_dir: str, filename: str) -> RotatingFileHandler:
    os.makedirs(log_dir, exist_ok=True)
    max_mb = float(os.getenv("LOG_FILE_MAX_MB", "10"))
    backup_count = int(os.getenv("LOG_FILE_BACKUPS", "5"))
    max_bytes = max(1, int(max_mb * 1024 * 1024))
    backup_count = max(1, backup_count)
    log_path = os.path.join(log_dir, filename)
    handler = RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def setup_logging(level: str, log_dir: str | None = None) -> None:
    """Configure root logging level and handlers."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    handlers = [logging.StreamHandler(sys.stdout)]
    resolved_dir = _resolve_log_dir(log_dir)
    if resolved_dir and _file_logging_enabled():
        try:
            handlers.append(_build_rotating_handler(resolved_dir, "geminiproxy.log"))
        except OSError as exc:
            # Fall back to stdout-only if file logging can't be initialized.
            print(f"[geminiproxy] file logging disabled: {exc}", file=sys.stderr)
    logging.basicConfig(level=numeric, handlers=handlers, force=True)


def log_event(level: int, message: str, **fields) -> None:
    """Emit a structured log line."""
    payload = {"message": message, "ts": int(time.time())}
    payload.update(fields)
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


def redact_headers(headers, redact_list):
    """Return headers dict with sensitive keys masked."""
    redact_set = {item.lower() for item in redact_list}
    safe = {}
    for key, value in headers.items():
        if key.lower() in redact_set:
            safe[key] = "***"
        else:
            safe[key] = value
    return safe


def redact_url(url: str | None) -> str | None:
    """Mask the value of a ``key`` query parameter."""
    if not url:
        return url
    return _KEY_PARAM.sub(r"\1***", url)
