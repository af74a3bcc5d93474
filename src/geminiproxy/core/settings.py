"""Environment-driven settings for the Gemini gateway."""
from dataclasses import dataclass
from functools import lru_cache
import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_LEGACY_MODEL = "gemini-1.5-flash"


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


def _env_seconds(name: str) -> float | None:
    """Return a positive timeout in seconds, or None when unset (wait forever)."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    value = float(raw)
    return value if value > 0 else None


@dataclass(frozen=True)
class Settings:
    log_level: str
    app_version: str
    log_dir: str
    port: int
    base_url: str
    legacy_model: str
    upstream_timeout: float | None
    image_fetch_timeout: float | None
    image_fetch_workers: int
    max_body_mb: float
    legacy_relay_status: bool
    strict_config: bool

    @property
    def max_content_length(self) -> int:
        return int(self.max_body_mb * 1024 * 1024)


@lru_cache
def get_settings() -> Settings:
    """Load settings from environment variables."""
    return Settings(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        log_dir=os.getenv(
            "LOG_DIR",
            os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "..", "logs")),
        ),
        port=int(os.getenv("PORT", "80")),
        base_url=os.getenv("GEMINI_BASE_URL", DEFAULT_BASE_URL),
        legacy_model=os.getenv("GEMINI_LEGACY_MODEL", DEFAULT_LEGACY_MODEL),
        upstream_timeout=_env_seconds("UPSTREAM_TIMEOUT"),
        image_fetch_timeout=_env_seconds("IMAGE_FETCH_TIMEOUT"),
        image_fetch_workers=max(1, int(os.getenv("IMAGE_FETCH_WORKERS", "8"))),
        max_body_mb=float(os.getenv("MAX_BODY_MB", "20")),
        legacy_relay_status=_env_flag("LEGACY_RELAY_STATUS"),
        strict_config=_env_flag("STRICT_CONFIG"),
    )
