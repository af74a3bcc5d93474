"""Container healthcheck entrypoint."""
import json
import os
import urllib.request


def _resolve_port() -> int:
    """Resolve port from config.json or fall back to PORT/default."""
    port = int(os.getenv("PORT", "80"))
    config_path = os.getenv("CONFIG_PATH", "/app/config.json")
    try:
        with open(config_path, "r", encoding="utf-8") as handle:
            config = json.load(handle)
        port = int(config.get("server", {}).get("port", port))
    except (OSError, ValueError, TypeError, AttributeError):
        return port
    return port


def main() -> int:
    """Return exit code 0 if a CORS preflight on / answers 204."""
    port = _resolve_port()
    req = urllib.request.Request(f"http://127.0.0.1:{port}/", method="OPTIONS")
    try:
        with urllib.request.urlopen(req, timeout=2) as resp:
            return 0 if resp.status == 204 else 1
    except OSError:
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
