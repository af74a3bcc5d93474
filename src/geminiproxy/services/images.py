"""Image sourcing for inline Gemini parts: data URIs and remote URLs."""
import base64
import re
from urllib.error import HTTPError, URLError
from urllib.parse import urlsplit
from urllib.request import Request, urlopen

from ..core.errors import ErrorKind, ImageFetchError, ProxyError

DATA_IMAGE_PREFIX = "data:image/"
DEFAULT_MIME_TYPE = "application/octet-stream"
FETCH_SCHEMES = ("http", "https")

_DATA_URI = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)


def is_data_image(source: str) -> bool:
    return source.startswith(DATA_IMAGE_PREFIX)


def parse_data_uri(source: str) -> dict:
    """Split ``data:<mime>;base64,<data>`` into a Gemini inlineData dict."""
    match = _DATA_URI.match(source)
    if not match:
        raise ProxyError(ErrorKind.BAD_REQUEST, "Invalid base64 image format")
    return {"mimeType": match.group(1), "data": match.group(2)}


def fetch_image(url: str, timeout: float | None = None) -> dict:
    """GET an image and return it as a Gemini inlineData dict.

    Any transport failure or non-2xx status raises ImageFetchError, which the
    translator treats as a reason to drop the one message that referenced it.
    """
    scheme = urlsplit(url).scheme.lower()
    if scheme not in FETCH_SCHEMES:
        raise ImageFetchError(url, f"unsupported URL scheme {scheme!r}")
    try:
        req = Request(url, method="GET")
        with urlopen(req, timeout=timeout) as resp:
            status = resp.status
            content_type = resp.headers.get("Content-Type", "")
            body = resp.read()
    except HTTPError as e:
        raise ImageFetchError(url, f"HTTP {e.code}", status=e.code) from e
    except (URLError, OSError, ValueError) as e:
        raise ImageFetchError(url, str(e)) from e
    if status is None or status < 200 or status >= 300:
        raise ImageFetchError(url, f"HTTP {status}", status=status)
    mime_type = content_type.split(";")[0].strip() or DEFAULT_MIME_TYPE
    return {
        "mimeType": mime_type,
        "data": base64.b64encode(body).decode("ascii"),
    }


def load_image(source: str, timeout: float | None = None) -> dict:
    """Resolve an image source, either inline data or a URL to fetch."""
    if is_data_image(source):
        return parse_data_uri(source)
    return fetch_image(source, timeout=timeout)
