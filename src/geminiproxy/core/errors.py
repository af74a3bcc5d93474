"""Error kinds raised by the gateway and their HTTP status mapping."""
from enum import Enum

ERROR_MARKER = "\U0001F4A3"


class ErrorKind(Enum):
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    INTERNAL_ERROR = 500
    GATEWAY_TIMEOUT = 504

    @property
    def status(self) -> int:
        return self.value


def with_marker(message: str) -> str:
    """Prefix a generated error message with the marker glyph, once."""
    if message.startswith(ERROR_MARKER):
        return message
    return f"{ERROR_MARKER} {message}"


class ProxyError(Exception):
    """A failure generated by the gateway itself, never by the backend."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = with_marker(message)

    @property
    def status(self) -> int:
        return self.kind.status


class ImageFetchError(Exception):
    """An image referenced by one message could not be fetched."""

    def __init__(self, url: str, reason: str, status: int | None = None):
        super().__init__(f"Failed to fetch image {url}: {reason}")
        self.url = url
        self.reason = reason
        self.status = status


def classify_message(message: str) -> ErrorKind:
    """Best-effort kind for exceptions that were not raised as ProxyError."""
    if "API key not valid" in message or "API key invalid" in message:
        return ErrorKind.UNAUTHORIZED
    if "Invalid JSON" in message:
        return ErrorKind.BAD_REQUEST
    if "timed out" in message:
        return ErrorKind.GATEWAY_TIMEOUT
    return ErrorKind.INTERNAL_ERROR
