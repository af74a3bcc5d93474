"""Shared test fixtures for the Gemini gateway."""

from __future__ import annotations

import io
import json
from urllib.error import HTTPError

import pytest

from geminiproxy.core.app import create_app
from geminiproxy.core.config import GatewayConfig

BASE_URL = "https://gemini.test/v1beta/models"
LEGACY_MODEL = "gemini-legacy"


class FakeUpstream:
    """Minimal stand-in for the object returned by ``urlopen``."""

    def __init__(self, body: bytes = b"", status: int = 200, headers: dict | None = None):
        self._stream = io.BytesIO(body)
        self.status = status
        self.headers = headers if headers is not None else {"Content-Type": "application/json"}
        self.closed = False

    def read(self, amt: int = -1) -> bytes:
        return self._stream.read(amt)

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


def json_upstream(payload, status: int = 200) -> FakeUpstream:
    return FakeUpstream(json.dumps(payload).encode("utf-8"), status=status)


def http_error(url: str, status: int, payload) -> HTTPError:
    body = json.dumps(payload).encode("utf-8")
    return HTTPError(url, status, "error", {"Content-Type": "application/json"}, io.BytesIO(body))


class RecordingUrlopen:
    """Records outgoing requests and answers from a queue of responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, req, timeout=None):
        self.requests.append({"request": req, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    @property
    def last_json(self):
        return json.loads(self.requests[-1]["request"].data)


@pytest.fixture()
def gateway_config():
    return GatewayConfig(base_url=BASE_URL, legacy_model=LEGACY_MODEL)


@pytest.fixture()
def app(gateway_config):
    return create_app(gateway_config)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def upstream(monkeypatch):
    """Patch the Gemini forwarder's urlopen; call with the responses to return."""
    from geminiproxy.services import gemini_service

    def _install(*responses):
        recorder = RecordingUrlopen(*responses)
        monkeypatch.setattr(gemini_service, "urlopen", recorder)
        return recorder

    return _install


@pytest.fixture()
def image_host(monkeypatch):
    """Patch the image fetcher's urlopen with a URL -> response mapping."""
    from geminiproxy.services import images

    def _install(mapping):
        calls = []

        def fake_urlopen(req, timeout=None):
            calls.append(req.full_url)
            response = mapping[req.full_url]
            if isinstance(response, BaseException):
                raise response
            return response

        monkeypatch.setattr(images, "urlopen", fake_urlopen)
        return calls

    return _install
