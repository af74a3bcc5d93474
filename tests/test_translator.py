"""Tests for OpenAI message to Gemini contents translation."""

from __future__ import annotations

import threading
import time

import pytest
from urllib.error import HTTPError, URLError

from conftest import FakeUpstream
from geminiproxy.core.errors import ErrorKind, ImageFetchError, ProxyError
from geminiproxy.services.images import fetch_image, parse_data_uri
from geminiproxy.services.translator import (
    TranslationResult,
    build_gemini_body,
    convert_message,
    map_role,
    split_image_instruction,
    translate_messages,
)


def _no_fetch(source):
    raise AssertionError(f"unexpected image load: {source}")


class TestRoles:
    @pytest.mark.parametrize(
        "role, expected",
        [
            ("user", "user"),
            ("assistant", "model"),
            ("system", "user"),
            ("tool", "user"),
            (None, "user"),
            (5, "user"),
            ({"r": 1}, "user"),
        ],
    )
    def test_map_role(self, role, expected):
        assert map_role(role) == expected


class TestConvertMessage:
    def test_plain_string(self):
        converted = convert_message({"role": "user", "content": "hi"}, _no_fetch)
        assert converted.role == "user"
        assert converted.parts == [{"text": "hi"}]
        assert converted.image_processed is False

    def test_assistant_maps_to_model(self):
        converted = convert_message({"role": "assistant", "content": "ok"}, _no_fetch)
        assert converted.role == "model"

    @pytest.mark.parametrize("content", ["", [], None, 42, {"text": "x"}])
    def test_empty_or_unsupported_content_is_dropped(self, content):
        assert convert_message({"role": "user", "content": content}, _no_fetch) is None

    def test_typed_items(self):
        content = [
            {"type": "text", "text": "look"},
            {"type": "image_url", "image_url": {"url": "https://img.test/cat.png"}},
            {"type": "input_audio", "input_audio": {"data": "xx"}},
        ]
        converted = convert_message({"role": "user", "content": content}, _no_fetch)
        assert converted.parts == [
            {"text": "look"},
            {"text": "Image URL: https://img.test/cat.png"},
        ]
        assert converted.image_processed is False

    def test_inline_data_image(self):
        content = "#image#split#data:image/png;base64,AAAA#split#caption"
        converted = convert_message({"role": "user", "content": content})
        assert converted.parts == [
            {"text": "caption"},
            {"inlineData": {"mimeType": "image/png", "data": "AAAA"}},
        ]
        assert converted.image_processed is True

    def test_malformed_data_uri_is_bad_request(self):
        content = "#image#split#data:image/png,AAAA#split#caption"
        with pytest.raises(ProxyError) as exc:
            convert_message({"role": "user", "content": content})
        assert exc.value.kind is ErrorKind.BAD_REQUEST
        assert "Invalid base64 image format" in exc.value.message

    @pytest.mark.parametrize(
        "content",
        [
            "#image#split#only-two",
            "#image#split#a#split#b#split#c",
            "prefix#image#split#src#split#text",
        ],
    )
    def test_non_matching_delimiter_is_plain_text(self, content):
        assert split_image_instruction(content) is None
        converted = convert_message({"role": "user", "content": content}, _no_fetch)
        assert converted.parts == [{"text": content}]


class TestImages:
    def test_parse_data_uri(self):
        assert parse_data_uri("data:image/jpeg;base64,/9j/4A==") == {"mimeType": "image/jpeg", "data": "/9j/4A=="}

    def test_fetch_image_encodes_body(self, image_host):
        image_host({"https://img.test/a.png": FakeUpstream(b"\x89PNG", headers={"Content-Type": "image/png; q=1"})})
        assert fetch_image("https://img.test/a.png") == {"mimeType": "image/png", "data": "iVBORw=="}

    def test_fetch_image_defaults_mime_type(self, image_host):
        image_host({"https://img.test/raw": FakeUpstream(b"abc", headers={})})
        assert fetch_image("https://img.test/raw")["mimeType"] == "application/octet-stream"

    def test_fetch_image_http_error(self, image_host):
        url = "https://img.test/missing.png"
        image_host({url: HTTPError(url, 404, "Not Found", {}, None)})
        with pytest.raises(ImageFetchError) as exc:
            fetch_image(url)
        assert exc.value.status == 404

    def test_fetch_image_non_2xx_status(self, image_host):
        url = "https://img.test/moved"
        image_host({url: FakeUpstream(b"", status=302, headers={})})
        with pytest.raises(ImageFetchError):
            fetch_image(url)

    @pytest.mark.parametrize(
        "source",
        ["file:///etc/hostname", "data:text/plain;base64,SGk=", "ftp://img.test/a.png", "img.test/a.png"],
    )
    def test_fetch_image_rejects_non_http_schemes(self, image_host, source):
        calls = image_host({})
        with pytest.raises(ImageFetchError) as exc:
            fetch_image(source)
        assert "unsupported URL scheme" in exc.value.reason
        assert calls == []

    def test_fetch_image_without_status_fails(self, image_host):
        url = "https://img.test/odd"
        image_host({url: FakeUpstream(b"x", status=None, headers={})})
        with pytest.raises(ImageFetchError):
            fetch_image(url)

    def test_fetch_image_transport_error(self, image_host):
        url = "https://img.test/down"
        image_host({url: URLError("connection refused")})
        with pytest.raises(ImageFetchError):
            fetch_image(url)


class TestTranslateMessages:
    def test_single_message(self):
        result = translate_messages([{"role": "user", "content": "hi"}], _no_fetch)
        assert result.contents == [{"role": "user", "parts": [{"text": "hi"}]}]
        assert result.image_processed is False

    def test_empty_message_is_dropped(self):
        messages = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": ""}]
        result = translate_messages(messages, _no_fetch)
        assert len(result.contents) == 1

    def test_order_preserved_with_failed_fetch(self, image_host):
        image_host(
            {
                "https://img.test/ok.png": FakeUpstream(b"ok", headers={"Content-Type": "image/png"}),
                "https://img.test/bad.png": HTTPError("https://img.test/bad.png", 500, "boom", {}, None),
            }
        )
        messages = [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "#image#split#https://img.test/bad.png#split#first"},
            {"role": "user", "content": []},
            {"role": "user", "content": "#image#split#https://img.test/ok.png#split#second"},
            {"role": "assistant", "content": [{"type": "text", "text": "done"}]},
        ]
        result = translate_messages(messages, max_workers=4)
        assert result.contents == [
            {"role": "user", "parts": [{"text": "be brief"}]},
            {
                "role": "user",
                "parts": [{"text": "second"}, {"inlineData": {"mimeType": "image/png", "data": "b2s="}}],
            },
            {"role": "model", "parts": [{"text": "done"}]},
        ]
        assert result.image_processed is True

    def test_fetches_run_concurrently(self):
        started = threading.Barrier(3, timeout=5)

        def slow_loader(source):
            started.wait()
            time.sleep(0.01)
            return {"mimeType": "image/png", "data": source[-1]}

        messages = [{"role": "user", "content": f"#image#split#https://img.test/{i}#split#t{i}"} for i in range(3)]
        result = translate_messages(messages, slow_loader, max_workers=3)
        assert [c["parts"][0]["text"] for c in result.contents] == ["t0", "t1", "t2"]
        assert [c["parts"][1]["inlineData"]["data"] for c in result.contents] == ["0", "1", "2"]

    def test_bad_inline_data_fails_whole_batch(self):
        messages = [
            {"role": "user", "content": "fine"},
            {"role": "user", "content": "#image#split#data:image/png;AAAA#split#x"},
        ]
        with pytest.raises(ProxyError):
            translate_messages(messages, max_workers=2)


class TestGeminiBody:
    def test_no_generation_config_without_images(self):
        result = TranslationResult(contents=[{"role": "user", "parts": [{"text": "hi"}]}])
        assert build_gemini_body(result) == {"contents": result.contents}

    def test_images_request_image_modality(self):
        result = TranslationResult(contents=[], image_processed=True)
        assert build_gemini_body(result)["generationConfig"] == {"responseModalities": ["TEXT", "IMAGE"]}

    def test_caller_config_overrides(self):
        result = TranslationResult(contents=[], image_processed=True)
        body = build_gemini_body(result, {"temperature": 0.2})
        assert body["generationConfig"] == {"temperature": 0.2}
