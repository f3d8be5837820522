# tests/unit/test_nanogpt_provider.py

from __future__ import annotations
import gc
import json
import sys
from pathlib import Path
from typing import Iterator, List
import httpx
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from llmstream.core.errors import ApiError, ConfigError, NetworkError
from llmstream.core.ports import Provider, ProviderConfig
from llmstream.decoding.sse import format_event
from llmstream.providers.nanogpt import NANOGPT_API_URL, NanoGPTProvider


# -------- fake transport pieces --------

class TrackingStream(httpx.SyncByteStream):
    """Response body that records whether the connection was closed."""

    def __init__(self, chunks: List[bytes], fail_after: bool = False):
        self.chunks = chunks
        self.fail_after = fail_after
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        for c in self.chunks:
            yield c
        if self.fail_after:
            raise httpx.ReadError("connection reset")

    def close(self) -> None:
        self.closed = True


def _config(**overrides) -> ProviderConfig:
    base = {"provider": "nanogpt", "model": "gpt-4o", "api_key": "test-key"}
    base.update(overrides)
    return ProviderConfig(**base)


def _provider(handler, **overrides) -> NanoGPTProvider:
    return NanoGPTProvider(_config(**overrides), transport=httpx.MockTransport(handler))


# -------- construction --------

def test_provider_creation():
    provider = NanoGPTProvider(_config())
    assert provider.name() == "nanogpt"
    assert provider.model() == "gpt-4o"
    assert isinstance(provider, Provider)


def test_missing_api_key_is_config_error():
    with pytest.raises(ConfigError):
        NanoGPTProvider(_config(api_key=""))


def test_api_key_hidden_from_repr():
    assert "test-key" not in repr(_config())


# -------- request shape --------

def test_request_headers_and_body():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, stream=TrackingStream([format_event("ok")]))

    stream = _provider(handler).chat_stream("be brief", "hello")
    assert list(stream) == ["ok"]

    req = seen["request"]
    assert req.method == "POST"
    assert str(req.url) == NANOGPT_API_URL
    assert req.headers["authorization"] == "Bearer test-key"
    assert req.headers["accept"] == "text/event-stream"
    assert req.headers["content-type"] == "application/json"
    assert json.loads(req.content) == {
        "model": "gpt-4o",
        "messages": [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hello"},
        ],
        "stream": True,
        "max_tokens": 4096,
    }


def test_base_url_override():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(200, stream=TrackingStream([]))

    list(_provider(handler, base_url="http://localhost:8080/v1/").chat_stream("s", "u"))
    assert seen["url"] == "http://localhost:8080/v1/chat/completions"


def test_unsupported_url_scheme_is_config_error():
    provider = NanoGPTProvider(_config(base_url="ftp://example.com/v1"))
    with pytest.raises(ConfigError):
        provider.chat_stream("s", "u")


# -------- streaming --------

def test_streams_fragments_in_arrival_order():
    body = TrackingStream([
        b": keep-alive\n\n",
        format_event("He") + format_event("llo"),
        b'data: {"object":"other","choices":[]}\n\n',
        format_event(", world"),
        b"data: not-json\n\n",
        b"data: [DONE]\n\n",
    ])
    provider = _provider(lambda request: httpx.Response(200, stream=body))
    assert list(provider.chat_stream("s", "u")) == ["Hello", ", world"]
    assert body.closed


def test_reassemble_lines_from_config():
    raw = format_event("joined")
    body = TrackingStream([raw[:15], raw[15:]])
    provider = _provider(lambda request: httpx.Response(200, stream=body), reassemble_lines=True)
    assert list(provider.chat_stream("s", "u")) == ["joined"]


def test_mid_stream_failure_is_network_error():
    body = TrackingStream([format_event("partial")], fail_after=True)
    stream = _provider(lambda request: httpx.Response(200, stream=body)).chat_stream("s", "u")
    assert next(stream) == "partial"
    with pytest.raises(NetworkError):
        next(stream)
    assert body.closed


def test_abandoned_stream_closes_connection():
    body = TrackingStream([format_event("one"), format_event("two"), format_event("three")])
    stream = _provider(lambda request: httpx.Response(200, stream=body)).chat_stream("s", "u")
    assert next(stream) == "one"
    assert not body.closed
    del stream
    gc.collect()
    assert body.closed


# -------- synchronous failures --------

def test_error_status_raises_api_error_with_body():
    provider = _provider(lambda request: httpx.Response(401, text="invalid api key"))
    with pytest.raises(ApiError) as info:
        provider.chat_stream("s", "u")
    assert info.value.status_code == 401
    assert info.value.body == "invalid api key"
    assert "invalid api key" in str(info.value)


def test_error_status_with_unreadable_body_uses_placeholder():
    body = TrackingStream([], fail_after=True)
    provider = _provider(lambda request: httpx.Response(500, stream=body))
    with pytest.raises(ApiError) as info:
        provider.chat_stream("s", "u")
    assert info.value.body == "Unknown error"
    assert body.closed


def test_connection_failure_is_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError):
        _provider(handler).chat_stream("s", "u")


def test_concurrent_streams_are_independent():
    def handler(request: httpx.Request) -> httpx.Response:
        user = json.loads(request.content)["messages"][1]["content"]
        return httpx.Response(200, stream=TrackingStream([format_event(user)]))

    provider = _provider(handler)
    a = provider.chat_stream("s", "first")
    b = provider.chat_stream("s", "second")
    assert next(b) == "second"
    assert next(a) == "first"


def test_redirect_is_followed_before_status_check():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, request.content))
        if request.url.path == "/v1/chat/completions":
            return httpx.Response(307, headers={"location": "http://localhost:8080/v2/chat/completions"})
        return httpx.Response(200, stream=TrackingStream([format_event("moved")]))

    provider = _provider(handler, base_url="http://localhost:8080/v1")
    assert list(provider.chat_stream("s", "u")) == ["moved"]
    assert [(m, p) for m, p, _ in seen] == [
        ("POST", "/v1/chat/completions"),
        ("POST", "/v2/chat/completions"),
    ]
    assert seen[0][2] == seen[1][2]  # 307 keeps the body
