# src/llmstream/providers/nanogpt.py
"""NanoGPT chat completions streamed over raw HTTP + server-sent events."""
from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional

import httpx

from llmstream.core.errors import ApiError, ConfigError, NetworkError
from llmstream.core.messages import ChatRequest
from llmstream.core.ports import ProviderConfig
from llmstream.core.stream import ChatStream
from llmstream.decoding.sse import StreamDecoder
from llmstream.providers.registry import ProviderRegistry

NANOGPT_API_URL = "https://nano-gpt.com/api/v1/chat/completions"
UNKNOWN_ERROR = "Unknown error"

LOGGER = logging.getLogger(__name__)


def _iter_body(response: httpx.Response) -> Iterator[bytes]:
    try:
        yield from response.iter_bytes()
    except (httpx.HTTPError, httpx.StreamError) as exc:
        raise NetworkError(f"Stream read failed: {exc}") from exc


def _read_error_text(response: httpx.Response) -> str:
    try:
        response.read()
        return response.text
    except (httpx.HTTPError, httpx.StreamError):
        return UNKNOWN_ERROR


@ProviderRegistry.register("nanogpt")
class NanoGPTProvider:
    """
    Streams chat completions from NanoGPT.
    The httpx client is shared across calls (thread-safe); every call gets its
    own request, response and decoder.
    """

    def __init__(self, config: ProviderConfig, *, transport: Optional[httpx.BaseTransport] = None):
        if not config.api_key:
            raise ConfigError("No API key for 'nanogpt'")
        self._model = config.model
        self._api_key = config.api_key
        self._reassemble_lines = config.reassemble_lines

        if config.base_url:
            self._url = f"{config.base_url.rstrip('/')}/chat/completions"
        else:
            self._url = NANOGPT_API_URL

        try:
            httpx.URL(self._url)
            timeout = httpx.Timeout(config.timeout, read=None)
            self._client = httpx.Client(timeout=timeout, follow_redirects=True, transport=transport)
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            raise ConfigError(f"Could not build HTTP client: {exc}") from exc

    @classmethod
    def create(cls, config: ProviderConfig) -> "NanoGPTProvider":
        return cls(config)

    def name(self) -> str:
        return "nanogpt"

    def model(self) -> str:
        return self._model

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "text/event-stream",
        }

    def chat_stream(self, system_message: str, user_message: str) -> ChatStream:
        request = ChatRequest.for_turn(self._model, system_message, user_message)
        try:
            http_request = self._client.build_request(
                "POST", self._url, headers=self._headers(), json=request.to_payload()
            )
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid request for {self._url}: {exc}") from exc

        LOGGER.info(
            "NanoGPT request started | model=%s system_chars=%d user_chars=%d",
            self._model,
            len(system_message),
            len(user_message),
        )
        try:
            response = self._client.send(http_request, stream=True)
        except httpx.UnsupportedProtocol as exc:
            raise ConfigError(f"Unsupported URL '{self._url}': {exc}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Failed to reach NanoGPT at {self._url}: {exc}") from exc

        if not response.is_success:
            try:
                error_text = _read_error_text(response)
            finally:
                response.close()
            LOGGER.warning(
                "NanoGPT request rejected | model=%s status=%d",
                self._model,
                response.status_code,
            )
            raise ApiError(
                f"NanoGPT API error: {error_text}",
                status_code=response.status_code,
                body=error_text,
            )

        decoder = StreamDecoder(reassemble_lines=self._reassemble_lines)
        return ChatStream(
            decoder.iter_fragments(_iter_body(response)),
            on_close=response.close,
            label=self.name(),
        )
