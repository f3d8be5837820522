# src/llmstream/providers/openai_adapter.py
from __future__ import annotations
import logging
from typing import Any, Dict, Iterator, Optional

import httpx
import openai
from openai import OpenAI

from llmstream.core.errors import ApiError, ConfigError, LLMError, NetworkError
from llmstream.core.messages import ChatRequest
from llmstream.core.ports import ProviderConfig
from llmstream.core.stream import ChatStream
from llmstream.decoding.sse import StreamDecoder
from llmstream.providers.registry import ProviderRegistry

LOGGER = logging.getLogger(__name__)


def _classify_openai_exception(exc: Exception) -> LLMError:
    """
    Convert OpenAI SDK exceptions into the neutral error taxonomy.
    Status errors carry the response body when it can be read.
    """
    if isinstance(exc, openai.APIStatusError):
        try:
            body = exc.response.text or "Unknown error"
        except (httpx.HTTPError, httpx.StreamError):
            body = "Unknown error"
        return ApiError(f"OpenAI API error: {body}", status_code=exc.status_code, body=body)
    if isinstance(exc, openai.APIConnectionError):  # includes APITimeoutError
        return NetworkError(str(exc))
    if isinstance(exc, (openai.APIError, httpx.HTTPError)):
        return NetworkError(str(exc))
    return ConfigError(str(exc))


def _iter_body(response: Any) -> Iterator[bytes]:
    try:
        yield from response.iter_bytes()
    except (openai.APIError, httpx.HTTPError, httpx.StreamError) as e:
        raise NetworkError(f"Stream read failed: {e}") from e


@ProviderRegistry.register("openai")
class OpenAIAdapter:
    """
    Thin adapter over the OpenAI SDK:
    - same request shape as every other provider (ChatRequest payload)
    - the SDK only sends the request; the raw body goes through StreamDecoder
    - maps SDK errors to ConfigError / NetworkError / ApiError, no SDK retries
    """

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
        reassemble_lines: bool = False,
        http_client: Optional[httpx.Client] = None,
    ):
        if not api_key:
            raise ConfigError("No API key for 'openai'")
        self._model = model
        self._reassemble_lines = reassemble_lines
        client_kwargs: Dict[str, Any] = {"api_key": api_key, "max_retries": 0}
        if base_url:
            client_kwargs["base_url"] = base_url
        if http_client is not None:
            client_kwargs["http_client"] = http_client
        try:
            self.client = OpenAI(**client_kwargs)
        except openai.OpenAIError as e:
            raise ConfigError(f"Could not build OpenAI client: {e}") from e
        self.timeout = timeout

    @classmethod
    def create(cls, config: ProviderConfig) -> "OpenAIAdapter":
        return cls(
            model=config.model,
            api_key=config.api_key,
            timeout=config.timeout,
            base_url=config.base_url,
            reassemble_lines=config.reassemble_lines,
        )

    def name(self) -> str:
        return "openai"

    def model(self) -> str:
        return self._model

    def _build_args(self, request: ChatRequest) -> Dict[str, Any]:
        args = request.to_payload()
        args["extra_headers"] = {"Accept": "text/event-stream"}
        if self.timeout is not None:
            args["timeout"] = self.timeout
        return args

    def chat_stream(self, system_message: str, user_message: str) -> ChatStream:
        request = ChatRequest.for_turn(self._model, system_message, user_message)
        LOGGER.info("OpenAI request started | model=%s", self._model)
        try:
            pending = self.client.chat.completions.with_streaming_response.create(**self._build_args(request))
            response = pending.__enter__()
        except Exception as e:
            raise _classify_openai_exception(e) from e

        decoder = StreamDecoder(reassemble_lines=self._reassemble_lines)
        return ChatStream(
            decoder.iter_fragments(_iter_body(response)),
            on_close=response.close,
            label=self.name(),
        )
