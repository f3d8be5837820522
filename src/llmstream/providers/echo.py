from __future__ import annotations
from typing import Iterator, List, Optional
import time

from llmstream.core.ports import ProviderConfig
from llmstream.core.stream import ChatStream
from llmstream.decoding.sse import StreamDecoder, format_event
from llmstream.providers.registry import ProviderRegistry

_LOREM_50 = (
    "Lorem ipsum dolor sit amet consectetur adipiscing elit sed do eiusmod tempor "
    "incididunt ut labore et dolore magna aliqua Curabitur non nulla sit amet nisl "
    "tempor convallis quis ac lectus Phasellus viverra nulla ut metus varius laoreet "
    "Quisque rutrum Aenean imperdiet Etiam ultricies nisi vel augue Curabitur ullamcorper ultricies nisi"
).split()


@ProviderRegistry.register("echo")
class EchoProvider:
    """
    Offline stub that streams a fixed 50-word lorem ipsum.
    Each word is framed as a wire event and pushed through the real decoder,
    with a small delay to simulate tokens.
    """

    def __init__(self, model: str = "echo-lorem", token_delay: float = 0.125, words: Optional[List[str]] = None):
        self._model = model
        self.token_delay = float(token_delay)
        self.words = list(words) if words is not None else list(_LOREM_50)

    @classmethod
    def create(cls, config: ProviderConfig) -> "EchoProvider":
        return cls(model=config.model, token_delay=0.0)

    def name(self) -> str:
        return "echo"

    def model(self) -> str:
        return self._model

    def _frames(self) -> Iterator[bytes]:
        last_idx = len(self.words) - 1
        for i, w in enumerate(self.words):
            yield b": keep-alive\n\n"
            yield format_event(w + ("" if i == last_idx else " "))
            if self.token_delay > 0:
                time.sleep(self.token_delay)
        yield b"data: [DONE]\n\n"

    def chat_stream(self, system_message: str, user_message: str) -> ChatStream:
        decoder = StreamDecoder()
        return ChatStream(decoder.iter_fragments(self._frames()), label=self.name())
