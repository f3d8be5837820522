# src/llmstream/decoding/sse.py
"""
Server-sent-event decoder for OpenAI-style chat-completion streams.

Wire shape, one event per line followed by a blank line:

    data: {"object": "chat.completion.chunk", "choices": [{"delta": {"content": "He"}}]}

Lines starting with ':' are keep-alives/comments. Anything that is not a
content delta (other event kinds, '[DONE]', broken JSON) is dropped silently:
the stream must survive protocol noise, so none of it is an error.
"""
from __future__ import annotations

import codecs
import json
import logging
from typing import Iterable, Iterator, List, Optional

from pydantic import BaseModel, ValidationError

DATA_PREFIX = "data: "
COMMENT_PREFIX = ":"
CONTENT_CHUNK_OBJECT = "chat.completion.chunk"
# longest partial line held back while reassembling
MAX_PENDING_CHARS = 1 << 20

LOGGER = logging.getLogger(__name__)


class Delta(BaseModel):
    content: Optional[str] = None


class Choice(BaseModel):
    delta: Optional[Delta] = None


class StreamEvent(BaseModel):
    object: str
    choices: List[Choice]


def decode_line(line: str) -> Optional[str]:
    """
    Return the content fragment carried by one wire line, or None.
    The fragment may be "" (filtered out later by ChatStream).
    """
    if not line or line.startswith(COMMENT_PREFIX):
        return None
    if not line.startswith(DATA_PREFIX):
        return None

    data = line[len(DATA_PREFIX):]
    try:
        event = StreamEvent.model_validate_json(data)
    except ValidationError:
        LOGGER.debug("Dropped unparsable event | length=%d", len(data))
        return None

    if event.object != CONTENT_CHUNK_OBJECT:
        return None
    if not event.choices:
        return None
    delta = event.choices[0].delta
    if delta is None or delta.content is None:
        return None
    return delta.content


def split_lines(text: str) -> List[str]:
    # '\n' separated, optional '\r' before it; str.splitlines() would also break
    # on U+2028 and friends, which may legitimately appear inside JSON strings.
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [ln[:-1] if ln.endswith("\r") else ln for ln in lines]


def format_event(content: str, *, object_kind: str = CONTENT_CHUNK_OBJECT) -> bytes:
    """Frame one content delta the way the backend does."""
    payload = {"object": object_kind, "choices": [{"delta": {"content": content}}]}
    return f"{DATA_PREFIX}{json.dumps(payload)}\n\n".encode("utf-8")


class StreamDecoder:
    """
    Turns raw body chunks into text, one output unit per chunk.

    By default every chunk is decoded on its own: stateless, so two decoders fed
    the same chunks produce the same output. This is safe when the transport
    delivers whole lines per chunk.

    With reassemble_lines=True the decoder holds back the trailing partial line
    (and any split UTF-8 sequence) until the next chunk completes it; call
    flush() at end of stream for whatever is left. A partial line longer than
    max_pending_chars is dropped, along with the rest of it up to the next newline.
    """

    def __init__(self, *, reassemble_lines: bool = False, max_pending_chars: int = MAX_PENDING_CHARS):
        self.reassemble_lines = reassemble_lines
        self.max_pending_chars = max_pending_chars
        self._pending = ""
        self._discarding = False
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def decode(self, chunk: bytes) -> str:
        if not self.reassemble_lines:
            text = chunk.decode("utf-8", errors="replace")
            return self._decode_lines(split_lines(text))

        text = self._pending + self._utf8.decode(chunk)
        if self._discarding:
            cut = text.find("\n")
            if cut < 0:
                return ""
            self._discarding = False
            text = text[cut + 1:]
        *complete, self._pending = text.split("\n")
        if len(self._pending) > self.max_pending_chars:
            LOGGER.warning("Dropped oversized partial line | chars=%d", len(self._pending))
            self._pending = ""
            self._discarding = True
        return self._decode_lines(ln[:-1] if ln.endswith("\r") else ln for ln in complete)

    def flush(self) -> str:
        if not self.reassemble_lines:
            return ""
        text = self._pending + self._utf8.decode(b"", final=True)
        self._pending = ""
        if self._discarding:
            self._discarding = False
            return ""
        return self._decode_lines(split_lines(text))

    def iter_fragments(self, chunks: Iterable[bytes]) -> Iterator[str]:
        """Lazily decode a chunk sequence; may yield "" for chunks with no content."""
        for chunk in chunks:
            yield self.decode(chunk)
        tail = self.flush()
        if tail:
            yield tail

    @staticmethod
    def _decode_lines(lines: Iterable[str]) -> str:
        parts: List[str] = []
        for line in lines:
            piece = decode_line(line)
            if piece is not None:
                parts.append(piece)
        return "".join(parts)
