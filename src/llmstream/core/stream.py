from __future__ import annotations
import logging
from time import perf_counter
from typing import Callable, Iterable, Iterator, Optional

LOGGER = logging.getLogger(__name__)


class _Release:
    """Runs the connection close callback exactly once."""

    def __init__(self, on_close: Optional[Callable[[], None]], label: str):
        self.on_close = on_close
        self.label = label
        self.done = False
        self.count = 0
        self.started = perf_counter()

    def __call__(self) -> None:
        if self.done:
            return
        self.done = True
        try:
            if self.on_close is not None:
                self.on_close()
        finally:
            LOGGER.info(
                "Stream closed | source=%s duration=%.2fs fragments=%d",
                self.label,
                perf_counter() - self.started,
                self.count,
            )


def _pump(fragments: Iterable[str], release: _Release) -> Iterator[str]:
    # Holds the release object, never the ChatStream, so dropping the stream
    # frees the generator by refcount and its 'finally' closes the connection.
    try:
        for piece in fragments:
            if piece:
                release.count += 1
                yield piece
    finally:
        release()


class ChatStream:
    """
    Lazy, single-consumer sequence of text fragments backed by one open response.

    - empty fragments are skipped; errors raised by the source (NetworkError)
      propagate from next() and are never swallowed
    - the connection is released on exhaustion, on error, on close(), on
      context-manager exit, and when the stream is dropped unfinished
    - not restartable: once finished it stays finished
    """

    def __init__(
        self,
        fragments: Iterable[str],
        *,
        on_close: Optional[Callable[[], None]] = None,
        label: str = "stream",
    ):
        self._release = _Release(on_close, label)
        self._gen = _pump(fragments, self._release)

    def __iter__(self) -> "ChatStream":
        return self

    def __next__(self) -> str:
        return next(self._gen)

    @property
    def closed(self) -> bool:
        return self._release.done

    def close(self) -> None:
        self._gen.close()
        # close() on a never-started generator skips its 'finally'
        self._release()

    def __enter__(self) -> "ChatStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __del__(self) -> None:
        release = getattr(self, "_release", None)
        if release is not None and not release.done:
            self.close()
