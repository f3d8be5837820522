from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

from .stream import ChatStream


@dataclass(frozen=True)
class ProviderConfig:
    """
    Everything needed to build one provider. Owned by that provider, never mutated.
    """
    provider: str
    model: str
    api_key: str = field(default="", repr=False)
    base_url: Optional[str] = None
    timeout: Optional[float] = None
    reassemble_lines: bool = False


@runtime_checkable
class Provider(Protocol):
    """
    Interface callers use to talk to any LLM backend.
    Building one from a ProviderConfig is the only provider-specific step.
    """

    def name(self) -> str:
        """Static identifier for logging/selection. Never empty."""
        ...

    def model(self) -> str:
        """The model exactly as configured."""
        ...

    def chat_stream(self, system_message: str, user_message: str) -> ChatStream:
        """
        Issue one streaming request and return the fragment stream.
        Raises ConfigError / NetworkError / ApiError before any fragment is produced;
        failures while reading the body come out of the stream as NetworkError.
        """
        ...
