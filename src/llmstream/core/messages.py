from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple

DEFAULT_MAX_TOKENS = 4096


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    role: Role
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class ChatRequest:
    """
    One outbound chat-completion request. Built fresh per call, never shared.
    """
    model: str
    messages: Tuple[Message, ...] = field(default_factory=tuple)
    stream: bool = True
    max_tokens: int = DEFAULT_MAX_TOKENS

    @classmethod
    def for_turn(cls, model: str, system_message: str, user_message: str) -> "ChatRequest":
        return cls(
            model=model,
            messages=(
                Message(Role.SYSTEM, system_message),
                Message(Role.USER, user_message),
            ),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [m.to_dict() for m in self.messages],
            "stream": self.stream,
            "max_tokens": self.max_tokens,
        }
