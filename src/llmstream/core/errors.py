from __future__ import annotations
from typing import Optional


class LLMError(Exception):
    """Base class for provider-level failures."""


class ConfigError(LLMError, ValueError):
    """
    Non-retryable: local setup is wrong (client could not be built, unknown
    provider, missing API key, unusable URL). The fix is change config, not retry.
    """


class NetworkError(LLMError):
    """
    Transport failure: connection refused/reset, timeout, I/O error while reading
    the body. Raised either before the first byte or mid-stream from the iterator.
    Callers decide whether a fresh call is worth it.
    """


class ApiError(LLMError):
    """
    The backend answered with a non-success status.
    'body' holds the diagnostic text, or a placeholder when it could not be read.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
