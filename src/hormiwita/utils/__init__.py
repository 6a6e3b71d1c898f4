"""Utility modules."""
from .logger import get_logger, set_session_context, configure_logging
from .exceptions import (
    HormiwitaError,
    ConfigError,
    NetworkError,
    LLMError,
    ValidationError,
    StatementNotCategorizableError,
    RetryableError,
    RetryableNetworkError,
    RetryableLLMError
)
from .retry import retry_with_backoff

__all__ = [
    "get_logger",
    "set_session_context",
    "configure_logging",
    "HormiwitaError",
    "ConfigError",
    "NetworkError",
    "LLMError",
    "ValidationError",
    "StatementNotCategorizableError",
    "RetryableError",
    "RetryableNetworkError",
    "RetryableLLMError",
    "retry_with_backoff"
]
