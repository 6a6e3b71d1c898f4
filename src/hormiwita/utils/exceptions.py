"""
Errors raised by Hormiwita.

Oracle adapters (analysis, categorization, roadmap) catch these and degrade to
local results; the onboarding session turns them into chat messages. Only the
client layer raises the retryable variants, which retry_with_backoff consumes.
"""


class HormiwitaError(Exception):
    """Base exception for Hormiwita."""


class ConfigError(HormiwitaError):
    """Settings file missing or invalid, or no Gemini API key."""


class NetworkError(HormiwitaError):
    """The Gemini endpoint could not be reached."""


class LLMError(HormiwitaError):
    """An assistant oracle call was rejected or its reply was unusable."""


class ValidationError(HormiwitaError):
    """Statement, profile or roadmap data that fails its invariants."""


class StatementNotCategorizableError(ValidationError):
    """A statement summary whose status does not allow categorization."""

    def __init__(self, status):
        self.status = status
        super().__init__(f"Statement with status '{status.value}' cannot be categorized")


class RetryableError(HormiwitaError):
    """Transient failure; the call may succeed on a later attempt."""


class RetryableNetworkError(RetryableError, NetworkError):
    """Connection reset, timeout or transport failure talking to Gemini."""


class RetryableLLMError(RetryableError, LLMError):
    """Gemini server error or rate limit."""
