"""
Error taxonomy for Buddy AI turns

Capabilities recover from upstream failures locally and return a string.
Anything that escapes to the orchestrator is classified here and turned
into an apology plus suggested next actions.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import List

from buddy_ai.schemas.buddy import ErrorCategory

logger = logging.getLogger(__name__)


class BuddyError(Exception):
    """Base error for the turn engine"""
    pass


class ConfigurationError(BuddyError):
    """A required credential or endpoint is not configured. Not retryable."""
    pass


class UpstreamServiceError(BuddyError):
    """Model, search, vision or storage service failed or is unreachable"""

    def __init__(self, service: str, message: str, status_code: int = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service} error: {message}")


class MalformedGenerationError(BuddyError):
    """Model output did not match the expected schema and could not be repaired"""
    pass


class TurnValidationError(BuddyError):
    """The turn request itself is unusable (e.g. empty message)"""
    pass


# ============================================================================
# Classification
# ============================================================================

API_MARKERS = (
    "api key", "api_key", "quota", "rate limit", "permission denied",
    "unauthorized", "forbidden", "service unavailable", "unavailable",
    "401", "403", "429", "500", "502", "503", "api",
)

TIMEOUT_MARKERS = ("timeout", "timed out", "deadline", "took too long")

CONTEXT_MARKERS = (
    "context", "token limit", "too long", "maximum length",
    "empty", "insufficient",
)


def classify_error(error: BaseException) -> ErrorCategory:
    """
    Classify an exception into an ErrorCategory.

    Exception type wins over message content, except that an upstream
    failure whose message reports a timeout is a timeout. Message matching
    is checked in the order timeout, context, api.
    """
    message = str(error).lower()
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorCategory.TIMEOUT
    if isinstance(error, TurnValidationError):
        return ErrorCategory.CONTEXT_INSUFFICIENT
    if isinstance(error, UpstreamServiceError) and any(marker in message for marker in TIMEOUT_MARKERS):
        return ErrorCategory.TIMEOUT
    if isinstance(error, (UpstreamServiceError, ConfigurationError)):
        return ErrorCategory.API

    if any(marker in message for marker in TIMEOUT_MARKERS):
        return ErrorCategory.TIMEOUT
    if any(marker in message for marker in CONTEXT_MARKERS):
        return ErrorCategory.CONTEXT_INSUFFICIENT
    if any(marker in message for marker in API_MARKERS):
        return ErrorCategory.API
    return ErrorCategory.UNKNOWN


@dataclass(frozen=True)
class ErrorResponse:
    """User-facing apology and next steps for one category"""
    message: str
    suggested_actions: List[str]


ERROR_RESPONSES = {
    ErrorCategory.API: ErrorResponse(
        message=(
            "I'm having trouble reaching one of my AI services right now. "
            "This is on my side, not yours."
        ),
        suggested_actions=[
            "Try sending your message again in a minute",
            "Ask a simpler question that doesn't need web search or images",
        ],
    ),
    ErrorCategory.TIMEOUT: ErrorResponse(
        message="That took longer than expected and I had to stop before finishing.",
        suggested_actions=[
            "Try again; busy services usually recover quickly",
            "Break your question into smaller parts",
            "Ask without requesting a web search",
        ],
    ),
    ErrorCategory.CONTEXT_INSUFFICIENT: ErrorResponse(
        message="I don't have enough to work with to answer that.",
        suggested_actions=[
            "Type your question or paste the content you want help with",
            "Add a bit more detail about what you're studying",
            "Start a new chat if the conversation has grown very long",
        ],
    ),
    ErrorCategory.UNKNOWN: ErrorResponse(
        message="I'm sorry, something unexpected went wrong while preparing my answer.",
        suggested_actions=[
            "Try rephrasing your message",
            "Start a new chat and ask again",
        ],
    ),
}


def describe_error(category: ErrorCategory) -> ErrorResponse:
    """Get the apology and suggested actions for a category"""
    return ERROR_RESPONSES.get(category, ERROR_RESPONSES[ErrorCategory.UNKNOWN])
