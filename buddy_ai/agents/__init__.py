"""
Buddy AI Agents Package

- orchestrator: BuddyOrchestrator, one conversation turn as a LangGraph workflow
- tools: the six capabilities the chat model can call
- turn_context: request-scoped caller data
- errors: exception hierarchy and error classification

The orchestrator is imported from its module directly
(`from buddy_ai.agents.orchestrator import get_orchestrator`); the
services it wires import `errors` from this package.
"""
from .errors import (
    BuddyError,
    ConfigurationError,
    MalformedGenerationError,
    TurnValidationError,
    UpstreamServiceError,
    classify_error,
    describe_error,
)
from .turn_context import TurnContext, turn_scope

__all__ = [
    "BuddyError",
    "ConfigurationError",
    "MalformedGenerationError",
    "TurnValidationError",
    "UpstreamServiceError",
    "classify_error",
    "describe_error",
    "TurnContext",
    "turn_scope",
]
