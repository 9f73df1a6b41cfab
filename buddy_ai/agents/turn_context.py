"""
Turn Context - request-scoped data for one conversation turn

The context is created by the orchestrator, handed explicitly to every
capability bound for the turn, and cleared when the turn finishes.
Nothing here is process-wide, so concurrent turns never see each other's
caller identity or cached data.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

from buddy_ai.schemas.buddy import CachedProgress, CatalogLesson, ConversationTurnRequest

logger = logging.getLogger(__name__)


@dataclass
class TurnContext:
    """Identity and cached client data visible to capabilities for one turn"""
    caller_id: Optional[str] = None
    cached_progress: Optional[CachedProgress] = None
    cached_catalog: Optional[List[CatalogLesson]] = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    tools_invoked: List[str] = field(default_factory=list)
    closed: bool = False

    @classmethod
    def from_request(cls, request: ConversationTurnRequest) -> "TurnContext":
        return cls(
            caller_id=request.user_id,
            cached_progress=request.cached_progress,
            cached_catalog=list(request.cached_catalog) if request.cached_catalog else None,
        )

    def record_tool(self, name: str) -> None:
        """Append a capability name to the invocation trace"""
        self.tools_invoked.append(name)

    def clear(self) -> None:
        """Drop identity and cached data once the turn is over"""
        self.caller_id = None
        self.cached_progress = None
        self.cached_catalog = None
        self.closed = True


@asynccontextmanager
async def turn_scope(request: ConversationTurnRequest) -> AsyncIterator[TurnContext]:
    """
    Install a TurnContext for the duration of a turn.

    The context is cleared on exit, including when the turn raises.
    """
    context = TurnContext.from_request(request)
    logger.debug(f"[CONTEXT] Opened turn {context.request_id} (caller={context.caller_id})")
    try:
        yield context
    finally:
        context.clear()
        logger.debug(f"[CONTEXT] Closed turn {context.request_id}")
