"""
Pydantic Schemas for a Buddy AI conversation turn
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Set, Literal
from enum import Enum


# ============================================================================
# Request Schemas
# ============================================================================

class Persona(str, Enum):
    """Known personas. Anything else falls back to BUDDY."""
    BUDDY = "buddy"
    MENTOR = "mentor"


class HistoryMessage(BaseModel):
    """A message in conversation history."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "model"]
    content: str


class CachedProgress(BaseModel):
    """Progress summary the client already holds for the user."""
    model_config = ConfigDict(frozen=True)

    completed_lesson_ids: Set[str] = Field(default_factory=set)
    subjects_mastery: Dict[str, float] = Field(
        default_factory=dict,
        description="Mastery percentage by subject"
    )


class CatalogLesson(BaseModel):
    """One entry in the cached lesson catalog."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    subject: str = "general"


class ConversationTurnRequest(BaseModel):
    """Input for one conversation turn. Immutable for the turn."""
    model_config = ConfigDict(frozen=True)

    user_message: str = ""
    user_id: Optional[str] = None
    history: List[HistoryMessage] = Field(default_factory=list)
    persona: Optional[str] = Field(
        None,
        description="Persona name; unknown or missing values use the default persona"
    )
    lesson_context: Optional[str] = None
    cached_progress: Optional[CachedProgress] = None
    cached_catalog: Optional[List[CatalogLesson]] = None

    @field_validator("lesson_context")
    @classmethod
    def blank_lesson_context_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


# ============================================================================
# Response Schemas
# ============================================================================

class ErrorCategory(str, Enum):
    """Classification of a failed turn."""
    API = "api"
    TIMEOUT = "timeout"
    CONTEXT_INSUFFICIENT = "context_insufficient"
    UNKNOWN = "unknown"


class ConversationTurnResult(BaseModel):
    """Output of one conversation turn."""

    response_text: str
    follow_up_suggestions: List[str] = Field(default_factory=list, max_length=3)
    extracted_topics: Set[str] = Field(default_factory=set)
    tools_invoked: List[str] = Field(default_factory=list)
    is_error: bool = False
    error_category: Optional[ErrorCategory] = None
    suggested_actions: List[str] = Field(default_factory=list)
