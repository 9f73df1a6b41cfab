from .buddy import (
    Persona,
    HistoryMessage,
    CachedProgress,
    CatalogLesson,
    ConversationTurnRequest,
    ConversationTurnResult,
    ErrorCategory,
)
from .exercise import (
    GeneratedExercise,
    McqExercise,
    TrueFalseExercise,
    LongFormExercise,
    FillInTheBlanksExercise,
    CodeSimulation,
)

__all__ = [
    "Persona",
    "HistoryMessage",
    "CachedProgress",
    "CatalogLesson",
    "ConversationTurnRequest",
    "ConversationTurnResult",
    "ErrorCategory",
    "GeneratedExercise",
    "McqExercise",
    "TrueFalseExercise",
    "LongFormExercise",
    "FillInTheBlanksExercise",
    "CodeSimulation",
]
