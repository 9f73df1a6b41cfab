"""
Pydantic Schemas for generated exercises and code analysis
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Literal, Union, Annotated


QuestionCategory = Literal["code", "math", "general"]


class _ExerciseBase(BaseModel):
    category: QuestionCategory = "general"
    difficulty: int = Field(2, ge=1, le=3)
    hint: str = ""
    tags: List[str] = Field(default_factory=list)


class McqExercise(_ExerciseBase):
    """Multiple-choice question."""
    type: Literal["mcq"] = "mcq"
    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=2)
    correct_answer: str
    explanation: str = ""


class TrueFalseExercise(_ExerciseBase):
    """True/false statement."""
    type: Literal["true_false"] = "true_false"
    question: str = Field(..., min_length=1)
    correct_answer: bool
    explanation: str = ""


class LongFormExercise(_ExerciseBase):
    """Open-ended question graded against criteria."""
    type: Literal["long_form"] = "long_form"
    question: str = Field(..., min_length=1)
    evaluation_criteria: str = Field(..., min_length=1)
    language: Optional[str] = None


class FillInTheBlanksExercise(_ExerciseBase):
    """Blanks go between consecutive question_parts."""
    type: Literal["fill_in_the_blanks"] = "fill_in_the_blanks"
    question_parts: List[str] = Field(..., min_length=2)
    correct_answers: List[str] = Field(..., min_length=1)
    explanation: str = ""


GeneratedExercise = Annotated[
    Union[McqExercise, TrueFalseExercise, LongFormExercise, FillInTheBlanksExercise],
    Field(discriminator="type"),
]


# ============================================================================
# Code Analysis
# ============================================================================

class CodeSuggestion(BaseModel):
    line_number: int
    suggestion: str
    code: str = ""


class CodeAnalysis(BaseModel):
    summary: str
    suggestions: List[CodeSuggestion] = Field(default_factory=list)


class CodeComplexity(BaseModel):
    time: str = "N/A"
    space: str = "N/A"


class CodeSimulation(BaseModel):
    """Predicted execution and analysis of a code snippet."""
    stdout: str = ""
    stderr: str = ""
    analysis: CodeAnalysis
    complexity: CodeComplexity
