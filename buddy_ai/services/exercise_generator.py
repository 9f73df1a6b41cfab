"""
Custom Exercise Generator

Single-shot generation of one practice exercise from a free-text
request, validated against the GeneratedExercise union.
"""
import logging
from typing import Any, Dict, Optional

from pydantic import TypeAdapter, ValidationError

from buddy_ai.agents.errors import MalformedGenerationError
from buddy_ai.schemas.exercise import GeneratedExercise, McqExercise
from buddy_ai.services.llm_provider import get_llm

logger = logging.getLogger(__name__)

_exercise_adapter = TypeAdapter(GeneratedExercise)


EXERCISE_PROMPT = """You are an experienced curriculum designer. A student has asked for a custom practice exercise.

Student's request:
"{prompt}"

Steps:
1. Work out the topic, the difficulty they want and the programming language, if any.
2. Pick the format that suits the request best: "mcq" (multiple choice), "true_false", "long_form" or "fill_in_the_blanks".
3. Fill in every field that format needs. Multiple-choice questions have exactly 4 options and the correct_answer must be copied word for word from the options. Fill-in-the-blanks questions split the sentence into question_parts around each blank.
4. Set category to "code", "math" or "general", and difficulty from 1 (easy) to 3 (hard).
5. Add 3-4 short lowercase tags such as "python", "arrays" or "loops".

Return one JSON object for the exercise, not wrapped in any other object or list."""

EXERCISE_SCHEMA: Dict[str, Any] = {
    "type": "mcq | true_false | long_form | fill_in_the_blanks",
    "category": "code | math | general",
    "difficulty": 2,
    "question": "string (all types except fill_in_the_blanks)",
    "options": ["mcq only: 4 strings"],
    "correct_answer": "mcq: one of options; true_false: true or false",
    "question_parts": ["fill_in_the_blanks only"],
    "correct_answers": ["fill_in_the_blanks only: one per blank"],
    "evaluation_criteria": "long_form only",
    "language": "long_form only, optional",
    "explanation": "string",
    "hint": "string",
    "tags": ["string"],
}


def repair_mcq_answer(exercise: GeneratedExercise) -> GeneratedExercise:
    """
    Point an mcq answer that is not one of its options at options[0].

    The substitute may be the wrong answer; the repair keeps the exercise
    usable rather than correct, so it is logged.
    """
    if isinstance(exercise, McqExercise) and exercise.correct_answer not in exercise.options:
        logger.warning(
            f"[EXERCISE] correct_answer {exercise.correct_answer!r} not in options, "
            f"replacing with {exercise.options[0]!r}"
        )
        return exercise.model_copy(update={"correct_answer": exercise.options[0]})
    return exercise


def parse_exercise(data: Dict[str, Any]) -> GeneratedExercise:
    """Validate raw model output. Raises MalformedGenerationError."""
    if not data:
        raise MalformedGenerationError("The model returned no exercise data")
    try:
        exercise = _exercise_adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedGenerationError(f"Generated exercise failed validation: {e.error_count()} errors") from e
    return repair_mcq_answer(exercise)


async def generate_custom_exercise(prompt: str, llm: Optional[Any] = None) -> GeneratedExercise:
    """
    Generate one exercise for a student's request.

    Args:
        prompt: e.g. "a medium python question about list slicing"
        llm: Structured model (defaults to the shared HuggingFaceLLM)

    Raises:
        MalformedGenerationError: Output could not be validated
    """
    llm = llm or get_llm()
    data = await llm.generate_structured(EXERCISE_PROMPT.format(prompt=prompt), EXERCISE_SCHEMA)
    exercise = parse_exercise(data)
    logger.info(f"[EXERCISE] Generated {exercise.type} exercise ({exercise.category}, difficulty {exercise.difficulty})")
    return exercise
