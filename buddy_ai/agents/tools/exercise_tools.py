"""
Exercise Tools

createCustomExercise: generate a practice exercise from the student's
request and save it to their account.
"""
from datetime import datetime
from functools import partial
from typing import List
import logging

from buddy_ai.agents.dependencies import BuddyServices
from buddy_ai.agents.errors import BuddyError, MalformedGenerationError
from buddy_ai.agents.turn_context import TurnContext
from buddy_ai.schemas.exercise import FillInTheBlanksExercise, GeneratedExercise
from buddy_ai.services.exercise_generator import generate_custom_exercise

from .base_tool import Capability, ToolParameter

logger = logging.getLogger(__name__)

EXERCISES_COLLECTION = "exercises"
CUSTOM_LESSON_ID = "custom"

LOGIN_REQUIRED_MESSAGE = (
    "I can sketch an exercise idea for you, but to save it to your account "
    "please make sure you are logged in first."
)


def question_preview(exercise: GeneratedExercise) -> str:
    if isinstance(exercise, FillInTheBlanksExercise):
        return " ___ ".join(exercise.question_parts)
    return exercise.question


def exercise_document(exercise: GeneratedExercise, user_id: str) -> dict:
    """Document stored for a custom exercise"""
    doc = exercise.model_dump()
    doc.update({
        "lesson_id": CUSTOM_LESSON_ID,
        "is_custom": True,
        "user_id": user_id,
        "created_at": datetime.utcnow().isoformat(),
    })
    return doc


# ============================================================================
# Create Custom Exercise
# ============================================================================

async def _create_custom_exercise(context: TurnContext, prompt: str, services: BuddyServices) -> str:
    if not context.caller_id:
        return LOGIN_REQUIRED_MESSAGE

    try:
        exercise = await generate_custom_exercise(prompt, llm=services.llm)
    except MalformedGenerationError as e:
        logger.warning(f"[EXERCISE] Malformed exercise for turn {context.request_id}: {e}")
        return (
            "I tried to build that exercise but the result came out incomplete, so I didn't save it. "
            "Could you rephrase the request, for example \"a medium multiple-choice question about Python lists\"?"
        )
    except BuddyError as e:
        logger.error(f"[EXERCISE] Generation failed: {e}")
        return "I couldn't reach the exercise generator just now, so nothing was saved. Please try again in a moment."

    try:
        exercise_id = await services.store.create(
            EXERCISES_COLLECTION,
            exercise_document(exercise, context.caller_id),
        )
    except Exception as e:
        logger.error(f"[EXERCISE] Failed to save exercise: {e}", exc_info=True)
        return (
            f"I created an exercise but couldn't save it to your account.\n\n"
            f"**Question:** {question_preview(exercise)}\n\nPlease try again in a moment."
        )

    logger.info(f"[EXERCISE] Saved {exercise.type} exercise {exercise_id} for {context.caller_id}")
    return (
        "🎉 **Exercise Created Successfully!**\n\n"
        f"**Question:** {question_preview(exercise)}\n\n"
        f"Your new {exercise.type.replace('_', ' ')} exercise has been saved to your account! "
        "You can find it on your **Practice** page.\n\n"
        "Would you like me to create another exercise or help you with something else?"
    )


def create_exercise_tools(services: BuddyServices) -> List[Capability]:
    return [
        Capability(
            name="createCustomExercise",
            description=(
                "Creates a custom practice exercise from the student's request and saves it to their account. "
                "Use when the student asks for a practice problem, quiz question or exercise on a topic."
            ),
            func=partial(_create_custom_exercise, services=services),
            parameters=[
                ToolParameter(
                    name="prompt",
                    type="string",
                    description="The student's request, e.g. 'a medium-difficulty question about javascript arrays'"
                )
            ],
            category="content",
            output_markers=("Exercise Created Successfully",),
        )
    ]
