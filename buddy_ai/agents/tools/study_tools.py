"""
Study Tools

suggestStudyTopics: recommend the next lessons from the student's
cached progress and lesson catalog.
"""
from functools import partial
from typing import List
import logging

from buddy_ai.agents.dependencies import BuddyServices
from buddy_ai.agents.turn_context import TurnContext
from buddy_ai.services.study_topics import build_progress_summary, rank_study_topics

from .base_tool import Capability

logger = logging.getLogger(__name__)

LOGIN_HINT = (
    "I can suggest some general study topics, but for recommendations based on your progress "
    "please make sure you are logged in."
)

NO_PROGRESS_FALLBACK = (
    "I don't have access to your progress data right now. Here are some popular topics you might enjoy: "
    "Python programming, JavaScript fundamentals, Data structures and algorithms, "
    "Web development basics, or Mathematics fundamentals."
)

ALL_COMPLETED_MESSAGE = (
    "It looks like you've completed all available lessons! Great job! I can't suggest any new ones "
    "right now, but feel free to ask me to create a custom practice exercise for you on any topic."
)

RANKING_FAILED_MESSAGE = (
    "Sorry, I ran into a problem picking topics for you. In the meantime, try exploring Python "
    "programming, JavaScript fundamentals, or a mathematics concept that interests you."
)


async def _suggest_study_topics(context: TurnContext, services: BuddyServices) -> str:
    if not context.caller_id:
        return LOGIN_HINT

    progress = context.cached_progress
    catalog = context.cached_catalog
    if progress is None or not catalog:
        return NO_PROGRESS_FALLBACK

    uncompleted = [
        lesson.title for lesson in catalog
        if lesson.id not in progress.completed_lesson_ids
    ]
    if not uncompleted:
        return ALL_COMPLETED_MESSAGE

    try:
        topics = await rank_study_topics(build_progress_summary(progress), uncompleted, llm=services.llm)
    except Exception as e:
        logger.error(f"[TOPICS] Ranking failed: {e}", exc_info=True)
        return RANKING_FAILED_MESSAGE

    numbered = "\n".join(f"{i}. {topic}" for i, topic in enumerate(topics, 1))
    return f"Based on your progress, here are some personalized study suggestions:\n\n{numbered}"


def create_study_tools(services: BuddyServices) -> List[Capability]:
    return [
        Capability(
            name="suggestStudyTopics",
            description=(
                "Suggests what the student should study next based on their progress. Use when they ask "
                "\"what should I learn next?\", want a topic suggestion or need guidance."
            ),
            func=partial(_suggest_study_topics, services=services),
            parameters=[],
            category="study",
            output_markers=("personalized study suggestions", "completed all available lessons"),
        )
    ]
