"""
Study Topic Ranking

Picks the most relevant next lessons for a student from their
uncompleted lesson titles.
"""
import logging
from typing import Any, List, Optional

from buddy_ai.schemas.buddy import CachedProgress
from buddy_ai.services.llm_provider import get_llm

logger = logging.getLogger(__name__)

DEFAULT_LEARNING_GOALS = "Achieve mastery in all available subjects and discover new areas of interest."
MAX_CANDIDATE_LESSONS = 10
MAX_SUGGESTIONS = 3

STUDY_TOPICS_PROMPT = """You are a friendly study buddy helping a student decide what to learn next.

Student's progress: {progress}
Student's goals: {goals}

Lessons the student has not finished yet:
{lessons}

Choose up to {limit} lesson titles from the list above that fit the student best right now. Copy the titles exactly."""

STUDY_TOPICS_SCHEMA = {"suggested_topics": ["lesson title"]}


def build_progress_summary(progress: CachedProgress) -> str:
    """e.g. 'Completed lessons: 4. Mastery by subject: python: 80%, math: 35%.'"""
    mastery = ", ".join(
        f"{subject}: {round(value)}%" for subject, value in progress.subjects_mastery.items()
    )
    return f"Completed lessons: {len(progress.completed_lesson_ids)}. Mastery by subject: {mastery or 'None'}."


async def rank_study_topics(
    progress_summary: str,
    available_lessons: List[str],
    learning_goals: str = DEFAULT_LEARNING_GOALS,
    llm: Optional[Any] = None,
) -> List[str]:
    """
    Ask the model to choose the best next lessons.

    Only the first 10 candidates are offered. Returns at most 3 titles,
    dropping anything the model invented that is not a candidate.
    """
    candidates = available_lessons[:MAX_CANDIDATE_LESSONS]
    if not candidates:
        return []

    llm = llm or get_llm()
    prompt = STUDY_TOPICS_PROMPT.format(
        progress=progress_summary,
        goals=learning_goals,
        lessons="\n".join(f"- {title}" for title in candidates),
        limit=MAX_SUGGESTIONS,
    )
    data = await llm.generate_structured(prompt, STUDY_TOPICS_SCHEMA)

    suggested = data.get("suggested_topics") or data.get("suggestedTopics") or []
    allowed = set(candidates)
    # Models sometimes repeat a title; keep first mentions in order
    picked = list(dict.fromkeys(t for t in suggested if isinstance(t, str) and t in allowed))
    if not picked:
        logger.info("[TOPICS] Model picked no known lessons, using catalog order")
        picked = list(dict.fromkeys(candidates))
    return picked[:MAX_SUGGESTIONS]
