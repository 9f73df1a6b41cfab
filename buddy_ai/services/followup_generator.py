"""
Follow-Up Suggestions Generator

Proposes short prompts the student could send next, based on the last
exchange. One bounded model call; any failure yields no suggestions.
"""
import asyncio
import logging
import re
from typing import Any, List, Optional

from buddy_ai.config import settings
from buddy_ai.services.llm_provider import get_llm

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 4


# ============================================================================
# Follow-Up Generation
# ============================================================================

FOLLOWUP_PROMPT = """You are helping a student keep learning after a chat with their study buddy.

Student asked: {question}
Study buddy answered: {answer}

Suggest 3 or 4 short follow-up messages the student might send next. Write them in the student's voice, keep each under 12 words, and make each one move the topic forward (go deeper, practise, or connect to a related idea).

Respond as JSON with a single key "suggestions" holding a list of strings."""

FOLLOWUP_SCHEMA = {"suggestions": ["string"]}


async def generate_follow_up_suggestions(
    last_user_message: str,
    ai_response: str,
    llm: Optional[Any] = None,
    timeout: Optional[float] = None,
) -> List[str]:
    """
    Generate follow-up prompts for the last exchange.

    Args:
        last_user_message: What the student sent
        ai_response: The reply they received
        llm: Structured model (defaults to the shared HuggingFaceLLM)
        timeout: Seconds to wait for the model

    Returns:
        Up to 4 suggestions, or [] on timeout, error or unusable output
    """
    timeout = timeout or settings.FOLLOWUP_TIMEOUT_SECONDS
    prompt = FOLLOWUP_PROMPT.format(
        question=last_user_message[:500],
        answer=ai_response[:1500],
    )

    try:
        llm = llm or get_llm()
        data = await asyncio.wait_for(llm.generate_structured(prompt, FOLLOWUP_SCHEMA), timeout=timeout)
    except asyncio.TimeoutError:
        logger.debug("[FOLLOWUP] Model timeout, no suggestions")
        return []
    except Exception as e:
        logger.debug(f"[FOLLOWUP] Error: {e}, no suggestions")
        return []

    suggestions = _clean_suggestions(data.get("suggestions") if isinstance(data, dict) else None)
    logger.debug(f"[FOLLOWUP] Generated {len(suggestions)} suggestions")
    return suggestions


def _clean_suggestions(raw: Any) -> List[str]:
    """Keep distinct, non-empty strings"""
    if not isinstance(raw, list):
        return []

    suggestions = []
    seen = set()
    for item in raw:
        if not isinstance(item, str):
            continue
        text = re.sub(r"^\s*(?:[-*]|\d+[.)])\s*", "", item).strip()
        if len(text) < 3 or text.lower() in seen:
            continue
        seen.add(text.lower())
        suggestions.append(text)

    return suggestions[:MAX_SUGGESTIONS]
