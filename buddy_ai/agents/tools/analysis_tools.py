"""
Analysis Tools

analyzeCodeComplexity: estimate the time and space complexity of a
snippet without running it.
"""
from functools import partial
from typing import List
import logging

from buddy_ai.agents.dependencies import BuddyServices
from buddy_ai.agents.turn_context import TurnContext
from buddy_ai.services.code_analysis import format_complexity_report, simulate_code_execution

from .base_tool import Capability, ToolParameter

logger = logging.getLogger(__name__)


async def _analyze_code_complexity(context: TurnContext, code: str, language: str, services: BuddyServices) -> str:
    if not code.strip():
        return "There's no code to analyze yet. Paste the snippet you'd like me to look at."

    try:
        simulation = await simulate_code_execution(code, language, llm=services.llm)
    except Exception as e:
        logger.error(f"[ANALYSIS] Code analysis failed: {e}", exc_info=True)
        return (
            f"I couldn't finish an automated analysis of your {language} code just now. "
            "You can still estimate it by hand:\n"
            "- Count nested loops over the input for time complexity\n"
            "- Look at the data structures you allocate for space complexity\n"
            "- Check how deep any recursion goes\n\n"
            "Want me to walk through it with you step by step?"
        )

    return format_complexity_report(simulation)


def create_analysis_tools(services: BuddyServices) -> List[Capability]:
    return [
        Capability(
            name="analyzeCodeComplexity",
            description=(
                "Analyzes a code snippet for its time and space complexity (Big O) and gives a short "
                "explanation. Use when the student's code could be discussed in terms of performance."
            ),
            func=partial(_analyze_code_complexity, services=services),
            parameters=[
                ToolParameter("code", "string", "The code snippet to analyze"),
                ToolParameter("language", "string", "Programming language, e.g. 'python' or 'javascript'"),
            ],
            category="analysis",
            output_markers=("Time Complexity: **",),
        )
    ]
