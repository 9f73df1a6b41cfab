"""
Web Tools

searchTheWeb: search Google, read the top pages concurrently and answer
with a cited synthesis, a sources list and a short search report.
"""
from functools import partial
from typing import List, Optional
import asyncio
import logging

from buddy_ai.agents.dependencies import BuddyServices
from buddy_ai.agents.errors import ConfigurationError, UpstreamServiceError
from buddy_ai.agents.turn_context import TurnContext
from buddy_ai.config import settings
from buddy_ai.services.content_crawler import fetch_page_content
from buddy_ai.services.result_synthesizer import (
    render_related_content,
    render_search_report,
    render_sources,
    synthesize_answer,
)
from buddy_ai.services.search_api import SearchResult
from buddy_ai.services.web_index import IndexableDocument, content_quality

from .base_tool import Capability, ToolParameter

logger = logging.getLogger(__name__)

CONFIGURATION_MESSAGE = (
    "🔧 **Web Search Configuration Issue**\n\n"
    "I'm unable to search the web right now because the search service isn't properly configured. "
    "I can still help you with general knowledge and study materials!"
)

RELATED_CONTENT_LIMIT = 3


# ============================================================================
# Page Enrichment
# ============================================================================

async def enrich_with_page_content(
    results: List[SearchResult],
    http_client=None,
    timeout: float = 10.0,
) -> List[SearchResult]:
    """
    Fetch every result page concurrently, each under its own hard timeout.

    A page that fails or times out keeps extracted_text=None.
    """
    async def _fetch(result: SearchResult):
        return await asyncio.wait_for(
            fetch_page_content(result.link, client=http_client, timeout=timeout),
            timeout=timeout,
        )

    outcomes = await asyncio.gather(*[_fetch(r) for r in results], return_exceptions=True)

    for result, outcome in zip(results, outcomes):
        if isinstance(outcome, asyncio.TimeoutError):
            logger.info(f"[WEB-SEARCH] Page timed out after {timeout}s: {result.link}")
        elif isinstance(outcome, BaseException):
            logger.warning(f"[WEB-SEARCH] Page extraction failed for {result.link}: {outcome}")
        elif outcome is not None:
            result.extracted_text = outcome.text
            result.extracted_length = outcome.length
    return results


def indexable_documents(results: List[SearchResult], min_chars: Optional[int] = None) -> List[IndexableDocument]:
    min_chars = settings.INDEX_MIN_CHARS if min_chars is None else min_chars
    return [
        IndexableDocument(
            title=r.title,
            content=r.extracted_text,
            url=r.link,
            domain=r.domain,
            quality=content_quality(len(r.extracted_text)),
        )
        for r in results
        if r.extracted_text and len(r.extracted_text) > min_chars
    ]


# ============================================================================
# Search The Web
# ============================================================================

async def _search_the_web(context: TurnContext, query: str, services: BuddyServices) -> str:
    logger.info(f"[WEB-SEARCH] Query '{query}' (turn {context.request_id})")

    try:
        results = await services.search_client.search(query, services.max_search_results)
    except ConfigurationError:
        return CONFIGURATION_MESSAGE
    except UpstreamServiceError as e:
        logger.error(f"[WEB-SEARCH] Search API failed: {e}")
        return f"🚫 **Web Search Error**\n\nI encountered an issue while searching: {e}"

    if not results:
        return (
            "🔍 **No Search Results Found**\n\n"
            f"I couldn't find any current web results for \"{query}\". "
            "Try rephrasing your question with different keywords."
        )

    await enrich_with_page_content(results, services.http_client, services.page_timeout_seconds)

    if services.web_index is not None:
        services.web_index.schedule_indexing(indexable_documents(results))

    answer = synthesize_answer(query, results)
    sources = render_sources(results)
    related = await _related_content(query, results, services)
    report = render_search_report(query, results)

    extracted = sum(1 for r in results if r.extracted_text)
    logger.info(f"[WEB-SEARCH] Extracted {extracted}/{len(results)} pages")
    return answer + sources + render_related_content(related) + report


async def _related_content(query: str, results: List[SearchResult], services: BuddyServices) -> list:
    if services.web_index is None:
        return []
    try:
        hits = await asyncio.wait_for(
            services.web_index.search_related(query, limit=RELATED_CONTENT_LIMIT),
            timeout=services.related_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning(f"[WEB-SEARCH] Related content skipped after {services.related_timeout_seconds}s")
        return []
    except Exception as e:
        logger.warning(f"[WEB-SEARCH] Related content skipped: {e}")
        return []
    current_links = {r.link for r in results}
    return [hit for hit in hits if hit.get("url") not in current_links][:RELATED_CONTENT_LIMIT]


def create_web_tools(services: BuddyServices) -> List[Capability]:
    return [
        Capability(
            name="searchTheWeb",
            description=(
                "Search the web for current, up-to-date information. Use for rankings, \"top X\" lists, "
                "latest versions, recent developments, current trends, or any question needing real-time data."
            ),
            func=partial(_search_the_web, services=services),
            parameters=[
                ToolParameter(
                    name="query",
                    type="string",
                    description="The student's question or topic to search for"
                )
            ],
            category="web",
            timeout_seconds=90.0,
            output_markers=("### 🔍 Search Report", "Web Search Configuration Issue"),
        )
    ]
