"""
Shared fixtures for Buddy AI tests

Fakes stand in for every network-facing service: the Gemini chat model,
the Hugging Face structured model, Google search and the document store.
"""
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

import pytest
from unittest.mock import AsyncMock, MagicMock

# Add path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from buddy_ai.agents.dependencies import BuddyServices
from buddy_ai.agents.turn_context import TurnContext
from buddy_ai.schemas.buddy import CachedProgress, CatalogLesson
from buddy_ai.services.document_store import InMemoryDocumentStore
from buddy_ai.services.llm_provider import ChatModel, ModelResponse, ToolInvocation
from buddy_ai.services.search_api import SearchResult


# ============================================================================
# Fake Models
# ============================================================================

class FakeChatModel(ChatModel):
    """
    Scripted chat model.

    Calls each (name, args) in tool_calls through the bound tools, then
    answers with `text`, or with the joined tool outputs when text is None.
    """

    def __init__(
        self,
        text: Optional[str] = "Here's a clear explanation.",
        tool_calls: Optional[List[Tuple[str, Dict[str, Any]]]] = None,
        report_trace: bool = True,
        error: Optional[BaseException] = None,
    ):
        self.text = text
        self.tool_calls = tool_calls or []
        self.report_trace = report_trace
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, system_prompt, user_prompt, tools=(), safety_settings=None, history=None):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "tools": list(tools),
            "safety_settings": safety_settings,
            "history": history,
        })
        if self.error is not None:
            raise self.error

        by_name = {tool.name: tool for tool in tools}
        invocations = []
        for name, args in self.tool_calls:
            output = await by_name[name].invoke(**args)
            invocations.append(ToolInvocation(name=name, arguments=args, output=output))

        text = self.text if self.text is not None else "\n".join(i.output for i in invocations)
        return ModelResponse(text=text, tool_invocations=invocations if self.report_trace else None)


class FakeStructuredLLM:
    """Structured model returning a fixed dict and recording prompts"""

    def __init__(self, response: Optional[Dict[str, Any]] = None, error: Optional[BaseException] = None):
        self.response = response if response is not None else {}
        self.error = error
        self.prompts: List[str] = []

    async def generate_structured(self, prompt: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_llm():
    return FakeStructuredLLM()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def search_client():
    client = MagicMock()
    client.is_configured = True
    client.search = AsyncMock(return_value=[])
    return client


@pytest.fixture
def services(fake_llm, store, search_client):
    return BuddyServices(
        llm=fake_llm,
        store=store,
        search_client=search_client,
        max_search_results=5,
        page_timeout_seconds=0.5,
    )


@pytest.fixture
def catalog():
    return [
        CatalogLesson(id="l1", title="Variables and Types", subject="python"),
        CatalogLesson(id="l2", title="Loops", subject="python"),
        CatalogLesson(id="l3", title="Recursion", subject="python"),
        CatalogLesson(id="l4", title="Graphs", subject="algorithms"),
        CatalogLesson(id="l5", title="Trees", subject="algorithms"),
    ]


@pytest.fixture
def progress():
    return CachedProgress(
        completed_lesson_ids={"l1", "l2"},
        subjects_mastery={"python": 80.0, "algorithms": 25.0},
    )


@pytest.fixture
def context(progress, catalog):
    return TurnContext(caller_id="student-1", cached_progress=progress, cached_catalog=catalog)


def make_result(rank: int, title: str = None, snippet: str = "Short blurb", domain: str = "example.com") -> SearchResult:
    return SearchResult(
        title=title or f"Result {rank}",
        link=f"https://{domain}/page-{rank}",
        snippet=snippet,
        domain=domain,
        rank=rank,
    )
