"""
Tests for the external service clients

Test Scenarios:
1. GoogleSearchClient - ranking, configuration and HTTP errors
2. VisionClient - request shape and response parsing
3. InMemoryDocumentStore - get/query/create/update
4. WebContentIndex - background indexing and related lookups
5. GeminiChatModel - manual function calling loop and trace
"""
import asyncio
import json
import time
from types import SimpleNamespace

import httpx
import pytest
from google.genai import types
from unittest.mock import AsyncMock, MagicMock, patch

from buddy_ai.agents.errors import ConfigurationError, UpstreamServiceError
from buddy_ai.agents.tools.base_tool import Capability, ToolParameter, ToolRegistry
from buddy_ai.agents.turn_context import TurnContext
from buddy_ai.services.image_service import VISION_API_URL, VisionClient
from buddy_ai.services.llm_provider import GeminiChatModel, to_gemini_schema
from buddy_ai.services.search_api import GoogleSearchClient
from buddy_ai.services.web_index import IndexableDocument, WebContentIndex


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ============================================================================
# Search API Tests
# ============================================================================

class TestGoogleSearchClient:
    """Google Custom Search."""

    @pytest.mark.asyncio
    async def test_results_ranked(self):
        captured = {}

        def handler(request):
            captured["params"] = dict(request.url.params)
            return httpx.Response(200, json={"items": [
                {"title": "Sorting", "link": "https://en.wikipedia.org/wiki/Sorting", "snippet": "s1",
                 "displayLink": "en.wikipedia.org"},
                {"title": "", "link": "https://github.com/sorts", "snippet": "s2"},
            ]})

        async with mock_client(handler) as http:
            client = GoogleSearchClient(api_key="key", engine_id="cx", http_client=http)
            results = await client.search("best sorting algorithms", num_results=5)

        assert [r.rank for r in results] == [1, 2]
        assert results[0].domain == "en.wikipedia.org"
        assert results[1].domain == "github.com"
        assert results[1].title == "https://github.com/sorts"
        assert captured["params"]["q"] == "best sorting algorithms"
        assert captured["params"]["num"] == "5"

    @pytest.mark.asyncio
    async def test_not_configured(self):
        client = GoogleSearchClient(api_key="", engine_id="")
        assert client.is_configured is False
        with pytest.raises(ConfigurationError):
            await client.search("anything")

    @pytest.mark.asyncio
    async def test_http_error(self):
        async with mock_client(lambda request: httpx.Response(429, text="rate limited")) as http:
            client = GoogleSearchClient(api_key="key", engine_id="cx", http_client=http)
            with pytest.raises(UpstreamServiceError) as excinfo:
                await client.search("anything")

        assert excinfo.value.status_code == 429

    @pytest.mark.asyncio
    async def test_no_items(self):
        async with mock_client(lambda request: httpx.Response(200, json={})) as http:
            client = GoogleSearchClient(api_key="key", engine_id="cx", http_client=http)
            assert await client.search("zxqv") == []


# ============================================================================
# Vision Tests
# ============================================================================

class TestVisionClient:
    """Google Cloud Vision annotate."""

    @pytest.mark.asyncio
    async def test_data_uri_annotated(self):
        captured = {}

        def handler(request):
            captured["host"] = request.url.host
            captured["key"] = request.url.params.get("key")
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"responses": [{
                "fullTextAnnotation": {"text": "x = 1", "pages": [{"confidence": 0.9}]},
                "labelAnnotations": [{"description": "Font"}],
            }]})

        async with mock_client(handler) as http:
            client = VisionClient(api_key="vision-key", http_client=http)
            analysis = await client.analyze("data:image/png;base64,AAAA", "code")

        assert captured["host"] == httpx.URL(VISION_API_URL).host
        assert captured["key"] == "vision-key"
        request = captured["body"]["requests"][0]
        assert request["image"]["content"] == "AAAA"
        assert request["features"][0]["type"] == "DOCUMENT_TEXT_DETECTION"
        assert analysis.extracted_text == "x = 1"
        assert analysis.labels == ["Font"]
        assert analysis.confidence == 0.9

    @pytest.mark.asyncio
    async def test_api_error_raised(self):
        async with mock_client(lambda request: httpx.Response(403, json={})) as http:
            client = VisionClient(api_key="vision-key", http_client=http)
            with pytest.raises(UpstreamServiceError):
                await client.analyze("data:image/png;base64,AAAA")

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ConfigurationError):
            await VisionClient(api_key="").analyze("data:image/png;base64,AAAA")


# ============================================================================
# Document Store Tests
# ============================================================================

class TestInMemoryDocumentStore:
    """Narrow store interface."""

    @pytest.mark.asyncio
    async def test_crud(self, store):
        doc_id = await store.create("exercises", {"user_id": "u1", "is_custom": True, "question": "q1"})
        await store.create("exercises", {"user_id": "u2", "is_custom": True, "question": "q2"})

        assert (await store.get("exercises", doc_id))["question"] == "q1"
        assert [d["question"] for d in await store.query("exercises", {"user_id": "u1", "is_custom": True})] == ["q1"]

        assert await store.update("exercises", doc_id, {"question": "q1b"}) is True
        assert (await store.get("exercises", doc_id))["question"] == "q1b"
        assert await store.update("exercises", "missing", {"question": "x"}) is False
        assert await store.get("other", doc_id) is None

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self, store):
        doc_id = await store.create("exercises", {"tags": ["a"]})
        doc = await store.get("exercises", doc_id)
        doc["tags"].append("b")
        assert (await store.get("exercises", doc_id))["tags"] == ["a"]


# ============================================================================
# Web Index Tests
# ============================================================================

def make_index(client=None):
    embedding_model = MagicMock()
    embedding_model.encode.return_value.tolist.return_value = [0.1, 0.2, 0.3]
    if client is None:
        client = MagicMock()
        client.get_collections.return_value.collections = []
    return WebContentIndex(client=client, embedding_model=embedding_model, collection="test_web")


def doc(url: str) -> IndexableDocument:
    return IndexableDocument(title="Sorting", content="x" * 600, url=url, domain="example.com", quality="high")


class TestWebContentIndex:
    """Qdrant-backed index with mocked clients."""

    @pytest.mark.asyncio
    async def test_schedule_indexing_upserts(self):
        index = make_index()

        task = index.schedule_indexing([doc("https://a.example"), doc("https://b.example")])
        await index.drain()

        assert task.done()
        index.client.create_collection.assert_called_once()
        points = index.client.upsert.call_args.kwargs["points"]
        assert len(points) == 2
        assert points[0].payload["content_type"] == "web"

    @pytest.mark.asyncio
    async def test_same_url_same_point(self):
        index = make_index()
        await index.index_web_results([doc("https://a.example")])
        await index.index_web_results([doc("https://a.example")])

        first, second = [c.kwargs["points"][0].id for c in index.client.upsert.call_args_list]
        assert first == second

    @pytest.mark.asyncio
    async def test_indexing_failure_is_swallowed(self):
        index = make_index()
        index.client.upsert.side_effect = RuntimeError("qdrant down")

        index.schedule_indexing([doc("https://a.example")])
        await index.drain()

        assert not index._pending

    def test_nothing_to_index(self):
        assert make_index().schedule_indexing([]) is None

    @pytest.mark.asyncio
    async def test_search_related_filters_by_similarity(self):
        index = make_index()
        index.client.query_points.return_value.points = [
            SimpleNamespace(score=0.82, payload={"title": "Heaps", "url": "https://h.example", "content": "heap"}),
            SimpleNamespace(score=0.21, payload={"title": "Cats", "url": "https://c.example", "content": "cat"}),
        ]

        hits = await index.search_related("heap sort", limit=3, min_similarity=0.4)

        assert hits == [{"title": "Heaps", "url": "https://h.example", "content": "heap", "similarity": 0.82}]

    @pytest.mark.asyncio
    async def test_search_related_failure_returns_empty(self):
        index = make_index()
        index.client.query_points.side_effect = RuntimeError("qdrant down")
        assert await index.search_related("anything") == []

    @pytest.mark.asyncio
    async def test_concurrent_first_use_initializes_once(self):
        client = MagicMock()

        def slow_collections():
            time.sleep(0.05)
            return SimpleNamespace(collections=[])

        client.get_collections.side_effect = slow_collections
        client.query_points.return_value.points = []

        def slow_model(name):
            time.sleep(0.05)
            model = MagicMock()
            model.encode.return_value.tolist.return_value = [0.1, 0.2, 0.3]
            return model

        with patch("buddy_ai.services.web_index.SentenceTransformer", side_effect=slow_model) as model_cls:
            index = WebContentIndex(client=client, collection="test_web")
            await asyncio.gather(
                index.index_web_results([doc("https://a.example")]),
                index.index_web_results([doc("https://b.example")]),
                index.search_related("heap sort"),
                index.search_related("merge sort"),
            )

        model_cls.assert_called_once()
        client.get_collections.assert_called_once()
        client.create_collection.assert_called_once()


# ============================================================================
# Gemini Chat Model Tests
# ============================================================================

def gemini_response(text=None, calls=None):
    return SimpleNamespace(
        text=text,
        function_calls=calls,
        candidates=[SimpleNamespace(content=types.Content(role="model", parts=[types.Part(text="...")]))],
    )


class TestGeminiChatModel:
    """Manual function calling loop with a mocked client."""

    @pytest.mark.asyncio
    async def test_tool_calls_recorded(self):
        async def lookup(context, query: str) -> str:
            return f"found {query}"

        registry = ToolRegistry([Capability(
            name="searchTheWeb",
            description="Search",
            func=lookup,
            parameters=[ToolParameter("query", "string", "What to search")],
        )])
        ctx = TurnContext(caller_id="u1")

        model = GeminiChatModel(api_key="test-key", max_tool_rounds=3)
        model._client = MagicMock()
        model._client.aio.models.generate_content = AsyncMock(side_effect=[
            gemini_response(calls=[SimpleNamespace(name="searchTheWeb", args={"query": "heaps"})]),
            gemini_response(text="Heaps are trees."),
        ])

        response = await model.generate("system", "Human: heaps?\n\nAssistant:", tools=registry.bind(ctx))

        assert response.text == "Heaps are trees."
        assert [i.name for i in response.tool_invocations] == ["searchTheWeb"]
        assert response.tool_invocations[0].output == "found heaps"
        assert ctx.tools_invoked == ["searchTheWeb"]

        config = model._client.aio.models.generate_content.call_args_list[0].kwargs["config"]
        assert config.automatic_function_calling.disable is True
        assert len(config.safety_settings) == 4

    @pytest.mark.asyncio
    async def test_no_tools_empty_trace(self):
        model = GeminiChatModel(api_key="test-key")
        model._client = MagicMock()
        model._client.aio.models.generate_content = AsyncMock(return_value=gemini_response(text="Hello!"))

        response = await model.generate("system", "Human: hi\n\nAssistant:")

        assert response.text == "Hello!"
        assert response.tool_invocations == []

    @pytest.mark.asyncio
    async def test_upstream_errors_wrapped(self):
        model = GeminiChatModel(api_key="test-key")
        model._client = MagicMock()
        model._client.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("429 quota"))

        with pytest.raises(UpstreamServiceError):
            await model.generate("system", "user")

    def test_missing_key(self):
        model = GeminiChatModel(api_key="")
        model.api_key = None
        with pytest.raises(ConfigurationError):
            model.client

    def test_schema_conversion(self):
        schema = to_gemini_schema({
            "type": "object",
            "properties": {"style": {"type": "string", "description": "Style", "enum": ["diagram", "chart"]}},
            "required": [],
        })
        assert schema.properties["style"].enum == ["diagram", "chart"]
        assert schema.required is None
