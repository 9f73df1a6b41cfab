"""
Tests for the media and code analysis capabilities

Test Scenarios:
1. generateImageForExplanation - inline image, SVG fallback, manual guidance on failure
2. processImageInput - formatted analysis, per-type fallback
3. analyzeCodeComplexity - complexity report, guidance on failure
"""
import base64

import pytest
from unittest.mock import AsyncMock, MagicMock

from buddy_ai.agents.errors import UpstreamServiceError
from buddy_ai.agents.tools.analysis_tools import _analyze_code_complexity
from buddy_ai.agents.tools.media_tools import (
    ANALYSIS_FALLBACK_PROMPTS,
    _generate_image_for_explanation,
    _process_image_input,
)
from buddy_ai.agents.turn_context import TurnContext
from buddy_ai.services.image_service import (
    SVG_FALLBACK_MODEL,
    GeneratedImage,
    ImageGenerationRequest,
    ImageGenerator,
    VisionAnalysis,
    build_image_prompt,
    key_points,
    render_svg_fallback,
    vision_features,
)


# ============================================================================
# Image Generation Tests
# ============================================================================

class TestGenerateImage:
    """generateImageForExplanation."""

    @pytest.mark.asyncio
    async def test_image_rendered_inline(self, services):
        services.image_generator = MagicMock()
        services.image_generator.generate_image = AsyncMock(return_value=GeneratedImage(
            image_data_uri="data:image/png;base64,iVBORw0KGgo=",
            alt_text="Flowchart of TCP handshake",
            description="SYN, SYN-ACK, ACK between client and server",
            model="imagen",
            style="flowchart",
        ))

        result = await _generate_image_for_explanation(
            TurnContext(), "TCP handshake", "SYN, SYN-ACK, ACK between client and server",
            services=services, style="flowchart",
        )

        assert "Visual Diagram Created" in result
        assert "![Flowchart of TCP handshake](data:image/png;base64,iVBORw0KGgo=)" in result
        request = services.image_generator.generate_image.call_args[0][0]
        assert request.style == "flowchart"
        assert request.complexity == "medium"

    @pytest.mark.asyncio
    async def test_failure_gives_manual_guidance(self, services):
        services.image_generator = MagicMock()
        services.image_generator.generate_image = AsyncMock(side_effect=UpstreamServiceError("image generation", "quota"))

        result = await _generate_image_for_explanation(
            TurnContext(), "Photosynthesis", "Light and water in, sugar and oxygen out",
            services=services, style="watercolour",
        )

        assert "Visual Diagram Concept" in result
        assert "Light and water in" in result
        # Unknown styles fall back to a diagram
        assert "what the diagram would include" in result

    def test_image_prompt(self):
        prompt = build_image_prompt(ImageGenerationRequest("binary search", "Halving a sorted list", complexity="simple"))
        assert "educational diagram explaining binary search" in prompt
        assert "minimal" in prompt


def unconfigured_generator(**kwargs) -> ImageGenerator:
    generator = ImageGenerator(**kwargs)
    generator.api_key = None
    return generator


def decode_svg(data_uri: str) -> str:
    prefix = "data:image/svg+xml;base64,"
    assert data_uri.startswith(prefix)
    return base64.b64decode(data_uri[len(prefix):]).decode("utf-8")


class TestSvgFallback:
    """Imagen unavailable: a drawn SVG instead of text-only guidance."""

    @pytest.mark.asyncio
    async def test_unconfigured_generator_draws_svg(self, services):
        services.image_generator = unconfigured_generator()

        result = await _generate_image_for_explanation(
            TurnContext(), "TCP handshake", "Client sends SYN, server replies SYN-ACK, client sends ACK",
            services=services, style="flowchart",
        )

        assert "Educational Diagram Created!" in result
        assert "**Type:** SVG Diagram" in result
        assert "](data:image/svg+xml;base64," in result
        assert "Visual Diagram Concept" not in result

    @pytest.mark.asyncio
    async def test_imagen_failure_falls_back(self):
        generator = ImageGenerator(api_key="test-key")
        generator._client = MagicMock()
        generator._client.aio.models.generate_images = AsyncMock(side_effect=RuntimeError("quota exceeded"))

        image = await generator.generate_image(ImageGenerationRequest("Photosynthesis", "Light in, sugar out"))

        assert image.model == SVG_FALLBACK_MODEL
        assert "Photosynthesis" in decode_svg(image.image_data_uri)

    @pytest.mark.asyncio
    async def test_fallback_disabled_raises(self):
        generator = ImageGenerator(api_key="test-key", svg_fallback=False)
        generator._client = MagicMock()
        generator._client.aio.models.generate_images = AsyncMock(side_effect=RuntimeError("quota exceeded"))

        with pytest.raises(UpstreamServiceError):
            await generator.generate_image(ImageGenerationRequest("Photosynthesis", "Light in, sugar out"))

    def test_flowchart_numbers_steps(self):
        svg = render_svg_fallback(ImageGenerationRequest(
            "Sorting", "Read input then sort it then print result", style="flowchart",
        ))
        assert svg.startswith("<svg")
        assert svg.endswith("</svg>")
        assert "1. Read input" in svg
        assert "3. print result" in svg
        assert 'marker-end="url(#arrow)"' in svg

    @pytest.mark.parametrize("style", ["diagram", "illustration", "chart", "infographic", "unknown"])
    def test_every_style_renders(self, style):
        svg = render_svg_fallback(ImageGenerationRequest("Heaps", "Parent above children; array backed", style=style))
        assert "Heaps" in svg
        assert "Parent above children" in svg

    def test_text_is_escaped(self):
        svg = render_svg_fallback(ImageGenerationRequest("a < b & c", "Compare <values>"))
        assert "a &lt; b &amp; c" in svg
        assert "<values>" not in svg

    def test_key_points(self):
        assert key_points("Input, process. Output; store, log") == ["Input", "process", "Output", "store"]
        assert key_points("  ") == ["Key idea"]


# ============================================================================
# Image Analysis Tests
# ============================================================================

class TestProcessImageInput:
    """processImageInput."""

    @pytest.mark.asyncio
    async def test_analysis_formatted(self, services):
        services.vision_client = MagicMock()
        services.vision_client.analyze = AsyncMock(return_value=VisionAnalysis(
            extracted_text="def add(a, b):\n    return a + b",
            detected_objects=["Monitor", "Keyboard"],
            labels=["Monitor", "Software"],
            confidence=0.934,
        ))

        result = await _process_image_input(TurnContext(), "https://img.example/code.png", "code", services=services)

        assert "Image Analysis Complete" in result
        assert "def add(a, b):" in result
        assert "**Confidence:** 93%" in result
        assert "Code Analysis" in result
        assert "**Detected Elements:** Monitor, Keyboard, Software" in result

    @pytest.mark.asyncio
    async def test_nothing_found(self, services):
        services.vision_client = MagicMock()
        services.vision_client.analyze = AsyncMock(return_value=VisionAnalysis())

        result = await _process_image_input(TurnContext(), "https://img.example/blank.png", "general", services=services)

        assert "couldn't find any text" in result

    @pytest.mark.asyncio
    @pytest.mark.parametrize("analysis_type", ["handwriting", "diagram", "code", "math", "general"])
    async def test_fallback_per_type(self, services, analysis_type):
        services.vision_client = MagicMock()
        services.vision_client.analyze = AsyncMock(side_effect=UpstreamServiceError("vision", "HTTP 500"))

        result = await _process_image_input(TurnContext(), "https://img.example/x.png", analysis_type, services=services)

        assert "Processing Issue" in result
        assert ANALYSIS_FALLBACK_PROMPTS[analysis_type] in result

    @pytest.mark.asyncio
    async def test_unconfigured_vision_falls_back(self, services):
        result = await _process_image_input(TurnContext(), "https://img.example/x.png", "sketch", services=services)
        assert ANALYSIS_FALLBACK_PROMPTS["general"] in result

    def test_vision_features(self):
        assert [f["type"] for f in vision_features("code")] == ["DOCUMENT_TEXT_DETECTION", "TEXT_DETECTION"]
        assert "LABEL_DETECTION" in [f["type"] for f in vision_features("diagram")]
        assert "LABEL_DETECTION" not in [f["type"] for f in vision_features("handwriting")]


# ============================================================================
# Code Complexity Tests
# ============================================================================

class TestAnalyzeCodeComplexity:
    """analyzeCodeComplexity."""

    @pytest.mark.asyncio
    async def test_complexity_report(self, services, fake_llm):
        fake_llm.response = {
            "stdout": "6\n",
            "stderr": "",
            "analysis": {"summary": "Sums a list in one pass.", "suggestions": []},
            "complexity": {"time": "O(n)", "space": "O(1)"},
        }

        result = await _analyze_code_complexity(TurnContext(), "print(sum([1, 2, 3]))", "python", services=services)

        assert result == (
            "Time Complexity: **O(n)**\nSpace Complexity: **O(1)**\n\nSummary: Sums a list in one pass."
        )
        assert "print(sum([1, 2, 3]))" in fake_llm.prompts[0]

    @pytest.mark.asyncio
    async def test_malformed_output_gives_guidance(self, services, fake_llm):
        fake_llm.response = {"complexity": {"time": "O(n)"}}

        result = await _analyze_code_complexity(TurnContext(), "x = 1", "python", services=services)

        assert "couldn't finish an automated analysis of your python code" in result

    @pytest.mark.asyncio
    async def test_empty_code(self, services, fake_llm):
        result = await _analyze_code_complexity(TurnContext(), "   ", "python", services=services)
        assert "no code to analyze" in result
        assert fake_llm.prompts == []
