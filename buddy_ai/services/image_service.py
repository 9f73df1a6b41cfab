"""
Image Service

- Explanatory image generation with Imagen (google-genai), falling back
  to a locally drawn SVG when Imagen is unavailable
- Image analysis with the Google Cloud Vision REST API (httpx)

Vision raises ConfigurationError / UpstreamServiceError; the media
capabilities turn those into fallback guidance.
"""
import base64
import logging
import re
import textwrap
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

import httpx
from google import genai
from google.genai import types

from buddy_ai.agents.errors import ConfigurationError, UpstreamServiceError
from buddy_ai.config import settings

logger = logging.getLogger(__name__)


# ============================================================================
# Image Generation
# ============================================================================

IMAGE_STYLES = ["diagram", "illustration", "chart", "flowchart", "infographic"]
IMAGE_COMPLEXITIES = ["simple", "medium", "detailed"]

COMPLEXITY_HINTS = {
    "simple": "Keep it minimal with only the few most important elements.",
    "medium": "Show the main components and how they connect.",
    "detailed": "Include all relevant components, labels and relationships.",
}


@dataclass
class ImageGenerationRequest:
    concept: str
    description: str
    style: str = "diagram"
    complexity: str = "medium"


@dataclass
class GeneratedImage:
    image_data_uri: str
    alt_text: str
    description: str
    model: str
    style: str
    generated_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())


def build_image_prompt(request: ImageGenerationRequest) -> str:
    hint = COMPLEXITY_HINTS.get(request.complexity, COMPLEXITY_HINTS["medium"])
    return (
        f"An educational {request.style} explaining {request.concept}. "
        f"{request.description}. {hint} "
        "Clean white background, clear readable labels, consistent educational colour scheme, square format."
    )


# ============================================================================
# SVG Fallback
# ============================================================================

SVG_FALLBACK_MODEL = "svg-fallback"

SVG_PALETTE = [
    ("#FEF3C7", "#F59E0B"),
    ("#DCFCE7", "#22C55E"),
    ("#E0F2FE", "#0EA5E9"),
    ("#FCE7F3", "#EC4899"),
]

_SVG_DEFS = (
    '<defs><marker id="arrow" markerWidth="10" markerHeight="7" refX="9" refY="3.5" orient="auto">'
    '<polygon points="0 0, 10 3.5, 0 7" fill="#6B7280"/></marker></defs>'
)


def key_points(description: str, limit: int = 4) -> List[str]:
    """Short labels taken from the description's own phrases"""
    parts = re.split(r"[.;,\n]+|\s+(?:then|->|→)\s+", description)
    points = [textwrap.shorten(p.strip(), width=28, placeholder="…") for p in parts if p.strip()]
    return points[:limit] or ["Key idea"]


def _text(x: int, y: int, value: str, size: int = 11, fill: str = "#1F2937", weight: str = "normal") -> str:
    return (
        f'<text x="{x}" y="{y}" text-anchor="middle" font-family="Arial, sans-serif" '
        f'font-size="{size}" font-weight="{weight}" fill="{fill}">{escape(value)}</text>'
    )


def _box(x: int, y: int, w: int, h: int, label: str, index: int) -> str:
    fill, stroke = SVG_PALETTE[index % len(SVG_PALETTE)]
    return (
        f'<rect x="{x}" y="{y}" width="{w}" height="{h}" rx="6" fill="{fill}" stroke="{stroke}" stroke-width="2"/>'
        + _text(x + w // 2, y + h // 2 + 4, label, size=10)
    )


def _arrow(x1: int, y1: int, x2: int, y2: int) -> str:
    return f'<path d="M {x1} {y1} L {x2} {y2}" stroke="#6B7280" stroke-width="2" marker-end="url(#arrow)"/>'


def _diagram_body(concept: str, points: List[str]) -> List[str]:
    # Central concept with the key points around it
    body = [
        '<rect x="140" y="125" width="120" height="50" rx="8" fill="#EEF2FF" stroke="#4F46E5" stroke-width="2"/>',
        _text(200, 155, textwrap.shorten(concept, width=20, placeholder="…"), size=12, weight="bold"),
    ]
    corners = [(20, 55), (240, 55), (20, 205), (240, 205)]
    for i, (point, (x, y)) in enumerate(zip(points, corners)):
        body.append(_box(x, y, 140, 40, point, i))
        body.append(_arrow(x + 70, y + 40 if y < 125 else y, 200, 125 if y < 125 else 175))
    return body


def _flowchart_body(concept: str, points: List[str]) -> List[str]:
    body = []
    step_height = 200 // max(len(points), 1)
    for i, point in enumerate(points):
        y = 50 + i * step_height
        body.append(_box(110, y, 180, min(36, step_height - 14), f"{i + 1}. {point}", i))
        if i:
            body.append(_arrow(200, y - 14, 200, y))
    return body


def _chart_body(concept: str, points: List[str]) -> List[str]:
    body = [
        '<line x1="50" y1="240" x2="370" y2="240" stroke="#6B7280" stroke-width="2"/>',
        '<line x1="50" y1="50" x2="50" y2="240" stroke="#6B7280" stroke-width="2"/>',
    ]
    width = 300 // len(points)
    for i, point in enumerate(points):
        height = 170 - i * 30
        _, colour = SVG_PALETTE[i % len(SVG_PALETTE)]
        x = 60 + i * width
        body.append(f'<rect x="{x}" y="{240 - height}" width="{width - 20}" height="{height}" fill="{colour}" opacity="0.8"/>')
        body.append(_text(x + (width - 20) // 2, 255, textwrap.shorten(point, width=14, placeholder="…"), size=9))
    return body


def _infographic_body(concept: str, points: List[str]) -> List[str]:
    body = []
    for i, point in enumerate(points):
        y = 50 + i * 52
        _, colour = SVG_PALETTE[i % len(SVG_PALETTE)]
        body.append(f'<circle cx="50" cy="{y + 20}" r="16" fill="{colour}"/>')
        body.append(_text(50, y + 25, str(i + 1), size=13, fill="#FFFFFF", weight="bold"))
        body.append(
            f'<rect x="80" y="{y}" width="290" height="40" rx="6" fill="#FFFFFF" stroke="{colour}" stroke-width="1.5"/>'
        )
        body.append(_text(225, y + 25, point, size=11))
    return body


SVG_LAYOUTS = {
    "diagram": _diagram_body,
    "illustration": _diagram_body,
    "flowchart": _flowchart_body,
    "chart": _chart_body,
    "infographic": _infographic_body,
}


def render_svg_fallback(request: ImageGenerationRequest) -> str:
    """A self-contained educational SVG laid out for the requested style"""
    layout = SVG_LAYOUTS.get(request.style, _diagram_body)
    points = key_points(request.description)
    parts = [
        '<svg width="400" height="300" viewBox="0 0 400 300" xmlns="http://www.w3.org/2000/svg">',
        _SVG_DEFS,
        '<rect width="400" height="300" rx="8" fill="#FAFAFA" stroke="#E5E7EB" stroke-width="2"/>',
        _text(200, 30, request.concept, size=16, weight="bold"),
        *layout(request.concept, points),
        _text(200, 285, textwrap.shorten(request.description, width=60, placeholder="…"), size=10, fill="#6B7280"),
        "</svg>",
    ]
    return "".join(parts)


def svg_fallback_image(request: ImageGenerationRequest) -> GeneratedImage:
    svg = render_svg_fallback(request)
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return GeneratedImage(
        image_data_uri=f"data:image/svg+xml;base64,{encoded}",
        alt_text=f"{request.style.capitalize()} of {request.concept}",
        description=request.description,
        model=SVG_FALLBACK_MODEL,
        style=request.style,
    )


class ImageGenerator:
    """
    Imagen-backed explanatory image generator.

    When Imagen is unconfigured or fails, a style-aware SVG is drawn
    instead unless svg_fallback is off.
    """

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None, svg_fallback: bool = True):
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.model_name = model_name or settings.IMAGE_MODEL
        self.svg_fallback = svg_fallback
        self._client = None

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("GEMINI_API_KEY is not configured for image generation")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate_image(self, request: ImageGenerationRequest) -> GeneratedImage:
        logger.info(f"[IMAGE] Generating {request.style} for: {request.concept}")
        try:
            return await self._generate_with_imagen(request)
        except (ConfigurationError, UpstreamServiceError) as e:
            if not self.svg_fallback:
                raise
            logger.warning(f"[IMAGE] Imagen unavailable, drawing SVG fallback: {e}")
            return svg_fallback_image(request)

    async def _generate_with_imagen(self, request: ImageGenerationRequest) -> GeneratedImage:
        try:
            response = await self.client.aio.models.generate_images(
                model=self.model_name,
                prompt=build_image_prompt(request),
                config=types.GenerateImagesConfig(number_of_images=1, aspect_ratio="1:1"),
            )
        except ConfigurationError:
            raise
        except Exception as e:
            raise UpstreamServiceError("image generation", str(e)) from e

        if not response.generated_images or response.generated_images[0].image is None:
            raise UpstreamServiceError("image generation", "No image generated")

        image = response.generated_images[0].image
        mime_type = image.mime_type or "image/png"
        encoded = base64.b64encode(image.image_bytes).decode("ascii")
        return GeneratedImage(
            image_data_uri=f"data:{mime_type};base64,{encoded}",
            alt_text=f"{request.style.capitalize()} of {request.concept}",
            description=request.description,
            model=self.model_name,
            style=request.style,
        )


# ============================================================================
# Vision Analysis
# ============================================================================

ANALYSIS_TYPES = ["handwriting", "diagram", "code", "math", "general"]

VISION_API_URL = "https://vision.googleapis.com/v1/images:annotate"

_TEXT_FEATURES = [
    {"type": "TEXT_DETECTION", "maxResults": 1},
    {"type": "DOCUMENT_TEXT_DETECTION", "maxResults": 1},
]
_SCENE_FEATURES = [
    {"type": "OBJECT_LOCALIZATION", "maxResults": 10},
    {"type": "LABEL_DETECTION", "maxResults": 10},
]


def vision_features(analysis_type: str) -> List[Dict[str, Any]]:
    """Vision API features to request for an analysis type"""
    if analysis_type in ("diagram", "general"):
        return _TEXT_FEATURES + _SCENE_FEATURES
    if analysis_type in ("code", "math"):
        return list(reversed(_TEXT_FEATURES))
    return list(_TEXT_FEATURES)


@dataclass
class VisionAnalysis:
    extracted_text: str = ""
    detected_objects: List[str] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)
    confidence: float = 0.0


class VisionClient:
    """Google Cloud Vision images:annotate client"""

    def __init__(self, api_key: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key if api_key is not None else settings.GOOGLE_VISION_API_KEY
        self.http_client = http_client

    async def _image_content(self, client: httpx.AsyncClient, image_url: str) -> str:
        if image_url.startswith("data:"):
            return image_url.split(",", 1)[1]
        response = await client.get(image_url, follow_redirects=True)
        if not response.is_success:
            raise UpstreamServiceError("vision", f"Could not download image (HTTP {response.status_code})")
        return base64.b64encode(response.content).decode("ascii")

    async def _annotate(self, client: httpx.AsyncClient, image_url: str, analysis_type: str) -> Dict[str, Any]:
        content = await self._image_content(client, image_url)
        body = {"requests": [{"image": {"content": content}, "features": vision_features(analysis_type)}]}
        response = await client.post(VISION_API_URL, params={"key": self.api_key}, json=body)
        if not response.is_success:
            raise UpstreamServiceError("vision", f"Vision API error: {response.status_code}", response.status_code)
        result = (response.json().get("responses") or [{}])[0]
        if result.get("error"):
            raise UpstreamServiceError("vision", result["error"].get("message", "Unknown error"))
        return result

    async def analyze(self, image_url: str, analysis_type: str = "general") -> VisionAnalysis:
        """
        Analyze an image given as an http(s) URL or data URI.

        Raises:
            ConfigurationError: No vision API key
            UpstreamServiceError: Download or annotate call failed
        """
        if not self.api_key:
            raise ConfigurationError("Google Vision API key not configured")

        logger.info(f"[VISION] Analyzing {analysis_type} image: {image_url[:50]}")
        try:
            if self.http_client is None:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    result = await self._annotate(client, image_url, analysis_type)
            else:
                result = await self._annotate(self.http_client, image_url, analysis_type)
        except httpx.HTTPError as e:
            raise UpstreamServiceError("vision", str(e)) from e

        full_text = result.get("fullTextAnnotation") or {}
        pages = full_text.get("pages") or [{}]
        return VisionAnalysis(
            extracted_text=full_text.get("text", ""),
            detected_objects=[o.get("name", "") for o in result.get("localizedObjectAnnotations", [])],
            labels=[label.get("description", "") for label in result.get("labelAnnotations", [])],
            confidence=pages[0].get("confidence", 0.0) or 0.0,
        )
