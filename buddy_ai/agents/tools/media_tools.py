"""
Media Tools

- generateImageForExplanation: draw a diagram or illustration for a concept
- processImageInput: read text and objects from an image the student shares
"""
from functools import partial
from typing import List, Optional
import logging

from buddy_ai.agents.dependencies import BuddyServices
from buddy_ai.agents.turn_context import TurnContext
from buddy_ai.services.image_service import (
    ANALYSIS_TYPES,
    IMAGE_COMPLEXITIES,
    IMAGE_STYLES,
    SVG_FALLBACK_MODEL,
    ImageGenerationRequest,
    VisionAnalysis,
)

from .base_tool import Capability, ToolParameter

logger = logging.getLogger(__name__)


# ============================================================================
# Image Generation Tool
# ============================================================================

def manual_diagram_guidance(concept: str, description: str, style: str) -> str:
    return (
        f"🎨 **Visual Diagram Concept for \"{concept}\"**\n\n"
        f"I couldn't generate the image, but here's what the {style} would include:\n\n"
        f"📊 **Visual Elements:**\n{description}\n\n"
        "🎯 **Recommended Structure:**\n"
        f"- **Main Focus:** Central representation of {concept}\n"
        "- **Supporting Elements:** Key components and relationships\n"
        "- **Labels & Annotations:** Clear explanations of each part\n"
        "- **Color Coding:** Different colors for different categories\n"
        "- **Flow/Connections:** Arrows or lines showing relationships\n\n"
        "💡 **Manual Creation Options:**\n"
        "- **Digital Tools:** Lucidchart, Draw.io, Canva, or Figma\n"
        "- **Simple Tools:** PowerPoint, Google Drawings\n"
        "- **Hand-drawn:** Sketch and photograph for a personal touch\n\n"
        "Would you like more specific guidance for creating this diagram yourself?"
    )


async def _generate_image_for_explanation(
    context: TurnContext,
    concept: str,
    description: str,
    services: BuddyServices,
    style: Optional[str] = "diagram",
    complexity: Optional[str] = "medium",
) -> str:
    style = style if style in IMAGE_STYLES else "diagram"
    complexity = complexity if complexity in IMAGE_COMPLEXITIES else "medium"

    if services.image_generator is None:
        return manual_diagram_guidance(concept, description, style)

    try:
        image = await services.image_generator.generate_image(
            ImageGenerationRequest(concept=concept, description=description, style=style, complexity=complexity)
        )
    except Exception as e:
        logger.error(f"[MEDIA] Image generation failed: {e}", exc_info=True)
        return manual_diagram_guidance(concept, description, style)

    if image.model == SVG_FALLBACK_MODEL:
        return (
            "🎨 **Educational Diagram Created!**\n\n"
            f"I've drawn a {style} for **{concept}**:\n\n"
            f"![{image.alt_text}]({image.image_data_uri})\n\n"
            f"**Description:** {image.description}\n"
            "**Type:** SVG Diagram\n"
            f"**Style:** {image.style}\n\n"
            "This diagram lays out the key parts of the concept so you can see how they fit together!"
        )

    return (
        "🎨 **Visual Diagram Created!**\n\n"
        f"I've generated a {style} for **{concept}**:\n\n"
        f"![{image.alt_text}]({image.image_data_uri})\n\n"
        f"**Description:** {image.description}\n"
        f"**Style:** {image.style}\n\n"
        "This visual should make the key ideas easier to follow!"
    )


# ============================================================================
# Image Analysis Tool
# ============================================================================

ANALYSIS_FALLBACK_PROMPTS = {
    "handwriting": "I can see handwritten content in your image. If you type out the text, I'll happily review it with you.",
    "diagram": "I notice you've shared a diagram. Could you describe what it shows while I can't read it directly?",
    "code": "I can see code in your image. Please paste the code as text so I can debug, review or explain it.",
    "math": "I see mathematical content. Type out the equations or problems and I'll solve them step by step.",
    "general": "I can see your image but ran into a problem analyzing it. Could you describe what you'd like help with?",
}

ANALYSIS_HELP = {
    "code": "- Code review and debugging\n- Complexity analysis\n- Best practices suggestions",
    "math": "- Step-by-step solutions\n- Concept explanations\n- Practice problems",
    "handwriting": "- Content review\n- Study suggestions\n- Related topics",
    "diagram": "- Diagram interpretation\n- Concept explanations\n- Related visual aids",
    "general": "- Detailed explanations\n- Related resources\n- Practice exercises",
}

ANALYSIS_FOLLOWUPS = {
    "code": (
        "💻 **Code Analysis:**\nI can see code in your image. I can help with:\n"
        "- Code review and optimization suggestions\n- Syntax checking and error detection\n"
        "- Explanation of what the code does\n\n"
    ),
    "math": (
        "🔢 **Mathematical Content:**\nI can help with:\n"
        "- Step-by-step problem solving\n- Concept explanations\n- Similar practice problems\n\n"
    ),
    "handwriting": (
        "✍️ **Handwritten Notes:**\nI can assist with:\n"
        "- Content review and clarification\n- Study suggestions based on your notes\n"
        "- Related topic recommendations\n\n"
    ),
}


def image_analysis_fallback(analysis_type: str) -> str:
    return (
        "📸 **Image Analysis - Processing Issue**\n\n"
        f"{ANALYSIS_FALLBACK_PROMPTS[analysis_type]}\n\n"
        f"**What I can help with once you provide the text:**\n{ANALYSIS_HELP[analysis_type]}"
    )


def format_image_analysis(analysis: VisionAnalysis, analysis_type: str) -> str:
    response = "📸 **Image Analysis Complete**\n\n"

    text = analysis.extracted_text.strip()
    if text:
        response += f"📝 **Extracted Text:**\n```\n{text}\n```\n\n"
        if analysis.confidence:
            response += f"🎯 **Confidence:** {round(analysis.confidence * 100)}%\n\n"
        response += ANALYSIS_FOLLOWUPS.get(analysis_type, "")

    detected = [d for d in analysis.detected_objects + analysis.labels if d]
    if detected:
        # Objects and labels often overlap
        unique = list(dict.fromkeys(detected))
        response += f"🔍 **Detected Elements:** {', '.join(unique)}\n\n"

    if not text and not detected:
        response += "I couldn't find any text or recognizable objects in this image.\n\n"

    response += "Would you like me to help you with any specific aspect of this content?"
    return response


async def _process_image_input(
    context: TurnContext,
    image_url: str,
    analysis_type: str,
    services: BuddyServices,
) -> str:
    analysis_type = analysis_type if analysis_type in ANALYSIS_TYPES else "general"

    if services.vision_client is None:
        return image_analysis_fallback(analysis_type)

    try:
        analysis = await services.vision_client.analyze(image_url, analysis_type)
    except Exception as e:
        logger.error(f"[MEDIA] Image analysis failed: {e}", exc_info=True)
        return image_analysis_fallback(analysis_type)

    return format_image_analysis(analysis, analysis_type)


def create_media_tools(services: BuddyServices) -> List[Capability]:
    return [
        Capability(
            name="generateImageForExplanation",
            description=(
                "Generates a diagram or illustration to help explain a concept. Use when a complex "
                "topic would be easier to understand visually."
            ),
            func=partial(_generate_image_for_explanation, services=services),
            parameters=[
                ToolParameter("concept", "string", "The concept to explain visually"),
                ToolParameter("description", "string", "What the image should show, in detail"),
                ToolParameter("style", "string", "Visual style", required=False, default="diagram", enum=IMAGE_STYLES),
                ToolParameter("complexity", "string", "Level of detail", required=False, default="medium", enum=IMAGE_COMPLEXITIES),
            ],
            category="media",
            output_markers=("Visual Diagram Created", "Educational Diagram Created", "Visual Diagram Concept"),
        ),
        Capability(
            name="processImageInput",
            description=(
                "Analyzes an image the student shares, such as handwritten notes, a diagram, "
                "a code screenshot or a math problem."
            ),
            func=partial(_process_image_input, services=services),
            parameters=[
                ToolParameter("image_url", "string", "URL or data URI of the image"),
                ToolParameter("analysis_type", "string", "Kind of analysis to run", enum=ANALYSIS_TYPES),
            ],
            category="media",
            output_markers=("Image Analysis Complete", "Image Analysis - Processing Issue"),
        ),
    ]
