"""
Buddy AI Capabilities

Modules:
- base_tool: Capability class, ToolRegistry, decorator
- exercise_tools: createCustomExercise
- study_tools: suggestStudyTopics
- web_tools: searchTheWeb
- analysis_tools: analyzeCodeComplexity
- media_tools: generateImageForExplanation, processImageInput

Usage:
    registry = build_capability_registry(services)
    tools = registry.bind(turn_context)
"""
from .base_tool import (
    BoundCapability,
    Capability,
    ToolParameter,
    ToolRegistry,
    capability,
)
from .analysis_tools import create_analysis_tools
from .exercise_tools import create_exercise_tools
from .media_tools import create_media_tools
from .study_tools import create_study_tools
from .web_tools import create_web_tools

__all__ = [
    "BoundCapability",
    "Capability",
    "ToolParameter",
    "ToolRegistry",
    "capability",
    "build_capability_registry",
]

CAPABILITY_NAMES = [
    "createCustomExercise",
    "suggestStudyTopics",
    "searchTheWeb",
    "analyzeCodeComplexity",
    "generateImageForExplanation",
    "processImageInput",
]


def build_capability_registry(services) -> ToolRegistry:
    """Registry holding all six capabilities wired to the given services"""
    registry = ToolRegistry()
    for factory in (
        create_exercise_tools,
        create_study_tools,
        create_web_tools,
        create_analysis_tools,
        create_media_tools,
    ):
        for tool in factory(services):
            registry.register(tool)
    return registry
