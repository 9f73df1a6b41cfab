"""
Capability Base Classes

A capability is an async function `(context, **kwargs) -> str` with a
name, a description and typed parameters the chat model can call.

Key Features:
- `invoke` never raises: timeouts, bad arguments and errors all come
  back as user-readable text
- The registry binds capabilities to one turn's TurnContext, so the
  caller's identity travels with the call instead of living in globals
- JSON schema generation for model function calling
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
from dataclasses import dataclass, field
from datetime import datetime
import asyncio
import logging
import inspect

from buddy_ai.agents.turn_context import TurnContext

logger = logging.getLogger(__name__)

CapabilityFunc = Callable[..., Awaitable[str]]


# ============================================================================
# Tool Parameter Definition
# ============================================================================

@dataclass
class ToolParameter:
    """Definition of a capability parameter"""
    name: str
    type: str  # "string", "integer", "number", "boolean", "array", "object"
    description: str
    required: bool = True
    default: Any = None
    enum: Optional[List[Any]] = None


# ============================================================================
# Capability
# ============================================================================

@dataclass
class Capability:
    """
    A capability the chat model can invoke.

    Example:
        cap = Capability(
            name="searchTheWeb",
            description="Search the web for current information",
            func=search_the_web,
            parameters=[ToolParameter("query", "string", "What to search for")],
        )

        text = await cap.invoke(context, query="best sorting algorithms")
    """
    name: str
    description: str
    func: CapabilityFunc
    parameters: List[ToolParameter] = field(default_factory=list)
    category: str = "general"  # "content", "study", "web", "analysis", "media"
    timeout_seconds: float = 60.0
    # Phrases that only appear in this capability's output
    output_markers: Sequence[str] = ()

    def __post_init__(self):
        if not inspect.iscoroutinefunction(self.func):
            raise TypeError(f"Capability {self.name} must wrap an async function")

    async def invoke(self, context: TurnContext, **kwargs) -> str:
        """
        Invoke the capability for a turn.

        Returns:
            The capability's text, or an explanation of why it failed
        """
        start_time = datetime.utcnow()
        known = {p.name for p in self.parameters}
        unexpected = [k for k in kwargs if k not in known]
        for key in unexpected:
            kwargs.pop(key)
        if unexpected:
            logger.debug(f"[TOOL] {self.name} ignoring unexpected arguments {unexpected}")

        for param in self.parameters:
            if param.name in kwargs:
                continue
            if param.default is not None:
                kwargs[param.name] = param.default
            elif param.required:
                return f"I couldn't run {self.name} because the `{param.name}` value was missing."

        logger.info(f"[TOOL] Invoking {self.name} with {list(kwargs.keys())} (turn {context.request_id})")
        try:
            result = await asyncio.wait_for(self.func(context, **kwargs), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"[TOOL] {self.name} timed out after {self.timeout_seconds}s")
            return f"Sorry, {self.name} took too long (over {self.timeout_seconds:.0f}s) and was stopped. Please try again."
        except Exception as e:
            logger.error(f"[TOOL] {self.name} error: {e}", exc_info=True)
            return f"Sorry, something went wrong while running {self.name}. Please try again in a moment."

        execution_time = (datetime.utcnow() - start_time).total_seconds() * 1000
        logger.info(f"[TOOL] {self.name} completed in {execution_time:.2f}ms")
        return result if isinstance(result, str) else str(result)

    def to_schema(self) -> Dict[str, Any]:
        """Convert capability to JSON schema for LLM function calling"""
        properties = {}
        required = []

        for param in self.parameters:
            prop = {
                "type": param.type,
                "description": param.description
            }
            if param.enum:
                prop["enum"] = param.enum
            if param.default is not None:
                prop["default"] = param.default

            properties[param.name] = prop

            if param.required:
                required.append(param.name)

        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required
            }
        }


@dataclass
class BoundCapability:
    """A capability tied to one turn's context"""
    capability: Capability
    context: TurnContext

    @property
    def name(self) -> str:
        return self.capability.name

    @property
    def description(self) -> str:
        return self.capability.description

    def to_schema(self) -> Dict[str, Any]:
        return self.capability.to_schema()

    async def invoke(self, **kwargs) -> str:
        self.context.record_tool(self.name)
        return await self.capability.invoke(self.context, **kwargs)


# ============================================================================
# Capability Decorator
# ============================================================================

_ANNOTATION_TYPES = {int: "integer", bool: "boolean", float: "number", list: "array", dict: "object"}


def capability(
    name: str,
    description: str,
    parameters: Optional[List[ToolParameter]] = None,
    category: str = "general",
    timeout: float = 60.0,
    output_markers: Sequence[str] = (),
):
    """
    Decorator to turn an async function into a Capability.

    The first positional parameter receives the TurnContext. If
    `parameters` is omitted they are read from the remaining signature.

    Usage:
        @capability(name="searchTheWeb", description="...", category="web")
        async def search_the_web(context: TurnContext, query: str) -> str:
            ...
    """
    def decorator(func: CapabilityFunc) -> Capability:
        params = parameters
        if params is None:
            params = []
            signature_params = list(inspect.signature(func).parameters.values())[1:]
            for param in signature_params:
                annotation = getattr(param.annotation, "__origin__", param.annotation)
                required = param.default == inspect.Parameter.empty
                params.append(ToolParameter(
                    name=param.name,
                    type=_ANNOTATION_TYPES.get(annotation, "string"),
                    description=f"Parameter: {param.name}",
                    required=required,
                    default=None if required else param.default,
                ))

        return Capability(
            name=name,
            description=description,
            func=func,
            parameters=params,
            category=category,
            timeout_seconds=timeout,
            output_markers=tuple(output_markers),
        )

    return decorator


# ============================================================================
# Tool Registry
# ============================================================================

class ToolRegistry:
    """
    Named set of capabilities.

    Provides:
    - Registration with unique names
    - Category-based filtering
    - Schema generation for LLM function calling
    - Per-turn binding to a TurnContext
    """

    def __init__(self, capabilities: Optional[Sequence[Capability]] = None):
        self._tools: Dict[str, Capability] = {}
        for cap in capabilities or []:
            self.register(cap)

    def register(self, tool: Capability) -> None:
        """Register a capability. Raises ValueError on a duplicate name."""
        if tool.name in self._tools:
            raise ValueError(f"Capability already registered: {tool.name}")
        self._tools[tool.name] = tool
        logger.debug(f"[REGISTRY] Registered capability: {tool.name} ({tool.category})")

    def get(self, name: str) -> Optional[Capability]:
        return self._tools.get(name)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self, category: Optional[str] = None) -> List[Capability]:
        """List all capabilities, optionally filtered by category"""
        tools = list(self._tools.values())
        if category:
            tools = [t for t in tools if t.category == category]
        return tools

    def list_names(self, category: Optional[str] = None) -> List[str]:
        return [t.name for t in self.list_tools(category)]

    def get_schemas(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get JSON schemas for all capabilities (for LLM function calling)"""
        return [t.to_schema() for t in self.list_tools(category)]

    def bind(self, context: TurnContext) -> List[BoundCapability]:
        """Every capability tied to this turn's context"""
        return [BoundCapability(tool, context) for tool in self._tools.values()]

    async def invoke(self, tool_name: str, context: TurnContext, **kwargs) -> str:
        """Invoke a capability by name"""
        tool = self.get(tool_name)
        if not tool:
            return f"Unknown tool: {tool_name}"
        context.record_tool(tool_name)
        return await tool.invoke(context, **kwargs)

    def infer_tools_from_text(self, text: str) -> List[str]:
        """Capabilities whose output markers appear in text"""
        return [
            tool.name for tool in self._tools.values()
            if any(marker in text for marker in tool.output_markers)
        ]
