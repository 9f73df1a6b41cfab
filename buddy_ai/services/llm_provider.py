"""
LLM Providers

Two model roles:
- GeminiChatModel drives the conversation turn. It runs the function
  calling loop itself and returns the text plus a structured trace of
  every capability it invoked.
- HuggingFaceLLM serves the single-shot structured flows (exercise
  generation, topic ranking, code analysis, follow-ups) through the
  Hugging Face Inference API.
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence

import httpx
from google import genai
from google.genai import types

from buddy_ai.agents.errors import ConfigurationError, UpstreamServiceError
from buddy_ai.config import settings

logger = logging.getLogger(__name__)


# ============================================================================
# Safety configuration
# ============================================================================

SAFETY_CATEGORIES = [
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
]

DEFAULT_SAFETY_SETTINGS: List[Dict[str, str]] = [
    {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
    for category in SAFETY_CATEGORIES
]


# ============================================================================
# Chat model interface
# ============================================================================

@dataclass
class ToolInvocation:
    """One capability call made by the chat model"""
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    output: str = ""


@dataclass
class ModelResponse:
    """
    Final text of a chat generation.

    tool_invocations is None when the backend cannot report which tools
    ran; an empty list means it can and none did.
    """
    text: str
    tool_invocations: Optional[List[ToolInvocation]] = None


def to_gemini_schema(json_schema: Dict[str, Any]) -> types.Schema:
    """Convert a JSON-schema-like tool parameter block into a Gemini Schema"""
    properties = {
        name: to_gemini_schema(prop)
        for name, prop in (json_schema.get("properties") or {}).items()
    }
    return types.Schema(
        type=json_schema.get("type", "string").upper(),
        description=json_schema.get("description"),
        enum=[str(v) for v in json_schema["enum"]] if json_schema.get("enum") else None,
        properties=properties or None,
        required=json_schema.get("required") or None,
    )


class ChatModel(ABC):
    """Tool-calling conversational model"""

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        tools: Sequence[Any] = (),
        safety_settings: Optional[List[Dict[str, str]]] = None,
        history: Optional[List[Any]] = None,
    ) -> ModelResponse:
        """
        Generate a reply.

        Each tool exposes `name`, `to_schema()` and `async invoke(**kwargs) -> str`.
        """
        ...


class GeminiChatModel(ChatModel):
    """
    Gemini chat model with a manual function-calling loop

    Automatic function calling is disabled so every call goes through the
    bound capability (which never raises) and lands in the trace.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        max_tool_rounds: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.model_name = model_name or settings.GEMINI_MODEL
        self.max_tool_rounds = max_tool_rounds or settings.MAX_TOOL_ROUNDS
        self.timeout_seconds = timeout_seconds or settings.MODEL_TIMEOUT_SECONDS
        self._client = None

        if not self.api_key:
            logger.warning("No GEMINI_API_KEY found. Conversation turns will fail.")

    @property
    def client(self) -> genai.Client:
        """Lazy load the Gemini client"""
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("GEMINI_API_KEY is not configured")
            self._client = genai.Client(api_key=self.api_key)
            logger.info(f"Initialized Gemini chat model: {self.model_name}")
        return self._client

    @staticmethod
    def _declarations(tools: Sequence[Any]) -> List[types.Tool]:
        if not tools:
            return []
        declarations = []
        for tool in tools:
            schema = tool.to_schema()
            parameters = schema["parameters"]
            declarations.append(types.FunctionDeclaration(
                name=schema["name"],
                description=schema["description"],
                parameters=to_gemini_schema(parameters) if parameters["properties"] else None,
            ))
        return [types.Tool(function_declarations=declarations)]

    @staticmethod
    def _history_contents(history: Optional[List[Any]]) -> List[types.Content]:
        contents = []
        for message in history or []:
            contents.append(types.Content(role=message.role, parts=[types.Part(text=message.content)]))
        return contents

    async def _generate_once(self, contents, config) -> types.GenerateContentResponse:
        try:
            return await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model_name,
                    contents=contents,
                    config=config,
                ),
                timeout=self.timeout_seconds,
            )
        except (asyncio.TimeoutError, ConfigurationError):
            raise
        except httpx.TimeoutException as e:
            # Transport timeouts are timeouts, not service failures
            raise asyncio.TimeoutError(f"gemini request timed out: {e}") from e
        except Exception as e:
            raise UpstreamServiceError("gemini", str(e)) from e

    async def generate(
        self,
        system_prompt,
        user_prompt,
        tools=(),
        safety_settings=None,
        history=None,
    ) -> ModelResponse:
        tools_by_name = {tool.name: tool for tool in tools}
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            tools=self._declarations(tools) or None,
            safety_settings=[
                types.SafetySetting(category=s["category"], threshold=s["threshold"])
                for s in (safety_settings or DEFAULT_SAFETY_SETTINGS)
            ],
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
        )
        contents = self._history_contents(history)
        contents.append(types.Content(role="user", parts=[types.Part(text=user_prompt)]))

        invocations: List[ToolInvocation] = []
        response = await self._generate_once(contents, config)

        for round_number in range(self.max_tool_rounds):
            calls = response.function_calls or []
            if not calls:
                break

            logger.info(f"[GEMINI] Round {round_number + 1}: {[c.name for c in calls]}")
            contents.append(response.candidates[0].content)
            parts = []
            for call in calls:
                args = dict(call.args or {})
                tool = tools_by_name.get(call.name)
                if tool is None:
                    output = f"Unknown tool: {call.name}"
                else:
                    output = await tool.invoke(**args)
                invocations.append(ToolInvocation(name=call.name, arguments=args, output=output))
                parts.append(types.Part.from_function_response(name=call.name, response={"result": output}))
            contents.append(types.Content(role="user", parts=parts))

            response = await self._generate_once(contents, config)
        else:
            if response.function_calls:
                logger.warning(f"[GEMINI] Stopped after {self.max_tool_rounds} tool rounds")

        return ModelResponse(text=response.text or "", tool_invocations=invocations)


# ============================================================================
# Structured generation (Hugging Face)
# ============================================================================

class HuggingFaceLLM:
    """
    LLM provider using Hugging Face Inference API
    """

    def __init__(
        self,
        model_name: str = None,
        api_key: str = None,
        temperature: float = None,
        max_tokens: int = None
    ):
        self.api_key = api_key or settings.HUGGINGFACE_API_KEY
        self.model_name = model_name or settings.LLM_MODEL
        self.temperature = temperature if temperature is not None else settings.LLM_TEMPERATURE
        self.max_tokens = max_tokens or settings.LLM_MAX_NEW_TOKENS

        if not self.api_key:
            logger.warning("No HUGGINGFACE_API_KEY found. LLM calls will fail.")

        self._client = None

    @property
    def client(self):
        """Lazy load the HF client"""
        if self._client is None:
            from langchain_huggingface import HuggingFaceEndpoint

            if not self.api_key:
                raise ConfigurationError("HUGGINGFACE_API_KEY is not configured")
            self._client = HuggingFaceEndpoint(
                repo_id=self.model_name,
                huggingfacehub_api_token=self.api_key,
                temperature=self.temperature,
                max_new_tokens=self.max_tokens,
            )
            logger.info(f"Initialized HuggingFace LLM: {self.model_name}")
        return self._client

    async def ainvoke(self, prompt: str) -> str:
        """Generate text from a prompt"""
        try:
            response = await self.client.ainvoke(prompt)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"LLM async invoke error: {e}")
            raise UpstreamServiceError("huggingface", str(e)) from e
        return response if isinstance(response, str) else str(response)

    async def generate_structured(
        self,
        prompt: str,
        schema: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Generate structured JSON output

        Args:
            prompt: Input prompt with JSON instructions
            schema: Example of the expected output shape

        Returns:
            Parsed JSON dict, or {} when the reply is not JSON
        """
        json_prompt = f"""{prompt}

IMPORTANT: Return ONLY valid JSON, no other text. Format:
{json.dumps(schema, indent=2)}"""

        response = await self.ainvoke(json_prompt)
        return parse_json_object(response)


def parse_json_object(response: str) -> Dict[str, Any]:
    """Pull a JSON object out of a model reply, tolerating markdown fences"""
    text = response.strip()
    if text.startswith("```"):
        text = text.split("```")[1]
        if text.startswith("json"):
            text = text[4:]
    text = text.strip()

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            logger.warning(f"Failed to parse JSON from response: {response[:200]}")
            return {}
        try:
            parsed = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse JSON from response: {response[:200]}")
            return {}

    return parsed if isinstance(parsed, dict) else {}


@lru_cache(maxsize=1)
def get_llm() -> HuggingFaceLLM:
    """Get cached structured-generation LLM"""
    return HuggingFaceLLM()


@lru_cache(maxsize=1)
def get_chat_model() -> GeminiChatModel:
    """Get cached chat model"""
    return GeminiChatModel()
