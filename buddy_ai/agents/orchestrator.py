"""
Buddy Orchestrator - one conversation turn as a LangGraph workflow

    validate ──▶ [turn_scope]
                   build_prompt ──▶ generate ──▶ resolve_tools ──▶ extract_topics ──▶ follow_ups
                 [context cleared]
    ──▶ ConversationTurnResult

An empty message is rejected before the graph runs, so the model is
never called for it. Anything raised inside the graph is classified
and returned as an error result; run_turn itself does not raise.
"""
import logging
from typing import Awaitable, Callable, List, Optional, TypedDict

from langgraph.graph import END, StateGraph

from buddy_ai.agents.dependencies import BuddyServices, create_default_services
from buddy_ai.agents.errors import TurnValidationError, classify_error, describe_error
from buddy_ai.agents.tools import ToolRegistry, build_capability_registry
from buddy_ai.agents.turn_context import TurnContext, turn_scope
from buddy_ai.config import settings
from buddy_ai.schemas.buddy import ConversationTurnRequest, ConversationTurnResult
from buddy_ai.services.followup_generator import generate_follow_up_suggestions
from buddy_ai.services.llm_provider import DEFAULT_SAFETY_SETTINGS, ChatModel, ModelResponse, get_chat_model
from buddy_ai.services.topic_extractor import extract_topics
from buddy_ai.services.web_search_detection import analyze_query
from buddy_ai.utils.logging_config import setup_logging
from buddy_ai.utils.prompts import build_turn_prompt

logger = logging.getLogger(__name__)

MAX_FOLLOW_UPS = 3

EMPTY_RESPONSE_FALLBACK = (
    "I wasn't able to put together an answer to that. Could you rephrase it or add a little more detail?"
)

FollowUpGenerator = Callable[..., Awaitable[List[str]]]


# ============================================================================
# State Definition
# ============================================================================

class TurnState(TypedDict):
    """State passed through the turn graph"""
    # Input
    request: ConversationTurnRequest
    context: TurnContext

    # Prompt
    system_prompt: str
    user_prompt: str
    persona: str

    # Model
    model_response: Optional[ModelResponse]
    response_text: str

    # Output
    tools_invoked: List[str]
    extracted_topics: List[str]
    follow_up_suggestions: List[str]


# ============================================================================
# Orchestrator
# ============================================================================

class BuddyOrchestrator:
    """
    Entry point for Buddy AI conversation turns

    Usage:
        orchestrator = BuddyOrchestrator()
        result = await orchestrator.run_turn(ConversationTurnRequest(user_message="explain recursion"))
    """

    def __init__(
        self,
        chat_model: Optional[ChatModel] = None,
        services: Optional[BuddyServices] = None,
        registry: Optional[ToolRegistry] = None,
        follow_up_generator: Optional[FollowUpGenerator] = None,
        max_history: Optional[int] = None,
    ):
        self.chat_model = chat_model or get_chat_model()
        self.services = services or create_default_services()
        self.registry = registry or build_capability_registry(self.services)
        self.follow_up_generator = follow_up_generator or generate_follow_up_suggestions
        self.max_history = max_history if max_history is not None else settings.MAX_HISTORY_MESSAGES
        self.graph = self._build_graph()
        logger.info(f"[ORCHESTRATOR] Initialized with {len(self.registry)} capabilities")

    # ------------------------------------------------------------------
    # Graph nodes
    # ------------------------------------------------------------------

    async def build_prompt_node(self, state: TurnState) -> TurnState:
        request = state["request"]
        signal = analyze_query(request.user_message)
        if signal.should_search:
            logger.debug(f"[ORCHESTRATOR] Web search hint ({signal.confidence:.2f}): {signal.reasons}")

        prompt = build_turn_prompt(
            user_message=request.user_message,
            persona_name=request.persona,
            history=request.history,
            lesson_context=request.lesson_context,
            max_history=self.max_history,
            web_search_hint=signal.should_search,
        )
        state["system_prompt"] = prompt.system_prompt
        state["user_prompt"] = prompt.user_prompt
        state["persona"] = prompt.persona.value
        return state

    async def generate_node(self, state: TurnState) -> TurnState:
        context = state["context"]
        response = await self.chat_model.generate(
            system_prompt=state["system_prompt"],
            user_prompt=state["user_prompt"],
            tools=self.registry.bind(context),
            safety_settings=DEFAULT_SAFETY_SETTINGS,
        )
        state["model_response"] = response
        state["response_text"] = (response.text or "").strip() or EMPTY_RESPONSE_FALLBACK
        return state

    async def resolve_tools_node(self, state: TurnState) -> TurnState:
        response = state["model_response"]
        context = state["context"]
        if response is not None and response.tool_invocations is not None:
            tools = [invocation.name for invocation in response.tool_invocations]
        elif context.tools_invoked:
            tools = list(context.tools_invoked)
        else:
            tools = self.registry.infer_tools_from_text(state["response_text"])
        state["tools_invoked"] = tools
        return state

    async def extract_topics_node(self, state: TurnState) -> TurnState:
        topics = extract_topics(state["request"].user_message, state["response_text"])
        state["extracted_topics"] = sorted(topics)
        return state

    async def follow_ups_node(self, state: TurnState) -> TurnState:
        try:
            suggestions = await self.follow_up_generator(
                state["request"].user_message,
                state["response_text"],
            )
        except Exception as e:
            logger.warning(f"[ORCHESTRATOR] Follow-up generation failed: {e}")
            suggestions = []
        state["follow_up_suggestions"] = list(suggestions or [])[:MAX_FOLLOW_UPS]
        return state

    def _build_graph(self):
        """Build the LangGraph turn workflow"""
        workflow = StateGraph(TurnState)

        workflow.add_node("build_prompt", self.build_prompt_node)
        workflow.add_node("generate", self.generate_node)
        workflow.add_node("resolve_tools", self.resolve_tools_node)
        workflow.add_node("extract_topics", self.extract_topics_node)
        workflow.add_node("follow_ups", self.follow_ups_node)

        workflow.set_entry_point("build_prompt")
        workflow.add_edge("build_prompt", "generate")
        workflow.add_edge("generate", "resolve_tools")
        workflow.add_edge("resolve_tools", "extract_topics")
        workflow.add_edge("extract_topics", "follow_ups")
        workflow.add_edge("follow_ups", END)

        return workflow.compile()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run_turn(self, request: ConversationTurnRequest) -> ConversationTurnResult:
        """
        Run one conversation turn.

        Returns:
            ConversationTurnResult; failures come back with is_error=True
        """
        if not request.user_message or not request.user_message.strip():
            logger.info("[ORCHESTRATOR] Rejected empty message")
            return self._error_result(TurnValidationError("Empty message"))

        try:
            async with turn_scope(request) as context:
                logger.info(
                    f"[ORCHESTRATOR] Turn {context.request_id} for caller={context.caller_id} "
                    f"persona={request.persona or 'default'}"
                )
                initial_state: TurnState = {
                    "request": request,
                    "context": context,
                    "system_prompt": "",
                    "user_prompt": "",
                    "persona": "",
                    "model_response": None,
                    "response_text": "",
                    "tools_invoked": [],
                    "extracted_topics": [],
                    "follow_up_suggestions": [],
                }
                final_state = await self.graph.ainvoke(initial_state)
        except Exception as e:
            logger.error(f"[ORCHESTRATOR] Turn failed: {e}", exc_info=True)
            return self._error_result(e)

        logger.info(f"[ORCHESTRATOR] Turn complete, tools={final_state['tools_invoked']}")
        return ConversationTurnResult(
            response_text=final_state["response_text"],
            follow_up_suggestions=final_state["follow_up_suggestions"],
            extracted_topics=set(final_state["extracted_topics"]),
            tools_invoked=final_state["tools_invoked"],
        )

    @staticmethod
    def _error_result(error: BaseException) -> ConversationTurnResult:
        category = classify_error(error)
        described = describe_error(category)
        return ConversationTurnResult(
            response_text=described.message,
            is_error=True,
            error_category=category,
            suggested_actions=list(described.suggested_actions),
        )


# Singleton
_orchestrator: Optional[BuddyOrchestrator] = None


def get_orchestrator() -> BuddyOrchestrator:
    """Get or create the orchestrator singleton, configuring logging on first use"""
    global _orchestrator
    if _orchestrator is None:
        setup_logging()
        _orchestrator = BuddyOrchestrator()
    return _orchestrator


async def run_turn(request: ConversationTurnRequest) -> ConversationTurnResult:
    """Run a turn on the shared orchestrator"""
    return await get_orchestrator().run_turn(request)
