"""
Buddy AI - conversational study companion turn engine

Usage:
    from buddy_ai.agents.orchestrator import get_orchestrator
    from buddy_ai.schemas import ConversationTurnRequest

    result = await get_orchestrator().run_turn(
        ConversationTurnRequest(user_message="explain recursion", user_id="u1")
    )
"""
__version__ = "1.0.0"
