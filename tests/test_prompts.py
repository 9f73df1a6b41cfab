"""
Tests for persona resolution and turn prompt assembly
"""
import pytest

from buddy_ai.schemas.buddy import HistoryMessage, Persona
from buddy_ai.utils.prompts import (
    BUDDY_PREAMBLE,
    LESSON_CONTEXT_INSTRUCTION,
    MENTOR_PREAMBLE,
    WEB_SEARCH_HINT,
    build_turn_prompt,
    render_history,
    resolve_persona,
)


class TestPersona:
    """Persona lookup."""

    @pytest.mark.parametrize("name,persona", [
        (None, Persona.BUDDY),
        ("", Persona.BUDDY),
        ("default", Persona.BUDDY),
        ("buddy", Persona.BUDDY),
        ("Mentor", Persona.MENTOR),
        ("expert", Persona.BUDDY),
    ])
    def test_resolve(self, name, persona):
        assert resolve_persona(name) == persona


class TestTurnPrompt:
    """One prompt per turn."""

    def test_minimal_prompt(self):
        prompt = build_turn_prompt("What is a closure?")

        assert prompt.system_prompt == BUDDY_PREAMBLE
        assert prompt.user_prompt == "Human: What is a closure?\n\nAssistant:"

    def test_sections_in_order(self):
        history = [
            HistoryMessage(role="user", content="Hi"),
            HistoryMessage(role="model", content="Hello! What are we studying?"),
        ]
        prompt = build_turn_prompt(
            "Explain decorators",
            persona_name="mentor",
            history=history,
            lesson_context="Decorators wrap functions.",
            web_search_hint=True,
        )

        assert prompt.persona == Persona.MENTOR
        assert prompt.system_prompt == f"{MENTOR_PREAMBLE}\n{LESSON_CONTEXT_INSTRUCTION}"

        text = prompt.user_prompt
        lesson = text.index("### Current lesson")
        transcript = text.index("### Conversation so far")
        current = text.index("Human: Explain decorators")
        assert lesson < transcript < current
        assert "Assistant: Hello! What are we studying?" in text
        assert WEB_SEARCH_HINT in text
        assert text.endswith("Assistant:")

    def test_render_history_window(self):
        history = [HistoryMessage(role="user", content=f"m{i}") for i in range(12)]

        rendered = render_history(history, max_messages=10)

        assert rendered.splitlines()[0] == "Human: m2"
        assert len(rendered.splitlines()) == 10

    def test_render_history_disabled(self):
        assert render_history([HistoryMessage(role="user", content="x")], max_messages=0) == ""
