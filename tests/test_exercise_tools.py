"""
Tests for createCustomExercise and the exercise generator

Test Scenarios:
1. MCQ with an answer outside its options is repaired and persisted
2. No caller identity - nothing generated or saved
3. Malformed generation - explanatory string, nothing saved
4. Store failure - explanatory string
"""
import logging

import pytest
from unittest.mock import AsyncMock

from buddy_ai.agents.errors import MalformedGenerationError, UpstreamServiceError
from buddy_ai.agents.tools.exercise_tools import (
    EXERCISES_COLLECTION,
    LOGIN_REQUIRED_MESSAGE,
    _create_custom_exercise,
)
from buddy_ai.agents.turn_context import TurnContext
from buddy_ai.schemas.exercise import FillInTheBlanksExercise, McqExercise
from buddy_ai.services.exercise_generator import parse_exercise
from buddy_ai.services.llm_provider import parse_json_object


MCQ_WITH_BAD_ANSWER = {
    "type": "mcq",
    "category": "code",
    "difficulty": 2,
    "question": "Which sort is stable?",
    "options": ["Merge sort", "Quicksort", "Heap sort", "Selection sort"],
    "correct_answer": "Bubble sort",
    "explanation": "Merge sort keeps equal keys in order.",
    "hint": "Think about equal keys.",
    "tags": ["sorting", "algorithms"],
}


# ============================================================================
# Capability Tests
# ============================================================================

class TestCreateCustomExercise:
    """createCustomExercise end to end with a fake model and store."""

    @pytest.mark.asyncio
    async def test_mcq_repaired_and_persisted(self, services, fake_llm, store, caplog):
        fake_llm.response = MCQ_WITH_BAD_ANSWER
        ctx = TurnContext(caller_id="student-1")

        with caplog.at_level(logging.WARNING):
            result = await _create_custom_exercise(ctx, "a stable sorting question", services=services)

        assert "Exercise Created Successfully" in result
        assert "Which sort is stable?" in result

        saved = await store.query(EXERCISES_COLLECTION, {"user_id": "student-1"})
        assert len(saved) == 1
        assert saved[0]["correct_answer"] == "Merge sort"
        assert saved[0]["is_custom"] is True
        assert saved[0]["lesson_id"] == "custom"
        assert "not in options" in caplog.text

    @pytest.mark.asyncio
    async def test_requires_caller(self, services, fake_llm, store):
        fake_llm.response = MCQ_WITH_BAD_ANSWER

        result = await _create_custom_exercise(TurnContext(), "anything", services=services)

        assert result == LOGIN_REQUIRED_MESSAGE
        assert fake_llm.prompts == []
        assert await store.query(EXERCISES_COLLECTION, {}) == []

    @pytest.mark.asyncio
    async def test_malformed_generation_not_saved(self, services, fake_llm, store):
        fake_llm.response = {"type": "mcq", "question": "Missing options"}

        result = await _create_custom_exercise(TurnContext(caller_id="u1"), "quiz me", services=services)

        assert "didn't save it" in result
        assert await store.query(EXERCISES_COLLECTION, {}) == []

    @pytest.mark.asyncio
    async def test_store_failure_reported(self, services, fake_llm):
        fake_llm.response = MCQ_WITH_BAD_ANSWER
        services.store.create = AsyncMock(side_effect=UpstreamServiceError("document store", "down"))

        result = await _create_custom_exercise(TurnContext(caller_id="u1"), "quiz me", services=services)

        assert "couldn't save it" in result
        assert "Which sort is stable?" in result

    @pytest.mark.asyncio
    async def test_fill_in_the_blanks_preview(self, services, fake_llm):
        fake_llm.response = {
            "type": "fill_in_the_blanks",
            "question_parts": ["A list comprehension is wrapped in", "brackets."],
            "correct_answers": ["square"],
        }

        result = await _create_custom_exercise(TurnContext(caller_id="u1"), "blanks", services=services)

        assert "A list comprehension is wrapped in ___ brackets." in result
        assert "fill in the blanks exercise" in result


# ============================================================================
# Parsing Tests
# ============================================================================

class TestParseExercise:
    """Validation against the exercise union."""

    def test_valid_mcq_unchanged(self):
        data = dict(MCQ_WITH_BAD_ANSWER, correct_answer="Merge sort")
        exercise = parse_exercise(data)
        assert isinstance(exercise, McqExercise)
        assert exercise.correct_answer == "Merge sort"

    def test_fill_in_the_blanks(self):
        exercise = parse_exercise({
            "type": "fill_in_the_blanks",
            "question_parts": ["x = ", " + 1"],
            "correct_answers": ["y"],
            "difficulty": 1,
        })
        assert isinstance(exercise, FillInTheBlanksExercise)

    @pytest.mark.parametrize("data", [
        {},
        {"type": "essay", "question": "?"},
        {"type": "true_false", "question": "Is 1 > 2?"},
        {"type": "mcq", "question": "q", "options": ["a", "b"], "correct_answer": "a", "difficulty": 7},
    ])
    def test_invalid_raises(self, data):
        with pytest.raises(MalformedGenerationError):
            parse_exercise(data)


class TestParseJsonObject:
    """Tolerant JSON parsing of model replies."""

    def test_fenced_json(self):
        assert parse_json_object('```json\n{"a": 1}\n```') == {"a": 1}

    def test_json_with_chatter(self):
        assert parse_json_object('Sure! Here it is: {"a": [1, 2]} Hope that helps.') == {"a": [1, 2]}

    @pytest.mark.parametrize("text", ["not json at all", "[1, 2, 3]", "{broken: json"])
    def test_unusable_returns_empty(self, text):
        assert parse_json_object(text) == {}
