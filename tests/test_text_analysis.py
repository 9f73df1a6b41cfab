"""
Tests for topic extraction and web search detection
"""
import pytest

from buddy_ai.services.topic_extractor import extract_topics
from buddy_ai.services.web_search_detection import analyze_query


class TestTopicExtraction:
    """Vocabulary matching."""

    def test_whole_words_and_plurals(self):
        topics = extract_topics("How do Python classes and arrays work?", "Use a loop over the arrays.")
        assert topics == {"python", "class", "array", "loop"}

    def test_substrings_do_not_match(self):
        assert extract_topics("I enjoy sequels and rapids") == set()

    def test_custom_vocabulary(self):
        assert extract_topics("Graphs and trees", vocabulary=["graph", "tree", "heap"]) == {"graph", "tree"}

    def test_none_text_tolerated(self):
        assert extract_topics(None, "sql") == {"sql"}


class TestWebSearchDetection:
    """Time-sensitive message scoring."""

    @pytest.mark.parametrize("message", [
        "What are the latest JavaScript frameworks right now?",
        "Which is the best laptop for coding this year?",
        "What is the current bitcoin price today?",
    ])
    def test_time_sensitive_messages(self, message):
        signal = analyze_query(message)
        assert signal.should_search is True
        assert signal.confidence >= 0.6
        assert signal.reasons

    @pytest.mark.parametrize("message", [
        "Explain how recursion works",
        "Can you help me with my homework on fractions?",
    ])
    def test_evergreen_messages(self, message):
        assert analyze_query(message).should_search is False

    def test_confidence_capped(self):
        signal = analyze_query("latest news today: best top current trending prices this week, now, recently")
        assert signal.confidence == 1.0
