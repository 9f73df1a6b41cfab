"""
Web Search Detection

Scores how likely a message needs fresh information from the web. The
orchestrator uses the score to nudge the model toward searchTheWeb; the
model still decides whether to call it.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

TRIGGER_THRESHOLD = 0.6

TIME_SENSITIVE_TERMS = [
    "today", "latest", "current", "breaking", "this week", "this month", "this year",
    "recent", "recently", "now", "currently", "up to date", "updated", "new",
    "trending", "popular", "hot", "viral", "live", "real-time", "fresh",
]

COMPARATIVE_TERMS = [
    "best", "top", "vs", "versus", "compare", "comparison", "better", "worse",
    "ranking", "ranked", "list", "alternatives", "options", "choices",
]

CURRENT_DATA_TERMS = [
    "price", "cost", "stock", "availability", "release date", "version",
    "update", "changelog", "news", "announcement", "launch", "beta",
]

TRENDING_EVENT_PATTERNS = [
    re.compile(r"\b(conference|summit|event|expo|meetup)\s+\d{4}\b", re.IGNORECASE),
    re.compile(r"\b(election|vote|voting|poll)\b", re.IGNORECASE),
    re.compile(r"\b(weather|temperature|forecast|storm|hurricane)\b", re.IGNORECASE),
    re.compile(r"\b(sports|game|match|tournament|championship|score)\b", re.IGNORECASE),
    re.compile(r"\b(stock|market|trading|crypto|bitcoin|ethereum)\b", re.IGNORECASE),
]

QUESTION_OPENERS = re.compile(r"^(what are|what is|which|how many|when did|where can)", re.IGNORECASE)
SUPERLATIVES = re.compile(r"\b(best|worst|fastest|slowest|cheapest|most|least)\b", re.IGNORECASE)


@dataclass
class WebSearchSignal:
    should_search: bool
    confidence: float
    reasons: List[str] = field(default_factory=list)


def _matching_terms(text: str, terms: List[str]) -> List[str]:
    return [t for t in terms if re.search(rf"\b{re.escape(t)}\b", text)]


def analyze_query(message: str) -> WebSearchSignal:
    """Score a message for time-sensitive or comparative intent (0.0 to 1.0)"""
    lowered = message.lower()
    reasons = []
    score = 0.0

    time_terms = _matching_terms(lowered, TIME_SENSITIVE_TERMS)
    if time_terms:
        score += 0.3 * len(time_terms)
        reasons.append(f"time-sensitive terms: {', '.join(time_terms)}")

    this_year = datetime.utcnow().year
    years = [str(y) for y in range(2020, this_year + 2) if str(y) in message]
    if years:
        score += 0.25 * len(years)
        reasons.append(f"recent years: {', '.join(years)}")

    events = [p.search(message).group(0) for p in TRENDING_EVENT_PATTERNS if p.search(message)]
    if events:
        score += 0.25 * len(events)
        reasons.append(f"trending events: {', '.join(events)}")

    comparative = _matching_terms(lowered, COMPARATIVE_TERMS)
    if comparative:
        score += 0.15 * len(comparative)
        reasons.append(f"comparative terms: {', '.join(comparative)}")

    current_data = _matching_terms(lowered, CURRENT_DATA_TERMS)
    if current_data:
        score += 0.15 * len(current_data)
        reasons.append(f"current data requests: {', '.join(current_data)}")

    if QUESTION_OPENERS.search(message.strip()):
        score += 0.1
    if SUPERLATIVES.search(message):
        score += 0.2

    confidence = min(score, 1.0)
    return WebSearchSignal(
        should_search=confidence >= TRIGGER_THRESHOLD,
        confidence=confidence,
        reasons=reasons,
    )
