"""
Result Synthesizer

Turns the text of ranked search results into a cited markdown answer.
Everything here is pure: pattern lists are plain module-level
configuration and the functions take and return simple values, so the
synthesis can be tested without any network access.
"""
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from buddy_ai.services.search_api import SearchResult


# ============================================================================
# Pattern Configuration
# ============================================================================

@dataclass(frozen=True)
class EntityPattern:
    """
    A regex that yields a (name, description) pair.

    description_span names the first and last group of the description;
    the description is the sentence text between them.
    """
    regex: re.Pattern
    name_group: int
    description_span: Tuple[int, int]


ENTITY_PATTERNS: List[EntityPattern] = [
    # "Quicksort is an algorithm that divides the input"
    EntityPattern(
        re.compile(r"([A-Z][a-zA-Z\s]+?)\s+is\s+(?:a|an)\s+([^.]+?)(?:that|which)\s+([^.]+)", re.IGNORECASE),
        name_group=1,
        description_span=(2, 3),
    ),
    # "Merge sort: stable and predictable"
    EntityPattern(
        re.compile(r"([A-Z][a-zA-Z\s]+?):\s*([^.]+)", re.IGNORECASE),
        name_group=1,
        description_span=(2, 2),
    ),
    # "**Heap sort**: in-place with guaranteed bounds"
    EntityPattern(
        re.compile(r"\*\*([^*]+)\*\*[:\s]*([^.]+)", re.IGNORECASE),
        name_group=1,
        description_span=(2, 2),
    ),
    # "1. Timsort - hybrid used by Python"
    EntityPattern(
        re.compile(r"(\d+\.\s*)?([A-Z][a-zA-Z\s]+?)(?:\s*-\s*|\s*:\s*)([^.]+)", re.IGNORECASE),
        name_group=2,
        description_span=(3, 3),
    ),
]

INSIGHT_PATTERNS: List[re.Pattern] = [
    re.compile(
        r"(?:These|This|The|Most|Many|Some)\s+[^.]+?(?:provide|offer|help|enable|allow|transform|improve)[^.]+",
        re.IGNORECASE,
    ),
    re.compile(r"(?:Key|Main|Primary|Important)\s+(?:features|benefits|advantages|considerations)[^.]+", re.IGNORECASE),
    re.compile(r"(?:Popular|Leading|Top|Best)\s+(?:choices|options|tools|solutions)[^.]+", re.IGNORECASE),
]

SENTENCE_SPLIT = re.compile(r"[.!?]+")

MAX_ENTITIES = 8
MAX_INSIGHTS = 3
MIN_ENTITY_SENTENCE_CHARS = 20
MIN_INSIGHT_SENTENCE_CHARS = 30
MAX_NAME_CHARS = 50
MAX_DESCRIPTION_CHARS = 200
MIN_NAME_CHARS = 2
MIN_DESCRIPTION_CHARS = 10
MIN_INSIGHT_CHARS = 50
MAX_INSIGHT_CHARS = 300

# Ordered: first match wins
DOMAIN_ICONS = [
    (("github.com",), "💻"),
    (("stackoverflow.com", "stackexchange.com"), "❓"),
    (("medium.com",), "📰"),
    (("dev.to",), "👨‍💻"),
    (("docs", "documentation"), "📋"),
    (("wikipedia.org",), "📚"),
    (("reddit.com",), "💬"),
    (("youtube.com",), "📺"),
    (("blog",), "✍️"),
]
DEFAULT_DOMAIN_ICON = "🌐"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class Entity:
    name: str
    description: str
    sources: List[int] = field(default_factory=list)


@dataclass
class Insight:
    text: str
    sources: List[int] = field(default_factory=list)


# ============================================================================
# Extraction
# ============================================================================

def _sentences(text: str, min_chars: int) -> List[str]:
    return [s for s in SENTENCE_SPLIT.split(text) if len(s.strip()) > min_chars]


def extract_key_entities(sources: Iterable[Tuple[str, int]]) -> List[Entity]:
    """
    Extract named entities with descriptions from (text, rank) pairs.

    Keeps the longest description seen for each distinct name and the
    ranks of every source that mentioned it. Returns at most 8 entities,
    most-supported first.
    """
    entities = {}

    for text, rank in sources:
        for sentence in _sentences(text or "", MIN_ENTITY_SENTENCE_CHARS):
            for pattern in ENTITY_PATTERNS:
                for match in pattern.regex.finditer(sentence):
                    name = match.group(pattern.name_group)
                    first, last = pattern.description_span
                    if name is None or match.group(first) is None or match.group(last) is None:
                        continue
                    description = sentence[match.start(first):match.end(last)]

                    if len(name) >= MAX_NAME_CHARS or len(description) >= MAX_DESCRIPTION_CHARS:
                        continue

                    clean_name = re.sub(r"^\d+\.\s*", "", name.strip())
                    clean_description = description.strip()
                    if len(clean_name) <= MIN_NAME_CHARS or len(clean_description) <= MIN_DESCRIPTION_CHARS:
                        continue

                    entity = entities.setdefault(clean_name, Entity(name=clean_name, description=""))
                    if len(clean_description) > len(entity.description):
                        entity.description = clean_description
                    if rank not in entity.sources:
                        entity.sources.append(rank)

    # sorted() is stable so ties keep first-seen order
    ranked = sorted(entities.values(), key=lambda e: len(e.sources), reverse=True)
    return ranked[:MAX_ENTITIES]


def extract_key_insights(sources: Iterable[Tuple[str, int]]) -> List[Insight]:
    """Extract up to 3 case-insensitively unique insight sentences"""
    insights: List[Insight] = []
    seen = set()

    for text, rank in sources:
        for sentence in _sentences(text or "", MIN_INSIGHT_SENTENCE_CHARS):
            for pattern in INSIGHT_PATTERNS:
                for match in pattern.finditer(sentence):
                    candidate = match.group(0)
                    if not (MIN_INSIGHT_CHARS < len(candidate) < MAX_INSIGHT_CHARS):
                        continue
                    candidate = candidate.strip()
                    key = candidate.lower()
                    if key in seen:
                        continue
                    seen.add(key)
                    insights.append(Insight(text=candidate, sources=[rank]))

    return insights[:MAX_INSIGHTS]


# ============================================================================
# Rendering
# ============================================================================

def _citations(ranks: Sequence[int]) -> str:
    return "".join(f"[{rank}]" for rank in ranks)


def synthesize_answer(query: str, results: Sequence[SearchResult]) -> str:
    """Build the cited findings section for a set of search results"""
    header = f'Based on my search for "{query}", here\'s what I found from **{len(results)} current sources**:\n\n'

    pairs = [(r.best_text, r.rank) for r in results]
    entities = extract_key_entities(pairs)
    insights = extract_key_insights(pairs)

    body = ""
    if entities:
        body += "Here are the key findings:\n\n"
        for i, entity in enumerate(entities, 1):
            body += f"**{i}. {entity.name}**: {entity.description} {_citations(entity.sources)}\n\n"

    if insights:
        body += " ".join(f"{insight.text} {_citations(insight.sources)}" for insight in insights) + "\n\n"

    if not body:
        body = "I couldn't pull out specific findings from these pages, but the sources below cover the topic.\n\n"

    return header + body


def domain_icon(domain: str) -> str:
    d = (domain or "").lower()
    for needles, icon in DOMAIN_ICONS:
        if any(needle in d for needle in needles):
            return icon
    return DEFAULT_DOMAIN_ICON


def quality_icon(extracted_length: Optional[int]) -> str:
    """Glyph for how much page text was extracted"""
    if not extracted_length:
        return "🔴"
    if extracted_length > 500:
        return "🟢"
    if extracted_length > 200:
        return "🟡"
    return "🟠"


def render_sources(results: Sequence[SearchResult]) -> str:
    lines = [
        f"{quality_icon(r.extracted_length)} **[{r.rank}]** {domain_icon(r.domain)} [{r.title}]({r.link})"
        for r in results
    ]
    return "\n\n### Sources\n\n" + "\n".join(lines)


def render_related_content(related: Sequence[dict]) -> str:
    """
    Related-content section from semantic index hits.

    Each hit is a dict with title, url, content and similarity keys.
    Returns "" when there are no hits.
    """
    if not related:
        return ""

    section = "\n\n### 🧠 Related Content (Semantic Search)\n\n"
    section += f"Found {len(related)} semantically related content pieces:\n\n"
    for i, hit in enumerate(related, 1):
        similarity = round(hit.get("similarity", 0.0) * 100)
        section += f"**{i}.** {hit.get('title') or 'Untitled'} ({similarity}% similar)\n"
        if hit.get("url"):
            section += f"🔗 {hit['url']}\n"
        section += f"📄 {(hit.get('content') or '')[:100]}...\n\n"
    return section


def render_search_report(query: str, results: Sequence[SearchResult]) -> str:
    total = len(results)
    extracted = sum(1 for r in results if r.extracted_text)
    success_rate = round(extracted / total * 100) if total else 0
    return (
        "\n\n---\n\n### 🔍 Search Report\n\n"
        f'**Query:** "{query}"\n'
        f"**Sources Analyzed:** {total} results\n"
        f"**Content Extracted:** {extracted}/{total} pages\n"
        f"**Success Rate:** {success_rate}%\n"
    )
