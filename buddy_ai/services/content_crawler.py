"""
Content Crawler Service

Fetches a web page and reduces it to bounded, clean body text for the
web search synthesizer. Fetch failures of any kind return None; callers
fall back to the search snippet.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

import httpx
from bs4 import BeautifulSoup, Comment
from readability import Document

from buddy_ai.config import settings

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ExtractedContent:
    """Clean text pulled from one page."""
    url: str
    title: str
    text: str
    length: int = 0

    def __post_init__(self):
        if not self.length:
            self.length = len(self.text)


# ============================================================================
# Extraction Rules
# ============================================================================

REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; BuddyAI/1.0; Educational Assistant)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

# Regions that never carry article text
NOISE_SELECTORS = [
    "script", "style", "nav", "header", "footer", "aside", "iframe",
    ".advertisement", ".ads", ".sidebar", ".menu", ".navigation",
    ".breadcrumb", ".social-share", ".comments", ".related-posts",
    ".popup", ".modal",
]

# Most specific containers first
CONTENT_SELECTORS = [
    "main article",
    "main .content",
    "main",
    "article .content",
    "article",
    '[role="main"]',
    ".main-content",
    ".post-content",
    ".entry-content",
    ".article-content",
    ".content-body",
    ".markdown-body",
    ".post-body",
    ".content",
]

BOILERPLATE_PHRASES = [
    "Skip to main content",
    "Cookie policy",
    "Privacy policy",
    "Terms of service",
    "Subscribe to newsletter",
    "Follow us on",
]

MIN_SELECTOR_CHARS = 100
MIN_PARAGRAPH_CHARS = 20
MAX_FALLBACK_PARAGRAPHS = 10
SENTENCE_CUT_RATIO = 0.8


# ============================================================================
# Content Fetching
# ============================================================================

async def fetch_page_content(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
    max_chars: Optional[int] = None,
) -> Optional[ExtractedContent]:
    """
    Fetch a page and extract its main text.

    Args:
        url: Page URL
        client: Shared AsyncClient (a short-lived one is created if omitted)
        timeout: Request timeout in seconds
        max_chars: Cap on returned text length

    Returns:
        ExtractedContent, or None on timeout, non-2xx, non-HTML or any
        other failure
    """
    timeout = timeout or settings.PAGE_FETCH_TIMEOUT_SECONDS
    max_chars = max_chars or settings.EXTRACTED_TEXT_MAX_CHARS

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
                response = await own_client.get(url, headers=REQUEST_HEADERS)
        else:
            response = await client.get(url, headers=REQUEST_HEADERS, timeout=timeout)
    except httpx.TimeoutException:
        logger.warning(f"[CRAWLER] Timeout fetching {url}")
        return None
    except Exception as e:
        logger.warning(f"[CRAWLER] Failed to fetch {url}: {e}")
        return None

    if not response.is_success:
        logger.info(f"[CRAWLER] {url} returned HTTP {response.status_code}")
        return None

    content_type = response.headers.get("content-type", "")
    if "text/html" not in content_type.lower():
        logger.info(f"[CRAWLER] Skipping non-HTML content at {url} ({content_type})")
        return None

    try:
        content = extract_content(response.text, url, max_chars=max_chars)
    except Exception as e:
        logger.warning(f"[CRAWLER] Extraction failed for {url}: {e}")
        return None

    if content:
        logger.debug(f"[CRAWLER] Extracted {content.length} chars from {url}")
    return content


# ============================================================================
# Content Extraction
# ============================================================================

def extract_content(html: str, url: str, max_chars: int = 3000) -> Optional[ExtractedContent]:
    """
    Reduce raw HTML to clean body text.

    Returns None when nothing readable is left after cleanup.
    """
    soup = BeautifulSoup(html, "lxml")
    title = _extract_title(html, soup)

    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    for element in soup.select(", ".join(NOISE_SELECTORS)):
        element.decompose()

    text = _select_body_text(soup)
    text = clean_text(text)
    if not text:
        return None

    text = truncate_text(text, max_chars)
    return ExtractedContent(url=url, title=title, text=text)


def _extract_title(html: str, soup: BeautifulSoup) -> str:
    try:
        title = Document(html).short_title()
        if title and title.strip() and title.strip() != "[no-title]":
            return title.strip()
    except Exception as e:
        logger.debug(f"[CRAWLER] Readability title lookup failed: {e}")

    if soup.title and soup.title.string:
        return soup.title.string.strip()
    h1 = soup.find("h1")
    return h1.get_text(strip=True) if h1 else ""


def _select_body_text(soup: BeautifulSoup) -> str:
    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = element.get_text(" ", strip=True)
        if len(text) > MIN_SELECTOR_CHARS:
            return text

    paragraphs = [
        p.get_text(" ", strip=True) for p in soup.find_all("p")
    ]
    paragraphs = [p for p in paragraphs if len(p) > MIN_PARAGRAPH_CHARS]
    return " ".join(_longest_in_order(paragraphs, MAX_FALLBACK_PARAGRAPHS))


def _longest_in_order(items: List[str], limit: int) -> List[str]:
    """Keep the `limit` longest items without reordering them"""
    if len(items) <= limit:
        return items
    keep = sorted(range(len(items)), key=lambda i: len(items[i]), reverse=True)[:limit]
    return [items[i] for i in sorted(keep)]


def clean_text(text: str) -> str:
    """Collapse whitespace and strip boilerplate phrases"""
    text = re.sub(r"\s+", " ", text)
    for phrase in BOILERPLATE_PHRASES:
        text = re.sub(re.escape(phrase), "", text, flags=re.IGNORECASE)
    return re.sub(r"\s+", " ", text).strip()


def truncate_text(text: str, max_chars: int) -> str:
    """
    Cap text at max_chars.

    Cuts at the last full stop when it falls past 80% of the cap,
    otherwise hard-cuts and appends "...".
    """
    if len(text) <= max_chars:
        return text

    truncated = text[:max_chars]
    last_period = truncated.rfind(".")
    if last_period > max_chars * SENTENCE_CUT_RATIO:
        return truncated[:last_period + 1]
    return truncated + "..."
