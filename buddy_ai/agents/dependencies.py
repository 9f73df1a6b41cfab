"""
Shared service dependencies for capabilities

One BuddyServices instance lives as long as the orchestrator and is
shared by every turn. It holds clients only; nothing caller-specific
belongs here (that lives in TurnContext).
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from buddy_ai.config import settings
from buddy_ai.services.document_store import DocumentStore, MongoDocumentStore
from buddy_ai.services.image_service import ImageGenerator, VisionClient
from buddy_ai.services.llm_provider import get_llm
from buddy_ai.services.search_api import GoogleSearchClient
from buddy_ai.services.web_index import WebContentIndex

logger = logging.getLogger(__name__)


@dataclass
class BuddyServices:
    """Clients the capabilities call out to"""
    llm: Any
    store: DocumentStore
    search_client: GoogleSearchClient
    web_index: Optional[WebContentIndex] = None
    image_generator: Optional[ImageGenerator] = None
    vision_client: Optional[VisionClient] = None
    # Used for page fetches; None means one short-lived client per page
    http_client: Optional[Any] = None
    max_search_results: int = field(default_factory=lambda: settings.WEB_SEARCH_MAX_RESULTS)
    page_timeout_seconds: float = field(default_factory=lambda: settings.PAGE_FETCH_TIMEOUT_SECONDS)
    related_timeout_seconds: float = field(default_factory=lambda: settings.RELATED_CONTENT_TIMEOUT_SECONDS)


def create_default_services() -> BuddyServices:
    """Production wiring from settings"""
    logger.info("[SERVICES] Creating default Buddy AI services")
    return BuddyServices(
        llm=get_llm(),
        store=MongoDocumentStore(),
        search_client=GoogleSearchClient(),
        web_index=WebContentIndex(),
        image_generator=ImageGenerator(),
        vision_client=VisionClient(),
    )
