"""
Semantic Web Content Index

Long-lived Qdrant collection of pages extracted during web searches.
Writes are scheduled in the background and never block or fail a turn;
related-content lookups are best-effort and return [] on any error.
"""
import asyncio
import hashlib
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from qdrant_client import QdrantClient
from qdrant_client.models import Distance, FieldCondition, Filter, MatchValue, PointStruct, VectorParams
from sentence_transformers import SentenceTransformer

from buddy_ai.config import settings

logger = logging.getLogger(__name__)


@dataclass
class IndexableDocument:
    """An extracted page ready for indexing"""
    title: str
    content: str
    url: str
    domain: str
    quality: str  # "high", "medium", "low"


def content_quality(length: int) -> str:
    if length > 500:
        return "high"
    if length > 200:
        return "medium"
    return "low"


class WebContentIndex:
    """
    Qdrant-backed vector index of web content.

    The client and embedding model are created on first use so that
    constructing the index costs nothing when web search is never called.
    """

    def __init__(
        self,
        client: Optional[QdrantClient] = None,
        embedding_model: Optional[SentenceTransformer] = None,
        collection: Optional[str] = None,
    ):
        self._client = client
        self._embedding_model = embedding_model
        self.collection = collection or settings.QDRANT_COLLECTION
        self._collection_ready = False
        self._pending: Set[asyncio.Task] = set()
        # Executor threads share the lazily created client, model and collection
        self._init_lock = threading.RLock()

    @property
    def client(self) -> QdrantClient:
        if self._client is None:
            with self._init_lock:
                if self._client is None:
                    logger.info(f"[INDEX] Connecting to Qdrant at {settings.QDRANT_HOST}:{settings.QDRANT_PORT}")
                    self._client = QdrantClient(host=settings.QDRANT_HOST, port=settings.QDRANT_PORT)
        return self._client

    @property
    def embedding_model(self) -> SentenceTransformer:
        if self._embedding_model is None:
            with self._init_lock:
                if self._embedding_model is None:
                    logger.info(f"[INDEX] Loading embedding model {settings.EMBEDDING_MODEL}")
                    self._embedding_model = SentenceTransformer(settings.EMBEDDING_MODEL)
        return self._embedding_model

    def _ensure_collection(self) -> None:
        if self._collection_ready:
            return
        with self._init_lock:
            if self._collection_ready:
                return
            names = [c.name for c in self.client.get_collections().collections]
            if self.collection not in names:
                logger.info(f"[INDEX] Creating collection: {self.collection}")
                self.client.create_collection(
                    collection_name=self.collection,
                    vectors_config=VectorParams(size=settings.EMBEDDING_DIMENSION, distance=Distance.COSINE),
                )
            self._collection_ready = True

    def _embed(self, text: str) -> List[float]:
        return self.embedding_model.encode(text, normalize_embeddings=True).tolist()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _upsert(self, documents: List[IndexableDocument]) -> int:
        self._ensure_collection()
        points = []
        for doc in documents:
            # Same URL always maps to the same point
            point_id = str(uuid.UUID(hashlib.md5(doc.url.encode()).hexdigest()))
            points.append(PointStruct(
                id=point_id,
                vector=self._embed(f"{doc.title}\n{doc.content}"),
                payload={
                    "title": doc.title,
                    "content": doc.content,
                    "url": doc.url,
                    "domain": doc.domain,
                    "quality": doc.quality,
                    "content_type": "web",
                    "indexed_at": datetime.utcnow().isoformat(),
                },
            ))
        self.client.upsert(collection_name=self.collection, points=points)
        return len(points)

    async def index_web_results(self, documents: List[IndexableDocument]) -> int:
        """Embed and upsert documents. Returns the number indexed."""
        if not documents:
            return 0
        loop = asyncio.get_running_loop()
        count = await loop.run_in_executor(None, self._upsert, documents)
        logger.info(f"[INDEX] Indexed {count} web documents")
        return count

    def schedule_indexing(self, documents: List[IndexableDocument]) -> Optional[asyncio.Task]:
        """
        Index documents in the background.

        The task is held until it finishes; failures are logged only.
        """
        if not documents:
            return None
        task = asyncio.create_task(self.index_web_results(documents))
        self._pending.add(task)
        task.add_done_callback(self._on_index_done)
        return task

    def _on_index_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"[INDEX] Failed to index web content: {error}")

    async def drain(self) -> None:
        """Wait for outstanding background writes"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _query(self, query: str, limit: int, min_similarity: float) -> List[Dict[str, Any]]:
        self._ensure_collection()
        response = self.client.query_points(
            collection_name=self.collection,
            query=self._embed(query),
            query_filter=Filter(must=[FieldCondition(key="content_type", match=MatchValue(value="web"))]),
            limit=limit,
        )
        hits = []
        for point in response.points:
            if point.score < min_similarity:
                continue
            payload = point.payload or {}
            hits.append({
                "title": payload.get("title", ""),
                "url": payload.get("url", ""),
                "content": payload.get("content", ""),
                "similarity": point.score,
            })
        return hits

    async def search_related(
        self,
        query: str,
        limit: int = 3,
        min_similarity: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """Semantically similar previously indexed pages, or [] on any failure"""
        if min_similarity is None:
            min_similarity = settings.RELATED_CONTENT_MIN_SIMILARITY
        try:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, self._query, query, limit, min_similarity)
        except Exception as e:
            logger.warning(f"[INDEX] Related content lookup failed: {e}")
            return []
