"""
Document Store

Narrow persistence interface used by capabilities: get, query, create,
update. Predicates are equality filters in MongoDB filter form, e.g.
{"user_id": "u1", "is_custom": True}.
"""
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from buddy_ai.agents.errors import UpstreamServiceError
from buddy_ai.config import settings

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """Async document store keyed by collection name and string id"""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def query(self, collection: str, predicate: Dict[str, Any]) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def create(self, collection: str, doc: Dict[str, Any]) -> str:
        """Insert a document and return its id"""
        ...

    @abstractmethod
    async def update(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> bool:
        """Shallow-merge patch into a document. Returns False if it does not exist."""
        ...


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store for tests and local runs"""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def get(self, collection, doc_id):
        doc = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def query(self, collection, predicate):
        return [
            copy.deepcopy(doc)
            for doc in self._collections.get(collection, {}).values()
            if all(doc.get(key) == value for key, value in predicate.items())
        ]

    async def create(self, collection, doc):
        doc_id = uuid.uuid4().hex
        stored = copy.deepcopy(doc)
        stored["id"] = doc_id
        self._collections.setdefault(collection, {})[doc_id] = stored
        return doc_id

    async def update(self, collection, doc_id, patch):
        doc = self._collections.get(collection, {}).get(doc_id)
        if doc is None:
            return False
        doc.update(copy.deepcopy(patch))
        return True


class MongoDocumentStore(DocumentStore):
    """
    MongoDB store via motor

    Ids are stored as string `_id` values and returned as `id`.
    Driver errors are raised as UpstreamServiceError.
    """

    def __init__(self, mongo_url: Optional[str] = None, db_name: Optional[str] = None):
        self.mongo_url = mongo_url or settings.MONGO_URL
        self.db_name = db_name or settings.MONGO_DB
        self.mongo_client: Optional[AsyncIOMotorClient] = None
        self.db = None

    async def connect_db(self):
        """Connect to MongoDB"""
        if self.mongo_client is None:
            self.mongo_client = AsyncIOMotorClient(self.mongo_url)
            self.db = self.mongo_client[self.db_name]
            logger.info(f"[STORE] Connected to MongoDB database {self.db_name}")

    async def close_db(self):
        """Close MongoDB connection"""
        if self.mongo_client:
            self.mongo_client.close()
            self.mongo_client = None
            self.db = None

    @staticmethod
    def _from_mongo(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if doc is None:
            return None
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return doc

    async def get(self, collection, doc_id):
        await self.connect_db()
        try:
            doc = await self.db[collection].find_one({"_id": doc_id})
        except Exception as e:
            raise UpstreamServiceError("document store", str(e)) from e
        return self._from_mongo(doc)

    async def query(self, collection, predicate):
        await self.connect_db()
        try:
            cursor = self.db[collection].find(dict(predicate))
            return [self._from_mongo(doc) async for doc in cursor]
        except Exception as e:
            raise UpstreamServiceError("document store", str(e)) from e

    async def create(self, collection, doc):
        await self.connect_db()
        doc_id = uuid.uuid4().hex
        try:
            await self.db[collection].insert_one({**doc, "_id": doc_id})
        except Exception as e:
            raise UpstreamServiceError("document store", str(e)) from e
        return doc_id

    async def update(self, collection, doc_id, patch):
        await self.connect_db()
        try:
            result = await self.db[collection].update_one({"_id": doc_id}, {"$set": dict(patch)})
        except Exception as e:
            raise UpstreamServiceError("document store", str(e)) from e
        return result.matched_count > 0
