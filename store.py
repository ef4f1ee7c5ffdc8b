"""
Local enrichment store.

Two keyed collections: `providers` (community-maintained provider documents)
and `reviews` (keyed by `providerId`). Backends return plain documents with an
`id` field; validation into StoredProvider happens in the enrichment layer.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import structlog
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from config import Settings

logger = structlog.get_logger(__name__)

Document = Dict[str, Any]


class StoreError(Exception):
    """A lookup against the local store failed."""


class ProviderStore(Protocol):
    def find_by_npi(self, npi: str) -> Optional[Document]: ...

    def find_by_name(self, name: str, limit: int) -> List[Document]: ...

    def reviews_for(self, provider_id: str, limit: int) -> List[Document]: ...


class InMemoryProviderStore:
    def __init__(self, providers: Optional[List[Document]] = None, reviews: Optional[List[Document]] = None):
        self.providers = list(providers or [])
        self.reviews = list(reviews or [])

    @classmethod
    def from_json(cls, path: str) -> "InMemoryProviderStore":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        store = cls(data.get("providers"), data.get("reviews"))
        logger.info(
            "Loaded local store seed",
            path=path,
            providers=len(store.providers),
            reviews=len(store.reviews),
        )
        return store

    def find_by_npi(self, npi: str) -> Optional[Document]:
        for doc in self.providers:
            if doc.get("npi") == npi:
                return doc
        return None

    def find_by_name(self, name: str, limit: int) -> List[Document]:
        return [doc for doc in self.providers if doc.get("name") == name][:limit]

    def reviews_for(self, provider_id: str, limit: int) -> List[Document]:
        return [r for r in self.reviews if r.get("providerId") == provider_id][:limit]


def _with_id(doc: Document) -> Document:
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


class MongoProviderStore:
    def __init__(self, uri: str, db_name: str, timeout_ms: int = 5000):
        self.client = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms)
        db = self.client[db_name]
        self.providers = db["providers"]
        self.reviews = db["reviews"]

    def find_by_npi(self, npi: str) -> Optional[Document]:
        try:
            doc = self.providers.find_one({"npi": npi})
        except PyMongoError as e:
            raise StoreError(f"npi lookup failed: {e}") from e
        return _with_id(doc) if doc else None

    def find_by_name(self, name: str, limit: int) -> List[Document]:
        try:
            return [_with_id(d) for d in self.providers.find({"name": name}).limit(limit)]
        except PyMongoError as e:
            raise StoreError(f"name lookup failed: {e}") from e

    def reviews_for(self, provider_id: str, limit: int) -> List[Document]:
        try:
            return [_with_id(d) for d in self.reviews.find({"providerId": provider_id}).limit(limit)]
        except PyMongoError as e:
            raise StoreError(f"review lookup failed: {e}") from e

    def close(self) -> None:
        self.client.close()


def build_store(s: Settings) -> ProviderStore:
    if s.STORE_BACKEND == "mongo":
        logger.info("Using MongoDB provider store", db=s.MONGO_DB)
        return MongoProviderStore(s.MONGO_URI, s.MONGO_DB, s.MONGO_TIMEOUT_MS)
    if s.STORE_SEED_PATH:
        return InMemoryProviderStore.from_json(s.STORE_SEED_PATH)
    logger.info("Using empty in-memory provider store")
    return InMemoryProviderStore()
