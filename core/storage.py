from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection

from core.config import Settings


logger = logging.getLogger(__name__)


def connect(settings: Settings) -> MongoClient:
    client: MongoClient = MongoClient(settings.require_mongodb_uri())
    # Fail fast instead of on the first query.
    client.admin.command("ping")
    logger.info("connected to MongoDB database %r", settings.database)
    return client


@lru_cache(maxsize=4)
def shared_client(uri: str) -> MongoClient:
    """Process-wide client for request handlers; pymongo pools connections itself."""
    return MongoClient(uri)


def get_collection(settings: Settings, client: Optional[MongoClient] = None) -> Collection:
    client = client or shared_client(settings.require_mongodb_uri())
    return client[settings.database][settings.collection]


def fetch_results(collection: Collection) -> List[Dict[str, Any]]:
    """All stored results, newest first."""
    return list(collection.find({}).sort("createdAt", DESCENDING))


def insert_results(collection: Collection, documents: Sequence[Mapping[str, Any]]) -> List[Any]:
    if not documents:
        logger.info("nothing to insert into %r", collection.name)
        return []
    result = collection.insert_many([dict(d) for d in documents])
    logger.info("inserted %d documents into %r", len(result.inserted_ids), collection.name)
    return list(result.inserted_ids)
