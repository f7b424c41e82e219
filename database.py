"""
MongoDB connection and document helpers

One MongoClient is opened at startup and held for the process lifetime.
Services never import the handle directly; routes receive it through get_db().
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson.objectid import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from errors import Unexpected

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
db: Optional[Database] = None


def connect(url: str, name: str) -> Database:
    global _client, db
    _client = MongoClient(url)
    db = _client[name]
    logger.info("Connected to MongoDB database %s", name)
    return db


def close():
    global _client, db
    if _client is not None:
        _client.close()
        logger.info("MongoDB connection closed")
    _client = None
    db = None


def get_db() -> Database:
    """FastAPI dependency returning the process-wide database handle"""
    if db is None:
        raise Unexpected("Database not initialized")
    return db


def ensure_indexes(database: Database):
    database["cart"].create_index([("sessionId", ASCENDING)], unique=True)
    database["order"].create_index([("orderNumber", ASCENDING)], unique=True)
    database["order"].create_index([("sessionId", ASCENDING)])
    database["order"].create_index([("createdAt", DESCENDING)])
    database["admin"].create_index([("username", ASCENDING)], unique=True)
    database["admin"].create_index([("email", ASCENDING)], unique=True)
    database["blog"].create_index([("slug", ASCENDING)], unique=True)
    database["blog"].create_index([("published", ASCENDING), ("createdAt", DESCENDING)])


def now() -> datetime:
    return datetime.now(timezone.utc)


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> dict:
    """Insert a document stamped with createdAt/updatedAt and return it with its _id"""
    if isinstance(data, BaseModel):
        doc = data.model_dump()
    else:
        doc = dict(data)
    stamp = now()
    doc.setdefault("createdAt", stamp)
    doc["updatedAt"] = stamp
    result = database[collection_name].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


def get_documents(database: Database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for a valid id string, None otherwise"""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def to_str_id(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    d = dict(doc)
    if d.get("_id"):
        d["id"] = str(d.pop("_id"))
    return d
