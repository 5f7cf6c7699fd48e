"""
MongoDB connection and document helpers.

`db` stays None until `connect()` succeeds; route functions receive the
handle through the `get_db` dependency so tests can swap in another store.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import HTTPException
from pymongo import MongoClient
from pymongo.errors import PyMongoError

import config

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db = None


def connect(url: Optional[str] = None, name: Optional[str] = None, retries: Optional[int] = None,
            delay: Optional[float] = None, client_factory=MongoClient):
    """Open the connection, retrying a fixed number of times before giving up."""
    global client, db
    url = url or config.DATABASE_URL
    if not url:
        raise RuntimeError("DATABASE_URL is not defined in the environment variables")
    retries = retries if retries is not None else config.DB_CONNECT_RETRIES
    delay = delay if delay is not None else config.DB_RETRY_DELAY

    last_error: Optional[Exception] = None
    for attempt in range(1, retries + 1):
        logger.info("Connecting to MongoDB (attempt %d/%d)...", attempt, retries)
        candidate = client_factory(url, serverSelectionTimeoutMS=30000)
        try:
            candidate.admin.command("ping")
        except PyMongoError as e:
            candidate.close()
            last_error = e
            remaining = retries - attempt
            if remaining:
                logger.warning("Connection failed: %s, retrying in %ss (%d attempts remaining)", e, delay, remaining)
                time.sleep(delay)
            continue
        client = candidate
        db = candidate.get_default_database(default=name or config.DATABASE_NAME)
        logger.info("MongoDB connected: %s", db.name)
        return db

    logger.error("MongoDB connection failed after %d attempts: %s", retries, last_error)
    raise last_error


def close():
    global client, db
    if client is not None:
        client.close()
    client = None
    db = None


def get_db():
    if db is None:
        raise HTTPException(status_code=500, detail="Database not available")
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.pop("_id", None)
    if _id is not None:
        doc["id"] = str(_id)
    for k, v in list(doc.items()):
        if isinstance(v, ObjectId):
            doc[k] = str(v)
    return doc


def create_document(database, collection_name: str, data: Dict[str, Any]) -> str:
    stamp = now()
    record = dict(data)
    record["created_at"] = stamp
    record["updated_at"] = stamp
    result = database[collection_name].insert_one(record)
    return str(result.inserted_id)


def get_documents(database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  sort: Optional[List] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    return list(cursor)
