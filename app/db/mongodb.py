"""
MongoDB Connection Utility

MongoDB stores:
- Raw model responses from quiz generation (accepted and rejected)

WHY MongoDB for these?
- Raw model output is free text of unpredictable shape
- Write-once audit records, never joined with the quiz tables

MongoDB is optional: with MONGODB_URI unset nothing here is touched.
"""
import logging
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: Optional[MongoClient] = None
_db: Optional[Database] = None


def mongo_enabled() -> bool:
    return bool(get_settings().mongodb_uri)


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        # fail fast instead of pymongo's 30s default
        _client = MongoClient(get_settings().mongodb_uri, serverSelectionTimeoutMS=5000)
    return _client


def get_mongo_db() -> Database:
    """Get the placement_docs database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[get_settings().mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """
    Get a specific collection.
    Collections we'll use:
    - quiz_generation_logs: Raw model output per generation call
    """
    db = get_mongo_db()
    return db[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except PyMongoError as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "generation_logs": "quiz_generation_logs"
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # Lookups are always "latest responses for a domain"
    db[COLLECTIONS["generation_logs"]].create_index([
        ("domain", 1),
        ("created_at", -1)
    ])

    logger.info("MongoDB indexes created successfully")
