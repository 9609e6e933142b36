"""
MongoDB Connection Utility

MongoDB stores:
- Raw resume text handed over by the extraction step
- AI-parsed resume outputs (structured JSON)

The relational store stays the source of truth for candidates; these
documents are kept so a parse can be inspected or replayed later.
"""
import logging

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None

# Collection name constants (avoid typos)
COLLECTIONS = {
    "raw_resumes": "raw_resumes",
    "parsed_resumes": "parsed_resumes",
}


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(get_settings().mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the resume documents database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[get_settings().mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
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


def init_mongo_indexes():
    """
    Create indexes for resume lookups.
    Call this once during app startup.
    """
    db = get_mongo_db()
    db[COLLECTIONS["raw_resumes"]].create_index("candidate_id")
    db[COLLECTIONS["raw_resumes"]].create_index("text_hash")
    db[COLLECTIONS["parsed_resumes"]].create_index("candidate_id")
    logger.info("MongoDB indexes created")
