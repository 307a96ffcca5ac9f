"""
MongoDB Connection Utility

Collections:
- users: accounts (tagged by user_type, profile payload per type)
- school_records: dashboard rows (students, teachers, companies, ...)
- organizations: schools, universities and companies
- notifications: assignment notifications for users
"""
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from liahub.core.config import get_settings
from liahub.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri, tz_aware=True)
    return _client


def get_mongo_db() -> Database:
    """Get the liahub database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
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
        client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.warning("mongo_ping_failed", error=str(e))
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "school_records": "school_records",
    "organizations": "organizations",
    "notifications": "notifications",
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    users = db[COLLECTIONS["users"]]
    users.create_index("username", unique=True)
    users.create_index("email", unique=True)
    users.create_index([("organization", ASCENDING), ("roles", ASCENDING)])

    # Dashboard tables list newest records first per organization and type
    db[COLLECTIONS["school_records"]].create_index([
        ("organization", ASCENDING),
        ("type", ASCENDING),
        ("created_at", DESCENDING),
    ])
    db[COLLECTIONS["school_records"]].create_index("data.assignedCompanyId")

    db[COLLECTIONS["notifications"]].create_index([
        ("recipient", ASCENDING),
        ("created_at", DESCENDING),
    ])

    logger.info("mongo_indexes_created", database=settings.mongodb_db)
