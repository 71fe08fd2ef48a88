"""
MongoDB Connection Utility

MongoDB stores every dashboard document:
- users: role assignment per identity (document _id is the account uid)
- pendingTasks: drafts saved with "guardar como pendiente"
- empresas, estudiantes, ciclosFormativos, asignaciones: domain entities

Collection names keep the camelCase names the dashboard front-end already uses.
"""
import logging

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from fct_admin.core.config import get_settings

logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        settings = get_settings()
        _client = MongoClient(
            settings.mongodb_uri,
            serverSelectionTimeoutMS=settings.mongodb_timeout_ms
        )
    return _client


def get_mongo_db() -> Database:
    """Get the dashboard database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[get_settings().mongodb_db]
    return _db


def set_mongo_client(client: MongoClient) -> None:
    """Install a different client (tests use mongomock)."""
    global _client, _db
    _client = client
    _db = None


def get_collection(name: str) -> Collection:
    """Get a specific collection. Use the COLLECTIONS keys to avoid typos."""
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
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "pending_tasks": "pendingTasks",
    "empresas": "empresas",
    "estudiantes": "estudiantes",
    "ciclos": "ciclosFormativos",
    "asignaciones": "asignaciones"
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # Drafts are always listed per owner, newest first
    db[COLLECTIONS["pending_tasks"]].create_index([
        ("userId", 1),
        ("createdAt", -1)
    ])

    db[COLLECTIONS["asignaciones"]].create_index("estudianteId")
    db[COLLECTIONS["asignaciones"]].create_index("empresaId")
    db[COLLECTIONS["asignaciones"]].create_index([("fechaInicio", -1)])

    db[COLLECTIONS["estudiantes"]].create_index("cicloFormativoId")

    # Catalog seeding looks ciclos up by (nombre, familia)
    db[COLLECTIONS["ciclos"]].create_index([
        ("nombre", 1),
        ("familia", 1)
    ])

    logger.info("MongoDB indexes created successfully")
