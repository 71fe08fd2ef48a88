"""
Database module - PostgreSQL (identity accounts) and MongoDB (documents) connections.
"""
from fct_admin.db.postgres import get_db_session, test_postgres_connection
from fct_admin.db.mongodb import get_mongo_db, get_collection, test_mongo_connection

__all__ = [
    "get_db_session",
    "test_postgres_connection",
    "get_mongo_db",
    "get_collection",
    "test_mongo_connection"
]
