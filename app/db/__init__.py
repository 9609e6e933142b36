"""
Database module - relational store and MongoDB connections.
"""
from app.db.postgres import get_db_session, get_engine, set_engine, test_postgres_connection
from app.db.mongodb import get_mongo_db, test_mongo_connection
from app.db.schema import init_schema

__all__ = [
    "get_db_session",
    "get_engine",
    "set_engine",
    "init_schema",
    "test_postgres_connection",
    "get_mongo_db",
    "test_mongo_connection"
]
