#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify the store, the document store and the parsing model
are reachable, and to see how many placements are under guarantee.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

from app.core.config import get_settings
from app.core.exceptions import StorageUnavailable
from app.db.mongodb import test_mongo_connection
from app.db.postgres import execute_raw_sql, test_postgres_connection
from app.services.llm_client import get_llm_client


def main():
    settings = get_settings()
    print("=" * 50)
    print("PLACEMENT TRACKER - CONNECTION CHECK")
    print("=" * 50)

    print("\n[1] Checking database...")
    print(f"    URL: {settings.sqlalchemy_url.split('@')[-1]}")
    if test_postgres_connection():
        print("    ✅ Database: CONNECTED")
        try:
            rows = execute_raw_sql(
                "SELECT safety_status, COUNT(*) AS total "
                "FROM placement_safety_tracker GROUP BY safety_status"
            )
            for row in rows:
                print(f"    {row['safety_status']:<12} {row['total']}")
        except StorageUnavailable as e:
            print(f"    ⚠️  Could not read placements: {e.message}")
    else:
        print("    ❌ Database: FAILED")

    print("\n[2] Checking MongoDB...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    if test_mongo_connection():
        print("    ✅ MongoDB: CONNECTED")
    else:
        print("    ❌ MongoDB: FAILED")

    print("\n[3] Checking parsing model...")
    if settings.ai_api_key:
        print(f"    Base URL: {settings.ai_base_url}  Model: {settings.ai_model}")
        if get_llm_client().test_connection():
            print("    ✅ Model: CONNECTED")
        else:
            print("    ❌ Model: FAILED")
    else:
        print("    ⚠️  Model: API key not configured (skip for now)")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
