#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify the store, MongoDB and the model provider are reachable
with the credentials in .env.
Usage: python scripts/check_connections.py
"""
import asyncio
import sys
sys.path.insert(0, '.')

from app.core.config import get_settings
from app.db.postgres import test_postgres_connection
from app.db.mongodb import mongo_enabled, test_mongo_connection
from app.services.llm_client import get_generation_client


def main():
    settings = get_settings()
    print("=" * 50)
    print("PLACEMENT QUIZ SERVICE - CONNECTION CHECK")
    print("=" * 50)

    missing = settings.missing_required()
    if missing:
        print(f"\n⚠️  Missing configuration: {', '.join(missing)}")

    # Relational store
    print("\n[1] Checking quiz store...")
    if settings.database_url:
        print(f"    URL: {settings.database_url.split('@')[-1]}")
    else:
        print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    if test_postgres_connection():
        print("    ✅ Store: CONNECTED")
    else:
        print("    ❌ Store: FAILED")

    # MongoDB
    print("\n[2] Checking MongoDB...")
    if mongo_enabled():
        print(f"    Database: {settings.mongodb_db}")
        if test_mongo_connection():
            print("    ✅ MongoDB: CONNECTED")
        else:
            print("    ❌ MongoDB: FAILED")
    else:
        print("    ⚠️  MongoDB: MONGODB_URI not set (generation log disabled)")

    # Model provider (only if API key is set)
    print("\n[3] Checking model API...")
    if settings.openai_api_key:
        print(f"    Base URL: {settings.openai_base_url}")
        print(f"    Model: {settings.openai_model}")
        client = get_generation_client()
        if asyncio.run(client.test_connection()):
            print("    ✅ Model API: CONNECTED")
        else:
            print("    ❌ Model API: FAILED")
    else:
        print("    ⚠️  Model API: OPENAI_API_KEY not configured")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
