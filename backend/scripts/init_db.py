#!/usr/bin/env python3
"""
Database initialization script - create the users and otp_records tables
"""

import asyncio
import sys
from pathlib import Path

# Make the backend package importable when run from a checkout
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from clicktales.common.base import Base
from clicktales.common.config import settings
from clicktales.common.database import DatabaseManager


async def init_database():
    """Initialize the database - create all tables"""
    print("🔧 Initializing database...")

    db = DatabaseManager(settings)
    await db.initialize()

    print(f"📦 Creating tables on {settings.database_type}...")
    await db.create_tables()

    print("✅ All tables created successfully!")

    print("\n📋 Created tables:")
    for table in sorted(Base.metadata.tables.keys()):
        print(f"  - {table}")

    await db.dispose()


if __name__ == "__main__":
    asyncio.run(init_database())
