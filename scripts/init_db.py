#!/usr/bin/env python3
"""
Script to initialize database tables.

Usage:
    python scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from icebot.config import settings
from icebot.db.sqlite import Database


async def main() -> None:
    """Create the order tables."""
    print("Initializing database...")
    print("-" * 50)

    db = Database(settings.db_url, echo=settings.debug)
    print(f"Creating tables in {settings.db_url}...")
    await db.init()
    print("✅ Tables: orders, order_messages, customers")

    print("-" * 50)
    print("✅ Database initialized successfully!")

    await db.close()


if __name__ == "__main__":
    asyncio.run(main())
