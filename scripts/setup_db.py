#!/usr/bin/env python3
"""
Script to create the booking database schema and seed it with defaults.
Uses DATABASE_URL from the environment / .env file.
"""

import asyncio
import sys
import uuid

from sqlalchemy import select

import app.models  # noqa: F401
from app.core.config import settings
from app.core.database import AsyncSessionLocal, Base, engine
from app.models.service import Service
from app.services.stores import SettingsStore

DEFAULT_SERVICES = [
    ("Bath & Brush", 60),
    ("Full Groom", 90),
    ("Nail Trim", 30),
]


async def setup_database(reset: bool = False):
    """Create tables and seed default settings and services."""
    print(f"Setting up database: {settings.DATABASE_URL}")

    try:
        async with engine.begin() as conn:
            if reset:
                await conn.run_sync(Base.metadata.drop_all)
                print("Dropped existing tables")
            await conn.run_sync(Base.metadata.create_all)
        print("Created all database tables")

        async with AsyncSessionLocal() as session:
            store = SettingsStore(session)
            await store.save_booking_settings(await store.get_booking_settings())
            await store.save_business_hours(await store.get_business_hours())

            existing = (await session.execute(select(Service.name))).scalars().all()
            for name, duration in DEFAULT_SERVICES:
                if name not in existing:
                    session.add(
                        Service(uuid=uuid.uuid4(), name=name, duration_minutes=duration)
                    )
                    print(f"Added service: {name} ({duration} min)")
            await session.commit()

        print("✅ Database setup complete!")

    except Exception as e:
        print(f"❌ Error setting up database: {e}")
        return False
    finally:
        await engine.dispose()

    return True


if __name__ == "__main__":
    ok = asyncio.run(setup_database(reset="reset" in sys.argv[1:]))
    sys.exit(0 if ok else 1)
