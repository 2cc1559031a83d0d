#!/usr/bin/env python3
"""
Create the referral commission tables.

Intended for development and SQLite setups; PostgreSQL deployments run
``alembic upgrade head`` instead.

Usage:
    python -m scripts.init_database [--drop]
"""

import argparse
import asyncio
import sys

from loguru import logger

from app.config.database import engine
from app.config.settings import settings
from app.models import Base

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database(drop: bool = False) -> None:
    """Create all tables, optionally dropping existing ones first."""
    if drop and settings.environment == "production":
        logger.error("Refusing to drop tables in production")
        sys.exit(1)

    logger.info(f"Initializing {engine.url.render_as_string(hide_password=True)}")

    try:
        async with engine.begin() as conn:
            if drop:
                logger.warning("Dropping existing tables...")
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    finally:
        await engine.dispose()

    logger.success(
        f"Tables ready: {', '.join(sorted(Base.metadata.tables))}"
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--drop", action="store_true", help="Drop tables first")
    args = parser.parse_args()
    asyncio.run(init_database(drop=args.drop))
