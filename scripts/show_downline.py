#!/usr/bin/env python3
"""
Print an affiliate's downline tree as JSON.

Usage:
    python -m scripts.show_downline CODE [--depth N]
"""

import argparse
import asyncio
import json
import sys

from loguru import logger

from app.config.database import async_session_maker, engine
from app.services.downline.report import DownlineReportService

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="WARNING")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Show an affiliate's downline")
    parser.add_argument("code", help="Affiliate code")
    parser.add_argument(
        "--depth",
        type=int,
        default=None,
        help="Maximum depth (defaults to DOWNLINE_MAX_DEPTH)",
    )
    return parser.parse_args(argv)


async def show_downline(code: str, depth: int | None) -> int:
    """Fetch and print the downline; returns the exit code."""
    try:
        async with async_session_maker() as session:
            report = DownlineReportService(
                session, session_maker=async_session_maker
            )
            result = await report.get_downline(code, max_depth=depth)
    finally:
        await engine.dispose()

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0 if result["success"] else 1


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        return asyncio.run(show_downline(args.code, args.depth))
    except ValueError as e:
        # pydantic ValidationError is a ValueError
        logger.error(f"Invalid request: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
