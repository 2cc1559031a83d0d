"""
Async bridge for dramatiq actors.

Dramatiq actors are synchronous and run on worker threads. Each thread
keeps one event loop, and every job gets a NullPool engine bound to that
loop, so asyncpg connections never cross loops.
"""

import asyncio
import threading
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.config.settings import settings

T = TypeVar("T")

_thread_local = threading.local()


def get_event_loop() -> asyncio.AbstractEventLoop:
    """Event loop of the current worker thread, created on first use."""
    loop = getattr(_thread_local, "loop", None)
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        _thread_local.loop = loop
        logger.debug(
            "Created worker event loop",
            extra={"thread": threading.current_thread().name},
        )
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine to completion on the thread's event loop.

    Args:
        coro: Coroutine to run

    Returns:
        Result of the coroutine
    """
    loop = get_event_loop()
    try:
        return loop.run_until_complete(coro)
    except Exception as e:
        logger.exception(f"Async job body failed: {e}")
        raise


@asynccontextmanager
async def local_session_maker() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """
    Session factory on a short-lived engine for the running loop.

    Usage:
        async with local_session_maker() as session_maker:
            async with session_maker() as session:
                ...
    """
    job_engine = create_async_engine(
        settings.database_url,
        echo=False,
        poolclass=NullPool,
    )

    try:
        yield async_sessionmaker(
            job_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    finally:
        await job_engine.dispose()
