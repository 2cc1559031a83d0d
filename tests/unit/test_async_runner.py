"""Unit tests for the dramatiq async bridge."""

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from jobs.async_runner import get_event_loop, run_async


async def _double(value: int) -> int:
    await asyncio.sleep(0)
    return value * 2


async def _fail() -> None:
    raise RuntimeError("job failed")


def _in_worker_thread(fn):
    with ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(fn).result()


class TestRunAsync:
    """Tests for run_async on worker threads."""

    def test_returns_coroutine_result(self):
        assert _in_worker_thread(lambda: run_async(_double(21))) == 42

    def test_loop_reused_within_thread(self):
        def two_loops():
            first = get_event_loop()
            run_async(_double(1))
            return first is get_event_loop()

        assert _in_worker_thread(two_loops)

    def test_exception_propagates(self):
        with pytest.raises(RuntimeError, match="job failed"):
            _in_worker_thread(lambda: run_async(_fail()))
