"""
Request deadlines.

Deadlines are absolute values of the running event loop's monotonic clock.
"""

import asyncio


def deadline_after(seconds: float | None) -> float | None:
    """
    Build an absolute deadline from a relative timeout.

    Args:
        seconds: Timeout in seconds, None for no deadline

    Returns:
        Absolute loop time or None
    """
    if seconds is None:
        return None
    return asyncio.get_running_loop().time() + seconds


def deadline_passed(deadline: float | None) -> bool:
    """
    Check whether a deadline has expired.

    Args:
        deadline: Absolute loop time or None

    Returns:
        True if the deadline is set and already in the past
    """
    if deadline is None:
        return False
    return asyncio.get_running_loop().time() >= deadline
