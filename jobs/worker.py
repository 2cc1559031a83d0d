"""
Dramatiq worker entry point.

Run with:
    dramatiq jobs.worker
"""

from app.utils.logging import setup_logging

setup_logging()

# Importing task modules registers their actors on the broker
from jobs.tasks import order_commissions  # noqa: E402, F401
