"""
Pydantic schemas for events, rate tables and reporting queries.
"""

from app.schemas.commission import (
    LevelCommissionRate,
    OrderCompletedEvent,
    RateTable,
)
from app.schemas.downline import DownlineQuery


__all__ = [
    "DownlineQuery",
    "LevelCommissionRate",
    "OrderCompletedEvent",
    "RateTable",
]
