"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.affiliate import Affiliate
from app.models.balance_movement import BalanceMovement
from app.models.base import Base
from app.models.commission import Commission
from app.models.enums import (
    BalanceField,
    BalanceMovementType,
    CommissionStatus,
)
from app.models.order import Order
from app.models.product import Product, ProductLevelCommission


__all__ = [
    # Base
    "Base",
    # Enums
    "BalanceField",
    "BalanceMovementType",
    "CommissionStatus",
    # Core Models
    "Affiliate",
    "Product",
    "ProductLevelCommission",
    "Commission",
    "BalanceMovement",
    "Order",
]
