"""
Enum definitions shared by models and services.
"""

from enum import Enum


class CommissionStatus(str, Enum):
    """Commission ledger entry status."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class BalanceField(str, Enum):
    """Affiliate balance columns owned by the balance ledger guard."""

    PENDING = "balance_pending"
    AVAILABLE = "balance_available"
    TOTAL_EARNINGS = "total_earnings"


class BalanceMovementType(str, Enum):
    """Kind of balance mutation recorded by the guard."""

    COMMISSION_CREDIT = "commission_credit"
    PAYOUT = "payout"
    CANCELLATION = "cancellation"
