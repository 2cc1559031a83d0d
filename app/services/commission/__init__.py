"""
Commission services package.

Contains modular services for commission processing:
- calculator: walks the upline and writes ledger entries
- ledger: ledger reads, writes and payout transitions
- order_summary: order-side summary cache rebuilt from the ledger
- order_completion: order-completed event entry point
"""

from app.services.commission.calculator import (
    CommissionCalculator,
    CommissionResult,
    IntegrityIssue,
    StopReason,
)
from app.services.commission.ledger import CommissionEntry, CommissionLedger
from app.services.commission.order_completion import (
    OrderCompletionHandler,
    OrderCompletionOutcome,
)
from app.services.commission.order_summary import OrderSummaryService


__all__ = [
    # Calculation
    "CommissionCalculator",
    "CommissionResult",
    "IntegrityIssue",
    "StopReason",
    # Ledger
    "CommissionEntry",
    "CommissionLedger",
    # Order flow
    "OrderCompletionHandler",
    "OrderCompletionOutcome",
    "OrderSummaryService",
]
