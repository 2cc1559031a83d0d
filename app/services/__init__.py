"""
Services.

Business logic layer.
"""

from app.services.affiliate import AffiliateDirectory
from app.services.balance import BalanceLedgerGuard
from app.services.commission import (
    CommissionCalculator,
    CommissionLedger,
    OrderCompletionHandler,
    OrderSummaryService,
)
from app.services.downline import DownlineReportService, DownlineTreeBuilder


__all__ = [
    "AffiliateDirectory",
    "BalanceLedgerGuard",
    "CommissionCalculator",
    "CommissionLedger",
    "DownlineReportService",
    "DownlineTreeBuilder",
    "OrderCompletionHandler",
    "OrderSummaryService",
]
