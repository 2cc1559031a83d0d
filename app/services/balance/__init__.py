"""
Balance services package.

The balance ledger guard is the only code path allowed to change
affiliate balance columns.
"""

from app.services.balance.ledger_guard import BalanceLedgerGuard


__all__ = [
    "BalanceLedgerGuard",
]
