"""
Balance movement model.

Audit row for every mutation of an affiliate balance column. Written by
BalanceLedgerGuard in the same transaction as the mutation itself.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import AffiliateCodeType, MoneyType


class BalanceMovement(Base):
    """Balance movement - one guarded balance mutation."""

    __tablename__ = "balance_movements"
    __table_args__ = (
        # One credit, one payout and one cancellation per ledger entry
        UniqueConstraint(
            'commission_id', 'movement_type',
            name='uq_balance_movement_commission_type'
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    affiliate_code: Mapped[str] = mapped_column(
        AffiliateCodeType, nullable=False, index=True
    )
    commission_id: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True
    )
    movement_type: Mapped[str] = mapped_column(String(32), nullable=False)

    # Column that was debited/credited, and the counterpart for transitions
    field: Mapped[str] = mapped_column(String(32), nullable=False)
    target_field: Mapped[str | None] = mapped_column(
        String(32), nullable=True
    )

    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<BalanceMovement(id={self.id}, affiliate_code={self.affiliate_code!r}, "
            f"type={self.movement_type!r}, amount={self.amount})>"
        )
