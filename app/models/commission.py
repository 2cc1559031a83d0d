"""
Commission model.

The commission ledger: one row per (order, beneficiary, level). The ledger
is the single source of truth for commissions; order-side summaries are
derived from it.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import CommissionStatus
from app.models.types import AffiliateCodeType, MoneyType, RatePercentType


class Commission(Base):
    """Commission ledger entry."""

    __tablename__ = "commissions"
    __table_args__ = (
        UniqueConstraint(
            'order_id', 'beneficiary_code', 'level',
            name='uq_commission_order_beneficiary_level'
        ),
        CheckConstraint(
            'level >= 1', name='check_commission_level_positive'
        ),
        CheckConstraint(
            'amount >= 0', name='check_commission_amount_non_negative'
        ),
        Index('idx_commission_beneficiary_status', 'beneficiary_code', 'status'),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Source order (external)
    order_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    buyer_code: Mapped[str] = mapped_column(
        AffiliateCodeType, nullable=False
    )
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # Beneficiary
    beneficiary_code: Mapped[str] = mapped_column(
        AffiliateCodeType, nullable=False
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    # Rate snapshot, so later rate table changes never rewrite history
    rate: Mapped[Decimal] = mapped_column(RatePercentType, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=CommissionStatus.PENDING.value,
        nullable=False,
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def is_pending(self) -> bool:
        """Check if commission still awaits payout."""
        return self.status == CommissionStatus.PENDING.value

    def to_dict(self) -> dict[str, Any]:
        """Persisted shape with stable field names."""
        return {
            "orderId": self.order_id,
            "beneficiaryCode": self.beneficiary_code,
            "level": self.level,
            "amount": str(self.amount),
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Commission(id={self.id}, order_id={self.order_id!r}, "
            f"beneficiary_code={self.beneficiary_code!r}, level={self.level}, "
            f"amount={self.amount}, status={self.status!r})>"
        )
