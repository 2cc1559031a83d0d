"""
Affiliate model.

Represents a participant of the referral program, identified by a unique code.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import AffiliateCodeType, MoneyType


class Affiliate(Base):
    """
    Affiliate model - referral program participants.

    Sponsor links reference ``code``, not ``id``. ``sponsor_code`` has no
    foreign key: imported data may carry orphan codes, which every walk
    over the relation tolerates.

    Balance columns are written only by BalanceLedgerGuard.
    """

    __tablename__ = "affiliates"
    __table_args__ = (
        CheckConstraint(
            'balance_pending >= 0',
            name='check_affiliate_balance_pending_non_negative'
        ),
        CheckConstraint(
            'balance_available >= 0',
            name='check_affiliate_balance_available_non_negative'
        ),
        CheckConstraint(
            'total_earnings >= 0',
            name='check_affiliate_total_earnings_non_negative'
        ),
        CheckConstraint(
            'direct_referral_count >= 0',
            name='check_affiliate_direct_referrals_non_negative'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Identity
    code: Mapped[str] = mapped_column(
        AffiliateCodeType,
        unique=True,
        index=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    # Referral (reverse index for downline lookups)
    sponsor_code: Mapped[str | None] = mapped_column(
        AffiliateCodeType, nullable=True, index=True
    )

    # Balances
    balance_pending: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    balance_available: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Network counters
    direct_referral_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    downline_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def to_dict(self) -> dict[str, Any]:
        """Persisted shape with stable field names."""
        return {
            "code": self.code,
            "sponsorCode": self.sponsor_code,
            "balancePending": str(self.balance_pending),
            "balanceAvailable": str(self.balance_available),
            "totalEarnings": str(self.total_earnings),
            "directReferralCount": self.direct_referral_count,
            "downlineCount": self.downline_count,
        }

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Affiliate(id={self.id}, code={self.code!r}, "
            f"sponsor_code={self.sponsor_code!r})>"
        )
