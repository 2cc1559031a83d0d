"""
Order model.

Local reference to an externally owned order, carrying the denormalized
commission summary. The summary is a cache rebuilt from the commission
ledger and is never read back as authoritative.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import AffiliateCodeType, MoneyType


class Order(Base):
    """Completed order reference with cached commission summary."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    order_id: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    buyer_code: Mapped[str] = mapped_column(
        AffiliateCodeType, nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    # Derived cache, may be stale
    commissions_generated: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, default=list, nullable=False
    )
    commissions_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Order(order_id={self.order_id!r}, buyer_code={self.buyer_code!r}, "
            f"total_amount={self.total_amount})>"
        )
