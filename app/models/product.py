"""
Product model.

Only the part of a product the commission engine needs: identity, price
and the per-level commission rate table attached at creation.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.types import MoneyType, RatePercentType


class Product(Base):
    """Product model - sellable items carrying a level rate table."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    level_commissions: Mapped[list["ProductLevelCommission"]] = relationship(
        "ProductLevelCommission",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductLevelCommission.level",
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Product(id={self.id}, name={self.name!r})>"


class ProductLevelCommission(Base):
    """One row of a product's rate table: percentage paid at a level."""

    __tablename__ = "product_level_commissions"
    __table_args__ = (
        UniqueConstraint(
            'product_id', 'level', name='uq_product_level_commission'
        ),
        CheckConstraint(
            'level >= 1', name='check_level_commission_level_positive'
        ),
        CheckConstraint(
            'rate > 0 AND rate <= 100',
            name='check_level_commission_rate_range'
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    rate: Mapped[Decimal] = mapped_column(RatePercentType, nullable=False)

    product: Mapped["Product"] = relationship(
        "Product", back_populates="level_commissions"
    )
