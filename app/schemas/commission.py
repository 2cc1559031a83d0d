"""Pydantic models for commission inputs."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.config.business_constants import (
    AFFILIATE_CODE_MAX_LENGTH,
    MAX_LEVEL_RATE,
    MIN_LEVEL_RATE,
)


class LevelCommissionRate(BaseModel):
    """One level of a product rate table."""

    model_config = ConfigDict(frozen=True)

    level: int = Field(..., ge=1, description="Upline distance from the buyer (1 = sponsor)")
    rate: Decimal = Field(
        ...,
        gt=MIN_LEVEL_RATE,
        le=MAX_LEVEL_RATE,
        description="Percentage of the order amount paid at this level",
    )


class RateTable(BaseModel):
    """Product rate table as returned by the product lookup.

    A missing level means "no commission at that level"; it never
    stops the upline walk.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    product_id: int = Field(..., alias="productId")
    level_commissions: tuple[LevelCommissionRate, ...] = Field(
        default=(), alias="levelCommissions"
    )

    @field_validator("level_commissions")
    @classmethod
    def validate_unique_levels(
        cls, v: tuple[LevelCommissionRate, ...]
    ) -> tuple[LevelCommissionRate, ...]:
        """Reject duplicate levels and keep the table sorted by level."""
        levels = [item.level for item in v]
        if len(levels) != len(set(levels)):
            raise ValueError(f"Duplicate levels in rate table: {levels}")
        return tuple(sorted(v, key=lambda item: item.level))

    def rate_for(self, level: int) -> Decimal | None:
        """
        Get the rate for a level.

        Args:
            level: Upline level

        Returns:
            Rate percentage or None if the level is not configured
        """
        for item in self.level_commissions:
            if item.level == level:
                return item.rate
        return None

    @property
    def levels(self) -> list[int]:
        """Configured levels in ascending order."""
        return [item.level for item in self.level_commissions]


class OrderCompletedEvent(BaseModel):
    """Order-completed event emitted by the order service.

    Delivered at least once; processing is idempotent per order.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    order_id: str = Field(..., min_length=1, max_length=64, alias="orderId")
    buyer_code: str = Field(
        ..., min_length=1, max_length=AFFILIATE_CODE_MAX_LENGTH, alias="buyerCode"
    )
    product_id: int = Field(..., alias="productId")
    total_amount: Decimal = Field(..., gt=0, alias="totalAmount")
