"""Pydantic models for downline reporting."""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.config.business_constants import AFFILIATE_CODE_MAX_LENGTH
from app.config.settings import settings


class DownlineQuery(BaseModel):
    """Reporting query for a downline tree."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    affiliate_code: str = Field(
        ...,
        min_length=1,
        max_length=AFFILIATE_CODE_MAX_LENGTH,
        alias="affiliateCode",
    )
    max_depth: int = Field(default=settings.downline_max_depth, ge=0, alias="maxDepth")

    @model_validator(mode="after")
    def validate_depth_limit(self) -> "DownlineQuery":
        """Depth may not exceed the configured maximum."""
        if self.max_depth > settings.downline_max_depth:
            raise ValueError(
                f"maxDepth must be <= {settings.downline_max_depth}"
            )
        return self
