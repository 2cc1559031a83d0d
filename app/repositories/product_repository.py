"""
Product repository.

Product lookup for the commission engine: rate tables by product ID.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from pydantic import ValidationError
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.product import Product, ProductLevelCommission
from app.repositories.base import BaseRepository
from app.schemas.commission import RateTable
from app.utils.exceptions import InvalidRateTableError


def build_rate_table(
    product_id: int, levels: Iterable[Mapping[str, Any]]
) -> RateTable:
    """
    Validate raw level rows into a RateTable.

    Args:
        product_id: Product ID
        levels: Iterable of {"level": int, "rate": Decimal}

    Returns:
        Validated rate table

    Raises:
        InvalidRateTableError: On duplicate levels or out-of-range rates
    """
    try:
        return RateTable(
            product_id=product_id, level_commissions=list(levels)
        )
    except ValidationError as e:
        raise InvalidRateTableError(str(e)) from e


class ProductRepository(BaseRepository[Product]):
    """Product repository with rate table queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize product repository."""
        super().__init__(Product, session)

    async def create_with_rate_table(
        self,
        name: str,
        level_commissions: Iterable[Mapping[str, Any]],
        price: Decimal = Decimal("0"),
    ) -> Product:
        """
        Create a product together with its level rate table.

        Args:
            name: Product name
            level_commissions: Rows of {"level": int, "rate": Decimal}
            price: Product price

        Returns:
            Created product

        Raises:
            InvalidRateTableError: If the table is invalid
        """
        # Product ID is unknown before insert; validate with a placeholder
        table = build_rate_table(0, level_commissions)

        product = Product(name=name, price=price)
        product.level_commissions = [
            ProductLevelCommission(level=item.level, rate=item.rate)
            for item in table.level_commissions
        ]
        self.session.add(product)
        await self.session.flush()
        return product

    async def get_rate_table(self, product_id: int) -> RateTable | None:
        """
        Resolve a product's rate table.

        Args:
            product_id: Product ID

        Returns:
            RateTable, or None if the product does not exist
        """
        product = await self.get_by_id(product_id)
        if product is None:
            return None

        # Plain column select: never served from a stale loaded collection
        stmt = (
            select(ProductLevelCommission.level, ProductLevelCommission.rate)
            .where(ProductLevelCommission.product_id == product_id)
            .order_by(ProductLevelCommission.level)
        )
        result = await self.session.execute(stmt)

        return build_rate_table(
            product_id,
            ({"level": row.level, "rate": row.rate} for row in result.all()),
        )

    async def replace_rate_table(
        self,
        product_id: int,
        level_commissions: Iterable[Mapping[str, Any]],
    ) -> RateTable:
        """
        Replace a product's rate table for future orders.

        Existing ledger entries keep their own rate snapshot.

        Args:
            product_id: Product ID
            level_commissions: New rows of {"level": int, "rate": Decimal}

        Returns:
            The new rate table

        Raises:
            InvalidRateTableError: If the table is invalid
        """
        table = build_rate_table(product_id, level_commissions)

        await self.session.execute(
            delete(ProductLevelCommission)
            .where(ProductLevelCommission.product_id == product_id)
            .execution_options(synchronize_session=False)
        )
        if table.level_commissions:
            await self.session.execute(
                insert(ProductLevelCommission).values([
                    {
                        "product_id": product_id,
                        "level": item.level,
                        "rate": item.rate,
                    }
                    for item in table.level_commissions
                ])
            )
        await self.session.flush()
        return table
