"""
Order repository.

Data access layer for order references and their commission summary cache.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.order import Order
from app.repositories.base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    """Order repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize order repository."""
        super().__init__(Order, session)

    async def get_by_order_id(self, order_id: str) -> Order | None:
        """
        Get order by external order ID.

        Args:
            order_id: External order ID

        Returns:
            Order or None
        """
        return await self.get_by(order_id=order_id)

    async def get_or_create(
        self,
        order_id: str,
        buyer_code: str,
        product_id: int,
        total_amount: Decimal,
    ) -> Order:
        """
        Get the local order reference, creating it on first delivery.

        Args:
            order_id: External order ID
            buyer_code: Buyer affiliate code
            product_id: Product ID
            total_amount: Order total

        Returns:
            Order
        """
        order = await self.get_by_order_id(order_id)
        if order:
            return order

        return await self.create(
            order_id=order_id,
            buyer_code=buyer_code,
            product_id=product_id,
            total_amount=total_amount,
            commissions_generated=[],
        )
