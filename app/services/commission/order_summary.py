"""
Order commission summary.

Maintains the denormalized commission summary on the order reference.
The summary is always rebuilt from the ledger, may go stale between
refreshes, and is never used as input to any calculation.
"""

from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.commission import Commission
from app.repositories.commission_repository import CommissionRepository
from app.repositories.order_repository import OrderRepository
from app.utils.datetime_utils import utc_now


def summarize(commissions: list[Commission]) -> list[dict[str, Any]]:
    """Build the embedded summary rows from ledger entries."""
    return [
        {
            "beneficiaryCode": commission.beneficiary_code,
            "level": commission.level,
            "amount": str(commission.amount),
            "status": commission.status,
        }
        for commission in commissions
    ]


class OrderSummaryService:
    """Rebuilds order-side commission summaries from the ledger."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize order summary service."""
        self.session = session
        self.order_repo = OrderRepository(session)
        self.commission_repo = CommissionRepository(session)

    async def refresh_from_ledger(
        self, order_id: str
    ) -> list[dict[str, Any]] | None:
        """
        Rebuild an order's commission summary from the ledger.

        Args:
            order_id: Order ID

        Returns:
            The new summary, or None if the order reference is unknown
        """
        order = await self.order_repo.get_by_order_id(order_id)
        if not order:
            logger.warning(
                "Order reference not found for summary refresh",
                extra={"order_id": order_id},
            )
            return None

        commissions = await self.commission_repo.list_for_order(order_id)
        summary = summarize(commissions)

        order.commissions_generated = summary
        order.commissions_synced_at = utc_now()
        await self.session.commit()

        logger.debug(
            "Order commission summary refreshed",
            extra={"order_id": order_id, "entries": len(summary)},
        )

        return summary
