"""
Commission repository.

Data access layer for the commission ledger.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.commission import Commission
from app.models.enums import CommissionStatus
from app.repositories.base import BaseRepository


class CommissionRepository(BaseRepository[Commission]):
    """Commission repository with ledger queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(Commission, session)

    async def get_entry(
        self, order_id: str, beneficiary_code: str, level: int
    ) -> Commission | None:
        """
        Get the ledger entry for one (order, beneficiary, level).

        Args:
            order_id: Order ID
            beneficiary_code: Beneficiary affiliate code
            level: Upline level

        Returns:
            Commission or None
        """
        return await self.get_by(
            order_id=order_id,
            beneficiary_code=beneficiary_code,
            level=level,
        )

    async def list_for_order(self, order_id: str) -> list[Commission]:
        """
        Get all ledger entries of an order, by level.

        Args:
            order_id: Order ID

        Returns:
            List of commissions
        """
        stmt = (
            select(Commission)
            .where(Commission.order_id == order_id)
            .order_by(Commission.level, Commission.beneficiary_code)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_beneficiary(
        self,
        beneficiary_code: str,
        status: CommissionStatus | None = None,
        limit: int | None = None,
    ) -> list[Commission]:
        """
        Get ledger entries of a beneficiary, newest first.

        Args:
            beneficiary_code: Beneficiary affiliate code
            status: Optional status filter
            limit: Max number of results

        Returns:
            List of commissions
        """
        stmt = select(Commission).where(
            Commission.beneficiary_code == beneficiary_code
        )
        if status is not None:
            stmt = stmt.where(Commission.status == status.value)

        stmt = stmt.order_by(Commission.created_at.desc(), Commission.id.desc())
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_update(self, commission_id: int) -> Commission | None:
        """
        Get a ledger entry with a row lock.

        Args:
            commission_id: Commission ID

        Returns:
            Commission or None
        """
        stmt = (
            select(Commission)
            .where(Commission.id == commission_id)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def sum_by_status(
        self, beneficiary_code: str, status: CommissionStatus
    ) -> Decimal:
        """
        Sum ledger amounts of a beneficiary in one status.

        Uses SQL aggregation to avoid loading rows.

        Args:
            beneficiary_code: Beneficiary affiliate code
            status: Commission status

        Returns:
            Total amount
        """
        stmt = select(
            func.coalesce(func.sum(Commission.amount), Decimal("0"))
        ).where(
            Commission.beneficiary_code == beneficiary_code,
            Commission.status == status.value,
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))
