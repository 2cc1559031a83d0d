"""
Commission ledger.

Append-mostly store of commission events keyed by (order, beneficiary,
level). Status transitions go together with their balance movement
through BalanceLedgerGuard.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.commission import Commission
from app.models.enums import BalanceField, BalanceMovementType, CommissionStatus
from app.repositories.commission_repository import CommissionRepository
from app.services.balance.ledger_guard import BalanceLedgerGuard
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.exceptions import (
    BalanceCreditError,
    BalanceTransitionError,
    CommissionStateError,
)


@dataclass(frozen=True)
class CommissionEntry:
    """Detached snapshot of a ledger entry."""

    commission_id: int
    order_id: str
    beneficiary_code: str
    level: int
    rate: Decimal
    amount: Decimal
    status: str
    created_at: datetime | None

    @classmethod
    def from_model(cls, commission: Commission) -> "CommissionEntry":
        """Snapshot a Commission row."""
        return cls(
            commission_id=commission.id,
            order_id=commission.order_id,
            beneficiary_code=commission.beneficiary_code,
            level=commission.level,
            rate=commission.rate,
            amount=commission.amount,
            status=commission.status,
            created_at=ensure_utc(commission.created_at),
        )

    def to_dict(self) -> dict[str, Any]:
        """Persisted commission shape."""
        return {
            "orderId": self.order_id,
            "beneficiaryCode": self.beneficiary_code,
            "level": self.level,
            "amount": str(self.amount),
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class CommissionLedger:
    """Ledger operations for commission entries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission ledger."""
        self.session = session
        self.commission_repo = CommissionRepository(session)

    async def get_entry(
        self, order_id: str, beneficiary_code: str, level: int
    ) -> Commission | None:
        """Get the entry for (order, beneficiary, level), if any."""
        return await self.commission_repo.get_entry(
            order_id, beneficiary_code, level
        )

    async def record_entry(
        self,
        order_id: str,
        buyer_code: str,
        product_id: int,
        beneficiary_code: str,
        level: int,
        rate: Decimal,
        amount: Decimal,
    ) -> CommissionEntry | None:
        """
        Write and commit a pending ledger entry.

        Args:
            order_id: Order ID
            buyer_code: Buyer affiliate code
            product_id: Product ID
            beneficiary_code: Beneficiary affiliate code
            level: Upline level
            rate: Rate percentage used
            amount: Commission amount

        Returns:
            Snapshot of the created entry, or None if it already exists
            (concurrent delivery of the same order)
        """
        try:
            commission = await self.commission_repo.create(
                order_id=order_id,
                buyer_code=buyer_code,
                product_id=product_id,
                beneficiary_code=beneficiary_code,
                level=level,
                rate=rate,
                amount=amount,
                status=CommissionStatus.PENDING.value,
                description=f"Level {level} commission from order {order_id}",
            )
            entry = CommissionEntry.from_model(commission)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info(
                "Commission entry already recorded",
                extra={
                    "order_id": order_id,
                    "beneficiary_code": beneficiary_code,
                    "level": level,
                },
            )
            return None

        return entry

    async def remove_entry(self, commission_id: int) -> bool:
        """
        Delete a ledger entry whose balance credit never happened.

        Compensating action only; paid or credited entries are never
        removed this way.

        Args:
            commission_id: Commission ID

        Returns:
            True if deleted
        """
        deleted = await self.commission_repo.delete(commission_id)
        await self.session.commit()
        return deleted

    async def list_for_order(self, order_id: str) -> list[Commission]:
        """Get all entries of an order, by level."""
        return await self.commission_repo.list_for_order(order_id)

    async def list_for_beneficiary(
        self,
        beneficiary_code: str,
        status: CommissionStatus | None = None,
        limit: int | None = None,
    ) -> list[Commission]:
        """Get entries of a beneficiary, newest first."""
        return await self.commission_repo.list_for_beneficiary(
            beneficiary_code, status=status, limit=limit
        )

    async def pending_total(self, beneficiary_code: str) -> Decimal:
        """Sum of a beneficiary's pending commissions."""
        return await self.commission_repo.sum_by_status(
            beneficiary_code, CommissionStatus.PENDING
        )

    async def mark_paid(
        self, commission_id: int
    ) -> tuple[bool, str | None]:
        """
        Mark commission as paid (called by payout process).

        Moves the amount from pending to available balance.

        Args:
            commission_id: Commission ID

        Returns:
            Tuple of (success, error_message)
        """
        return await self._settle(commission_id, CommissionStatus.PAID)

    async def mark_cancelled(
        self, commission_id: int
    ) -> tuple[bool, str | None]:
        """
        Cancel a pending commission.

        Debits the amount from pending balance.

        Args:
            commission_id: Commission ID

        Returns:
            Tuple of (success, error_message)
        """
        return await self._settle(commission_id, CommissionStatus.CANCELLED)

    async def _settle(
        self, commission_id: int, new_status: CommissionStatus
    ) -> tuple[bool, str | None]:
        """Status change plus balance movement, committed together."""
        commission = await self.commission_repo.get_for_update(commission_id)

        if not commission:
            return False, "Commission not found"

        try:
            ensure_pending(commission)
        except CommissionStateError as e:
            return False, str(e)

        code = commission.beneficiary_code
        amount = commission.amount
        guard = BalanceLedgerGuard(self.session, auto_commit=False)

        try:
            if new_status == CommissionStatus.PAID:
                await guard.transition(
                    code,
                    BalanceField.PENDING,
                    BalanceField.AVAILABLE,
                    amount,
                    commission_id=commission_id,
                )
                commission.paid_at = utc_now()
            else:
                await guard.credit(
                    code,
                    BalanceField.PENDING,
                    -amount,
                    commission_id=commission_id,
                    movement_type=BalanceMovementType.CANCELLATION,
                )
                commission.cancelled_at = utc_now()

            commission.status = new_status.value
            await self.session.commit()

        except (BalanceCreditError, BalanceTransitionError) as e:
            # Guard already rolled back
            logger.error(
                "Commission settlement failed",
                extra={
                    "commission_id": commission_id,
                    "status": new_status.value,
                    "error": str(e),
                },
            )
            return False, str(e)

        logger.info(
            "Commission settled",
            extra={
                "commission_id": commission_id,
                "beneficiary_code": code,
                "amount": str(amount),
                "status": new_status.value,
            },
        )

        return True, None


def ensure_pending(commission: Commission) -> None:
    """
    Raise if a commission can no longer change status.

    Raises:
        CommissionStateError: If the commission is not pending
    """
    if not commission.is_pending:
        raise CommissionStateError(
            f"Commission {commission.id} is {commission.status}"
        )
