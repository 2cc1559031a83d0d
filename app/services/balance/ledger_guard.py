"""
Balance ledger guard.

Sole mutator of Affiliate.balance_pending, balance_available and
total_earnings. Every mutation is:
1. attributed to exactly one commission ledger entry,
2. applied under a row lock with an atomic SQL increment,
3. recorded as a BalanceMovement in the same transaction,
4. committed as a whole or rolled back as a whole.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.affiliate import Affiliate
from app.models.balance_movement import BalanceMovement
from app.models.enums import BalanceField, BalanceMovementType
from app.utils.exceptions import BalanceCreditError, BalanceTransitionError


class BalanceLedgerGuard:
    """Guarded, attributable balance mutations."""

    def __init__(self, session: AsyncSession, auto_commit: bool = True) -> None:
        """
        Initialize balance ledger guard.

        Args:
            session: Async database session
            auto_commit: Commit each mutation. Disable when the caller
                commits the mutation together with its own changes.
        """
        self.session = session
        self.auto_commit = auto_commit

    async def credit(
        self,
        code: str,
        field: BalanceField,
        delta: Decimal,
        commission_id: int,
        movement_type: BalanceMovementType = BalanceMovementType.COMMISSION_CREDIT,
    ) -> BalanceMovement:
        """
        Add delta (possibly negative) to one balance column.

        Args:
            code: Affiliate code
            field: Balance column
            delta: Signed amount
            commission_id: Ledger entry the mutation belongs to
            movement_type: Kind of mutation

        Returns:
            Recorded movement

        Raises:
            BalanceCreditError: If nothing was applied
        """
        try:
            balance_before = await self._lock_balance(code, field)
            if balance_before is None:
                raise BalanceCreditError(f"Affiliate not found: {code}")

            balance_after = balance_before + delta
            if balance_after < 0:
                raise BalanceCreditError(
                    f"{field.value} of {code} would become negative "
                    f"({balance_before} + {delta})"
                )

            column = getattr(Affiliate, field.value)
            await self._apply(code, {field.value: column + delta})

            movement = BalanceMovement(
                affiliate_code=code,
                commission_id=commission_id,
                movement_type=movement_type.value,
                field=field.value,
                amount=delta,
                balance_before=balance_before,
                balance_after=balance_after,
            )
            self.session.add(movement)
            await self.session.flush()

            if self.auto_commit:
                await self.session.commit()

        except BalanceCreditError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise BalanceCreditError(
                f"Credit of {delta} to {code}.{field.value} failed: {e}"
            ) from e

        logger.debug(
            "Balance credited",
            extra={
                "affiliate_code": code,
                "field": field.value,
                "delta": str(delta),
                "commission_id": commission_id,
                "movement_type": movement_type.value,
            },
        )

        return movement

    async def transition(
        self,
        code: str,
        source: BalanceField,
        target: BalanceField,
        amount: Decimal,
        commission_id: int,
        movement_type: BalanceMovementType = BalanceMovementType.PAYOUT,
    ) -> BalanceMovement:
        """
        Move an amount from one balance column to another.

        Moving pending to available (payout confirmation) also accrues
        total_earnings.

        Args:
            code: Affiliate code
            source: Column debited
            target: Column credited
            amount: Positive amount
            commission_id: Ledger entry the mutation belongs to
            movement_type: Kind of mutation

        Returns:
            Recorded movement

        Raises:
            BalanceTransitionError: If nothing was applied
        """
        if amount <= 0:
            raise BalanceTransitionError(f"Transition amount must be positive: {amount}")
        if source == target:
            raise BalanceTransitionError("Source and target balance are the same")
        if BalanceField.TOTAL_EARNINGS in (source, target):
            raise BalanceTransitionError("total_earnings is not a transferable balance")

        try:
            balance_before = await self._lock_balance(code, source)
            if balance_before is None:
                raise BalanceTransitionError(f"Affiliate not found: {code}")

            if balance_before < amount:
                raise BalanceTransitionError(
                    f"Insufficient {source.value} for {code}: "
                    f"{balance_before} < {amount}"
                )

            source_column = getattr(Affiliate, source.value)
            target_column = getattr(Affiliate, target.value)
            values = {
                source.value: source_column - amount,
                target.value: target_column + amount,
            }
            if source == BalanceField.PENDING and target == BalanceField.AVAILABLE:
                values[BalanceField.TOTAL_EARNINGS.value] = (
                    Affiliate.total_earnings + amount
                )
            await self._apply(code, values)

            movement = BalanceMovement(
                affiliate_code=code,
                commission_id=commission_id,
                movement_type=movement_type.value,
                field=source.value,
                target_field=target.value,
                amount=amount,
                balance_before=balance_before,
                balance_after=balance_before - amount,
            )
            self.session.add(movement)
            await self.session.flush()

            if self.auto_commit:
                await self.session.commit()

        except BalanceTransitionError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise BalanceTransitionError(
                f"Transition of {amount} for {code} failed: {e}"
            ) from e

        logger.info(
            "Balance transitioned",
            extra={
                "affiliate_code": code,
                "source": source.value,
                "target": target.value,
                "amount": str(amount),
                "commission_id": commission_id,
            },
        )

        return movement

    async def has_movement(
        self,
        commission_id: int,
        movement_type: BalanceMovementType = BalanceMovementType.COMMISSION_CREDIT,
    ) -> bool:
        """Check whether a ledger entry already has a movement of this type."""
        stmt = (
            select(BalanceMovement.id)
            .where(
                BalanceMovement.commission_id == commission_id,
                BalanceMovement.movement_type == movement_type.value,
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def _lock_balance(
        self, code: str, field: BalanceField
    ) -> Decimal | None:
        """Lock the affiliate row and read one balance column."""
        column = getattr(Affiliate, field.value)
        stmt = (
            select(column)
            .where(Affiliate.code == code)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        value = result.scalar_one_or_none()
        if value is None:
            return None
        return Decimal(str(value))

    async def _apply(self, code: str, values: dict) -> None:
        """Run the atomic UPDATE; the row must still exist."""
        stmt = (
            update(Affiliate)
            .where(Affiliate.code == code)
            .values(values)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            raise SQLAlchemyError(f"Balance update matched {result.rowcount} rows")
