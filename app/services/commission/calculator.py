"""
Commission calculator.

Walks the sponsor chain upward from the buyer when an order completes,
applies the product's per-level rate table, writes ledger entries and
credits upline pending balances through the balance ledger guard.

Walk rules:
- an unresolvable affiliate ends the walk (the chain above is lost),
- a level without a rate is skipped and the walk continues,
- a code seen twice in one walk ends it (corrupted graph),
- the configured depth cap always bounds the walk.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import HARD_DEPTH_LIMIT
from app.config.settings import settings
from app.models.enums import BalanceField
from app.repositories.product_repository import ProductRepository
from app.schemas.commission import RateTable
from app.services.affiliate.directory import AffiliateDirectory
from app.services.balance.ledger_guard import BalanceLedgerGuard
from app.services.commission.ledger import CommissionEntry, CommissionLedger
from app.utils.deadline import deadline_passed
from app.utils.exceptions import BalanceCreditError
from app.utils.validation import quantize_money, to_decimal


class StopReason:
    """Why the upline walk ended."""

    NO_SPONSOR = "no_sponsor"  # Chain ended naturally
    DEPTH_CAP = "depth_cap"  # Configured level cap reached
    BROKEN_CHAIN = "broken_chain"  # Ancestor code does not resolve
    CYCLE_DETECTED = "cycle_detected"  # Code visited twice
    DEADLINE = "deadline"  # Request deadline expired


class IntegrityIssue:
    """Data-integrity failures that yield zero commissions."""

    PRODUCT_NOT_FOUND = "product_not_found"
    BUYER_NOT_FOUND = "buyer_not_found"


@dataclass
class CommissionResult:
    """Outcome of one commission calculation."""

    order_id: str
    entries: list[CommissionEntry] = field(default_factory=list)
    skipped_levels: list[int] = field(default_factory=list)
    duplicate_levels: list[int] = field(default_factory=list)
    failed_levels: list[int] = field(default_factory=list)
    stop_reason: str | None = None
    integrity_error: str | None = None

    @property
    def total_amount(self) -> Decimal:
        """Sum of generated commissions."""
        return sum((entry.amount for entry in self.entries), Decimal("0"))

    @property
    def degraded(self) -> bool:
        """True when commissions may be missing because of a failure."""
        return bool(
            self.integrity_error
            or self.failed_levels
            or self.stop_reason in (StopReason.BROKEN_CHAIN, StopReason.CYCLE_DETECTED)
        )


class CommissionCalculator:
    """
    Multi-level commission calculator.

    Each level's amount is computed independently from the order total,
    never compounded from the previous level.
    """

    def __init__(
        self,
        session: AsyncSession,
        max_depth: int | None = None,
        quantum: Decimal | None = None,
        credit_retries: int | None = None,
    ) -> None:
        """
        Initialize commission calculator.

        Args:
            session: Async database session
            max_depth: Levels paid per order (defaults to settings)
            quantum: Rounding unit for amounts (defaults to settings)
            credit_retries: Balance credit retries (defaults to settings)
        """
        self.session = session
        self.max_depth = min(
            max_depth if max_depth is not None else settings.commission_max_depth,
            HARD_DEPTH_LIMIT,
        )
        self.quantum = quantum or settings.commission_quantum
        self.credit_retries = (
            credit_retries
            if credit_retries is not None
            else settings.commission_credit_retries
        )
        self.directory = AffiliateDirectory(session)
        self.product_repo = ProductRepository(session)
        self.ledger = CommissionLedger(session)
        self.guard = BalanceLedgerGuard(session)

    async def compute_commissions(
        self,
        order_id: str,
        buyer_code: str,
        product_id: int,
        total_amount: Decimal,
        deadline: float | None = None,
    ) -> list[CommissionEntry]:
        """
        Compute and record commissions for a completed order.

        Args:
            order_id: Order ID
            buyer_code: Buyer affiliate code
            product_id: Product ID
            total_amount: Order total
            deadline: Absolute loop-time deadline (optional)

        Returns:
            Ledger entries generated by this call (empty on re-run)
        """
        result = await self.calculate(
            order_id, buyer_code, product_id, total_amount, deadline=deadline
        )
        return result.entries

    async def calculate(
        self,
        order_id: str,
        buyer_code: str,
        product_id: int,
        total_amount: Decimal,
        deadline: float | None = None,
    ) -> CommissionResult:
        """
        Compute commissions and report how the walk went.

        Args:
            order_id: Order ID
            buyer_code: Buyer affiliate code
            product_id: Product ID
            total_amount: Order total
            deadline: Absolute loop-time deadline (optional)

        Returns:
            CommissionResult with entries, skipped/duplicate/failed levels
        """
        result = CommissionResult(order_id=order_id)
        total_amount = to_decimal(total_amount)

        rate_table = await self.product_repo.get_rate_table(product_id)
        if rate_table is None:
            logger.error(
                "Commission integrity error: product not found",
                extra={"order_id": order_id, "product_id": product_id},
            )
            result.integrity_error = IntegrityIssue.PRODUCT_NOT_FOUND
            return result

        buyer = await self.directory.get_by_code(buyer_code)
        if buyer is None:
            logger.error(
                "Commission integrity error: buyer not found",
                extra={"order_id": order_id, "buyer_code": buyer_code},
            )
            result.integrity_error = IntegrityIssue.BUYER_NOT_FOUND
            return result

        if not buyer.sponsor_code:
            logger.debug(
                "Buyer has no sponsor, no commissions",
                extra={"order_id": order_id, "buyer_code": buyer_code},
            )
            result.stop_reason = StopReason.NO_SPONSOR
            return result

        if not rate_table.level_commissions:
            logger.warning(
                "Product has an empty rate table",
                extra={"order_id": order_id, "product_id": product_id},
            )

        await self._walk_upline(
            result,
            buyer_code=buyer.code,
            sponsor_code=buyer.sponsor_code,
            product_id=product_id,
            total_amount=total_amount,
            rate_table=rate_table,
            deadline=deadline,
        )

        logger.info(
            "Commissions calculated",
            extra={
                "order_id": order_id,
                "buyer_code": buyer_code,
                "entries": len(result.entries),
                "total_commissions": str(result.total_amount),
                "skipped_levels": result.skipped_levels,
                "duplicate_levels": result.duplicate_levels,
                "failed_levels": result.failed_levels,
                "stop_reason": result.stop_reason,
            },
        )

        return result

    def calculate_level_amount(
        self, total_amount: Decimal, rate: Decimal
    ) -> Decimal:
        """
        Commission for one level: total * rate / 100, rounded down.

        Args:
            total_amount: Order total
            rate: Rate percentage

        Returns:
            Commission amount (0 for non-positive inputs)
        """
        if total_amount <= 0 or rate <= 0:
            return Decimal("0")

        return quantize_money(total_amount * rate / Decimal("100"), self.quantum)

    async def _walk_upline(
        self,
        result: CommissionResult,
        buyer_code: str,
        sponsor_code: str,
        product_id: int,
        total_amount: Decimal,
        rate_table: RateTable,
        deadline: float | None,
    ) -> None:
        """Iterative, depth-bounded walk from the buyer's sponsor upward."""
        visited = {buyer_code}
        current_code: str | None = sponsor_code
        level = 1

        while current_code:
            if level > self.max_depth:
                result.stop_reason = StopReason.DEPTH_CAP
                return

            if deadline_passed(deadline):
                logger.warning(
                    "Commission deadline expired, walk stopped",
                    extra={"order_id": result.order_id, "level": level},
                )
                result.stop_reason = StopReason.DEADLINE
                return

            if current_code in visited:
                logger.error(
                    "Commission integrity error: sponsor cycle",
                    extra={
                        "order_id": result.order_id,
                        "code": current_code,
                        "level": level,
                    },
                )
                result.stop_reason = StopReason.CYCLE_DETECTED
                return
            visited.add(current_code)

            affiliate = await self.directory.get_by_code(current_code)
            if affiliate is None:
                logger.error(
                    "Commission integrity error: broken sponsor chain",
                    extra={
                        "order_id": result.order_id,
                        "missing_code": current_code,
                        "level": level,
                    },
                )
                result.stop_reason = StopReason.BROKEN_CHAIN
                return

            # Plain values: a rollback below would expire the ORM object
            beneficiary_code = affiliate.code
            next_code = affiliate.sponsor_code

            rate = rate_table.rate_for(level)
            if rate is None:
                result.skipped_levels.append(level)
            else:
                await self._credit_level(
                    result,
                    buyer_code=buyer_code,
                    beneficiary_code=beneficiary_code,
                    product_id=product_id,
                    level=level,
                    rate=rate,
                    amount=self.calculate_level_amount(total_amount, rate),
                )

            current_code = next_code
            level += 1

        result.stop_reason = StopReason.NO_SPONSOR

    async def _credit_level(
        self,
        result: CommissionResult,
        buyer_code: str,
        beneficiary_code: str,
        product_id: int,
        level: int,
        rate: Decimal,
        amount: Decimal,
    ) -> None:
        """Ledger write, balance credit, compensating delete on failure."""
        order_id = result.order_id

        if amount <= 0:
            # Order too small to yield a payable unit at this rate
            result.skipped_levels.append(level)
            return

        existing = await self.ledger.get_entry(order_id, beneficiary_code, level)
        if existing:
            if not existing.is_pending or await self.guard.has_movement(existing.id):
                result.duplicate_levels.append(level)
                return

            # Entry committed by an earlier run that died before the credit
            logger.warning(
                "Ledger entry without balance credit, resuming credit",
                extra={
                    "order_id": order_id,
                    "beneficiary_code": beneficiary_code,
                    "level": level,
                    "commission_id": existing.id,
                },
            )
            entry = CommissionEntry.from_model(existing)
            amount = entry.amount
        else:
            entry = await self.ledger.record_entry(
                order_id=order_id,
                buyer_code=buyer_code,
                product_id=product_id,
                beneficiary_code=beneficiary_code,
                level=level,
                rate=rate,
                amount=amount,
            )
            if entry is None:
                result.duplicate_levels.append(level)
                return

        last_error: BalanceCreditError | None = None
        for attempt in range(1 + self.credit_retries):
            try:
                await self.guard.credit(
                    beneficiary_code,
                    BalanceField.PENDING,
                    amount,
                    commission_id=entry.commission_id,
                )
                result.entries.append(entry)
                return
            except BalanceCreditError as e:
                last_error = e
                logger.warning(
                    "Commission balance credit failed",
                    extra={
                        "order_id": order_id,
                        "beneficiary_code": beneficiary_code,
                        "level": level,
                        "attempt": attempt + 1,
                        "error": str(e),
                    },
                )

        if await self.guard.has_movement(entry.commission_id):
            # A concurrent delivery credited the same entry
            result.duplicate_levels.append(level)
            return

        removed = await self.ledger.remove_entry(entry.commission_id)
        result.failed_levels.append(level)

        # Failed-commission alert
        logger.error(
            "Commission failed: balance credit not applied, ledger entry rolled back",
            extra={
                "order_id": order_id,
                "beneficiary_code": beneficiary_code,
                "level": level,
                "amount": str(amount),
                "ledger_entry_removed": removed,
                "error": str(last_error),
            },
        )
