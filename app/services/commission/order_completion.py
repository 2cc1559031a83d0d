"""
Order completion handler.

Entry point for the order-completed event. Commission failures are a
degraded outcome of a successful purchase; nothing here raises into the
order flow.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.repositories.order_repository import OrderRepository
from app.schemas.commission import OrderCompletedEvent
from app.services.commission.calculator import CommissionCalculator, CommissionResult
from app.services.commission.ledger import CommissionEntry
from app.services.commission.order_summary import OrderSummaryService
from app.utils.deadline import deadline_after


@dataclass
class OrderCompletionOutcome:
    """What happened to the commissions of one completed order."""

    order_id: str
    success: bool
    entries: list[CommissionEntry] = field(default_factory=list)
    result: CommissionResult | None = None
    summary_refreshed: bool = False
    error_message: str | None = None

    @property
    def total_commissions(self) -> Decimal:
        """Sum of commissions generated by this delivery."""
        return sum((entry.amount for entry in self.entries), Decimal("0"))


class OrderCompletionHandler:
    """Runs commission processing for order-completed events."""

    def __init__(
        self,
        session: AsyncSession,
        calculator: CommissionCalculator | None = None,
        deadline_seconds: float | None = None,
    ) -> None:
        """
        Initialize order completion handler.

        Args:
            session: Async database session
            calculator: Commission calculator (built from session if omitted)
            deadline_seconds: Time budget per order (defaults to settings)
        """
        self.session = session
        self.calculator = calculator or CommissionCalculator(session)
        self.order_repo = OrderRepository(session)
        self.summary_service = OrderSummaryService(session)
        self.deadline_seconds = (
            deadline_seconds
            if deadline_seconds is not None
            else settings.commission_deadline_seconds
        )

    async def handle_payload(self, payload: dict) -> OrderCompletionOutcome:
        """
        Validate a raw event payload and handle it.

        Args:
            payload: {orderId, buyerCode, productId, totalAmount}

        Returns:
            Outcome (success=False on an invalid payload)
        """
        try:
            event = OrderCompletedEvent.model_validate(payload)
        except ValidationError as e:
            order_id = str(payload.get("orderId", "")) if isinstance(payload, dict) else ""
            logger.error(
                "Invalid order-completed event",
                extra={"order_id": order_id, "errors": e.errors()},
            )
            return OrderCompletionOutcome(
                order_id=order_id,
                success=False,
                error_message="Invalid order-completed event",
            )

        return await self.handle(event)

    async def handle(self, event: OrderCompletedEvent) -> OrderCompletionOutcome:
        """
        Process commissions for a completed order.

        Safe to call more than once for the same order.

        Args:
            event: Order-completed event

        Returns:
            Outcome; never raises
        """
        outcome = OrderCompletionOutcome(order_id=event.order_id, success=False)

        try:
            await self.order_repo.get_or_create(
                order_id=event.order_id,
                buyer_code=event.buyer_code,
                product_id=event.product_id,
                total_amount=event.total_amount,
            )
            await self.session.commit()

            result = await self.calculator.calculate(
                order_id=event.order_id,
                buyer_code=event.buyer_code,
                product_id=event.product_id,
                total_amount=event.total_amount,
                deadline=deadline_after(self.deadline_seconds),
            )
        except Exception as e:
            await self._safe_rollback()
            logger.exception(
                f"Commission processing failed for order {event.order_id}: {e}"
            )
            outcome.error_message = str(e)
            return outcome

        outcome.success = True
        outcome.result = result
        outcome.entries = result.entries

        try:
            summary = await self.summary_service.refresh_from_ledger(event.order_id)
            outcome.summary_refreshed = summary is not None
        except SQLAlchemyError as e:
            # Summary is a cache; the ledger already holds the truth
            await self._safe_rollback()
            logger.warning(
                "Order commission summary refresh failed",
                extra={"order_id": event.order_id, "error": str(e)},
            )

        return outcome

    async def _safe_rollback(self) -> None:
        """Rollback without letting a second failure escape."""
        try:
            await self.session.rollback()
        except SQLAlchemyError as rollback_error:
            logger.error(
                f"Failed to rollback after commission error: {rollback_error}",
                exc_info=True,
            )
