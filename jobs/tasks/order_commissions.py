"""
Order commission tasks.

Consumes order-completed events from the order service. Delivery is
at-least-once; the commission ledger makes redelivery a no-op.
"""

from decimal import Decimal

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Broker must be configured before actors are declared
from jobs.broker import COMMISSION_QUEUE
from app.services.commission.order_completion import (
    OrderCompletionHandler,
    OrderCompletionOutcome,
)
from app.services.commission.order_summary import OrderSummaryService
from jobs.async_runner import local_session_maker, run_async


@dramatiq.actor(queue_name=COMMISSION_QUEUE, max_retries=3, time_limit=60_000)  # 1 min timeout
def process_order_completed(
    order_id: str,
    buyer_code: str,
    product_id: int,
    total_amount: str,
) -> None:
    """
    Compute commissions for a completed order.

    Amount travels as a string to keep Decimal precision through JSON.
    """
    payload = {
        "orderId": order_id,
        "buyerCode": buyer_code,
        "productId": product_id,
        "totalAmount": total_amount,
    }
    outcome = run_async(_run_with_local_session(payload))

    if not outcome.success and outcome.error_message != "Invalid order-completed event":
        # Let the Retries middleware redeliver; the ledger deduplicates
        raise RuntimeError(
            f"Commission processing failed for order {order_id}: "
            f"{outcome.error_message}"
        )


@dramatiq.actor(queue_name=COMMISSION_QUEUE, max_retries=3, time_limit=60_000)
def refresh_order_summary(order_id: str) -> None:
    """Rebuild an order's cached commission summary from the ledger."""
    run_async(_refresh_summary_with_local_session(order_id))


def enqueue_order_completed(
    order_id: str,
    buyer_code: str,
    product_id: int,
    total_amount: Decimal,
) -> None:
    """Publish an order-completed event for the commission worker."""
    process_order_completed.send(
        order_id, buyer_code, product_id, str(total_amount)
    )


async def process_order_completed_async(
    payload: dict,
    session_maker: async_sessionmaker[AsyncSession],
) -> OrderCompletionOutcome:
    """
    Handle one order-completed payload on a fresh session.

    Args:
        payload: {orderId, buyerCode, productId, totalAmount}
        session_maker: Session factory

    Returns:
        Outcome of commission processing
    """
    async with session_maker() as session:
        handler = OrderCompletionHandler(session)
        outcome = await handler.handle_payload(payload)

    logger.info(
        "Order-completed event processed",
        extra={
            "order_id": outcome.order_id,
            "success": outcome.success,
            "entries": len(outcome.entries),
            "total_commissions": str(outcome.total_commissions),
        },
    )
    return outcome


async def refresh_order_summary_async(
    order_id: str,
    session_maker: async_sessionmaker[AsyncSession],
) -> list[dict] | None:
    """Rebuild one order summary on a fresh session."""
    async with session_maker() as session:
        return await OrderSummaryService(session).refresh_from_ledger(order_id)


async def _run_with_local_session(payload: dict) -> OrderCompletionOutcome:
    async with local_session_maker() as session_maker:
        return await process_order_completed_async(payload, session_maker)


async def _refresh_summary_with_local_session(order_id: str) -> None:
    async with local_session_maker() as session_maker:
        await refresh_order_summary_async(order_id, session_maker)
