"""Integration tests for order-completed event handling."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from dramatiq import Message
from dramatiq.brokers.stub import StubBroker
from sqlalchemy import select

from app.models import Order
from app.services.commission.calculator import CommissionCalculator
from app.services.commission.ledger import CommissionLedger
from app.services.commission.order_completion import OrderCompletionHandler
from app.services.commission.order_summary import OrderSummaryService
from jobs.broker import COMMISSION_QUEUE
from jobs.tasks.order_commissions import (
    enqueue_order_completed,
    process_order_completed,
    process_order_completed_async,
    refresh_order_summary_async,
)


def payload(product_id: int, order_id: str = "ORD-1", amount: str = "100") -> dict:
    return {
        "orderId": order_id,
        "buyerCode": "BUYER",
        "productId": product_id,
        "totalAmount": amount,
    }


async def load_order(session_maker, order_id: str) -> Order | None:
    async with session_maker() as session:
        result = await session.execute(select(Order).where(Order.order_id == order_id))
        return result.scalar_one_or_none()


class TestOrderCompletionHandler:
    """Tests for OrderCompletionHandler."""

    @pytest.mark.asyncio
    async def test_commissions_and_summary(
        self, db_session, session_maker, make_chain, make_product
    ):
        await make_chain(["L2", "L1", "BUYER"])
        product = await make_product(["20", "10"])

        outcome = await OrderCompletionHandler(db_session).handle_payload(payload(product.id))

        assert outcome.success
        assert outcome.total_commissions == Decimal("30")
        assert outcome.summary_refreshed

        order = await load_order(session_maker, "ORD-1")
        assert [
            (row["beneficiaryCode"], row["level"], Decimal(row["amount"]))
            for row in order.commissions_generated
        ] == [("L1", 1, Decimal("20")), ("L2", 2, Decimal("10"))]
        assert order.commissions_synced_at is not None

    @pytest.mark.asyncio
    async def test_redelivery(self, db_session, session_maker, make_chain, make_product):
        """Second delivery adds nothing and keeps the summary complete."""
        await make_chain(["L2", "L1", "BUYER"])
        product = await make_product(["20", "10"])
        handler = OrderCompletionHandler(db_session)

        await handler.handle_payload(payload(product.id))
        outcome = await handler.handle_payload(payload(product.id))

        assert outcome.success
        assert outcome.entries == []
        assert outcome.result.duplicate_levels == [1, 2]

        order = await load_order(session_maker, "ORD-1")
        assert len(order.commissions_generated) == 2

    @pytest.mark.asyncio
    async def test_invalid_payload(self, db_session):
        outcome = await OrderCompletionHandler(db_session).handle_payload(
            {"orderId": "ORD-1", "totalAmount": "-1"}
        )

        assert not outcome.success
        assert outcome.order_id == "ORD-1"
        assert outcome.error_message == "Invalid order-completed event"

    @pytest.mark.asyncio
    async def test_calculator_failure_never_raises(
        self, db_session, make_chain, make_product
    ):
        await make_chain(["SPONSOR", "BUYER"])
        product = await make_product(["10"])
        calculator = CommissionCalculator(db_session)
        calculator.calculate = AsyncMock(side_effect=RuntimeError("database gone"))

        outcome = await OrderCompletionHandler(
            db_session, calculator=calculator
        ).handle_payload(payload(product.id))

        assert not outcome.success
        assert outcome.error_message == "database gone"

    @pytest.mark.asyncio
    async def test_integrity_error_is_degraded_success(self, db_session, make_chain):
        """An unknown product pays nothing but does not fail the order."""
        await make_chain(["SPONSOR", "BUYER"])

        outcome = await OrderCompletionHandler(db_session).handle_payload(payload(999))

        assert outcome.success
        assert outcome.entries == []
        assert outcome.result.degraded


class TestOrderSummary:
    """Tests for the order-side commission summary."""

    @pytest.mark.asyncio
    async def test_summary_follows_ledger_status(
        self, db_session, session_maker, make_chain, make_product
    ):
        await make_chain(["SPONSOR", "BUYER"])
        product = await make_product(["10"])
        outcome = await OrderCompletionHandler(db_session).handle_payload(payload(product.id))
        await CommissionLedger(db_session).mark_paid(outcome.entries[0].commission_id)

        summary = await OrderSummaryService(db_session).refresh_from_ledger("ORD-1")

        assert summary[0]["status"] == "paid"
        order = await load_order(session_maker, "ORD-1")
        assert order.commissions_generated[0]["status"] == "paid"

    @pytest.mark.asyncio
    async def test_unknown_order(self, db_session):
        assert await OrderSummaryService(db_session).refresh_from_ledger("NOPE") is None


class TestOrderCommissionTasks:
    """Tests for the dramatiq task bodies."""

    @pytest.mark.asyncio
    async def test_process_order_completed(
        self, session_maker, make_chain, make_product
    ):
        await make_chain(["SPONSOR", "BUYER"])
        product = await make_product(["10"])

        outcome = await process_order_completed_async(
            payload(product.id, amount="55.55"), session_maker
        )

        assert outcome.success
        assert outcome.total_commissions == Decimal("5.55")

    @pytest.mark.asyncio
    async def test_refresh_order_summary(self, session_maker, make_chain, make_product):
        await make_chain(["SPONSOR", "BUYER"])
        product = await make_product(["10"])
        await process_order_completed_async(payload(product.id), session_maker)

        summary = await refresh_order_summary_async("ORD-1", session_maker)

        assert [row["beneficiaryCode"] for row in summary] == ["SPONSOR"]

    def test_enqueue_order_completed(self, monkeypatch):
        """The amount is published as a string to keep Decimal precision."""
        broker = StubBroker(middleware=[])
        broker.declare_actor(process_order_completed)
        monkeypatch.setattr(process_order_completed, "broker", broker)

        enqueue_order_completed("ORD-9", "BUYER", 3, Decimal("19.99"))

        queue = broker.queues[COMMISSION_QUEUE]
        assert queue.qsize() == 1
        message = Message.decode(queue.get_nowait())
        assert message.actor_name == "process_order_completed"
        assert list(message.args) == ["ORD-9", "BUYER", 3, "19.99"]
