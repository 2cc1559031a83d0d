"""Unit tests for per-level commission amounts."""

from decimal import Decimal

import pytest

from app.services.commission.calculator import CommissionCalculator, CommissionResult, StopReason
from app.services.commission.ledger import CommissionEntry


@pytest.fixture
def calculator(mock_session):
    """Calculator with default settings and a mocked session."""
    return CommissionCalculator(mock_session)


class TestLevelAmount:
    """Tests for calculate_level_amount."""

    @pytest.mark.parametrize(
        "rate,expected",
        [
            ("20", "20.00"),
            ("10", "10.00"),
            ("5", "5.00"),
            ("3", "3.00"),
            ("2", "2.00"),
        ],
    )
    def test_standard_table_on_100(self, calculator, rate, expected):
        """Each level is a share of the order total, not of the previous level."""
        amount = calculator.calculate_level_amount(Decimal("100"), Decimal(rate))

        assert amount == Decimal(expected)

    def test_rounded_down_to_cents(self, calculator):
        """33.33 at 3% is 0.9999 and pays 0.99."""
        amount = calculator.calculate_level_amount(Decimal("33.33"), Decimal("3"))

        assert amount == Decimal("0.99")

    def test_fractional_rate(self, calculator):
        amount = calculator.calculate_level_amount(Decimal("250"), Decimal("2.5"))

        assert amount == Decimal("6.25")

    def test_too_small_order_pays_zero(self, calculator):
        amount = calculator.calculate_level_amount(Decimal("0.01"), Decimal("2"))

        assert amount == Decimal("0")

    @pytest.mark.parametrize("total,rate", [("0", "10"), ("-5", "10"), ("100", "0")])
    def test_non_positive_inputs(self, calculator, total, rate):
        amount = calculator.calculate_level_amount(Decimal(total), Decimal(rate))

        assert amount == Decimal("0")

    def test_custom_quantum(self, mock_session):
        """Rounding unit is configurable."""
        calculator = CommissionCalculator(mock_session, quantum=Decimal("1"))

        assert calculator.calculate_level_amount(
            Decimal("99"), Decimal("10")
        ) == Decimal("9")


class TestCalculatorConfiguration:
    """Tests for calculator limits."""

    def test_depth_never_exceeds_hard_limit(self, mock_session):
        calculator = CommissionCalculator(mock_session, max_depth=1000)

        assert calculator.max_depth == 20

    def test_zero_retries_respected(self, mock_session):
        calculator = CommissionCalculator(mock_session, credit_retries=0)

        assert calculator.credit_retries == 0


class TestCommissionResult:
    """Tests for CommissionResult helpers."""

    def _entry(self, level: int, amount: str) -> CommissionEntry:
        return CommissionEntry(
            commission_id=level,
            order_id="ORD-1",
            beneficiary_code=f"L{level}",
            level=level,
            rate=Decimal("10"),
            amount=Decimal(amount),
            status="pending",
            created_at=None,
        )

    def test_total_amount(self):
        result = CommissionResult(
            order_id="ORD-1",
            entries=[self._entry(1, "20.00"), self._entry(2, "10.00")],
        )

        assert result.total_amount == Decimal("30.00")

    def test_natural_end_not_degraded(self):
        result = CommissionResult(order_id="ORD-1", stop_reason=StopReason.NO_SPONSOR)

        assert not result.degraded

    def test_broken_chain_is_degraded(self):
        result = CommissionResult(order_id="ORD-1", stop_reason=StopReason.BROKEN_CHAIN)

        assert result.degraded

    def test_failed_level_is_degraded(self):
        result = CommissionResult(order_id="ORD-1", failed_levels=[2])

        assert result.degraded

    def test_entry_dict_shape(self):
        data = self._entry(1, "20.00").to_dict()

        assert data == {
            "orderId": "ORD-1",
            "beneficiaryCode": "L1",
            "level": 1,
            "amount": "20.00",
            "status": "pending",
            "createdAt": None,
        }
