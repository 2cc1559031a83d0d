"""Unit tests for validation utilities."""

from decimal import Decimal

import pytest

from app.utils.validation import (
    quantize_money,
    to_decimal,
    validate_affiliate_code,
    validate_order_amount,
)


class TestAffiliateCodeValidation:
    """Tests for affiliate code validation."""

    def test_empty_code_invalid(self):
        """Empty code should be invalid."""
        assert not validate_affiliate_code("")

    def test_none_invalid(self):
        """None should be invalid."""
        assert not validate_affiliate_code(None)

    def test_too_long_code_invalid(self):
        """Code longer than 20 characters should be invalid."""
        assert not validate_affiliate_code("A" * 21)

    @pytest.mark.parametrize("code", ["bad code", "ABC!", "ÄBC", "A/B"])
    def test_invalid_characters(self, code):
        """Codes with spaces or punctuation should be invalid."""
        assert not validate_affiliate_code(code)

    @pytest.mark.parametrize("code", ["ABC123", "team_lead-7", "A" * 20])
    def test_valid_codes(self, code):
        """Alphanumeric codes with - and _ should pass."""
        assert validate_affiliate_code(code)


class TestDecimalConversion:
    """Tests for Decimal conversion."""

    def test_float_without_binary_noise(self):
        """Float should convert through its string form."""
        assert to_decimal(0.1) == Decimal("0.1")

    def test_decimal_passthrough(self):
        """Decimal should be returned as is."""
        value = Decimal("12.34")
        assert to_decimal(value) is value

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity"])
    def test_invalid_values_rejected(self, value):
        """Non-finite or non-numeric values should raise ValueError."""
        with pytest.raises(ValueError):
            to_decimal(value)


class TestMoneyQuantization:
    """Tests for rounding to the payable unit."""

    def test_rounds_down(self):
        """Amounts should be rounded down, never up."""
        assert quantize_money(Decimal("0.9999"), Decimal("0.01")) == Decimal("0.99")

    def test_exact_amount_unchanged(self):
        """Exact amounts should keep their value."""
        assert quantize_money(Decimal("20"), Decimal("0.01")) == Decimal("20.00")

    def test_below_quantum_is_zero(self):
        """Amounts below one unit should become zero."""
        assert quantize_money(Decimal("0.0002"), Decimal("0.01")) == Decimal("0")


class TestOrderAmountValidation:
    """Tests for order total validation."""

    def test_positive_decimal_valid(self):
        assert validate_order_amount(Decimal("100"))

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), Decimal("NaN")])
    def test_non_positive_invalid(self, amount):
        assert not validate_order_amount(amount)

    def test_float_invalid(self):
        """Floats are not accepted as monetary amounts."""
        assert not validate_order_amount(100.0)
