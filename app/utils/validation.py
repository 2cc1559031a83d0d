"""
Validation utilities.

Affiliate code and monetary amount helpers.
"""

import re
from decimal import ROUND_DOWN, Decimal, InvalidOperation

from app.config.business_constants import AFFILIATE_CODE_MAX_LENGTH


_AFFILIATE_CODE_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_affiliate_code(code: str) -> bool:
    """
    Validate affiliate code format.

    Args:
        code: Affiliate code

    Returns:
        True if valid
    """
    if not code or not isinstance(code, str):
        return False

    if len(code) > AFFILIATE_CODE_MAX_LENGTH:
        return False

    return bool(_AFFILIATE_CODE_RE.match(code))


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """
    Convert a numeric value to Decimal without float artifacts.

    Args:
        value: Numeric value

    Returns:
        Decimal value

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() first: Decimal(0.1) would carry binary noise
            result = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"Not a valid amount: {value!r}") from e

    if not result.is_finite():
        raise ValueError(f"Not a valid amount: {value!r}")
    return result


def quantize_money(amount: Decimal, quantum: Decimal) -> Decimal:
    """
    Round a monetary amount down to the smallest payable unit.

    Rounding down means the sum of level commissions never exceeds
    the exact share of the order amount.

    Args:
        amount: Exact amount
        quantum: Smallest unit, e.g. Decimal("0.01")

    Returns:
        Quantized amount
    """
    return amount.quantize(quantum, rounding=ROUND_DOWN)


def validate_order_amount(amount: Decimal) -> bool:
    """
    Validate an order total.

    Args:
        amount: Order total

    Returns:
        True if it is a positive finite Decimal
    """
    if not isinstance(amount, Decimal):
        return False

    if not amount.is_finite():
        return False

    return amount > 0
