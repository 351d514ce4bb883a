"""Rounding, summation and fixed-point formatting of currency values.

Rounding uses round-half-to-even on the decimal representation of the value, so
``bankers_round(2.45, 1)`` is ``2.4`` even though the binary float is a hair below 2.45.
"""
import decimal
import math
from typing import Iterable, Optional


def bankers_round(value: float, decimals: int = 2) -> float:
    """Round a value half-to-even.

    Args:
        value (float): The value to round. Non-finite values round to ``0.0``.
        decimals (int): Number of decimal places to keep.

    Returns:
        float: The rounded value.
    """
    if value is None or not math.isfinite(value):
        return 0.0

    quantum = decimal.Decimal(1).scaleb(-decimals)
    rounded = decimal.Decimal(repr(float(value))).quantize(quantum, rounding=decimal.ROUND_HALF_EVEN)
    return float(rounded)


def total(values: Iterable[float]) -> float:
    """Sum a sequence of values; an empty sequence sums to ``0.0``."""
    return math.fsum(values)


def format_money(value: float) -> str:
    """Format an amount with 2 decimal places."""
    return f'{value:.2f}'


def format_fx_rate(value: float) -> str:
    """Format an exchange rate with 6 decimal places."""
    return f'{value:.6f}'


def format_currency_amount(amount: float, currency_code: Optional[str], fallback: str = '') -> str:
    """Format an amount followed by its currency code.

    Args:
        amount (float): The amount.
        currency_code (str): The currency code, if known.
        fallback (str): Suffix used when no currency code is given.

    Returns:
        str: For example ``'12.50 GBP'``.
    """
    formatted = format_money(amount)
    if currency_code:
        return f'{formatted} {currency_code}'
    return f'{formatted} {fallback}' if fallback else formatted
