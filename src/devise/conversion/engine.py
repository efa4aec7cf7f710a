"""Currency conversion against a RateTable.

Pure functions, no I/O and no rounding. Every rate in a table is "units of
code per one unit of the table's base", so conversions between two non-base
currencies go through the base (cross-rate).
"""

import math

from devise.exceptions import UnknownCurrency
from devise.models import RateTable


def parse_amount(text: str | float | int | None) -> float:
    """Parse user-typed amount text into a float.

    Empty, non-numeric and non-finite input all read as 0.0. A comma is
    accepted as the decimal separator. Never raises.
    """
    if text is None:
        return 0.0
    if isinstance(text, (int, float)):
        value = float(text)
    else:
        cleaned = text.strip().replace("\u00a0", "").replace(" ", "").replace(",", ".")
        if not cleaned:
            return 0.0
        try:
            value = float(cleaned)
        except ValueError:
            return 0.0
    if not math.isfinite(value):
        return 0.0
    return value


def _rate(table: RateTable, code: str) -> float:
    rate = table.rate_for(code)
    if rate is None or rate == 0:
        raise UnknownCurrency(code)
    return rate


def convert(
    table: RateTable,
    amount: str | float | int | None,
    from_currency: str,
    to_currency: str,
) -> float:
    """Convert ``amount`` of ``from_currency`` into ``to_currency``.

    Args:
        table: Rates relative to ``table.base_currency``.
        amount: Numeric amount or raw field text (see parse_amount).
        from_currency: Code the amount is expressed in.
        to_currency: Code to express the result in.

    Returns:
        The converted amount, unrounded.

    Raises:
        UnknownCurrency: Either code is missing from the table.
    """
    value = parse_amount(amount)

    to_rate = _rate(table, to_currency)
    from_rate = _rate(table, from_currency)

    if from_currency == to_currency:
        return value
    if from_currency == table.base_currency:
        return value * to_rate
    if to_currency == table.base_currency:
        return value / from_rate
    return value * to_rate / from_rate


def rate_between(table: RateTable, from_currency: str, to_currency: str) -> float:
    """Units of ``to_currency`` for one unit of ``from_currency``."""
    return convert(table, 1.0, from_currency, to_currency)
