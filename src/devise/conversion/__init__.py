"""Conversion engine -- pure functions over a RateTable."""

from devise.conversion.engine import convert, parse_amount, rate_between

__all__ = ["convert", "parse_amount", "rate_between"]
