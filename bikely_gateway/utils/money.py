"""Minor-unit money helpers (cents / ngwee)"""

from fractions import Fraction
from typing import Union

Amount = Union[int, Fraction]


def remaining_balance(total_cents: int, paid_cents: int) -> int:
    """Outstanding balance; zero or negative means fully paid"""
    return total_cents - paid_cents


def is_fully_paid(total_cents: int, paid_cents: int) -> bool:
    return remaining_balance(total_cents, paid_cents) <= 0


def to_major_units(amount: Amount) -> float:
    """Render a minor-unit amount in major units, e.g. 12345 -> 123.45"""
    return round(float(amount) / 100, 2)


def format_money(amount: Amount, currency: str = "zmw") -> str:
    """Human readable amount used in operator-facing messages"""
    return f"{currency.upper()} {to_major_units(amount):,.2f}"
