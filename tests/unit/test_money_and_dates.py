"""Unit tests for money and epoch-ms date helpers"""

from fractions import Fraction
from bikely_gateway.utils.date_utils import MS_PER_DAY, add_days_ms, interval_days, to_datetime
from bikely_gateway.utils.money import format_money, is_fully_paid, remaining_balance, to_major_units


def test_interval_days():
    assert interval_days("monthly") == 30
    assert interval_days("daily") == 1
    assert interval_days("fortnightly") == 1
    assert interval_days(None) == 1


def test_add_days_ms(order_date_ms):
    assert add_days_ms(order_date_ms, 30) == order_date_ms + 30 * MS_PER_DAY


def test_to_datetime(order_date_ms):
    assert to_datetime(order_date_ms).isoformat() == "2026-01-01T00:00:00+00:00"


def test_remaining_balance():
    assert remaining_balance(1000, 400) == 600
    assert is_fully_paid(1000, 1000)
    assert not is_fully_paid(1000, 999)


def test_format_money():
    assert to_major_units(12345) == 123.45
    assert to_major_units(Fraction(1000, 3)) == 3.33
    assert format_money(300000) == "ZMW 3,000.00"
