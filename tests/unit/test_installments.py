"""Unit tests for installment schedule generation"""

import pytest
from fractions import Fraction
from bikely_gateway.domain.exceptions import InvalidScheduleError
from bikely_gateway.domain.installments import (
    allocate_installment_amounts,
    generate_schedule,
    next_installment_amount,
    validate_plan,
)
from bikely_gateway.domain.models import InstallmentPlan
from bikely_gateway.utils.date_utils import MS_PER_DAY


def test_monthly_schedule_dates_and_amounts(order_date_ms):
    """3 monthly installments of 300: due T, T+30d, T+60d; cumulative 100/200/300"""
    schedule = list(generate_schedule(order_date_ms, 3, "monthly", 300))

    assert [s.index for s in schedule] == [0, 1, 2]
    assert [s.due_date_ms for s in schedule] == [
        order_date_ms,
        order_date_ms + 30 * MS_PER_DAY,
        order_date_ms + 60 * MS_PER_DAY,
    ]
    assert [s.cumulative_due for s in schedule] == [100, 200, 300]


def test_first_installment_due_on_order_date(order_date_ms):
    """Index 0 is the at-purchase payment, not one interval later"""
    first = next(iter(generate_schedule(order_date_ms, 6, "monthly", 600)))
    assert first.due_date_ms == order_date_ms


def test_daily_schedule_spacing(order_date_ms):
    schedule = list(generate_schedule(order_date_ms, 30, "daily", 3000))

    assert len(schedule) == 30
    assert schedule[1].due_date_ms - schedule[0].due_date_ms == MS_PER_DAY
    assert schedule[-1].due_date_ms == order_date_ms + 29 * MS_PER_DAY


@pytest.mark.parametrize("interval", [None, "weekly", ""])
def test_unknown_interval_falls_back_to_daily(order_date_ms, interval):
    schedule = list(generate_schedule(order_date_ms, 2, interval, 200))
    assert schedule[1].due_date_ms == order_date_ms + MS_PER_DAY


def test_fractional_installments_are_exact(order_date_ms):
    """1000 over 3 keeps exact thirds; the final cumulative equals the total"""
    schedule = generate_schedule(order_date_ms, 3, "monthly", 1000)

    assert schedule.per_installment == Fraction(1000, 3)
    cumulative = [s.cumulative_due for s in schedule]
    assert cumulative[0] == Fraction(1000, 3)
    assert cumulative[-1] == 1000


def test_schedule_is_restartable(order_date_ms):
    """Iterating twice yields the same rows; no state is kept between walks"""
    schedule = generate_schedule(order_date_ms, 4, "monthly", 400)
    assert list(schedule) == list(schedule)
    assert len(schedule) == 4


@pytest.mark.parametrize("duration,total", [(0, 300), (-2, 300), (3, 0), (3, -100)])
def test_invalid_schedule_inputs(order_date_ms, duration, total):
    with pytest.raises(InvalidScheduleError):
        generate_schedule(order_date_ms, duration, "monthly", total)


def test_allocate_installment_amounts_rounding():
    """Last installment absorbs remainder"""
    amounts = allocate_installment_amounts(100_000, 3)

    assert amounts == [33_333, 33_333, 33_334]
    assert sum(amounts) == 100_000


def test_allocate_installment_amounts_even_split():
    assert allocate_installment_amounts(300_000, 3) == [100_000, 100_000, 100_000]


def test_next_installment_amount_capped_at_remaining(make_order):
    plan = InstallmentPlan(available=True, duration=3, interval="monthly")

    assert next_installment_amount(make_order(total=300_000, paid=0), plan) == 100_000
    assert next_installment_amount(make_order(total=300_000, paid=250_000), plan) == 50_000
    assert next_installment_amount(make_order(total=300_000, paid=300_000), plan) == 0


def test_next_installment_amount_without_plan_is_remaining(make_order):
    assert next_installment_amount(make_order(total=5_000, paid=1_000), None) == 4_000


def test_validate_plan_requires_duration_when_available():
    with pytest.raises(InvalidScheduleError):
        validate_plan(InstallmentPlan(available=True, duration=None))

    validate_plan(InstallmentPlan(available=False, duration=None))
    validate_plan(InstallmentPlan(available=True, duration=6, interval="monthly"))
