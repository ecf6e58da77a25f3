"""Installment schedule generation for financed orders"""

from fractions import Fraction
from typing import Iterator, List, Optional

from bikely_gateway.domain.exceptions import InvalidScheduleError
from bikely_gateway.domain.models import InstallmentPlan, Order, ScheduledInstallment
from bikely_gateway.utils.date_utils import MS_PER_DAY, interval_days


class InstallmentSchedule:
    """
    Derived, restartable view of an order's installment schedule.

    Each iteration recomputes the rows from the inputs, so the schedule can be
    walked any number of times and never holds state between walks.
    """

    def __init__(self, order_date_ms: int, duration: int, interval: Optional[str], total_amount: int):
        if duration is None or duration <= 0:
            raise InvalidScheduleError(f"Installment duration must be positive, got {duration}")
        if total_amount <= 0:
            raise InvalidScheduleError(f"Total amount must be positive, got {total_amount}")

        self.order_date_ms = order_date_ms
        self.duration = duration
        self.interval = interval
        self.total_amount = total_amount

    @property
    def per_installment(self) -> Fraction:
        # Exact division; fractional minor units are kept, never rounded
        return Fraction(self.total_amount, self.duration)

    @property
    def interval_ms(self) -> int:
        return interval_days(self.interval) * MS_PER_DAY

    def __len__(self) -> int:
        return self.duration

    def __iter__(self) -> Iterator[ScheduledInstallment]:
        per_installment = self.per_installment
        step = self.interval_ms
        for index in range(self.duration):
            yield ScheduledInstallment(
                index=index,
                due_date_ms=self.order_date_ms + index * step,
                cumulative_due=(index + 1) * per_installment,
            )


def generate_schedule(
    order_date_ms: int,
    duration: int,
    interval: Optional[str],
    total_amount: int,
) -> InstallmentSchedule:
    """
    Build the installment schedule for an order.

    - Index 0 is due on the order date itself (the at-purchase payment)
    - Monthly plans are spaced 30 days apart; every other interval is daily
    - cumulative_due(i) = (i + 1) * total / duration

    Raises:
        InvalidScheduleError: duration <= 0 or total_amount <= 0
    """
    return InstallmentSchedule(order_date_ms, duration, interval, total_amount)


def validate_plan(plan: InstallmentPlan) -> None:
    """A plan offered to customers must say how many installments it has"""
    if plan.available and (plan.duration is None or plan.duration <= 0):
        raise InvalidScheduleError("installment_duration must be a positive integer when installments are available")


def schedule_for_order(order: Order, plan: InstallmentPlan) -> InstallmentSchedule:
    """Schedule of an order under the given plan"""
    return generate_schedule(order.order_date_ms, plan.duration, plan.interval, order.total_amount_cents)


def allocate_installment_amounts(total_cents: int, duration: int) -> List[int]:
    """
    Split a total into whole minor-unit installment amounts.

    Last installment absorbs the rounding remainder so the amounts sum to the
    total exactly.

    Example:
        100000 over 3 -> [33333, 33333, 33334]
    """
    if duration <= 0:
        raise InvalidScheduleError(f"Installment duration must be positive, got {duration}")
    if total_cents <= 0:
        return []

    base_amount = total_cents // duration
    remainder = total_cents % duration

    return [base_amount + (remainder if i == duration - 1 else 0) for i in range(duration)]


def next_installment_amount(order: Order, plan: Optional[InstallmentPlan]) -> int:
    """Suggested next payment: one installment, capped at the remaining balance"""
    remaining = order.remaining_cents
    if remaining <= 0:
        return 0
    if plan is None or not plan.duration:
        return remaining
    per_installment = order.total_amount_cents // plan.duration
    return min(per_installment, remaining) if per_installment > 0 else remaining
