"""Overdue installment detection"""

from typing import List, Optional, Tuple

from bikely_gateway.domain.installments import schedule_for_order
from bikely_gateway.domain.models import InstallmentPlan, Order, OverdueInfo, PaymentType, ScheduledInstallment
from bikely_gateway.utils.date_utils import MS_PER_DAY

DEFAULT_GRACE_PERIOD_MS = MS_PER_DAY

# Absolute tolerance in minor units, not a percentage
SHORTFALL_TOLERANCE = 1


def find_overdue(
    order: Order,
    plan: Optional[InstallmentPlan],
    now_ms: int,
    grace_period_ms: int = DEFAULT_GRACE_PERIOD_MS,
) -> Optional[OverdueInfo]:
    """
    Report the earliest installment the customer is behind on.

    Only installments due strictly more than one grace period before now are
    considered. An installment is short when paid < cumulative_due - 1.
    Scanning stops at the first short installment.

    Returns None for full-payment, cancelled or settled orders, for plans
    without a duration, and for orders that are on schedule.
    """
    if order.payment_type != PaymentType.INSTALLMENT:
        return None
    if order.is_cancelled or order.remaining_cents <= 0:
        return None
    if plan is None or not plan.duration:
        return None

    cutoff_ms = now_ms - grace_period_ms
    paid = order.paid_amount_cents

    for installment in schedule_for_order(order, plan):
        if installment.due_date_ms >= cutoff_ms:
            # Due dates ascend; nothing later can be past the grace period
            break
        if paid < installment.cumulative_due - SHORTFALL_TOLERANCE:
            return OverdueInfo(
                amount_overdue=installment.cumulative_due - paid,
                due_date_ms=installment.due_date_ms,
            )

    return None


def classify_installments(
    order: Order,
    plan: InstallmentPlan,
    now_ms: int,
    grace_period_ms: int = DEFAULT_GRACE_PERIOD_MS,
) -> List[Tuple[ScheduledInstallment, str]]:
    """
    Label each installment for display (paid, overdue, due, upcoming, or
    cancelled for unpaid rows of a cancelled order).

    Uses the same tolerance and grace rules as find_overdue, so the first
    "overdue" row is the installment find_overdue reports.
    """
    cutoff_ms = now_ms - grace_period_ms
    paid = order.paid_amount_cents
    rows = []
    for installment in schedule_for_order(order, plan):
        if paid >= installment.cumulative_due - SHORTFALL_TOLERANCE:
            status = "paid"
        elif order.is_cancelled:
            status = "cancelled"
        elif installment.due_date_ms < cutoff_ms:
            status = "overdue"
        elif installment.due_date_ms <= now_ms:
            status = "due"
        else:
            status = "upcoming"
        rows.append((installment, status))
    return rows
