"""Portfolio statistics for the admin dashboard"""

import uuid
from dataclasses import dataclass, replace
from functools import reduce
from typing import Dict, Iterable, Mapping, Optional

from bikely_gateway.domain.models import (
    Bicycle,
    InstallmentPlan,
    Order,
    OverdueOrder,
    PaymentType,
    PortfolioStats,
    User,
)
from bikely_gateway.domain.overdue import DEFAULT_GRACE_PERIOD_MS, find_overdue

UNKNOWN_CUSTOMER = "Unknown"


@dataclass(frozen=True)
class _Accumulator:
    total_orders: int = 0
    total_revenue: int = 0
    total_outstanding: int = 0
    fully_paid: int = 0
    partially_paid: int = 0
    unpaid: int = 0
    installment_revenue: int = 0
    installment_total_value: int = 0


def resolve_plan(order: Order, bicycles_by_id: Mapping[uuid.UUID, Bicycle]) -> Optional[InstallmentPlan]:
    """Order's checkout snapshot, else the bicycle's current plan (legacy orders)"""
    if order.plan is not None:
        return order.plan
    bicycle = bicycles_by_id.get(order.bicycle_id)
    return bicycle.plan if bicycle is not None else None


def _is_owing(order: Order) -> bool:
    return order.remaining_cents > 0 and not order.is_cancelled


def _fold_order(acc: _Accumulator, order: Order) -> _Accumulator:
    paid = order.paid_amount_cents
    total = order.total_amount_cents
    remaining = total - paid

    # Status buckets span every order, cancelled included
    if remaining <= 0:
        bucket = {"fully_paid": acc.fully_paid + 1}
    elif paid > 0:
        bucket = {"partially_paid": acc.partially_paid + 1}
    else:
        bucket = {"unpaid": acc.unpaid + 1}

    acc = replace(
        acc,
        total_orders=acc.total_orders + 1,
        total_revenue=acc.total_revenue + paid,
        total_outstanding=acc.total_outstanding + (remaining if _is_owing(order) else 0),
        **bucket,
    )

    if order.payment_type != PaymentType.INSTALLMENT:
        return acc
    return replace(
        acc,
        installment_revenue=acc.installment_revenue + paid,
        installment_total_value=acc.installment_total_value + total,
    )


def _overdue_row(
    order: Order,
    bicycles_by_id: Mapping[uuid.UUID, Bicycle],
    users_by_id: Mapping[uuid.UUID, User],
    now_ms: int,
    grace_period_ms: int,
) -> Optional[OverdueOrder]:
    info = find_overdue(order, resolve_plan(order, bicycles_by_id), now_ms, grace_period_ms)
    if info is None:
        return None

    customer = users_by_id.get(order.user_id)
    return OverdueOrder(
        order_id=order.id,
        customer_name=customer.name if customer and customer.name else UNKNOWN_CUSTOMER,
        amount_overdue=info.amount_overdue,
        due_date_ms=info.due_date_ms,
        total_amount_cents=order.total_amount_cents,
        paid_amount_cents=order.paid_amount_cents,
    )


def aggregate(
    orders: Iterable[Order],
    bicycles: Iterable[Bicycle],
    users: Iterable[User],
    now_ms: int,
    grace_period_ms: int = DEFAULT_GRACE_PERIOD_MS,
) -> PortfolioStats:
    """
    Fold all orders into portfolio statistics.

    Pure function of its inputs: the same snapshot and clock always give the
    same result. Runs in linear time over the orders.

    - Revenue counts every order's paid amount, cancelled included
    - Outstanding and owing users exclude cancelled and settled orders
    - Overdue rows report the earliest short installment per order
    """
    orders = list(orders)
    bicycles_by_id: Dict[uuid.UUID, Bicycle] = {b.id: b for b in bicycles}
    users_by_id: Dict[uuid.UUID, User] = {u.id: u for u in users}

    acc = reduce(_fold_order, orders, _Accumulator())

    owing = [o for o in orders if _is_owing(o)]
    active_installments = [o for o in owing if o.payment_type == PaymentType.INSTALLMENT]
    overdue = [
        row
        for row in (_overdue_row(o, bicycles_by_id, users_by_id, now_ms, grace_period_ms) for o in active_installments)
        if row is not None
    ]

    return PortfolioStats(
        total_orders=acc.total_orders,
        total_revenue_cents=acc.total_revenue,
        total_outstanding_cents=acc.total_outstanding,
        active_installments_count=len(active_installments),
        users_owing_count=len(frozenset(o.user_id for o in owing)),
        products_on_installment_count=len(frozenset(o.bicycle_id for o in active_installments)),
        total_installment_revenue_cents=acc.installment_revenue,
        total_installment_total_value_cents=acc.installment_total_value,
        order_status={
            "paid": acc.fully_paid,
            "partial": acc.partially_paid,
            "unpaid": acc.unpaid,
        },
        overdue_orders=overdue,
    )
