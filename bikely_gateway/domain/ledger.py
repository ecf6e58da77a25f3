"""Order ledger - payment application and order lifecycle rules"""

import uuid
from dataclasses import replace
from typing import Iterable, Optional

from bikely_gateway.domain.exceptions import (
    InvalidPaymentError,
    OrderStateError,
    OverpaymentError,
)
from bikely_gateway.domain.models import (
    MANUAL_ENTRY,
    Bicycle,
    LedgerEntry,
    Order,
    OrderStatus,
    Payment,
    PaymentType,
    User,
)


def apply_payment(
    order: Order,
    amount_cents: int,
    source: str,
    now_ms: int,
    notes: Optional[str] = None,
) -> LedgerEntry:
    """
    Apply a settlement to an order.

    All-or-nothing: the input order is never mutated, and on rejection no
    record is produced.

    Raises:
        InvalidPaymentError: amount is not positive or source is empty
        OverpaymentError: paid + amount would exceed the order total
    """
    if amount_cents <= 0:
        raise InvalidPaymentError(f"Payment amount must be positive, got {amount_cents}")
    if not source:
        raise InvalidPaymentError("Payment source is required")

    new_paid = order.paid_amount_cents + amount_cents
    if new_paid > order.total_amount_cents:
        raise OverpaymentError(order.remaining_cents, amount_cents)

    payment = Payment(
        id=uuid.uuid4(),
        order_id=order.id,
        amount_cents=amount_cents,
        payment_date_ms=now_ms,
        source=source,
        notes=notes,
    )
    return LedgerEntry(order=replace(order, paid_amount_cents=new_paid), payment=payment)


def record_processor_payment(order: Order, amount_cents: int, transaction_id: str, now_ms: int) -> LedgerEntry:
    """Payment confirmed by the payment processor"""
    if transaction_id == MANUAL_ENTRY:
        raise InvalidPaymentError(f"{MANUAL_ENTRY} is reserved for administrator entries")
    return apply_payment(order, amount_cents, transaction_id, now_ms)


def record_manual_payment(order: Order, amount_cents: int, now_ms: int, notes: Optional[str] = None) -> LedgerEntry:
    """Payment entered by an administrator (cash, bank transfer...)"""
    return apply_payment(order, amount_cents, MANUAL_ENTRY, now_ms, notes=notes)


def open_order(
    user: User,
    bicycle: Bicycle,
    payment_type: PaymentType,
    initial_payment_cents: int,
    now_ms: int,
    processor_transaction_id: Optional[str] = None,
    processor_intent_id: Optional[str] = None,
) -> LedgerEntry:
    """
    Checkout: create a pending order priced from the bicycle.

    Installment orders snapshot the bicycle's plan so later catalog edits do
    not rewrite the schedule of existing orders. The initial payment, if any,
    is recorded through apply_payment so the order and its payments agree.
    """
    if user.address is None:
        raise OrderStateError("Shipping address is required. Please update your profile.")

    plan = None
    if payment_type == PaymentType.INSTALLMENT:
        if not bicycle.plan.available or not bicycle.plan.duration:
            raise OrderStateError(f"Installments are not available for bicycle {bicycle.id}")
        plan = bicycle.plan

    if initial_payment_cents < 0:
        raise InvalidPaymentError(f"Initial payment cannot be negative, got {initial_payment_cents}")
    if initial_payment_cents > 0 and not processor_transaction_id:
        raise InvalidPaymentError("Initial payment requires a processor transaction id")

    order = Order(
        id=uuid.uuid4(),
        user_id=user.id,
        bicycle_id=bicycle.id,
        total_amount_cents=bicycle.price_cents,
        paid_amount_cents=0,
        payment_type=payment_type,
        status=OrderStatus.PENDING,
        order_date_ms=now_ms,
        plan=plan,
        shipping_address=user.address,
        processor_intent_id=processor_intent_id,
    )

    if initial_payment_cents == 0:
        return LedgerEntry(order=order, payment=None)
    return record_processor_payment(order, initial_payment_cents, processor_transaction_id, now_ms)


def change_status(order: Order, status: OrderStatus) -> Order:
    """Administrator status transition"""
    return replace(order, status=status)


def cancel_order(order: Order) -> Order:
    """Only orders that have not started processing can be cancelled"""
    if order.status != OrderStatus.PENDING:
        raise OrderStateError("Cannot cancel order that is not pending")
    return replace(order, status=OrderStatus.CANCELLED)


def reconcile(order: Order, payments: Iterable[Payment]) -> int:
    """
    Difference between the order's paid amount and the sum of its payments.

    Zero when the ledger is consistent; positive means paid_amount is ahead of
    the recorded payments.
    """
    recorded = sum(p.amount_cents for p in payments if p.order_id == order.id)
    return order.paid_amount_cents - recorded
