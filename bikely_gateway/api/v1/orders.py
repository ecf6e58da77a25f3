"""Order endpoints - checkout, tracking, status changes and schedules"""

import uuid
import logging
from dataclasses import asdict
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from bikely_gateway.api.v1.schemas import (
    AddressSchema,
    OrderCreateRequest,
    OrderResponse,
    ScheduleItem,
    ScheduleResponse,
    StatusUpdateRequest,
)
from bikely_gateway.api.dependencies import (
    ensure_owner_or_admin,
    get_current_user,
    get_now_ms,
    get_processor_client,
    get_request_id,
    require_admin,
)
from bikely_gateway.config import settings
from bikely_gateway.domain import ledger
from bikely_gateway.domain.analytics import resolve_plan
from bikely_gateway.domain.exceptions import (
    DomainException,
    DuplicatePaymentError,
    NotFoundError,
    PaymentNotConfirmedError,
    PaymentProcessorError,
)
from bikely_gateway.domain.installments import allocate_installment_amounts, next_installment_amount, schedule_for_order
from bikely_gateway.domain.models import LedgerEntry, Order, Payment, ProcessorConfirmation, User
from bikely_gateway.domain.overdue import classify_installments
from bikely_gateway.infrastructure.clients.payment_processor import PaymentProcessorClient
from bikely_gateway.infrastructure.database.repositories import BicycleRepository, OrderRepository, PaymentRepository
from bikely_gateway.infrastructure.database.session import get_db
from bikely_gateway.infrastructure.observability.logging import log_order_opened
from bikely_gateway.infrastructure.observability.metrics import orders_opened_counter, record_payment

router = APIRouter()
logger = logging.getLogger(__name__)


def to_order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        user_id=order.user_id,
        bicycle_id=order.bicycle_id,
        status=order.status,
        payment_type=order.payment_type,
        total_amount_cents=order.total_amount_cents,
        paid_amount_cents=order.paid_amount_cents,
        remaining_cents=max(order.remaining_cents, 0),
        order_date_ms=order.order_date_ms,
        installment_duration=order.plan.duration if order.plan else None,
        installment_interval=order.plan.interval if order.plan else None,
        next_installment_cents=next_installment_amount(order, order.plan),
        shipping_address=AddressSchema(**asdict(order.shipping_address)) if order.shipping_address else None,
    )


def load_order(db: Session, order_id: uuid.UUID, user: User) -> Order:
    """Fetch an order the caller may access"""
    order = OrderRepository(db).get_by_id(order_id)
    if order is None:
        raise NotFoundError("Order", order_id)
    ensure_owner_or_admin(user, order)
    return order


async def confirm_charge(
    processor: PaymentProcessorClient,
    payment_intent_id: str,
    request_id: str,
) -> ProcessorConfirmation:
    """Amount and transaction id of a charge, as reported by the processor"""
    try:
        confirmation = await processor.get_payment_intent(payment_intent_id)
    except PaymentProcessorError as e:
        if e.rejected:
            raise PaymentNotConfirmedError(f"Payment {payment_intent_id} could not be confirmed") from e
        logging.error(f"Payment processor error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Payment processor unavailable")

    if not confirmation.succeeded:
        raise PaymentNotConfirmedError(f"Payment {confirmation.transaction_id} is {confirmation.status}")
    return confirmation


def find_recorded_charge(db: Session, transaction_id: str, order_id: Optional[uuid.UUID]) -> Optional[Payment]:
    """
    Existing payment for a processor transaction.

    A transaction credits one order only: finding it on any other order
    raises DuplicatePaymentError.
    """
    existing = PaymentRepository(db).find_by_source(transaction_id)
    if existing is not None and existing.order_id != order_id:
        raise DuplicatePaymentError(transaction_id, existing.order_id)
    return existing


@router.post("/orders", response_model=OrderResponse, status_code=201)
async def create_order(
    request_body: OrderCreateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    processor: PaymentProcessorClient = Depends(get_processor_client),
    now_ms: int = Depends(get_now_ms),
    request_id: str = Depends(get_request_id),
):
    """
    Checkout a bicycle.

    Flow:
    1. Price the order from the catalog (never from the client)
    2. Confirm the initial charge, if any, with the payment processor
    3. Snapshot the installment plan and shipping address
    4. Record the confirmed amount in the same transaction as the order
    """
    bicycle = BicycleRepository(db).get_by_id(request_body.bicycle_id)
    if bicycle is None:
        raise NotFoundError("Bicycle", request_body.bicycle_id)

    initial_payment_cents = 0
    transaction_id = None
    if request_body.payment_intent_id:
        confirmation = await confirm_charge(processor, request_body.payment_intent_id, request_id)
        find_recorded_charge(db, confirmation.transaction_id, None)
        initial_payment_cents = confirmation.amount_cents
        transaction_id = confirmation.transaction_id

    entry = ledger.open_order(
        user=user,
        bicycle=bicycle,
        payment_type=request_body.payment_type,
        initial_payment_cents=initial_payment_cents,
        now_ms=now_ms,
        processor_transaction_id=transaction_id,
        processor_intent_id=request_body.payment_intent_id,
    )
    try:
        order = OrderRepository(db).create(entry)
        db.commit()
    except DomainException:
        db.rollback()
        raise

    orders_opened_counter.labels(payment_type=order.payment_type.value).inc()
    if entry.payment is not None:
        record_payment(entry.payment)
    log_order_opened(request_id, str(order.id), order.payment_type.value, order.total_amount_cents, order.paid_amount_cents)

    return to_order_response(order)


@router.get("/orders", response_model=List[OrderResponse])
def list_my_orders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [to_order_response(o) for o in OrderRepository(db).list_by_user(user.id)]


@router.get("/orders/all", response_model=List[OrderResponse])
def list_all_orders(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return [to_order_response(o) for o in OrderRepository(db).list_all()]


@router.get("/users/{user_id}/orders", response_model=List[OrderResponse])
def list_user_orders(user_id: uuid.UUID, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return [to_order_response(o) for o in OrderRepository(db).list_by_user(user_id)]


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(order_id: uuid.UUID, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return to_order_response(load_order(db, order_id, user))


@router.get("/orders/{order_id}/schedule", response_model=ScheduleResponse)
def get_order_schedule(
    order_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now_ms: int = Depends(get_now_ms),
):
    """
    Installment schedule with per-installment status.

    Uses the plan snapshotted at checkout; orders placed before snapshots
    existed fall back to the bicycle's current plan.
    """
    order = load_order(db, order_id, user)
    bicycles = BicycleRepository(db)
    bicycle = bicycles.get_by_id(order.bicycle_id)
    plan = resolve_plan(order, {bicycle.id: bicycle} if bicycle else {})
    if plan is None or not plan.duration:
        raise HTTPException(status_code=404, detail="Order has no installment schedule")

    schedule = schedule_for_order(order, plan)
    amounts = allocate_installment_amounts(order.total_amount_cents, plan.duration)
    rows = classify_installments(order, plan, now_ms, settings.overdue_grace_period_ms)

    return ScheduleResponse(
        order_id=order.id,
        total_amount_cents=order.total_amount_cents,
        paid_amount_cents=order.paid_amount_cents,
        per_installment_cents=float(schedule.per_installment),
        installments=[
            ScheduleItem(
                index=installment.index,
                due_date_ms=installment.due_date_ms,
                amount_cents=amounts[installment.index],
                cumulative_due_cents=float(installment.cumulative_due),
                status=status,
            )
            for installment, status in rows
        ],
    )


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: uuid.UUID,
    request_body: StatusUpdateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id),
):
    order = load_order(db, order_id, admin)
    updated = OrderRepository(db).save_entry(LedgerEntry(order=ledger.change_status(order, request_body.status), payment=None))
    db.commit()
    logger.info(
        "Order status changed",
        extra={"request_id": request_id, "order_id": str(order_id), "from": order.status.value, "to": updated.status.value},
    )
    return to_order_response(updated)


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id),
):
    """Owner or admin may cancel while the order is still pending"""
    order = load_order(db, order_id, user)
    updated = OrderRepository(db).save_entry(LedgerEntry(order=ledger.cancel_order(order), payment=None))
    db.commit()
    logger.info("Order cancelled", extra={"request_id": request_id, "order_id": str(order_id)})
    return to_order_response(updated)
