"""Payment endpoints - processor-confirmed and manual settlements"""

import uuid
import logging
from typing import Callable, List
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from bikely_gateway.api.v1.orders import confirm_charge, find_recorded_charge, load_order, to_order_response
from bikely_gateway.api.v1.schemas import (
    ManualPaymentRequest,
    PaymentIntentRequest,
    PaymentIntentResponse,
    PaymentRecordedResponse,
    PaymentResponse,
    ProcessorPaymentRequest,
    ReconciliationResponse,
)
from bikely_gateway.api.dependencies import (
    get_current_user,
    get_now_ms,
    get_processor_client,
    get_request_id,
    require_admin,
)
from bikely_gateway.config import settings
from bikely_gateway.domain import ledger
from bikely_gateway.domain.exceptions import (
    ConcurrentUpdateError,
    DuplicatePaymentError,
    OverpaymentError,
    PaymentProcessorError,
)
from bikely_gateway.domain.models import LedgerEntry, Order, Payment, User
from bikely_gateway.infrastructure.clients.payment_processor import PaymentProcessorClient
from bikely_gateway.infrastructure.database.repositories import OrderRepository, PaymentRepository
from bikely_gateway.infrastructure.database.session import get_db
from bikely_gateway.infrastructure.observability.logging import log_overpayment_rejected, log_payment_recorded
from bikely_gateway.infrastructure.observability.metrics import overpayment_rejections_counter, record_payment
from bikely_gateway.utils.money import format_money

router = APIRouter()


def to_payment_response(payment: Payment) -> PaymentResponse:
    return PaymentResponse(
        id=payment.id,
        order_id=payment.order_id,
        amount_cents=payment.amount_cents,
        payment_date_ms=payment.payment_date_ms,
        source=payment.source,
        status=payment.status,
        notes=payment.notes,
    )


def settle(
    db: Session,
    order: Order,
    apply: Callable[[Order], LedgerEntry],
    request_id: str,
) -> PaymentRecordedResponse:
    """
    Shared write path for every payment source.

    The order patch and the payment insert commit together; a rejected or
    conflicting payment rolls back both.
    """
    try:
        entry = apply(order)
        updated = OrderRepository(db).save_entry(entry)
        db.commit()

    except OverpaymentError as e:
        db.rollback()
        overpayment_rejections_counter.inc()
        log_overpayment_rejected(request_id, str(order.id), e.attempted_cents or 0, e.remaining_cents)
        raise HTTPException(
            status_code=409,
            detail={
                "message": str(e),
                "remaining_cents": e.remaining_cents,
                "remaining_display": format_money(e.remaining_cents, settings.currency),
            },
        )

    except ConcurrentUpdateError as e:
        db.rollback()
        logging.warning(f"Concurrent payment on order: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Order was updated concurrently, reload and retry")

    except DuplicatePaymentError:
        db.rollback()
        raise

    record_payment(entry.payment)
    log_payment_recorded(request_id, entry.payment, updated.remaining_cents)

    return PaymentRecordedResponse(payment=to_payment_response(entry.payment), order=to_order_response(updated))


@router.post("/orders/{order_id}/payments", response_model=PaymentRecordedResponse)
async def record_processor_payment(
    order_id: uuid.UUID,
    request_body: ProcessorPaymentRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    processor: PaymentProcessorClient = Depends(get_processor_client),
    now_ms: int = Depends(get_now_ms),
):
    """
    Record a card payment after the processor confirms the charge.

    Flow:
    1. Fetch the payment intent from the processor (amount + transaction id)
    2. Return the existing payment if this transaction was already recorded
       on this order; reject it (409) if another order holds it
    3. Apply it through the ledger (overpayment check, atomic update)
    """
    request_id = get_request_id(request)
    order = load_order(db, order_id, user)

    confirmation = await confirm_charge(processor, request_body.payment_intent_id, request_id)

    existing = find_recorded_charge(db, confirmation.transaction_id, order.id)
    if existing is not None:
        return PaymentRecordedResponse(payment=to_payment_response(existing), order=to_order_response(order))

    return settle(
        db,
        order,
        lambda o: ledger.record_processor_payment(o, confirmation.amount_cents, confirmation.transaction_id, now_ms),
        request_id,
    )


@router.post("/orders/{order_id}/payments/manual", response_model=PaymentRecordedResponse)
def record_manual_payment(
    order_id: uuid.UUID,
    request_body: ManualPaymentRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    now_ms: int = Depends(get_now_ms),
    request_id: str = Depends(get_request_id),
):
    """Administrator-entered settlement (cash, transfer), tagged MANUAL_ENTRY"""
    order = load_order(db, order_id, admin)
    return settle(
        db,
        order,
        lambda o: ledger.record_manual_payment(o, request_body.amount_cents, now_ms, notes=request_body.notes),
        request_id,
    )


@router.get("/orders/{order_id}/payments", response_model=List[PaymentResponse])
def list_order_payments(order_id: uuid.UUID, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Payments of an order, newest first"""
    order = load_order(db, order_id, user)
    return [to_payment_response(p) for p in PaymentRepository(db).list_by_order(order.id)]


@router.get("/users/{user_id}/payments", response_model=List[PaymentResponse])
def list_user_payments(user_id: uuid.UUID, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """All payments across a customer's orders, newest first"""
    return [to_payment_response(p) for p in PaymentRepository(db).list_by_user(user_id)]


@router.post("/payments/intents", response_model=PaymentIntentResponse)
async def create_payment_intent(
    request_body: PaymentIntentRequest,
    request: Request,
    user: User = Depends(get_current_user),
    processor: PaymentProcessorClient = Depends(get_processor_client),
):
    try:
        client_secret = await processor.create_payment_intent(request_body.amount_cents)
    except PaymentProcessorError as e:
        logging.error(f"Payment processor error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Payment processor unavailable")
    return PaymentIntentResponse(client_secret=client_secret)


@router.get("/orders/{order_id}/reconciliation", response_model=ReconciliationResponse)
def reconcile_order(
    order_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    request_id: str = Depends(get_request_id),
):
    """Compare an order's paid amount with its payment records"""
    order = load_order(db, order_id, admin)
    payments = PaymentRepository(db).list_by_order(order.id)
    drift = ledger.reconcile(order, payments)
    if drift:
        logging.warning(
            "Ledger drift detected",
            extra={"request_id": request_id, "order_id": str(order.id), "drift_cents": drift},
        )
    return ReconciliationResponse(
        order_id=order.id,
        paid_amount_cents=order.paid_amount_cents,
        recorded_cents=order.paid_amount_cents - drift,
        drift_cents=drift,
        consistent=drift == 0,
    )
