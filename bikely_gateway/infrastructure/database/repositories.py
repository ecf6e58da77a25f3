"""Data access layer mapping ORM rows to domain records"""

import uuid
from dataclasses import asdict
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from bikely_gateway.infrastructure.database.models import UserRecord, BicycleRecord, OrderRecord, PaymentRecord
from bikely_gateway.domain.exceptions import ConcurrentUpdateError, DuplicatePaymentError, NotFoundError
from bikely_gateway.domain.models import (
    MANUAL_ENTRY,
    Bicycle,
    InstallmentPlan,
    LedgerEntry,
    Order,
    OrderStatus,
    Payment,
    PaymentType,
    ShippingAddress,
    User,
    UserRole,
)


def _address_from_json(data: Optional[dict]) -> Optional[ShippingAddress]:
    return ShippingAddress(**data) if data else None


def _address_to_json(address: Optional[ShippingAddress]) -> Optional[dict]:
    return asdict(address) if address is not None else None


def to_user(record: UserRecord) -> User:
    return User(
        id=record.id,
        auth_subject=record.auth_subject,
        name=record.name,
        email=record.email,
        role=UserRole(record.role),
        address=_address_from_json(record.address),
    )


def to_bicycle(record: BicycleRecord) -> Bicycle:
    return Bicycle(
        id=record.id,
        name=record.name,
        description=record.description,
        price_cents=record.price_cents,
        stock=record.stock,
        is_featured=record.is_featured,
        plan=InstallmentPlan(
            available=record.installment_available,
            duration=record.installment_duration,
            interval=record.installment_interval,
        ),
    )


def to_order(record: OrderRecord) -> Order:
    plan = None
    if record.plan_duration is not None:
        plan = InstallmentPlan(available=True, duration=record.plan_duration, interval=record.plan_interval)

    return Order(
        id=record.id,
        user_id=record.user_id,
        bicycle_id=record.bicycle_id,
        total_amount_cents=record.total_amount_cents,
        paid_amount_cents=record.paid_amount_cents or 0,
        payment_type=PaymentType(record.payment_type),
        status=OrderStatus(record.status),
        order_date_ms=record.order_date_ms,
        plan=plan,
        shipping_address=_address_from_json(record.shipping_address),
        processor_intent_id=record.processor_intent_id,
    )


def to_payment(record: PaymentRecord) -> Payment:
    return Payment(
        id=record.id,
        order_id=record.order_id,
        amount_cents=record.amount_cents,
        payment_date_ms=record.payment_date_ms,
        source=record.source,
        status=record.status,
        notes=record.notes,
    )


class UserRepository:
    """Repository for users"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        record = self.db.get(UserRecord, user_id)
        return to_user(record) if record else None

    def get_by_subject(self, auth_subject: str) -> Optional[User]:
        record = self.db.query(UserRecord).filter(UserRecord.auth_subject == auth_subject).first()
        return to_user(record) if record else None

    def store(self, auth_subject: str, name: str, email: str) -> User:
        """Create the user on first sign-in; return the existing one afterwards"""
        record = self.db.query(UserRecord).filter(UserRecord.auth_subject == auth_subject).first()
        if record is None:
            record = UserRecord(auth_subject=auth_subject, name=name, email=email, role=UserRole.USER.value)
            self.db.add(record)
            self.db.flush()
        return to_user(record)

    def update_address(self, user_id: uuid.UUID, address: ShippingAddress) -> User:
        record = self.db.get(UserRecord, user_id)
        if record is None:
            raise NotFoundError("User", user_id)
        record.address = _address_to_json(address)
        self.db.flush()
        return to_user(record)

    def list_all(self) -> List[User]:
        return [to_user(r) for r in self.db.query(UserRecord).all()]


class BicycleRepository:
    """Repository for catalog bicycles"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields) -> Bicycle:
        record = BicycleRecord(**fields)
        self.db.add(record)
        self.db.flush()
        return to_bicycle(record)

    def get_by_id(self, bicycle_id: uuid.UUID) -> Optional[Bicycle]:
        record = self.db.get(BicycleRecord, bicycle_id)
        return to_bicycle(record) if record else None

    def update(self, bicycle_id: uuid.UUID, **fields) -> Bicycle:
        record = self.db.get(BicycleRecord, bicycle_id)
        if record is None:
            raise NotFoundError("Bicycle", bicycle_id)
        for name, value in fields.items():
            setattr(record, name, value)
        self.db.flush()
        return to_bicycle(record)

    def list_all(self) -> List[Bicycle]:
        return [to_bicycle(r) for r in self.db.query(BicycleRecord).order_by(BicycleRecord.created_at.desc()).all()]


class OrderRepository:
    """Repository for orders and their ledger writes"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, order_id: uuid.UUID) -> Optional[Order]:
        record = self.db.get(OrderRecord, order_id)
        return to_order(record) if record else None

    def list_by_user(self, user_id: uuid.UUID) -> List[Order]:
        return [
            to_order(r)
            for r in self.db.query(OrderRecord)
            .filter(OrderRecord.user_id == user_id)
            .order_by(OrderRecord.order_date_ms.desc())
            .all()
        ]

    def list_all(self) -> List[Order]:
        return [to_order(r) for r in self.db.query(OrderRecord).order_by(OrderRecord.order_date_ms.desc()).all()]

    def create(self, entry: LedgerEntry) -> Order:
        """Insert a freshly opened order and its initial payment in one flush"""
        order = entry.order
        record = OrderRecord(
            id=order.id,
            user_id=order.user_id,
            bicycle_id=order.bicycle_id,
            status=order.status.value,
            payment_type=order.payment_type.value,
            total_amount_cents=order.total_amount_cents,
            paid_amount_cents=order.paid_amount_cents,
            order_date_ms=order.order_date_ms,
            plan_duration=order.plan.duration if order.plan else None,
            plan_interval=order.plan.interval if order.plan else None,
            shipping_address=_address_to_json(order.shipping_address),
            processor_intent_id=order.processor_intent_id,
        )
        self.db.add(record)
        if entry.payment is not None:
            self.db.add(_payment_record(entry.payment))
        self._flush(entry)
        return to_order(record)

    def save_entry(self, entry: LedgerEntry) -> Order:
        """
        Persist a ledger mutation: order patch plus payment insert.

        Both writes share the caller's transaction. The version column turns a
        concurrent write to the same order into ConcurrentUpdateError; the
        unique processor-source index turns a reused transaction id into
        DuplicatePaymentError. The caller rolls back on either.
        """
        order = entry.order
        record = self.db.get(OrderRecord, order.id)
        if record is None:
            raise NotFoundError("Order", order.id)

        record.paid_amount_cents = order.paid_amount_cents
        record.status = order.status.value
        if entry.payment is not None:
            self.db.add(_payment_record(entry.payment))

        self._flush(entry)
        return to_order(record)

    def _flush(self, entry: LedgerEntry) -> None:
        try:
            self.db.flush()
        except StaleDataError as e:
            raise ConcurrentUpdateError(f"Order {entry.order.id} was modified concurrently") from e
        except IntegrityError as e:
            if entry.payment is None or entry.payment.source == MANUAL_ENTRY:
                raise
            raise DuplicatePaymentError(entry.payment.source) from e


class PaymentRepository:
    """Repository for payments"""

    def __init__(self, db: Session):
        self.db = db

    def list_by_order(self, order_id: uuid.UUID) -> List[Payment]:
        return [
            to_payment(r)
            for r in self.db.query(PaymentRecord)
            .filter(PaymentRecord.order_id == order_id)
            .order_by(PaymentRecord.payment_date_ms.desc())
            .all()
        ]

    def list_by_user(self, user_id: uuid.UUID) -> List[Payment]:
        return [
            to_payment(r)
            for r in self.db.query(PaymentRecord)
            .join(OrderRecord, PaymentRecord.order_id == OrderRecord.id)
            .filter(OrderRecord.user_id == user_id)
            .order_by(PaymentRecord.payment_date_ms.desc())
            .all()
        ]

    def find_by_source(self, source: str) -> Optional[Payment]:
        """
        Processor payment recorded under a transaction id, on any order.

        Manual entries share one tag and are never matched.
        """
        if source == MANUAL_ENTRY:
            return None
        record = self.db.query(PaymentRecord).filter(PaymentRecord.source == source).first()
        return to_payment(record) if record else None


def _payment_record(payment: Payment) -> PaymentRecord:
    return PaymentRecord(
        id=payment.id,
        order_id=payment.order_id,
        amount_cents=payment.amount_cents,
        payment_date_ms=payment.payment_date_ms,
        source=payment.source,
        status=payment.status,
        notes=payment.notes,
    )
