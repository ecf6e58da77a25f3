"""SQLAlchemy ORM models for the storefront ledger"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, Integer, ForeignKey, Index, Text, JSON, Uuid, text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class UserRecord(Base):
    """Customer or administrator, keyed by identity-provider subject"""

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    auth_subject = Column(Text, nullable=False, unique=True, index=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    role = Column(String(16), nullable=False, default="user")
    address = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    orders = relationship("OrderRecord", back_populates="user")


class BicycleRecord(Base):
    """Catalog entry with its installment plan"""

    __tablename__ = "bicycles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    price_cents = Column(BigInteger, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    is_featured = Column(Boolean, nullable=False, default=False)
    installment_available = Column(Boolean, nullable=False, default=False)
    installment_duration = Column(Integer, nullable=True)
    installment_interval = Column(String(16), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class OrderRecord(Base):
    """Order with settlement state and plan snapshot"""

    __tablename__ = "orders"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    # No FK: orders outlive deleted catalog entries
    bicycle_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="pending")
    payment_type = Column(String(16), nullable=False)
    total_amount_cents = Column(BigInteger, nullable=False)
    paid_amount_cents = Column(BigInteger, nullable=False, default=0)
    order_date_ms = Column(BigInteger, nullable=False)
    plan_duration = Column(Integer, nullable=True)
    plan_interval = Column(String(16), nullable=True)
    shipping_address = Column(JSON, nullable=True)
    processor_intent_id = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Optimistic concurrency: UPDATE ... WHERE version = :read_version
    __mapper_args__ = {"version_id_col": version}

    user = relationship("UserRecord", back_populates="orders")
    payments = relationship("PaymentRecord", back_populates="order", cascade="all, delete-orphan")


class PaymentRecord(Base):
    """Append-only payment entry"""

    __tablename__ = "payments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    payment_date_ms = Column(BigInteger, nullable=False)
    source = Column(Text, nullable=False, index=True)
    status = Column(String(16), nullable=False, default="completed")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    order = relationship("OrderRecord", back_populates="payments")

    # A processor transaction credits exactly one order; manual entries repeat freely
    __table_args__ = (
        Index(
            "uq_payments_processor_source",
            "source",
            unique=True,
            postgresql_where=text("source <> 'MANUAL_ENTRY'"),
            sqlite_where=text("source <> 'MANUAL_ENTRY'"),
        ),
    )
