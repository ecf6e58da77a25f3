"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Dict, List, Optional

from bikely_gateway.utils.money import is_fully_paid, remaining_balance


class PaymentType(str, Enum):
    FULL = "full"
    INSTALLMENT = "installment"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class InstallmentInterval(str, Enum):
    MONTHLY = "monthly"
    DAILY = "daily"


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


MANUAL_ENTRY = "MANUAL_ENTRY"
PAYMENT_COMPLETED = "completed"


@dataclass(frozen=True)
class InstallmentPlan:
    """Financing terms offered on a bicycle (or snapshotted onto an order)"""

    available: bool = False
    duration: Optional[int] = None
    interval: Optional[str] = None  # "monthly" | "daily"; anything else spaces daily

    @property
    def tracks_schedule(self) -> bool:
        return bool(self.duration)


@dataclass(frozen=True)
class ShippingAddress:
    country: str
    state: str
    city: str
    street: str
    zip_code: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass(frozen=True)
class User:
    id: uuid.UUID
    auth_subject: str
    name: str
    email: str
    role: UserRole = UserRole.USER
    address: Optional[ShippingAddress] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class Bicycle:
    id: uuid.UUID
    name: str
    price_cents: int
    plan: InstallmentPlan = field(default_factory=InstallmentPlan)
    description: str = ""
    stock: int = 0
    is_featured: bool = False


@dataclass(frozen=True)
class Order:
    """Customer order and its settlement state"""

    id: uuid.UUID
    user_id: uuid.UUID
    bicycle_id: uuid.UUID
    total_amount_cents: int
    paid_amount_cents: int
    payment_type: PaymentType
    status: OrderStatus
    order_date_ms: int
    plan: Optional[InstallmentPlan] = None  # snapshot taken at checkout
    shipping_address: Optional[ShippingAddress] = None
    processor_intent_id: Optional[str] = None

    @property
    def remaining_cents(self) -> int:
        return remaining_balance(self.total_amount_cents, self.paid_amount_cents)

    @property
    def is_fully_paid(self) -> bool:
        return is_fully_paid(self.total_amount_cents, self.paid_amount_cents)

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED


@dataclass(frozen=True)
class Payment:
    """Append-only settlement record"""

    id: uuid.UUID
    order_id: uuid.UUID
    amount_cents: int
    payment_date_ms: int
    source: str  # processor transaction id or MANUAL_ENTRY
    status: str = PAYMENT_COMPLETED
    notes: Optional[str] = None

    @property
    def is_manual(self) -> bool:
        return self.source == MANUAL_ENTRY


@dataclass(frozen=True)
class ScheduledInstallment:
    """One row of a derived installment schedule"""

    index: int
    due_date_ms: int
    cumulative_due: Fraction


@dataclass(frozen=True)
class OverdueInfo:
    amount_overdue: Fraction
    due_date_ms: int


@dataclass(frozen=True)
class OverdueOrder:
    """Overdue report row shown on the admin dashboard"""

    order_id: uuid.UUID
    customer_name: str
    amount_overdue: Fraction
    due_date_ms: int
    total_amount_cents: int
    paid_amount_cents: int


@dataclass(frozen=True)
class PortfolioStats:
    """Portfolio-level statistics for the admin dashboard"""

    total_orders: int
    total_revenue_cents: int
    total_outstanding_cents: int
    active_installments_count: int
    users_owing_count: int
    products_on_installment_count: int
    total_installment_revenue_cents: int
    total_installment_total_value_cents: int
    order_status: Dict[str, int]
    overdue_orders: List[OverdueOrder]


@dataclass(frozen=True)
class ProcessorConfirmation:
    """Charge state reported by the payment processor"""

    transaction_id: str
    amount_cents: int
    status: str
    currency: str = "zmw"

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


@dataclass(frozen=True)
class LedgerEntry:
    """Result of a successful ledger mutation"""

    order: Order
    payment: Optional[Payment]


