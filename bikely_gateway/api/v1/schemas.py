"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field, model_validator
from typing import Dict, List, Literal, Optional
from uuid import UUID

from bikely_gateway.domain.models import OrderStatus, PaymentType


class AddressSchema(BaseModel):
    """Shipping address"""

    country: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    street: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class UserStoreRequest(BaseModel):
    """Request body for POST /v1/users"""

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    role: str
    address: Optional[AddressSchema] = None


class BicycleCreateRequest(BaseModel):
    """Request body for POST /v1/bicycles"""

    name: str = Field(..., min_length=1)
    description: str = ""
    price_cents: int = Field(..., gt=0, description="Price in minor currency units")
    stock: int = Field(0, ge=0)
    is_featured: bool = False
    installment_available: bool = False
    installment_duration: Optional[int] = Field(None, gt=0, description="Number of installments")
    installment_interval: Optional[Literal["monthly", "daily"]] = None

    @model_validator(mode="after")
    def check_plan(self):
        if self.installment_available and not self.installment_duration:
            raise ValueError("installment_duration is required when installments are available")
        return self


class BicycleUpdateRequest(BaseModel):
    """Request body for PATCH /v1/bicycles/{id}; omitted fields are unchanged"""

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price_cents: Optional[int] = Field(None, gt=0)
    stock: Optional[int] = Field(None, ge=0)
    is_featured: Optional[bool] = None
    installment_available: Optional[bool] = None
    installment_duration: Optional[int] = Field(None, gt=0)
    installment_interval: Optional[Literal["monthly", "daily"]] = None

    @model_validator(mode="after")
    def reject_nulls(self):
        # Only the plan terms can be cleared
        clearable = {"installment_duration", "installment_interval"}
        cleared = sorted(name for name in self.model_fields_set - clearable if getattr(self, name) is None)
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(cleared)}")
        return self


class BicycleResponse(BaseModel):
    id: UUID
    name: str
    description: str
    price_cents: int
    stock: int
    is_featured: bool
    installment_available: bool
    installment_duration: Optional[int] = None
    installment_interval: Optional[str] = None
    installment_amounts_cents: List[int] = []


class OrderCreateRequest(BaseModel):
    """Request body for POST /v1/orders (checkout)"""

    bicycle_id: UUID
    payment_type: PaymentType
    payment_intent_id: Optional[str] = Field(
        None, min_length=1, description="Processor intent for the initial payment; its confirmed amount is credited"
    )


class StatusUpdateRequest(BaseModel):
    status: OrderStatus


class OrderResponse(BaseModel):
    id: UUID
    user_id: UUID
    bicycle_id: UUID
    status: OrderStatus
    payment_type: PaymentType
    total_amount_cents: int
    paid_amount_cents: int
    remaining_cents: int
    order_date_ms: int
    installment_duration: Optional[int] = None
    installment_interval: Optional[str] = None
    next_installment_cents: int
    shipping_address: Optional[AddressSchema] = None


class ScheduleItem(BaseModel):
    """Single installment in an order's schedule"""

    index: int
    due_date_ms: int
    amount_cents: int
    cumulative_due_cents: float
    status: str = "upcoming"  # paid | overdue | due | upcoming


class ScheduleResponse(BaseModel):
    """Response for GET /v1/orders/{id}/schedule"""

    order_id: UUID
    total_amount_cents: int
    paid_amount_cents: int
    per_installment_cents: float
    installments: List[ScheduleItem]


class ProcessorPaymentRequest(BaseModel):
    """Request body for POST /v1/orders/{id}/payments"""

    payment_intent_id: str = Field(..., min_length=1)


class ManualPaymentRequest(BaseModel):
    """Request body for POST /v1/orders/{id}/payments/manual"""

    amount_cents: int = Field(..., gt=0)
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    id: UUID
    order_id: UUID
    amount_cents: int
    payment_date_ms: int
    source: str
    status: str
    notes: Optional[str] = None


class PaymentRecordedResponse(BaseModel):
    payment: PaymentResponse
    order: OrderResponse


class PaymentIntentRequest(BaseModel):
    amount_cents: int = Field(..., gt=0)


class PaymentIntentResponse(BaseModel):
    client_secret: str


class OverdueOrderSchema(BaseModel):
    order_id: UUID
    customer_name: str
    amount_overdue_cents: float
    due_date_ms: int
    total_amount_cents: int
    paid_amount_cents: int


class DashboardResponse(BaseModel):
    """Response for GET /v1/analytics/dashboard"""

    total_orders: int
    total_revenue_cents: int
    total_outstanding_cents: int
    active_installments_count: int
    users_owing_count: int
    products_on_installment_count: int
    total_installment_revenue_cents: int
    total_installment_total_value_cents: int
    order_status: Dict[str, int]
    overdue_orders: List[OverdueOrderSchema]


class ReconciliationResponse(BaseModel):
    """Response for GET /v1/orders/{id}/reconciliation"""

    order_id: UUID
    paid_amount_cents: int
    recorded_cents: int
    drift_cents: int = Field(..., description="paid_amount_cents minus the sum of recorded payments")
    consistent: bool
