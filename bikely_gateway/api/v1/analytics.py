"""GET /v1/analytics/dashboard - admin portfolio statistics"""

import time
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bikely_gateway.api.v1.schemas import DashboardResponse, OverdueOrderSchema
from bikely_gateway.api.dependencies import get_now_ms, get_request_id, require_admin
from bikely_gateway.config import settings
from bikely_gateway.domain.analytics import aggregate
from bikely_gateway.domain.models import User
from bikely_gateway.infrastructure.database.repositories import BicycleRepository, OrderRepository, UserRepository
from bikely_gateway.infrastructure.database.session import get_db
from bikely_gateway.infrastructure.observability.logging import log_dashboard_computed
from bikely_gateway.infrastructure.observability.metrics import record_portfolio

router = APIRouter()


@router.get("/analytics/dashboard", response_model=DashboardResponse)
def get_dashboard(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    now_ms: int = Depends(get_now_ms),
    request_id: str = Depends(get_request_id),
):
    """
    Revenue, receivables and overdue installments across all orders.

    Overdue amounts can carry fractional minor units because installments
    are an exact split of the order total.
    """
    start_time = time.time()

    stats = aggregate(
        orders=OrderRepository(db).list_all(),
        bicycles=BicycleRepository(db).list_all(),
        users=UserRepository(db).list_all(),
        now_ms=now_ms,
        grace_period_ms=settings.overdue_grace_period_ms,
    )

    record_portfolio(stats)
    log_dashboard_computed(request_id, stats, (time.time() - start_time) * 1000)

    return DashboardResponse(
        total_orders=stats.total_orders,
        total_revenue_cents=stats.total_revenue_cents,
        total_outstanding_cents=stats.total_outstanding_cents,
        active_installments_count=stats.active_installments_count,
        users_owing_count=stats.users_owing_count,
        products_on_installment_count=stats.products_on_installment_count,
        total_installment_revenue_cents=stats.total_installment_revenue_cents,
        total_installment_total_value_cents=stats.total_installment_total_value_cents,
        order_status=stats.order_status,
        overdue_orders=[
            OverdueOrderSchema(
                order_id=row.order_id,
                customer_name=row.customer_name,
                amount_overdue_cents=round(float(row.amount_overdue), 2),
                due_date_ms=row.due_date_ms,
                total_amount_cents=row.total_amount_cents,
                paid_amount_cents=row.paid_amount_cents,
            )
            for row in stats.overdue_orders
        ],
    )
