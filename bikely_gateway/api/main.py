"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from bikely_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from bikely_gateway.api.v1 import analytics, bicycles, orders, payments, users
from bikely_gateway.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConcurrentUpdateError,
    DomainException,
    DuplicatePaymentError,
    InvalidPaymentError,
    InvalidScheduleError,
    NotFoundError,
    OrderStateError,
    OverpaymentError,
    PaymentNotConfirmedError,
    PaymentProcessorError,
)
from bikely_gateway.infrastructure.database.session import init_db
from bikely_gateway.infrastructure.observability.logging import setup_logging
from bikely_gateway.utils.money import format_money
from bikely_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)

# Most specific first; DomainException is the catch-all
ERROR_STATUS = [
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (OverpaymentError, 409),
    (ConcurrentUpdateError, 409),
    (DuplicatePaymentError, 409),
    (OrderStateError, 409),
    (PaymentNotConfirmedError, 402),
    (InvalidPaymentError, 422),
    (InvalidScheduleError, 422),
    (PaymentProcessorError, 503),
]


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Render domain errors as operator-facing JSON rejections"""
    status_code = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 400)
    detail = {"message": str(exc)}
    if isinstance(exc, OverpaymentError):
        detail["remaining_cents"] = exc.remaining_cents
        detail["remaining_display"] = format_money(exc.remaining_cents, settings.currency)

    logging.warning(
        f"Request rejected: {exc}",
        extra={"request_id": getattr(request.state, "request_id", "unknown"), "status": status_code},
    )
    return JSONResponse(status_code=status_code, content={"detail": detail})


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Bikely Gateway",
        description="Bicycle storefront orders, installment financing and payment ledger",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(users.router, prefix="/v1", tags=["users"])
    app.include_router(bicycles.router, prefix="/v1", tags=["bicycles"])
    app.include_router(orders.router, prefix="/v1", tags=["orders"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(analytics.router, prefix="/v1", tags=["analytics"])

    return app


app = create_app()
