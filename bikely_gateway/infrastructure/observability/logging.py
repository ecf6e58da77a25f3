"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from bikely_gateway.config import settings
from bikely_gateway.domain.models import Payment, PortfolioStats

logger = logging.getLogger("bikely_gateway")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.utcnow().isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.addHandler(handler)


def log_payment_recorded(request_id: str, payment: Payment, remaining_cents: int) -> None:
    """Log a settled payment with the balance left on the order"""
    logger.info(
        "Payment recorded",
        extra={
            "request_id": request_id,
            "order_id": str(payment.order_id),
            "payment_id": str(payment.id),
            "step": "payment_recorded",
            "source_kind": "manual" if payment.is_manual else "processor",
            "amount_cents": payment.amount_cents,
            "remaining_cents": remaining_cents,
        },
    )


def log_overpayment_rejected(request_id: str, order_id: str, attempted_cents: int, remaining_cents: int) -> None:
    logger.warning(
        "Overpayment rejected",
        extra={
            "request_id": request_id,
            "order_id": order_id,
            "step": "payment_rejected",
            "attempted_cents": attempted_cents,
            "remaining_cents": remaining_cents,
        },
    )


def log_order_opened(request_id: str, order_id: str, payment_type: str, total_cents: int, paid_cents: int) -> None:
    logger.info(
        "Order opened",
        extra={
            "request_id": request_id,
            "order_id": order_id,
            "step": "order_opened",
            "payment_type": payment_type,
            "total_amount_cents": total_cents,
            "paid_amount_cents": paid_cents,
        },
    )


def log_dashboard_computed(request_id: str, stats: PortfolioStats, duration_ms: float) -> None:
    logger.info(
        "Dashboard computed",
        extra={
            "request_id": request_id,
            "step": "dashboard_computed",
            "total_orders": stats.total_orders,
            "overdue_orders": len(stats.overdue_orders),
            "duration_ms": duration_ms,
        },
    )
