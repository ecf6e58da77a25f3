"""Prometheus metrics for payments, receivables and processor health"""

from prometheus_client import Counter, Histogram, Gauge

from bikely_gateway.domain.models import Payment, PortfolioStats

# Ledger metrics
payments_counter = Counter(
    "bikely_payments_total",
    "Payments recorded against orders",
    ["source"],  # processor | manual
)

payment_amount_counter = Counter(
    "bikely_payment_amount_cents_total",
    "Sum of recorded payment amounts in minor units",
    ["source"],
)

overpayment_rejections_counter = Counter(
    "bikely_overpayment_rejections_total",
    "Payments rejected for exceeding the remaining balance",
)

orders_opened_counter = Counter(
    "bikely_orders_opened_total",
    "Orders created at checkout",
    ["payment_type"],  # full | installment
)

# Portfolio gauges, refreshed on every dashboard computation
overdue_orders_gauge = Gauge(
    "bikely_overdue_orders",
    "Installment orders behind schedule at last dashboard computation",
)

outstanding_balance_gauge = Gauge(
    "bikely_outstanding_balance_cents",
    "Outstanding balance across non-cancelled orders",
)

# Payment processor metrics
processor_latency_histogram = Histogram(
    "processor_request_latency_seconds",
    "Payment processor response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

processor_failures_counter = Counter(
    "processor_failures_total",
    "Failed payment processor calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_payment(payment: Payment) -> None:
    source = "manual" if payment.is_manual else "processor"
    payments_counter.labels(source=source).inc()
    payment_amount_counter.labels(source=source).inc(payment.amount_cents)


def record_portfolio(stats: PortfolioStats) -> None:
    overdue_orders_gauge.set(len(stats.overdue_orders))
    outstanding_balance_gauge.set(stats.total_outstanding_cents)
