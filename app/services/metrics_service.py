"""
Business counters for orders, payments and stock.

Services record events here; the metrics blueprint only exposes them.
"""
import os

from prometheus_client import REGISTRY, Counter, Histogram

# Gunicorn workers write to PROMETHEUS_MULTIPROC_DIR and are aggregated at scrape time
MULTIPROCESS_MODE = 'PROMETHEUS_MULTIPROC_DIR' in os.environ
metric_registry = None if MULTIPROCESS_MODE else REGISTRY

orders_total = Counter(
    'orderdesk_orders_total',
    'Order lifecycle events',
    ['event'],
    registry=metric_registry
)

order_value = Histogram(
    'orderdesk_order_value',
    'Grand total of created orders',
    registry=metric_registry,
    buckets=(50, 100, 250, 500, 1000, 2500, 5000, 10000, 25000)
)

payments_total = Counter(
    'orderdesk_payments_total',
    'Payments recorded, by the order status they left behind',
    ['status'],
    registry=metric_registry
)

stock_rejections_total = Counter(
    'orderdesk_stock_rejections_total',
    'Orders refused because a product ran short',
    registry=metric_registry
)


def record_order_event(event: str, grand_total=None) -> None:
    orders_total.labels(event=event).inc()
    if grand_total is not None:
        order_value.observe(float(grand_total))


def record_payment_event(status: str) -> None:
    payments_total.labels(status=status).inc()


def record_stock_rejection() -> None:
    stock_rejections_total.inc()
