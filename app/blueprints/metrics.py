"""
Prometheus metrics: HTTP traffic instrumentation and the scrape endpoint.

GET /metrics is not authenticated; keep it on the internal network.
"""
import time

from flask import Blueprint, Response, g, request
from prometheus_client import (
    CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, generate_latest,
    multiprocess
)

from app.services.metrics_service import MULTIPROCESS_MODE, metric_registry as _metric_registry

metrics_bp = Blueprint('metrics', __name__)

SKIPPED_ENDPOINTS = frozenset({'metrics.metrics'})

http_requests_total = Counter(
    'orderdesk_http_requests_total',
    'HTTP requests by route and status',
    ['method', 'endpoint', 'http_status'],
    registry=_metric_registry
)

http_request_duration_seconds = Histogram(
    'orderdesk_http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=_metric_registry,
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

http_requests_in_flight = Gauge(
    'orderdesk_http_requests_in_flight',
    'HTTP requests being served',
    registry=_metric_registry,
    multiprocess_mode='livesum'
)


def setup_metrics_instrumentation(app):
    """Time every request except the scrape itself."""

    @app.before_request
    def start_request_timer():
        if request.endpoint in SKIPPED_ENDPOINTS:
            return
        g._metrics_started = time.perf_counter()
        http_requests_in_flight.inc()

    @app.after_request
    def observe_request(response):
        started = g.pop('_metrics_started', None)
        if started is None:
            return response
        endpoint = request.endpoint or 'unmatched'
        try:
            http_request_duration_seconds.labels(
                method=request.method, endpoint=endpoint
            ).observe(time.perf_counter() - started)
            http_requests_total.labels(
                method=request.method, endpoint=endpoint, http_status=response.status_code
            ).inc()
        except ValueError as e:
            app.logger.warning(f"Failed to record request metrics: {e}")
        finally:
            http_requests_in_flight.dec()
        return response


def _scrape_registry():
    if not MULTIPROCESS_MODE:
        return REGISTRY
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    return registry


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(_scrape_registry()), mimetype=CONTENT_TYPE_LATEST)
