# services/metrics.py
from __future__ import annotations
import os

os.environ.setdefault("PROMETHEUS_DISABLE_CREATED_SERIES", "1")

from prometheus_client import (  # noqa: E402
    Counter, Histogram, CollectorRegistry,
    generate_latest, CONTENT_TYPE_LATEST,
)

# Use a DEDICATED registry so only our app metrics show up
APP_REGISTRY = CollectorRegistry(auto_describe=True)

# --- Generic HTTP metrics (bind to our registry) ---
REQUEST_COUNT = Counter(
    "http_requests_total", "HTTP requests total",
    ["method", "endpoint", "status"], registry=APP_REGISTRY
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Request latency (seconds)",
    ["endpoint", "method"], registry=APP_REGISTRY,
)

# --- Payments ---
CALLBACK_EVENTS = Counter(
    "payments_callback_events_total", "Gateway callbacks by resulting log type",
    ["provider", "log_type"], registry=APP_REGISTRY
)
REDIRECTS = Counter(
    "payments_redirects_total", "Purchasers sent to a gateway checkout",
    ["provider"], registry=APP_REGISTRY
)
PREFLIGHT_REJECTIONS = Counter(
    "payments_preflight_rejections_total", "Purchases refused before redirect",
    ["provider", "reason"], registry=APP_REGISTRY
)


def init_app(app):
    @app.get("/metrics")
    def metrics():
        data = generate_latest(APP_REGISTRY)
        return app.response_class(data, mimetype=CONTENT_TYPE_LATEST)

    # pre-warm labeled series so dashboards don't say "No data"
    for log_type in ("payment", "info", "error"):
        CALLBACK_EVENTS.labels(provider="liqpay", log_type=log_type).inc(0)
    REDIRECTS.labels(provider="liqpay").inc(0)
    for reason in ("currency", "recurring"):
        PREFLIGHT_REJECTIONS.labels(provider="liqpay", reason=reason).inc(0)
