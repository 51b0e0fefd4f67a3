from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests.",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds.",
    ["method", "path"],
)

sales_recorded_total = Counter(
    "sales_recorded_total",
    "Sales persisted by the sale recording operation.",
)

sales_deleted_total = Counter(
    "sales_deleted_total",
    "Sales removed through the subtract-sale workflow.",
)

live_subscribers = Gauge(
    "live_subscribers",
    "Websocket viewers currently connected to the live channel.",
)

live_events_delivered_total = Counter(
    "live_events_delivered_total",
    "Live channel events delivered to a subscriber.",
    ["event_type"],
)

live_delivery_failures_total = Counter(
    "live_delivery_failures_total",
    "Live channel sends that failed or timed out.",
    ["event_type"],
)


def render_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
