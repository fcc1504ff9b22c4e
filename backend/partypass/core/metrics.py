"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Issuance metrics
issuance_attempts = Counter(
    'ticket_issuance_attempts_total',
    'Total ticket issuance attempts',
    ['result']  # issued, quota_exceeded, rejected, code_collision
)

issuance_latency = Histogram(
    'ticket_issuance_latency_seconds',
    'Ticket issuance latency (excluding notification delivery)',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Redemption metrics
redemption_attempts = Counter(
    'ticket_redemption_attempts_total',
    'Total ticket redemption attempts',
    ['result']  # redeemed, already_used, not_found, invalid
)

# Notification metrics
notification_outcomes = Counter(
    'notification_outcomes_total',
    'Notification delivery outcomes',
    ['channel', 'outcome']  # outcome: sent, failed, not_configured, missing_contact, skipped
)

# Rate limiting
rate_limit_rejections = Counter(
    'rate_limit_rejections_total',
    'Requests rejected by the rate limiter',
    ['route']
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_issuance(result: str):
    """Record issuance attempt. Result: issued, quota_exceeded, rejected, code_collision"""
    issuance_attempts.labels(result=result).inc()


def record_redemption(result: str):
    """Record redemption attempt. Result: redeemed, already_used, not_found, invalid"""
    redemption_attempts.labels(result=result).inc()


def record_notification(channel: str, outcome: str):
    # failed:<reason> collapses to "failed" to keep label cardinality bounded
    notification_outcomes.labels(channel=channel, outcome=outcome.split(":", 1)[0]).inc()


def record_rate_limited(route: str):
    rate_limit_rejections.labels(route=route).inc()
