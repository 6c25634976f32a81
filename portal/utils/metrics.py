"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
store_mutations_total = Counter(
    "portal_store_mutations_total",
    "Total committed store mutations",
    ["collection", "operation"],  # create, update, delete
)

audit_write_failures_total = Counter(
    "portal_audit_write_failures_total",
    "Audit entries that could not be written after a committed mutation",
)

auth_attempts_total = Counter(
    "portal_auth_attempts_total",
    "Authentication attempts by outcome",
    ["outcome"],  # success, invalid_credentials, blocked
)

payment_transitions_total = Counter(
    "portal_payment_transitions_total",
    "Payment record status transitions",
    ["status"],  # PENDING, SUCCESS, FAILED
)

subscriptions_activated_total = Counter(
    "portal_subscriptions_activated_total",
    "Subscriptions activated by mark_paid",
    ["subscription_type"],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
