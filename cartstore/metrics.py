"""Prometheus metrics for the cart service.

The service owns its registry so /metrics only exposes cart metrics.
"""

from prometheus_client import CollectorRegistry, Counter, generate_latest

REGISTRY = CollectorRegistry()

ITEMS_ADDED = Counter(
    "items_added",
    "Running count of items added to carts",
    registry=REGISTRY,
)


def render_latest() -> bytes:
    """Text exposition of the service registry."""
    return generate_latest(REGISTRY)
