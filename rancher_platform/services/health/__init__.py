"""Health aggregation — liveness / readiness / health reports."""

from .aggregator import HealthAggregator, http_status_for

__all__ = ["HealthAggregator", "http_status_for"]
