"""Observability infrastructure — logging, metrics, process stats."""

from .logging import setup_logging
from .metrics import MetricsRegistry, get_metrics_registry

__all__ = ["setup_logging", "MetricsRegistry", "get_metrics_registry"]
