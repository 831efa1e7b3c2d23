"""Monitoring — request metrics middleware, periodic collector, scheduler."""

from .collector import GaugeReading, PeriodicCollector, Sampler, rancher_samplers, uptime_sampler
from .middleware import RequestMetricsMiddleware
from .scheduler import DailyTrigger, IntervalTrigger, ScheduledJob, Scheduler

__all__ = [
    "DailyTrigger",
    "GaugeReading",
    "IntervalTrigger",
    "PeriodicCollector",
    "RequestMetricsMiddleware",
    "Sampler",
    "ScheduledJob",
    "Scheduler",
    "rancher_samplers",
    "uptime_sampler",
]
