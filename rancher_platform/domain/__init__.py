"""rancher-platform 도메인 모델 — 헬스/메트릭 데이터 계약.

Usage:
    from rancher_platform.domain import HealthReport, HealthState
    from rancher_platform.domain.config import AppConfig
"""

# --- Enums ---
from .enums import CycleOutcome, HealthState, LivenessState, MetricKind, ReadinessState

# --- Health ---
from .health import (
    ApplicationInfo,
    CpuTimes,
    DependencyResult,
    DetailedHealthReport,
    FeatureFlags,
    HealthReport,
    LivenessReport,
    MemorySample,
    ProbeResult,
    ReadinessReport,
    SystemInfo,
)

__all__ = [
    # Enums
    "CycleOutcome",
    "HealthState",
    "LivenessState",
    "MetricKind",
    "ReadinessState",
    # Health
    "ApplicationInfo",
    "CpuTimes",
    "DependencyResult",
    "DetailedHealthReport",
    "FeatureFlags",
    "HealthReport",
    "LivenessReport",
    "MemorySample",
    "ProbeResult",
    "ReadinessReport",
    "SystemInfo",
]
