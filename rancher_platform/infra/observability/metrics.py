"""Prometheus 메트릭 레지스트리 — 프로세스 전역 counter/gauge/histogram 저장소.

모든 쓰기는 increment_counter / set_gauge / observe_histogram 을 거친다.
잘못된 입력(음수 증가, NaN/Inf, 라벨 불일치)은 예외 없이 거부하고
로그 + metrics_rejected_total{reason} 으로만 남긴다.

Usage:
    from rancher_platform.infra.observability.metrics import get_metrics_registry

    registry = get_metrics_registry()
    registry.increment_counter("http_requests_total", {"method": "GET", "route": "/", "status_code": "200"})
    body = registry.render()
"""

import asyncio
import logging
import math
import threading
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from rancher_platform.domain.config import get_config
from rancher_platform.domain.enums import MetricKind

logger = logging.getLogger(__name__)

METRICS_CONTENT_TYPE = CONTENT_TYPE_LATEST

DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

# --- 기본 시리즈 이름 ---
HTTP_REQUESTS_TOTAL = "http_requests_total"
HTTP_REQUEST_DURATION = "http_request_duration_seconds"
ACTIVE_CONNECTIONS = "active_connections"
RANCHER_CLUSTERS = "rancher_clusters_total"
KUBERNETES_NODES = "kubernetes_nodes_total"
APP_UPTIME = "app_uptime_seconds"
DEPENDENCY_UP = "dependency_up"
EVENT_LOOP_LAG = "event_loop_lag_seconds"
COLLECTOR_CYCLES = "collector_cycles_total"
COLLECTOR_SAMPLER_FAILURES = "collector_sampler_failures_total"
METRICS_REJECTED = "metrics_rejected_total"

_KIND_CLASS = {
    MetricKind.COUNTER: Counter,
    MetricKind.GAUGE: Gauge,
    MetricKind.HISTOGRAM: Histogram,
}


@dataclass(frozen=True)
class _Family:
    kind: MetricKind
    labelnames: tuple[str, ...]
    metric: Any


class MetricsRegistry:
    """prometheus_client CollectorRegistry 래퍼.

    패밀리 생성은 registry lock 으로 직렬화하고, 값 갱신은
    prometheus_client 의 시리즈별 lock 에 맡긴다 (시리즈 단위 linearizable).
    한 번 만들어진 시리즈는 프로세스 종료 전까지 제거되지 않는다.

    Args:
        registry: 테스트 격리용 CollectorRegistry (기본: 새 인스턴스)
        default_collectors: process/platform/gc collector 등록 여부
        buckets: histogram 기본 버킷
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        *,
        default_collectors: bool = True,
        buckets: Sequence[float] = DEFAULT_BUCKETS,
    ) -> None:
        self._registry = registry or CollectorRegistry()
        self._buckets = tuple(buckets) or DEFAULT_BUCKETS
        self._lock = threading.Lock()
        self._families: dict[str, _Family] = {}

        if default_collectors:
            ProcessCollector(registry=self._registry)
            PlatformCollector(registry=self._registry)
            GCCollector(registry=self._registry)

        self._rejected = Counter(
            METRICS_REJECTED,
            "Metric writes rejected at the registry boundary",
            ["reason"],
            registry=self._registry,
        )
        self._declare_builtin()

    def _declare_builtin(self) -> None:
        self.declare_counter(
            HTTP_REQUESTS_TOTAL, "Total number of HTTP requests", ["method", "route", "status_code"]
        )
        self.declare_histogram(
            HTTP_REQUEST_DURATION, "Duration of HTTP requests in seconds", ["method", "route"]
        )
        self.declare_gauge(ACTIVE_CONNECTIONS, "Number of in-flight HTTP requests")
        self.declare_gauge(RANCHER_CLUSTERS, "Total number of Rancher clusters")
        self.declare_gauge(KUBERNETES_NODES, "Total number of Kubernetes nodes", ["cluster", "status"])
        self.declare_gauge(APP_UPTIME, "Seconds since process start")
        self.declare_gauge(DEPENDENCY_UP, "1 if the dependency is connected, else 0", ["dependency"])
        self.declare_gauge(EVENT_LOOP_LAG, "Observed asyncio event loop lag in seconds")
        self.declare_counter(COLLECTOR_CYCLES, "Periodic collector cycles by result", ["result"])
        self.declare_counter(
            COLLECTOR_SAMPLER_FAILURES, "Periodic collector sampler failures", ["sampler"]
        )

    # --- Declaration ---

    def declare_counter(self, name: str, documentation: str, labelnames: Sequence[str] = ()) -> None:
        self._declare(MetricKind.COUNTER, name, documentation, labelnames)

    def declare_gauge(self, name: str, documentation: str, labelnames: Sequence[str] = ()) -> None:
        self._declare(MetricKind.GAUGE, name, documentation, labelnames)

    def declare_histogram(
        self,
        name: str,
        documentation: str,
        labelnames: Sequence[str] = (),
        buckets: Sequence[float] | None = None,
    ) -> None:
        self._declare(MetricKind.HISTOGRAM, name, documentation, labelnames, buckets)

    def _declare(
        self,
        kind: MetricKind,
        name: str,
        documentation: str,
        labelnames: Sequence[str],
        buckets: Sequence[float] | None = None,
    ) -> _Family:
        """패밀리 생성 (idempotent). 종류/라벨이 다르면 ValueError."""
        labelnames = tuple(labelnames)
        with self._lock:
            existing = self._families.get(name)
            if existing is not None:
                if existing.kind != kind or existing.labelnames != labelnames:
                    raise ValueError(
                        f"Metric {name!r} already declared as {existing.kind} {existing.labelnames}"
                    )
                return existing

            kwargs: dict[str, Any] = {"registry": self._registry}
            if kind == MetricKind.HISTOGRAM:
                kwargs["buckets"] = tuple(buckets) if buckets else self._buckets
            metric = _KIND_CLASS[kind](name, documentation, labelnames, **kwargs)
            family = _Family(kind=kind, labelnames=labelnames, metric=metric)
            self._families[name] = family
            return family

    # --- Writes ---

    def increment_counter(self, name: str, labels: Mapping[str, Any] | None = None, amount: float = 1) -> bool:
        """Counter 증가. 음수/비정상 값은 거부 (False 반환, 예외 없음)."""
        value = self._finite(name, amount)
        if value is None:
            return False
        if value < 0:
            self._reject(name, "negative_increment", amount)
            return False
        series = self._series(MetricKind.COUNTER, name, labels)
        if series is None:
            return False
        series.inc(value)
        return True

    def set_gauge(self, name: str, labels: Mapping[str, Any] | None = None, value: float = 0) -> bool:
        """Gauge 덮어쓰기 (last write wins)."""
        checked = self._finite(name, value)
        if checked is None:
            return False
        series = self._series(MetricKind.GAUGE, name, labels)
        if series is None:
            return False
        series.set(checked)
        return True

    def add_gauge(self, name: str, labels: Mapping[str, Any] | None = None, amount: float = 1) -> bool:
        """Gauge 상대 증감 (in-flight 요청 수 등)."""
        checked = self._finite(name, amount)
        if checked is None:
            return False
        series = self._series(MetricKind.GAUGE, name, labels)
        if series is None:
            return False
        series.inc(checked)
        return True

    def observe_histogram(self, name: str, labels: Mapping[str, Any] | None = None, value: float = 0) -> bool:
        """Histogram 관측값 추가. 유한한 실수만 허용."""
        checked = self._finite(name, value)
        if checked is None:
            return False
        series = self._series(MetricKind.HISTOGRAM, name, labels)
        if series is None:
            return False
        series.observe(checked)
        return True

    def _series(self, kind: MetricKind, name: str, labels: Mapping[str, Any] | None):
        labels = dict(labels or {})
        family = self._families.get(name)
        if family is None:
            # 미선언 이름은 첫 사용 시 라벨 순서대로 선언
            try:
                family = self._declare(kind, name, name.replace("_", " "), list(labels))
            except ValueError as e:
                self._reject(name, "invalid_declaration", str(e))
                return None

        if family.kind != kind:
            self._reject(name, "kind_mismatch", kind)
            return None
        if set(labels) != set(family.labelnames):
            self._reject(name, "label_mismatch", sorted(labels))
            return None

        if not family.labelnames:
            return family.metric
        return family.metric.labels(**{k: str(labels[k]) for k in family.labelnames})

    def _finite(self, name: str, value: Any) -> float | None:
        if isinstance(value, bool):
            self._reject(name, "non_numeric", value)
            return None
        try:
            as_float = float(value)
        except (TypeError, ValueError):
            self._reject(name, "non_numeric", value)
            return None
        if not math.isfinite(as_float):
            self._reject(name, "non_finite", value)
            return None
        return as_float

    def _reject(self, name: str, reason: str, detail: Any) -> None:
        logger.warning("Rejected metric write %s (%s): %r", name, reason, detail)
        self._rejected.labels(reason=reason).inc()

    # --- Reads ---

    @property
    def content_type(self) -> str:
        return METRICS_CONTENT_TYPE

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def names(self) -> list[str]:
        return sorted(self._families)

    def render(self) -> bytes:
        """Prometheus text exposition format. 패밀리 등록 순서로 안정 정렬."""
        return generate_latest(self._registry)

    def sample_value(self, sample_name: str, labels: Mapping[str, str] | None = None) -> float | None:
        """단일 샘플 값 조회 (예: 'http_requests_total', {'method': 'GET', ...})."""
        return self._registry.get_sample_value(sample_name, dict(labels or {}))

    def snapshot(self, names: Sequence[str] | None = None) -> dict[str, dict]:
        """선언된 패밀리의 JSON 직렬화 가능한 스냅샷."""
        wanted = names if names is not None else self.names()
        result: dict[str, dict] = {}
        for name in wanted:
            family = self._families.get(name)
            if family is None:
                continue
            samples = []
            for metric_family in family.metric.collect():
                for s in metric_family.samples:
                    if s.name.endswith("_created"):
                        continue
                    samples.append({"name": s.name, "labels": dict(s.labels), "value": s.value})
            result[name] = {"type": str(family.kind), "samples": samples}
        return result


@lru_cache
def get_metrics_registry() -> MetricsRegistry:
    """프로세스 전역 MetricsRegistry (싱글턴).

    테스트에서는 get_metrics_registry.cache_clear() 후 재생성.
    """
    config = get_config()
    return MetricsRegistry(
        default_collectors=config.metrics.default_collectors,
        buckets=config.metrics.buckets,
    )


async def monitor_event_loop_lag(registry: MetricsRegistry, interval: float = 0.5) -> None:
    """asyncio 이벤트 루프 지연 측정 루프 (lifespan 에서 task 로 실행).

    interval 만큼 sleep 후 실제 경과 시간과의 차이를 event_loop_lag_seconds 에 기록.
    """
    while True:
        start = time.perf_counter()
        await asyncio.sleep(interval)
        lag = max(0.0, time.perf_counter() - start - interval)
        registry.set_gauge(EVENT_LOOP_LAG, None, lag)

