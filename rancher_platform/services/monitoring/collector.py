"""Periodic Collector — 외부 상태를 gauge 로 재샘플링 + 백그라운드 헬스 재확인.

요청 처리 경로와 분리된 스케줄러 thread 에서 실행.
sampler 하나가 실패해도 같은 사이클의 나머지 sampler 는 계속 실행된다.
이전 사이클이 아직 실행 중이면 이번 사이클은 건너뛴다 (skip-if-running).
"""

import asyncio
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from rancher_platform.domain.enums import CycleOutcome, HealthState
from rancher_platform.domain.health import HealthReport
from rancher_platform.infra.observability import process
from rancher_platform.infra.observability.metrics import (
    APP_UPTIME,
    COLLECTOR_CYCLES,
    COLLECTOR_SAMPLER_FAILURES,
    DEPENDENCY_UP,
    KUBERNETES_NODES,
    RANCHER_CLUSTERS,
    MetricsRegistry,
)
from rancher_platform.infra.rancher.client import RancherClient
from rancher_platform.services.health.aggregator import HealthAggregator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GaugeReading:
    """sampler 가 돌려주는 gauge 값 하나."""

    metric: str
    value: float
    labels: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Sampler:
    name: str
    sample: Callable[[], Iterable[GaugeReading]]


@dataclass
class CycleResult:
    cycle: int
    outcome: CycleOutcome
    updated: int = 0
    failed: list[str] = field(default_factory=list)


class PeriodicCollector:
    """gauge sampler 묶음을 주기적으로 실행해 MetricsRegistry 에 기록.

    Usage:
        collector = PeriodicCollector(registry, aggregator=aggregator)
        collector.add_sampler(uptime_sampler())
        scheduler.add_interval("metrics-collect", collector.run_once, seconds=60)
    """

    def __init__(
        self,
        registry: MetricsRegistry,
        samplers: Iterable[Sampler] = (),
        *,
        aggregator: HealthAggregator | None = None,
    ):
        self._registry = registry
        self._samplers: list[Sampler] = list(samplers)
        self._aggregator = aggregator
        self._cycle_lock = threading.Lock()
        self._recheck_lock = threading.Lock()
        self._cycle = 0
        self.last_result: CycleResult | None = None
        self.last_health: HealthReport | None = None

    def add_sampler(self, sampler: Sampler) -> None:
        self._samplers.append(sampler)

    @property
    def sampler_names(self) -> list[str]:
        return [s.name for s in self._samplers]

    def run_once(self) -> CycleResult:
        """수집 사이클 1회."""
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Previous collection cycle still running, skipping")
            self._registry.increment_counter(COLLECTOR_CYCLES, {"result": CycleOutcome.SKIPPED})
            return CycleResult(cycle=self._cycle, outcome=CycleOutcome.SKIPPED)

        try:
            self._cycle += 1
            result = CycleResult(cycle=self._cycle, outcome=CycleOutcome.OK)
            for sampler in self._samplers:
                try:
                    readings = list(sampler.sample())
                except Exception as e:
                    logger.error("[cycle %d] Sampler %s failed: %s", result.cycle, sampler.name, e, exc_info=True)
                    self._registry.increment_counter(COLLECTOR_SAMPLER_FAILURES, {"sampler": sampler.name})
                    result.failed.append(sampler.name)
                    continue
                for reading in readings:
                    if self._registry.set_gauge(reading.metric, reading.labels, reading.value):
                        result.updated += 1

            if result.failed:
                result.outcome = CycleOutcome.PARTIAL
            self._registry.increment_counter(COLLECTOR_CYCLES, {"result": result.outcome})
            logger.info(
                "[cycle %d] Metrics collected: %d gauges updated, failed=%s",
                result.cycle,
                result.updated,
                result.failed,
            )
            self.last_result = result
            return result
        finally:
            self._cycle_lock.release()

    def recheck_health(self) -> HealthReport | None:
        """백그라운드 헬스 재확인 — 로그 + dependency_up gauge 기록 전용.

        별도 이벤트 루프에서 aggregator 를 호출. 실패는 로그로만 남긴다.
        """
        if self._aggregator is None:
            return None
        if not self._recheck_lock.acquire(blocking=False):
            logger.warning("Previous health re-check still running, skipping")
            return None
        try:
            report = asyncio.run(self._aggregator.health())
        except Exception as e:
            logger.error("Scheduled health check failed: %s", e, exc_info=True)
            return None
        finally:
            self._recheck_lock.release()

        for dep in report.dependencies:
            self._registry.set_gauge(DEPENDENCY_UP, {"dependency": dep.name}, 1 if dep.connected else 0)

        if report.status == HealthState.HEALTHY:
            logger.info("Scheduled health check completed: %s", report.status)
        else:
            logger.warning(
                "Scheduled health check completed: %s, disconnected=%s, error=%s",
                report.status,
                [d.name for d in report.dependencies if not d.connected],
                report.error,
            )
        self.last_health = report
        return report

    def digest(self) -> None:
        """일일 헬스 다이제스트 로그.

        재확인이 진행 중이거나 실패하면 마지막 재확인 결과로 대신한다.
        """
        report = self.recheck_health() or self.last_health
        last = self.last_result
        logger.info(
            "Daily health digest: status=%s uptime=%.0fs last_cycle=%s",
            report.status if report else "unknown",
            process.uptime_seconds(),
            last.outcome if last else None,
            extra={
                "dependencies": [d.model_dump(exclude_none=True) for d in report.dependencies] if report else [],
                "samplers": self.sampler_names,
            },
        )


# ─── Built-in Samplers ─────────────────────────────────────────


def uptime_sampler() -> Sampler:
    def _sample() -> list[GaugeReading]:
        return [GaugeReading(APP_UPTIME, process.uptime_seconds())]

    return Sampler("uptime", _sample)


def rancher_samplers(client: RancherClient) -> list[Sampler]:
    """Rancher 인벤토리 sampler — 클러스터 수, 클러스터/상태별 노드 수."""

    def _clusters() -> list[GaugeReading]:
        return [GaugeReading(RANCHER_CLUSTERS, len(client.list_clusters()))]

    def _nodes() -> list[GaugeReading]:
        return [
            GaugeReading(KUBERNETES_NODES, count, {"cluster": cluster, "status": status})
            for (cluster, status), count in sorted(client.node_counts().items())
        ]

    return [Sampler("rancher_clusters", _clusters), Sampler("kubernetes_nodes", _nodes)]
