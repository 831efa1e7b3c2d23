"""Health Aggregator — probe 결과 + 프로세스 메트릭을 헬스 리포트로 집계.

세 가지 뷰:
  - liveness: probe 를 호출하지 않음. 프로세스가 응답 가능한지만 답한다.
  - readiness: readiness 대상 probe 의 is_ready() 가 모두 True 면 ready.
  - health / detailed: 전체 HealthReport, 상세 뷰는 describe() 포함.

probe 호출은 모두 probe_timeout 으로 상한. 타임아웃/예외는 connected=False.
"""

import asyncio
import logging
import os
import time
from collections.abc import Awaitable
from datetime import UTC, datetime
from typing import TypeVar

from rancher_platform.domain.enums import HealthState, ReadinessState
from rancher_platform.domain.health import (
    DependencyResult,
    DetailedHealthReport,
    FeatureFlags,
    HealthReport,
    LivenessReport,
    ReadinessReport,
)
from rancher_platform.infra.observability import process
from rancher_platform.infra.probes.base import ResourceProbe

logger = logging.getLogger(__name__)

T = TypeVar("T")

HTTP_OK = 200
HTTP_INTERNAL_ERROR = 500
HTTP_SERVICE_UNAVAILABLE = 503


class HealthAggregator:
    """등록된 probe 들을 이름 → probe 매핑으로 보관하고 등록 순서대로 집계.

    Usage:
        aggregator = HealthAggregator(version="1.0.0", environment="production")
        aggregator.register("database", DatabaseProbe(get_engine()))
        report = await aggregator.health()
    """

    def __init__(
        self,
        *,
        app_name: str = "Rancher Deployment Platform",
        version: str = "1.0.0",
        environment: str = "production",
        features: FeatureFlags | None = None,
        probe_timeout: float = 2.0,
    ):
        self._app_name = app_name
        self._version = version
        self._environment = environment
        self._features = features or FeatureFlags()
        self._probe_timeout = probe_timeout
        self._probes: dict[str, ResourceProbe] = {}
        self._readiness_required: dict[str, bool] = {}

    def register(self, name: str, probe: ResourceProbe, *, required_for_readiness: bool = True) -> None:
        if name in self._probes:
            raise ValueError(f"Probe already registered: {name}")
        self._probes[name] = probe
        self._readiness_required[name] = required_for_readiness

    @property
    def probe_names(self) -> list[str]:
        return list(self._probes)

    @property
    def readiness_names(self) -> list[str]:
        return [name for name in self._probes if self._readiness_required[name]]

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self._probe_timeout)

    # --- Liveness ---

    def liveness(self) -> LivenessReport:
        return LivenessReport(
            timestamp=datetime.now(UTC),
            pid=os.getpid(),
            uptime_seconds=round(process.uptime_seconds(), 3),
        )

    # --- Readiness ---

    async def _probe_ready(self, name: str) -> ReadinessState:
        try:
            ready = await self._bounded(self._probes[name].is_ready())
        except TimeoutError:
            logger.warning("Readiness probe %s timed out after %.1fs", name, self._probe_timeout)
            return ReadinessState.NOT_READY
        except Exception as e:
            logger.warning("Readiness probe %s failed: %s", name, e)
            return ReadinessState.NOT_READY
        return ReadinessState.READY if ready else ReadinessState.NOT_READY

    async def readiness(self) -> ReadinessReport:
        names = self.readiness_names
        states = await asyncio.gather(*(self._probe_ready(n) for n in names))
        report = ReadinessReport(timestamp=datetime.now(UTC), services=dict(zip(names, states)))
        if report.status != ReadinessState.READY:
            logger.warning("Readiness check: not ready %s", report.services)
        return report

    # --- Health ---

    async def _check(self, name: str, probe: ResourceProbe) -> DependencyResult:
        try:
            result = await self._bounded(probe.check_connectivity())
        except TimeoutError:
            return DependencyResult(
                name=name, connected=False, error=f"timed out after {self._probe_timeout}s"
            )
        except Exception as e:
            logger.warning("Probe %s raised: %s", name, e)
            return DependencyResult(name=name, connected=False, error=str(e)[:200] or type(e).__name__)
        return DependencyResult(name=name, **result.model_dump())

    async def health(self) -> HealthReport:
        """전체 헬스 리포트. 예외를 밖으로 던지지 않는다."""
        start = time.monotonic()
        try:
            dependencies = await asyncio.gather(*(self._check(n, p) for n, p in self._probes.items()))
            report = HealthReport(
                timestamp=datetime.now(UTC),
                version=self._version,
                environment=self._environment,
                uptime_seconds=round(process.uptime_seconds(), 3),
                response_time_ms=round((time.monotonic() - start) * 1000, 1),
                memory=process.memory_sample(),
                dependencies=list(dependencies),
            )
        except Exception as e:
            logger.error("Health check failed: %s", e, exc_info=True)
            return HealthReport(
                timestamp=datetime.now(UTC),
                version=self._version,
                environment=self._environment,
                response_time_ms=round((time.monotonic() - start) * 1000, 1),
                error=str(e) or type(e).__name__,
            )

        if report.status == HealthState.HEALTHY:
            logger.debug("Health check: healthy (%.1fms)", report.response_time_ms)
        else:
            down = [d.name for d in report.dependencies if not d.connected]
            logger.warning("Health check: unhealthy, disconnected=%s", down)
        return report

    # --- Detailed ---

    async def _describe(self, name: str, probe: ResourceProbe) -> dict:
        try:
            return await self._bounded(probe.describe())
        except TimeoutError:
            return {"connected": False, "error": f"timed out after {self._probe_timeout}s"}
        except Exception as e:
            logger.warning("Probe %s describe failed: %s", name, e)
            return {"connected": False, "error": str(e)[:200] or type(e).__name__}

    async def detailed(self) -> DetailedHealthReport:
        try:
            described = await asyncio.gather(*(self._describe(n, p) for n, p in self._probes.items()))
            return DetailedHealthReport(
                timestamp=datetime.now(UTC),
                application=process.application_info(self._app_name, self._version, self._environment),
                system=process.system_info(),
                services=dict(zip(self._probes, described)),
                features=self._features,
            )
        except Exception as e:
            logger.error("Detailed health check failed: %s", e, exc_info=True)
            return DetailedHealthReport(timestamp=datetime.now(UTC), error=str(e) or type(e).__name__)


def http_status_for(report: HealthReport | ReadinessReport | LivenessReport | DetailedHealthReport) -> int:
    """리포트 → HTTP 상태 코드.

    healthy / ready / alive → 200, unhealthy / not ready → 503,
    리포트 생성 중 내부 오류 → 500.
    """
    if isinstance(report, LivenessReport):
        return HTTP_OK
    if isinstance(report, ReadinessReport):
        return HTTP_OK if report.status == ReadinessState.READY else HTTP_SERVICE_UNAVAILABLE
    if report.error is not None:
        return HTTP_INTERNAL_ERROR
    if isinstance(report, DetailedHealthReport):
        return HTTP_OK
    return HTTP_OK if report.status == HealthState.HEALTHY else HTTP_SERVICE_UNAVAILABLE
