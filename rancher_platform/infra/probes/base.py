"""Resource probe 계약 — 단일 의존성의 연결/준비/진단 체크."""

import time
from abc import ABC, abstractmethod

from rancher_platform.domain.health import ProbeResult


class ResourceProbe(ABC):
    """의존성 probe 추상 클래스.

    check_connectivity 만 필수. is_ready 는 기본적으로 연결 여부를 그대로 쓰고,
    describe 는 연결 결과를 dict 로 돌려준다.
    구현체는 자체 타임아웃을 가져야 하며, HealthAggregator 도 호출마다 상한을 둔다.
    """

    @abstractmethod
    async def check_connectivity(self) -> ProbeResult:
        """연결 체크. 실패는 예외 대신 connected=False 로 반환하는 것을 권장."""

    async def is_ready(self) -> bool:
        """트래픽 수용 가능 여부 (연결보다 좁은 조건일 수 있음)."""
        result = await self.check_connectivity()
        return result.connected

    async def describe(self) -> dict:
        """상세 헬스 뷰용 진단 정보."""
        return (await self.check_connectivity()).model_dump(exclude_none=True)


class StaticProbe(ResourceProbe):
    """고정 응답 probe — 로컬 개발/테스트용.

    Usage:
        probe = StaticProbe(connected=False)
        probe.connected = True  # 런타임 전환
    """

    def __init__(
        self,
        *,
        connected: bool = True,
        ready: bool | None = None,
        latency_ms: float | None = None,
        details: dict | None = None,
    ):
        self.connected = connected
        self.ready = ready
        self.latency_ms = latency_ms
        self.details = details or {}

    async def check_connectivity(self) -> ProbeResult:
        return ProbeResult(connected=self.connected, latency_ms=self.latency_ms)

    async def is_ready(self) -> bool:
        if self.ready is None:
            return self.connected
        return self.ready

    async def describe(self) -> dict:
        return {"connected": self.connected, **self.details}


def elapsed_ms(start: float) -> float:
    """time.monotonic() 시작점부터 경과 ms (소수 1자리)."""
    return round((time.monotonic() - start) * 1000, 1)
