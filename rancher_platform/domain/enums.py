"""열거형 정의 — 헬스/메트릭 상태값."""

from enum import StrEnum


class HealthState(StrEnum):
    """전체 헬스 상태 (의존성 결과로부터 파생)"""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class ReadinessState(StrEnum):
    """트래픽 수용 가능 여부"""

    READY = "ready"
    NOT_READY = "not ready"


class LivenessState(StrEnum):
    ALIVE = "alive"


class MetricKind(StrEnum):
    """메트릭 시리즈 종류"""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


class CycleOutcome(StrEnum):
    """주기 수집 사이클 결과"""

    OK = "ok"
    PARTIAL = "partial"  # 일부 sampler 실패
    SKIPPED = "skipped"  # 이전 사이클 실행 중
