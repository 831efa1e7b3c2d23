"""헬스 체크 모델."""

from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from .enums import HealthState, LivenessState, ReadinessState


class ProbeResult(BaseModel):
    """단일 의존성 연결 체크 결과."""

    connected: bool
    latency_ms: float | None = None
    error: str | None = None


class DependencyResult(BaseModel):
    """HealthReport에 포함되는 이름 붙은 의존성 결과."""

    name: str
    connected: bool
    latency_ms: float | None = None
    error: str | None = None


class MemorySample(BaseModel):
    """프로세스 메모리 스냅샷 (bytes)."""

    resident_bytes: int
    heap_used_bytes: int
    heap_total_bytes: int


class HealthReport(BaseModel):
    """서비스 헬스 리포트.

    status는 dependencies로부터 파생되며 직접 설정하지 않는다.
    error가 있으면 리포트 생성 중 내부 오류가 난 것.
    """

    timestamp: datetime
    version: str = "1.0.0"
    environment: str = "production"
    uptime_seconds: float = 0.0
    response_time_ms: float = 0.0
    memory: MemorySample | None = None
    dependencies: list[DependencyResult] = Field(default_factory=list)
    error: str | None = None

    @computed_field
    @property
    def status(self) -> HealthState:
        if self.error is not None:
            return HealthState.UNHEALTHY
        if all(d.connected for d in self.dependencies):
            return HealthState.HEALTHY
        return HealthState.UNHEALTHY


class ReadinessReport(BaseModel):
    """Readiness 결과 — 서비스별 ready 여부."""

    timestamp: datetime
    services: dict[str, ReadinessState] = Field(default_factory=dict)

    @computed_field
    @property
    def status(self) -> ReadinessState:
        if all(s == ReadinessState.READY for s in self.services.values()):
            return ReadinessState.READY
        return ReadinessState.NOT_READY


class LivenessReport(BaseModel):
    status: LivenessState = LivenessState.ALIVE
    timestamp: datetime
    pid: int
    uptime_seconds: float


class ApplicationInfo(BaseModel):
    name: str
    version: str
    environment: str
    python_version: str
    platform: str
    architecture: str
    pid: int
    uptime_seconds: float
    start_time: datetime


class CpuTimes(BaseModel):
    user_seconds: float
    system_seconds: float


class SystemInfo(BaseModel):
    memory: MemorySample
    cpu: CpuTimes
    load_average: list[float] = Field(default_factory=list)
    free_memory_bytes: int
    total_memory_bytes: int
    hostname: str


class FeatureFlags(BaseModel):
    monitoring: bool = False
    backup: bool = False
    security_scan: bool = False
    auto_scaling: bool = False


class DetailedHealthReport(BaseModel):
    """상세 헬스 정보 — 프로세스 메타데이터 + probe별 진단."""

    timestamp: datetime
    application: ApplicationInfo | None = None
    system: SystemInfo | None = None
    services: dict[str, dict] = Field(default_factory=dict)
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    error: str | None = None
