"""통합 설정 모델 — Pydantic Settings 기반.

모든 설정값은 환경 변수로 주입. 우선순위:
  1. 환경 변수 (docker-compose env, .env)
  2. Pydantic Settings 기본값
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class ServerConfig(BaseSettings):
    """HTTP 서버 설정."""

    host: str = "0.0.0.0"
    port: int = 8080
    cors_origin: str = "*"

    model_config = {"env_prefix": "SERVER_"}

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origin.split(",") if o.strip()]


class HealthConfig(BaseSettings):
    """헬스체크 설정."""

    probe_timeout_sec: float = 2.0
    # 콤마 구분. 비어 있으면 등록된 모든 probe가 readiness 대상
    readiness_dependencies: str = ""

    model_config = {"env_prefix": "HEALTH_"}

    @property
    def readiness_names(self) -> list[str]:
        return [n.strip() for n in self.readiness_dependencies.split(",") if n.strip()]


class MetricsConfig(BaseSettings):
    """Prometheus 메트릭 설정."""

    default_collectors: bool = True
    # 초 단위, 콤마 구분
    duration_buckets: str = "0.005,0.01,0.025,0.05,0.1,0.25,0.5,1,2.5,5,10"
    loop_lag_interval_sec: float = 0.5

    model_config = {"env_prefix": "METRICS_"}

    @property
    def buckets(self) -> tuple[float, ...]:
        return tuple(float(b) for b in self.duration_buckets.split(",") if b.strip())


class RateLimitConfig(BaseSettings):
    """요청 레이트 리밋 (slowapi). 클라이언트 IP 기준."""

    enabled: bool = True
    # limits 문법: "100 per 15 minutes", "10/second" 등. 세미콜론으로 여러 개
    default: str = "100 per 15 minutes"
    # "memory://" 또는 "redis://host:6379/1" (인스턴스 간 공유)
    storage_uri: str = "memory://"

    model_config = {"env_prefix": "RATE_LIMIT_"}

    @property
    def limits(self) -> list[str]:
        return [s.strip() for s in self.default.split(";") if s.strip()]


class CollectorConfig(BaseSettings):
    """주기 수집기 설정."""

    enabled: bool = True
    interval_sec: float = 60.0
    health_interval_sec: float = 300.0
    digest_time: str = "02:00"  # HH:MM, 일일 헬스 다이제스트

    model_config = {"env_prefix": "COLLECTOR_"}


class DatabaseConfig(BaseSettings):
    """데이터 스토어 설정."""

    enabled: bool = True
    url: str = "sqlite://"
    pool_size: int = 5
    max_overflow: int = 10

    model_config = {"env_prefix": "DB_"}


class RedisConfig(BaseSettings):
    """Redis 설정."""

    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: str = ""

    model_config = {"env_prefix": "REDIS_"}

    @property
    def url(self) -> str:
        if self.password:
            return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class RancherConfig(BaseSettings):
    """Rancher API 설정. url이 비어 있으면 인벤토리 수집/프로브 비활성."""

    url: str = ""
    token: str = ""
    timeout_sec: float = 5.0
    verify_ssl: bool = True

    model_config = {"env_prefix": "RANCHER_"}

    @property
    def enabled(self) -> bool:
        return bool(self.url)


class FeatureConfig(BaseSettings):
    """기능 플래그 (ENABLE_MONITORING 등)."""

    monitoring: bool = False
    backup: bool = False
    security_scan: bool = False
    auto_scaling: bool = False

    model_config = {"env_prefix": "ENABLE_"}


class AppConfig(BaseSettings):
    """최상위 설정 — 서브 설정 객체를 조합.

    Usage:
        from rancher_platform.domain.config import get_config
        config = get_config()
        print(config.health.probe_timeout_sec)
    """

    name: str = "Rancher Deployment Platform"
    service_name: str = "rancher-platform"
    version: str = "1.0.0"
    env: str = Field(default="production", description="development | staging | production")
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool = True
    timezone: str = "UTC"

    server: ServerConfig = Field(default_factory=ServerConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    rancher: RancherConfig = Field(default_factory=RancherConfig)
    features: FeatureConfig = Field(default_factory=FeatureConfig)

    model_config = {"env_prefix": "APP_"}

    @property
    def is_development(self) -> bool:
        return self.env == "development"


@lru_cache
def get_config() -> AppConfig:
    """싱글턴 설정 인스턴스.

    프로세스 내에서 한 번만 환경 변수를 읽고 캐싱.
    테스트에서는 get_config.cache_clear()로 초기화.
    """
    return AppConfig()
