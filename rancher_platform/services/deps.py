"""FastAPI Depends 기반 DI — 헬스/메트릭 공통 의존성 팩토리.

Usage:
    from rancher_platform.services.deps import get_health_aggregator

    @router.get("/health")
    async def health(aggregator: HealthAggregator = Depends(get_health_aggregator)):
        ...
"""

import logging
from functools import lru_cache

from rancher_platform.domain.config import get_config
from rancher_platform.domain.health import FeatureFlags
from rancher_platform.infra.database.engine import get_engine
from rancher_platform.infra.observability.metrics import MetricsRegistry, get_metrics_registry
from rancher_platform.infra.probes import DatabaseProbe, HttpProbe, RedisProbe
from rancher_platform.infra.rancher.client import RancherClient
from rancher_platform.infra.redis.client import get_redis

from .health.aggregator import HealthAggregator

logger = logging.getLogger(__name__)


@lru_cache
def get_health_aggregator() -> HealthAggregator:
    """설정 기반으로 probe 를 등록한 HealthAggregator (싱글턴).

    등록 순서: database → redis → rancher.
    HEALTH_READINESS_DEPENDENCIES 가 비어 있으면 모든 probe 가 readiness 대상.
    """
    config = get_config()
    aggregator = HealthAggregator(
        app_name=config.name,
        version=config.version,
        environment=config.env,
        features=FeatureFlags(**config.features.model_dump()),
        probe_timeout=config.health.probe_timeout_sec,
    )
    required = set(config.health.readiness_names)

    def _required(name: str) -> bool:
        return not required or name in required

    if config.db.enabled:
        aggregator.register("database", DatabaseProbe(get_engine()), required_for_readiness=_required("database"))
    if config.redis.enabled:
        aggregator.register("redis", RedisProbe(get_redis()), required_for_readiness=_required("redis"))
    if config.rancher.enabled:
        headers = {"Authorization": f"Bearer {config.rancher.token}"} if config.rancher.token else None
        aggregator.register(
            "rancher",
            HttpProbe(
                f"{config.rancher.url.rstrip('/')}/ping",
                timeout=config.rancher.timeout_sec,
                headers=headers,
                verify=config.rancher.verify_ssl,
            ),
            required_for_readiness=_required("rancher"),
        )

    logger.info("Health probes registered: %s", aggregator.probe_names)
    return aggregator


def get_registry() -> MetricsRegistry:
    """프로세스 전역 MetricsRegistry (FastAPI Depends)."""
    return get_metrics_registry()


@lru_cache
def get_rancher_client() -> RancherClient | None:
    """Rancher API 클라이언트 (싱글턴). RANCHER_URL 미설정 시 None."""
    config = get_config()
    if not config.rancher.enabled:
        return None
    return RancherClient(base_url=config.rancher.url)
