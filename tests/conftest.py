"""공용 fixtures — 설정/싱글턴 캐시 초기화."""

import pytest

from rancher_platform.domain.config import get_config
from rancher_platform.infra.database.engine import get_engine
from rancher_platform.infra.observability.metrics import MetricsRegistry, get_metrics_registry
from rancher_platform.infra.redis.client import get_redis
from rancher_platform.services.deps import get_health_aggregator, get_rancher_client

_CACHED_FACTORIES = (
    get_config,
    get_engine,
    get_redis,
    get_metrics_registry,
    get_health_aggregator,
    get_rancher_client,
)


@pytest.fixture(autouse=True)
def _reset_caches():
    for factory in _CACHED_FACTORIES:
        factory.cache_clear()
    yield
    for factory in _CACHED_FACTORIES:
        factory.cache_clear()


@pytest.fixture
def registry() -> MetricsRegistry:
    """프로세스 collector 없이 격리된 registry."""
    return MetricsRegistry(default_collectors=False)
