"""Rancher Deployment Platform — 헬스/메트릭 REST 파사드.

- /health, /health/ready, /health/live, /health/detailed
- /metrics (Prometheus), /metrics/custom (JSON)
- 주기 수집기: gauge 재샘플링 (1분), 헬스 재확인 (5분), 일일 다이제스트

Run:
    uvicorn rancher_platform.services.platform.app:app --host 0.0.0.0 --port 8080
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI

from rancher_platform.domain.config import get_config
from rancher_platform.infra.database import dispose_engine
from rancher_platform.infra.observability import process
from rancher_platform.infra.observability.logging import setup_logging
from rancher_platform.infra.observability.metrics import get_metrics_registry, monitor_event_loop_lag
from rancher_platform.infra.redis import close_redis
from rancher_platform.services.base import create_app
from rancher_platform.services.deps import get_health_aggregator, get_rancher_client
from rancher_platform.services.monitoring.collector import (
    PeriodicCollector,
    rancher_samplers,
    uptime_sampler,
)
from rancher_platform.services.monitoring.scheduler import Scheduler

logger = logging.getLogger(__name__)


def build_scheduler(collector: PeriodicCollector) -> Scheduler:
    """수집/헬스 재확인/다이제스트 job 등록."""
    config = get_config()
    scheduler = Scheduler(timezone=config.timezone)
    scheduler.add_interval(
        "metrics-collect", collector.run_once, seconds=config.collector.interval_sec, run_immediately=True
    )
    scheduler.add_interval("health-check", collector.recheck_health, seconds=config.collector.health_interval_sec)
    scheduler.add_daily("health-digest", collector.digest, at=config.collector.digest_time)
    return scheduler


def build_collector() -> PeriodicCollector:
    collector = PeriodicCollector(get_metrics_registry(), aggregator=get_health_aggregator())
    collector.add_sampler(uptime_sampler())
    rancher = get_rancher_client()
    if rancher is not None:
        for sampler in rancher_samplers(rancher):
            collector.add_sampler(sampler)
    return collector


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    registry = get_metrics_registry()
    get_health_aggregator()

    lag_task = asyncio.create_task(
        monitor_event_loop_lag(registry, config.metrics.loop_lag_interval_sec), name="event-loop-lag"
    )

    scheduler: Scheduler | None = None
    if config.collector.enabled:
        collector = build_collector()
        scheduler = build_scheduler(collector)
        scheduler.start()
        app.state.collector = collector
    app.state.scheduler = scheduler

    yield

    if scheduler:
        scheduler.shutdown()
    lag_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await lag_task

    rancher = get_rancher_client()
    if rancher is not None:
        rancher.close()
    close_redis()
    dispose_engine()


_config = get_config()
setup_logging(
    _config.service_name,
    log_level=_config.log_level,
    json_output=_config.json_logs,
    version=_config.version,
    environment=_config.env,
)

app = create_app(
    _config.service_name,
    version=_config.version,
    lifespan=lifespan,
    cors_origins=_config.server.cors_origins,
)


@app.get("/")
def root() -> dict:
    """애플리케이션 정보."""
    config = get_config()
    return {
        "name": config.name,
        "version": config.version,
        "environment": config.env,
        "status": "running",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime_seconds": round(process.uptime_seconds(), 3),
        "features": config.features.model_dump(),
    }
