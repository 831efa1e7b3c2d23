"""Monitoring API — Prometheus scrape 엔드포인트 + JSON 커스텀 메트릭."""

import logging

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from rancher_platform.domain.config import get_config
from rancher_platform.infra.observability import process
from rancher_platform.infra.observability.metrics import (
    ACTIVE_CONNECTIONS,
    DEPENDENCY_UP,
    EVENT_LOOP_LAG,
    HTTP_REQUEST_DURATION,
    HTTP_REQUESTS_TOTAL,
    KUBERNETES_NODES,
    RANCHER_CLUSTERS,
    MetricsRegistry,
)
from rancher_platform.services.deps import get_registry

# /metrics/custom 에 노출하는 counter/gauge/histogram 패밀리
CUSTOM_FAMILIES = (
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION,
    ACTIVE_CONNECTIONS,
    RANCHER_CLUSTERS,
    KUBERNETES_NODES,
    DEPENDENCY_UP,
)

router = APIRouter(prefix="/metrics", tags=["monitoring"])

logger = logging.getLogger(__name__)


@router.get("")
def metrics(registry: MetricsRegistry = Depends(get_registry)) -> Response:
    """Prometheus text exposition format."""
    try:
        body = registry.render()
    except Exception as e:
        logger.error("Failed to collect metrics: %s", e, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to collect metrics", "message": str(e)},
        )
    return Response(content=body, media_type=registry.content_type)


@router.get("/custom")
def custom_metrics(registry: MetricsRegistry = Depends(get_registry)) -> JSONResponse:
    """HTTP / 인벤토리 / 의존성 메트릭 + 애플리케이션/시스템 정보 JSON."""
    try:
        config = get_config()
        content = {
            **registry.snapshot(CUSTOM_FAMILIES),
            "application_info": {
                "version": config.version,
                "environment": config.env,
                "uptime_seconds": round(process.uptime_seconds(), 3),
                "start_time": process.started_at().isoformat(),
            },
            "system_metrics": {
                "memory_usage_bytes": process.memory_sample().model_dump(),
                "cpu_usage": process.cpu_times().model_dump(),
                "event_loop_lag_seconds": registry.sample_value(EVENT_LOOP_LAG),
            },
        }
    except Exception as e:
        logger.error("Failed to collect custom metrics: %s", e, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to collect custom metrics", "message": str(e)},
        )
    return JSONResponse(content=content)
