"""Health API — liveness / readiness / health / detailed."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from rancher_platform.services.deps import get_health_aggregator

from .aggregator import HealthAggregator, http_status_for

router = APIRouter(prefix="/health", tags=["health"])

logger = logging.getLogger(__name__)


def _json(report, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=report.model_dump(mode="json", exclude_none=True))


@router.get("")
async def health(aggregator: HealthAggregator = Depends(get_health_aggregator)) -> JSONResponse:
    """전체 헬스 리포트. 의존성 하나라도 끊기면 503."""
    report = await aggregator.health()
    return _json(report, http_status_for(report))


@router.get("/ready")
async def readiness(aggregator: HealthAggregator = Depends(get_health_aggregator)) -> JSONResponse:
    """Readiness probe — 트래픽 수용 가능 여부."""
    report = await aggregator.readiness()
    return _json(report, http_status_for(report))


@router.get("/live")
def liveness(aggregator: HealthAggregator = Depends(get_health_aggregator)) -> JSONResponse:
    """Liveness probe — 의존성 체크 없음."""
    report = aggregator.liveness()
    return _json(report, http_status_for(report))


@router.get("/detailed")
async def detailed(aggregator: HealthAggregator = Depends(get_health_aggregator)) -> JSONResponse:
    """상세 헬스 정보 (애플리케이션 / 시스템 / 서비스별 진단 / 기능 플래그)."""
    report = await aggregator.detailed()
    status_code = http_status_for(report)
    if report.error is not None:
        return JSONResponse(
            status_code=status_code,
            content={
                "error": "Failed to get detailed health information",
                "message": report.error,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )
    return _json(report, status_code)
