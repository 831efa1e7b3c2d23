"""요청 계측 미들웨어 — 요청당 counter/histogram 1회 기록 + 요청 로그."""

import logging
import time
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from rancher_platform.infra.observability.metrics import (
    ACTIVE_CONNECTIONS,
    HTTP_REQUEST_DURATION,
    HTTP_REQUESTS_TOTAL,
    MetricsRegistry,
    get_metrics_registry,
)

logger = logging.getLogger("rancher_platform.http")

# 라우트에 매칭되지 않은 요청(404)은 경로 대신 고정 라벨 (라벨 카디널리티 제한)
UNMATCHED_ROUTE = "<unmatched>"


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """http_requests_total / http_request_duration_seconds / active_connections 기록.

    registry 를 주입하지 않으면 프로세스 전역 registry 를 요청 시점에 조회.
    """

    def __init__(self, app, registry: MetricsRegistry | None = None):
        super().__init__(app)
        self._registry = registry

    @property
    def registry(self) -> MetricsRegistry:
        return self._registry or get_metrics_registry()

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        registry = self.registry
        registry.add_gauge(ACTIVE_CONNECTIONS, None, 1)
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start
            registry.add_gauge(ACTIVE_CONNECTIONS, None, -1)
            route = _route_template(request)
            registry.increment_counter(
                HTTP_REQUESTS_TOTAL,
                {"method": request.method, "route": route, "status_code": str(status_code)},
            )
            registry.observe_histogram(
                HTTP_REQUEST_DURATION, {"method": request.method, "route": route}, duration
            )
            logger.info(
                "HTTP Request %s %s %d (%.1fms)",
                request.method,
                request.url.path,
                status_code,
                duration * 1000,
                extra={
                    "method": request.method,
                    "url": str(request.url.path),
                    "status": status_code,
                    "duration_ms": round(duration * 1000, 1),
                    "user_agent": request.headers.get("user-agent"),
                    "ip": request.client.host if request.client else None,
                },
            )
