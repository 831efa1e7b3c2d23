"""FastAPI 앱 팩토리 — 헬스/메트릭 라우터 + 공통 에러 핸들러 + 요청 계측.

Usage:
    from rancher_platform.services.base import create_app

    app = create_app("rancher-platform", version="1.0.0", lifespan=lifespan)
"""

import logging
import traceback
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from rancher_platform.domain.config import get_config
from rancher_platform.services.health.router import liveness, readiness
from rancher_platform.services.health.router import router as health_router
from rancher_platform.services.monitoring.middleware import RequestMetricsMiddleware
from rancher_platform.services.monitoring.router import router as monitoring_router

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"message": message, "status": status_code, **extra}},
    )


def _build_limiter() -> Limiter:
    """클라이언트 IP 기준 전역 레이트 리밋 (모든 라우트가 한도를 공유).

    supervisor 가 주기적으로 두드리는 liveness / readiness 는 제외.
    """
    config = get_config().rate_limit
    limiter = Limiter(
        key_func=get_remote_address,
        application_limits=config.limits,
        storage_uri=config.storage_uri,
        enabled=config.enabled,
    )
    limiter.exempt(liveness)
    limiter.exempt(readiness)
    return limiter


def create_app(
    service_name: str,
    *,
    version: str = "1.0.0",
    lifespan: Callable | None = None,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """FastAPI 앱 팩토리 — 공통 헬스체크/메트릭 + 에러 핸들러.

    Args:
        service_name: 서비스 식별자 (예: "rancher-platform")
        version: 서비스 버전
        lifespan: 커스텀 lifespan context manager (startup/shutdown)
        cors_origins: 허용 origin 목록 (기본: ["*"])
    """

    @asynccontextmanager
    async def wrapped_lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("[%s] Starting v%s", service_name, version)
        if lifespan:
            async with lifespan(app):
                yield
        else:
            yield
        logger.info("[%s] Shutting down", service_name)

    app = FastAPI(
        title=service_name,
        version=version,
        lifespan=wrapped_lifespan,
    )

    # --- Middleware ---

    # add_middleware 는 바깥쪽으로 쌓인다: CORS → GZip → 계측 → 레이트 리밋
    app.state.limiter = _build_limiter()
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestMetricsMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Error Handlers ---

    @app.exception_handler(RequestValidationError)
    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError | RequestValidationError
    ) -> JSONResponse:
        if isinstance(exc, ValidationError):
            details = exc.errors(include_url=False, include_context=False)
        else:
            details = exc.errors()
        return _error(400, "Validation error", details=jsonable_encoder(details))

    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        # SlowAPIMiddleware 는 이 핸들러를 동기 호출한다
        logger.warning("Rate limit exceeded: %s %s (%s)", request.method, request.url.path, exc.detail)
        return _error(429, "Too many requests, please try again later.", limit=str(exc.detail))

    @app.exception_handler(httpx.HTTPStatusError)
    async def upstream_error_handler(request: Request, exc: httpx.HTTPStatusError) -> JSONResponse:
        # Rancher API 등 외부 호출 실패
        logger.warning("Upstream error on %s %s: %s", request.method, request.url.path, exc)
        return _error(502, f"Upstream error: {exc.response.status_code}", upstream=str(exc.request.url))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return _error(404, "Route not found", path=request.url.path, method=request.method)
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        extra = {}
        if get_config().is_development:
            extra["stack"] = "".join(traceback.format_exception(exc))
        return _error(500, str(exc) or "Internal Server Error", **extra)

    # --- Routes ---

    app.include_router(health_router)
    app.include_router(monitoring_router)

    return app
