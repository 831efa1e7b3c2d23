"""Structured logging — structlog 기반 설정.

stdlib logger(logging.getLogger) 로 남긴 로그도 같은 포매터를 거쳐
JSON 한 줄(운영) 또는 컬러 콘솔(개발)로 출력된다.
`extra={...}` 로 넘긴 필드는 이벤트 키로 펼쳐진다.

Usage:
    from rancher_platform.infra.observability.logging import setup_logging

    setup_logging("rancher-platform", environment="production")
    logger = logging.getLogger(__name__)
    logger.info("Collector cycle %d done", cycle, extra={"updated": 12})
"""

import logging
import sys

import structlog

# 로그에 그대로 남기면 안 되는 키 (Rancher API 토큰 등)
_REDACTED_KEYS = frozenset({"authorization", "token", "password"})

# 요청 로그는 RequestMetricsMiddleware 가 남기므로 중복 제거
_QUIET_LOGGERS = {
    "uvicorn.access": logging.CRITICAL + 1,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}

_HANDLER_NAME = "rancher-platform"


def _redact_secrets(_, __, event_dict: dict) -> dict:
    for key in event_dict.keys() & _REDACTED_KEYS:
        event_dict[key] = "***"
    return event_dict


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        _redact_secrets,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(
    service_name: str = "rancher-platform",
    *,
    log_level: str = "INFO",
    json_output: bool = True,
    version: str | None = None,
    environment: str | None = None,
) -> None:
    """전역 structlog + stdlib 로깅 설정. 여러 번 호출해도 handler 는 하나.

    Args:
        service_name: 모든 로그에 바인딩할 서비스 이름
        log_level: DEBUG / INFO / WARNING / ERROR
        json_output: False 면 개발용 콘솔 렌더러
        version, environment: 지정 시 컨텍스트에 함께 바인딩
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    shared = _shared_processors()
    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False) if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if h.get_name() != _HANDLER_NAME]
    root.addHandler(handler)
    root.setLevel(level)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(quiet_level, level))

    structlog.contextvars.clear_contextvars()
    context = {"service": service_name}
    if version:
        context["version"] = version
    if environment:
        context["environment"] = environment
    structlog.contextvars.bind_contextvars(**context)
