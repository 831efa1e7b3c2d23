"""SQLModel engine factory."""

import logging
import math
from functools import lru_cache

from sqlalchemy.engine import Engine, make_url
from sqlmodel import create_engine

from rancher_platform.domain.config import get_config

logger = logging.getLogger(__name__)

# DBAPI 가 connect_timeout(초, 정수) 을 받는 백엔드
_CONNECT_TIMEOUT_BACKENDS = {"postgresql", "mysql", "mariadb"}


@lru_cache
def get_engine() -> Engine:
    """프로세스 전역 SQLAlchemy Engine (싱글턴).

    테스트에서는 get_engine.cache_clear() 후 재생성.
    SQLite 는 pool 옵션을 받지 않으므로 서버형 DB 에만 적용.
    TCP 연결 타임아웃도 probe 타임아웃에 맞춘다. 그렇지 않으면 응답 없는 호스트에
    대한 ping 이 OS 타임아웃(수 분)까지 worker thread 를 붙잡는다.
    """
    config = get_config()
    url = make_url(config.db.url)
    timeout = config.health.probe_timeout_sec
    kwargs: dict = {"pool_pre_ping": True, "echo": config.debug}
    if url.get_backend_name() != "sqlite":
        kwargs.update(
            pool_size=config.db.pool_size,
            max_overflow=config.db.max_overflow,
            pool_timeout=timeout,
        )
    if url.get_backend_name() in _CONNECT_TIMEOUT_BACKENDS:
        kwargs["connect_args"] = {"connect_timeout": max(1, math.ceil(timeout))}
    return create_engine(url, **kwargs)


def dispose_engine() -> None:
    """커넥션 풀 반납 (lifespan 종료 시). 엔진이 없으면 아무 것도 안 함."""
    if not get_engine.cache_info().currsize:
        return
    get_engine().dispose()
    logger.info("Database engine disposed")
