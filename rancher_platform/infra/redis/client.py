"""Redis client factory — 헬스 probe 용 연결 하나를 프로세스 전역으로 공유."""

import logging
from functools import lru_cache

import redis

from rancher_platform.domain.config import get_config

logger = logging.getLogger(__name__)


@lru_cache
def get_redis() -> redis.Redis:
    """프로세스 전역 Redis 클라이언트 (싱글턴). 테스트에서는 cache_clear().

    socket 타임아웃을 probe 타임아웃과 맞춰 응답 없는 Redis 가
    헬스 엔드포인트를 붙잡지 않게 한다. 풀 크기는 제한하지 않는다
    (제한된 ConnectionPool 은 대기 없이 "Too many connections" 를 던짐).
    """
    config = get_config()
    timeout = config.health.probe_timeout_sec
    return redis.Redis.from_url(
        config.redis.url,
        decode_responses=True,
        socket_connect_timeout=timeout,
        socket_timeout=timeout,
        client_name=config.service_name,
    )


def close_redis() -> None:
    """싱글턴이 만들어진 경우에만 연결 풀 정리 (lifespan 종료 시)."""
    if not get_redis.cache_info().currsize:
        return
    try:
        get_redis().close()
    except redis.RedisError as e:
        logger.warning("Redis close failed: %s", e)
