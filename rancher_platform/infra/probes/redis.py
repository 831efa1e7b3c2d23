"""Redis probe — PING + INFO 기반."""

import asyncio
import logging
import time

import redis

from rancher_platform.domain.health import ProbeResult

from .base import ResourceProbe, elapsed_ms

logger = logging.getLogger(__name__)


class RedisProbe(ResourceProbe):
    """Redis 연결/준비 probe.

    is_ready 는 PING 성공 + 데이터셋 로딩 완료(INFO persistence loading=0).
    타임아웃은 클라이언트의 socket_connect_timeout / socket_timeout.
    """

    def __init__(self, client: redis.Redis):
        self._client = client

    async def check_connectivity(self) -> ProbeResult:
        start = time.monotonic()
        try:
            ok = await asyncio.to_thread(self._client.ping)
        except redis.RedisError as e:
            logger.warning("Redis ping failed: %s", e)
            return ProbeResult(connected=False, latency_ms=elapsed_ms(start), error=str(e)[:200])
        return ProbeResult(connected=bool(ok), latency_ms=elapsed_ms(start))

    async def is_ready(self) -> bool:
        try:
            if not await asyncio.to_thread(self._client.ping):
                return False
            info = await asyncio.to_thread(self._client.info, "persistence")
        except redis.RedisError as e:
            logger.warning("Redis readiness check failed: %s", e)
            return False
        return not int(info.get("loading", 0))

    async def describe(self) -> dict:
        result = await self.check_connectivity()
        details = result.model_dump(exclude_none=True)
        if not result.connected:
            return details
        try:
            info = await asyncio.to_thread(self._client.info)
        except redis.RedisError as e:
            details["error"] = str(e)[:200]
            return details
        details.update(
            {
                "version": info.get("redis_version"),
                "connected_clients": info.get("connected_clients"),
                "used_memory_bytes": info.get("used_memory"),
                "uptime_seconds": info.get("uptime_in_seconds"),
            }
        )
        return details
