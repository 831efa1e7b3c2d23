"""SQL 데이터 스토어 probe — SQLModel/SQLAlchemy engine 기반."""

import asyncio
import logging
import time

from sqlalchemy.engine import Engine
from sqlmodel import Session, text

from rancher_platform.domain.health import ProbeResult

from .base import ResourceProbe, elapsed_ms

logger = logging.getLogger(__name__)


class DatabaseProbe(ResourceProbe):
    """`SELECT 1` 로 연결을 확인하는 probe.

    동기 engine 호출은 asyncio.to_thread 로 이벤트 루프 밖에서 실행.
    연결 타임아웃은 get_engine() 이 설정한 connect_args(connect_timeout) / pool_timeout.
    """

    def __init__(self, engine: Engine):
        self._engine = engine

    def _ping(self) -> None:
        with Session(self._engine) as session:
            session.exec(text("SELECT 1"))

    async def check_connectivity(self) -> ProbeResult:
        start = time.monotonic()
        try:
            await asyncio.to_thread(self._ping)
        except Exception as e:
            logger.warning("Database ping failed: %s", e)
            return ProbeResult(connected=False, latency_ms=elapsed_ms(start), error=str(e)[:200])
        return ProbeResult(connected=True, latency_ms=elapsed_ms(start))

    def _details(self) -> dict:
        with self._engine.connect() as conn:
            version = conn.dialect.server_version_info
        return {
            "dialect": self._engine.dialect.name,
            "driver": self._engine.dialect.driver,
            "server_version": ".".join(str(v) for v in version) if version else None,
            "pool": self._engine.pool.status(),
        }

    async def describe(self) -> dict:
        result = await self.check_connectivity()
        info = result.model_dump(exclude_none=True)
        if not result.connected:
            return info
        try:
            info.update(await asyncio.to_thread(self._details))
        except Exception as e:
            info["error"] = str(e)[:200]
        return info
