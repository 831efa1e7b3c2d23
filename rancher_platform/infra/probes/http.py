"""HTTP upstream probe — ping URL 에 GET, 2xx 면 connected."""

import logging
import time

import httpx

from rancher_platform.domain.health import ProbeResult

from .base import ResourceProbe, elapsed_ms

logger = logging.getLogger(__name__)


class HttpProbe(ResourceProbe):
    """Rancher API 등 HTTP 의존성 probe.

    Usage:
        probe = HttpProbe("https://rancher.local/ping", timeout=3.0)
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 3.0,
        headers: dict[str, str] | None = None,
        verify: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = url
        self._timeout = timeout
        self._headers = headers or {}
        self._verify = verify
        self._transport = transport

    async def _get(self) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self._timeout,
            headers=self._headers,
            verify=self._verify,
            transport=self._transport,
        ) as client:
            return await client.get(self._url)

    async def check_connectivity(self) -> ProbeResult:
        start = time.monotonic()
        try:
            resp = await self._get()
        except httpx.HTTPError as e:
            logger.warning("HTTP probe %s failed: %s", self._url, e)
            return ProbeResult(connected=False, latency_ms=elapsed_ms(start), error=str(e)[:200] or type(e).__name__)
        if resp.is_success:
            return ProbeResult(connected=True, latency_ms=elapsed_ms(start))
        return ProbeResult(
            connected=False, latency_ms=elapsed_ms(start), error=f"HTTP {resp.status_code}"
        )

    async def describe(self) -> dict:
        result = await self.check_connectivity()
        return {"url": self._url, **result.model_dump(exclude_none=True)}
