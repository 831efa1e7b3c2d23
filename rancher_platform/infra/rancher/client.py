"""Rancher API v3 HTTP Client — 인벤토리 조회 전용 (읽기).

클러스터/노드 수를 메트릭 수집기에 제공. 오케스트레이션 조작은 하지 않는다.
"""

import logging
from collections import Counter

import httpx

from rancher_platform.domain.config import get_config

logger = logging.getLogger(__name__)

# Rancher 노드 state 중 Ready 로 취급하는 값
_READY_STATES = {"active"}


class RancherClient:
    """Rancher API 클라이언트.

    Usage:
        client = RancherClient()
        clusters = client.list_clusters()
        counts = client.node_counts()  # {("local", "ready"): 3, ...}
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        config = get_config()
        self._base_url = (base_url or config.rancher.url).rstrip("/")
        token = token if token is not None else config.rancher.token
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=timeout or config.rancher.timeout_sec,
            headers=headers,
            verify=config.rancher.verify_ssl,
            transport=transport,
        )

    @property
    def ping_url(self) -> str:
        return f"{self._base_url}/ping"

    def _get_collection(self, path: str) -> list[dict]:
        resp = self._client.get(path)
        resp.raise_for_status()
        return resp.json().get("data", [])

    def list_clusters(self) -> list[dict]:
        """클러스터 목록 (id, name, state)."""
        return [
            {"id": c.get("id"), "name": c.get("name") or c.get("id"), "state": c.get("state")}
            for c in self._get_collection("/v3/clusters")
        ]

    def node_counts(self) -> dict[tuple[str, str], int]:
        """(cluster 이름, ready|not_ready) 별 노드 수."""
        names = {c["id"]: c["name"] for c in self.list_clusters()}
        # 노드가 없는 클러스터도 0 으로 보고 (이전 값이 남지 않도록)
        counts: Counter[tuple[str, str]] = Counter(
            {(name, status): 0 for name in names.values() for status in ("ready", "not_ready")}
        )
        for node in self._get_collection("/v3/nodes"):
            cluster = names.get(node.get("clusterId"), node.get("clusterId") or "unknown")
            status = "ready" if node.get("state") in _READY_STATES else "not_ready"
            counts[(cluster, status)] += 1
        return dict(counts)

    def close(self) -> None:
        self._client.close()
