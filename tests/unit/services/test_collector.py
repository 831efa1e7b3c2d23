"""PeriodicCollector 단위 테스트 — 부분 실패 허용, overlap skip, 헬스 재확인."""

import threading
from unittest.mock import AsyncMock, MagicMock

import pytest

from rancher_platform.domain.enums import CycleOutcome, HealthState
from rancher_platform.infra.observability.metrics import (
    APP_UPTIME,
    COLLECTOR_CYCLES,
    COLLECTOR_SAMPLER_FAILURES,
    DEPENDENCY_UP,
    KUBERNETES_NODES,
    RANCHER_CLUSTERS,
)
from rancher_platform.infra.probes import StaticProbe
from rancher_platform.services.health.aggregator import HealthAggregator
from rancher_platform.services.monitoring.collector import (
    GaugeReading,
    PeriodicCollector,
    Sampler,
    rancher_samplers,
    uptime_sampler,
)


def _const(name: str, metric: str, value: float) -> Sampler:
    return Sampler(name, lambda: [GaugeReading(metric, value)])


def _boom() -> list[GaugeReading]:
    raise RuntimeError("inventory API down")


class TestRunOnce:
    def test_all_samplers_succeed(self, registry):
        collector = PeriodicCollector(registry, [_const("clusters", RANCHER_CLUSTERS, 3), uptime_sampler()])
        result = collector.run_once()
        assert result.outcome == CycleOutcome.OK
        assert result.updated == 2
        assert registry.sample_value(RANCHER_CLUSTERS) == 3.0
        assert registry.sample_value(APP_UPTIME) > 0
        assert registry.sample_value(COLLECTOR_CYCLES, {"result": "ok"}) == 1.0

    def test_failing_sampler_does_not_abort_cycle(self, registry):
        registry.declare_gauge("queue_depth", "Queue depth")
        collector = PeriodicCollector(
            registry,
            [
                _const("clusters", RANCHER_CLUSTERS, 3),
                Sampler("nodes", _boom),
                _const("queue", "queue_depth", 9),
            ],
        )
        result = collector.run_once()
        assert result.outcome == CycleOutcome.PARTIAL
        assert result.failed == ["nodes"]
        assert registry.sample_value(RANCHER_CLUSTERS) == 3.0
        assert registry.sample_value("queue_depth") == 9.0
        assert registry.sample_value(COLLECTOR_SAMPLER_FAILURES, {"sampler": "nodes"}) == 1.0

    def test_next_cycle_runs_after_failure(self, registry):
        collector = PeriodicCollector(registry, [Sampler("nodes", _boom)])
        first = collector.run_once()
        second = collector.run_once()
        assert (first.cycle, second.cycle) == (1, 2)
        assert second.outcome == CycleOutcome.PARTIAL
        assert collector.last_result is second

    def test_rejected_reading_not_counted(self, registry):
        collector = PeriodicCollector(registry, [_const("bad", RANCHER_CLUSTERS, float("nan"))])
        assert collector.run_once().updated == 0

    def test_overlapping_cycle_skipped(self, registry):
        entered = threading.Event()
        release = threading.Event()

        def _slow() -> list[GaugeReading]:
            entered.set()
            release.wait(5)
            return [GaugeReading(RANCHER_CLUSTERS, 1)]

        collector = PeriodicCollector(registry, [Sampler("slow", _slow)])
        worker = threading.Thread(target=collector.run_once)
        worker.start()
        assert entered.wait(5)

        skipped = collector.run_once()
        release.set()
        worker.join(5)

        assert skipped.outcome == CycleOutcome.SKIPPED
        assert registry.sample_value(COLLECTOR_CYCLES, {"result": "skipped"}) == 1.0
        assert registry.sample_value(COLLECTOR_CYCLES, {"result": "ok"}) == 1.0


class TestRecheckHealth:
    def test_writes_dependency_gauges(self, registry):
        aggregator = HealthAggregator()
        aggregator.register("database", StaticProbe())
        aggregator.register("store", StaticProbe(connected=False))
        collector = PeriodicCollector(registry, aggregator=aggregator)

        report = collector.recheck_health()

        assert report.status == HealthState.UNHEALTHY
        assert registry.sample_value(DEPENDENCY_UP, {"dependency": "database"}) == 1.0
        assert registry.sample_value(DEPENDENCY_UP, {"dependency": "store"}) == 0.0
        assert collector.last_health is report

    def test_without_aggregator(self, registry):
        assert PeriodicCollector(registry).recheck_health() is None

    def test_failure_is_contained(self, registry):
        aggregator = MagicMock()
        aggregator.health = AsyncMock(side_effect=RuntimeError("loop error"))
        collector = PeriodicCollector(registry, aggregator=aggregator)
        assert collector.recheck_health() is None

    def test_digest_runs_without_error(self, registry):
        aggregator = HealthAggregator()
        aggregator.register("database", StaticProbe())
        collector = PeriodicCollector(registry, [uptime_sampler()], aggregator=aggregator)
        collector.run_once()
        collector.digest()
        assert collector.last_health.status == HealthState.HEALTHY


class TestBuiltinSamplers:
    def test_rancher_samplers(self, registry):
        client = MagicMock()
        client.list_clusters.return_value = [{"id": "local"}, {"id": "c-1"}]
        client.node_counts.return_value = {("local", "ready"): 3, ("local", "not_ready"): 0}
        collector = PeriodicCollector(registry, rancher_samplers(client))

        result = collector.run_once()

        assert result.outcome == CycleOutcome.OK
        assert registry.sample_value(RANCHER_CLUSTERS) == 2.0
        assert registry.sample_value(KUBERNETES_NODES, {"cluster": "local", "status": "ready"}) == 3.0
        assert registry.sample_value(KUBERNETES_NODES, {"cluster": "local", "status": "not_ready"}) == 0.0

    def test_cluster_failure_keeps_node_sampling(self, registry):
        client = MagicMock()
        client.list_clusters.side_effect = RuntimeError("timeout")
        client.node_counts.return_value = {("local", "ready"): 1}
        result = PeriodicCollector(registry, rancher_samplers(client)).run_once()
        assert result.failed == ["rancher_clusters"]
        assert registry.sample_value(KUBERNETES_NODES, {"cluster": "local", "status": "ready"}) == 1.0

    @pytest.mark.parametrize("sampler", [uptime_sampler()])
    def test_uptime_positive(self, sampler):
        [reading] = sampler.sample()
        assert reading.metric == APP_UPTIME
        assert reading.value >= 0


class TestDigest:
    def test_falls_back_to_last_health_while_recheck_running(self, registry, caplog):
        aggregator = HealthAggregator()
        aggregator.register("database", StaticProbe())
        collector = PeriodicCollector(registry, aggregator=aggregator)
        previous = collector.recheck_health()

        # 5분 주기 재확인이 lock 을 잡고 있는 상황
        with collector._recheck_lock:
            with caplog.at_level("INFO", logger="rancher_platform.services.monitoring.collector"):
                collector.digest()

        assert collector.last_health is previous
        assert "Daily health digest: status=healthy" in caplog.text

    def test_unknown_without_any_health(self, registry, caplog):
        with caplog.at_level("INFO", logger="rancher_platform.services.monitoring.collector"):
            PeriodicCollector(registry).digest()
        assert "status=unknown" in caplog.text
