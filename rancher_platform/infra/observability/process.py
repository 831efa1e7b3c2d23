"""프로세스/호스트 통계 — psutil 기반 샘플링."""

import os
import platform
import socket
import sys
import time
from datetime import UTC, datetime

import psutil

from rancher_platform.domain.health import ApplicationInfo, CpuTimes, MemorySample, SystemInfo

# 프로세스 시작 시각 (uptime 계산용). import 시점 = 프로세스 기동 직후
_started_monotonic = time.monotonic()
_started_at = datetime.now(UTC)

_process = psutil.Process(os.getpid())


def uptime_seconds() -> float:
    return time.monotonic() - _started_monotonic


def started_at() -> datetime:
    return _started_at


def memory_sample() -> MemorySample:
    """RSS / 힙 사용량 스냅샷.

    heap_used는 private data segment (Linux `data`), 없으면 RSS.
    heap_total은 가상 메모리 크기(VMS).
    """
    mem = _process.memory_info()
    return MemorySample(
        resident_bytes=mem.rss,
        heap_used_bytes=getattr(mem, "data", mem.rss),
        heap_total_bytes=mem.vms,
    )


def cpu_times() -> CpuTimes:
    times = _process.cpu_times()
    return CpuTimes(user_seconds=times.user, system_seconds=times.system)


def load_average() -> list[float]:
    try:
        return [round(v, 2) for v in os.getloadavg()]
    except (AttributeError, OSError):
        return []


def application_info(name: str, version: str, environment: str) -> ApplicationInfo:
    return ApplicationInfo(
        name=name,
        version=version,
        environment=environment,
        python_version=sys.version.split()[0],
        platform=sys.platform,
        architecture=platform.machine(),
        pid=os.getpid(),
        uptime_seconds=round(uptime_seconds(), 3),
        start_time=_started_at,
    )


def system_info() -> SystemInfo:
    vm = psutil.virtual_memory()
    return SystemInfo(
        memory=memory_sample(),
        cpu=cpu_times(),
        load_average=load_average(),
        free_memory_bytes=vm.available,
        total_memory_bytes=vm.total,
        hostname=socket.gethostname(),
    )
