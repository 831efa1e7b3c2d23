"""백그라운드 스케줄러 — 고정 간격 / 매일 정해진 시각 트리거.

각 job 은 자체 daemon thread 에서 순차 실행되므로 같은 job 의 실행이 겹치지 않는다.
밀린 tick 은 몰아서 실행하지 않고 버린다. job 예외는 로그만 남기고 다음 실행으로 넘어간다.

Usage:
    scheduler = Scheduler(timezone="Asia/Seoul")
    scheduler.add_interval("metrics-collect", collector.run_once, seconds=60)
    scheduler.add_daily("health-digest", digest, at="02:00")
    scheduler.start()
    ...
    scheduler.shutdown()
"""

import logging
import math
import threading
from collections.abc import Callable
from datetime import UTC, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)


class IntervalTrigger:
    """고정 간격 (fixed-rate). 첫 호출 시각을 기준점으로 interval 배수마다 발화."""

    def __init__(self, seconds: float, *, run_immediately: bool = False):
        if seconds <= 0:
            raise ValueError(f"Interval must be positive: {seconds}")
        self.seconds = seconds
        self._run_immediately = run_immediately
        self._anchor: datetime | None = None

    def seconds_until_next(self, now: datetime) -> float:
        if self._anchor is None:
            self._anchor = now
            return 0.0 if self._run_immediately else self.seconds
        elapsed = (now - self._anchor).total_seconds()
        ticks = math.floor(elapsed / self.seconds) + 1
        return ticks * self.seconds - elapsed

    def __repr__(self) -> str:
        return f"every {self.seconds:g}s"


class DailyTrigger:
    """매일 HH:MM (지정 timezone)."""

    def __init__(self, at: str, tz: tzinfo = UTC):
        hour, minute = (int(p) for p in at.split(":"))
        self.at = time(hour=hour, minute=minute)
        self.tz = tz

    def seconds_until_next(self, now: datetime) -> float:
        local = now.astimezone(self.tz)
        candidate = local.replace(hour=self.at.hour, minute=self.at.minute, second=0, microsecond=0)
        if candidate <= local:
            candidate += timedelta(days=1)
        return (candidate - local).total_seconds()

    def __repr__(self) -> str:
        return f"daily at {self.at:%H:%M} {self.tz}"


Trigger = IntervalTrigger | DailyTrigger


class ScheduledJob:
    """트리거에 따라 func 를 반복 실행하는 daemon thread."""

    def __init__(self, name: str, func: Callable[[], object], trigger: Trigger):
        self.name = name
        self._func = func
        self._trigger = trigger
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.runs = 0
        self.failures = 0
        self.last_run: datetime | None = None
        self.last_error: str | None = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=f"job-{self.name}", daemon=True)
        self._thread.start()
        logger.info("[%s] Scheduled %r", self.name, self._trigger)

    def stop(self, timeout: float = 10.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("[%s] Did not stop within %.0fs", self.name, timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self) -> None:
        while not self._stop.is_set():
            delay = self._trigger.seconds_until_next(datetime.now(UTC))
            if self._stop.wait(delay):
                break
            self.run_now()
        logger.info("[%s] Stopped", self.name)

    def run_now(self) -> None:
        """한 번 실행. 예외는 삼키지 않고 로그로 남긴 뒤 다음 실행을 기다린다."""
        self.runs += 1
        self.last_run = datetime.now(UTC)
        try:
            self._func()
        except Exception as e:
            self.failures += 1
            self.last_error = str(e)[:200]
            logger.error("[%s] Job failed: %s", self.name, e, exc_info=True)
        else:
            self.last_error = None

    def status(self) -> dict:
        return {
            "trigger": repr(self._trigger),
            "running": self.running,
            "runs": self.runs,
            "failures": self.failures,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_error": self.last_error,
        }


class Scheduler:
    """job 묶음의 시작/종료 관리."""

    def __init__(self, timezone: str = "UTC"):
        self._tz = ZoneInfo(timezone)
        self._jobs: dict[str, ScheduledJob] = {}

    def _add(self, job: ScheduledJob) -> ScheduledJob:
        if job.name in self._jobs:
            raise ValueError(f"Job already scheduled: {job.name}")
        self._jobs[job.name] = job
        return job

    def add_interval(
        self, name: str, func: Callable[[], object], *, seconds: float, run_immediately: bool = False
    ) -> ScheduledJob:
        return self._add(ScheduledJob(name, func, IntervalTrigger(seconds, run_immediately=run_immediately)))

    def add_daily(self, name: str, func: Callable[[], object], *, at: str) -> ScheduledJob:
        return self._add(ScheduledJob(name, func, DailyTrigger(at, self._tz)))

    @property
    def jobs(self) -> dict[str, ScheduledJob]:
        return dict(self._jobs)

    def start(self) -> None:
        for job in self._jobs.values():
            job.start()
        logger.info("Scheduled tasks initialized: %s", list(self._jobs))

    def shutdown(self, timeout: float = 10.0) -> None:
        for job in self._jobs.values():
            job.stop(timeout=timeout)

    def status(self) -> dict[str, dict]:
        return {name: job.status() for name, job in self._jobs.items()}
