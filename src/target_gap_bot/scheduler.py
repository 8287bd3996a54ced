"""
Cron-driven scheduler with a single-run guard.

The main loop wakes every ``tick`` seconds, and for every new wall-clock
minute that matches the cron expression calls :meth:`Scheduler.trigger`.
A trigger that arrives while a run is still in progress is logged and
dropped; it is not queued.  Each run executes on a worker thread so the loop
keeps ticking (and keeps dropping overlapping triggers) meanwhile.
"""

from __future__ import annotations

import signal
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, FrozenSet, Optional

from .logging_utils import get_logger

log = get_logger("scheduler")

DEFAULT_CRON = "0 7 * * *"

# (low, high) per cron field: minute hour day-of-month month day-of-week
_FIELD_RANGES = [(0, 59), (0, 23), (1, 31), (1, 12), (0, 7)]
_FIELD_NAMES = ["minute", "hour", "day", "month", "weekday"]


def _parse_field(expr: str, low: int, high: int, name: str) -> FrozenSet[int]:
    values = set()
    for part in expr.split(","):
        if not part:
            raise ValueError(f"empty {name} entry in {expr!r}")
        rng, _, step_s = part.partition("/")
        step = int(step_s) if step_s else 1
        if step < 1:
            raise ValueError(f"bad {name} step in {part!r}")
        if rng == "*":
            start, end = low, high
        elif "-" in rng:
            a, b = rng.split("-", 1)
            start, end = int(a), int(b)
        else:
            start = int(rng)
            end = high if step_s else start
        if start < low or end > high or start > end:
            raise ValueError(f"{name} out of range in {part!r}")
        values.update(range(start, end + 1, step))
    return frozenset(values)


class CronSchedule:
    """Five-field cron expression, evaluated at minute resolution.

    Supports ``*``, lists, ranges and ``/step``.  Day-of-week uses cron
    numbering (0 or 7 = Sunday).  When both day-of-month and day-of-week are
    restricted, a day matching either one fires, as in classic cron.
    """

    def __init__(self, expression: str = DEFAULT_CRON):
        fields = expression.split()
        if len(fields) != 5:
            raise ValueError(f"cron expression needs 5 fields: {expression!r}")
        self.expression = expression
        parsed = []
        for text, (low, high), name in zip(fields, _FIELD_RANGES, _FIELD_NAMES):
            try:
                parsed.append(_parse_field(text, low, high, name))
            except ValueError as exc:
                raise ValueError(f"invalid cron {expression!r}: {exc}") from exc
        self.minutes, self.hours, self.days, self.months, weekdays = parsed
        self.weekdays = frozenset(d % 7 for d in weekdays)
        self._day_any = fields[2] == "*"
        self._weekday_any = fields[4] == "*"

    def _day_matches(self, moment: datetime) -> bool:
        cron_weekday = (moment.weekday() + 1) % 7  # Monday=0 -> 1, Sunday=6 -> 0
        day_ok = moment.day in self.days
        weekday_ok = cron_weekday in self.weekdays
        if self._day_any or self._weekday_any:
            return day_ok and weekday_ok
        return day_ok or weekday_ok

    def matches(self, moment: datetime) -> bool:
        return (
            moment.minute in self.minutes
            and moment.hour in self.hours
            and moment.month in self.months
            and self._day_matches(moment)
        )

    def next_after(self, moment: datetime, limit_days: int = 366) -> Optional[datetime]:
        """First matching minute strictly after ``moment`` (for boot logging)."""
        candidate = moment.replace(second=0, microsecond=0) + timedelta(minutes=1)
        end = candidate + timedelta(days=limit_days)
        while candidate < end:
            if self.matches(candidate):
                return candidate
            candidate += timedelta(minutes=1)
        return None

    def __repr__(self) -> str:
        return f"CronSchedule({self.expression!r})"


@dataclass
class RunGuard:
    """True while a pipeline run is in progress."""

    running: bool = False


class Scheduler:
    def __init__(
        self,
        job: Callable[[], object],
        schedule: CronSchedule,
        clock: Callable[[], datetime],
        guard: Optional[RunGuard] = None,
        background: bool = True,
        tick: float = 1.0,
    ):
        self.job = job
        self.schedule = schedule
        self.clock = clock
        self.guard = guard or RunGuard()
        self.background = background
        self.tick = tick
        self.stop_requested = False
        self._last_minute: Optional[datetime] = None
        self._worker: Optional[threading.Thread] = None

    def trigger(self) -> bool:
        """Start a run unless one is active.  Returns True if a run was started."""
        started_at = self.clock()
        if self.guard.running:
            log.warning("run_skipped reason=previous_run_active at=%s", started_at.isoformat())
            return False

        self.guard.running = True
        log.info("run_triggered at=%s", started_at.isoformat())
        if self.background:
            self._worker = threading.Thread(
                target=self._execute, name="PipelineRun", daemon=True
            )
            self._worker.start()
        else:
            self._execute()
        return True

    def _execute(self) -> None:
        try:
            self.job()
        except Exception:
            # Boundary: a failed run must not take the scheduler down
            log.exception("run_failed")
        finally:
            self.guard.running = False
            log.info("run_finished at=%s next=%s", self.clock().isoformat(), self._next())

    def _next(self) -> str:
        nxt = self.schedule.next_after(self.clock())
        return nxt.isoformat() if nxt else "none"

    def poll(self) -> bool:
        """Fire once for a newly reached matching minute; returns True if triggered."""
        minute = self.clock().replace(second=0, microsecond=0)
        if minute == self._last_minute:
            return False
        self._last_minute = minute
        if not self.schedule.matches(minute):
            return False
        return self.trigger()

    def request_stop(self, signum=None, frame=None) -> None:
        if signum is not None:
            log.warning("shutdown_signal_received signal=%s", signal.Signals(signum).name)
        self.stop_requested = True

    def install_signal_handlers(self) -> None:
        try:
            signal.signal(signal.SIGINT, self.request_stop)
            signal.signal(signal.SIGTERM, self.request_stop)
        except ValueError:
            # Not on the main thread; rely on KeyboardInterrupt instead
            log.debug("signal_handlers_unavailable")

    def run_forever(self) -> None:
        log.info("scheduler_start cron=%r next=%s", self.schedule.expression, self._next())
        while not self.stop_requested:
            self.poll()
            time.sleep(self.tick)
        self.wait_for_run()
        log.info("scheduler_stop run_active=%s", self.guard.running)

    def wait_for_run(self, timeout: Optional[float] = None) -> None:
        """Block until an in-flight worker finishes so it can release the browser."""
        worker = self._worker
        if worker is None or not worker.is_alive():
            return
        log.info("scheduler_waiting_for_run")
        worker.join(timeout)
