import threading
import time
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from target_gap_bot.scheduler import CronSchedule, RunGuard, Scheduler

KST = ZoneInfo("Asia/Seoul")


def _at(day, hour=7, minute=0, second=0):
    return datetime(2025, 3, day, hour, minute, second, tzinfo=KST)


class _Clock:
    def __init__(self, moment):
        self.moment = moment

    def __call__(self):
        return self.moment


def test_default_schedule_matches_seven_am():
    cron = CronSchedule()
    assert cron.matches(_at(11))
    assert not cron.matches(_at(11, minute=1))
    assert not cron.matches(_at(11, hour=19))


def test_weekday_range():
    cron = CronSchedule("0 9 * * 1-5")
    assert cron.matches(_at(10, hour=9))  # Monday
    assert not cron.matches(_at(15, hour=9))  # Saturday


def test_sunday_as_seven():
    assert CronSchedule("0 0 * * 7").matches(_at(9, hour=0))


def test_steps_and_lists():
    cron = CronSchedule("*/15 8,20 * * *")
    assert cron.matches(_at(11, hour=8, minute=45))
    assert cron.matches(_at(11, hour=20, minute=0))
    assert not cron.matches(_at(11, hour=8, minute=10))


def test_day_of_month_or_weekday_when_both_restricted():
    cron = CronSchedule("0 0 1 * 1")
    assert cron.matches(_at(1, hour=0))  # 1st, a Saturday
    assert cron.matches(_at(3, hour=0))  # Monday
    assert not cron.matches(_at(4, hour=0))


@pytest.mark.parametrize(
    "expr", ["", "* * *", "61 * * * *", "*/0 * * * *", "a * * * *", "5-1 * * * *"]
)
def test_invalid_expressions(expr):
    with pytest.raises(ValueError):
        CronSchedule(expr)


def test_next_after():
    assert CronSchedule().next_after(_at(11)) == _at(12)
    assert CronSchedule().next_after(_at(11, hour=6, minute=59, second=30)) == _at(11)


def test_guard_set_skips_run_and_leaves_guard():
    calls = []
    guard = RunGuard(running=True)
    sched = Scheduler(
        lambda: calls.append(1), CronSchedule(), _Clock(_at(11)), guard=guard, background=False
    )
    assert sched.trigger() is False
    assert calls == []
    assert guard.running is True


def test_inline_run_clears_guard_even_when_job_raises():
    def job():
        raise RuntimeError("browser crashed")

    sched = Scheduler(job, CronSchedule(), _Clock(_at(11)), background=False)
    assert sched.trigger() is True
    assert sched.guard.running is False


def test_overlapping_trigger_is_dropped():
    release = threading.Event()
    started = threading.Event()
    calls = []

    def job():
        calls.append(1)
        started.set()
        release.wait(5)

    sched = Scheduler(job, CronSchedule(), _Clock(_at(11)))
    assert sched.trigger() is True
    assert started.wait(5)
    assert sched.trigger() is False
    release.set()
    sched._worker.join(5)
    assert calls == [1]
    assert sched.guard.running is False


def test_poll_fires_once_per_matching_minute():
    calls = []
    clock = _Clock(_at(11, hour=6, minute=59))
    sched = Scheduler(lambda: calls.append(1), CronSchedule(), clock, background=False)
    assert sched.poll() is False
    clock.moment = _at(11)
    assert sched.poll() is True
    clock.moment = _at(11) + timedelta(seconds=30)
    assert sched.poll() is False
    clock.moment = _at(12)
    assert sched.poll() is True
    assert calls == [1, 1]


def test_run_forever_stops_on_request():
    sched = Scheduler(None, CronSchedule(), _Clock(_at(11)), background=False, tick=0)
    sched.job = sched.request_stop
    sched.run_forever()
    assert sched.stop_requested


def test_run_forever_waits_for_active_run():
    finished = []
    sched = Scheduler(None, CronSchedule(), _Clock(_at(11)), tick=0)

    def job():
        sched.request_stop()
        time.sleep(0.2)
        finished.append(1)

    sched.job = job
    sched.run_forever()
    assert finished == [1]
    assert sched.guard.running is False


def test_wait_for_run_without_worker_returns():
    Scheduler(lambda: None, CronSchedule(), _Clock(_at(11))).wait_for_run()
