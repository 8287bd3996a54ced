"""
Time utilities.

Drop-in replacements for ``datetime.now()`` and ``time.sleep()`` that know
about the bot's wall-clock zone.  The schedule, the monthly skip-list reset
and alert titles are all expressed in local market time (KST by default), so
every caller goes through :func:`now` rather than reading the clock itself.

Usage:
    from target_gap_bot.time_utils import now, sleep, format_timestamp

    current = now("Asia/Seoul")
    format_timestamp(current)   # "2025-03-03 07:00"
    sleep(1.5)
"""

import time as _real_time
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

DEFAULT_TZ = "Asia/Seoul"


def get_zone(name: str = DEFAULT_TZ) -> ZoneInfo:
    """Return the ZoneInfo for ``name``; raises ZoneInfoNotFoundError if unknown."""
    return ZoneInfo(name or DEFAULT_TZ)


def now(tz_name: str = DEFAULT_TZ) -> datetime:
    """Current time as an aware datetime in ``tz_name``."""
    return datetime.now(timezone.utc).astimezone(get_zone(tz_name))


def format_timestamp(moment: datetime) -> str:
    """Render ``moment`` as ``yyyy-mm-dd hh:mm``."""
    return moment.strftime("%Y-%m-%d %H:%M")


def sleep(seconds: float) -> None:
    """Sleep for ``seconds``; negative values are treated as zero."""
    if seconds > 0:
        _real_time.sleep(seconds)
