# -*- coding: utf-8 -*-
"""Target gap bot runner."""

from __future__ import annotations

import argparse
import os
import sys
from functools import partial
from typing import List, Optional

# Load .env early so config is available to subsequent imports.
from dotenv import load_dotenv

# If DOTENV_FILE is set, load that; otherwise default to .env
_env_file = os.getenv("DOTENV_FILE")
if _env_file:
    load_dotenv(_env_file)
else:
    load_dotenv()

from .alerts import AlertDispatcher  # noqa: E402
from .config import Settings, get_settings  # noqa: E402
from .fetcher import BrowserPageFetcher, StockFetcher  # noqa: E402
from .logging_utils import get_logger, setup_logging  # noqa: E402
from .pipeline import Pipeline, PipelineConfig, RunReport  # noqa: E402
from .scheduler import CronSchedule, RunGuard, Scheduler  # noqa: E402
from .skip_list import SkipList, SkipListConfig  # noqa: E402
from .slack_transport import SlackSender  # noqa: E402
from .time_utils import now  # noqa: E402

log = get_logger("runner")


def build_pipeline(settings: Settings) -> Pipeline:
    """Wire a fresh pipeline (and browser backend) for one run."""
    clock = partial(now, settings.timezone)
    sender = (
        SlackSender(settings.slack_token, settings.slack_channel_id)
        if settings.slack_configured
        else None
    )
    pages = BrowserPageFetcher(
        headless=settings.headless,
        timeout=settings.page_timeout_seconds,
        chromedriver_path=settings.chromedriver_path,
    )
    return Pipeline(
        config=PipelineConfig(
            universe=list(settings.stock_codes),
            gap_threshold=settings.price_gap_percentage,
            min_market_cap=settings.min_market_cap_billions,
            delay_min=settings.delay_min_seconds,
            delay_max=settings.delay_max_seconds,
        ),
        fetcher=StockFetcher(pages),
        skip_list=SkipList(
            SkipListConfig(
                path=settings.skip_list_file,
                reset_weekday=settings.skip_list_reset_weekday,
            )
        ),
        dispatcher=AlertDispatcher(
            sender,
            clock=clock,
            batch_size=settings.alert_batch_size,
            batch_delay=settings.alert_batch_delay_seconds,
        ),
        clock=clock,
    )


def run_once(settings: Settings) -> RunReport:
    return build_pipeline(settings).run()


def runner_main(once: bool = False, settings: Optional[Settings] = None) -> int:
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings)

    log.info(
        "boot_start universe=%d slack=%s headless=%s gap_threshold=%s min_market_cap=%d tz=%s",
        len(settings.stock_codes),
        "set" if settings.slack_configured else "missing",
        settings.headless,
        settings.price_gap_percentage,
        settings.min_market_cap_billions,
        settings.timezone,
    )

    if once:
        run_once(settings)
        log.info("boot_end mode=once")
        return 0

    try:
        schedule = CronSchedule(settings.cron_schedule)
    except ValueError as exc:
        log.error("invalid_cron_schedule err=%s", exc)
        return 2

    scheduler = Scheduler(
        job=partial(run_once, settings),
        schedule=schedule,
        clock=partial(now, settings.timezone),
        guard=RunGuard(),
    )
    scheduler.install_signal_handlers()
    scheduler.run_forever()
    log.info("boot_end mode=scheduler")
    return 0


def main(*, once: bool = False, argv: List[str] | None = None) -> int:
    """
    Entry point for the runner.

    ``main(once=True)`` bypasses argument parsing so tests can drive a single
    run directly; otherwise options come from ``argv``.
    """
    if once:
        return runner_main(once=True)
    ap = argparse.ArgumentParser(description="Target price gap alert bot")
    ap.add_argument(
        "--once", action="store_true", help="Run a single scan now and exit"
    )
    args = ap.parse_args(argv)
    return runner_main(once=args.once)


if __name__ == "__main__":
    sys.exit(main())
