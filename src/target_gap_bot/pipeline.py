"""
One scan over the stock universe.

Per run:

1. reset the skip list when the monthly rule fires,
2. load the skip list and drop those codes from the universe,
3. for each remaining code, strictly one after another: fetch the quote page,
   record the snapshot, append codes without a target price to the skip list,
   compute the target-price gap and keep codes that clear both thresholds,
   then pause for a random 2-5 s,
4. log the results table and hand the candidates to the dispatcher.

A failure on one code is logged and recorded as an error row; it never stops
the loop.  Skip-list I/O errors and dispatcher errors do propagate.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Set

from .alerts import AlertDispatcher
from .fetcher import StockFetcher
from .logging_utils import get_logger
from .models import AlertCandidate, Missing, Snapshot, display
from .numeric import parse_int_prefix, parse_market_cap
from .skip_list import SkipList
from .time_utils import sleep as _sleep

log = get_logger("pipeline")


@dataclass
class PipelineConfig:
    universe: List[str]
    gap_threshold: Optional[float] = None
    min_market_cap: int = 0
    delay_min: float = 2.0
    delay_max: float = 5.0


@dataclass
class RunReport:
    results: List[Snapshot] = field(default_factory=list)
    candidates: List[AlertCandidate] = field(default_factory=list)
    skipped: int = 0
    errors: int = 0
    aborted: bool = False
    duration: float = 0.0

    @property
    def processed(self) -> int:
        return len(self.results)


def compute_gap(current_price, target_price) -> Optional[float]:
    """Percent the current price sits below the target; None if not computable."""
    current = parse_int_prefix(current_price)
    target = parse_int_prefix(target_price)
    if current is None or target is None or target <= 0:
        return None
    return (target - current) / target * 100


def evaluate(
    snapshot: Snapshot, gap_threshold: float, min_market_cap: int
) -> Optional[AlertCandidate]:
    """Return an alert candidate when ``snapshot`` clears both thresholds."""
    if isinstance(snapshot.current_price, Missing) or isinstance(
        snapshot.target_price, Missing
    ):
        return None
    gap = compute_gap(snapshot.current_price, snapshot.target_price)
    if gap is None or gap < gap_threshold:
        return None

    # Labels for missing fields parse to 0 and read naturally in the alert line
    market_cap = display(snapshot.market_cap, "market_cap")
    cap = parse_market_cap(market_cap)
    name = display(snapshot.name, "name")
    if cap < min_market_cap:
        log.info(
            "candidate_dropped code=%s name=%s gap=%.2f market_cap=%s min_market_cap=%d",
            snapshot.code,
            name,
            gap,
            market_cap,
            min_market_cap,
        )
        return None
    return AlertCandidate(
        code=snapshot.code,
        name=name,
        current_price=snapshot.current_price,
        target_price=snapshot.target_price,
        market_cap=market_cap,
        market_cap_billions=cap,
        gap=gap,
    )


def filter_universe(universe: Iterable[str], skip: Set[str]) -> List[str]:
    return [code for code in universe if code not in skip]


def _log_results(report: RunReport) -> None:
    log.info("results_table rows=%d", len(report.results))
    for row in (s.as_row() for s in report.results):
        log.info(
            "result code=%s name=%s market_cap=%s current=%s target=%s",
            row["code"],
            row["name"],
            row["market_cap"],
            row["current_price"],
            row["target_price"],
        )
    minutes, seconds = divmod(report.duration, 60)
    log.info(
        "run_duration minutes=%d seconds=%.2f total_s=%.2f",
        int(minutes),
        seconds,
        report.duration,
    )


class Pipeline:
    def __init__(
        self,
        config: PipelineConfig,
        fetcher: StockFetcher,
        skip_list: SkipList,
        dispatcher: AlertDispatcher,
        clock: Callable[[], datetime],
        sleep: Callable[[float], None] = _sleep,
        jitter: Callable[[float, float], float] = random.uniform,
    ):
        self.config = config
        self.fetcher = fetcher
        self.skip_list = skip_list
        self.dispatcher = dispatcher
        self.clock = clock
        self.sleep = sleep
        self.jitter = jitter

    def run(self) -> RunReport:
        report = RunReport()
        cfg = self.config

        self.skip_list.reset_if_due(self.clock().date())
        skip = self.skip_list.load()

        if not cfg.universe:
            log.warning("universe_missing hint=set STOCK_CODES")
            report.aborted = True
            return report

        codes = filter_universe(cfg.universe, skip)
        report.skipped = len(cfg.universe) - len(codes)
        log.info(
            "run_start universe=%d skipped=%d scanning=%d",
            len(cfg.universe),
            report.skipped,
            len(codes),
        )
        if cfg.gap_threshold is None:
            log.info("gap_analysis_disabled reason=PRICE_GAP_PERCENTAGE_unset")

        t0 = time.time()
        # The browser is released however the loop ends
        with self.fetcher:
            for index, code in enumerate(codes, start=1):
                self._process(index, len(codes), code, report)
        report.duration = time.time() - t0
        _log_results(report)

        if report.candidates:
            log.info("alert_candidates count=%d", len(report.candidates))
        self.dispatcher.dispatch(report.candidates)
        return report

    def _process(self, index: int, total: int, code: str, report: RunReport) -> None:
        try:
            snapshot = self._inspect(index, total, code, report)
            # Skip-list write errors are not per-item failures; they abort the run.
            if snapshot is not None and snapshot.target_unavailable:
                log.info("skip_list_add code=%s reason=no_target_price", code)
                self.skip_list.add(code)
        finally:
            delay = self.jitter(self.config.delay_min, self.config.delay_max)
            log.debug("rate_limit_sleep code=%s delay=%.2fs", code, delay)
            self.sleep(delay)

    def _inspect(
        self, index: int, total: int, code: str, report: RunReport
    ) -> Optional[Snapshot]:
        cfg = self.config
        t0 = time.time()
        try:
            result = self.fetcher.fetch(code)
            if not result.ok:
                report.results.append(result.snapshot)
                report.errors += 1
                return None

            snapshot = result.snapshot
            row = snapshot.as_row()
            log.info(
                "item_ok progress=%d/%d code=%s name=%s market_cap=%s current=%s target=%s took=%.2fs",
                index,
                total,
                code,
                row["name"],
                row["market_cap"],
                row["current_price"],
                row["target_price"],
                time.time() - t0,
            )

            if cfg.gap_threshold is not None:
                candidate = evaluate(snapshot, cfg.gap_threshold, cfg.min_market_cap)
                if candidate is not None:
                    log.info(
                        "candidate_found code=%s name=%s gap=%.2f",
                        code,
                        candidate.name,
                        candidate.gap,
                    )
                    report.candidates.append(candidate)
        except Exception as exc:
            log.warning(
                "item_failed progress=%d/%d code=%s err=%s took=%.2fs",
                index,
                total,
                code,
                exc.__class__.__name__,
                time.time() - t0,
                exc_info=True,
            )
            report.results.append(Snapshot.failed(code))
            report.errors += 1
            return None

        report.results.append(snapshot)
        return snapshot
