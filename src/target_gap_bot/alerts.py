"""
Alert rendering and batched dispatch.

Candidates from one run are sorted, cut into batches and each batch becomes
one chat message.  The sender is any object with
``send(title, body, color)``; :class:`~target_gap_bot.slack_transport.SlackSender`
is the production one.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional, Protocol, Sequence

from .fetcher import stock_url
from .logging_utils import get_logger
from .models import AlertCandidate
from .time_utils import format_timestamp
from .time_utils import sleep as _sleep

log = get_logger("alerts")

BATCH_SIZE = 5
BATCH_DELAY_SECONDS = 1.0

# Attachment colour alternates by day of month (cosmetic only)
COLOR_EVEN_DAY = "#D00000"
COLOR_ODD_DAY = "#2EB67D"


class MessageSender(Protocol):
    def send(self, title: str, body: str, color: str) -> None: ...


def attachment_color(moment: datetime) -> str:
    return COLOR_EVEN_DAY if moment.day % 2 == 0 else COLOR_ODD_DAY


def build_title(moment: datetime, total: int) -> str:
    return f"[{format_timestamp(moment)}] 📈 목표주가 대비 저평가 종목 알림 ({total}건)"


def format_line(c: AlertCandidate) -> str:
    return (
        f"• <{stock_url(c.code)}|[{c.code}] {c.name}> | 시총: {c.market_cap} "
        f"| 현재가: {c.current_price} | 목표가: {c.target_price} | 괴리율: {c.gap:.2f}%"
    )


def build_body(batch: Sequence[AlertCandidate]) -> str:
    return "\n".join(format_line(c) for c in batch)


def order_candidates(candidates: Sequence[AlertCandidate]) -> List[AlertCandidate]:
    # Ascending by gap: smallest qualifying gap is listed first.
    return sorted(candidates, key=lambda c: c.gap)


def chunk(items: Sequence[AlertCandidate], size: int) -> List[List[AlertCandidate]]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class AlertDispatcher:
    def __init__(
        self,
        sender: Optional[MessageSender],
        clock: Callable[[], datetime],
        batch_size: int = BATCH_SIZE,
        batch_delay: float = BATCH_DELAY_SECONDS,
        sleep: Callable[[float], None] = _sleep,
    ):
        self.sender = sender
        self.clock = clock
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self.sleep = sleep

    def dispatch(self, candidates: Sequence[AlertCandidate]) -> int:
        """Send all candidates; returns the number of messages posted.

        A send failure propagates; batches after the failing one are not sent.
        """
        if not candidates:
            log.info("alerts_skipped reason=no_candidates")
            return 0
        if self.sender is None:
            log.info("alerts_skipped reason=sender_unconfigured count=%d", len(candidates))
            return 0

        ordered = order_candidates(candidates)
        batches = chunk(ordered, self.batch_size)
        moment = self.clock()
        title = build_title(moment, len(ordered))
        color = attachment_color(moment)
        log.info(
            "alerts_dispatch_start count=%d batches=%d", len(ordered), len(batches)
        )

        for idx, batch in enumerate(batches):
            self.sender.send(title, build_body(batch), color)
            log.info(
                "alerts_batch_sent batch=%d/%d size=%d", idx + 1, len(batches), len(batch)
            )
            if idx + 1 < len(batches):
                self.sleep(self.batch_delay)
        return len(batches)
