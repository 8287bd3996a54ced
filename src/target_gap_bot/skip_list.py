"""
Skip List (line-delimited text file)

Purpose
-------
Remember stock codes that have no consensus target price so later runs do not
spend a page load on them.  The list is wiped once a month so codes that gain
analyst coverage are picked up again.

Design
------
- Plain text, one code per line, append-only.  Duplicates are tolerated;
  ``load()`` de-duplicates into a set and ignores blank lines.
- A missing file means "no exclusions" for every operation.
- Reset rule: the designated weekday (default Monday) falling on day 1-7 of
  the month, i.e. the first such weekday of the month.
- Any other I/O error propagates so the run aborts.

Env
---
SKIP_LIST_FILE           (default: "skip-list.txt")
SKIP_LIST_RESET_WEEKDAY  (default: "0", Monday)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Set

from .logging_utils import get_logger

log = get_logger("skip_list")

MONDAY = 0


@dataclass
class SkipListConfig:
    path: Path
    reset_weekday: int = MONDAY


class SkipList:
    def __init__(self, config: SkipListConfig):
        self.cfg = config

    @property
    def path(self) -> Path:
        return self.cfg.path

    def should_reset(self, today: date) -> bool:
        return today.weekday() == self.cfg.reset_weekday and today.day <= 7

    def reset(self) -> bool:
        """Delete the file.  Returns False when there was nothing to delete."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True

    def reset_if_due(self, today: date) -> bool:
        if not self.should_reset(today):
            return False
        if self.reset():
            log.info("skip_list_reset path=%s date=%s", self.path, today.isoformat())
            return True
        log.info(
            "skip_list_reset_noop reason=missing_file path=%s date=%s",
            self.path,
            today.isoformat(),
        )
        return False

    def load(self) -> Set[str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            log.info("skip_list_missing path=%s scanning_all=True", self.path)
            return set()
        return {line.strip() for line in raw.splitlines() if line.strip()}

    def add(self, code: str) -> None:
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(f"{code}\n")
