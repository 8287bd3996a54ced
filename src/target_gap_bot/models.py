from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union


class TargetGapBotError(Exception):
    """Base class for the bot's own errors."""


class FetchError(TargetGapBotError):
    """Page could not be loaded, never became ready, or the browser failed."""

    def __init__(self, target: str, reason: str):
        super().__init__(f"{target}: {reason}")
        self.target = target
        self.reason = reason


class Missing(enum.Enum):
    """Why a snapshot field has no value."""

    UNAVAILABLE = "unavailable"  # page loaded, element not present
    ERROR = "error"  # the fetch itself failed

    def __str__(self) -> str:
        return self.value


Field = Union[str, Missing]

# Labels used when a missing field is shown in logs or the results table
_LABELS = {
    "name": "종목명 없음",
    "current_price": "현재가 없음",
    "target_price": "목표주가 없음",
    "market_cap": "시총 없음",
}
ERROR_LABEL = "오류 발생"


def display(value: Field, field_name: str) -> str:
    if value is Missing.ERROR:
        return ERROR_LABEL
    if value is Missing.UNAVAILABLE:
        return _LABELS.get(field_name, "없음")
    return value


@dataclass
class Snapshot:
    code: str
    name: Field = Missing.UNAVAILABLE
    current_price: Field = Missing.UNAVAILABLE
    target_price: Field = Missing.UNAVAILABLE
    market_cap: Field = Missing.UNAVAILABLE

    @classmethod
    def failed(cls, code: str) -> "Snapshot":
        return cls(
            code=code,
            name=Missing.ERROR,
            current_price=Missing.ERROR,
            target_price=Missing.ERROR,
            market_cap=Missing.ERROR,
        )

    @property
    def is_error(self) -> bool:
        return self.target_price is Missing.ERROR

    @property
    def target_unavailable(self) -> bool:
        return self.target_price is Missing.UNAVAILABLE

    def as_row(self) -> dict:
        return {
            "code": self.code,
            "name": display(self.name, "name"),
            "current_price": display(self.current_price, "current_price"),
            "target_price": display(self.target_price, "target_price"),
            "market_cap": display(self.market_cap, "market_cap"),
        }


@dataclass
class FetchResult:
    snapshot: Snapshot
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AlertCandidate:
    code: str
    name: str
    current_price: str
    target_price: str
    market_cap: str
    market_cap_billions: int
    gap: float
