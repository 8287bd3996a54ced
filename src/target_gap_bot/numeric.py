"""
Korean magnitude parsing.

Market capitalisation on the quote page is rendered with the vernacular
units 조 (10^12 won) and 억 (10^8 won), e.g. ``"2조 4,674억"``.  The helpers
here normalise such strings to a plain count of 억 and read prices the way
the page displays them (``"81,300"``).

Both functions are deliberately permissive: malformed fragments read as zero
(or ``None`` for prices) instead of raising, because the filtering logic in
the pipeline relies on that fallback.
"""

from __future__ import annotations

import re
from typing import Any, Optional

JO = "조"
EOK = "억"

# 1조 == 10,000억
EOK_PER_JO = 10_000

# Leading integer: optional whitespace and sign, then digits
_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")


def parse_int_prefix(value: Any) -> Optional[int]:
    """Return the leading integer of ``value`` with ``,`` separators removed.

    ``"81,300"`` -> 81300, ``"12,000원"`` -> 12000, ``"목표주가 없음"`` -> None.
    Non-string input is converted with ``str()`` first; ``None`` yields None.
    """
    if value is None:
        return None
    m = _INT_PREFIX_RE.match(str(value).replace(",", ""))
    if not m:
        return None
    return int(m.group(1))


def _fragment(text: str) -> int:
    return parse_int_prefix(text) or 0


def parse_market_cap(text: Any) -> int:
    """Convert a 조/억 magnitude string to a number of 억.

    >>> parse_market_cap("2조4674억")
    24674
    >>> parse_market_cap("5,321억")
    5321

    Strings carrying neither unit, empty strings and non-strings yield 0.
    """
    if not isinstance(text, str) or not text:
        return 0

    total = 0
    s = text.replace(",", "")

    if JO in s:
        parts = s.split(JO)
        total += _fragment(parts[0]) * EOK_PER_JO
        if len(parts) > 1 and EOK in parts[1]:
            total += _fragment(parts[1].replace(EOK, "", 1))
    elif EOK in s:
        total += _fragment(s.replace(EOK, "", 1))
    return total
