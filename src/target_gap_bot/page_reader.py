"""
Field extraction from the rendered stock quote page.

The page is a React build whose CSS-module class names carry a hash suffix
(``GraphMain_price__3x9Qb``), so every selector matches on the stable prefix
with ``[class*="..."]`` instead of the full class.
"""

from __future__ import annotations

from typing import Optional

from bs4 import BeautifulSoup

NAME_SELECTOR = 'span[class*="GraphMain_name__"]'
PRICE_SELECTOR = 'strong[class*="GraphMain_price__"]'
TARGET_SELECTOR = 'span[class*="Consensus_price__"]'
INFO_KEY_SELECTOR = 'strong[class*="StockInfo_key__"]'
INFO_VALUE_SELECTOR = 'span[class*="StockInfo_value__"]'

MARKET_CAP_KEY = "시총"
WON = "원"


class PageReader:
    """One method per snapshot field; None means the field is not on the page."""

    def name(self) -> Optional[str]:
        raise NotImplementedError

    def current_price(self) -> Optional[str]:
        raise NotImplementedError

    def target_price(self) -> Optional[str]:
        raise NotImplementedError

    def market_cap(self) -> Optional[str]:
        raise NotImplementedError


def _text(node) -> Optional[str]:
    if node is None:
        return None
    return node.get_text().strip()


def _strip_won(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.replace(WON, "", 1).strip()


class HtmlPageReader(PageReader):
    def __init__(self, html: str):
        self.soup = BeautifulSoup(html or "", "html.parser")

    def name(self) -> Optional[str]:
        return _text(self.soup.select_one(NAME_SELECTOR))

    def current_price(self) -> Optional[str]:
        return _strip_won(_text(self.soup.select_one(PRICE_SELECTOR)))

    def target_price(self) -> Optional[str]:
        return _strip_won(_text(self.soup.select_one(TARGET_SELECTOR)))

    def market_cap(self) -> Optional[str]:
        for key in self.soup.select(INFO_KEY_SELECTOR):
            if key.get_text().strip() != MARKET_CAP_KEY:
                continue
            if key.parent is None:
                return None
            return _text(key.parent.select_one(INFO_VALUE_SELECTOR))
        return None
