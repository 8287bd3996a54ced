from target_gap_bot.fetcher import PageFetcher
from target_gap_bot.models import FetchError


def make_page(
    name="삼성전자",
    price="8,000",
    target="10,000",
    market_cap="2조 4,674억",
    ready=True,
):
    """Render a trimmed copy of the mobile quote page markup."""
    parts = ["<html><body>"]
    if name is not None:
        parts.append(f'<span class="GraphMain_name__Xk1a2">{name}</span>')
    if price is not None:
        parts.append(
            f'<strong class="GraphMain_price__H72B2">{price}<span class="GraphMain_won__7a">원</span></strong>'
        )
    if target is not None:
        parts.append(
            f'<div class="Consensus_box__1"><span class="Consensus_price__nPc4k">{target}원</span></div>'
        )
    parts.append('<ul class="StockInfo_list__V96U6">')
    parts.append(
        '<li class="StockInfo_item__puHWj"><strong class="StockInfo_key__kY0sM">거래량</strong>'
        '<span class="StockInfo_value__S_nVM">12,345,678</span></li>'
    )
    if market_cap is not None:
        parts.append(
            '<li class="StockInfo_item__puHWj"><strong class="StockInfo_key__kY0sM">시총</strong>'
            f'<span class="StockInfo_value__S_nVM">{market_cap}</span></li>'
        )
    parts.append("</ul>")
    if ready:
        parts.append('<strong class="Title_title__x1">동일 업종 비교</strong>')
    parts.append("</body></html>")
    return "".join(parts)


class FakePages(PageFetcher):
    """PageFetcher serving canned HTML per stock code.

    A value that is an Exception instance is raised instead of returned.
    """

    def __init__(self, pages):
        self.pages = pages
        self.requested = []
        self.closed = False

    def render(self, url):
        code = url.rstrip("/").split("/")[-2]
        self.requested.append(code)
        page = self.pages.get(code)
        if page is None:
            raise FetchError(url, "page not found")
        if isinstance(page, Exception):
            raise page
        return page

    def close(self):
        self.closed = True


class RecordingSender:
    def __init__(self, fail_on=None):
        self.sent = []
        self.fail_on = fail_on

    def send(self, title, body, color):
        if self.fail_on is not None and len(self.sent) == self.fail_on:
            raise RuntimeError("channel down")
        self.sent.append((title, body, color))


