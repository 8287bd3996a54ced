"""
Quote page fetching.

``StockFetcher`` turns a stock code into a :class:`FetchResult`.  Rendering is
delegated to a :class:`PageFetcher` backend and field extraction to a
:class:`PageReader`, so both can be swapped in tests.  The production backend,
:class:`BrowserPageFetcher`, drives headless Chrome through Selenium because
the quote page is rendered client-side.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from .logging_utils import get_logger
from .models import FetchError, FetchResult, Missing, Snapshot
from .page_reader import HtmlPageReader, PageReader

log = get_logger("fetcher")

STOCK_URL_TEMPLATE = "https://m.stock.naver.com/domestic/stock/{code}/total"

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36"
)

# The peer-comparison section is rendered last; once its heading exists the
# price and consensus blocks are in the DOM too.
READY_MARKER_TEXT = "동일 업종 비교"
READY_MARKER_XPATH = f"//strong[contains(., '{READY_MARKER_TEXT}')]"

# Images, fonts and media are never needed for extraction.  Stylesheets stay
# enabled; blocking them stalls rendering.
BLOCKED_URL_PATTERNS = [
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.gif",
    "*.webp",
    "*.svg",
    "*.ico",
    "*.woff",
    "*.woff2",
    "*.ttf",
    "*.otf",
    "*.mp4",
    "*.webm",
    "*.mp3",
    "*.m3u8",
]


def stock_url(code: str) -> str:
    return STOCK_URL_TEMPLATE.format(code=code)


class PageFetcher:
    """Rendering backend: returns the HTML of ``url`` once it is ready."""

    def render(self, url: str) -> str:
        raise NotImplementedError

    def close(self) -> None:
        pass


def build_chrome_options(headless: bool = True) -> Options:
    opts = Options()
    if headless:
        opts.add_argument("--headless=new")
    opts.add_argument(f"--user-agent={USER_AGENT}")
    opts.add_argument("--no-sandbox")
    opts.add_argument("--disable-dev-shm-usage")
    opts.add_argument("--window-size=1280,2000")
    opts.add_experimental_option(
        "prefs",
        {
            "profile.managed_default_content_settings.images": 2,
            "profile.managed_default_content_settings.media_stream": 2,
        },
    )
    return opts


def _default_driver_factory(headless: bool, chromedriver_path: str = ""):
    opts = build_chrome_options(headless)
    if chromedriver_path:
        return webdriver.Chrome(
            service=Service(executable_path=chromedriver_path), options=opts
        )
    return webdriver.Chrome(options=opts)


class BrowserPageFetcher(PageFetcher):
    """Selenium Chrome backend.

    The driver is started lazily on the first :meth:`render` and reused for
    every page of the run; :meth:`close` quits it.
    """

    def __init__(
        self,
        headless: bool = True,
        timeout: float = 30.0,
        chromedriver_path: str = "",
        driver_factory: Optional[Callable[[], object]] = None,
    ):
        self.headless = headless
        self.timeout = timeout
        self._driver_factory = driver_factory or (
            lambda: _default_driver_factory(headless, chromedriver_path)
        )
        self._driver = None

    def _get_driver(self):
        if self._driver is None:
            log.info("browser_start headless=%s", self.headless)
            try:
                driver = self._driver_factory()
            except WebDriverException as exc:
                raise FetchError("browser", f"driver start failed: {exc.msg}") from exc
            try:
                driver.set_page_load_timeout(self.timeout)
                driver.execute_cdp_cmd("Network.enable", {})
                driver.execute_cdp_cmd(
                    "Network.setBlockedURLs", {"urls": BLOCKED_URL_PATTERNS}
                )
            except WebDriverException as exc:
                # Not every driver speaks CDP; blocking is an optimisation only
                log.debug("resource_blocking_unavailable err=%s", exc.msg)
            self._driver = driver
        return self._driver

    def render(self, url: str) -> str:
        driver = self._get_driver()
        try:
            driver.get(url)
            WebDriverWait(driver, self.timeout).until(
                EC.presence_of_element_located((By.XPATH, READY_MARKER_XPATH))
            )
            return driver.page_source
        except TimeoutException as exc:
            raise FetchError(url, f"not ready within {self.timeout:g}s") from exc
        except WebDriverException as exc:
            raise FetchError(url, f"{exc.__class__.__name__}: {exc.msg}") from exc

    def close(self) -> None:
        if self._driver is None:
            return
        try:
            self._driver.quit()
        except WebDriverException as exc:
            log.warning("browser_quit_failed err=%s", exc.msg)
        finally:
            self._driver = None
            log.info("browser_closed")


def _field(value: Optional[str]):
    return Missing.UNAVAILABLE if value is None else value


class StockFetcher:
    def __init__(
        self,
        pages: PageFetcher,
        reader_factory: Callable[[str], PageReader] = HtmlPageReader,
    ):
        self.pages = pages
        self.reader_factory = reader_factory

    def fetch(self, code: str) -> FetchResult:
        url = stock_url(code)
        t0 = time.time()
        try:
            html = self.pages.render(url)
        except FetchError as err:
            log.warning(
                "fetch_failed code=%s reason=%s took=%.2fs",
                code,
                err.reason,
                time.time() - t0,
            )
            return FetchResult(snapshot=Snapshot.failed(code), error=err)

        reader = self.reader_factory(html)
        snapshot = Snapshot(
            code=code,
            name=_field(reader.name()),
            current_price=_field(reader.current_price()),
            target_price=_field(reader.target_price()),
            market_cap=_field(reader.market_cap()),
        )
        log.debug("fetch_ok code=%s took=%.2fs", code, time.time() - t0)
        return FetchResult(snapshot=snapshot)

    def close(self) -> None:
        self.pages.close()

    def __enter__(self) -> "StockFetcher":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
