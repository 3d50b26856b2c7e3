"""
app/scanning/navigator.py

Headless Chromium navigation through the search, advertiser and creative
pages of the transparency portal.
"""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from app.config import ScannerSettings
from app.domain.scan import DomainQuery, PageBundle, PageKind, RawPage
from app.scanning.errors import NavigationError
from app.scanning.logging_utils import log_event
from app.scanning.parsing import PageExtractor
from app.scanning.waiting import WaitOutcome, await_condition

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]
VIEWPORT = {"width": 1920, "height": 1080}

READY_PROBE_SCRIPT = """
() => document.querySelectorAll('creative-preview').length > 0
    || (document.body && document.body.innerText.includes('No ads match'))
    || document.querySelector('[data-advertiser-name]') !== null
"""


class PlaywrightNavigator:
    """
    One browser session per domain; up to three page visits.

    Only a failure on the search page aborts the scan. Detail page failures
    are logged and leave that page out of the bundle.
    """

    def __init__(
        self,
        settings: ScannerSettings,
        *,
        extractor: type[PageExtractor] = PageExtractor,
        playwright_factory: Callable[[], Any] = sync_playwright,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._extractor = extractor
        self._playwright_factory = playwright_factory
        self._clock = clock

    def search_url(self, query: DomainQuery) -> str:
        return f"{self._settings.base_url}/?region={query.region}&domain={quote(query.domain)}"

    def advertiser_url(self, advertiser_id: str, region: str) -> str:
        return f"{self._settings.base_url}/advertiser/{advertiser_id}?region={region}"

    def creative_url(self, advertiser_id: str, creative_id: str, region: str) -> str:
        return f"{self._settings.base_url}/advertiser/{advertiser_id}/creative/{creative_id}?region={region}"

    def scan(self, query: DomainQuery) -> PageBundle:
        """
        Visit the portal for ``query`` and return the captured pages.

        Raises NavigationError when the browser session cannot start or the
        search page cannot be loaded.
        """

        try:
            with self._playwright_factory() as playwright:
                browser = playwright.chromium.launch(
                    headless=self._settings.headless,
                    args=LAUNCH_ARGS,
                )
                try:
                    context = browser.new_context(
                        user_agent=self._settings.user_agent,
                        viewport=VIEWPORT,
                    )
                    page = context.new_page()
                    return self._visit_pages(page, query)
                finally:
                    browser.close()
        except PlaywrightError as exc:
            raise NavigationError(query.domain, f"browser session failed: {exc}") from exc

    def _visit_pages(self, page: Any, query: DomainQuery) -> PageBundle:
        search = self._load_search(page, query)
        extraction = self._extractor.extract_search(
            text=search.text,
            html=search.html,
            base_url=self._settings.base_url,
        )

        advertiser_page: RawPage | None = None
        creative_page: RawPage | None = None
        advertiser_id = extraction.advertiser.id if extraction.advertiser else None
        if advertiser_id:
            advertiser_page = self._load_detail(
                page,
                query=query,
                kind=PageKind.ADVERTISER,
                url=self.advertiser_url(advertiser_id, query.region),
            )
            first_creative = extraction.creatives[0] if extraction.creatives else None
            if first_creative is not None and first_creative.creative_id:
                creative_page = self._load_detail(
                    page,
                    query=query,
                    kind=PageKind.CREATIVE,
                    url=self.creative_url(advertiser_id, first_creative.creative_id, query.region),
                )

        return PageBundle(
            query=query,
            search=search,
            search_extraction=extraction,
            advertiser=advertiser_page,
            creative=creative_page,
            # Last page visited: the creative detail page when it was reached.
            screenshot_png_b64=self._capture_screenshot(page, query),
        )

    def _load_search(self, page: Any, query: DomainQuery) -> RawPage:
        url = self.search_url(query)
        try:
            page.goto(url, wait_until="networkidle", timeout=self._timeout_ms())
        except PlaywrightError as exc:
            raise NavigationError(query.domain, str(exc)) from exc

        outcome = await_condition(
            lambda: bool(page.evaluate(READY_PROBE_SCRIPT)),
            poll_interval=self._settings.wait_poll_seconds,
            deadline=self._clock() + self._settings.page_timeout_seconds,
            sleep=lambda seconds: page.wait_for_timeout(seconds * 1000),
            clock=self._clock,
        )
        timed_out = outcome is WaitOutcome.TIMED_OUT
        if timed_out:
            log_event(logger, logging.INFO, "search_wait_timed_out", domain=query.domain, url=url)

        try:
            page.wait_for_timeout(self._settings.settle_seconds * 1000)
            text = page.inner_text("body")
            html = page.content()
        except PlaywrightError as exc:
            raise NavigationError(query.domain, str(exc)) from exc

        log_event(
            logger,
            logging.INFO,
            "page_loaded",
            domain=query.domain,
            kind=PageKind.SEARCH,
            timed_out=timed_out,
        )
        return RawPage(kind=PageKind.SEARCH, url=url, text=text, html=html, timed_out=timed_out)

    def _load_detail(self, page: Any, *, query: DomainQuery, kind: str, url: str) -> RawPage | None:
        try:
            page.goto(url, wait_until="networkidle", timeout=self._timeout_ms())
            page.wait_for_timeout(self._settings.detail_settle_seconds * 1000)
            text = page.inner_text("body")
            html = page.content()
        except PlaywrightError as exc:
            log_event(
                logger,
                logging.WARNING,
                "supplementary_fetch_failed",
                domain=query.domain,
                kind=kind,
                url=url,
                error=str(exc),
            )
            return None

        log_event(logger, logging.INFO, "page_loaded", domain=query.domain, kind=kind)
        return RawPage(kind=kind, url=url, text=text, html=html)

    def _capture_screenshot(self, page: Any, query: DomainQuery) -> str | None:
        try:
            blob = page.screenshot(full_page=False, type="png")
        except PlaywrightError as exc:
            log_event(logger, logging.WARNING, "screenshot_failed", domain=query.domain, error=str(exc))
            return None
        return base64.b64encode(blob).decode("ascii")

    def _timeout_ms(self) -> float:
        return self._settings.page_timeout_seconds * 1000
