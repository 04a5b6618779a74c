from __future__ import annotations

import logging
from types import SimpleNamespace
from typing import Any, Dict, Optional

from playwright.sync_api import Page, sync_playwright

from .basic import BasicScraper

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--disable-dev-shm-usage",
    "--no-sandbox",
]


class BrowserScraper(BasicScraper):
    """Crawls with a real headless Chromium driven by Playwright.

    Pages are loaded one at a time in a single tab, never retried, and the
    crawl follows the same-host links BasicScraper follows. The "headless"
    setting (default true) switches to a visible browser.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._page: Optional[Page] = None

    def _open_session(self) -> Any:
        return None

    def _context_options(self) -> Dict[str, Any]:
        return {"user_agent": self.custom_user_agent} if self.custom_user_agent else {}

    def run(self) -> None:
        playwright = sync_playwright().start()
        browser = context = None
        try:
            browser = playwright.chromium.launch(
                headless=bool(self.settings.extra.get("headless", True)),
                args=LAUNCH_ARGS,
            )
            context = browser.new_context(**self._context_options())
            context.set_default_timeout(self._timeout * 1000)
            self._page = context.new_page()
            self.crawl_and_scrape(self.url)
        finally:
            self._page = None
            if context is not None:
                context.close()
            if browser is not None:
                browser.close()
            playwright.stop()

    def fetch(self, url: str) -> Any:
        if self._page is None:
            raise RuntimeError("fetch() called outside of run()")
        response = self._page.goto(url, wait_until="domcontentloaded")
        if response is None:
            raise RuntimeError(f"no response for {url}")
        if self.debug:
            logger.debug("Loaded %s with status %s", url, response.status)
        return SimpleNamespace(status_code=response.status, text=self._page.content())
