from __future__ import annotations

import logging
from collections import deque
from typing import Any, Dict, List, Optional, Set
from urllib.parse import urldefrag, urljoin, urlsplit

import requests
from bs4 import BeautifulSoup

from .base import BaseScraper

logger = logging.getLogger(__name__)


class BasicScraper(BaseScraper):
    """Breadth-first crawler: fetch a page, keep the text of element_to_scrape, follow every link.

    Only links on the start URL's host are followed. A non-2xx response or a
    transport error is logged as a failed scrape and the crawl carries on.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._timeout = float(self.settings.extra.get("timeout", 20))
        self._session = self._open_session()
        self.request_count = 0
        self.scraped_urls: Set[str] = set()

    def _open_session(self) -> Any:
        return requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": self.custom_user_agent} if self.custom_user_agent else {}

    def fetch(self, url: str) -> Any:
        return self._session.get(url, headers=self._headers(), timeout=self._timeout)

    def run(self) -> None:
        self.crawl_and_scrape(self.url)

    def crawl_and_scrape(self, url: str) -> None:
        to_scrape = deque([url])
        host = urlsplit(url).netloc

        while to_scrape and self.request_count < self.max_requests_per_run and not self.stopped:
            current = to_scrape.popleft()
            if current in self.scraped_urls:
                continue

            try:
                response = self.fetch(current)
                status = int(response.status_code)
                if not 200 <= status < 300:
                    logger.debug("Failed to scrape %s: HTTP %s", current, status)
                    self.log_failed_scrape(current, status, f"HTTP_{status}")
                else:
                    soup = BeautifulSoup(response.text, "html.parser")
                    title = soup.title.get_text(strip=True) if soup.title else ""
                    self.log_successful_scrape(current, status, title, self.extract_content(soup))
                    to_scrape.extend(u for u in self.extract_new_urls(soup, current) if urlsplit(u).netloc == host)
                    self.apply_delay()
            except Exception as exc:  # noqa: BLE001
                logger.debug("Failed to scrape %s: %s", current, exc)
                self.log_failed_scrape(current, None, type(exc).__name__)

            self.request_count += 1
            self.scraped_urls.add(current)

    def extract_content(self, soup: BeautifulSoup) -> Optional[str]:
        text = " ".join(el.get_text(" ", strip=True) for el in soup.select(self.element_to_scrape)).strip()
        return text or None

    def extract_new_urls(self, soup: BeautifulSoup, current_url: str) -> List[str]:
        root = soup.body or soup
        urls = [urldefrag(urljoin(current_url, a["href"]))[0] for a in root.find_all("a", href=True)]
        if self.debug:
            logger.debug("Found %d new URLs on %s", len(urls), current_url)
        return urls

    def close(self) -> None:
        super().close()
        if self._session is not None:
            self._session.close()
