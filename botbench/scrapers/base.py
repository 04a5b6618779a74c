from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import List, Optional

from ..logging_utils import log_event
from ..models import ScraperMetrics, ScraperSettings
from ..store import MetricsStore, ScrapeRecord

logger = logging.getLogger(__name__)

# Shared by every scraper that is not handed a store explicitly.
default_store: MetricsStore[ScrapeRecord] = MetricsStore()


class BaseScraper(ABC):
    """Abstract base class for scraper actors.

    start() allocates a run identifier, runs the crawl implemented by run() and
    derives ScraperMetrics from the records the crawl logged for that run.
    Subclasses only implement run() and use log_successful_scrape(),
    log_failed_scrape() and apply_delay() while crawling.
    """

    def __init__(
        self,
        settings: ScraperSettings,
        url: str,
        debug: bool = False,
        store: Optional[MetricsStore[ScrapeRecord]] = None,
        run_id: Optional[int] = None,
    ) -> None:
        self.settings = settings
        self.url = url
        self.debug = debug
        self.run_id: Optional[int] = None
        self._store = store if store is not None else default_store
        self._requested_run_id = run_id
        self._stop = threading.Event()
        self._results: Optional[ScraperMetrics] = None

    @property
    def max_requests_per_run(self) -> int:
        return self.settings.max_requests_per_run

    @property
    def custom_user_agent(self) -> Optional[str]:
        return self.settings.custom_user_agent

    @property
    def element_to_scrape(self) -> str:
        return self.settings.element_to_scrape

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def start(self) -> None:
        self.run_id = self._store.begin_run(self._requested_run_id)
        started = time.time()
        self.run()
        finished = time.time()
        self._results = self._collect(started, finished)
        if self.debug:
            log_event(logger, logging.DEBUG, "scraper_results", scraper=type(self).__name__, **vars(self._results))

    @abstractmethod
    def run(self) -> None:
        """Crawl self.url, logging every page fetched under self.run_id."""

    def get_results(self) -> ScraperMetrics:
        if self._results is None:
            raise RuntimeError("get_results() called before start() completed")
        return self._results

    def close(self) -> None:
        """Stop any crawl in progress and release resources."""
        self._stop.set()

    def apply_delay(self) -> None:
        delay_ms = self.settings.delay_ms
        if delay_ms:
            if self.debug:
                logger.debug("Applying delay of %s ms", delay_ms)
            self._stop.wait(delay_ms / 1000)

    def log_successful_scrape(self, url: str, status: int, title: Optional[str], content: Optional[str]) -> None:
        self._store.append(self._current_run(), ScrapeRecord(url=url, status=status, title=title, content=content))

    def log_failed_scrape(self, url: str, status: Optional[int], error: Optional[str] = None) -> None:
        self._store.append(self._current_run(), ScrapeRecord(url=url, status=status, error=error))

    def _current_run(self) -> int:
        if self.run_id is None:
            raise RuntimeError("scrape logged outside of start()")
        return self.run_id

    def _collect(self, started: float, finished: float) -> ScraperMetrics:
        run_id = self._current_run()
        records: List[ScrapeRecord] = self._store.records(run_id)
        total = len(records)
        successful = sum(1 for r in records if r.status == 200)
        pages_scraped = sum(1 for r in records if r.content is not None)

        first_block = next((i for i, r in enumerate(records) if r.status != 200), None)
        successful_before = pages_before = time_until_block = None
        if first_block is not None:
            before = records[:first_block]
            successful_before = sum(1 for r in before if r.status == 200)
            pages_before = sum(1 for r in before if r.content is not None)
            time_until_block = round(records[first_block].timestamp - started, 3)

        return ScraperMetrics(
            run_id=run_id,
            url=self.url,
            total_requests=total,
            successful_requests=successful,
            blocked_requests=total - successful,
            pages_scraped=pages_scraped,
            pages_failed=total - pages_scraped,
            total_time=round(finished - started, 3),
            user_agent=self.custom_user_agent,
            successful_before_block=successful_before,
            pages_before_block=pages_before,
            time_until_first_block=time_until_block,
        )
