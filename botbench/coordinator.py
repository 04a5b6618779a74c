from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from .aggregator import CellOutcome, ResultAggregator
from .errors import CellExecutionError
from .logging_utils import log_event
from .models import TestCell
from .registry import ActorRegistry
from .scrapers import BaseScraper
from .store import MetricsStore, RequestRecord, ScrapeRecord
from .websites import BaseWebsite

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_MS = 2000
DEFAULT_CELL_TIMEOUT_SECS = 300.0


@dataclass(frozen=True)
class RunSettings:
    settle_ms: int = DEFAULT_SETTLE_MS
    cell_timeout_secs: Optional[float] = DEFAULT_CELL_TIMEOUT_SECS
    debug: bool = False


class _CellScope:
    """Owns the website and scraper of one cell and closes both on exit."""

    def __init__(self, debug: bool) -> None:
        self._debug = debug
        self.website: Optional[BaseWebsite] = None
        self.scraper: Optional[BaseScraper] = None

    def __enter__(self) -> "_CellScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self.scraper is not None:
            self._release("scraper", self.scraper.close)
        if self.website is not None:
            self._release("website", lambda: self.website.close(self._debug))
        return False

    @staticmethod
    def _release(actor: str, close: Callable[[], None]) -> None:
        try:
            close()
        except Exception:  # noqa: BLE001
            logger.warning("Failed to close %s actor", actor, exc_info=True)


class RunCoordinator:
    """Runs test cells one at a time.

    Each cell gets a fresh website actor and a fresh scraper actor. Both are
    handed the cell's position as their run identifier, so the scraper-side and
    website-side metrics of a cell always share one identifier. The scraper is
    run on a single worker thread so a cell can be abandoned after
    cell_timeout_secs; the next cell queues behind it, never beside it.
    """

    def __init__(
        self,
        registry: ActorRegistry,
        settings: Optional[RunSettings] = None,
        scraper_store: Optional[MetricsStore[ScrapeRecord]] = None,
        website_store: Optional[MetricsStore[RequestRecord]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._registry = registry
        self._settings = settings or RunSettings()
        self._scraper_store = scraper_store if scraper_store is not None else MetricsStore()
        self._website_store = website_store if website_store is not None else MetricsStore()
        self._sleep = sleep
        self._executor: Optional[ThreadPoolExecutor] = None

    def start(self) -> None:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cell")

    def stop(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait, cancel_futures=False)
            self._executor = None

    def __enter__(self) -> "RunCoordinator":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def run(self, cells: Iterable[TestCell], aggregator: ResultAggregator) -> List[int]:
        """Run every cell, feeding completed ones to aggregator. Returns the skipped positions."""
        skipped: List[int] = []
        started = time.time()
        for cell in cells:
            log_event(
                logger,
                logging.INFO,
                "cell_started",
                progress=f"Running test {cell.position} of {cell.total} "
                f"({(cell.position - 1) / cell.total * 100:.2f}%)",
                **cell.label(),
            )
            try:
                outcome = self.run_cell(cell)
            except CellExecutionError as exc:
                log_event(logger, logging.WARNING, "cell_skipped", error=str(exc), **exc.context)
                skipped.append(cell.position)
                continue
            detector_row, scraper_row = aggregator.record(outcome)
            if self._settings.debug:
                log_event(logger, logging.DEBUG, "detector_results", **vars(detector_row))
                log_event(logger, logging.DEBUG, "scraper_results", **vars(scraper_row))

        log_event(
            logger,
            logging.INFO,
            "benchmark_completed",
            completed=len(aggregator),
            skipped=len(skipped),
            runtime_secs=round(time.time() - started, 3),
        )
        return skipped

    def run_cell(self, cell: TestCell) -> CellOutcome:
        debug = self._settings.debug
        settings = cell.scraper.settings.for_cell(cell.delay.delay_ms, cell.user_agent.user_agent)
        try:
            with _CellScope(debug) as scope:
                website = scope.website = self._registry.create_website(cell.website, store=self._website_store)
                website.run(cell.detector.name, cell.website.port, debug, run_id=cell.position)
                self._sleep(self._settings.settle_ms / 1000)

                if debug:
                    log_event(
                        logger,
                        logging.DEBUG,
                        "cell_config",
                        website=f"{cell.website.name} ({website.address})",
                        detector=cell.detector.name,
                        scraper=cell.scraper.name,
                        delay_ms=settings.delay_ms,
                        user_agent=settings.custom_user_agent or "Scraper default value",
                    )

                scraper = scope.scraper = self._registry.create_scraper(
                    cell.scraper.module,
                    settings,
                    website.address,
                    debug,
                    store=self._scraper_store,
                    run_id=cell.position,
                )
                self._run_to_completion(scraper)
                scraper_metrics = scraper.get_results()
                detector_metrics = website.get_db_info()
        except CellExecutionError as exc:
            exc.cell = exc.cell or cell
            raise
        except Exception as exc:  # noqa: BLE001
            raise CellExecutionError(f"{type(exc).__name__}: {exc}", cell) from exc

        if scraper_metrics.run_id != detector_metrics.run_id:
            raise CellExecutionError(
                f"run identifiers diverged: scraper={scraper_metrics.run_id} website={detector_metrics.run_id}",
                cell,
            )
        return CellOutcome(
            cell=cell,
            settings=settings,
            scraper_metrics=scraper_metrics,
            detector_metrics=detector_metrics,
        )

    def _run_to_completion(self, scraper: BaseScraper) -> None:
        if self._executor is None:
            raise RuntimeError("RunCoordinator.start() must be called before running cells")
        future = self._executor.submit(scraper.start)
        try:
            future.result(timeout=self._settings.cell_timeout_secs)
        except FuturesTimeoutError:
            future.cancel()
            scraper.close()
            raise CellExecutionError(f"scraper did not finish within {self._settings.cell_timeout_secs}s")
