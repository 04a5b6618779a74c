from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from .models import (
    DetectorMetrics,
    DetectorRow,
    ScraperMetrics,
    ScraperRow,
    ScraperSettings,
    TestCell,
)


@dataclass(frozen=True)
class CellOutcome:
    """Everything collected from one completed cell."""

    cell: TestCell
    settings: ScraperSettings
    scraper_metrics: ScraperMetrics
    detector_metrics: DetectorMetrics


def build_rows(outcome: CellOutcome) -> Tuple[DetectorRow, ScraperRow]:
    """Flatten one outcome into its detector view and scraper view."""
    cell = outcome.cell
    sm = outcome.scraper_metrics
    dm = outcome.detector_metrics
    user_agent = outcome.settings.custom_user_agent or cell.user_agent.label

    detector_row = DetectorRow(
        detector=cell.detector.name,
        website=cell.website.name,
        scraper=cell.scraper.name,
        delay_ms=cell.delay.delay_ms,
        user_agent=user_agent,
        detailed_user_agents=dm.user_agents,
        run_id=sm.run_id,
        website_run_id=dm.run_id,
        total_requests=dm.total_requests,
        correctly_classified=dm.correctly_classified,
        incorrectly_classified=dm.incorrectly_classified,
        accuracy=dm.accuracy,
        requests_without_honeypot=dm.requests_without_honeypot,
    )
    scraper_row = ScraperRow(
        scraper=cell.scraper.name,
        delay_ms=cell.delay.delay_ms,
        user_agent=user_agent,
        detailed_user_agents=dm.user_agents,
        website=cell.website.name,
        detector=cell.detector.name,
        run_id=sm.run_id,
        website_run_id=dm.run_id,
        total_requests=sm.total_requests,
        total_time=sm.total_time,
        pages_scraped=sm.pages_scraped,
        pages_failed=sm.pages_failed,
        total_pages_to_scrape=cell.website.pages_to_scrape,
        max_requests=outcome.settings.max_requests_per_run,
        requests_without_honeypot=dm.requests_without_honeypot,
    )
    return detector_row, scraper_row


class ResultAggregator:
    """Accumulates the two row views in completion order. Rows are never removed."""

    def __init__(self) -> None:
        self._detector_rows: List[DetectorRow] = []
        self._scraper_rows: List[ScraperRow] = []

    def add(self, detector_row: DetectorRow, scraper_row: ScraperRow) -> None:
        self._detector_rows.append(detector_row)
        self._scraper_rows.append(scraper_row)

    def record(self, outcome: CellOutcome) -> Tuple[DetectorRow, ScraperRow]:
        rows = build_rows(outcome)
        self.add(*rows)
        return rows

    @property
    def detector_rows(self) -> Tuple[DetectorRow, ...]:
        return tuple(self._detector_rows)

    @property
    def scraper_rows(self) -> Tuple[ScraperRow, ...]:
        return tuple(self._scraper_rows)

    def __len__(self) -> int:
        return len(self._detector_rows)


def group_rows(rows, key: str) -> Dict[str, list]:
    """Group rows by attribute, groups and members in first-seen order."""
    grouped: Dict[str, list] = {}
    for row in rows:
        grouped.setdefault(getattr(row, key), []).append(row)
    return grouped
