from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .aggregator import group_rows
from .errors import AggregationError
from .models import DetectorRow, DetectorSummary, ScraperRow, ScraperSummary

logger = logging.getLogger(__name__)


def percentage(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100; raises AggregationError when denominator is 0."""
    if not denominator:
        raise AggregationError(f"cannot compute {numerator}/{denominator} as a percentage")
    return numerator / denominator * 100


def safe_percentage(numerator: float, denominator: float, what: str, group: str) -> Optional[float]:
    """percentage() that reports an undefined rate as None instead of raising."""
    try:
        return percentage(numerator, denominator)
    except AggregationError:
        logger.debug("%s is undefined for %s: denominator is 0", what, group)
        return None


def format_percent(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    return f"{value:.2f}%"


def _mean(total: float, count: int) -> float:
    return total / count if count else 0.0


def summarize_detectors(rows: Iterable[DetectorRow]) -> List[DetectorSummary]:
    summaries = []
    for name, group in group_rows(rows, "detector").items():
        count = len(group)
        total = sum(r.total_requests for r in group)
        correct = sum(r.correctly_classified for r in group)
        incorrect = sum(r.incorrectly_classified for r in group)
        detected = sum(1 for r in group if r.correctly_classified > 0)
        summaries.append(
            DetectorSummary(
                detector=name,
                cell_count=count,
                cells_detected=detected,
                total_requests=total,
                total_correct=correct,
                total_incorrect=incorrect,
                accuracy=safe_percentage(correct, total, "accuracy", name),
                detection_rate=percentage(detected, count),
                avg_requests=_mean(total, count),
                avg_correct=_mean(correct, count),
                avg_incorrect=_mean(incorrect, count),
            )
        )
    return rank_detectors(summaries)


def summarize_scrapers(rows: Iterable[ScraperRow]) -> List[ScraperSummary]:
    summaries = []
    for name, group in group_rows(rows, "scraper").items():
        count = len(group)
        total = sum(r.total_requests for r in group)
        total_time = sum(r.total_time for r in group)
        scraped = sum(r.pages_scraped for r in group)
        failed = sum(r.pages_failed for r in group)
        without_honeypot = sum(r.requests_without_honeypot for r in group)
        to_scrape = sum(r.total_pages_to_scrape for r in group)
        undetected = sum(1 for r in group if r.pages_failed == 0)
        avg_requests = _mean(total, count)
        avg_scraped = _mean(scraped, count)
        avg_failed = _mean(failed, count)
        summaries.append(
            ScraperSummary(
                scraper=name,
                cell_count=count,
                cells_undetected=undetected,
                total_requests=total,
                total_time=total_time,
                total_pages_scraped=scraped,
                total_pages_failed=failed,
                total_requests_without_honeypot=without_honeypot,
                total_pages_to_scrape=to_scrape,
                success_rate=percentage(undetected, count),
                coverage=safe_percentage(without_honeypot, to_scrape, "coverage", name),
                request_success_rate=safe_percentage(scraped, total, "request success rate", name),
                avg_requests=avg_requests,
                avg_time=_mean(total_time, count),
                avg_pages_scraped=avg_scraped,
                avg_pages_failed=avg_failed,
                avg_pages_scraped_ratio=safe_percentage(avg_scraped, avg_requests, "pages scraped ratio", name),
                avg_pages_failed_ratio=safe_percentage(avg_failed, avg_requests, "pages failed ratio", name),
            )
        )
    return rank_scrapers(summaries)


def rank_detectors(summaries: Sequence[DetectorSummary]) -> List[DetectorSummary]:
    """Best detection rate first; accuracy breaks ties."""
    return sorted(summaries, key=lambda s: (s.detection_rate, s.accuracy or 0.0), reverse=True)


def rank_scrapers(summaries: Sequence[ScraperSummary]) -> List[ScraperSummary]:
    """Best success rate first; coverage breaks ties."""
    return sorted(summaries, key=lambda s: (s.success_rate, s.coverage or 0.0), reverse=True)


def detector_table(summaries: Iterable[DetectorSummary]) -> List[Dict[str, str]]:
    return [
        {
            "name": s.detector,
            "scrapers_detected": f"{format_percent(s.detection_rate)} ({s.cells_detected}/{s.cell_count} runs)",
            "accuracy": f"{format_percent(s.accuracy)} ({s.total_correct}/{s.total_requests} requests)",
        }
        for s in summaries
    ]


def scraper_table(summaries: Iterable[ScraperSummary]) -> List[Dict[str, str]]:
    return [
        {
            "name": s.scraper,
            "detectors_avoided": f"{format_percent(s.success_rate)} ({s.cells_undetected}/{s.cell_count} runs)",
            "page_coverage": (
                f"{format_percent(s.coverage)} "
                f"({s.total_requests_without_honeypot}/{s.total_pages_to_scrape} pages, excluding honeypot pages)"
            ),
        }
        for s in summaries
    ]
