from __future__ import annotations

import logging
from typing import Optional

from .aggregator import ResultAggregator
from .coordinator import RunCoordinator, RunSettings
from .errors import ConfigurationError
from .logging_utils import log_event
from .matrix import build_pivot_matrix
from .models import ExperimentPlan, ExperimentResult
from .planner import build_plan, describe_plan, iter_cells
from .ranking import summarize_detectors, summarize_scrapers
from .registry import ActorRegistry, default_registry
from .websites import DETECTORS

logger = logging.getLogger(__name__)


def validate_plan(plan: ExperimentPlan, registry: ActorRegistry) -> ExperimentPlan:
    """Re-check the dimensions and that every scraper module, website and detector resolves."""
    plan = build_plan(plan.scrapers, plan.delays, plan.user_agents, plan.websites, plan.detectors)
    for scraper in plan.scrapers:
        if not registry.has_scraper(scraper.module):
            raise ConfigurationError(f"Scraper '{scraper.name}' uses unknown module '{scraper.module}'.")
    for website in plan.websites:
        if not registry.has_website(website.name):
            raise ConfigurationError(f"Unknown website '{website.name}'.")
    for detector in plan.detectors:
        if detector.name not in DETECTORS:
            allowed = ", ".join(sorted(DETECTORS))
            raise ConfigurationError(f"Unknown detector '{detector.name}'. Allowed detectors: {allowed}.")
    return plan


def run_experiment(
    plan: ExperimentPlan,
    registry: Optional[ActorRegistry] = None,
    settings: Optional[RunSettings] = None,
    coordinator: Optional[RunCoordinator] = None,
) -> ExperimentResult:
    """Run every cell of plan and build the rankings and the accuracy matrix.

    Cells that fail are skipped; the result is built from the cells that
    completed.
    """
    registry = registry or default_registry()
    plan = validate_plan(plan, registry)
    log_event(logger, logging.INFO, "benchmark_started", **describe_plan(plan))

    aggregator = ResultAggregator()
    with coordinator or RunCoordinator(registry, settings) as runner:
        skipped = runner.run(iter_cells(plan), aggregator)

    detector_rows = aggregator.detector_rows
    scraper_rows = aggregator.scraper_rows
    return ExperimentResult(
        detector_rows=detector_rows,
        scraper_rows=scraper_rows,
        detector_summaries=tuple(summarize_detectors(detector_rows)),
        scraper_summaries=tuple(summarize_scrapers(scraper_rows)),
        matrix=build_pivot_matrix(detector_rows),
        skipped=tuple(skipped),
    )
