from __future__ import annotations

import itertools
from typing import Dict, Iterable, Iterator

from .errors import ConfigurationError
from .models import (
    DelayDefinition,
    DetectorDefinition,
    ExperimentPlan,
    ScraperDefinition,
    TestCell,
    UserAgentDefinition,
    WebsiteDefinition,
)


def build_plan(
    scrapers: Iterable[ScraperDefinition],
    delays: Iterable[DelayDefinition],
    user_agents: Iterable[UserAgentDefinition],
    websites: Iterable[WebsiteDefinition],
    detectors: Iterable[DetectorDefinition],
) -> ExperimentPlan:
    """Keep the active entries of each dimension and validate that none is empty."""
    plan = ExperimentPlan(
        scrapers=tuple(s for s in scrapers if s.active),
        delays=tuple(d for d in delays if d.active),
        user_agents=tuple(u for u in user_agents if u.active),
        websites=tuple(w for w in websites if w.active),
        detectors=tuple(d for d in detectors if d.active),
    )

    if not plan.scrapers:
        raise ConfigurationError(
            "No scrapers provided. Please define at least one active scraper in the scraper configuration."
        )
    if not plan.websites:
        raise ConfigurationError(
            "No websites provided. Please define at least one active website in the website configuration."
        )
    if not plan.detectors:
        raise ConfigurationError(
            "No detectors provided. Please define at least one active detector in the detector "
            "configuration (can be set to none for no detector)."
        )
    if not plan.delays:
        raise ConfigurationError(
            "No delays provided. Please define at least one active delay in the delay "
            "configuration (can be set to 0 for no delay)."
        )
    if not plan.user_agents:
        raise ConfigurationError(
            "No user agents provided. Please define at least one active user agent in the user agent "
            "configuration (can be set to none for no custom user agent)."
        )
    return plan


def iter_cells(plan: ExperimentPlan) -> Iterator[TestCell]:
    """Yield every combination, scraper outermost and detector innermost."""
    total = plan.total_cells
    product = itertools.product(plan.scrapers, plan.delays, plan.user_agents, plan.websites, plan.detectors)
    for position, (scraper, delay, user_agent, website, detector) in enumerate(product, start=1):
        yield TestCell(
            scraper=scraper,
            delay=delay,
            user_agent=user_agent,
            website=website,
            detector=detector,
            position=position,
            total=total,
        )


def describe_plan(plan: ExperimentPlan) -> Dict[str, int]:
    return {
        "scrapers": len(plan.scrapers),
        "delays": len(plan.delays),
        "user_agents": len(plan.user_agents),
        "websites": len(plan.websites),
        "detectors": len(plan.detectors),
        "tests": plan.total_cells,
    }
