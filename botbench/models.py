from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


NO_USER_AGENT_LABEL = "None"


def _freeze(values: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(copy.deepcopy(dict(values or {})))


@dataclass(frozen=True)
class ScraperSettings:
    """Effective settings handed to a scraper actor.

    Instances are never mutated; for_cell() builds the per-cell value."""

    max_requests_per_run: int = 100
    element_to_scrape: str = "body"
    delay_ms: int = 0
    custom_user_agent: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", _freeze(self.extra))

    def for_cell(self, delay_ms: int, user_agent: Optional[str]) -> "ScraperSettings":
        """Return a copy with the cell's delay and user agent overlaid."""
        return replace(
            self,
            delay_ms=delay_ms,
            custom_user_agent=user_agent or None,
            extra=copy.deepcopy(dict(self.extra)),
        )


@dataclass(frozen=True)
class ScraperDefinition:
    name: str
    module: str
    settings: ScraperSettings = field(default_factory=ScraperSettings)
    active: bool = True


@dataclass(frozen=True)
class DelayDefinition:
    delay_ms: int
    active: bool = True


@dataclass(frozen=True)
class UserAgentDefinition:
    user_agent: Optional[str] = None
    active: bool = True

    @property
    def label(self) -> str:
        return self.user_agent or NO_USER_AGENT_LABEL


@dataclass(frozen=True)
class WebsiteDefinition:
    name: str
    port: int = 0
    pages_to_scrape: int = 0
    active: bool = True
    host: str = "127.0.0.1"


@dataclass(frozen=True)
class DetectorDefinition:
    name: str
    active: bool = True


@dataclass(frozen=True)
class ExperimentPlan:
    scrapers: Tuple[ScraperDefinition, ...]
    delays: Tuple[DelayDefinition, ...]
    user_agents: Tuple[UserAgentDefinition, ...]
    websites: Tuple[WebsiteDefinition, ...]
    detectors: Tuple[DetectorDefinition, ...]

    @property
    def total_cells(self) -> int:
        return (
            len(self.scrapers)
            * len(self.delays)
            * len(self.user_agents)
            * len(self.websites)
            * len(self.detectors)
        )


@dataclass(frozen=True)
class TestCell:
    """One scraper/delay/user-agent/website/detector combination."""

    __test__ = False  # keep pytest from collecting this as a test class

    scraper: ScraperDefinition
    delay: DelayDefinition
    user_agent: UserAgentDefinition
    website: WebsiteDefinition
    detector: DetectorDefinition
    position: int
    total: int

    def label(self) -> Dict[str, Any]:
        return {
            "position": self.position,
            "total": self.total,
            "scraper": self.scraper.name,
            "delay_ms": self.delay.delay_ms,
            "user_agent": self.user_agent.label,
            "website": self.website.name,
            "detector": self.detector.name,
        }


@dataclass(frozen=True)
class ScraperMetrics:
    run_id: int
    url: str
    total_requests: int
    successful_requests: int
    blocked_requests: int
    pages_scraped: int
    pages_failed: int
    total_time: float
    user_agent: Optional[str] = None
    successful_before_block: Optional[int] = None
    pages_before_block: Optional[int] = None
    time_until_first_block: Optional[float] = None


@dataclass(frozen=True)
class DetectorMetrics:
    run_id: int
    total_requests: int
    correctly_classified: int
    incorrectly_classified: int
    requests_without_honeypot: int
    user_agents: Tuple[str, ...] = ()

    @property
    def accuracy(self) -> float:
        """Percentage of requests flagged as bot; 0.0 when nothing was flagged."""
        if self.correctly_classified == 0 or self.total_requests == 0:
            return 0.0
        return self.correctly_classified / self.total_requests * 100


@dataclass(frozen=True)
class DetectorRow:
    detector: str
    website: str
    scraper: str
    delay_ms: int
    user_agent: str
    detailed_user_agents: Tuple[str, ...]
    run_id: int
    website_run_id: int
    total_requests: int
    correctly_classified: int
    incorrectly_classified: int
    accuracy: float
    requests_without_honeypot: int


@dataclass(frozen=True)
class ScraperRow:
    scraper: str
    delay_ms: int
    user_agent: str
    detailed_user_agents: Tuple[str, ...]
    website: str
    detector: str
    run_id: int
    website_run_id: int
    total_requests: int
    total_time: float
    pages_scraped: int
    pages_failed: int
    total_pages_to_scrape: int
    max_requests: int
    requests_without_honeypot: int


@dataclass(frozen=True)
class DetectorSummary:
    detector: str
    cell_count: int
    cells_detected: int
    total_requests: int
    total_correct: int
    total_incorrect: int
    accuracy: Optional[float]
    detection_rate: float
    avg_requests: float
    avg_correct: float
    avg_incorrect: float


@dataclass(frozen=True)
class ScraperSummary:
    scraper: str
    cell_count: int
    cells_undetected: int
    total_requests: int
    total_time: float
    total_pages_scraped: int
    total_pages_failed: int
    total_requests_without_honeypot: int
    total_pages_to_scrape: int
    success_rate: float
    coverage: Optional[float]
    request_success_rate: Optional[float]
    avg_requests: float
    avg_time: float
    avg_pages_scraped: float
    avg_pages_failed: float
    avg_pages_scraped_ratio: Optional[float]
    avg_pages_failed_ratio: Optional[float]


@dataclass(frozen=True)
class PivotRow:
    scraper: str
    user_agent: str
    delay_ms: int
    cells: Tuple[Optional[DetectorRow], ...]


@dataclass(frozen=True)
class PivotMatrix:
    columns: Tuple[Tuple[str, str], ...]
    rows: Tuple[PivotRow, ...]

    @property
    def detectors(self) -> Tuple[str, ...]:
        seen: Dict[str, None] = {}
        for detector, _ in self.columns:
            seen.setdefault(detector, None)
        return tuple(seen)

    def websites_for(self, detector: str) -> Tuple[str, ...]:
        return tuple(site for det, site in self.columns if det == detector)

    def cell(self, scraper: str, user_agent: str, delay_ms: int, detector: str, website: str) -> Optional[DetectorRow]:
        if (detector, website) not in self.columns:
            return None
        col = self.columns.index((detector, website))
        for row in self.rows:
            if (row.scraper, row.user_agent, row.delay_ms) == (scraper, user_agent, delay_ms):
                return row.cells[col]
        return None


@dataclass(frozen=True)
class ExperimentResult:
    detector_rows: Tuple[DetectorRow, ...]
    scraper_rows: Tuple[ScraperRow, ...]
    detector_summaries: Tuple[DetectorSummary, ...]
    scraper_summaries: Tuple[ScraperSummary, ...]
    matrix: PivotMatrix
    skipped: Tuple[int, ...] = ()
