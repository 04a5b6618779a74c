"""
Detector accuracy matrix.

Rows are (scraper, user agent, delay) combinations, columns are the
(detector, website) pairs that were actually run. A cell holds the detector
row of the one run matching all five values, or None when that combination
was never run.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from .errors import AggregationError
from .models import DetectorRow, PivotMatrix, PivotRow

# Accuracy (percent) at or above which a run counts as a detection.
# Any non-zero detection passes; see DESIGN.md before raising it.
ACCURACY_BADGE_THRESHOLD = 1.0

_Key = Tuple[str, str, int, str, str]


def build_pivot_matrix(rows: Iterable[DetectorRow]) -> PivotMatrix:
    pivot: Dict[str, Dict[str, Dict[int, None]]] = {}
    detector_sites: Dict[str, Dict[str, None]] = {}
    index: Dict[_Key, DetectorRow] = {}

    for r in rows:
        pivot.setdefault(r.scraper, {}).setdefault(r.user_agent, {})[r.delay_ms] = None
        detector_sites.setdefault(r.detector, {})[r.website] = None
        key = (r.scraper, r.user_agent, r.delay_ms, r.detector, r.website)
        if key in index:
            raise AggregationError(f"combination {key} was recorded twice (runs {index[key].run_id} and {r.run_id})")
        index[key] = r

    columns = tuple((det, site) for det, sites in detector_sites.items() for site in sites)

    matrix_rows: List[PivotRow] = []
    for scraper, user_agents in pivot.items():
        for user_agent, delays in user_agents.items():
            for delay in sorted(delays, key=float):
                cells = tuple(index.get((scraper, user_agent, delay, det, site)) for det, site in columns)
                matrix_rows.append(PivotRow(scraper=scraper, user_agent=user_agent, delay_ms=delay, cells=cells))

    return PivotMatrix(columns=columns, rows=tuple(matrix_rows))


def row_spans(matrix: PivotMatrix) -> List[Tuple[Optional[int], Optional[int]]]:
    """Per matrix row, the (scraper, user agent) rowspan to render, or None
    where the label is already covered by an earlier row."""
    scraper_counts: Dict[str, int] = {}
    ua_counts: Dict[Tuple[str, str], int] = {}
    for row in matrix.rows:
        scraper_counts[row.scraper] = scraper_counts.get(row.scraper, 0) + 1
        ua_counts[(row.scraper, row.user_agent)] = ua_counts.get((row.scraper, row.user_agent), 0) + 1

    spans = []
    seen_scrapers = set()
    seen_uas = set()
    for row in matrix.rows:
        scraper_span = None
        if row.scraper not in seen_scrapers:
            seen_scrapers.add(row.scraper)
            scraper_span = scraper_counts[row.scraper]
        ua_span = None
        if (row.scraper, row.user_agent) not in seen_uas:
            seen_uas.add((row.scraper, row.user_agent))
            ua_span = ua_counts[(row.scraper, row.user_agent)]
        spans.append((scraper_span, ua_span))
    return spans


def badge(row: Optional[DetectorRow]) -> str:
    if row is None:
        return "absent"
    return "success" if row.accuracy >= ACCURACY_BADGE_THRESHOLD else "fail"
