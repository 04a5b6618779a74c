from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from threading import Lock
from typing import Dict, Generic, Iterable, List, Optional, TypeVar


@dataclass(frozen=True)
class ScrapeRecord:
    """One page fetch as seen by the scraper."""

    url: str
    status: Optional[int]
    title: Optional[str] = None
    content: Optional[str] = None
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class RequestRecord:
    """One incoming request as seen by the website."""

    method: str
    url: str
    ip: Optional[str]
    user_agent: Optional[str]
    is_bot: bool
    timestamp: float = field(default_factory=time.time)


R = TypeVar("R")


class MetricsStore(Generic[R]):
    """Thread-safe append-only log of records grouped by run identifier.

    A run identifier is allocated with begin_run() before any record of the run
    is appended. Identifiers only ever increase."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._runs: Dict[int, List[R]] = {}

    def begin_run(self, run_id: Optional[int] = None) -> int:
        """Allocate a run identifier.

        An explicit run_id is used when it is greater than every identifier
        already allocated, otherwise the store falls back to 1 + max."""
        with self._lock:
            current = max(self._runs, default=0)
            if run_id is None or run_id <= current:
                run_id = current + 1
            self._runs[run_id] = []
            return run_id

    def append(self, run_id: int, record: R) -> None:
        with self._lock:
            if run_id not in self._runs:
                raise KeyError(f"run_id {run_id} was never started")
            self._runs[run_id].append(record)

    def records(self, run_id: int) -> List[R]:
        with self._lock:
            return list(self._runs.get(run_id, ()))

    def export_json(self) -> Iterable[Dict]:
        """Yield every record as a flat dictionary tagged with its run_id."""
        with self._lock:
            snapshot = {run_id: list(records) for run_id, records in self._runs.items()}
        for run_id in sorted(snapshot):
            for record in snapshot[run_id]:
                yield {"run_id": run_id, **asdict(record)}
