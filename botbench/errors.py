from __future__ import annotations

from typing import Any, Dict, Optional


class BenchmarkError(Exception):
    """Base class for all benchmark failures."""


class ConfigurationError(BenchmarkError):
    """The experiment cannot start: a dimension is empty or a config file is invalid."""


class CellExecutionError(BenchmarkError):
    """A single test cell failed; the experiment skips it and continues."""

    def __init__(self, message: str, cell: Optional[Any] = None) -> None:
        super().__init__(message)
        self.cell = cell

    @property
    def context(self) -> Dict[str, Any]:
        if self.cell is None:
            return {}
        return self.cell.label()


class AggregationError(BenchmarkError):
    """A rate could not be derived from the accumulated rows."""
