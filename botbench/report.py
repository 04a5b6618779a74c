from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .matrix import badge, row_spans
from .models import ExperimentResult, PivotMatrix
from .ranking import detector_table, format_percent, scraper_table

logger = logging.getLogger(__name__)


class ResultsWriter:
    """Writes one experiment's rows, rankings and matrix to results-YYYY-MM-DD-HH-MM/.

    The folder gets detector_rows.jsonl, scraper_rows.jsonl, summary.json, a
    copy of the config directory and finally a zip of itself.
    """

    def __init__(self, output_root: str = ".", config_dir: Optional[str] = None) -> None:
        self._output_root = output_root
        self._config_dir = config_dir

    def write(self, result: ExperimentResult, now: Optional[datetime] = None) -> str:
        stamp = (now or datetime.now()).strftime("%Y-%m-%d-%H-%M")
        folder = os.path.join(self._output_root, f"results-{stamp}")
        os.makedirs(folder, exist_ok=True)

        if self._config_dir and os.path.isdir(self._config_dir):
            shutil.copytree(self._config_dir, os.path.join(folder, "configs"), dirs_exist_ok=True)

        self._write_jsonl(os.path.join(folder, "detector_rows.jsonl"), (asdict(r) for r in result.detector_rows))
        self._write_jsonl(os.path.join(folder, "scraper_rows.jsonl"), (asdict(r) for r in result.scraper_rows))
        with open(os.path.join(folder, "summary.json"), "w", encoding="utf-8") as f:
            json.dump(summary_document(result), f, ensure_ascii=False, indent=2)

        archive = shutil.make_archive(os.path.join(self._output_root, os.path.basename(folder)), "zip", folder)
        shutil.move(archive, os.path.join(folder, os.path.basename(archive)))
        logger.info("Results available at: %s", os.path.abspath(folder))
        return folder

    @staticmethod
    def _write_jsonl(path: str, records: Iterable[Dict[str, Any]]) -> None:
        with open(path, "w", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record, ensure_ascii=False) + "\n")


def matrix_document(matrix: PivotMatrix) -> Dict[str, Any]:
    rows = []
    for row in matrix.rows:
        cells: List[Optional[Dict[str, Any]]] = []
        for cell in row.cells:
            if cell is None:
                cells.append(None)
                continue
            cells.append(
                {
                    "run_id": cell.run_id,
                    "accuracy": format_percent(cell.accuracy),
                    "badge": badge(cell),
                    "correct": cell.correctly_classified,
                    "incorrect": cell.incorrectly_classified,
                    "total": cell.total_requests,
                    "detailed_user_agents": list(cell.detailed_user_agents),
                }
            )
        rows.append({"scraper": row.scraper, "user_agent": row.user_agent, "delay_ms": row.delay_ms, "cells": cells})
    return {"columns": [list(c) for c in matrix.columns], "rows": rows}


def summary_document(result: ExperimentResult) -> Dict[str, Any]:
    return {
        "top_detectors": [asdict(s) for s in result.detector_summaries],
        "top_scrapers": [asdict(s) for s in result.scraper_summaries],
        "matrix": matrix_document(result.matrix),
        "completed_cells": len(result.detector_rows),
        "skipped_cells": list(result.skipped),
    }


def render_summary(result: ExperimentResult) -> str:
    """Plain-text summary: detector and scraper rankings followed by the accuracy matrix."""
    lines = ["Top detectors"]
    for d in detector_table(result.detector_summaries):
        lines.append(f"  {d['name']:<24} detected {d['scrapers_detected']:<28} accuracy {d['accuracy']}")
    lines.append("")
    lines.append("Top scrapers")
    for s in scraper_table(result.scraper_summaries):
        lines.append(f"  {s['name']:<24} avoided {s['detectors_avoided']:<28} coverage {s['page_coverage']}")
    lines.append("")
    lines.append("Detector accuracy matrix")
    lines.extend(render_matrix(result.matrix))
    if result.skipped:
        lines.append("")
        lines.append(f"Skipped cells: {', '.join(str(p) for p in result.skipped)}")
    return "\n".join(lines)


def render_matrix(matrix: PivotMatrix) -> List[str]:
    header = ["Scraper", "User-Agent", "Delay"] + [f"{det}/{site}" for det, site in matrix.columns]
    table = [header]
    for row, (scraper_span, ua_span) in zip(matrix.rows, row_spans(matrix)):
        cells = []
        for cell in row.cells:
            if cell is None:
                cells.append("-")
            else:
                cells.append(f"{cell.accuracy:.0f}% ({badge(cell)}, run {cell.run_id})")
        table.append(
            [
                row.scraper if scraper_span else "",
                row.user_agent if ua_span else "",
                f"{row.delay_ms} ms",
                *cells,
            ]
        )
    widths = [max(len(r[i]) for r in table) for i in range(len(header))]
    return ["  " + " | ".join(value.ljust(w) for value, w in zip(r, widths)) for r in table]
