from __future__ import annotations

import argparse
import logging
import sys

from botbench import __version__
from botbench.config import load_benchmarks
from botbench.coordinator import DEFAULT_CELL_TIMEOUT_SECS, DEFAULT_SETTLE_MS, RunSettings
from botbench.errors import ConfigurationError
from botbench.experiment import run_experiment
from botbench.logging_utils import configure_logging
from botbench.registry import default_registry
from botbench.report import ResultsWriter, render_summary

DEFAULT_CONFIG_DIR = "configs"

logger = logging.getLogger("botbench")


def run_benchmarks(
    config_dir: str,
    results_root: str,
    settle_ms: int,
    cell_timeout: float,
    debug: bool,
    write_results: bool,
) -> int:
    logger.info("Running application version %s", __version__)
    registry = default_registry()

    try:
        benchmarks = load_benchmarks(config_dir)
        for benchmark in benchmarks:
            plan = benchmark.plan()
            settings = RunSettings(
                settle_ms=settle_ms,
                cell_timeout_secs=cell_timeout if cell_timeout > 0 else None,
                debug=debug or benchmark.debug,
            )
            result = run_experiment(plan, registry, settings)

            print(render_summary(result))
            if write_results:
                folder = ResultsWriter(results_root, config_dir=config_dir).write(result)
                print(f"\nResults available at: {folder}\n")
    except ConfigurationError as exc:
        logger.error("Benchmark failed: %s", exc)
        return 1
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark bot detectors against scrapers")
    parser.add_argument("--config-dir", default=DEFAULT_CONFIG_DIR, help="Directory holding benchmark.json")
    parser.add_argument("--results", default=".", help="Directory the results-<date> folder is written to")
    parser.add_argument("--no-write", action="store_true", help="Only print the summary")

    parser.add_argument("--settle-ms", type=int, default=DEFAULT_SETTLE_MS, help="Wait after starting a website")
    parser.add_argument(
        "--cell-timeout",
        type=float,
        default=DEFAULT_CELL_TIMEOUT_SECS,
        help="Abandon a cell whose scraper runs longer than this many seconds (0 disables)",
    )

    parser.add_argument("--debug", action="store_true", help="Log per-cell configuration and results")
    parser.add_argument("--log-level", default="INFO", help="Logging level")

    args = parser.parse_args()
    configure_logging(args.log_level, debug=args.debug)

    sys.exit(
        run_benchmarks(
            config_dir=args.config_dir,
            results_root=args.results,
            settle_ms=args.settle_ms,
            cell_timeout=args.cell_timeout,
            debug=args.debug,
            write_results=not args.no_write,
        )
    )


if __name__ == "__main__":
    main()
