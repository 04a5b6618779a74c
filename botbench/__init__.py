"""Bot-detection vs. scraper benchmark.

Runs every active combination of scraper, request delay, user agent, target
website and detection technique once, collects metrics on both the scraper side
and the website side, and ranks the detectors and scrapers.

Key modules:
    models          -- plan, cell, metrics, row, summary and matrix dataclasses
    planner         -- build_plan / iter_cells over the five dimensions
    coordinator     -- RunCoordinator, runs one cell at a time
    aggregator      -- ResultAggregator, detector-view and scraper-view rows
    ranking         -- per-detector / per-scraper summaries and ordering
    matrix          -- detector accuracy pivot matrix
    experiment      -- run_experiment entry point
    store           -- MetricsStore, run-keyed request logs
    registry        -- ActorRegistry for scraper and website implementations
    scrapers        -- BaseScraper, BasicScraper, ImpersonatingScraper
    websites        -- BaseWebsite, Flask target sites and bot detectors
    config          -- JSON configuration loading
    report          -- ResultsWriter and plain-text summary
"""

__version__ = "1.0.0"
