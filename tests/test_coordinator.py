"""Tests for the RunCoordinator class."""

import time
import unittest

from botbench.aggregator import ResultAggregator
from botbench.coordinator import RunCoordinator, RunSettings
from botbench.errors import CellExecutionError
from botbench.planner import build_plan, iter_cells
from botbench.scrapers import BaseScraper
from botbench.store import MetricsStore

from fakes import InProcessScraper, InProcessSimplePage, make_dimensions, make_registry, make_scraper, make_website


def _cells(**dims):
    plan = build_plan(scrapers=[make_scraper()], websites=[make_website()], **make_dimensions(**dims))
    return list(iter_cells(plan))


def _coordinator(registry=None, **kwargs):
    settings = RunSettings(settle_ms=0, cell_timeout_secs=kwargs.pop("cell_timeout_secs", 10))
    return RunCoordinator(registry or make_registry(), settings, **kwargs)


class SlowScraper(BaseScraper):
    """Never finishes on its own; returns once close() is called."""

    def run(self):
        self._stop.wait(10)


class StubbornScraper(BaseScraper):
    """Ignores close() and keeps the worker busy for a second."""

    started = []

    def run(self):
        StubbornScraper.started.append(self.settings)
        time.sleep(1.0)


class BrokenScraper(BaseScraper):
    def run(self):
        raise ConnectionError("network down")


class BrokenWebsite(InProcessSimplePage):
    instances = []

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.closed = False
        BrokenWebsite.instances.append(self)

    def run(self, detector, port=None, debug=False, run_id=None):
        raise OSError("address already in use")

    def close(self, debug=False):
        self.closed = True


class TestRunCell(unittest.TestCase):
    """Verify one cell end to end with in-process actors."""

    def test_run_identifiers_match_cell_position(self):
        cells = _cells(detectors=("none", "isbot"))
        with _coordinator() as coordinator:
            outcomes = [coordinator.run_cell(cell) for cell in cells]
        for cell, outcome in zip(cells, outcomes):
            self.assertEqual(outcome.scraper_metrics.run_id, cell.position)
            self.assertEqual(outcome.detector_metrics.run_id, cell.position)

    def test_metrics_are_collected_from_both_sides(self):
        (cell,) = _cells()
        with _coordinator() as coordinator:
            outcome = coordinator.run_cell(cell)
        self.assertEqual(outcome.scraper_metrics.total_requests, outcome.detector_metrics.total_requests)
        self.assertEqual(outcome.scraper_metrics.pages_failed, 0)
        self.assertEqual(outcome.detector_metrics.correctly_classified, 0)

    def test_diverged_run_identifiers_fail_the_cell(self):
        """A scraper store already ahead of the website store must be caught."""
        store = MetricsStore()
        store.begin_run(10)
        (cell,) = _cells()
        with _coordinator(scraper_store=store) as coordinator:
            with self.assertRaises(CellExecutionError) as ctx:
                coordinator.run_cell(cell)
        self.assertIn("diverged", str(ctx.exception))

    def test_website_is_closed_after_the_cell(self):
        (cell,) = _cells()
        created = []
        registry = make_registry()

        def website_factory(definition, store=None):
            created.append(InProcessSimplePage(definition, store=store))
            return created[-1]

        registry.register_website("simple-page-website", website_factory)
        with _coordinator(registry) as coordinator:
            coordinator.run_cell(cell)
        self.assertTrue(created[0].closed)

    def test_requires_start(self):
        (cell,) = _cells()
        with self.assertRaises(CellExecutionError):
            _coordinator().run_cell(cell)


class TestSettingsIsolation(unittest.TestCase):
    """A cell's user agent must never leak into the next cell."""

    def test_user_agent_is_cleared_for_next_cell(self):
        captured = []
        registry = make_registry()

        def scraper_factory(settings, url, debug, store=None, run_id=None):
            captured.append(settings)
            return InProcessScraper(settings, url, debug, store=store, run_id=run_id)

        registry.register_scraper("in-process", scraper_factory)
        cells = _cells(user_agents=("agent/1.0", None), delays=(0,))

        with _coordinator(registry) as coordinator:
            for cell in cells:
                coordinator.run_cell(cell)

        self.assertEqual(captured[0].custom_user_agent, "agent/1.0")
        self.assertIsNone(captured[1].custom_user_agent)
        self.assertIsNone(cells[0].scraper.settings.custom_user_agent)
        self.assertEqual(cells[0].scraper.settings.delay_ms, 0)


class TestFailureHandling(unittest.TestCase):
    """Verify failing cells are skipped and the run continues."""

    def test_website_failure_skips_cell(self):
        BrokenWebsite.instances = []
        registry = make_registry()
        registry.register_website("simple-page-website", BrokenWebsite)
        aggregator = ResultAggregator()
        with _coordinator(registry) as coordinator:
            skipped = coordinator.run(_cells(detectors=("none", "isbot")), aggregator)
        self.assertEqual(skipped, [1, 2])
        self.assertEqual(len(aggregator), 0)
        self.assertTrue(all(site.closed for site in BrokenWebsite.instances))

    def test_scraper_failure_skips_only_that_cell(self):
        registry = make_registry()
        registry.register_scraper("broken", BrokenScraper)
        plan = build_plan(
            scrapers=[make_scraper("broken", module="broken"), make_scraper("ok")],
            websites=[make_website()],
            **make_dimensions(),
        )
        aggregator = ResultAggregator()
        with _coordinator(registry) as coordinator:
            skipped = coordinator.run(iter_cells(plan), aggregator)
        self.assertEqual(skipped, [1])
        self.assertEqual([r.scraper for r in aggregator.scraper_rows], ["ok"])
        self.assertEqual(aggregator.scraper_rows[0].run_id, 2)

    def test_error_carries_cell(self):
        registry = make_registry()
        registry.register_scraper("in-process", BrokenScraper)
        (cell,) = _cells()
        with _coordinator(registry) as coordinator:
            with self.assertRaises(CellExecutionError) as ctx:
                coordinator.run_cell(cell)
        self.assertIs(ctx.exception.cell, cell)
        self.assertEqual(ctx.exception.context["scraper"], "basic")
        self.assertIsInstance(ctx.exception.__cause__, ConnectionError)

    def test_hung_scraper_times_out(self):
        registry = make_registry()
        registry.register_scraper("slow", SlowScraper)
        plan = build_plan(
            scrapers=[make_scraper("slow", module="slow"), make_scraper("ok")],
            websites=[make_website()],
            **make_dimensions(),
        )
        aggregator = ResultAggregator()
        with _coordinator(registry, cell_timeout_secs=0.2) as coordinator:
            skipped = coordinator.run(iter_cells(plan), aggregator)
        self.assertEqual(skipped, [1])
        self.assertEqual(len(aggregator), 1)

    def test_timed_out_cell_never_starts_later(self):
        """A cell queued behind a hung scraper is dropped, not run after its timeout."""
        StubbornScraper.started = []
        registry = make_registry()
        registry.register_scraper("stubborn", StubbornScraper)
        plan = build_plan(
            scrapers=[make_scraper("first", module="stubborn", max_requests_per_run=1),
                      make_scraper("second", module="stubborn", max_requests_per_run=2)],
            websites=[make_website()],
            **make_dimensions(),
        )
        with _coordinator(registry, cell_timeout_secs=0.2) as coordinator:
            skipped = coordinator.run(iter_cells(plan), ResultAggregator())
        self.assertEqual(skipped, [1, 2])
        self.assertEqual([s.max_requests_per_run for s in StubbornScraper.started], [1])


class TestSettleDelay(unittest.TestCase):
    def test_settle_delay_is_applied_per_cell(self):
        waits = []
        coordinator = RunCoordinator(make_registry(), RunSettings(settle_ms=2000), sleep=waits.append)
        with coordinator:
            coordinator.run(_cells(detectors=("none", "isbot")), ResultAggregator())
        self.assertEqual(waits, [2.0, 2.0])


if __name__ == "__main__":
    unittest.main()
