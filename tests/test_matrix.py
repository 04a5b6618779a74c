"""Tests for the detector accuracy matrix."""

import unittest

from botbench.errors import AggregationError
from botbench.matrix import ACCURACY_BADGE_THRESHOLD, badge, build_pivot_matrix, row_spans

from fakes import make_detector_row


class TestBuildPivotMatrix(unittest.TestCase):
    """Verify row and column ordering and cell lookup."""

    def test_delays_are_sorted_numerically(self):
        """Delays sort as numbers: 50 before 500 before 1000."""
        rows = [make_detector_row(delay_ms=d, run_id=i) for i, d in enumerate((1000, 50, 500), start=1)]
        matrix = build_pivot_matrix(rows)
        self.assertEqual([r.delay_ms for r in matrix.rows], [50, 500, 1000])

    def test_scrapers_and_user_agents_keep_first_seen_order(self):
        rows = [
            make_detector_row(scraper="zeta", user_agent="ua-b"),
            make_detector_row(scraper="zeta", user_agent="ua-a"),
            make_detector_row(scraper="alpha", user_agent="ua-c"),
        ]
        matrix = build_pivot_matrix(rows)
        self.assertEqual(
            [(r.scraper, r.user_agent) for r in matrix.rows],
            [("zeta", "ua-b"), ("zeta", "ua-a"), ("alpha", "ua-c")],
        )

    def test_columns_group_websites_by_detector(self):
        rows = [
            make_detector_row(detector="none", website="blog"),
            make_detector_row(detector="isbot", website="blog"),
            make_detector_row(detector="none", website="simple"),
        ]
        matrix = build_pivot_matrix(rows)
        self.assertEqual(matrix.columns, (("none", "blog"), ("none", "simple"), ("isbot", "blog")))
        self.assertEqual(matrix.detectors, ("none", "isbot"))
        self.assertEqual(matrix.websites_for("none"), ("blog", "simple"))

    def test_missing_combination_is_absent(self):
        """A combination that was never run is None, not a zero row."""
        rows = [
            make_detector_row(detector="none", delay_ms=0),
            make_detector_row(detector="isbot", delay_ms=500),
        ]
        matrix = build_pivot_matrix(rows)
        self.assertIsNone(matrix.cell("basic", "None", 0, "isbot", "blog-website"))
        self.assertIsNone(matrix.cell("basic", "None", 500, "none", "blog-website"))
        self.assertIs(matrix.cell("basic", "None", 0, "none", "blog-website"), rows[0])
        self.assertEqual(badge(matrix.rows[0].cells[1]), "absent")

    def test_duplicate_combination_raises(self):
        with self.assertRaises(AggregationError):
            build_pivot_matrix([make_detector_row(run_id=1), make_detector_row(run_id=2)])

    def test_empty_rows(self):
        matrix = build_pivot_matrix([])
        self.assertEqual(matrix.rows, ())
        self.assertEqual(matrix.columns, ())


class TestBadge(unittest.TestCase):
    """Verify the pass/fail badge threshold."""

    def test_threshold_is_one_percent(self):
        self.assertEqual(ACCURACY_BADGE_THRESHOLD, 1.0)

    def test_any_detection_above_threshold_succeeds(self):
        self.assertEqual(badge(make_detector_row(accuracy=1.0)), "success")
        self.assertEqual(badge(make_detector_row(accuracy=0.99)), "fail")
        self.assertEqual(badge(make_detector_row(accuracy=0.0)), "fail")


class TestRowSpans(unittest.TestCase):
    def test_spans_cover_grouped_rows(self):
        rows = [
            make_detector_row(user_agent="a", delay_ms=0),
            make_detector_row(user_agent="a", delay_ms=500),
            make_detector_row(user_agent="b", delay_ms=0),
        ]
        spans = row_spans(build_pivot_matrix(rows))
        self.assertEqual(spans, [(3, 2), (None, None), (None, 1)])


if __name__ == "__main__":
    unittest.main()
