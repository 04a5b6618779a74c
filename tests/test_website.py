"""Tests for the website actors, exercised through Flask's test client."""

import unittest

import requests
from bs4 import BeautifulSoup

from botbench.models import WebsiteDefinition
from botbench.store import MetricsStore
from botbench.websites import BlogWebsite, SimplePageWebsite
from botbench.websites.base import NO_USER_AGENT
from botbench.websites.detectors import HONEYPOT_PATH

BROWSER = {"User-Agent": "Mozilla/5.0 Chrome/120.0", "Accept-Language": "en-US"}
CHROME_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"


def _blog(detector="none", pages=4, run_id=None):
    site = BlogWebsite(WebsiteDefinition(name="blog-website", pages_to_scrape=pages), store=MetricsStore())
    site.prepare(detector, run_id)
    return site, site.app.test_client()


class TestBlogWebsite(unittest.TestCase):
    """Verify the pages the blog serves."""

    def test_front_page_links_every_post(self):
        _, client = _blog(pages=4)
        soup = BeautifulSoup(client.get("/", headers=BROWSER).get_data(as_text=True), "html.parser")
        hrefs = [a["href"] for a in soup.select("main a")]
        self.assertEqual(hrefs, ["/posts/1", "/posts/2", "/posts/3"])
        self.assertIsNotNone(soup.select_one("article.content"))

    def test_post_out_of_range_is_404(self):
        _, client = _blog(pages=2)
        self.assertEqual(client.get("/posts/1", headers=BROWSER).status_code, 200)
        self.assertEqual(client.get("/posts/2", headers=BROWSER).status_code, 404)

    def test_honeypot_link_only_with_honeypot_detector(self):
        for detector, expected in (("none", False), ("simpleHoneyPot", True)):
            with self.subTest(detector=detector):
                _, client = _blog(detector)
                html = client.get("/", headers=BROWSER).get_data(as_text=True)
                self.assertEqual(f'href="{HONEYPOT_PATH}"' in html, expected)

    def test_robots_txt_only_with_robots_detector(self):
        _, client = _blog("robotstxt")
        self.assertIn("Disallow", client.get("/robots.txt").get_data(as_text=True))
        _, client = _blog("none")
        self.assertEqual(client.get("/robots.txt").status_code, 404)


class TestDetection(unittest.TestCase):
    """Verify requests are screened and logged."""

    def test_bot_is_denied(self):
        _, client = _blog("isbot")
        response = client.get("/", headers={"User-Agent": "python-requests/2.31.0"})
        self.assertEqual(response.status_code, 403)
        self.assertIn("Bot detected", response.get_data(as_text=True))

    def test_browser_is_served(self):
        _, client = _blog("isbot")
        self.assertEqual(client.get("/", headers=BROWSER).status_code, 200)

    def test_honeypot_blocks_following_requests(self):
        _, client = _blog("simpleHoneyPot")
        self.assertEqual(client.get(HONEYPOT_PATH, headers=BROWSER).status_code, 403)
        self.assertEqual(client.get("/", headers=BROWSER).status_code, 403)

    def test_crawler_signatures_pass_browser_user_agent(self):
        """A plain HTTP client sending a browser User-Agent and no Accept-Language is served."""
        _, client = _blog("crawlerDetector")
        self.assertEqual(client.get("/", headers={"User-Agent": CHROME_UA}).status_code, 200)
        googlebot = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
        self.assertEqual(client.get("/", headers={"User-Agent": googlebot}).status_code, 403)


class TestGetDbInfo(unittest.TestCase):
    """Verify metrics derived from the request log."""

    def test_counts_classifications(self):
        site, client = _blog("isbot")
        client.get("/", headers=BROWSER)
        client.get("/posts/1", headers={"User-Agent": "curl/8.4.0"})
        client.get("/posts/2", headers={"User-Agent": "curl/8.4.0"})
        info = site.get_db_info()
        self.assertEqual(info.run_id, site.run_id)
        self.assertEqual(info.total_requests, 3)
        self.assertEqual(info.correctly_classified, 2)
        self.assertEqual(info.incorrectly_classified, 1)
        self.assertEqual(info.user_agents, (BROWSER["User-Agent"], "curl/8.4.0"))

    def test_honeypot_requests_are_excluded(self):
        site, client = _blog("simpleHoneyPot")
        client.get("/", headers=BROWSER)
        client.get(HONEYPOT_PATH, headers=BROWSER)
        self.assertEqual(site.get_db_info().requests_without_honeypot, 1)

    def test_missing_user_agent_placeholder(self):
        site, client = _blog()
        client.get("/", environ_base={"HTTP_USER_AGENT": ""})
        self.assertEqual(site.get_db_info().user_agents, (NO_USER_AGENT,))

    def test_runs_are_separate(self):
        store = MetricsStore()
        first = SimplePageWebsite(WebsiteDefinition(name="simple"), store=store)
        first.prepare("none")
        first.app.test_client().get("/", headers=BROWSER)
        second = SimplePageWebsite(WebsiteDefinition(name="simple"), store=store)
        second.prepare("none")
        self.assertEqual(second.run_id, first.run_id + 1)
        self.assertEqual(second.get_db_info().total_requests, 0)

    def test_requires_run(self):
        site = SimplePageWebsite(WebsiteDefinition(name="simple"), store=MetricsStore())
        with self.assertRaises(RuntimeError):
            site.get_db_info()

    def test_create_app_requires_prepare(self):
        site = SimplePageWebsite(WebsiteDefinition(name="simple"), store=MetricsStore())
        with self.assertRaises(RuntimeError):
            site.create_app()


class TestServing(unittest.TestCase):
    def test_run_serves_on_ephemeral_port(self):
        site = SimplePageWebsite(WebsiteDefinition(name="simple"), store=MetricsStore())
        site.run("none", port=0)
        try:
            response = requests.get(site.address, headers=BROWSER, timeout=5)
            self.assertEqual(response.status_code, 200)
        finally:
            site.close()
        self.assertEqual(site.get_db_info().total_requests, 1)


if __name__ == "__main__":
    unittest.main()
