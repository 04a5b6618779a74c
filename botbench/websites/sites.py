from __future__ import annotations

from flask import Flask, abort

from .base import BaseWebsite

LOREM = (
    "Bot detection is a balance between blocking automated traffic and letting people through.",
    "Each page on this site carries a short article that scrapers are asked to extract.",
    "Links between pages let a crawler discover the whole site from the front page.",
)


class BlogWebsite(BaseWebsite):
    """Front page listing posts; one page per post.

    The site has pages_to_scrape pages in total: the front page plus
    pages_to_scrape - 1 posts.
    """

    site_name = "Benchmark blog"

    @property
    def post_count(self) -> int:
        return max(self.definition.pages_to_scrape - 1, 0)

    def register_routes(self, app: Flask) -> None:
        def home():
            links = [(f"/posts/{i}", f"Post {i}") for i in range(1, self.post_count + 1)]
            return self.render_page(self.site_name, ["Latest posts"], links)

        def post(post_id: int):
            if not 1 <= post_id <= self.post_count:
                abort(404)
            paragraphs = [f"Post {post_id}.", *LOREM]
            return self.render_page(f"Post {post_id}", paragraphs, [("/", "Back to all posts")])

        app.add_url_rule("/", "home", home)
        app.add_url_rule("/posts/<int:post_id>", "post", post)


class SimplePageWebsite(BaseWebsite):
    """A single page with content and no outgoing links."""

    site_name = "Simple page"

    def register_routes(self, app: Flask) -> None:
        app.add_url_rule("/", "home", lambda: self.render_page(self.site_name, list(LOREM)))
