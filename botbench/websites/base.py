from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

from flask import Flask, Response, g, render_template_string, request
from werkzeug.serving import BaseWSGIServer, make_server

from ..logging_utils import log_event
from ..models import DetectorMetrics, WebsiteDefinition
from ..store import MetricsStore, RequestRecord
from .detectors import HONEYPOT_PATH, BotDetector, RequestInfo, create_detector

logger = logging.getLogger(__name__)

NO_USER_AGENT = "(error: no user-agent)"

# Shared by every website that is not handed a store explicitly.
default_store: MetricsStore[RequestRecord] = MetricsStore()

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
  <head><meta charset="utf-8"><title>{{ title }}</title></head>
  <body>
    <header><a href="/">{{ site_name }}</a></header>
    <main>
      <h1>{{ title }}</h1>
      <article class="content">{% for p in paragraphs %}<p>{{ p }}</p>{% endfor %}</article>
      {% if links %}<ul>{% for href, text in links %}<li><a href="{{ href }}">{{ text }}</a></li>{% endfor %}</ul>{% endif %}
    </main>
    {% if honeypot %}<a href="{{ honeypot_path }}" style="display:none" aria-hidden="true" tabindex="-1">more</a>{% endif %}
  </body>
</html>
"""


class BaseWebsite(ABC):
    """Target website actor.

    run() allocates a run identifier, builds the Flask application with the
    chosen detector in front of every route and serves it from a background
    thread. Every request is logged under the run identifier together with the
    detector's verdict; get_db_info() turns that log into DetectorMetrics.
    """

    site_name = "Benchmark website"

    def __init__(self, definition: WebsiteDefinition, store: Optional[MetricsStore[RequestRecord]] = None) -> None:
        self.definition = definition
        self.run_id: Optional[int] = None
        self.debug = False
        self._store = store if store is not None else default_store
        self._detector: Optional[BotDetector] = None
        self._server: Optional[BaseWSGIServer] = None
        self._thread: Optional[threading.Thread] = None
        self.app: Optional[Flask] = None

    @abstractmethod
    def register_routes(self, app: Flask) -> None:
        """Add the website's pages to app."""

    def run(self, detector: str, port: Optional[int] = None, debug: bool = False, run_id: Optional[int] = None) -> None:
        self.debug = debug
        self.prepare(detector, run_id)
        host = self.definition.host
        self._server = make_server(host, self.definition.port if port is None else port, self.app, threaded=True)
        self._thread = threading.Thread(target=self._server.serve_forever, name=f"website-{self.definition.name}", daemon=True)
        self._thread.start()
        log_event(
            logger,
            logging.DEBUG,
            "website_started",
            website=self.definition.name,
            detector=detector,
            run_id=self.run_id,
            address=self.address,
        )

    def prepare(self, detector: str, run_id: Optional[int] = None) -> Flask:
        """Allocate the run identifier and build the application without serving it."""
        self._detector = create_detector(detector)
        self.run_id = self._store.begin_run(run_id)
        self.app = self.create_app()
        return self.app

    @property
    def address(self) -> str:
        if self._server is None:
            raise RuntimeError("website is not running")
        return f"http://{self.definition.host}:{self._server.server_port}/"

    def create_app(self) -> Flask:
        app = Flask(type(self).__name__)
        detector = self._detector
        if detector is None:
            raise RuntimeError("create_app() called before prepare()")

        @app.before_request
        def detect_bot():
            info = RequestInfo(
                ip=request.remote_addr,
                path=request.path,
                user_agent=request.headers.get("User-Agent"),
                headers=dict(request.headers),
            )
            g.is_bot = detector.check(info)
            if g.is_bot:
                return Response("Access denied: Bot detected", status=403)
            return None

        @app.after_request
        def log_request(response):
            self._store.append(
                self.run_id,
                RequestRecord(
                    method=request.method,
                    url=request.full_path.rstrip("?"),
                    ip=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                    is_bot=bool(g.get("is_bot", False)),
                ),
            )
            return response

        if detector.robots_txt is not None:
            app.add_url_rule("/robots.txt", "robots_txt", lambda: Response(detector.robots_txt, mimetype="text/plain"))
        app.add_url_rule(HONEYPOT_PATH, "honeypot", lambda: self.render_page("Archive", ["Nothing to see here."]))

        self.register_routes(app)
        return app

    def render_page(self, title: str, paragraphs, links=()) -> str:
        return render_template_string(
            PAGE_TEMPLATE,
            title=title,
            site_name=self.site_name,
            paragraphs=paragraphs,
            links=links,
            honeypot=bool(self._detector and self._detector.uses_honeypot),
            honeypot_path=HONEYPOT_PATH,
        )

    def get_db_info(self) -> DetectorMetrics:
        if self.run_id is None:
            raise RuntimeError("get_db_info() called before run()")
        records = self._store.records(self.run_id)
        correct = sum(1 for r in records if r.is_bot)
        user_agents = dict.fromkeys(r.user_agent or NO_USER_AGENT for r in records)
        return DetectorMetrics(
            run_id=self.run_id,
            total_requests=len(records),
            correctly_classified=correct,
            incorrectly_classified=len(records) - correct,
            requests_without_honeypot=sum(1 for r in records if HONEYPOT_PATH not in r.url),
            user_agents=tuple(user_agents),
        )

    def close(self, debug: bool = False) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        if self._detector is not None:
            self._detector.close()
        if debug:
            logger.debug("Closed website %s (run %s)", self.definition.name, self.run_id)
