"""
Bot detection techniques applied by the website actors.

Every request the website receives is passed to the active detector's check();
a True result means the request is answered with 403 and logged as a bot.
"""

from __future__ import annotations

import re
import threading
from abc import ABC
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Set

from crawlerdetect import CrawlerDetect

HONEYPOT_PATH = "/honeypot"


@dataclass(frozen=True)
class RequestInfo:
    ip: Optional[str]
    path: str
    user_agent: Optional[str]
    headers: Mapping[str, str] = field(default_factory=dict)


class BotDetector(ABC):
    """Base detector: flags nothing."""

    #: pages render a hidden link to HONEYPOT_PATH when True
    uses_honeypot = False
    #: body served at /robots.txt, if any
    robots_txt: Optional[str] = None

    def check(self, request: RequestInfo) -> bool:
        return False

    def close(self) -> None:
        """Release timers or other resources."""


class NoDetector(BotDetector):
    pass


class RobotsTxtDetector(BotDetector):
    """Only asks crawlers to stay away; never blocks."""

    robots_txt = "User-agent: *\nDisallow: /"


_BOT_UA = re.compile(
    r"bot|crawl|spider|slurp|scrap|python|curl|wget|httpclient|http-client|okhttp|libwww|"
    r"java/|go-http|node-fetch|axios|undici|headless|phantomjs|puppeteer|playwright|selenium|"
    r"facebookexternalhit|preview|monitor|archiver|feedfetcher",
    re.IGNORECASE,
)


class UserAgentDetector(BotDetector):
    """Flags requests whose User-Agent matches a known automation pattern."""

    def check(self, request: RequestInfo) -> bool:
        return bool(request.user_agent) and bool(_BOT_UA.search(request.user_agent or ""))


class CrawlerSignatureDetector(BotDetector):
    """Matches the User-Agent against the CrawlerDetect signature list.

    A request without a User-Agent is not flagged.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._crawler_detect = CrawlerDetect()

    def check(self, request: RequestInfo) -> bool:
        user_agent = (request.user_agent or "").strip()
        if not user_agent:
            return False
        with self._lock:
            return bool(self._crawler_detect.isCrawler(user_agent))


class SimpleHoneyPot(BotDetector):
    """Blacklists the client IP as soon as it requests the hidden honeypot link."""

    uses_honeypot = True

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._blacklist: Set[Optional[str]] = set()

    def check(self, request: RequestInfo) -> bool:
        with self._lock:
            if request.ip in self._blacklist:
                return True
            if request.path == HONEYPOT_PATH:
                self._blacklist.add(request.ip)
                return True
            return False


class DelayedHoneyPot(BotDetector):
    """Blacklists the client IP a fixed time after it requests the honeypot link."""

    uses_honeypot = True

    def __init__(self, delay_secs: float = 5.0) -> None:
        self._delay = delay_secs
        self._lock = threading.Lock()
        self._blacklist: Set[Optional[str]] = set()
        self._timers: List[threading.Timer] = []

    def check(self, request: RequestInfo) -> bool:
        with self._lock:
            if request.ip in self._blacklist:
                return True
        if request.path == HONEYPOT_PATH:
            timer = threading.Timer(self._delay, self._blacklist_ip, args=(request.ip,))
            timer.daemon = True
            self._timers.append(timer)
            timer.start()
        return False

    def _blacklist_ip(self, ip: Optional[str]) -> None:
        with self._lock:
            self._blacklist.add(ip)

    def close(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()


DETECTORS: Dict[str, Callable[[], BotDetector]] = {
    "none": NoDetector,
    "robotstxt": RobotsTxtDetector,
    "isbot": UserAgentDetector,
    "crawlerDetector": CrawlerSignatureDetector,
    "simpleHoneyPot": SimpleHoneyPot,
    "delayedHoneyPot": DelayedHoneyPot,
}


def create_detector(name: str) -> BotDetector:
    factory = DETECTORS.get(name)
    if factory is None:
        allowed = ", ".join(sorted(DETECTORS))
        raise ValueError(f"Unknown detector '{name}'. Allowed detectors: {allowed}.")
    return factory()
