"""
JSON configuration loading.

A config directory holds benchmark.json plus one file per dimension:

    benchmark.json   {"application_version": "1.0.0",
                      "benchmarks": [{"scraper_config": "scraper.json",
                                      "website_config": "website.json",
                                      "detector_config": "detector.json",
                                      "delay_config": "delay.json",
                                      "useragent_config": "useragent.json",
                                      "debug": false}]}
    scraper.json     {"scrapers": [{"name", "module", "active", "config": {...}}]}
    website.json     {"websites": [{"name", "port", "pagesToScrape", "active"}]}
    detector.json    {"detectors": [{"name", "active"}]}
    delay.json       {"delays": [{"delay_ms", "active"}]}
    useragent.json   {"custom_user_agents": [{"user_agent", "active"}]}
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple, TypeVar
from urllib.parse import urlsplit

from . import __version__
from .errors import ConfigurationError
from .models import (
    DelayDefinition,
    DetectorDefinition,
    ExperimentPlan,
    ScraperDefinition,
    ScraperSettings,
    UserAgentDefinition,
    WebsiteDefinition,
)
from .planner import build_plan

logger = logging.getLogger(__name__)

BENCHMARK_FILE = "benchmark.json"

T = TypeVar("T")


@dataclass(frozen=True)
class BenchmarkConfig:
    scrapers: Tuple[ScraperDefinition, ...]
    delays: Tuple[DelayDefinition, ...]
    user_agents: Tuple[UserAgentDefinition, ...]
    websites: Tuple[WebsiteDefinition, ...]
    detectors: Tuple[DetectorDefinition, ...]
    debug: bool = False

    def plan(self) -> ExperimentPlan:
        return build_plan(self.scrapers, self.delays, self.user_agents, self.websites, self.detectors)


def load_config_file(config_dir: str, file_name: str) -> Dict[str, Any]:
    path = os.path.join(config_dir, file_name)
    logger.info("Loading config file: %s", path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Failed to load config file {path}: {exc}") from exc


def load_benchmarks(config_dir: str, check_version: bool = True) -> List[BenchmarkConfig]:
    root = load_config_file(config_dir, BENCHMARK_FILE)
    version = root.get("application_version")
    if check_version and version != __version__:
        raise ConfigurationError(
            f"Benchmark application version {__version__} does not match the configuration version "
            f"{version} in {BENCHMARK_FILE}. Use the matching version of the benchmark application."
        )

    benchmarks = []
    for entry in root.get("benchmarks", []):
        try:
            files = {key: entry[key] for key in (
                "scraper_config", "website_config", "detector_config", "delay_config", "useragent_config"
            )}
        except KeyError as exc:
            raise ConfigurationError(f"Benchmark entry is missing {exc}") from exc

        benchmarks.append(
            BenchmarkConfig(
                scrapers=_parse_list(load_config_file(config_dir, files["scraper_config"]), "scrapers", parse_scraper),
                websites=_parse_list(load_config_file(config_dir, files["website_config"]), "websites", parse_website),
                detectors=_parse_list(load_config_file(config_dir, files["detector_config"]), "detectors", parse_detector),
                delays=_parse_list(load_config_file(config_dir, files["delay_config"]), "delays", parse_delay),
                user_agents=_parse_list(
                    load_config_file(config_dir, files["useragent_config"]), "custom_user_agents", parse_user_agent
                ),
                debug=bool(entry.get("debug", False)),
            )
        )
    if not benchmarks:
        raise ConfigurationError(f"No benchmarks defined in {BENCHMARK_FILE}.")
    return benchmarks


def _parse_list(document: Dict[str, Any], key: str, parse: Callable[[Dict[str, Any]], T]) -> Tuple[T, ...]:
    items = document.get(key)
    if not isinstance(items, list):
        raise ConfigurationError(f"Expected a '{key}' list in the configuration.")
    try:
        return tuple(parse(item) for item in items)
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid entry in '{key}': {exc}") from exc


def _pick(raw: Dict[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in raw:
            return raw[name]
    return default


def parse_settings(raw: Dict[str, Any]) -> ScraperSettings:
    known = {
        "maxRequestsPerRun", "max_requests_per_run",
        "elementToScrape", "element_to_scrape",
        "delay_ms", "custom_user_agent",
    }
    return ScraperSettings(
        max_requests_per_run=int(_pick(raw, "maxRequestsPerRun", "max_requests_per_run", default=100)),
        element_to_scrape=str(_pick(raw, "elementToScrape", "element_to_scrape", default="body")),
        delay_ms=int(raw.get("delay_ms", 0)),
        custom_user_agent=raw.get("custom_user_agent") or None,
        extra={k: v for k, v in raw.items() if k not in known},
    )


def parse_scraper(raw: Dict[str, Any]) -> ScraperDefinition:
    return ScraperDefinition(
        name=raw["name"],
        module=raw.get("module", raw["name"]),
        settings=parse_settings(raw.get("config") or {}),
        active=bool(raw.get("active", False)),
    )


def parse_website(raw: Dict[str, Any]) -> WebsiteDefinition:
    url = raw.get("url")
    host = raw.get("host") or (urlsplit(url).hostname if url else None) or "127.0.0.1"
    return WebsiteDefinition(
        name=raw["name"],
        port=int(raw.get("port", 0)),
        pages_to_scrape=int(_pick(raw, "pagesToScrape", "pages_to_scrape", default=0)),
        active=bool(raw.get("active", False)),
        host=host,
    )


def parse_detector(raw: Dict[str, Any]) -> DetectorDefinition:
    return DetectorDefinition(name=raw["name"], active=bool(raw.get("active", False)))


def parse_delay(raw: Dict[str, Any]) -> DelayDefinition:
    return DelayDefinition(delay_ms=int(raw["delay_ms"]), active=bool(raw.get("active", False)))


def parse_user_agent(raw: Dict[str, Any]) -> UserAgentDefinition:
    return UserAgentDefinition(user_agent=raw.get("user_agent") or None, active=bool(raw.get("active", False)))
