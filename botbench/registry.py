from __future__ import annotations

from typing import Callable, Dict, Mapping, Optional

from .models import ScraperSettings, WebsiteDefinition
from .scrapers import BaseScraper, BasicScraper, BrowserScraper, ImpersonatingScraper
from .store import MetricsStore, RequestRecord, ScrapeRecord
from .websites import BaseWebsite, BlogWebsite, SimplePageWebsite

ScraperFactory = Callable[..., BaseScraper]
WebsiteFactory = Callable[..., BaseWebsite]


class ActorRegistry:
    """Maps scraper module names and website names to the classes that implement them.

    Built-ins can be overridden or extended with register_scraper() /
    register_website().
    """

    def __init__(
        self,
        scrapers: Optional[Mapping[str, ScraperFactory]] = None,
        websites: Optional[Mapping[str, WebsiteFactory]] = None,
    ) -> None:
        self._scrapers: Dict[str, ScraperFactory] = dict(scrapers or {})
        self._websites: Dict[str, WebsiteFactory] = dict(websites or {})

    def register_scraper(self, name: str, factory: ScraperFactory) -> None:
        self._scrapers[name] = factory

    def register_website(self, name: str, factory: WebsiteFactory) -> None:
        self._websites[name] = factory

    def has_scraper(self, name: str) -> bool:
        return name in self._scrapers

    def has_website(self, name: str) -> bool:
        return name in self._websites

    def create_scraper(
        self,
        module: str,
        settings: ScraperSettings,
        url: str,
        debug: bool = False,
        store: Optional[MetricsStore[ScrapeRecord]] = None,
        run_id: Optional[int] = None,
    ) -> BaseScraper:
        factory = self._scrapers.get(module)
        if factory is None:
            raise ValueError(f"Unknown scraper module: {module}. Allowed: {', '.join(sorted(self._scrapers))}")
        return factory(settings, url, debug, store=store, run_id=run_id)

    def create_website(
        self,
        definition: WebsiteDefinition,
        store: Optional[MetricsStore[RequestRecord]] = None,
    ) -> BaseWebsite:
        factory = self._websites.get(definition.name)
        if factory is None:
            raise ValueError(f"Unknown website: {definition.name}. Allowed: {', '.join(sorted(self._websites))}")
        return factory(definition, store=store)


def default_registry() -> ActorRegistry:
    return ActorRegistry(
        scrapers={
            "basic-scraper": BasicScraper,
            "curl-impersonate-scraper": ImpersonatingScraper,
            "playwright-scraper": BrowserScraper,
        },
        websites={
            "blog-website": BlogWebsite,
            "simple-page-website": SimplePageWebsite,
        },
    )
