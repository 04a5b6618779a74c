from .base import BaseScraper
from .basic import BasicScraper
from .browser import BrowserScraper
from .impersonate import ImpersonatingScraper

__all__ = ["BaseScraper", "BasicScraper", "BrowserScraper", "ImpersonatingScraper"]
