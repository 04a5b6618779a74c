from .base import BaseWebsite
from .detectors import DETECTORS, BotDetector, create_detector
from .sites import BlogWebsite, SimplePageWebsite

__all__ = [
    "BaseWebsite",
    "BlogWebsite",
    "SimplePageWebsite",
    "BotDetector",
    "DETECTORS",
    "create_detector",
]
