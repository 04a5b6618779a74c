from __future__ import annotations

from typing import Any

from curl_cffi import requests as curl_requests

from .basic import BasicScraper

DEFAULT_IMPERSONATE = "chrome120"


class ImpersonatingScraper(BasicScraper):
    """BasicScraper that sends requests with a real browser's TLS and header fingerprint.

    The browser profile comes from the "impersonate" setting (curl_cffi target name).
    """

    def _open_session(self) -> Any:
        return curl_requests.Session()

    def fetch(self, url: str) -> Any:
        return self._session.get(
            url,
            headers=self._headers() or None,
            impersonate=self.settings.extra.get("impersonate", DEFAULT_IMPERSONATE),
            timeout=self._timeout,
        )
