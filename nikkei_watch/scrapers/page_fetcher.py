# nikkei_watch/scrapers/page_fetcher.py

"""Single-shot page fetcher with browser impersonation."""

import logging
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi import requests as curl_requests

from nikkei_watch.config.settings import Settings
from nikkei_watch.errors import TransportError


class PageFetcher:
    """Fetch raw HTML for a URL with realistic browser headers.

    Each call makes one attempt; the next scheduled run is the retry.
    The only second request is the cloudscraper pass made when the
    first response is a Cloudflare challenge or a 403.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger("nikkei_watch.fetcher")
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    def _is_challenge(self, text: str) -> bool:
        """Check for Cloudflare challenge page markers."""
        lower = text.lower()
        for marker in self.settings.CF_CHALLENGE_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "Cloudflare challenge detected (marker: '%s')",
                    marker,
                )
                return True
        return False

    def _fetch_with_cloudscraper(
        self,
        url: str,
        headers: dict[str, str],
    ) -> str | None:
        """One pass through cloudscraper's JS challenge solver."""
        self.logger.info(
            "Challenge wall on %s, falling back to cloudscraper", url
        )
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(
                url,
                headers=headers,
                timeout=self.settings.REQUEST_TIMEOUT,
            )
        except Exception as exc:
            self.logger.error(
                "cloudscraper fallback failed for %s: %s",
                url,
                exc,
                exc_info=True,
            )
            return None
        if resp.status_code == 200 and not self._is_challenge(
            str(resp.text)
        ):
            return str(resp.text)
        self.logger.warning(
            "cloudscraper fallback got HTTP %d for %s",
            resp.status_code,
            url,
        )
        return None

    def fetch(self, url: str) -> str:
        """GET *url* and return its HTML.

        Raises:
            TransportError: on a network failure, a non-200 status, or
                an unsolved challenge page.
        """
        headers: dict[str, str] = dict(self.settings.DEFAULT_HEADERS)
        try:
            resp = self.session.get(
                url,
                headers=headers,
                timeout=self.settings.REQUEST_TIMEOUT,
                allow_redirects=True,
                max_redirects=self.settings.MAX_REDIRECTS,
            )
        except Exception as exc:
            self.logger.error(
                "Request error for %s: %s", url, exc, exc_info=True,
            )
            raise TransportError(url, f"request failed: {exc}") from exc

        challenged = resp.status_code == 403 or (
            resp.status_code == 200 and self._is_challenge(resp.text)
        )
        if challenged and self.settings.CHALLENGE_FALLBACK:
            html = self._fetch_with_cloudscraper(url, headers)
            if html is not None:
                return html

        if resp.status_code != 200:
            self.logger.error("HTTP %d for %s", resp.status_code, url)
            raise TransportError(
                url, "unexpected status", status=resp.status_code
            )
        if challenged:
            raise TransportError(
                url, "blocked by challenge page", status=resp.status_code
            )

        self.logger.debug(
            "Fetched %s (%d bytes)", url, len(resp.text)
        )
        return str(resp.text)
