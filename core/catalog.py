"""
catalog.py -- HTTP client for the remote movie catalog (OMDb).

Thin request/response wrapper. Every request carries the API key as the
`apikey` query parameter. Each outgoing URL is logged; failures are logged
with the upstream status/body (HTTP error) or the network error message, then
re-raised unchanged. Error handling policy is the caller's concern.
"""

import logging
from typing import Any, Optional

import requests

from core.config import get_settings

logger = logging.getLogger("moviesession.catalog")


class CatalogClient:
    """Request/response client bound to a base address and API key.

    Usage:
        client = CatalogClient.from_settings()
        results = client.search("Alien")
        movie = client.get_title("tt0078748")
        client.close()
    """

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self._api_key = api_key
        # One session per client for connection pooling. 3 redirects is plenty
        # for a single known API host.
        self._session = requests.Session()
        self._session.max_redirects = 3

    @classmethod
    def from_settings(cls) -> "CatalogClient":
        settings = get_settings()
        return cls(settings.omdb_base_url, settings.omdb_api_key, timeout=settings.request_timeout)

    def get(self, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Send a GET to the base address and return the decoded JSON body.

        Raises requests.RequestException (HTTPError, ConnectionError, Timeout,
        ...) unchanged after logging it.
        """
        query: dict[str, Any] = {"apikey": self._api_key}
        if params:
            query.update(params)
        request = requests.Request("GET", self.base_url, params=query)
        prepared = self._session.prepare_request(request)
        logger.info("API Request: %s", _redact(prepared.url))
        try:
            resp = self._session.send(prepared, timeout=self.timeout)
            resp.raise_for_status()
        except requests.HTTPError as e:
            logger.warning("API Error: %s %s", e.response.status_code, e.response.text)
            raise
        except requests.RequestException as e:
            logger.warning("Network Error: %s", e)
            raise
        return resp.json()

    def search(self, title: str, page: int = 1) -> dict[str, Any]:
        """Search titles by name (OMDb `s=` query)."""
        return self.get({"s": title, "page": page})

    def get_title(self, imdb_id: str) -> dict[str, Any]:
        """Fetch one title by IMDb ID (OMDb `i=` query)."""
        return self.get({"i": imdb_id})

    def close(self) -> None:
        self._session.close()


def _redact(url: Optional[str]) -> str:
    # The API key rides in the query string; keep it out of the logs.
    if not url:
        return ""
    head, sep, query = url.partition("?")
    if not sep:
        return url
    parts = ["apikey=***" if p.startswith("apikey=") else p for p in query.split("&")]
    return f"{head}?{'&'.join(parts)}"
