"""
HTML Fetcher

Thin async wrapper around httpx for pulling public web pages. Raises
FetchError on any network failure or non-2xx response; callers decide
whether that is fatal.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

logger = logging.getLogger(__name__)


USER_AGENT = "Mozilla/5.0 (compatible; JakeBot/1.0)"
MAX_REDIRECTS = 3


class FetchError(Exception):
    """Raised when a page cannot be fetched."""
    def __init__(self, message: str, url: str = None, status_code: int = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


@dataclass
class FetchedPage:
    url: str
    html: str
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)


def normalize_url(url: str) -> str:
    """Add https:// when the scheme is missing."""
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"
    return url


class HtmlFetcher:
    """
    Fetches HTML over a shared connection pool.

    Usage:
        async with HtmlFetcher() as fetcher:
            page = await fetcher.fetch("example.com", timeout=10.0)
    """

    def __init__(
        self,
        default_timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.default_timeout = default_timeout
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT, "Accept": "text/html"},
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        )

    async def fetch(self, url: str, timeout: Optional[float] = None) -> FetchedPage:
        """
        GET a page and return its body and headers.

        Raises:
            FetchError: timeout, connection failure, or HTTP error status
        """
        full_url = normalize_url(url)
        timeout = timeout if timeout is not None else self.default_timeout

        logger.debug(f"Fetching {full_url} (timeout {timeout}s)")

        try:
            response = await self._client.get(full_url, timeout=timeout)
        except httpx.TimeoutException as e:
            raise FetchError(f"Timed out fetching {full_url}: {e}", url=full_url) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch {full_url}: {e}", url=full_url) from e

        if response.status_code >= 400:
            raise FetchError(
                f"Fetching {full_url} returned {response.status_code}",
                url=full_url,
                status_code=response.status_code,
            )

        return FetchedPage(
            url=str(response.url),
            html=response.text,
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
        )

    async def close(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
