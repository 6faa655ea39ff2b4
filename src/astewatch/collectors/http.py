"""Fast fetcher: plain HTTP GET with httpx."""

import logging
from collections.abc import Sequence
from typing import Optional

import httpx

from ..models.listing import FetchMethod, SourceConfig
from .base import FetchedDocument, FetchError, Fetcher

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


class HttpFetcher(Fetcher):
    """Retrieves static HTML without executing scripts.

    Cheap and fast, but returns nothing useful for sites that build their
    listings client-side; the strategy selector escalates those to the
    rendered fetcher.

    Example:
        async with HttpFetcher(timeout=10) as fetcher:
            document = await fetcher.fetch(source)
    """

    method = FetchMethod.FAST

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the fetcher.

        Args:
            timeout: Request timeout in seconds (default 10)
            user_agent: Custom User-Agent string (uses default if None)
            transport: Optional httpx transport, mainly for tests
        """
        self.timeout = timeout
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": "it-IT,it;q=0.9,en;q=0.5",
                },
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def fetch(
        self,
        source: SourceConfig,
        localities: Sequence[str] = (),
    ) -> FetchedDocument:
        client = await self._get_client()
        try:
            response = await client.get(source.url)
            response.raise_for_status()
        except httpx.TimeoutException:
            raise FetchError(source.name, self.method, "request timeout")
        except httpx.HTTPStatusError as e:
            raise FetchError(source.name, self.method, f"HTTP error: {e.response.status_code}")
        except httpx.HTTPError as e:
            raise FetchError(source.name, self.method, str(e) or type(e).__name__)

        logger.debug(f"GET {source.url} -> {response.status_code} ({len(response.content)} bytes)")
        return FetchedDocument(url=str(response.url), html=response.text, method=self.method)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
