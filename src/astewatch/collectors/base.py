"""Abstract fetcher interface and collector exceptions.

A Fetcher retrieves one source page with a given method (plain HTTP or a
rendering browser) and hands back the HTML. Everything after that point, block
splitting, field extraction and admission, is shared by every method, so adding
a transport means implementing this interface only.

Example usage:
    class MyFetcher(Fetcher):
        method = FetchMethod.FAST

        async def fetch(self, source, localities=()):
            html = ...
            return FetchedDocument(url=source.url, html=html, method=self.method)
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..models.listing import FetchMethod, SourceConfig


@dataclass
class FetchedDocument:
    """HTML retrieved from a source."""

    url: str
    html: str
    method: FetchMethod
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Fetcher(ABC):
    """Abstract transport for source pages.

    Attributes:
        method: The FetchMethod this fetcher implements
    """

    method: FetchMethod

    @abstractmethod
    async def fetch(
        self,
        source: SourceConfig,
        localities: Sequence[str] = (),
    ) -> FetchedDocument:
        """Retrieve the source page.

        Args:
            source: Site configuration to fetch
            localities: Requested localities; rendering fetchers may use the
                        first one to fill a search form

        Returns:
            FetchedDocument with the page HTML

        Raises:
            FetchError: On timeout, connection error or non-success response
        """
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None

    async def __aenter__(self) -> "Fetcher":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()


class SourceError(Exception):
    """Base exception for errors tied to one auction source.

    Attributes:
        source: Name of the source that raised the error
        message: Error description
    """

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class FetchError(SourceError):
    """Raised when a page cannot be retrieved (transport failure)."""

    def __init__(self, source: str, method: FetchMethod, message: str):
        self.method = method
        super().__init__(source, f"{method.value} fetch failed: {message}")


class InteractionError(SourceError):
    """Raised when a pre-extraction page interaction (form fill) fails."""


class SiteConfigError(Exception):
    """Raised when a site configuration file cannot be loaded."""
