"""Rendered fetcher: headless Chromium through Playwright.

Used for sites that render listings with JavaScript or need a search form to
be filled before results appear. One browser process is launched lazily and
shared across fetches; each fetch gets its own page.
"""

import logging
from collections.abc import Sequence
from typing import Optional

from playwright.async_api import Browser, Page, Playwright, Route, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..models.listing import FetchMethod, SourceConfig
from .base import FetchedDocument, FetchError, Fetcher, InteractionError
from .http import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

# Resource types not needed to read listing text
BLOCKED_RESOURCES = {"image", "stylesheet", "font", "media"}

SEARCH_INPUT_SELECTOR = 'input[name="comune"], #comune, .search-comune'
SEARCH_SUBMIT_SELECTOR = 'button[type="submit"], .search-button, .btn-search'


class BrowserFetcher(Fetcher):
    """Retrieves fully rendered HTML, optionally after a form interaction.

    Example:
        async with BrowserFetcher(timeout=30) as fetcher:
            document = await fetcher.fetch(source, localities=["Bergamo"])
    """

    method = FetchMethod.RENDERED

    def __init__(
        self,
        timeout: float = 30.0,
        headless: bool = True,
        user_agent: Optional[str] = None,
        settle_ms: int = 2000,
    ):
        """Initialize the fetcher.

        Args:
            timeout: Navigation timeout in seconds (default 30)
            headless: Run Chromium without a window (default True)
            user_agent: Custom User-Agent string (uses default if None)
            settle_ms: Extra wait after load for late client-side rendering
        """
        self.timeout = timeout
        self.headless = headless
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.settle_ms = settle_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @property
    def is_active(self) -> bool:
        """True while a browser process is running."""
        return self._browser is not None and self._browser.is_connected()

    async def _get_browser(self) -> Browser:
        """Launch the shared browser on first use."""
        if not self.is_active:
            logger.info("Launching headless Chromium")
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-dev-shm-usage", "--disable-gpu"],
            )
        return self._browser

    @staticmethod
    async def _block_heavy_resources(route: Route) -> None:
        if route.request.resource_type in BLOCKED_RESOURCES:
            await route.abort()
        else:
            await route.continue_()

    async def _interact(self, page: Page, source: SourceConfig, locality: str) -> None:
        """Fill the site's locality search form and submit it."""
        try:
            await page.wait_for_selector(SEARCH_INPUT_SELECTOR, timeout=5000)
            await page.fill(SEARCH_INPUT_SELECTOR, locality)
            await page.click(SEARCH_SUBMIT_SELECTOR)
            await page.wait_for_timeout(3000)
        except PlaywrightError as e:
            raise InteractionError(source.name, f"search form interaction failed: {e}")

    async def fetch(
        self,
        source: SourceConfig,
        localities: Sequence[str] = (),
    ) -> FetchedDocument:
        url = source.url
        if source.requires_interaction and source.search_url:
            url = source.search_url

        page: Optional[Page] = None
        try:
            browser = await self._get_browser()
            page = await browser.new_page(user_agent=self.user_agent)
            await page.route("**/*", self._block_heavy_resources)
            await page.goto(url, wait_until="networkidle", timeout=self.timeout * 1000)

            if source.requires_interaction and localities:
                try:
                    await self._interact(page, source, localities[0])
                except InteractionError as e:
                    # Best effort: read whatever the page shows without the filter
                    logger.info(f"{e}; continuing with unfiltered page")

            await page.wait_for_timeout(self.settle_ms)
            html = await page.content()
            return FetchedDocument(url=page.url, html=html, method=self.method)

        except PlaywrightTimeoutError:
            raise FetchError(source.name, self.method, "navigation timeout")
        except PlaywrightError as e:
            raise FetchError(source.name, self.method, e.message)
        finally:
            if page is not None:
                try:
                    await page.close()
                except PlaywrightError as e:
                    logger.debug(f"Error closing page for {source.name}: {e}")

    async def close(self) -> None:
        """Shut down the browser and the Playwright driver."""
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
