"""Split a fetched page into per-listing RawBlocks with BeautifulSoup."""

import logging

from bs4 import BeautifulSoup

from ..extraction.builder import RawBlock
from ..models.listing import SourceConfig

logger = logging.getLogger(__name__)

# Used when a source does not declare its own container selector
DEFAULT_CONTAINER_SELECTOR = 'article, .card, [class*="auction"], [class*="property"]'

# Sub-element selectors that map onto RawBlock.fields
STRUCTURED_FIELDS = ("locality", "price", "property_type")


def extract_blocks(html: str, source: SourceConfig, limit: int = 100) -> list[RawBlock]:
    """Select listing containers on a page and capture their text and handles.

    Args:
        html: Page HTML
        source: Site configuration providing the selectors
        limit: Maximum number of containers to read

    Returns:
        RawBlocks in document order
    """
    soup = BeautifulSoup(html, "html.parser")
    selectors = source.selectors
    container_selector = selectors.container or DEFAULT_CONTAINER_SELECTOR

    blocks = []
    for index, element in enumerate(soup.select(container_selector, limit=limit)):
        text = element.get_text("\n", strip=True)
        if not text:
            continue

        anchor = element.select_one("a[href]")
        link = anchor.get("href") if anchor else None
        if element.name == "a" and element.get("href"):
            link = element.get("href")

        fields = {}
        for name in STRUCTURED_FIELDS:
            selector = getattr(selectors, name)
            if not selector:
                continue
            sub = element.select_one(selector)
            fields[name] = sub.get_text(" ", strip=True) if sub else None

        blocks.append(RawBlock(index=index, text=text, link=link, fields=fields))

    logger.debug(f"{source.name}: {len(blocks)} blocks from {container_selector!r}")
    return blocks
