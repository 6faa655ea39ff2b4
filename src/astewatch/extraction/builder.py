"""Compose extracted fields into admitted Listing records."""

import hashlib
import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urljoin

from ..models.listing import (
    ADDRESS_FALLBACK,
    AUCTION_DATE_FALLBACK,
    MIN_LISTING_PRICE,
    PROPERTY_TYPE_FALLBACK,
    Listing,
    SourceConfig,
)
from .fields import (
    extract_address,
    extract_auction_date,
    extract_locality,
    extract_price,
    extract_property_type,
    is_valid_locality,
    parse_price_text,
)
from .locality import matches

logger = logging.getLogger(__name__)

DESCRIPTION_LENGTH = 200


@dataclass
class RawBlock:
    """Text of one listing container plus its structural handles.

    Attributes:
        index: Position of the container within the fetched page
        text: Container text, one line per text node
        link: href of the first anchor inside the container, if any
        fields: Text of selector-located sub-elements keyed by field name
                ("locality", "price", "property_type"); a key is present only
                when the source configures a selector for it
    """

    index: int
    text: str
    link: Optional[str] = None
    fields: dict[str, Optional[str]] = field(default_factory=dict)


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "source"


class ListingBuilder:
    """Turns raw page blocks into admitted listings.

    Structural (selector) values are preferred when a source provides them and
    they parse; otherwise the text pattern chains are used. A block is rejected
    when locality or price cannot be resolved, when the price does not exceed
    the admission floor, or when the locality fails the caller's filter.

    Example:
        builder = ListingBuilder()
        listings = builder.build_all(blocks, source, localities=["Bergamo"])
    """

    def __init__(self, stable_ids: bool = True):
        """Initialize the builder.

        Args:
            stable_ids: Derive ids from listing content (default). When False,
                        ids are ``<source>-<index>-<fetch ms>`` and change on
                        every fetch.
        """
        self.stable_ids = stable_ids

    def _resolve_locality(self, block: RawBlock) -> Optional[str]:
        structured = block.fields.get("locality")
        if structured:
            value = _collapse(structured)
            if is_valid_locality(value):
                return value
        return extract_locality(block.text)

    def _resolve_price(self, block: RawBlock) -> Optional[int]:
        structured = parse_price_text(block.fields.get("price"))
        if structured is not None:
            return structured
        return extract_price(block.text)

    def _resolve_property_type(self, block: RawBlock) -> Optional[str]:
        structured = block.fields.get("property_type")
        if structured:
            return extract_property_type(structured) or _collapse(structured)
        return extract_property_type(block.text)

    def _make_id(
        self,
        source: SourceConfig,
        block: RawBlock,
        locality: str,
        address: Optional[str],
        auction_date: Optional[str],
        property_type: Optional[str],
        fetched_at: datetime,
    ) -> str:
        if not self.stable_ids:
            millis = int(fetched_at.timestamp() * 1000)
            return f"{source.name}-{block.index}-{millis}"

        parts = [
            source.name,
            locality.lower(),
            _collapse(address or "").lower(),
            auction_date or "",
            property_type or "",
            block.link or "",
        ]
        # Nothing distinguishing resolved: keep sibling blocks apart by position
        if not (address or auction_date or block.link):
            parts.append(str(block.index))
        digest = hashlib.sha1("|".join(parts).encode()).hexdigest()[:12]
        return f"{_slug(source.name)}-{digest}"

    def build(
        self,
        block: RawBlock,
        source: SourceConfig,
        localities: Sequence[str] = (),
        fetched_at: Optional[datetime] = None,
    ) -> Optional[Listing]:
        """Build a listing from one block, or return None if it is not admitted."""
        locality = self._resolve_locality(block)
        if not locality:
            logger.debug(f"{source.name}#{block.index}: no locality")
            return None

        price = self._resolve_price(block)
        if price is None or price <= MIN_LISTING_PRICE:
            logger.debug(f"{source.name}#{block.index}: price {price} not admitted")
            return None

        if not matches(locality, localities):
            logger.debug(f"{source.name}#{block.index}: locality {locality!r} filtered out")
            return None

        fetched_at = fetched_at or datetime.now(timezone.utc)
        address = extract_address(block.text)
        auction_date = extract_auction_date(block.text)
        property_type = self._resolve_property_type(block)
        link = urljoin(source.url, block.link) if block.link else source.url

        return Listing(
            id=self._make_id(
                source, block, locality, address, auction_date, property_type, fetched_at
            ),
            source=source.name,
            locality=locality,
            address=address or ADDRESS_FALLBACK,
            auction_date=auction_date or AUCTION_DATE_FALLBACK,
            property_type=property_type or PROPERTY_TYPE_FALLBACK,
            description=_collapse(block.text)[:DESCRIPTION_LENGTH],
            price=price,
            link=link,
            last_updated=fetched_at,
        )

    def build_all(
        self,
        blocks: Iterable[RawBlock],
        source: SourceConfig,
        localities: Sequence[str] = (),
        fetched_at: Optional[datetime] = None,
    ) -> list[Listing]:
        """Build every admissible listing from one fetch, sharing one timestamp.

        Ids are unique within the result. Sibling lots whose content ids
        collide (same address, date and link) get their block index appended,
        in page order, so the first lot keeps the plain id.
        """
        fetched_at = fetched_at or datetime.now(timezone.utc)
        listings = []
        seen: set[str] = set()
        for block in blocks:
            listing = self.build(block, source, localities, fetched_at)
            if listing is None:
                continue
            if listing.id in seen:
                listing = listing.model_copy(update={"id": f"{listing.id}-{block.index}"})
                logger.debug(f"{source.name}#{block.index}: duplicate content id, using {listing.id}")
            seen.add(listing.id)
            listings.append(listing)
        return listings
