"""Field extraction and listing admission.

Main Components:
    - fields: ordered, first-match-wins pattern chains per listing field
    - locality: symmetric locality filter
    - builder: RawBlock -> Listing composition and admission
"""

from .builder import ListingBuilder, RawBlock
from .fields import (
    extract_address,
    extract_auction_date,
    extract_locality,
    extract_price,
    extract_property_type,
)
from .locality import matches

__all__ = [
    "ListingBuilder",
    "RawBlock",
    "extract_address",
    "extract_auction_date",
    "extract_locality",
    "extract_price",
    "extract_property_type",
    "matches",
]
