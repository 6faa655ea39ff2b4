"""Heuristic field extraction from unstructured listing text.

Each field is resolved by an ordered chain of ``ExtractionRule`` objects. The
chain is evaluated top to bottom and the first rule whose capture passes its
validity check wins; later rules are never consulted once one succeeds. When
every rule misses, the field is unresolved and ``None`` is returned.

Auction portals are mostly Italian, so the patterns target Italian wording
first, with English labels accepted where sites use them.

Example usage:
    from astewatch.extraction.fields import extract_price, extract_locality

    text = "Comune: Bergamo\\nVia Roma 12, Bergamo\\nBase d'asta € 125.000,00"
    extract_price(text)     # 125000
    extract_locality(text)  # "Bergamo"
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Optional

# Minimum value a price capture must exceed to be accepted by the chain.
# Lower than the admission floor on purpose: it only weeds out stray numbers
# such as lot counts or square metres.
PRICE_EXTRACTION_FLOOR = 1000

LOCALITY_MIN_LENGTH = 2
LOCALITY_MAX_LENGTH = 50


@dataclass(frozen=True)
class ExtractionRule:
    """One pattern in a fallback chain.

    Attributes:
        name: Short label used in debug logs and tests
        pattern: Compiled regex searched against the text
        group: Capture group holding the value (0 = whole match)
        normalize: Converts the raw capture to the field's value type
        is_valid: Predicate on the normalized value; rejects the capture if False
    """

    name: str
    pattern: re.Pattern[str]
    group: int = 1
    normalize: Callable[[str], Any] = str.strip
    is_valid: Callable[[Any], bool] = bool

    def apply(self, text: str) -> Optional[Any]:
        """Return the normalized capture if the rule matches and validates."""
        match = self.pattern.search(text)
        if not match:
            return None
        captured = match.group(self.group)
        if captured is None:
            return None
        value = self.normalize(captured)
        if value is None or not self.is_valid(value):
            return None
        return value


def run_chain(rules: Sequence[ExtractionRule], text: Optional[str]) -> Optional[Any]:
    """Evaluate rules in order and return the first valid value (first-match-wins)."""
    if not text:
        return None
    for rule in rules:
        value = rule.apply(text)
        if value is not None:
            return value
    return None


# ---------------------------------------------------------------------------
# Price
# ---------------------------------------------------------------------------

# Integer part of an amount: dot-grouped thousands ("125.000") or plain digits.
# A trailing ",00" decimal part is left outside the capture.
_AMOUNT = r"([0-9]{1,3}(?:\.[0-9]{3})+|[0-9]+)"
_CURRENCY = r"(?:€|EUR\b)"


def _parse_amount(raw: str) -> Optional[int]:
    digits = raw.replace(".", "").strip()
    if not digits.isdigit():
        return None
    return int(digits)


def _above_price_floor(value: int) -> bool:
    return value > PRICE_EXTRACTION_FLOOR


PRICE_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        name="currency_before",
        pattern=re.compile(_CURRENCY + r"\s*" + _AMOUNT),
        normalize=_parse_amount,
        is_valid=_above_price_floor,
    ),
    ExtractionRule(
        name="currency_after",
        pattern=re.compile(_AMOUNT + r"(?:,[0-9]{1,2})?\s*" + _CURRENCY),
        normalize=_parse_amount,
        is_valid=_above_price_floor,
    ),
    ExtractionRule(
        name="labelled",
        pattern=re.compile(
            r"\b(?:prezzo(?:\s+base)?|price|base\s+d['’]asta|base\s+bid|offerta\s+minima)"
            r"[\s:]+(?:€\s*)?" + _AMOUNT,
            re.IGNORECASE,
        ),
        normalize=_parse_amount,
        is_valid=_above_price_floor,
    ),
)


def extract_price(text: Optional[str]) -> Optional[int]:
    """Extract the listing price in whole euros, or None if no rule matches."""
    return run_chain(PRICE_RULES, text)


def parse_price_text(text: Optional[str]) -> Optional[int]:
    """Parse a price from a dedicated price element.

    The element text is tried against the price chain first; if that misses,
    every non-digit is stripped and the remainder is parsed. Returns None if the
    result does not clear the extraction floor.
    """
    if not text:
        return None
    value = extract_price(text)
    if value is not None:
        return value
    # Drop a decimal tail before stripping, so "150.000,00" is not read as 15000000
    cleaned = re.sub(r",[0-9]{1,2}\s*$", "", text.strip())
    digits = re.sub(r"[^\d]", "", cleaned)
    if not digits:
        return None
    value = int(digits)
    return value if _above_price_floor(value) else None


# ---------------------------------------------------------------------------
# Locality
# ---------------------------------------------------------------------------

_CAP_WORD = r"[A-ZÀ-Ý][a-zà-ÿ'’]+"
_STREET_WORDS = r"(?:Via|Viale|Piazzale|Piazza|Corso|Strada|Località|Loc)\b"

# Up to four capitalized words, allowing lowercase connectors ("Castiglione del Lago")
_PLACE = (
    _CAP_WORD
    + r"(?:[ \t]+(?:(?:di|de|del|della|dei|sul|sulla|in)[ \t]+)?"
    + _CAP_WORD
    + r"){0,3}"
)


def is_valid_locality(value: str) -> bool:
    """True when a locality candidate has a plausible length."""
    return LOCALITY_MIN_LENGTH < len(value) < LOCALITY_MAX_LENGTH


LOCALITY_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        name="labelled",
        pattern=re.compile(
            r"\b(?i:comune|città|citta|località|localita|municipality|locality)"
            r"(?:[ \t]+(?i:di))?(?:[ \t]*:\s*|[ \t]+)(" + _PLACE + r")"
        ),
        is_valid=is_valid_locality,
    ),
    ExtractionRule(
        name="prepositional",
        pattern=re.compile(
            r"\b(?:a|in|at)[ \t]+(?!" + _STREET_WORDS + r")("
            + _CAP_WORD + r"(?:[ \t]+" + _CAP_WORD + r")?)"),
        is_valid=is_valid_locality,
    ),
    ExtractionRule(
        name="province_code",
        pattern=re.compile(r"(" + _CAP_WORD + r"(?:[ \t]+" + _CAP_WORD + r")*)[ \t]*\([A-Z]{2}\)"),
        is_valid=is_valid_locality,
    ),
)


def extract_locality(text: Optional[str]) -> Optional[str]:
    """Extract the municipality name, or None if no rule matches."""
    return run_chain(LOCALITY_RULES, text)


# ---------------------------------------------------------------------------
# Address
# ---------------------------------------------------------------------------

ADDRESS_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        name="street_keyword",
        pattern=re.compile(
            r"\b(?:via|viale|piazzale|piazza|corso|strada|località|localita|loc\.)"
            r"(?=\s)[ \t]+[^,\n]+",
            re.IGNORECASE,
        ),
        group=0,
    ),
)


def extract_address(text: Optional[str]) -> Optional[str]:
    """Extract the street address segment, or None if no street keyword is found."""
    return run_chain(ADDRESS_RULES, text)


# ---------------------------------------------------------------------------
# Auction date
# ---------------------------------------------------------------------------

_MONTHS = (
    "gennaio|febbraio|marzo|aprile|maggio|giugno|luglio|agosto|settembre|"
    "ottobre|novembre|dicembre|"
    "january|february|march|april|may|june|july|august|september|october|"
    "november|december"
)

AUCTION_DATE_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        name="numeric",
        pattern=re.compile(r"\b\d{1,2}([/\-.])\d{1,2}\1\d{2,4}\b"),
        group=0,
    ),
    ExtractionRule(
        name="month_name",
        pattern=re.compile(r"\b\d{1,2}\s+(?:" + _MONTHS + r")\s+\d{4}\b", re.IGNORECASE),
        group=0,
    ),
)


def extract_auction_date(text: Optional[str]) -> Optional[str]:
    """Extract the auction date as printed; calendar validity is not checked."""
    return run_chain(AUCTION_DATE_RULES, text)


# ---------------------------------------------------------------------------
# Property type
# ---------------------------------------------------------------------------

# Table order is the precedence: the first keyword contained in the text wins
PROPERTY_TYPES: dict[str, str] = {
    "appartamento": "Apartment",
    "villa": "Villa",
    "garage": "Garage",
    "box": "Garage",
    "terreno": "Land",
    "locale": "Commercial Unit",
    "negozio": "Shop",
    "ufficio": "Office",
    "magazzino": "Warehouse",
}


def extract_property_type(text: Optional[str]) -> Optional[str]:
    """Map the first vocabulary keyword found in the text to its category."""
    if not text:
        return None
    lower = text.lower()
    for keyword, category in PROPERTY_TYPES.items():
        if keyword in lower:
            return category
    return None
