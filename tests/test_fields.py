"""Tests for the field extraction chains."""

from astewatch.extraction.fields import (
    PRICE_RULES,
    extract_address,
    extract_auction_date,
    extract_locality,
    extract_price,
    extract_property_type,
    parse_price_text,
    run_chain,
)


class TestExtractPrice:
    """Test price extraction."""

    def test_currency_before_amount(self):
        """Euro sign before a dot-grouped amount; decimals ignored."""
        assert extract_price("Base d'asta € 125.000,00") == 125000

    def test_currency_after_amount(self):
        """Euro sign after the amount."""
        assert extract_price("Valore 95.000,50 €") == 95000

    def test_labelled_amount(self):
        """Labelled form without a currency symbol."""
        assert extract_price("Prezzo: 250.000") == 250000
        assert extract_price("Offerta minima: 187.500") == 187500

    def test_ungrouped_digits(self):
        """Plain digits without thousand separators."""
        assert extract_price("€125000") == 125000

    def test_first_declared_rule_wins(self):
        """The currency-before rule wins even when the labelled form comes first in the text."""
        text = "Prezzo: 250.000 - offerta corrente € 180.000"
        assert extract_price(text) == 180000

    def test_invalid_capture_falls_through(self):
        """A capture under the floor lets the next rule try."""
        text = "Cauzione € 500, valore di stima 75.000 €"
        assert extract_price(text) == 75000

    def test_floor_rejects_small_amounts(self):
        """Amounts not above 1000 are never returned."""
        assert extract_price("€ 900") is None
        assert extract_price("€ 1.000") is None
        assert extract_price("€ 1.001") == 1001

    def test_unresolved_returns_none(self):
        """No price at all yields None, not an empty value."""
        assert extract_price("Nessun prezzo indicato") is None
        assert extract_price("") is None
        assert extract_price(None) is None

    def test_run_chain_respects_rule_order(self):
        """Reversing the chain changes which rule wins."""
        text = "Prezzo: 250.000 - offerta corrente € 180.000"
        assert run_chain(tuple(reversed(PRICE_RULES)), text) == 250000


class TestParsePriceText:
    """Test parsing of dedicated price elements."""

    def test_chain_first(self):
        """Element text with a currency sign goes through the chain."""
        assert parse_price_text("€ 150.000,00") == 150000

    def test_digits_only_fallback(self):
        """Bare grouped amounts are parsed by stripping separators."""
        assert parse_price_text("150 000") == 150000

    def test_decimal_tail_is_dropped(self):
        """A trailing decimal part is not folded into the integer."""
        assert parse_price_text("150000,00") == 150000

    def test_empty(self):
        """Empty or digit-free text yields None."""
        assert parse_price_text("") is None
        assert parse_price_text("da definire") is None


class TestExtractLocality:
    """Test locality extraction."""

    def test_labelled(self):
        """Labelled municipality."""
        assert extract_locality("Comune: Bergamo\nVia Roma 12") == "Bergamo"

    def test_labelled_with_di(self):
        """'Comune di X' form stops at the separator."""
        assert extract_locality("Comune di Roma - Lotto 1") == "Roma"

    def test_labelled_across_line_break(self):
        """Label and value in separate text nodes, joined by a newline."""
        assert extract_locality("Comune:\nBergamo\nPrezzo base € 150.000") == "Bergamo"

    def test_label_without_separator_not_matched(self):
        """The label must be a whole word followed by a colon or a space."""
        assert extract_locality("comunemente Richiesto") is None

    def test_labelled_multi_word(self):
        """Multi-word names with lowercase connectors."""
        assert extract_locality("Località: San Donato Milanese") == "San Donato Milanese"
        assert extract_locality("Comune: Castiglione del Lago") == "Castiglione del Lago"

    def test_prepositional(self):
        """'a/in' followed by a capitalized name."""
        assert extract_locality("Villa a Brescia\nPiazza Loggia 3") == "Brescia"

    def test_prepositional_skips_street_names(self):
        """'in Via ...' is not a locality."""
        assert extract_locality("Appartamento in Via Roma") is None

    def test_province_code(self):
        """Name followed by a two-letter province code."""
        assert extract_locality("Lotto 3 - Treviglio (BG)") == "Treviglio"

    def test_length_bounds(self):
        """Captures of two characters or fewer are rejected."""
        assert extract_locality("Comune: Ai") is None

    def test_unresolved(self):
        """Lowercase text without markers is unresolved."""
        assert extract_locality("immobile residenziale") is None


class TestExtractAddress:
    """Test address extraction."""

    def test_up_to_comma(self):
        """Address stops at the next comma."""
        assert extract_address("Via Garibaldi 5, Milano") == "Via Garibaldi 5"

    def test_up_to_line_break(self):
        """Address stops at the line break."""
        assert extract_address("Corso Italia 22\nTerzo piano") == "Corso Italia 22"

    def test_locality_abbreviation(self):
        """'Loc.' abbreviation is a street keyword."""
        assert extract_address("Loc. Case Sparse 4\nAltro") == "Loc. Case Sparse 4"

    def test_keyword_inside_word_ignored(self):
        """'via' inside another word does not match."""
        assert extract_address("Immobile in vendita") is None


class TestExtractAuctionDate:
    """Test auction date extraction."""

    def test_numeric_slash(self):
        assert extract_auction_date("Data asta: 15/03/2025") == "15/03/2025"

    def test_numeric_dash_and_dot(self):
        assert extract_auction_date("Asta il 05-06-2025") == "05-06-2025"
        assert extract_auction_date("Asta il 5.6.25") == "5.6.25"

    def test_month_name(self):
        """Day, month name and year."""
        assert extract_auction_date("Vendita del 12 marzo 2025 ore 10") == "12 marzo 2025"

    def test_mixed_separators_rejected(self):
        """Separators must be consistent."""
        assert extract_auction_date("05/06-2025") is None

    def test_calendar_not_validated(self):
        """Impossible dates are returned as printed."""
        assert extract_auction_date("31/02/2025") == "31/02/2025"


class TestExtractPropertyType:
    """Test property type keyword scan."""

    def test_keywords(self):
        assert extract_property_type("Appartamento al secondo piano") == "Apartment"
        assert extract_property_type("Box auto") == "Garage"
        assert extract_property_type("Terreno agricolo") == "Land"
        assert extract_property_type("Magazzino") == "Warehouse"

    def test_table_order_wins(self):
        """The first vocabulary key in table order wins, not the first in the text."""
        assert extract_property_type("Terreno con villa") == "Villa"
        assert extract_property_type("Negozio e locale deposito") == "Commercial Unit"

    def test_unknown(self):
        assert extract_property_type("Rustico") is None
