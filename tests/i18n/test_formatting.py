"""Tests for locale number and percentage conventions."""

from decimal import Decimal

import pytest

from parley.errors import TemplateTypeError
from parley.i18n import FALLBACK_FORMAT, NumberFormat, number_format_for
from parley.i18n.formatting import NARROW_NBSP, NBSP, language_of

pytestmark = pytest.mark.unit


class TestNumberFormat:
    """Tests for NumberFormat."""

    def test_fallback_has_no_grouping(self) -> None:
        assert FALLBACK_FORMAT.format_number(1234567.5) == "1234567.50"
        assert FALLBACK_FORMAT.format_number(1234567) == "1234567"

    def test_integers_have_no_decimals(self) -> None:
        assert number_format_for("en").format_number(1000) == "1,000"

    def test_digits(self) -> None:
        fmt = number_format_for("en")

        assert fmt.format_number(2.5, 0) == "2"
        assert fmt.format_number(2.0, 1) == "2.0"
        assert fmt.format_number(Decimal("1234.567"), 2) == "1,234.57"

    def test_negative_numbers(self) -> None:
        assert number_format_for("de").format_number(-1234.5) == "-1.234,50"
        assert number_format_for("en").format_percent(-0.05) == "-5%"

    def test_grouping_boundaries(self) -> None:
        fmt = number_format_for("en")

        assert fmt.format_number(999) == "999"
        assert fmt.format_number(100000) == "100,000"
        assert fmt.format_number(12345678) == "12,345,678"

    @pytest.mark.parametrize(
        ("locale", "expected"),
        [
            ("en", "1,234.50"),
            ("en-GB", "1,234.50"),
            ("de", "1.234,50"),
            ("pt_BR", "1.234,50"),
            ("fr", f"1{NARROW_NBSP}234,50"),
            ("ru", f"1{NBSP}234,50"),
            ("ja", "1,234.50"),
            ("xx", "1,234.50"),
        ],
    )
    def test_locale_conventions(self, locale: str, expected: str) -> None:
        assert number_format_for(locale).format_number(1234.5) == expected

    @pytest.mark.parametrize(
        ("ratio", "expected"),
        [(0.125, "12.5%"), (0.5, "50%"), (1, "100%"), (0.12346, "12.35%"), (12.5, "1,250%")],
    )
    def test_percent_trims_trailing_zeros(self, ratio, expected: str) -> None:
        assert number_format_for("en").format_percent(ratio) == expected

    def test_percent_placement(self) -> None:
        assert number_format_for("de").format_percent(0.125) == f"12,5{NBSP}%"
        assert number_format_for("it").format_percent(0.125) == "12,5%"

    @pytest.mark.parametrize("value", ["12", None, True, [1]])
    def test_rejects_non_numbers(self, value) -> None:
        with pytest.raises(TemplateTypeError):
            FALLBACK_FORMAT.format_number(value)

    def test_from_mapping_fills_gaps_from_base(self) -> None:
        fmt = NumberFormat.from_mapping({"group": "'"}, base=number_format_for("de"))

        assert fmt == NumberFormat(decimal=",", group="'", percent=f"{{value}}{NBSP}%")

    def test_from_mapping_requires_value_placeholder(self) -> None:
        with pytest.raises(ValueError, match="value"):
            NumberFormat.from_mapping({"percent": "pct"})


def test_language_of() -> None:
    assert language_of("pt_BR") == "pt"
    assert language_of("es-MX") == "es"
    assert language_of("EN") == "en"
