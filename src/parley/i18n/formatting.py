"""Locale-aware number and percentage formatting."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from parley.errors import TemplateTypeError

NBSP = "\u00a0"
NARROW_NBSP = "\u202f"


@dataclass(frozen=True)
class NumberFormat:
    """Decimal separator, digit grouping and percent placement for one locale.

    ``percent`` is a pattern containing ``{value}``.
    """

    decimal: str = "."
    group: str = ""
    percent: str = "{value}%"

    @classmethod
    def from_mapping(cls, data: dict[str, Any], base: NumberFormat | None = None) -> NumberFormat:
        """Build a format from a catalog ``number_format`` section, filling gaps from ``base``."""
        base = base or FALLBACK_FORMAT
        percent = str(data.get("percent", base.percent))
        if "{value}" not in percent:
            raise ValueError(f"percent pattern must contain '{{value}}', got {percent!r}")
        return cls(
            decimal=str(data.get("decimal", base.decimal)),
            group=str(data.get("group", base.group)),
            percent=percent,
        )

    def format_number(self, value: Any, digits: int = 2) -> str:
        """Format a number; integers keep no decimals, everything else gets ``digits``."""
        _check_number(value)
        if isinstance(value, int):
            int_part, frac = str(abs(value)), ""
        else:
            int_part, _, frac = f"{abs(value):.{digits}f}".partition(".")
        text = self._join(int_part, frac)
        return f"-{text}" if value < 0 else text

    def format_percent(self, ratio: Any, digits: int = 2) -> str:
        """Format a ratio (0.125) as a percentage (12.5%), trimming trailing zeros."""
        _check_number(ratio)
        percentage = Decimal(str(ratio)) * 100
        rendered = f"{abs(percentage):.{digits}f}"
        if "." in rendered:
            rendered = rendered.rstrip("0").rstrip(".")
        int_part, _, frac = rendered.partition(".")
        text = self._join(int_part, frac)
        if percentage < 0:
            text = f"-{text}"
        return self.percent.format(value=text)

    def _join(self, int_part: str, frac: str) -> str:
        grouped = self._group_digits(int_part)
        return f"{grouped}{self.decimal}{frac}" if frac else grouped

    def _group_digits(self, digits: str) -> str:
        if not self.group or len(digits) <= 3:
            return digits
        head = len(digits) % 3
        chunks = [digits[:head]] if head else []
        chunks.extend(digits[i : i + 3] for i in range(head, len(digits), 3))
        return self.group.join(chunks)


def _check_number(value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise TemplateTypeError("value", "a number", type(value).__name__)


# Used when no locale is bound: period decimal separator, no grouping.
FALLBACK_FORMAT = NumberFormat()

LANGUAGE_FORMATS: dict[str, NumberFormat] = {
    "en": NumberFormat(".", ",", "{value}%"),
    "de": NumberFormat(",", ".", f"{{value}}{NBSP}%"),
    "es": NumberFormat(",", ".", f"{{value}}{NBSP}%"),
    "fr": NumberFormat(",", NARROW_NBSP, f"{{value}}{NBSP}%"),
    "it": NumberFormat(",", ".", "{value}%"),
    "pt": NumberFormat(",", ".", "{value}%"),
    "nl": NumberFormat(",", ".", "{value}%"),
    "ru": NumberFormat(",", NBSP, f"{{value}}{NBSP}%"),
    "ja": NumberFormat(".", ",", "{value}%"),
    "zh": NumberFormat(".", ",", "{value}%"),
    "ar": NumberFormat(".", ",", "{value}%"),
}

RTL_LANGUAGES = frozenset({"ar", "he", "fa", "ur"})


def language_of(locale: str) -> str:
    """Return the base language of a locale code (``pt_BR`` -> ``pt``)."""
    return locale.replace("_", "-").split("-", 1)[0].lower()


def number_format_for(locale: str) -> NumberFormat:
    """Built-in conventions for a locale, keyed by its base language."""
    return LANGUAGE_FORMATS.get(language_of(locale), LANGUAGE_FORMATS["en"])
