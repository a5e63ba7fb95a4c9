"""
Locale catalogs for prompt templates.

Provides:
- LocaleStore: discovery, load-once caching and fallback resolution
- BoundLocale: a resolved locale chain used while rendering
- LocaleCatalog: immutable strings for a single locale
- NumberFormat: decimal/grouping/percent conventions
"""

from .catalog import LocaleCatalog
from .formatting import FALLBACK_FORMAT, NumberFormat, number_format_for
from .store import BoundLocale, LocaleStore

__all__ = [
    "BoundLocale",
    "FALLBACK_FORMAT",
    "LocaleCatalog",
    "LocaleStore",
    "NumberFormat",
    "number_format_for",
]
