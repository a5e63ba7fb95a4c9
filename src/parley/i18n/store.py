"""
Locale catalog discovery, caching and fallback resolution.

Catalogs live under one or more search roots::

    locales/
      en/
        common.yaml
        prompts.yaml
      es.yaml
      es-MX/
        common.yml

Resolution walks the fallback chain ``es-MX -> es -> <default>`` and stops
at the first code that has a catalog under any root.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from parley.errors import (
    I18nKeyNotFoundError,
    LocaleNotFoundError,
    PromptFileReadError,
    PromptParseError,
    TemplateTypeError,
)

from .catalog import (
    LocaleCatalog,
    describe_entry,
    interpolate_string,
    is_plural_record,
    select_plural_form,
)
from .formatting import RTL_LANGUAGES, NumberFormat, language_of, number_format_for

logger = logging.getLogger(__name__)

CATALOG_EXTENSIONS = (".yaml", ".yml", ".json")
LOCALE_CODE_PATTERN = re.compile(r"^[A-Za-z0-9]+(?:[-_][A-Za-z0-9]+)*\Z")

# Top-level catalog keys that configure the locale rather than hold strings
NUMBER_FORMAT_KEY = "number_format"
TEXT_DIRECTION_KEY = "text_direction"


class LocaleStore:
    """Process-local cache of locale catalogs.

    Each locale is parsed at most once per store. Concurrent ``load`` calls
    for the same uncached code wait on a per-code lock, so only one thread
    reads the files and every caller receives the same catalog object.
    Failed loads are not cached.

    Usage:
        store = LocaleStore("prompts/locales", default_locale="en")
        bound = store.bind("es-MX")   # resolves to "es" if no es-MX catalog
        bound.interpolate("greeting", {"name": "Ana"})
    """

    def __init__(
        self,
        roots: str | Path | Sequence[str | Path],
        default_locale: str = "en",
    ):
        if isinstance(roots, (str, Path)):
            roots = [roots]
        self._roots: tuple[Path, ...] = tuple(Path(r) for r in roots)
        self._default_locale = default_locale
        self._cache: dict[str, LocaleCatalog] = {}
        self._chains: dict[str, tuple[str, ...]] = {}
        self._registry_lock = threading.Lock()
        self._load_locks: dict[str, threading.Lock] = {}

    def __repr__(self) -> str:
        roots = ", ".join(str(r) for r in self._roots)
        return f"LocaleStore(roots=[{roots}], default_locale={self._default_locale!r})"

    @property
    def roots(self) -> tuple[Path, ...]:
        return self._roots

    @property
    def default_locale(self) -> str:
        return self._default_locale

    @staticmethod
    def is_valid_locale(locale: str) -> bool:
        """Alphanumerics separated by ``-`` or ``_``, not ending in a separator."""
        return bool(locale) and LOCALE_CODE_PATTERN.match(locale) is not None

    @staticmethod
    def parent_locale(locale: str) -> str | None:
        """Strip the regional suffix: ``es-MX`` -> ``es``. None for bare languages."""
        base = re.split(r"[-_]", locale, maxsplit=1)[0]
        return base if base != locale else None

    def fallback_chain(self, requested: str) -> list[str]:
        """Requested code, its parent, then the default locale, without duplicates."""
        chain = [requested, self.parent_locale(requested), self._default_locale]
        return list(dict.fromkeys(code for code in chain if code))

    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        """Drop every cached catalog and resolved chain; the next bind re-reads from disk."""
        with self._registry_lock:
            self._cache.clear()
            self._chains.clear()

    def has_locale(self, locale: str) -> bool:
        return bool(self._catalog_files(locale))

    def available_locales(self) -> list[str]:
        """Locale codes that have a catalog under any root."""
        codes: set[str] = set()
        for root in self._roots:
            if not root.is_dir():
                continue
            for entry in root.iterdir():
                if entry.is_dir():
                    code = entry.name
                elif entry.is_file() and entry.suffix.lower() in CATALOG_EXTENSIONS:
                    code = entry.stem
                else:
                    continue
                if self.is_valid_locale(code) and self.has_locale(code):
                    codes.add(code)
        return sorted(codes)

    def resolve(self, requested: str) -> str:
        """Return the first code in the fallback chain that has a catalog.

        Raises:
            LocaleNotFoundError: If the code is malformed or no catalog exists
        """
        if not self.is_valid_locale(requested):
            raise LocaleNotFoundError(requested, reason="invalid locale code")

        chain = self.fallback_chain(requested)
        for code in chain:
            if self.has_locale(code):
                if code != requested:
                    logger.debug(f"Locale '{requested}' resolved to '{code}'")
                return code

        raise LocaleNotFoundError(requested, tried=chain, roots=self._roots)

    def load(self, locale: str) -> LocaleCatalog:
        """Load and cache the catalog for an exact locale code (no fallback).

        Raises:
            LocaleNotFoundError: If no catalog files exist for the code
            PromptParseError: If a catalog file is malformed
            PromptFileReadError: If a catalog file cannot be read
        """
        catalog = self._cache.get(locale)
        if catalog is not None:
            return catalog

        with self._registry_lock:
            lock = self._load_locks.setdefault(locale, threading.Lock())

        with lock:
            catalog = self._cache.get(locale)
            if catalog is None:
                catalog = self._read_catalog(locale)
                self._cache[locale] = catalog
                logger.debug(f"Loaded locale '{locale}' from {', '.join(catalog.sources)}")
        return catalog

    def bind(self, requested: str | None = None) -> BoundLocale:
        """Resolve ``requested`` (default locale if None) and load its fallback chain.

        The resolved chain is remembered once every catalog on it has loaded,
        so later binds of the same code are served from the cache without
        touching the filesystem.
        """
        requested = requested or self._default_locale
        codes = self._chains.get(requested)
        if codes is None:
            resolved = self.resolve(requested)
            chain = self.fallback_chain(requested)
            codes = tuple(c for c in chain[chain.index(resolved) :] if self.has_locale(c))

        catalogs = tuple(self.load(code) for code in codes)
        with self._registry_lock:
            self._chains.setdefault(requested, codes)
        return BoundLocale(requested, catalogs)

    def get_string(self, key: str, locale: str | None = None) -> str:
        """Catalog string for ``key`` in ``locale`` (default locale if None).

        Raises:
            I18nKeyNotFoundError: If no catalog on the chain defines ``key``
            TemplateTypeError: If the entry is a namespace or plural record
        """
        return self.bind(locale).get_string(key)

    def interpolate(
        self,
        key: str,
        variables: Mapping[str, Any],
        locale: str | None = None,
    ) -> str:
        return self.bind(locale).interpolate(key, variables)

    def _catalog_files(self, locale: str) -> list[Path]:
        if not self.is_valid_locale(locale):
            return []
        for root in self._roots:
            locale_dir = root / locale
            if locale_dir.is_dir():
                files = sorted(
                    p
                    for p in locale_dir.iterdir()
                    if p.is_file() and p.suffix.lower() in CATALOG_EXTENSIONS
                )
                if files:
                    return files
            for ext in CATALOG_EXTENSIONS:
                candidate = root / f"{locale}{ext}"
                if candidate.is_file():
                    return [candidate]
        return []

    def _read_catalog(self, locale: str) -> LocaleCatalog:
        files = self._catalog_files(locale)
        if not files:
            raise LocaleNotFoundError(locale, tried=[locale], roots=self._roots)

        strings: dict[str, Any] = {}
        for path in files:
            data = _parse_catalog_file(path)
            for key in data.keys() & strings.keys():
                logger.warning(f"Locale '{locale}': key '{key}' in {path.name} overrides an earlier file")
            strings.update(data)

        number_format = number_format_for(locale)
        raw_format = strings.pop(NUMBER_FORMAT_KEY, None)
        if raw_format is not None:
            if not isinstance(raw_format, dict):
                raise PromptParseError(
                    f"'{NUMBER_FORMAT_KEY}' must be a mapping", source=f"locale {locale}"
                )
            try:
                number_format = NumberFormat.from_mapping(raw_format, base=number_format)
            except ValueError as e:
                raise PromptParseError(str(e), source=f"locale {locale}") from e

        direction = strings.pop(TEXT_DIRECTION_KEY, None)
        if direction not in ("ltr", "rtl"):
            direction = "rtl" if language_of(locale) in RTL_LANGUAGES else "ltr"

        return LocaleCatalog(
            locale,
            strings,
            number_format,
            text_direction=direction,
            sources=tuple(str(p) for p in files),
        )


def _parse_catalog_file(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PromptFileReadError(path, str(e)) from e

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            data = yaml.safe_load(content)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise PromptParseError(f"Failed to parse locale file: {e}", source=str(path)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise PromptParseError("Locale file must contain a mapping", source=str(path))
    return {str(k): v for k, v in data.items()}


class BoundLocale:
    """A resolved locale plus the rest of its fallback chain.

    Key lookups try each catalog in order; errors name the resolved
    (first) locale.
    """

    def __init__(self, requested: str, catalogs: tuple[LocaleCatalog, ...]):
        if not catalogs:
            raise LocaleNotFoundError(requested)
        self.requested = requested
        self.catalogs = catalogs

    def __repr__(self) -> str:
        chain = " -> ".join(c.code for c in self.catalogs)
        return f"BoundLocale(requested={self.requested!r}, chain={chain})"

    @property
    def code(self) -> str:
        return self.catalogs[0].code

    @property
    def number_format(self) -> NumberFormat:
        return self.catalogs[0].number_format

    @property
    def text_direction(self) -> str:
        return self.catalogs[0].text_direction

    def has(self, key: str) -> bool:
        return any(catalog.has(key) for catalog in self.catalogs)

    def get(self, key: str) -> Any:
        """Raw entry from the first catalog that defines ``key``, else None."""
        for catalog in self.catalogs:
            if catalog.has(key):
                return catalog.get(key)
        return None

    def require(self, key: str) -> Any:
        for catalog in self.catalogs:
            if catalog.has(key):
                return catalog.get(key)
        raise I18nKeyNotFoundError(key, self.code, self.siblings(key))

    def siblings(self, key: str) -> list[str]:
        names: set[str] = set()
        for catalog in self.catalogs:
            names.update(catalog.siblings(key))
        return sorted(names)

    def get_string(self, key: str) -> str:
        entry = self.require(key)
        if not isinstance(entry, str):
            raise TemplateTypeError(key, "a catalog string", describe_entry(entry))
        return entry

    def interpolate(self, key: str, variables: Mapping[str, Any]) -> str:
        return interpolate_string(self.get_string(key), variables, key=key, locale=self.code)

    def plural(self, key: str, count: Any, variables: Mapping[str, Any] | None = None) -> str:
        """Select the plural variant for ``count`` and substitute ``{count}``."""
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            raise TemplateTypeError("count", "a number", type(count).__name__)
        entry = self.require(key)
        if not isinstance(entry, Mapping):
            raise TemplateTypeError(key, "a pluralization record", describe_entry(entry))
        if not is_plural_record(entry):
            raise I18nKeyNotFoundError(f"{key}.other", self.code, self.siblings(f"{key}.other"))
        form = select_plural_form(entry, count)
        merged = {**(variables or {}), "count": count}
        return interpolate_string(str(entry[form]), merged, key=f"{key}.{form}", locale=self.code)

    def format_number(self, value: Any, digits: int = 2) -> str:
        return self.number_format.format_number(value, digits)

    def format_percent(self, ratio: Any, digits: int = 2) -> str:
        return self.number_format.format_percent(ratio, digits)
