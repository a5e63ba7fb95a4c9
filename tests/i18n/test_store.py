"""Tests for LocaleStore resolution, caching and BoundLocale lookups."""

import shutil
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from parley.errors import (
    I18nKeyNotFoundError,
    LocaleNotFoundError,
    PromptParseError,
    TemplateTypeError,
    VariableNotFoundError,
)
from parley.i18n import LocaleStore

pytestmark = pytest.mark.unit


class TestResolution:
    """Fallback chain: exact code, base language, default locale."""

    def test_exact_match(self, locale_store: LocaleStore) -> None:
        assert locale_store.resolve("es") == "es"

    def test_regional_code_falls_back_to_language(self, locale_store: LocaleStore) -> None:
        assert locale_store.resolve("es-MX") == "es"
        assert locale_store.resolve("es_AR") == "es"

    def test_unknown_language_falls_back_to_default(self, locale_store: LocaleStore) -> None:
        assert locale_store.resolve("fr") == "en"
        assert locale_store.resolve("fr-CA") == "en"

    def test_single_file_catalog(self, locale_store: LocaleStore) -> None:
        assert locale_store.resolve("ar") == "ar"

    def test_fallback_chain(self, locale_store: LocaleStore) -> None:
        assert locale_store.fallback_chain("es-MX") == ["es-MX", "es", "en"]
        assert locale_store.fallback_chain("en-GB") == ["en-GB", "en"]
        assert locale_store.fallback_chain("en") == ["en"]

    def test_nothing_in_chain(self, tmp_path: Path) -> None:
        store = LocaleStore(tmp_path, default_locale="en")

        with pytest.raises(LocaleNotFoundError) as exc_info:
            store.resolve("fr-CA")

        assert exc_info.value.locale == "fr-CA"
        assert exc_info.value.tried == ["fr-CA", "fr", "en"]

    @pytest.mark.parametrize("code", ["", "../en", "en-", "e n", "en/US"])
    def test_invalid_codes(self, locale_store: LocaleStore, code: str) -> None:
        assert not LocaleStore.is_valid_locale(code)
        with pytest.raises(LocaleNotFoundError, match="invalid locale code"):
            locale_store.resolve(code)

    def test_available_locales(self, locale_store: LocaleStore) -> None:
        assert locale_store.available_locales() == ["ar", "en", "es"]

    def test_multiple_roots_searched_in_order(self, write_file, tmp_path: Path) -> None:
        write_file("first/en.yaml", "hello: first\n")
        write_file("second/en.yaml", "hello: second\n")
        write_file("second/de.yaml", "hello: zweite\n")
        store = LocaleStore([tmp_path / "first", tmp_path / "second"])

        assert store.get_string("hello") == "first"
        assert store.get_string("hello", "de") == "zweite"

    def test_store_get_string_fails_closed(self, locale_store: LocaleStore) -> None:
        with pytest.raises(I18nKeyNotFoundError) as exc_info:
            locale_store.get_string("inbox.titel", "es")

        assert exc_info.value.locale == "es"
        assert "inbox.title" in exc_info.value.siblings


class TestLoading:
    """Catalog loading and caching."""

    def test_load_is_cached(self, locale_store: LocaleStore) -> None:
        first = locale_store.load("en")
        second = locale_store.load("en")

        assert first is second
        assert locale_store.cache_size() == 1

    def test_clear_cache(self, locale_store: LocaleStore) -> None:
        first = locale_store.load("en")
        locale_store.clear_cache()

        assert locale_store.cache_size() == 0
        assert locale_store.load("en") is not first

    def test_concurrent_loads_parse_once(self, locale_store: LocaleStore, monkeypatch) -> None:
        calls = []
        lock = threading.Lock()
        original = locale_store._read_catalog

        def slow_read(locale: str):
            with lock:
                calls.append(locale)
            time.sleep(0.05)
            return original(locale)

        monkeypatch.setattr(locale_store, "_read_catalog", slow_read)

        with ThreadPoolExecutor(max_workers=8) as pool:
            catalogs = list(pool.map(lambda _: locale_store.load("es"), range(16)))

        assert calls == ["es"]
        assert all(catalog is catalogs[0] for catalog in catalogs)

    def test_concurrent_bind_of_different_locales(self, locale_store: LocaleStore) -> None:
        codes = ["en", "es", "es-MX", "ar", "fr"] * 4

        with ThreadPoolExecutor(max_workers=5) as pool:
            resolved = list(pool.map(lambda code: locale_store.bind(code).code, codes))

        assert resolved == ["en", "es", "es", "ar", "en"] * 4
        assert locale_store.cache_size() == 3

    def test_cached_bind_does_not_touch_the_filesystem(self, locale_root: Path, locale_store: LocaleStore) -> None:
        first = locale_store.bind("es-MX")
        shutil.rmtree(locale_root)

        second = locale_store.bind("es-MX")

        assert [c.code for c in second.catalogs] == ["es", "en"]
        assert second.catalogs[0] is first.catalogs[0]
        assert second.get_string("inbox.title") == "Bandeja de entrada"

    def test_clear_cache_forgets_resolved_chains(self, write_file, tmp_path: Path) -> None:
        write_file("locales/en.yaml", "hello: Hi\n")
        store = LocaleStore(tmp_path / "locales")
        assert store.bind("es").code == "en"

        write_file("locales/es.yaml", "hello: Hola\n")
        assert store.bind("es").code == "en"

        store.clear_cache()
        assert store.bind("es").code == "es"

    def test_failed_load_is_not_cached(self, write_file, tmp_path: Path) -> None:
        catalog = write_file("locales/en.yaml", "greeting: [broken\n")
        store = LocaleStore(tmp_path / "locales")

        with pytest.raises(PromptParseError):
            store.load("en")
        assert store.cache_size() == 0

        catalog.write_text("greeting: fixed\n", encoding="utf-8")

        assert store.load("en").get("greeting") == "fixed"

    def test_split_catalog_files_are_merged(self, write_file, tmp_path: Path) -> None:
        write_file("locales/en/a.yaml", "one: 1\nshared: from a\n")
        write_file("locales/en/b.json", '{"two": "2", "shared": "from b"}')
        store = LocaleStore(tmp_path / "locales")

        catalog = store.load("en")

        assert catalog.get("one") == 1
        assert catalog.get("two") == "2"
        assert catalog.get("shared") == "from b"
        assert len(catalog.sources) == 2

    def test_non_mapping_catalog(self, write_file, tmp_path: Path) -> None:
        write_file("locales/en.yaml", "- a\n- b\n")

        with pytest.raises(PromptParseError, match="must contain a mapping"):
            LocaleStore(tmp_path / "locales").load("en")

    def test_load_missing_locale(self, locale_store: LocaleStore) -> None:
        with pytest.raises(LocaleNotFoundError):
            locale_store.load("de")


class TestBoundLocale:
    """Key lookup, interpolation and pluralization through a bound locale."""

    def test_get_string_and_interpolate(self, locale_store: LocaleStore) -> None:
        bound = locale_store.bind("es")

        assert bound.code == "es"
        assert bound.get_string("inbox.title") == "Bandeja de entrada"
        assert bound.interpolate("greeting", {"name": "Ana"}) == "¡Hola Ana!"

    def test_key_falls_back_through_chain(self, locale_store: LocaleStore) -> None:
        bound = locale_store.bind("es-MX")

        assert bound.code == "es"
        assert bound.get_string("farewell") == "Goodbye"

    def test_bind_default(self, locale_store: LocaleStore) -> None:
        assert locale_store.bind().code == "en"

    def test_missing_key_reports_locale_and_siblings(self, locale_store: LocaleStore) -> None:
        bound = locale_store.bind("es")

        with pytest.raises(I18nKeyNotFoundError) as exc_info:
            bound.get_string("inbox.titel")

        error = exc_info.value
        assert error.key == "inbox.titel"
        assert error.locale == "es"
        assert error.siblings == ["inbox.messages", "inbox.title", "inbox.unread"]
        assert "inbox.title" in str(error)

    def test_missing_placeholder_variable(self, locale_store: LocaleStore) -> None:
        with pytest.raises(VariableNotFoundError) as exc_info:
            locale_store.interpolate("greeting", {}, locale="en")

        assert exc_info.value.name == "name"
        assert "greeting" in str(exc_info.value)

    def test_namespace_is_not_a_string(self, locale_store: LocaleStore) -> None:
        with pytest.raises(TemplateTypeError):
            locale_store.bind("en").get_string("inbox")

    @pytest.mark.parametrize(
        ("count", "expected"),
        [(0, "No messages"), (1, "One message"), (2, "2 messages"), (10, "10 messages")],
    )
    def test_plural_boundaries(self, locale_store: LocaleStore, count: int, expected: str) -> None:
        assert locale_store.bind("en").plural("inbox.messages", count) == expected

    def test_plural_missing_forms_fall_back_to_other(self, locale_store: LocaleStore) -> None:
        bound = locale_store.bind("en")

        assert bound.plural("inbox.unread", 0) == "0 unread"
        assert bound.plural("inbox.unread", 1) == "1 unread"

    def test_plural_record_without_other(self, write_file, tmp_path: Path) -> None:
        write_file("locales/en.yaml", "items:\n  one: One item\n  zero: None\n")
        bound = LocaleStore(tmp_path / "locales").bind("en")

        with pytest.raises(I18nKeyNotFoundError) as exc_info:
            bound.plural("items", 3)

        assert exc_info.value.key == "items.other"

    def test_plural_requires_number(self, locale_store: LocaleStore) -> None:
        with pytest.raises(TemplateTypeError):
            locale_store.bind("en").plural("inbox.messages", "2")

    def test_number_format_and_direction(self, locale_store: LocaleStore) -> None:
        assert locale_store.bind("es").format_number(1234567.891) == "1.234.567,89"
        assert locale_store.bind("en").format_percent(0.125) == "12.5%"
        assert locale_store.bind("ar").text_direction == "rtl"

    def test_catalog_overrides_number_format(self, write_file, tmp_path: Path) -> None:
        write_file(
            "locales/en.yaml",
            """\
            number_format:
              decimal: ","
              group: " "
              percent: "{value} pct"
            text_direction: rtl
            hello: hi
            """,
        )
        bound = LocaleStore(tmp_path / "locales").bind("en")

        assert bound.format_number(1234.5) == "1 234,50"
        assert bound.format_percent(0.5) == "50 pct"
        assert bound.text_direction == "rtl"
        assert not bound.has("number_format")

    def test_invalid_number_format_override(self, write_file, tmp_path: Path) -> None:
        write_file("locales/en.yaml", 'number_format:\n  percent: "%"\n')

        with pytest.raises(PromptParseError, match="value"):
            LocaleStore(tmp_path / "locales").load("en")
