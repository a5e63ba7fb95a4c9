"""
Parsed string catalogs for a single locale.

A catalog is a nested mapping. Leaves are plain strings, strings with
``{name}`` placeholders, or pluralization records::

    inbox:
      title: Inbox
      greeting: "Hello {name}"
      messages:
        zero: No messages
        one: One message
        other: "{count} messages"
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from parley.errors import I18nKeyNotFoundError, TemplateTypeError, VariableNotFoundError

from .formatting import NumberFormat

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][\w.]*)\}")
PLURAL_FORMS = ("zero", "one", "other")

_MISSING = object()


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _lookup_path(variables: Mapping[str, Any], path: str) -> Any:
    current: Any = variables
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        else:
            return _MISSING
    return current


def interpolate_string(
    template: str,
    variables: Mapping[str, Any],
    *,
    key: str,
    locale: str,
) -> str:
    """Substitute ``{name}`` placeholders in a catalog string.

    Raises:
        VariableNotFoundError: If a placeholder has no matching variable
    """

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        value = _lookup_path(variables, name)
        if value is _MISSING:
            raise VariableNotFoundError(name, context=f"catalog key '{key}' in locale {locale}")
        return _stringify(value)

    return PLACEHOLDER_PATTERN.sub(replace, template)


def is_plural_record(entry: Any) -> bool:
    return isinstance(entry, Mapping) and "other" in entry and set(entry) <= set(PLURAL_FORMS)


def select_plural_form(entry: Mapping[str, Any], count: int | float) -> str:
    """Pick ``zero`` for 0, ``one`` for 1 and ``other`` otherwise.

    Missing ``zero``/``one`` variants fall back to ``other``.
    """
    if count == 0 and "zero" in entry:
        return "zero"
    if count == 1 and "one" in entry:
        return "one"
    return "other"


class LocaleCatalog:
    """Immutable string catalog for one locale code."""

    def __init__(
        self,
        code: str,
        strings: Mapping[str, Any],
        number_format: NumberFormat,
        text_direction: str = "ltr",
        sources: tuple[str, ...] = (),
    ):
        self._code = code
        self._strings = _freeze(strings)
        self._number_format = number_format
        self._text_direction = text_direction
        self._sources = sources

    def __repr__(self) -> str:
        return f"LocaleCatalog(code={self._code!r}, keys={len(self._strings)})"

    @property
    def code(self) -> str:
        return self._code

    @property
    def strings(self) -> Mapping[str, Any]:
        return self._strings

    @property
    def number_format(self) -> NumberFormat:
        return self._number_format

    @property
    def text_direction(self) -> str:
        return self._text_direction

    @property
    def sources(self) -> tuple[str, ...]:
        return self._sources

    def get(self, key: str) -> Any:
        """Return the raw entry for a dotted key, or None if absent."""
        entry = self._find(key)
        return None if entry is _MISSING else entry

    def has(self, key: str) -> bool:
        return self._find(key) is not _MISSING

    def get_string(self, key: str) -> str | None:
        """Return the entry for ``key`` if it is a string."""
        entry = self._find(key)
        return entry if isinstance(entry, str) else None

    def siblings(self, key: str) -> list[str]:
        """Full keys that live in the same namespace as ``key``."""
        namespace, _, _ = key.rpartition(".")
        container = self._strings if not namespace else self._find(namespace)
        if not isinstance(container, Mapping):
            return []
        prefix = f"{namespace}." if namespace else ""
        return sorted(f"{prefix}{name}" for name in container)

    def interpolate(self, key: str, variables: Mapping[str, Any]) -> str:
        template = self.require_string(key)
        return interpolate_string(template, variables, key=key, locale=self._code)

    def require_string(self, key: str) -> str:
        """Like :meth:`get_string` but raises instead of returning None."""
        entry = self._find(key)
        if entry is _MISSING:
            raise I18nKeyNotFoundError(key, self._code, self.siblings(key))
        if not isinstance(entry, str):
            raise TemplateTypeError(key, "a catalog string", describe_entry(entry))
        return entry

    def _find(self, key: str) -> Any:
        if key in self._strings:
            return self._strings[key]
        current: Any = self._strings
        for part in key.split("."):
            if isinstance(current, Mapping) and part in current:
                current = current[part]
            else:
                return _MISSING
        return current


def describe_entry(entry: Any) -> str:
    if is_plural_record(entry):
        return "a pluralization record"
    if isinstance(entry, Mapping):
        return "a namespace"
    return type(entry).__name__
