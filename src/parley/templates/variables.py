"""
Normalization of render-time variable payloads.

Payloads are reduced to a closed set of kinds before rendering: str, int,
float, Decimal, bool, None, :class:`VariableList` and :class:`VariableMap`.
Containers remember their dotted path so lookup failures can name the
full path (``user.address.city``, ``items.2.title``).
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, NamedTuple

from pydantic import BaseModel

from parley.errors import TemplateTypeError

SCALAR_TYPES = (str, int, float, Decimal, bool, type(None))
SUPPORTED_KINDS = "a string, number, boolean, null, sequence or mapping"


class VariableMap(dict):
    """A mapping variable that knows its dotted path."""

    __slots__ = ("_variable_path",)

    def __init__(self, items: Mapping[str, Any], path: str = ""):
        super().__init__(items)
        self._variable_path = path


class VariableList(list):
    """A sequence variable that knows its dotted path."""

    __slots__ = ("_variable_path",)

    def __init__(self, items: list[Any], path: str = ""):
        super().__init__(items)
        self._variable_path = path


class MappingEntry(NamedTuple):
    """One ``key``/``value`` pair produced when iterating a mapping."""

    key: str
    value: Any


def variable_path(value: Any) -> str | None:
    return getattr(value, "_variable_path", None) if isinstance(value, (VariableMap, VariableList)) else None


def child_path(parent: Any, key: Any) -> str:
    base = variable_path(parent)
    return f"{base}.{key}" if base else str(key)


def normalize_value(value: Any, path: str) -> Any:
    """Convert one payload value into a supported kind.

    Raises:
        TemplateTypeError: If the value is of an unsupported type
    """
    if isinstance(value, SCALAR_TYPES):
        return value
    if isinstance(value, BaseModel):
        return normalize_value(value.model_dump(mode="json"), path)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return VariableMap(
            {str(k): normalize_value(v, f"{path}.{k}") for k, v in value.items()},
            path,
        )
    if isinstance(value, MappingEntry):
        return MappingEntry(value.key, normalize_value(value.value, f"{path}.value"))
    if isinstance(value, (list, tuple)):
        return VariableList(
            [normalize_value(v, f"{path}.{i}") for i, v in enumerate(value)],
            path,
        )
    raise TemplateTypeError(path, SUPPORTED_KINDS, type(value).__name__)


def normalize_variables(variables: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize a top-level variable mapping, keyed by name."""
    return {str(name): normalize_value(value, str(name)) for name, value in variables.items()}
