"""
Jinja2 environment configured for fail-closed prompt rendering.

- Missing variables raise :class:`~parley.errors.VariableNotFoundError`
  naming the full dotted path, including when used as a condition.
- ``for`` loops check their operand: mappings iterate as
  :class:`~parley.templates.variables.MappingEntry` items, scalars are
  rejected with :class:`~parley.errors.TemplateTypeError`.
- ``None`` renders as an empty string, booleans as ``true``/``false`` and
  containers as JSON.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from typing import Any

from jinja2 import Environment, StrictUndefined, Template, TemplateSyntaxError, nodes
from jinja2.runtime import Undefined
from jinja2.utils import missing

from parley.errors import PromptParseError, TemplateTypeError, VariableNotFoundError

from .context import TEMPLATE_HELPERS
from .extensions import PartialExtension, SwitchExtension
from .variables import MappingEntry, VariableMap, child_path

logger = logging.getLogger(__name__)

ITERABLE_SHAPE = "a sequence or mapping"


class PathUndefined(StrictUndefined):
    """Strict undefined that keeps extending its dotted path.

    ``{{ user.address.city }}`` with no ``user`` fails naming
    ``user.address.city`` rather than just ``user``.
    """

    __slots__ = ()

    def __init__(
        self,
        hint: str | None = None,
        obj: Any = missing,
        name: str | None = None,
        exc: type[Exception] = VariableNotFoundError,
    ) -> None:
        super().__init__(hint, obj, name, exc)

    def __getattr__(self, name: str) -> Any:
        if name[:2] == "__" or name == "jinja_pass_arg":
            raise AttributeError(name)
        return self._child(name)

    def __getitem__(self, key: Any) -> PathUndefined:
        return self._child(key)

    def _child(self, key: Any) -> PathUndefined:
        return type(self)(name=f"{self._undefined_name}.{key}")

    @property
    def _undefined_message(self) -> str:
        return self._undefined_name or self._undefined_hint or "<unknown>"


def finalize_value(value: Any) -> Any:
    """Convert expression results into prompt text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, MappingEntry):
        return json.dumps({"key": value.key, "value": value.value}, ensure_ascii=False, default=str)
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return value


def loop_items(value: Any, path: str) -> Any:
    """Filter applied to every ``for`` operand."""
    if isinstance(value, Undefined):
        value._fail_with_undefined_error()
    if isinstance(value, Mapping):
        return [MappingEntry(str(k), v) for k, v in value.items()]
    if isinstance(value, (str, bytes)) or not hasattr(value, "__iter__"):
        raise TemplateTypeError(path, ITERABLE_SHAPE, type(value).__name__)
    return value


def expression_path(node: nodes.Node) -> str:
    """Best-effort dotted path of a loop operand, for error messages."""
    if isinstance(node, nodes.Name):
        return node.name
    if isinstance(node, nodes.Getattr):
        return f"{expression_path(node.node)}.{node.attr}"
    if isinstance(node, nodes.Getitem) and isinstance(node.arg, nodes.Const):
        return f"{expression_path(node.node)}.{node.arg.value}"
    if isinstance(node, nodes.Filter) and node.node is not None:
        return expression_path(node.node)
    return "<expression>"


class PromptEnvironment(Environment):
    """Environment used to compile every prompt document."""

    def __init__(self) -> None:
        super().__init__(  # nosec B701 - generating raw text prompts, not HTML
            autoescape=False,
            undefined=PathUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            finalize=finalize_value,
            extensions=[SwitchExtension, PartialExtension],
        )
        self.filters["loop_items"] = loop_items
        self.globals.update(TEMPLATE_HELPERS)

    def getattr(self, obj: Any, attribute: str) -> Any:
        # Data keys win over dict methods: {{ user.items }} reads the "items" key
        if isinstance(obj, VariableMap) and attribute in obj:
            return obj[attribute]
        value = super().getattr(obj, attribute)
        if isinstance(value, Undefined) and not isinstance(obj, Undefined):
            return self.undefined(obj=obj, name=child_path(obj, attribute))
        return value

    def getitem(self, obj: Any, argument: Any) -> Any:
        value = super().getitem(obj, argument)
        if isinstance(value, Undefined) and not isinstance(obj, Undefined):
            return self.undefined(obj=obj, name=child_path(obj, argument))
        return value

    def _parse(self, source: str, name: str | None, filename: str | None) -> nodes.Template:
        tree = super()._parse(source, name, filename)
        for loop in list(tree.find_all(nodes.For)):
            loop.iter = nodes.Filter(
                loop.iter,
                "loop_items",
                [nodes.Const(expression_path(loop.iter), lineno=loop.lineno)],
                [],
                None,
                None,
                lineno=loop.lineno,
            )
        return tree


_environment: PromptEnvironment | None = None
_environment_lock = threading.Lock()


def get_environment() -> PromptEnvironment:
    """Get or create the shared prompt environment."""
    global _environment
    if _environment is None:
        with _environment_lock:
            if _environment is None:
                _environment = PromptEnvironment()
    return _environment


def compile_template(source: str, name: str | None = None) -> Template:
    """Compile a document body once so it can be rendered repeatedly.

    Raises:
        PromptParseError: If the body has invalid template syntax
    """
    try:
        template = get_environment().from_string(source)
    except TemplateSyntaxError as e:
        raise PromptParseError(e.message or str(e), source=name, line_number=e.lineno) from e
    logger.debug(f"Compiled template {name or '<string>'}")
    return template
