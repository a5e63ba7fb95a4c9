"""
Per-render state shared with template helpers.

Jinja2 globals are shared by every template compiled in an environment, so
the state of the render in progress (variables, bound locale, include
handler) is published through a :class:`contextvars.ContextVar`. Each
render call activates its own frame and restores the previous one when it
finishes, which keeps concurrent renders on different threads or tasks
isolated.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from jinja2 import Undefined

from parley.errors import I18nKeyNotFoundError, TemplateRenderError, TemplateTypeError
from parley.i18n import FALLBACK_FORMAT, BoundLocale, LocaleStore, NumberFormat

logger = logging.getLogger(__name__)

IncludeHandler = Callable[["RenderFrame", str, Mapping[str, Any]], str]

_current_frame: ContextVar[RenderFrame | None] = ContextVar("parley_render_frame", default=None)


class RenderFrame:
    """State of one document render (a partial gets a frame of its own)."""

    def __init__(
        self,
        variables: Mapping[str, Any],
        *,
        locale: BoundLocale | None = None,
        locale_store: LocaleStore | None = None,
        catalog_key: str | None = None,
        include: IncludeHandler | None = None,
    ):
        self.variables = variables
        self.catalog_key = catalog_key
        self.locale = locale
        self.locale_store = locale_store
        self._include = include
        self._default_locale: BoundLocale | None = None

    def catalog(self, key: str) -> BoundLocale:
        """The locale used for catalog lookups.

        An explicitly requested locale wins; otherwise the attached store's
        default locale is bound on first use.
        """
        if self.locale is not None:
            return self.locale
        if self.locale_store is None:
            raise I18nKeyNotFoundError(key, None)
        if self._default_locale is None:
            logger.debug(f"No locale requested; binding default locale for key '{key}'")
            self._default_locale = self.locale_store.bind(None)
        return self._default_locale

    @property
    def number_format(self) -> NumberFormat:
        return self.locale.number_format if self.locale is not None else FALLBACK_FORMAT

    def include(self, path: str, params: Mapping[str, Any]) -> str:
        if self._include is None:
            raise TemplateRenderError(f"partial '{path}' cannot be resolved outside a document render")
        return self._include(self, path, params)


@contextmanager
def activate(frame: RenderFrame) -> Iterator[RenderFrame]:
    """Make ``frame`` the current render frame for the duration of the block."""
    token = _current_frame.set(frame)
    try:
        yield frame
    finally:
        _current_frame.reset(token)


def current_frame() -> RenderFrame:
    frame = _current_frame.get()
    if frame is None:
        raise TemplateRenderError("template helpers can only be used while rendering a prompt")
    return frame


def _require_defined(*values: Any) -> None:
    for value in values:
        if isinstance(value, Undefined):
            value._fail_with_undefined_error()


def _catalog_key(frame: RenderFrame, bound: BoundLocale, key: str) -> str:
    """Key under the document's namespace, or the bare key if only that exists.

    When neither exists the namespaced key is returned, so the error lists
    the keys of the namespace.
    """
    namespace = frame.catalog_key
    if namespace and not key.startswith(f"{namespace}."):
        scoped = f"{namespace}.{key}"
        if bound.has(scoped) or not bound.has(key):
            return scoped
    return key


def translate(key: str, /, **params: Any) -> str:
    """Template helper: ``{{ t("greeting.hello", name=user.name) }}``.

    Placeholders are filled from the inline parameters first, then from
    the render variables.
    """
    _require_defined(key)
    if not isinstance(key, str):
        raise TemplateTypeError("key", "a catalog key string", type(key).__name__)
    frame = current_frame()
    bound = frame.catalog(key)
    resolved = _catalog_key(frame, bound, key)
    return bound.interpolate(resolved, {**frame.variables, **params})


def plural(key: str, count: Any, /, **params: Any) -> str:
    """Template helper: ``{{ plural("inbox.messages", unread) }}``."""
    _require_defined(key, count)
    frame = current_frame()
    bound = frame.catalog(key)
    resolved = _catalog_key(frame, bound, key)
    return bound.plural(resolved, count, {**frame.variables, **params})


def format_number(value: Any, digits: int = 2) -> str:
    _require_defined(value)
    return current_frame().number_format.format_number(value, digits)


def format_percent(value: Any, digits: int = 2) -> str:
    _require_defined(value)
    return current_frame().number_format.format_percent(value, digits)


def text_direction() -> str:
    frame = current_frame()
    return frame.locale.text_direction if frame.locale is not None else "ltr"


TEMPLATE_HELPERS: dict[str, Callable[..., str]] = {
    "t": translate,
    "i18n": translate,
    "plural": plural,
    "format_number": format_number,
    "format_percent": format_percent,
    "text_direction": text_direction,
}
