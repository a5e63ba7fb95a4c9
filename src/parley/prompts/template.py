"""
Standalone prompt templates.

A :class:`PromptTemplate` is compiled once and never changes. The fluent
``with_*`` methods return new instances carrying a variable overlay and an
optional locale; nothing is resolved until :meth:`PromptTemplate.render`.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from parley.errors import RequiredVariablesMissingError, TemplateTypeError
from parley.i18n import LocaleStore

from .models import DocumentDescriptor
from .rendering import (
    CompiledDocument,
    DocumentCache,
    compile_document,
    merge_variables,
    missing_required,
    read_document,
    render_document,
)

logger = logging.getLogger(__name__)

LOCALES_DIRNAME = "locales"

_default_store_lock = threading.Lock()


class PromptTemplate:
    """A compiled prompt document plus a render-time overlay.

    Usage:
        template = PromptTemplate.load("prompts/review.md")
        text = (
            template.with_variable("language", "python")
            .with_locale("es-MX")
            .render({"diff": diff})
        )
    """

    __slots__ = ("_document", "_variables", "_locale", "_locale_store", "_base_dir", "_documents", "_default_store")

    def __init__(
        self,
        document: CompiledDocument,
        *,
        variables: Mapping[str, Any] | None = None,
        locale: str | None = None,
        locale_store: LocaleStore | None = None,
        base_dir: Path | None = None,
        documents: DocumentCache | None = None,
    ):
        self._document = document
        self._variables: dict[str, Any] = dict(variables or {})
        self._locale = locale
        self._locale_store = locale_store
        self._base_dir = base_dir
        self._documents = documents if documents is not None else DocumentCache()
        self._default_store: LocaleStore | None = None

    @classmethod
    def load(cls, path: str | Path) -> PromptTemplate:
        """Load a template from a file.

        Raises:
            PromptFileReadError: If the file cannot be read
            PromptParseError: If the frontmatter or body is malformed
        """
        return cls(read_document(Path(path)))

    @classmethod
    def from_content(
        cls,
        content: str,
        name: str | None = None,
        base_dir: str | Path | None = None,
    ) -> PromptTemplate:
        """Build a template from in-memory text.

        ``base_dir`` is where partials are resolved; it defaults to the
        current working directory at render time.
        """
        document = compile_document(content, name or "<string>")
        return cls(document, base_dir=Path(base_dir) if base_dir is not None else None)

    def __repr__(self) -> str:
        return f"PromptTemplate(name={self.name!r}, locale={self._locale!r})"

    def _replace(self, **changes: Any) -> PromptTemplate:
        state = {
            "variables": self._variables,
            "locale": self._locale,
            "locale_store": self._locale_store,
            "base_dir": self._base_dir,
            "documents": self._documents,
        }
        state.update(changes)
        replaced = type(self)(self._document, **state)
        if "base_dir" not in changes:
            replaced._default_store = self._default_store
        return replaced

    def _fallback_store(self) -> LocaleStore:
        """The ``<base_dir>/locales`` store, created on first use and carried over to derived templates."""
        if self._default_store is None:
            with _default_store_lock:
                if self._default_store is None:
                    self._default_store = LocaleStore(self.base_dir / LOCALES_DIRNAME)
        return self._default_store

    @property
    def name(self) -> str:
        return self._document.name

    @property
    def source_path(self) -> Path | None:
        return self._document.source_path

    @property
    def content(self) -> str:
        """Template body without the frontmatter block."""
        return self._document.body

    @property
    def descriptor(self) -> DocumentDescriptor:
        return self._document.descriptor

    @property
    def default_variables(self) -> dict[str, Any]:
        return self._document.descriptor.default_variables

    @property
    def required_variables(self) -> list[str]:
        return self._document.descriptor.required_variables

    @property
    def includes(self) -> list[str]:
        return self._document.descriptor.include_paths

    @property
    def catalog_key(self) -> str | None:
        return self._document.descriptor.catalog_key

    @property
    def variables(self) -> dict[str, Any]:
        """The fluent variable overlay (a copy)."""
        return dict(self._variables)

    @property
    def locale(self) -> str | None:
        return self._locale

    @property
    def locale_store(self) -> LocaleStore | None:
        return self._locale_store

    @property
    def base_dir(self) -> Path:
        """Directory partials resolve against: explicit, then the source file's, then cwd."""
        if self._base_dir is not None:
            return self._base_dir
        if self._document.source_path is not None:
            return self._document.source_path.parent
        return Path.cwd()

    def with_variable(self, name: str, value: Any) -> PromptTemplate:
        return self._replace(variables={**self._variables, name: value})

    def with_variables(self, mapping: Mapping[str, Any] | None = None, **kwargs: Any) -> PromptTemplate:
        """Overlay several variables; later values win."""
        return self._replace(variables={**self._variables, **(mapping or {}), **kwargs})

    def with_locale(self, code: str, store: LocaleStore | None = None) -> PromptTemplate:
        """Render with ``code``.

        Without a store (passed here or attached earlier), catalogs are read
        from ``<base_dir>/locales``.
        """
        store = store or self._locale_store or self._fallback_store()
        return self._replace(locale=code, locale_store=store)

    def with_locale_store(self, store: LocaleStore) -> PromptTemplate:
        return self._replace(locale_store=store)

    def with_base_dir(self, path: str | Path) -> PromptTemplate:
        return self._replace(base_dir=Path(path))

    def validate_variables(self, variables: Mapping[str, Any] | None = None) -> None:
        """Check required variables against defaults, the overlay and ``variables``.

        Raises:
            RequiredVariablesMissingError: Naming every missing variable
        """
        merged = merge_variables(self.descriptor, {**self._variables, **(variables or {})})
        missing = missing_required(self.descriptor, merged)
        if missing:
            raise RequiredVariablesMissingError(missing, template=self.name)

    def render(self, variables: Mapping[str, Any] | None = None, *, locale: str | None = None) -> str:
        """Render the template.

        Args:
            variables: Values overriding the fluent overlay and the defaults
            locale: Locale code overriding the one set with :meth:`with_locale`

        Returns:
            The rendered text

        Raises:
            PromptError: On any parse, lookup, structural or locale failure
        """
        overlay = {**self._variables, **(variables or {})}
        code = locale or self._locale
        store = self._locale_store
        if code is not None and store is None:
            store = self._fallback_store()

        bound = store.bind(code) if code is not None and store is not None else None
        if bound is not None:
            logger.debug(f"Rendering '{self.name}' with locale '{bound.code}'")

        return render_document(
            self._document,
            overlay,
            base_dir=self.base_dir,
            locale=bound,
            locale_store=store,
            documents=self._documents,
        )

    def render_with_context(self, context: BaseModel) -> str:
        """Render using the fields of a pydantic model as variables."""
        if not isinstance(context, BaseModel):
            raise TemplateTypeError("context", "a pydantic model", type(context).__name__)
        return self.render(context.model_dump(mode="json"))
