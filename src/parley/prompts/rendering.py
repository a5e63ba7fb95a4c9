"""
Document compilation and the render pipeline.

One render call:

1. merge variables (explicit overlay over document defaults)
2. check required variables
3. verify the declared ``includes`` exist under the base directory
4. evaluate the compiled body, recursing into partials with the same
   merged variables plus any inline parameters

The include chain is carried through nested renders so a cycle is
reported with the documents that form it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any

from jinja2 import Template

from parley.errors import (
    IncludeCycleError,
    IncludeNotFoundError,
    PromptError,
    PromptFileReadError,
    PromptParseError,
    RequiredVariablesMissingError,
    TemplateRenderError,
)
from parley.i18n import BoundLocale, LocaleStore
from parley.templates import RenderFrame, activate, compile_template, normalize_variables

from .frontmatter import parse_document
from .models import DocumentDescriptor

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".md"


@dataclass(frozen=True)
class CompiledDocument:
    """A parsed and compiled document. Immutable once built."""

    name: str
    identity: str
    descriptor: DocumentDescriptor
    body: str
    compiled: Template
    source_path: Path | None = None


@dataclass(frozen=True)
class IncludeLink:
    """One document on the current include chain."""

    identity: str
    label: str


def compile_document(
    content: str,
    name: str,
    source_path: Path | None = None,
) -> CompiledDocument:
    """Parse frontmatter and compile the body.

    Raises:
        PromptParseError: If the frontmatter or template syntax is invalid
    """
    label = str(source_path) if source_path else name
    descriptor, body = parse_document(content, source=label)
    compiled = compile_template(body, name=label)
    identity = str(source_path.resolve()) if source_path else f"<string:{name}>"
    return CompiledDocument(
        name=name,
        identity=identity,
        descriptor=descriptor,
        body=body,
        compiled=compiled,
        source_path=source_path,
    )


def read_document(path: Path, name: str | None = None) -> CompiledDocument:
    """Read and compile a document file.

    Raises:
        PromptFileReadError: If the file cannot be read
        PromptParseError: If the document is malformed
    """
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PromptFileReadError(path, str(e)) from e
    logger.debug(f"Loaded prompt document from {path}")
    return compile_document(content, name or path.stem, source_path=path)


class DocumentCache:
    """Compiled partials keyed by resolved path.

    Each file is read and compiled at most once; later renders reuse the
    compiled document even if the file changes on disk.
    """

    def __init__(self, documents: Iterable[CompiledDocument] = ()):
        self._documents = {document.identity: document for document in documents}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, path: object) -> bool:
        return str(path) in self._documents

    def load(self, path: Path, name: str | None = None) -> CompiledDocument:
        """Compiled document for a resolved ``path``, reading it on first use.

        Raises:
            PromptFileReadError: If the file cannot be read
            PromptParseError: If the document is malformed
        """
        identity = str(path)
        document = self._documents.get(identity)
        if document is not None:
            return document
        with self._lock:
            document = self._documents.get(identity)
            if document is None:
                document = read_document(path, name=name)
                self._documents[identity] = document
        return document


def merge_variables(
    descriptor: DocumentDescriptor,
    variables: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Document defaults overlaid with explicit variables."""
    merged = descriptor.default_variables
    if variables:
        merged.update(variables)
    return merged


def missing_required(descriptor: DocumentDescriptor, merged: Mapping[str, Any]) -> list[str]:
    return [name for name in descriptor.required_variables if name not in merged]


def resolve_include(path: str, base_dir: Path) -> Path:
    """Resolve an include path relative to ``base_dir``.

    A path without a suffix also matches ``<path>.md``.

    Raises:
        IncludeNotFoundError: If no file exists at the resolved location
        PromptParseError: If the path is absolute or escapes ``base_dir``
    """
    candidate = Path(path)
    if candidate.is_absolute():
        raise PromptParseError(f"Include paths must be relative, got '{path}'")

    root = base_dir.resolve()
    resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise PromptParseError(f"Include path '{path}' escapes base directory {root}")

    if resolved.is_file():
        return resolved
    if not candidate.suffix:
        with_ext = resolved.with_name(resolved.name + DEFAULT_EXTENSION)
        if with_ext.is_file():
            return with_ext
    raise IncludeNotFoundError(path, base_dir)


def render_document(
    document: CompiledDocument,
    variables: Mapping[str, Any] | None,
    *,
    base_dir: Path,
    locale: BoundLocale | None = None,
    locale_store: LocaleStore | None = None,
    chain: tuple[IncludeLink, ...] = (),
    label: str | None = None,
    documents: DocumentCache | None = None,
) -> str:
    """Render a compiled document. Either returns the full text or raises.

    Partials are compiled through ``documents``; without one, each partial
    is read fresh for this render only.

    Raises:
        PromptError: Any parse, lookup, structural or locale failure
    """
    descriptor = document.descriptor
    merged = merge_variables(descriptor, variables)

    missing = missing_required(descriptor, merged)
    if missing:
        raise RequiredVariablesMissingError(missing, template=label or document.name)

    chain = (*chain, IncludeLink(document.identity, label or _relative_label(document, base_dir)))

    for include in descriptor.includes:
        resolve_include(include, base_dir)

    normalized = normalize_variables(merged)
    frame = RenderFrame(
        normalized,
        locale=locale,
        locale_store=locale_store,
        catalog_key=descriptor.catalog_key,
        include=partial(
            _render_include,
            base_dir=base_dir,
            chain=chain,
            documents=documents if documents is not None else DocumentCache(),
        ),
    )

    with activate(frame):
        try:
            return document.compiled.render(normalized)
        except PromptError:
            raise
        except Exception as e:
            raise TemplateRenderError(str(e), template_name=label or document.name, original_error=e) from e


def _render_include(
    frame: RenderFrame,
    path: str,
    params: Mapping[str, Any],
    *,
    base_dir: Path,
    chain: tuple[IncludeLink, ...],
    documents: DocumentCache,
) -> str:
    resolved = resolve_include(path, base_dir)
    identity = str(resolved)

    seen = [link.identity for link in chain]
    if identity in seen:
        start = seen.index(identity)
        cycle = [link.label for link in chain[start:]] + [path]
        raise IncludeCycleError(cycle)

    document = documents.load(resolved, name=path)
    variables = {**frame.variables, **params}
    return render_document(
        document,
        variables,
        base_dir=base_dir,
        locale=frame.locale,
        locale_store=frame.locale_store,
        chain=chain,
        label=path,
        documents=documents,
    )


def _relative_label(document: CompiledDocument, base_dir: Path) -> str:
    if document.source_path is not None:
        try:
            return document.source_path.resolve().relative_to(base_dir.resolve()).as_posix()
        except ValueError:
            pass
    return document.name
