"""
Directory-backed collection of named prompt templates.

Layout::

    prompts/
        review.md               -> "review"
        chat/support.md         -> "chat/support"   (conversation)
        shared/header.md        -> "shared/header"
        locales/
            en/messages.yaml
            es/messages.yaml

Documents are listed as conversations when their body has role headings,
directly or through a partial named by a literal path. The index is built
once by :meth:`TemplateSet.from_dir` and is never modified afterwards;
partials render from the same compiled snapshot. Reconstruct the set to
pick up file changes.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Any

from parley.errors import TemplateNotFoundError
from parley.i18n import LocaleStore

from .conversation import ConversationTemplate, ConversationTurn, has_role_headers
from .rendering import CompiledDocument, DocumentCache, read_document
from .template import LOCALES_DIRNAME, PromptTemplate

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".md",)
PARTIAL_REFERENCE_PATTERN = re.compile(r"""\{%-?\s*partial\s+(["'])(?P<path>[^"']+)\1""")


def _template_name(path: Path, base: Path) -> str:
    return path.relative_to(base).with_suffix("").as_posix()


def _partial_name(path: str, extensions: Iterable[str]) -> str:
    reference = PurePosixPath(path)
    if reference.suffix.lower() in {ext.lower() for ext in extensions}:
        reference = reference.with_suffix("")
    return reference.as_posix()


def _is_conversation(
    name: str,
    documents: Mapping[str, CompiledDocument],
    extensions: Iterable[str],
    seen: set[str] | None = None,
) -> bool:
    """Role headings in the body, or in a partial of the set named literally by it."""
    seen = set() if seen is None else seen
    if name in seen:
        return False
    seen.add(name)

    body = documents[name].body
    if has_role_headers(body):
        return True
    for match in PARTIAL_REFERENCE_PATTERN.finditer(body):
        target = _partial_name(match.group("path"), extensions)
        if target in documents and _is_conversation(target, documents, extensions, seen):
            return True
    return False


def _discover(base: Path, extensions: Iterable[str]) -> list[Path]:
    suffixes = {ext.lower() for ext in extensions}
    found = []
    for path in sorted(base.rglob("*")):
        relative = path.relative_to(base)
        if relative.parts[0] == LOCALES_DIRNAME or any(part.startswith(".") for part in relative.parts):
            continue
        if path.is_file() and path.suffix.lower() in suffixes:
            found.append(path)
    return found


class TemplateSet:
    """Named templates loaded from a directory tree.

    Usage:
        prompts = TemplateSet.from_dir("prompts")
        text = prompts.render("review", {"diff": diff}, locale="es")
        turns = prompts.render_conversation("chat/support", {"question": q})
    """

    def __init__(
        self,
        base_path: Path,
        templates: Mapping[str, PromptTemplate],
        conversations: Iterable[str] = (),
        *,
        locale_store: LocaleStore | None = None,
        current_locale: str | None = None,
    ):
        self._base_path = base_path
        self._templates = MappingProxyType(dict(templates))
        self._conversations = frozenset(conversations)
        self._locale_store = locale_store
        self._current_locale = current_locale

    @classmethod
    def from_dir(
        cls,
        base: str | Path,
        *,
        locale_store: LocaleStore | None = None,
        default_locale: str = "en",
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ) -> TemplateSet:
        """Scan ``base`` recursively and compile every document.

        Args:
            base: Root directory of the template tree
            locale_store: Catalog store; defaults to ``<base>/locales`` when present
            default_locale: Default locale for the automatically created store
            extensions: File suffixes treated as documents

        Raises:
            PromptParseError: If any document is malformed
            PromptFileReadError: If any document cannot be read
        """
        extensions = tuple(extensions)
        base_path = Path(base)
        if locale_store is None and (base_path / LOCALES_DIRNAME).is_dir():
            locale_store = LocaleStore(base_path / LOCALES_DIRNAME, default_locale=default_locale)

        if not base_path.is_dir():
            logger.warning(f"Template directory {base_path} does not exist; template set is empty")
            return cls(base_path, {}, locale_store=locale_store)

        documents: dict[str, CompiledDocument] = {}
        for path in _discover(base_path, extensions):
            name = _template_name(path, base_path)
            if name in documents:
                logger.warning(f"Skipping {path}: template '{name}' already loaded from another file")
                continue
            documents[name] = read_document(path, name=name)

        # Partials resolve against the same compiled snapshot as the index
        cache = DocumentCache(documents.values())
        templates = {
            name: PromptTemplate(document, base_dir=base_path, documents=cache)
            for name, document in documents.items()
        }
        conversations = [name for name in documents if _is_conversation(name, documents, extensions)]

        logger.debug(
            f"Loaded {len(templates)} templates ({len(conversations)} conversations) from {base_path}"
        )
        return cls(base_path, templates, conversations, locale_store=locale_store)

    def __repr__(self) -> str:
        return f"TemplateSet(base_path={str(self._base_path)!r}, templates={len(self._templates)})"

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    @property
    def base_path(self) -> Path:
        return self._base_path

    @property
    def current_locale(self) -> str | None:
        return self._current_locale

    @property
    def locale_store(self) -> LocaleStore | None:
        return self._locale_store

    def list_templates(self) -> list[str]:
        """Every document name, conversations included."""
        return sorted(self._templates)

    def list_conversations(self) -> list[str]:
        """Documents with role headings in their body or in the partials they name."""
        return sorted(self._conversations)

    def template_exists(self, name: str) -> bool:
        return name in self._templates

    def conversation_exists(self, name: str) -> bool:
        return name in self._conversations

    def get(self, name: str) -> PromptTemplate:
        """Look up a template by name, with the set's locale settings applied.

        Raises:
            TemplateNotFoundError: If ``name`` is not in the set
        """
        template = self._templates.get(name)
        if template is None:
            raise TemplateNotFoundError(name, self.list_templates())
        if self._locale_store is not None:
            template = template.with_locale_store(self._locale_store)
        if self._current_locale is not None:
            template = template.with_locale(self._current_locale)
        return template

    def get_conversation(self, name: str) -> ConversationTemplate:
        """Look up a document by name for rendering as a conversation.

        Any document of the set is accepted: role headings may come from
        partials or conditionals, so segmentation is decided on the
        rendered text and fails there with ``NotAConversationError``.

        Raises:
            TemplateNotFoundError: If ``name`` is not in the set
        """
        if name not in self._templates:
            raise TemplateNotFoundError(name, self.list_conversations(), kind="Conversation template")
        return ConversationTemplate(self.get(name))

    def with_locale(self, code: str) -> TemplateSet:
        """A set rendering with ``code`` by default. Shares the template index."""
        return type(self)(
            self._base_path,
            self._templates,
            self._conversations,
            locale_store=self._locale_store,
            current_locale=code,
        )

    def render(
        self,
        name: str,
        variables: Mapping[str, Any] | None = None,
        locale: str | None = None,
    ) -> str:
        return self.get(name).render(variables, locale=locale)

    def render_conversation(
        self,
        name: str,
        variables: Mapping[str, Any] | None = None,
        locale: str | None = None,
    ) -> list[ConversationTurn]:
        return self.get_conversation(name).render(variables, locale=locale)
