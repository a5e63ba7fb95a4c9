"""
Multi-turn conversation templates.

A conversation document is an ordinary prompt document whose body is
split into sections by Markdown role headings::

    ## System
    You are a reviewer for {{ language }} code.

    ## User
    {{ diff }}

The document is rendered first; the rendered text is then segmented into
ordered :class:`ConversationTurn` values. Headings inside fenced code
blocks are treated as content.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from parley.errors import ConversationFormatError, NotAConversationError
from parley.i18n import LocaleStore

from .template import PromptTemplate

logger = logging.getLogger(__name__)

ROLE_HEADER_PATTERN = re.compile(
    r"^[ ]{0,3}#{1,6}[ \t]+(?P<role>system|user|assistant|developer)[ \t]*:?[ \t]*#*[ \t]*$",
    re.IGNORECASE,
)
FENCE_PATTERN = re.compile(r"^[ ]{0,3}(?P<fence>`{3,}|~{3,})")


class Role(str, Enum):
    """Speaker of a conversation turn."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    DEVELOPER = "developer"


class ConversationTurn(BaseModel):
    """One role-tagged section of a rendered conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    def to_message(self) -> dict[str, str]:
        """Chat-message dict: ``{"role": "user", "content": "..."}``."""
        return {"role": self.role.value, "content": self.content}


def _scan_lines(text: str) -> Iterator[tuple[str, Role | None]]:
    """Yield ``(line, role)`` pairs; role is None for non-header lines."""
    fence: str | None = None
    for line in text.splitlines():
        match = FENCE_PATTERN.match(line)
        if match:
            marker = match.group("fence")
            if fence is None:
                fence = marker
            elif marker[0] == fence[0] and len(marker) >= len(fence):
                fence = None
            yield line, None
            continue
        if fence is None:
            header = ROLE_HEADER_PATTERN.match(line)
            if header:
                yield line, Role(header.group("role").lower())
                continue
        yield line, None


def has_role_headers(text: str) -> bool:
    """True if ``text`` contains at least one role heading outside code fences."""
    return any(role is not None for _, role in _scan_lines(text))


def _trim_blank_lines(lines: list[str]) -> str:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return "\n".join(lines[start:end]).rstrip()


def segment_conversation(text: str, name: str | None = None) -> list[ConversationTurn]:
    """Split rendered text into turns at role headings.

    Raises:
        NotAConversationError: If no role heading is present
        ConversationFormatError: If non-blank text precedes the first heading
    """
    sections: list[tuple[Role, list[str]]] = []
    preamble: list[str] = []

    for line, role in _scan_lines(text):
        if role is not None:
            sections.append((role, []))
        elif sections:
            sections[-1][1].append(line)
        else:
            preamble.append(line)

    if not sections:
        raise NotAConversationError(name)
    if any(line.strip() for line in preamble):
        label = f" in '{name}'" if name else ""
        raise ConversationFormatError(
            f"Text found before the first role header{label}; "
            "every line of a conversation must belong to a System/User/Assistant/Developer section"
        )

    turns = []
    for role, lines in sections:
        content = _trim_blank_lines(lines)
        if content:
            turns.append(ConversationTurn(role=role, content=content))
        else:
            logger.debug(f"Dropping empty {role.value} turn{f' in {name}' if name else ''}")
    return turns


class ConversationTemplate:
    """A prompt template that renders to an ordered list of turns."""

    __slots__ = ("_template",)

    def __init__(self, template: PromptTemplate):
        self._template = template

    @classmethod
    def load(cls, path: str | Path) -> ConversationTemplate:
        return cls(PromptTemplate.load(path))

    @classmethod
    def from_content(
        cls,
        content: str,
        name: str | None = None,
        base_dir: str | Path | None = None,
    ) -> ConversationTemplate:
        return cls(PromptTemplate.from_content(content, name=name, base_dir=base_dir))

    def __repr__(self) -> str:
        return f"ConversationTemplate(name={self.name!r}, locale={self.locale!r})"

    @property
    def template(self) -> PromptTemplate:
        return self._template

    @property
    def name(self) -> str:
        return self._template.name

    @property
    def locale(self) -> str | None:
        return self._template.locale

    @property
    def required_variables(self) -> list[str]:
        return self._template.required_variables

    @property
    def includes(self) -> list[str]:
        return self._template.includes

    def is_conversation(self) -> bool:
        """True if the source body has role headings."""
        return has_role_headers(self._template.content)

    def with_variable(self, name: str, value: Any) -> ConversationTemplate:
        return type(self)(self._template.with_variable(name, value))

    def with_variables(self, mapping: Mapping[str, Any] | None = None, **kwargs: Any) -> ConversationTemplate:
        return type(self)(self._template.with_variables(mapping, **kwargs))

    def with_locale(self, code: str, store: LocaleStore | None = None) -> ConversationTemplate:
        return type(self)(self._template.with_locale(code, store))

    def with_locale_store(self, store: LocaleStore) -> ConversationTemplate:
        return type(self)(self._template.with_locale_store(store))

    def with_base_dir(self, path: str | Path) -> ConversationTemplate:
        return type(self)(self._template.with_base_dir(path))

    def render(
        self,
        variables: Mapping[str, Any] | None = None,
        *,
        locale: str | None = None,
    ) -> list[ConversationTurn]:
        """Render and segment into turns.

        Raises:
            PromptError: Any render failure, or a segmentation failure
        """
        text = self._template.render(variables, locale=locale)
        return segment_conversation(text, name=self.name)

    def render_messages(
        self,
        variables: Mapping[str, Any] | None = None,
        *,
        locale: str | None = None,
    ) -> list[dict[str, str]]:
        return [turn.to_message() for turn in self.render(variables, locale=locale)]
