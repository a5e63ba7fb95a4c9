"""Pytest configuration and shared fixtures for parley tests."""

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from parley.i18n import LocaleStore
from parley.prompts import TemplateSet

WriteFile = Callable[[str, str], Path]


@pytest.fixture
def write_file(tmp_path: Path) -> WriteFile:
    """Write a dedented text file under tmp_path, creating parent directories."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def locale_root(write_file: WriteFile, tmp_path: Path) -> Path:
    """Catalogs for en, es and ar (no es-MX, no fr)."""
    write_file(
        "locales/en/messages.yaml",
        """\
        greeting: "Hello {name}!"
        farewell: Goodbye
        inbox:
          title: Inbox
          messages:
            zero: No messages
            one: One message
            other: "{count} messages"
          unread:
            other: "{count} unread"
        review:
          intro: "Review this {language} change."
        """,
    )
    write_file(
        "locales/es/messages.yaml",
        """\
        greeting: "¡Hola {name}!"
        inbox:
          title: Bandeja de entrada
          messages:
            zero: Sin mensajes
            one: Un mensaje
            other: "{count} mensajes"
        review:
          intro: "Revisa este cambio de {language}."
        """,
    )
    write_file(
        "locales/ar.yaml",
        """\
        greeting: "مرحبا {name}"
        """,
    )
    return tmp_path / "locales"


@pytest.fixture
def locale_store(locale_root: Path) -> LocaleStore:
    return LocaleStore(locale_root, default_locale="en")


@pytest.fixture
def prompt_dir(write_file: WriteFile, tmp_path: Path) -> Path:
    """A template tree with a plain template, a partial, a conversation and catalogs."""
    write_file(
        "prompts/review.md",
        """\
        ---
        name: review
        description: Code review prompt
        variables:
          language: python
        required_variables:
          - diff
        includes:
          - shared/header.md
        i18n_key: review
        ---
        {% partial "shared/header.md" %}
        {{ t("intro") }}
        {{ diff }}
        """,
    )
    write_file(
        "prompts/shared/header.md",
        """\
        ---
        variables:
          audience: developers
        ---
        # Reviewer for {{ audience }}
        """,
    )
    write_file(
        "prompts/chat/support.md",
        """\
        ---
        required_variables: [question]
        ---
        ## System
        You are a support agent for {{ product }}.

        ## User
        {{ question }}

        ## Assistant
        Let me check that for you.
        """,
    )
    write_file(
        "prompts/locales/en/messages.yaml",
        """\
        review:
          intro: "Review this {language} change."
        """,
    )
    write_file(
        "prompts/locales/es/messages.yaml",
        """\
        review:
          intro: "Revisa este cambio de {language}."
        """,
    )
    return tmp_path / "prompts"


@pytest.fixture
def template_set(prompt_dir: Path) -> TemplateSet:
    return TemplateSet.from_dir(prompt_dir)
