"""Exception hierarchy for prompt parsing, rendering and localization.

Every failure raised by parley derives from :class:`PromptError`. The
concrete classes also subclass the closest builtin family (``LookupError``,
``TypeError``, ``ValueError``) so callers can catch them generically.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class PromptError(Exception):
    """Base class for all parley errors."""


class PromptFileReadError(PromptError, OSError):
    """A document file exists in the index but could not be read."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to read prompt file: {self.path} - {reason}")


class PromptParseError(PromptError, ValueError):
    """Malformed input: frontmatter that fails to decode or bad template syntax."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        line_number: int | None = None,
    ) -> None:
        self.source = source
        self.line_number = line_number
        location = ""
        if source:
            location = f" in {source}"
            if line_number is not None:
                location += f" (line {line_number})"
        super().__init__(f"Template parsing failed{location}: {message}")


class VariableNotFoundError(PromptError, LookupError):
    """A variable path referenced by a template cannot be resolved."""

    def __init__(self, name: str, context: str | None = None) -> None:
        self.name = name
        self.context = context
        suffix = f" ({context})" if context else ""
        super().__init__(f"Template variable not found: {name}{suffix}")


class RequiredVariablesMissingError(PromptError, LookupError):
    """One or more declared required variables were not supplied."""

    def __init__(self, variables: Sequence[str], template: str | None = None) -> None:
        self.variables = list(variables)
        self.template = template
        where = f" for '{template}'" if template else ""
        super().__init__(
            f"Required template variables missing{where}: {', '.join(self.variables)}"
        )


class IncludeNotFoundError(PromptError, LookupError):
    """A partial include path does not exist under the searched root."""

    def __init__(self, path: str, root: str | Path | None) -> None:
        self.path = path
        self.root = str(root) if root is not None else None
        super().__init__(f"Include not found: {path} (searched in {self.root})")


class IncludeCycleError(PromptError, RecursionError):
    """Partial inclusion loops back to a document already being rendered."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"Include cycle detected: {' -> '.join(self.cycle)}")


class TemplateTypeError(PromptError, TypeError):
    """A value has the wrong shape for the construct using it."""

    def __init__(self, path: str, expected: str, actual: str) -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f"Variable '{path}' must be {expected}, got {actual}")


class TemplateRenderError(PromptError, RuntimeError):
    """An expression failed while rendering for a reason outside the taxonomy."""

    def __init__(
        self,
        message: str,
        *,
        template_name: str | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        self.template_name = template_name
        self.original_error = original_error
        where = f" '{template_name}'" if template_name else ""
        super().__init__(f"Rendering template{where} failed: {message}")


class TemplateNotFoundError(PromptError, LookupError):
    """A named template is not part of a template set."""

    def __init__(self, name: str, available: Sequence[str] = (), kind: str = "Template") -> None:
        self.name = name
        self.available = list(available)
        hint = f" (available: {', '.join(self.available)})" if self.available else ""
        super().__init__(f"{kind} not found: {name}{hint}")


class ConversationFormatError(PromptError, ValueError):
    """A rendered conversation document cannot be segmented into turns."""


class NotAConversationError(ConversationFormatError):
    """A document requested as a conversation has no role headers."""

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        label = f"'{name}' " if name else ""
        super().__init__(
            f"Document {label}is not a conversation template: "
            "no System/User/Assistant/Developer section headers found"
        )


class LocaleNotFoundError(PromptError, LookupError):
    """No catalog exists for any locale in the fallback chain."""

    def __init__(
        self,
        locale: str,
        tried: Sequence[str] = (),
        roots: Sequence[str | Path] = (),
        reason: str | None = None,
    ) -> None:
        self.locale = locale
        self.tried = list(tried)
        self.roots = [str(r) for r in roots]
        details = []
        if reason:
            details.append(reason)
        if self.tried:
            details.append(f"tried {', '.join(self.tried)}")
        if self.roots:
            details.append(f"in {', '.join(self.roots)}")
        suffix = f" ({'; '.join(details)})" if details else ""
        super().__init__(f"Locale not found: {locale}{suffix}")


class I18nKeyNotFoundError(PromptError, LookupError):
    """A catalog key is missing from every locale in the fallback chain."""

    def __init__(
        self,
        key: str,
        locale: str | None,
        siblings: Sequence[str] = (),
    ) -> None:
        self.key = key
        self.locale = locale
        self.siblings = list(siblings)
        if locale is None:
            message = f"i18n key not found: {key} (no locale catalog is bound)"
        else:
            message = f"i18n key not found: {key} in locale {locale}"
        if self.siblings:
            message += f" (available: {', '.join(self.siblings)})"
        super().__init__(message)
