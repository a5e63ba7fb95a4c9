"""Parley: localized prompt templates for language model applications."""

from parley.errors import (
    ConversationFormatError,
    I18nKeyNotFoundError,
    IncludeCycleError,
    IncludeNotFoundError,
    LocaleNotFoundError,
    NotAConversationError,
    PromptError,
    PromptFileReadError,
    PromptParseError,
    RequiredVariablesMissingError,
    TemplateNotFoundError,
    TemplateRenderError,
    TemplateTypeError,
    VariableNotFoundError,
)
from parley.i18n import BoundLocale, LocaleStore, NumberFormat
from parley.prompts import (
    ConversationTemplate,
    ConversationTurn,
    DocumentDescriptor,
    PromptTemplate,
    Role,
    TemplateSet,
)

__version__ = "0.1.0"

__all__ = [
    "BoundLocale",
    "ConversationFormatError",
    "ConversationTemplate",
    "ConversationTurn",
    "DocumentDescriptor",
    "I18nKeyNotFoundError",
    "IncludeCycleError",
    "IncludeNotFoundError",
    "LocaleNotFoundError",
    "LocaleStore",
    "NotAConversationError",
    "NumberFormat",
    "PromptError",
    "PromptFileReadError",
    "PromptParseError",
    "PromptTemplate",
    "RequiredVariablesMissingError",
    "Role",
    "TemplateNotFoundError",
    "TemplateRenderError",
    "TemplateSet",
    "TemplateTypeError",
    "VariableNotFoundError",
    "__version__",
]
