"""
Prompt documents: frontmatter parsing, templates, conversations and
directory-backed template sets.
"""

from .conversation import (
    ConversationTemplate,
    ConversationTurn,
    Role,
    has_role_headers,
    segment_conversation,
)
from .frontmatter import parse_document, parse_frontmatter
from .models import DocumentDescriptor, VariableSpec
from .rendering import resolve_include
from .template import PromptTemplate
from .template_set import TemplateSet

__all__ = [
    "ConversationTemplate",
    "ConversationTurn",
    "DocumentDescriptor",
    "PromptTemplate",
    "Role",
    "TemplateSet",
    "VariableSpec",
    "has_role_headers",
    "parse_document",
    "parse_frontmatter",
    "resolve_include",
    "segment_conversation",
]
