"""
Split prompt documents into YAML frontmatter and body text.

The body is returned exactly as written; template syntax is never
interpreted here.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import yaml
from pydantic import ValidationError

from parley.errors import PromptParseError

from .models import DocumentDescriptor

logger = logging.getLogger(__name__)

FRONTMATTER_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(?P<yaml>.*?)^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


def parse_frontmatter(content: str, source: str | None = None) -> tuple[dict[str, Any], str]:
    """Parse YAML frontmatter from document content.

    Args:
        content: Raw document text
        source: Optional name used in error messages

    Returns:
        Tuple of (frontmatter dict, body). Documents without a closed
        ``---`` block return an empty dict and the content unchanged.

    Raises:
        PromptParseError: If the block is not valid YAML or not a mapping
    """
    content = content.removeprefix("\ufeff")
    match = FRONTMATTER_PATTERN.match(content)
    if not match:
        return {}, content

    body = content[match.end() :]
    try:
        frontmatter = yaml.safe_load(match.group("yaml"))
    except yaml.YAMLError as e:
        line_number = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            # +1 for the opening delimiter, +1 for 1-based lines
            line_number = mark.line + 2
        raise PromptParseError(
            f"Invalid YAML frontmatter: {e}", source=source, line_number=line_number
        ) from e

    if frontmatter is None:
        return {}, body
    if not isinstance(frontmatter, dict):
        raise PromptParseError(
            f"Frontmatter must be a YAML mapping, got {type(frontmatter).__name__}",
            source=source,
        )
    return frontmatter, body


def parse_document(content: str, source: str | None = None) -> tuple[DocumentDescriptor, str]:
    """Parse a document into its descriptor and body.

    Raises:
        PromptParseError: If the frontmatter fails to decode or validate
    """
    frontmatter, body = parse_frontmatter(content, source=source)
    try:
        descriptor = DocumentDescriptor.model_validate(frontmatter)
    except ValidationError as e:
        raise PromptParseError(f"Invalid frontmatter: {e}", source=source) from e

    logger.debug(
        f"Parsed document {source or '<string>'}: "
        f"{len(descriptor.variables)} variables, {len(descriptor.includes)} includes"
    )
    return descriptor, body
