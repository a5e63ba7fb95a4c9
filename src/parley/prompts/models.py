"""
Typed metadata for prompt documents.

The YAML frontmatter block of a document is validated into a
:class:`DocumentDescriptor`. Variables may be declared either as plain
defaults (``role: assistant``) or as a spec mapping::

    variables:
      role: assistant
      audience:
        type: str
        default: developers
        description: Who the prompt is written for
      topic:
        required: true
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_SPEC_KEYS = frozenset({"type", "default", "description", "required"})


class VariableSpec(BaseModel):
    """Declaration of a single template variable."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str = "any"
    default: Any = None
    description: str = ""
    required: bool = False
    has_default: bool = False

    @classmethod
    def from_frontmatter(cls, name: str, raw: Any) -> VariableSpec:
        """Build a spec from a ``variables`` entry.

        A mapping whose keys all belong to the spec vocabulary is read as a
        spec; anything else is taken verbatim as the default value.
        """
        if isinstance(raw, dict) and raw and set(raw) <= _SPEC_KEYS:
            return cls(
                name=name,
                type=str(raw.get("type", "any")),
                default=raw.get("default"),
                description=str(raw.get("description", "")),
                required=bool(raw.get("required", False)),
                has_default="default" in raw,
            )
        return cls(name=name, default=raw, has_default=True)


class DocumentDescriptor(BaseModel):
    """Parsed frontmatter of a prompt document.

    Unknown frontmatter keys are kept and exposed through ``extra``.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    name: str | None = None
    description: str = ""
    version: str | None = None
    variables: dict[str, VariableSpec] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list, alias="required_variables")
    includes: list[str] = Field(default_factory=list)
    catalog_key: str | None = Field(default=None, alias="i18n_key")

    @model_validator(mode="before")
    @classmethod
    def _accept_catalog_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and "catalog_key" in data and "i18n_key" not in data:
            data = dict(data)
            data["i18n_key"] = data.pop("catalog_key")
        return data

    @field_validator("variables", mode="before")
    @classmethod
    def _parse_variables(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("variables must be a mapping of name to default or spec")
        return {
            str(name): raw if isinstance(raw, VariableSpec) else VariableSpec.from_frontmatter(str(name), raw)
            for name, raw in value.items()
        }

    @field_validator("required", "includes", mode="before")
    @classmethod
    def _parse_name_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("required")
    @classmethod
    def _dedupe(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_str(cls, value: Any) -> Any:
        # YAML reads `version: 1.0` as a float
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def default_variables(self) -> dict[str, Any]:
        """Defaults declared in the frontmatter, keyed by variable name."""
        return {
            name: spec.default for name, spec in self.variables.items() if spec.has_default
        }

    @property
    def required_variables(self) -> list[str]:
        """Required names: the explicit list followed by spec-level ``required: true``."""
        names = list(self.required)
        for name, spec in self.variables.items():
            if spec.required and name not in names:
                names.append(name)
        return names

    @property
    def include_paths(self) -> list[str]:
        return list(self.includes)

    @property
    def extra(self) -> dict[str, Any]:
        return dict(self.model_extra or {})
