"""
Template engine for prompt documents.

Compiles document bodies with a fail-closed Jinja2 environment and
provides the per-render context used by the i18n, formatting and
partial helpers.
"""

from .context import RenderFrame, activate, current_frame
from .engine import PathUndefined, PromptEnvironment, compile_template, get_environment
from .extensions import PartialExtension, SwitchExtension
from .variables import MappingEntry, VariableList, VariableMap, normalize_variables

__all__ = [
    "MappingEntry",
    "PartialExtension",
    "PathUndefined",
    "PromptEnvironment",
    "RenderFrame",
    "SwitchExtension",
    "VariableList",
    "VariableMap",
    "activate",
    "compile_template",
    "current_frame",
    "get_environment",
    "normalize_variables",
]
