"""
Jinja2 extensions for prompt templates.

``switch``::

    {% switch tone %}
    {% case "formal" %}Dear {{ name }},
    {% case "casual", "friendly" %}Hey {{ name }}!
    {% default %}Hello {{ name }},
    {% endswitch %}

The first case whose value equals the subject wins; there is no
fallthrough. With no matching case and no ``default`` the block renders
nothing.

``partial``::

    {% partial "shared/header.md" audience="experts", tone=tone %}

Renders another document with the current variables plus the inline
parameters, which override inherited values for that nested render only.
"""

from __future__ import annotations

import itertools
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from jinja2 import nodes
from jinja2.ext import Extension
from jinja2.parser import Parser
from jinja2.runtime import Undefined

from parley.errors import TemplateTypeError

from .context import current_frame

_SWITCH_END_TOKENS = ("name:case", "name:default", "name:endswitch")
_switch_ids = itertools.count()


def _value_kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float, Decimal)):
        return "number"
    if isinstance(value, str):
        return "str"
    if isinstance(value, Mapping):
        return "mapping"
    if isinstance(value, (list, tuple)):
        return "sequence"
    return type(value).__name__


def values_match(subject: Any, candidate: Any) -> bool:
    """Exact equality: values of different kinds never match (``1`` vs ``True``)."""
    return _value_kind(subject) == _value_kind(candidate) and subject == candidate


class SwitchExtension(Extension):
    """Multi-way branch on exact value equality."""

    tags = {"switch"}

    def parse(self, parser: Parser) -> nodes.Node:
        lineno = next(parser.stream).lineno
        subject = parser.parse_expression()

        # parse_statements consumes the pending block_end; the closing one
        # after endswitch is left for the enclosing subparse
        preamble = parser.parse_statements(_SWITCH_END_TOKENS)
        if not _is_blank(preamble):
            parser.fail("only whitespace is allowed between 'switch' and the first 'case'", lineno)

        cases: list[tuple[list[nodes.Expr], list[nodes.Node], int]] = []
        default: list[nodes.Node] | None = None
        while True:
            token = next(parser.stream)
            if token.test("name:endswitch"):
                break
            if token.test("name:default"):
                if default is not None:
                    parser.fail("'switch' may only have one 'default'", token.lineno)
                default = parser.parse_statements(_SWITCH_END_TOKENS)
                continue
            if default is not None:
                parser.fail("'case' must come before 'default'", token.lineno)
            values = [parser.parse_expression()]
            while parser.stream.skip_if("comma"):
                values.append(parser.parse_expression())
            body = parser.parse_statements(_SWITCH_END_TOKENS)
            cases.append((values, body, token.lineno))

        subject_name = f"_switch_subject_{next(_switch_ids)}"
        branches = [
            nodes.If(
                self.call_method(
                    "_matches",
                    [nodes.Name(subject_name, "load", lineno=case_lineno), nodes.List(values, lineno=case_lineno)],
                    lineno=case_lineno,
                ),
                body,
                [],
                [],
                lineno=case_lineno,
            )
            for values, body, case_lineno in cases
        ]
        if branches:
            chain = branches[0]
            chain.elif_ = branches[1:]
            chain.else_ = default or []
            body_nodes: list[nodes.Node] = [chain]
        else:
            # No case to compare against; the subject must still be defined
            check = self.call_method(
                "_require_subject", [nodes.Name(subject_name, "load", lineno=lineno)], lineno=lineno
            )
            body_nodes = [nodes.If(check, default or [], [], [], lineno=lineno)]

        return nodes.With(
            [nodes.Name(subject_name, "store", lineno=lineno)],
            [subject],
            body_nodes,
            lineno=lineno,
        )

    def _require_subject(self, subject: Any) -> bool:
        if isinstance(subject, Undefined):
            subject._fail_with_undefined_error()
        return True

    def _matches(self, subject: Any, candidates: list[Any]) -> bool:
        for value in (subject, *candidates):
            if isinstance(value, Undefined):
                value._fail_with_undefined_error()
        return any(values_match(subject, candidate) for candidate in candidates)


def _is_blank(body: list[nodes.Node]) -> bool:
    for node in body:
        if not isinstance(node, nodes.Output):
            return False
        for child in node.nodes:
            if not (isinstance(child, nodes.TemplateData) and not child.data.strip()):
                return False
    return True


class PartialExtension(Extension):
    """Inline another document: ``{% partial "path.md" key=value %}``."""

    tags = {"partial"}

    def parse(self, parser: Parser) -> nodes.Node:
        lineno = next(parser.stream).lineno
        path = parser.parse_expression()

        params: list[nodes.Pair] = []
        while parser.stream.current.type != "block_end":
            if params:
                parser.stream.skip_if("comma")
            name = parser.stream.expect("name")
            parser.stream.expect("assign")
            value = parser.parse_expression()
            params.append(nodes.Pair(nodes.Const(name.value, lineno=name.lineno), value, lineno=name.lineno))

        call = self.call_method("_render_partial", [path, nodes.Dict(params, lineno=lineno)], lineno=lineno)
        return nodes.Output([call], lineno=lineno)

    def _render_partial(self, path: Any, params: dict[str, Any]) -> str:
        for value in (path, *params.values()):
            if isinstance(value, Undefined):
                value._fail_with_undefined_error()
        if not isinstance(path, str):
            raise TemplateTypeError("partial path", "a string", type(path).__name__)
        return current_frame().include(path, params)
