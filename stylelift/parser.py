"""Tree-Sitter Parsing Layer — slot expression source → ``Expr`` sum type."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

from . import constants
from .expr import (
    Arrow,
    Binary,
    Call,
    Conditional,
    Expr,
    Identifier,
    Literal,
    Logical,
    Member,
    NO_BINDING,
    ParamBinding,
    TaggedTemplate,
    TemplateLiteral,
    Unary,
    Unknown,
)

logger = logging.getLogger(__name__)

_LOGICAL_OPERATORS: frozenset[str] = frozenset({"&&", "||", "??"})


class ParserFactory(ABC):
    """Abstract factory for obtaining a language parser."""

    @abstractmethod
    def get_parser(self, language: str): ...


class TreeSitterParserFactory(ParserFactory):
    """Concrete factory that delegates to tree-sitter-language-pack."""

    def get_parser(self, language: str):
        import tree_sitter_language_pack as tslp

        return tslp.get_parser(language)


class Parser:
    """Thin wrapper around a parser factory."""

    def __init__(self, parser_factory: ParserFactory):
        self._factory = parser_factory

    def parse(self, source: str, language: str):
        if language not in constants.SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")
        parser = self._factory.get_parser(language)
        tree = parser.parse(source.encode("utf-8"))
        return tree


class ExpressionFrontend:
    """Lowers one tree-sitter JS/TS expression into the ``Expr`` sum type.

    Node types without a handler in ``_EXPR_DISPATCH`` become ``Unknown`` so
    the classifier can refuse them explicitly.
    """

    TRANSPARENT_TYPES: frozenset[str] = frozenset(
        {
            "parenthesized_expression",
            "as_expression",
            "satisfies_expression",
            "non_null_expression",
            "type_assertion",
        }
    )

    def __init__(self):
        self._source: bytes = b""
        self._EXPR_DISPATCH: dict[str, Callable] = {
            "identifier": self._lower_identifier,
            "this": self._lower_identifier,
            "property_identifier": self._lower_identifier,
            "private_property_identifier": self._lower_identifier,
            "shorthand_property_identifier": self._lower_identifier,
            "undefined": self._lower_identifier,
            "number": self._lower_number,
            "string": self._lower_string,
            "true": self._lower_keyword_literal,
            "false": self._lower_keyword_literal,
            "null": self._lower_keyword_literal,
            "template_string": self._lower_template_string,
            "member_expression": self._lower_member,
            "subscript_expression": self._lower_subscript,
            "binary_expression": self._lower_binary,
            "unary_expression": self._lower_unary,
            "ternary_expression": self._lower_ternary,
            "call_expression": self._lower_call,
            "arrow_function": self._lower_arrow_function,
        }

    # ── helpers ──────────────────────────────────────────────────

    def _node_text(self, node) -> str:
        return self._source[node.start_byte : node.end_byte].decode("utf-8")

    def _named_children(self, node) -> list:
        return [c for c in node.children if c.is_named and c.type != "comment"]

    # ── entry point ──────────────────────────────────────────────

    def lower(self, tree, source: bytes) -> Expr:
        self._source = source
        root = tree.root_node
        if root.has_error:
            logger.debug("Slot expression has syntax errors: %r", source[:60])
            return Unknown(node_type="ERROR", text=source.decode("utf-8"))
        statements = self._named_children(root)
        if len(statements) != 1 or statements[0].type != "expression_statement":
            return Unknown(node_type=root.type, text=source.decode("utf-8"))
        inner = self._named_children(statements[0])
        if len(inner) != 1:
            return Unknown(node_type=statements[0].type, text=self._node_text(statements[0]))
        return self._lower_expr(inner[0])

    def _lower_expr(self, node) -> Expr:
        if node.type in self.TRANSPARENT_TYPES:
            inner = self._named_children(node)
            if inner:
                return self._lower_expr(inner[0])
        handler = self._EXPR_DISPATCH.get(node.type)
        if handler:
            return handler(node)
        return Unknown(node_type=node.type, text=self._node_text(node))

    # ── leaves ───────────────────────────────────────────────────

    def _lower_identifier(self, node) -> Expr:
        return Identifier(self._node_text(node))

    def _lower_number(self, node) -> Expr:
        raw = self._node_text(node)
        try:
            value: int | float = int(raw)
        except ValueError:
            try:
                value = float(raw)
            except ValueError:
                return Unknown(node_type=node.type, text=raw)
        return Literal(value=value, raw=raw)

    def _lower_string(self, node) -> Expr:
        raw = self._node_text(node)
        return Literal(value=raw[1:-1], raw=raw)

    def _lower_keyword_literal(self, node) -> Expr:
        raw = self._node_text(node)
        value = {"true": True, "false": False}.get(raw)
        return Literal(value=value, raw=raw)

    def _lower_template_string(self, node) -> TemplateLiteral:
        """Split a template into static quasis and substitution expressions."""
        quasis: list[str] = []
        expressions: list[Expr] = []
        cursor = node.start_byte + 1
        for child in node.children:
            if child.type != "template_substitution":
                continue
            quasis.append(self._source[cursor : child.start_byte].decode("utf-8"))
            inner = self._named_children(child)
            expressions.append(
                self._lower_expr(inner[0]) if inner else Unknown(node_type=child.type)
            )
            cursor = child.end_byte
        quasis.append(self._source[cursor : node.end_byte - 1].decode("utf-8"))
        return TemplateLiteral(tuple(quasis), tuple(expressions))

    # ── compound expressions ─────────────────────────────────────

    def _lower_member(self, node) -> Expr:
        obj_node = node.child_by_field_name("object")
        prop_node = node.child_by_field_name("property")
        if obj_node is None or prop_node is None:
            return Unknown(node_type=node.type, text=self._node_text(node))
        return Member(
            self._lower_expr(obj_node), Identifier(self._node_text(prop_node))
        )

    def _lower_subscript(self, node) -> Expr:
        obj_node = node.child_by_field_name("object")
        index_node = node.child_by_field_name("index")
        if obj_node is None or index_node is None:
            return Unknown(node_type=node.type, text=self._node_text(node))
        return Member(
            self._lower_expr(obj_node), self._lower_expr(index_node), computed=True
        )

    def _lower_binary(self, node) -> Expr:
        left = self._lower_expr(node.child_by_field_name("left"))
        right = self._lower_expr(node.child_by_field_name("right"))
        op_node = node.child_by_field_name("operator")
        operator = self._node_text(op_node) if op_node else ""
        if operator in _LOGICAL_OPERATORS:
            return Logical(operator, left, right)
        return Binary(operator, left, right)

    def _lower_unary(self, node) -> Expr:
        op_node = node.child_by_field_name("operator")
        arg_node = node.child_by_field_name("argument")
        if op_node is None or arg_node is None:
            return Unknown(node_type=node.type, text=self._node_text(node))
        return Unary(self._node_text(op_node), self._lower_expr(arg_node))

    def _lower_ternary(self, node) -> Expr:
        return Conditional(
            self._lower_expr(node.child_by_field_name("condition")),
            self._lower_expr(node.child_by_field_name("consequence")),
            self._lower_expr(node.child_by_field_name("alternative")),
        )

    def _lower_call(self, node) -> Expr:
        func_node = node.child_by_field_name("function")
        args_node = node.child_by_field_name("arguments")
        callee = self._lower_expr(func_node)
        if args_node is not None and args_node.type == "template_string":
            return TaggedTemplate(callee, self._lower_template_string(args_node))
        args = (
            tuple(self._lower_expr(a) for a in self._named_children(args_node))
            if args_node is not None
            else ()
        )
        return Call(callee, args)

    # ── arrow functions and parameter bindings ───────────────────

    def _lower_arrow_function(self, node) -> Expr:
        body_node = node.child_by_field_name("body")
        params_node = node.child_by_field_name("parameter")
        if params_node is None:
            params_node = node.child_by_field_name("parameters")
        binding = self._lower_params(params_node) if params_node else NO_BINDING
        if binding is None:
            return Unknown(node_type="arrow_params", text=self._node_text(node))
        body = self._lower_arrow_body(body_node)
        return Arrow(binding, body)

    def _lower_arrow_body(self, body_node) -> Expr:
        if body_node.type != "statement_block":
            return self._lower_expr(body_node)
        statements = self._named_children(body_node)
        if len(statements) == 1 and statements[0].type == "return_statement":
            returned = self._named_children(statements[0])
            if returned:
                return self._lower_expr(returned[0])
        return Unknown(node_type=body_node.type, text=self._node_text(body_node))

    def _lower_params(self, node) -> ParamBinding | None:
        """Return the props binding, or None for a shape we cannot bind."""
        if node.type == "identifier":
            return ParamBinding(name=self._node_text(node))
        params = [
            c
            for c in self._named_children(node)
            if c.type not in ("type_annotation",)
        ]
        if not params:
            return NO_BINDING
        if len(params) > 1:
            return None
        param = params[0]
        if param.type in ("required_parameter", "optional_parameter"):
            pattern = param.child_by_field_name("pattern")
            if pattern is None:
                return None
            param = pattern
        if param.type == "identifier":
            return ParamBinding(name=self._node_text(param))
        if param.type == "object_pattern":
            return self._lower_object_pattern(param)
        return None

    def _lower_object_pattern(self, node) -> ParamBinding | None:
        entries: list[tuple[str, str]] = []
        rest_name: str | None = None
        for child in self._named_children(node):
            if child.type == "shorthand_property_identifier_pattern":
                name = self._node_text(child)
                entries.append((name, name))
            elif child.type == "object_assignment_pattern":
                left = child.child_by_field_name("left")
                name = self._node_text(left)
                entries.append((name, name))
            elif child.type == "pair_pattern":
                key = self._node_text(child.child_by_field_name("key"))
                value = child.child_by_field_name("value")
                if value.type == "assignment_pattern":
                    value = value.child_by_field_name("left")
                if value.type != "identifier":
                    return None
                entries.append((self._node_text(value), key))
            elif child.type == "rest_pattern":
                inner = self._named_children(child)
                if inner:
                    rest_name = self._node_text(inner[0])
            else:
                return None
        return ParamBinding(name=rest_name, destructured=tuple(entries))


def parse_slot_expression(
    source: str,
    language: str = constants.DEFAULT_LANGUAGE,
    parser_factory: ParserFactory | None = None,
) -> Expr:
    """Parse the source text of one slot expression.

    Args:
        source: The expression text, e.g. ``props => props.theme.color.primary``.
        language: ``"typescript"`` or ``"javascript"``.
        parser_factory: Override the tree-sitter factory (tests).

    Returns:
        The expression as an ``Expr`` value; unparseable input yields ``Unknown``.
    """
    tree = Parser(parser_factory or TreeSitterParserFactory()).parse(source, language)
    return ExpressionFrontend().lower(tree, source.encode("utf-8"))
