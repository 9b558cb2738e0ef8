"""Interpolation Classifier — tags each slot expression with the shape it has.

Classification is a pure function of the expression tree and its parameter
binding; it never consults the adapter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from . import constants
from .conditions import ConditionInfo, compound, negate_condition_string
from .expr import (
    Arrow,
    Binary,
    Call,
    Conditional,
    Expr,
    Identifier,
    Logical,
    Member,
    NO_BINDING,
    ParamBinding,
    TaggedTemplate,
    TemplateLiteral,
    Unary,
    Unknown,
    is_empty_literal,
    member_path,
    static_literal_value,
)
from .session import ReasonCode

logger = logging.getLogger(__name__)

_EQUALITY_OPERATORS: dict[str, str] = {"===": "===", "==": "===", "!==": "!==", "!=": "!=="}
_CSS_TAGS: frozenset[str] = frozenset({"css", "keyframes"})


# ── condition tuples ─────────────────────────────────────────────

Condition = tuple[ConditionInfo, ...]


def condition_key(condition: Condition) -> str:
    """Canonical bucket key: ``prop``, ``!prop``, ``prop === "x"``, ``a && b``."""
    return compound(*condition)


def negated_condition_key(condition: Condition) -> str:
    if len(condition) == 1:
        return condition[0].negate().canonical()
    return negate_condition_string(condition_key(condition))


def is_theme_condition(condition: Condition) -> bool:
    return any(c.prop_name.startswith(constants.THEME_SEGMENT + ".") for c in condition)


# ── classification kinds ─────────────────────────────────────────


@dataclass(frozen=True)
class StaticValue:
    value: str | int | float


@dataclass(frozen=True)
class EmptyValue:
    """Falsy / boolean interpolation: the declaration is omitted."""


@dataclass(frozen=True)
class ThemedPath:
    path: tuple[str, ...]


@dataclass(frozen=True)
class TemplateValue:
    """Template literal mixing static text with themed/static interpolations."""

    template: TemplateLiteral


@dataclass(frozen=True)
class PropValue:
    """Prop value passed through verbatim, optionally wrapped or defaulted."""

    prop: str
    prefix: str = ""
    suffix: str = ""
    fallback: Expr | None = None


@dataclass(frozen=True)
class IndexedThemeLookup:
    """``props.theme.colors[props.tone]``."""

    theme_path: tuple[str, ...]
    prop: str


@dataclass(frozen=True)
class ConditionalBranches:
    """``test ? consequent : alternate`` over a boolean or enum prop test."""

    condition: Condition
    consequent: Expr
    alternate: Expr


@dataclass(frozen=True)
class ChainedTernary:
    """``p === "a" ? A : p === "b" ? B : C`` — every link tests ``prop``."""

    prop: str
    cases: tuple[tuple[ConditionInfo, Expr], ...]
    default: Expr


@dataclass(frozen=True)
class GuardedBlock:
    """``test && body``; body is a CSS block (or a value in property context)."""

    condition: Condition
    body: Expr


@dataclass(frozen=True)
class ThemeConditional:
    """``props.theme.<flag> ? A : B`` (negated tests arrive with swapped branches)."""

    flag: tuple[str, ...]
    consequent: Expr
    alternate: Expr


@dataclass(frozen=True)
class HelperCall:
    call: Call


@dataclass(frozen=True)
class CssBlock:
    """Unconditional CSS block: a ``css`...``` template or a CSS string."""

    template: TemplateLiteral


@dataclass(frozen=True)
class ComponentRef:
    """Bare identifier, e.g. another styled component used in a selector."""

    name: str


@dataclass(frozen=True)
class Unclassified:
    reason: str
    reason_code: ReasonCode = ReasonCode.UNSUPPORTED_INTERPOLATION


SlotKind = Union[
    StaticValue,
    EmptyValue,
    ThemedPath,
    TemplateValue,
    PropValue,
    IndexedThemeLookup,
    ConditionalBranches,
    ChainedTernary,
    GuardedBlock,
    ThemeConditional,
    HelperCall,
    CssBlock,
    ComponentRef,
    Unclassified,
]


@dataclass(frozen=True)
class Classified:
    kind: SlotKind
    binding: ParamBinding = NO_BINDING


# ── tests ────────────────────────────────────────────────────────


def _prop_of(expr: Expr, binding: ParamBinding) -> str | None:
    """One-segment prop reference (``props.x`` / destructured ``x``)."""
    path = member_path(expr, binding)
    if path is None or len(path) != 1 or path[0] == constants.THEME_SEGMENT:
        return None
    return path[0]


def _theme_flag(expr: Expr, binding: ParamBinding) -> tuple[str, ...] | None:
    path = member_path(expr, binding)
    if path and len(path) > 1 and path[0] == constants.THEME_SEGMENT:
        return tuple(path)
    return None


def classify_test(expr: Expr, binding: ParamBinding) -> Condition | None:
    """Normalize a branching test, or None when it is not a prop/theme test."""
    prop = _prop_of(expr, binding)
    if prop is not None:
        return (ConditionInfo.boolean(prop),)
    flag = _theme_flag(expr, binding)
    if flag is not None:
        return (ConditionInfo.boolean(".".join(flag)),)
    if isinstance(expr, Unary) and expr.operator == "!":
        inner = classify_test(expr.argument, binding)
        if inner is None:
            return None
        if len(inner) == 1:
            return (inner[0].negate(),)
        return None
    if isinstance(expr, Binary) and expr.operator in _EQUALITY_OPERATORS:
        operator = _EQUALITY_OPERATORS[expr.operator]
        for lhs, rhs in ((expr.left, expr.right), (expr.right, expr.left)):
            prop = _prop_of(lhs, binding)
            value = static_literal_value(rhs)
            if prop is not None and value is not None:
                return (ConditionInfo.comparison(prop, value, operator),)
        return None
    if isinstance(expr, Logical) and expr.operator == "&&":
        left = classify_test(expr.left, binding)
        right = classify_test(expr.right, binding)
        if left is None or right is None:
            return None
        return left + right
    return None


# ── classification ───────────────────────────────────────────────


def _is_css_tag(tag: Expr) -> bool:
    return isinstance(tag, Identifier) and tag.name in _CSS_TAGS


def _classify_template(template: TemplateLiteral, binding: ParamBinding) -> SlotKind:
    if not template.expressions:
        return StaticValue(template.quasis[0])
    if len(template.expressions) == 1:
        prop = _prop_of(template.expressions[0], binding)
        if prop is not None:
            return PropValue(prop, prefix=template.quasis[0], suffix=template.quasis[1])
    return TemplateValue(template)


def _classify_member(expr: Member, binding: ParamBinding) -> SlotKind:
    path = member_path(expr, binding)
    if path is not None:
        if path[0] == constants.THEME_SEGMENT and len(path) > 1:
            return ThemedPath(tuple(path[1:]))
        if len(path) == 1:
            return PropValue(path[0])
        return Unclassified(f"nested prop path {'.'.join(path)}")
    if expr.computed:
        obj_path = member_path(expr.object, binding)
        prop = _prop_of(expr.property, binding)
        if obj_path and obj_path[0] == constants.THEME_SEGMENT and prop is not None:
            return IndexedThemeLookup(tuple(obj_path[1:]), prop)
    return Unclassified("member expression not rooted at props")


def _classify_conditional(expr: Conditional, binding: ParamBinding) -> SlotKind:
    condition = classify_test(expr.test, binding)
    if condition is None:
        return Unclassified("conditional test is not a prop or theme test")
    if is_theme_condition(condition):
        if len(condition) != 1:
            return Unclassified("compound theme test")
        info = condition[0]
        flag = tuple(info.prop_name.split("."))
        if info.negated:
            return ThemeConditional(flag, expr.alternate, expr.consequent)
        return ThemeConditional(flag, expr.consequent, expr.alternate)
    if not isinstance(expr.alternate, Conditional):
        return ConditionalBranches(condition, expr.consequent, expr.alternate)
    if len(condition) != 1:
        return Unclassified("compound test in a ternary chain")
    prop = condition[0].prop_name
    cases: list[tuple[ConditionInfo, Expr]] = [(condition[0], expr.consequent)]
    node: Expr = expr.alternate
    while isinstance(node, Conditional):
        link = classify_test(node.test, binding)
        if link is None or len(link) != 1 or link[0].prop_name != prop:
            return Unclassified(
                f"ternary chain mixes tests over different props (expected {prop})",
                ReasonCode.MISMATCHED_TERNARY_CHAIN,
            )
        cases.append((link[0], node.consequent))
        node = node.alternate
    return ChainedTernary(prop, tuple(cases), node)


def _classify_logical(expr: Logical, binding: ParamBinding) -> SlotKind:
    if expr.operator == "&&":
        condition = classify_test(expr.left, binding)
        if condition is None:
            return Unclassified("guard is not a prop test")
        if is_theme_condition(condition):
            return Unclassified("theme-guarded block")
        return GuardedBlock(condition, expr.right)
    prop = _prop_of(expr.left, binding)
    if prop is not None and static_literal_value(expr.right) is not None:
        return PropValue(prop, fallback=expr.right)
    return Unclassified(f"unsupported {expr.operator} expression")


def classify_body(body: Expr, binding: ParamBinding) -> SlotKind:
    """Classify an arrow-function body (or a branch) under ``binding``."""
    if is_empty_literal(body):
        return EmptyValue()
    value = static_literal_value(body)
    if value is not None:
        return StaticValue(value)
    if isinstance(body, TemplateLiteral):
        return _classify_template(body, binding)
    if isinstance(body, TaggedTemplate):
        if _is_css_tag(body.tag):
            return CssBlock(body.quasi)
        return Unclassified("unknown tagged template")
    if isinstance(body, Member):
        return _classify_member(body, binding)
    if isinstance(body, Conditional):
        return _classify_conditional(body, binding)
    if isinstance(body, Logical):
        return _classify_logical(body, binding)
    if isinstance(body, Call):
        return HelperCall(body)
    if isinstance(body, Identifier):
        key = binding.prop_for_local(body.name)
        if key is not None and key != constants.THEME_SEGMENT:
            return PropValue(key)
        return Unclassified(f"free identifier {body.name}")
    if isinstance(body, Unknown):
        return Unclassified(f"unsupported expression ({body.node_type})")
    return Unclassified(f"unsupported expression ({type(body).__name__})")


def classify(expr: Expr) -> Classified:
    """Classify one slot expression.

    Arrow functions are classified by their body under their parameter
    binding; anything else is an interpolated value or reference.
    """
    if isinstance(expr, Arrow):
        kind = classify_body(expr.body, expr.params)
        binding = expr.params
    elif isinstance(expr, Identifier):
        kind, binding = ComponentRef(expr.name), NO_BINDING
    else:
        kind, binding = classify_body(expr, NO_BINDING), NO_BINDING
    logger.debug("Classified slot as %s", type(kind).__name__)
    return Classified(kind, binding)
