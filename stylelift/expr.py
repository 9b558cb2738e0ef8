"""Slot expressions — a closed sum type for the JS/TS expressions embedded in CSS.

The engine never evaluates these; it pattern-matches their shape.  Every
variant is a frozen dataclass so classifications are pure functions of the
tree and can be compared and hashed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from . import constants


@dataclass(frozen=True)
class Identifier:
    name: str


@dataclass(frozen=True)
class Member:
    """``object.property`` (``computed`` is False) or ``object[property]``."""

    object: Expr
    property: Expr
    computed: bool = False


@dataclass(frozen=True)
class Literal:
    """String / number / boolean / null / undefined literal."""

    value: str | int | float | bool | None
    raw: str


@dataclass(frozen=True)
class TemplateLiteral:
    """Untagged template; ``len(quasis) == len(expressions) + 1``."""

    quasis: tuple[str, ...]
    expressions: tuple[Expr, ...] = ()


@dataclass(frozen=True)
class TaggedTemplate:
    """``css`...``` and friends."""

    tag: Expr
    quasi: TemplateLiteral


@dataclass(frozen=True)
class Unary:
    operator: str
    argument: Expr


@dataclass(frozen=True)
class Binary:
    operator: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Logical:
    operator: str  # "&&", "||", "??"
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Conditional:
    test: Expr
    consequent: Expr
    alternate: Expr


@dataclass(frozen=True)
class Call:
    callee: Expr
    arguments: tuple[Expr, ...] = ()


@dataclass(frozen=True)
class ParamBinding:
    """How an arrow function binds the component's props.

    ``name`` is set for ``props => ...``; ``destructured`` maps local names to
    prop keys for ``({ theme, size: s }) => ...``.
    """

    name: str | None = None
    destructured: tuple[tuple[str, str], ...] = ()

    def prop_for_local(self, local: str) -> str | None:
        for loc, key in self.destructured:
            if loc == local:
                return key
        return None

    def is_empty(self) -> bool:
        return self.name is None and not self.destructured


NO_BINDING = ParamBinding()


@dataclass(frozen=True)
class Arrow:
    params: ParamBinding
    body: Expr


@dataclass(frozen=True)
class Unknown:
    """Anything the frontend has no variant for; classified as unsupported."""

    node_type: str
    text: str = field(default="", compare=False)


Expr = Union[
    Identifier,
    Member,
    Literal,
    TemplateLiteral,
    TaggedTemplate,
    Unary,
    Binary,
    Logical,
    Conditional,
    Call,
    Arrow,
    Unknown,
]


# ── helpers ──────────────────────────────────────────────────────


def is_empty_literal(expr: Expr) -> bool:
    """Booleans, null, undefined and "" interpolate to nothing."""
    if isinstance(expr, Literal):
        return expr.raw in constants.EMPTY_LITERALS or expr.value == ""
    return isinstance(expr, Identifier) and expr.name == "undefined"


def static_literal_value(expr: Expr) -> str | int | float | None:
    """Return the CSS-usable value of a string/number literal, else None."""
    if isinstance(expr, Literal) and not isinstance(expr.value, bool):
        if isinstance(expr.value, (str, int, float)):
            return expr.value
    if isinstance(expr, TemplateLiteral) and not expr.expressions:
        return expr.quasis[0]
    return None


def member_path(expr: Expr, binding: ParamBinding) -> list[str] | None:
    """Resolve a non-computed member chain rooted at the props binding.

    ``props.theme.color.primary`` → ``["theme", "color", "primary"]``;
    with ``({ theme })`` the local ``theme.color`` → ``["theme", "color"]``.
    Returns None when the chain is not rooted at the binding.
    """
    segments: list[str] = []
    node = expr
    while isinstance(node, Member):
        if node.computed:
            if not isinstance(node.property, Literal) or not isinstance(
                node.property.value, str
            ):
                return None
            segments.append(node.property.value)
        elif isinstance(node.property, Identifier):
            segments.append(node.property.name)
        else:
            return None
        node = node.object
    if not isinstance(node, Identifier):
        return None
    segments.reverse()
    if binding.name is not None and node.name == binding.name:
        return segments if segments else None
    key = binding.prop_for_local(node.name)
    if key is None:
        return None
    return [key, *segments]


def contains_call(expr: Expr) -> bool:
    if isinstance(expr, (Call, TaggedTemplate)):
        return True
    return any(contains_call(child) for child in children(expr))


def children(expr: Expr) -> tuple[Expr, ...]:
    if isinstance(expr, Member):
        return (expr.object, expr.property)
    if isinstance(expr, TemplateLiteral):
        return expr.expressions
    if isinstance(expr, TaggedTemplate):
        return (expr.tag, expr.quasi)
    if isinstance(expr, Unary):
        return (expr.argument,)
    if isinstance(expr, (Binary, Logical)):
        return (expr.left, expr.right)
    if isinstance(expr, Conditional):
        return (expr.test, expr.consequent, expr.alternate)
    if isinstance(expr, Call):
        return (expr.callee, *expr.arguments)
    if isinstance(expr, Arrow):
        return (expr.body,)
    return ()


def replace_theme_refs(expr: Expr, binding: ParamBinding) -> Expr:
    """Rewrite ``props.theme.x`` (or destructured ``theme.x``) to bare ``theme.x``.

    Used when an unresolvable branch is re-emitted as a runtime inline style
    that reads the theme from a hook variable.
    """
    path = member_path(expr, binding)
    if path and path[0] == constants.THEME_SEGMENT:
        node: Expr = Identifier(constants.THEME_HOOK_VAR)
        for seg in path[1:]:
            node = Member(node, Identifier(seg))
        return node
    if isinstance(expr, Member):
        return Member(
            replace_theme_refs(expr.object, binding),
            expr.property if not expr.computed else replace_theme_refs(expr.property, binding),
            expr.computed,
        )
    if isinstance(expr, TemplateLiteral):
        return TemplateLiteral(
            expr.quasis,
            tuple(replace_theme_refs(e, binding) for e in expr.expressions),
        )
    if isinstance(expr, TaggedTemplate):
        return TaggedTemplate(expr.tag, replace_theme_refs(expr.quasi, binding))
    if isinstance(expr, Unary):
        return Unary(expr.operator, replace_theme_refs(expr.argument, binding))
    if isinstance(expr, Binary):
        return Binary(
            expr.operator,
            replace_theme_refs(expr.left, binding),
            replace_theme_refs(expr.right, binding),
        )
    if isinstance(expr, Logical):
        return Logical(
            expr.operator,
            replace_theme_refs(expr.left, binding),
            replace_theme_refs(expr.right, binding),
        )
    if isinstance(expr, Conditional):
        return Conditional(
            replace_theme_refs(expr.test, binding),
            replace_theme_refs(expr.consequent, binding),
            replace_theme_refs(expr.alternate, binding),
        )
    if isinstance(expr, Call):
        return Call(
            replace_theme_refs(expr.callee, binding),
            tuple(replace_theme_refs(a, binding) for a in expr.arguments),
        )
    return expr


# ── rendering ────────────────────────────────────────────────────

_PRECEDENCE: dict[str, int] = {
    "??": 1,
    "||": 2,
    "&&": 3,
    "==": 7,
    "!=": 7,
    "===": 7,
    "!==": 7,
    "<": 8,
    ">": 8,
    "<=": 8,
    ">=": 8,
    "+": 10,
    "-": 10,
    "*": 11,
    "/": 11,
    "%": 11,
}


def _precedence(expr: Expr) -> int:
    if isinstance(expr, Conditional):
        return 0
    if isinstance(expr, Arrow):
        return -1
    if isinstance(expr, (Binary, Logical)):
        return _PRECEDENCE.get(expr.operator, 6)
    if isinstance(expr, Unary):
        return 14
    return 20


def _wrap(expr: Expr, min_prec: int) -> str:
    text = render_js(expr)
    return f"({text})" if _precedence(expr) < min_prec else text


def _render_template(tpl: TemplateLiteral) -> str:
    out = ["`"]
    for i, quasi in enumerate(tpl.quasis):
        out.append(quasi)
        if i < len(tpl.expressions):
            out.append("${" + render_js(tpl.expressions[i]) + "}")
    out.append("`")
    return "".join(out)


def _render_binding(params: ParamBinding) -> str:
    if params.name is not None:
        return params.name
    entries = [
        key if key == local else f"{key}: {local}" for local, key in params.destructured
    ]
    return "({ " + ", ".join(entries) + " })"


def render_js(expr: Expr) -> str:
    """Render an expression back to JavaScript source text."""
    if isinstance(expr, Identifier):
        return expr.name
    if isinstance(expr, Literal):
        return expr.raw
    if isinstance(expr, Member):
        obj = _wrap(expr.object, 20)
        if expr.computed:
            return f"{obj}[{render_js(expr.property)}]"
        return f"{obj}.{render_js(expr.property)}"
    if isinstance(expr, TemplateLiteral):
        return _render_template(expr)
    if isinstance(expr, TaggedTemplate):
        return f"{_wrap(expr.tag, 20)}{_render_template(expr.quasi)}"
    if isinstance(expr, Unary):
        sep = " " if expr.operator.isalpha() else ""
        return f"{expr.operator}{sep}{_wrap(expr.argument, 14)}"
    if isinstance(expr, (Binary, Logical)):
        prec = _PRECEDENCE.get(expr.operator, 6)
        return f"{_wrap(expr.left, prec)} {expr.operator} {_wrap(expr.right, prec + 1)}"
    if isinstance(expr, Conditional):
        return (
            f"{_wrap(expr.test, 1)} ? {_wrap(expr.consequent, 0)}"
            f" : {_wrap(expr.alternate, 0)}"
        )
    if isinstance(expr, Call):
        args = ", ".join(render_js(a) for a in expr.arguments)
        return f"{_wrap(expr.callee, 20)}({args})"
    if isinstance(expr, Arrow):
        return f"{_render_binding(expr.params)} => {_wrap(expr.body, 0)}"
    if isinstance(expr, Unknown):
        return expr.text
    raise TypeError(f"Not an expression: {expr!r}")
