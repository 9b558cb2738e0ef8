"""Branch Resolver — turns one branch expression into a static style value.

Each branch resolves to a literal, a themed-token reference, a helper call
result, a template around one of those, an empty value, a CSS block, or a
failure.  Only the themed-boolean pattern tolerates a failed branch; see
``plan_theme_conditional``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Union

from . import constants
from .adapter import CallResultKind, ImportSpec
from .css_props import coerce_value, parse_declaration_block, to_camel, with_important
from .expr import (
    Call,
    Expr,
    Literal,
    ParamBinding,
    TaggedTemplate,
    TemplateLiteral,
    contains_call,
    is_empty_literal,
    member_path,
    render_js,
    replace_theme_refs,
    static_literal_value,
)
from .ir import DeclarationValue, SlotPart, SourceLocation
from .model import StyleExpr
from .session import ReasonCode, ResolutionSession

logger = logging.getLogger(__name__)


class BranchSource(str, Enum):
    LITERAL = "literal"
    THEME = "theme"
    CALL = "call"
    TEMPLATE = "template"


@dataclass(frozen=True)
class ResolvedValue:
    value: str | int | float | StyleExpr
    source: BranchSource = BranchSource.LITERAL
    imports: tuple[ImportSpec, ...] = ()


@dataclass(frozen=True)
class ResolvedStyles:
    """``styles``-kind helper result: a whole extra style argument."""

    expr: str
    imports: tuple[ImportSpec, ...] = ()


@dataclass(frozen=True)
class ResolvedEmpty:
    pass


@dataclass(frozen=True)
class ResolvedBlock:
    """A CSS block branch: camel-cased declarations with resolved values."""

    declarations: tuple[tuple[str, str | int | float | StyleExpr], ...]
    imports: tuple[ImportSpec, ...] = ()
    style_args: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolutionFailure:
    reason_code: ReasonCode
    message: str
    has_call: bool = False


BranchResult = Union[ResolvedValue, ResolvedStyles, ResolvedEmpty, ResolvedBlock, ResolutionFailure]


def _is_css_text(expr: Expr) -> bool:
    if isinstance(expr, TaggedTemplate):
        return True
    if isinstance(expr, TemplateLiteral):
        return ":" in "".join(expr.quasis)
    return isinstance(expr, Literal) and isinstance(expr.value, str) and ":" in expr.value


def _as_template(expr: Expr) -> TemplateLiteral:
    if isinstance(expr, TaggedTemplate):
        return expr.quasi
    if isinstance(expr, TemplateLiteral):
        return expr
    return TemplateLiteral((str(static_literal_value(expr)),))


def _wrap(code: str, prefix: str, suffix: str) -> StyleExpr:
    if not prefix and not suffix:
        return StyleExpr(code)
    return StyleExpr(f"`{prefix}${{{code}}}{suffix}`")


def _template_code(parts: list[str | int | float | StyleExpr]) -> str | StyleExpr:
    """Join resolved template parts; stays a plain string when all are static."""
    if all(not isinstance(p, StyleExpr) for p in parts):
        return "".join(str(p) for p in parts)
    out = ["`"]
    for part in parts:
        if isinstance(part, StyleExpr):
            out.append("${" + part.code + "}")
        else:
            out.append(str(part).replace("`", "\\`"))
    out.append("`")
    return StyleExpr("".join(out))


@dataclass
class BranchResolver:
    """Resolve branch expressions for one declaration.

    ``prefix`` / ``suffix`` are the static value text around the slot; they
    are re-applied to whatever the branch resolves to.
    """

    session: ResolutionSession
    binding: ParamBinding
    css_prop: str | None = None
    loc: SourceLocation | None = None
    prefix: str = ""
    suffix: str = ""

    def resolve(self, expr: Expr) -> BranchResult:
        result = self._resolve(expr)
        logger.debug("Branch %s → %s", render_js(expr), type(result).__name__)
        return result

    def _resolve(self, expr: Expr) -> BranchResult:
        if is_empty_literal(expr):
            return ResolvedEmpty()
        if self.css_prop is None and _is_css_text(expr):
            return self.resolve_block(_as_template(expr))
        value = static_literal_value(expr)
        if value is not None:
            return self._literal(value)
        if isinstance(expr, TemplateLiteral):
            return self._template(expr)
        if isinstance(expr, Call):
            return self._call(expr)
        path = member_path(expr, self.binding)
        if path and path[0] == constants.THEME_SEGMENT and len(path) > 1:
            return self._theme(path[1:])
        return ResolutionFailure(
            ReasonCode.UNRESOLVABLE_BRANCH,
            f"cannot resolve branch {render_js(expr)}",
            has_call=contains_call(expr),
        )

    def resolve_static(self, value: str | int | float) -> ResolvedValue:
        return self._literal(value)

    def resolve_theme(self, path: tuple[str, ...] | list[str]) -> BranchResult:
        """Resolve ``theme.<path>`` (``path`` excludes the ``theme`` segment)."""
        return self._theme(list(path))

    # ── per-shape resolution ─────────────────────────────────────

    def _literal(self, value: str | int | float) -> ResolvedValue:
        if self.prefix or self.suffix:
            value = f"{self.prefix}{value}{self.suffix}"
        return ResolvedValue(coerce_value(self.css_prop or "", value))

    def _theme(self, path: list[str]) -> BranchResult:
        resolution = self.session.adapter.resolve_theme_path(path, self.loc)
        if resolution is None:
            return ResolutionFailure(
                ReasonCode.UNRESOLVABLE_THEME_PATH,
                f"theme path {'.'.join(path)} has no static token",
            )
        return ResolvedValue(
            _wrap(resolution.static_expr, self.prefix, self.suffix),
            BranchSource.THEME,
            resolution.required_imports,
        )

    def _call(self, call: Call) -> BranchResult:
        resolution = self.session.adapter.resolve_call(call, self.css_prop)
        if not resolution.is_resolved:
            return ResolutionFailure(
                ReasonCode.UNRESOLVABLE_CALL,
                f"adapter could not resolve {render_js(call)}: {resolution.reason}",
                has_call=True,
            )
        if resolution.kind == CallResultKind.STYLES:
            if self.prefix or self.suffix:
                return ResolutionFailure(
                    ReasonCode.UNRESOLVABLE_CALL,
                    f"styles result of {render_js(call)} used inside a value",
                    has_call=True,
                )
            return ResolvedStyles(resolution.expr, resolution.required_imports)
        return ResolvedValue(
            _wrap(resolution.expr, self.prefix, self.suffix),
            BranchSource.CALL,
            resolution.required_imports,
        )

    def _template(self, template: TemplateLiteral) -> BranchResult:
        parts: list[str | int | float | StyleExpr] = [self.prefix]
        imports: list[ImportSpec] = []
        inner = BranchResolver(self.session, self.binding, self.css_prop, self.loc)
        for i, quasi in enumerate(template.quasis):
            parts.append(quasi)
            if i >= len(template.expressions):
                continue
            result = inner.resolve(template.expressions[i])
            if isinstance(result, ResolutionFailure):
                return result
            if not isinstance(result, ResolvedValue):
                return ResolutionFailure(
                    ReasonCode.UNRESOLVABLE_BRANCH,
                    "template interpolation does not produce a value",
                )
            parts.append(result.value)
            imports.extend(result.imports)
        parts.append(self.suffix)
        joined = _template_code(parts)
        if isinstance(joined, str):
            return ResolvedValue(coerce_value(self.css_prop or "", joined), BranchSource.TEMPLATE)
        return ResolvedValue(joined, BranchSource.TEMPLATE, tuple(imports))

    # ── CSS blocks ───────────────────────────────────────────────

    def resolve_block(self, template: TemplateLiteral) -> BranchResult:
        """Resolve a CSS declaration block, interpolations included.

        Each ``${...}`` is replaced by a slot placeholder, the block is split
        into declarations, and every slotted value is resolved as a branch of
        its own property.
        """
        text = "".join(
            quasi
            + (
                constants.SLOT_PLACEHOLDER_TEMPLATE.format(id=i)
                if i < len(template.expressions)
                else ""
            )
            for i, quasi in enumerate(template.quasis)
        )
        standalone: list[int] = []
        chunks: list[str] = []
        for chunk in text.split(";"):
            stripped = chunk.strip()
            value = DeclarationValue.from_text(stripped)
            if stripped and len(value.parts) == 1 and isinstance(value.parts[0], SlotPart):
                standalone.append(value.parts[0].slot_id)
            else:
                chunks.append(chunk)
        parsed = parse_declaration_block(";".join(chunks))
        if parsed is None:
            return ResolutionFailure(
                ReasonCode.UNSUPPORTED_CSS_BLOCK, "CSS block contains nested rules or junk"
            )
        declarations: list[tuple[str, str | int | float | StyleExpr]] = []
        imports: list[ImportSpec] = []
        style_args: list[str] = []
        for slot_id in standalone:
            result = BranchResolver(self.session, self.binding, None, self.loc).resolve(
                template.expressions[slot_id]
            )
            if isinstance(result, ResolvedStyles):
                style_args.append(result.expr)
                imports.extend(result.imports)
            elif isinstance(result, ResolvedBlock):
                declarations.extend(result.declarations)
                imports.extend(result.imports)
                style_args.extend(result.style_args)
            elif not isinstance(result, ResolvedEmpty):
                return ResolutionFailure(
                    ReasonCode.UNSUPPORTED_CSS_BLOCK, "mixin inside CSS block did not resolve"
                )
        for raw_prop, raw_value, important in parsed:
            prop = to_camel(raw_prop)
            value = DeclarationValue.from_text(raw_value)
            slots = value.slot_ids()
            if not slots:
                declarations.append(
                    (prop, with_important(coerce_value(prop, raw_value), important))
                )
                continue
            if important:
                return ResolutionFailure(
                    ReasonCode.IMPORTANT_WITH_DYNAMIC_VALUE,
                    f"!important on dynamic {raw_prop} inside CSS block",
                )
            if len(slots) != 1:
                return ResolutionFailure(
                    ReasonCode.MULTIPLE_SLOTS, f"{raw_prop} has several interpolations"
                )
            prefix, _, suffix = str(value).partition(
                constants.SLOT_PLACEHOLDER_TEMPLATE.format(id=slots[0])
            )
            result = BranchResolver(
                self.session, self.binding, prop, self.loc, prefix, suffix
            ).resolve(template.expressions[slots[0]])
            if isinstance(result, ResolvedEmpty):
                continue
            if not isinstance(result, ResolvedValue):
                if isinstance(result, ResolutionFailure):
                    return result
                return ResolutionFailure(
                    ReasonCode.UNSUPPORTED_CSS_BLOCK, f"{raw_prop} did not resolve to a value"
                )
            declarations.append((prop, result.value))
            imports.extend(result.imports)
        return ResolvedBlock(tuple(declarations), tuple(imports), tuple(style_args))


# ── themed-boolean asymmetric fallback ───────────────────────────


@dataclass(frozen=True)
class ThemeBranchPlan:
    """Both branches resolved: one bucket per flag polarity."""

    when_true: ResolvedValue | ResolvedEmpty | ResolvedBlock
    when_false: ResolvedValue | ResolvedEmpty | ResolvedBlock


@dataclass(frozen=True)
class InlineFallbackPlan:
    """One branch static (goes to base), the other re-emitted as inline style."""

    base: ResolvedValue
    inline_expr: str


ThemeConditionalPlan = Union[ThemeBranchPlan, InlineFallbackPlan, ResolutionFailure]


def plan_theme_conditional(
    resolver: BranchResolver,
    flag: tuple[str, ...],
    consequent: Expr,
    alternate: Expr,
) -> ThemeConditionalPlan:
    """Decide how ``theme.<flag> ? consequent : alternate`` is represented.

    When exactly one branch is unresolvable and that branch contains a call,
    the other branch becomes the base value and the unresolvable one is
    rewritten against the runtime ``theme`` hook variable as an inline style.
    """
    cons = resolver.resolve(consequent)
    alt = resolver.resolve(alternate)
    static = (ResolvedValue, ResolvedEmpty, ResolvedBlock)
    if isinstance(cons, static) and isinstance(alt, static):
        return ThemeBranchPlan(when_true=cons, when_false=alt)
    flag_expr = ".".join([constants.THEME_HOOK_VAR, *flag[1:]])
    if isinstance(cons, ResolutionFailure) and isinstance(alt, ResolvedValue) and cons.has_call:
        inline = render_js(replace_theme_refs(consequent, resolver.binding))
        return InlineFallbackPlan(
            base=alt,
            inline_expr=f"{flag_expr} ? {_inline_value(inline, resolver)} : undefined",
        )
    if isinstance(alt, ResolutionFailure) and isinstance(cons, ResolvedValue) and alt.has_call:
        inline = render_js(replace_theme_refs(alternate, resolver.binding))
        return InlineFallbackPlan(
            base=cons,
            inline_expr=f"{flag_expr} ? undefined : {_inline_value(inline, resolver)}",
        )
    failure = cons if isinstance(cons, ResolutionFailure) else alt
    if isinstance(failure, ResolutionFailure):
        return failure
    return ResolutionFailure(
        ReasonCode.UNRESOLVABLE_BRANCH, "theme conditional branch is not a single value"
    )


def _inline_value(code: str, resolver: BranchResolver) -> str:
    if resolver.prefix or resolver.suffix:
        return f"`{resolver.prefix}${{{code}}}{resolver.suffix}`"
    return code
