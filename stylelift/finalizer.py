"""Declaration Finalizer — merges resolved declarations into one component's StyleModel.

Rules are processed in source order.  Any irrecoverable declaration raises
``BailOut``; ``finalize`` catches it at the component boundary, records the
single warning and hands back an empty, bailed model.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from . import constants
from .classifier import (
    ChainedTernary,
    Classified,
    ComponentRef,
    Condition,
    ConditionalBranches,
    CssBlock,
    EmptyValue,
    GuardedBlock,
    HelperCall,
    IndexedThemeLookup,
    PropValue,
    StaticValue,
    TemplateValue,
    ThemeConditional,
    ThemedPath,
    Unclassified,
    classify,
    condition_key,
    is_theme_condition,
    negated_condition_key,
)
from .conditions import (
    capitalize,
    chain_conditions,
    lower_first,
    negate_condition_string,
    style_key_for,
)
from .css_props import coerce_value, to_camel, with_important
from .expr import Arrow, Expr, NO_BINDING, ParamBinding, TemplateLiteral, render_js
from .ir import ComponentInput, Declaration, Rule, SourceLocation
from .model import (
    DescendantOverride,
    InlineStyle,
    PropMap,
    StyleArg,
    StyleExpr,
    StyleFunction,
    StyleModel,
)
from .resolver import (
    BranchResolver,
    InlineFallbackPlan,
    ResolutionFailure,
    ResolvedBlock,
    ResolvedEmpty,
    ResolvedStyles,
    ResolvedValue,
    ThemeBranchPlan,
    plan_theme_conditional,
)
from .selectors import (
    AncestorComponent,
    BaseSelector,
    DescendantComponent,
    PseudoSelector,
    UnsupportedSelector,
    parse_selector,
)
from .session import BailOut, MalformedInputError, ReasonCode, ResolutionSession, bail

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Placement:
    """Where a rule's declarations land inside a property map."""

    pseudos: tuple[str, ...] = ()
    pseudo_element: str | None = None
    at_rule: str | None = None
    override_key: str | None = None

    def is_plain(self) -> bool:
        return not self.pseudos and self.pseudo_element is None and self.at_rule is None


def place_value(
    target: PropMap,
    prop: str,
    value: Any,
    placement: Placement,
    fallback: PropMap | None = None,
) -> None:
    """Merge one value into ``target`` honoring pseudo / at-rule nesting.

    Nested maps are updated key by key, never replaced wholesale; a new map
    takes its ``default`` from the existing scalar, else from ``fallback``
    (the base map when writing into a bucket), else None.
    """
    if placement.pseudo_element is not None:
        target = target.setdefault(placement.pseudo_element, {})
        fb = fallback.get(placement.pseudo_element) if fallback else None
        fallback = fb if isinstance(fb, dict) else None
    existing = target.get(prop)
    if not placement.pseudos and placement.at_rule is None:
        if isinstance(existing, dict):
            existing[constants.PSEUDO_DEFAULT_KEY] = value
        else:
            target[prop] = value
        return
    nested: dict[str, Any] = existing if isinstance(existing, dict) else {}
    if constants.PSEUDO_DEFAULT_KEY not in nested:
        if existing is not None and not isinstance(existing, dict):
            nested[constants.PSEUDO_DEFAULT_KEY] = existing
        else:
            nested[constants.PSEUDO_DEFAULT_KEY] = _default_of(
                fallback.get(prop) if fallback else None
            )
    if not placement.pseudos:
        nested[placement.at_rule] = value
    for pseudo in placement.pseudos:
        if placement.at_rule is None:
            current = nested.get(pseudo)
            if isinstance(current, dict):
                current[constants.PSEUDO_DEFAULT_KEY] = value
            else:
                nested[pseudo] = value
            continue
        current = nested.get(pseudo)
        inner = current if isinstance(current, dict) else {constants.PSEUDO_DEFAULT_KEY: current}
        inner[placement.at_rule] = value
        nested[pseudo] = inner
    target[prop] = nested


def _default_of(value: Any) -> Any:
    if isinstance(value, dict):
        return value.get(constants.PSEUDO_DEFAULT_KEY)
    return value


class DeclarationFinalizer:
    """Builds the StyleModel for one component from its rule tree."""

    def __init__(
        self,
        component: ComponentInput,
        slot_exprs: dict[int, Expr],
        session: ResolutionSession,
    ):
        self._component = component
        self._slots = slot_exprs
        self._session = session
        self._model = StyleModel(
            component=component.name, style_key=lower_first(component.name)
        )

    # ── entry point ──────────────────────────────────────────────

    def finalize(self) -> StyleModel:
        model = self._model
        rule_loc = None
        try:
            for rule in self._component.rules:
                rule_loc = rule.source_location
                self._process_rule(rule)
        except BailOut as exc:
            update: dict[str, Any] = {"component": self._component.name}
            if exc.warning.loc is None and rule_loc is not None and not rule_loc.is_unknown():
                update["loc"] = rule_loc
            warning = exc.warning.model_copy(update=update)
            self._session.warn(warning)
            model.reset()
            logger.info("Bailed on %s: %s", self._component.name, warning.message)
        else:
            self._session.add_imports(model.required_imports)
        return model

    # ── rules ────────────────────────────────────────────────────

    def _slot(self, slot_id: int) -> Expr:
        if slot_id not in self._slots:
            raise MalformedInputError(
                f"{self._component.name}: slot {slot_id} has no expression"
            )
        return self._slots[slot_id]

    def _placement_for(self, rule: Rule) -> Placement:
        at_rule = self._at_rule_of(rule)
        parsed = parse_selector(rule.selector)
        if isinstance(parsed, BaseSelector):
            return Placement(at_rule=at_rule)
        if isinstance(parsed, PseudoSelector):
            return Placement(parsed.pseudos, parsed.pseudo_element, at_rule)
        if isinstance(parsed, (DescendantComponent, AncestorComponent)):
            return Placement(
                at_rule=at_rule, override_key=self._override_for(parsed, rule).key
            )
        assert isinstance(parsed, UnsupportedSelector)
        raise bail(
            ReasonCode.UNSUPPORTED_SELECTOR,
            f"selector {rule.selector!r}: {parsed.reason}",
            rule.source_location,
            selector=rule.selector,
        )

    def _at_rule_of(self, rule: Rule) -> str | None:
        if not rule.at_rule_stack:
            return None
        if len(rule.at_rule_stack) > 1:
            raise bail(
                ReasonCode.UNSUPPORTED_AT_RULE,
                "nested at-rules",
                rule.source_location,
                at_rules=list(rule.at_rule_stack),
            )
        at_rule = rule.at_rule_stack[0].strip()
        if "__SC_EXPR_" in at_rule or not at_rule.startswith(constants.SUPPORTED_AT_RULES):
            raise bail(
                ReasonCode.UNSUPPORTED_AT_RULE,
                f"at-rule {at_rule!r}",
                rule.source_location,
                at_rule=at_rule,
            )
        return at_rule

    def _override_for(
        self, parsed: DescendantComponent | AncestorComponent, rule: Rule
    ) -> DescendantOverride:
        ref = classify(self._slot(parsed.slot_id)).kind
        if not isinstance(ref, ComponentRef):
            raise bail(
                ReasonCode.UNSUPPORTED_DESCENDANT_OVERRIDE,
                "selector interpolation is not a component reference",
                rule.source_location,
            )
        name = self._component.name
        if isinstance(parsed, DescendantComponent):
            child, parent = ref.name, name
        else:
            child, parent = name, ref.name
        key = f"{lower_first(child)}In{parent}"
        for override in self._model.descendant_overrides:
            if (override.child, override.parent, override.ancestor_pseudo) == (
                child,
                parent,
                parsed.ancestor_pseudo,
            ):
                return override
        if any(o.key == key for o in self._model.descendant_overrides):
            key = f"{key}{to_pseudo_suffix(parsed.ancestor_pseudo)}"
        override = DescendantOverride(
            key=key, child=child, parent=parent, ancestor_pseudo=parsed.ancestor_pseudo
        )
        self._model.descendant_overrides.append(override)
        return override

    def _process_rule(self, rule: Rule) -> None:
        placement = self._placement_for(rule)
        for decl in rule.declarations:
            logger.debug("%s: %s", self._component.name, decl)
            if decl.is_standalone_slot():
                self._process_standalone(decl, placement)
            else:
                self._process_declaration(decl, placement)

    # ── targets ──────────────────────────────────────────────────

    def _target(self, placement: Placement, when: str | None) -> tuple[PropMap, PropMap | None]:
        if placement.override_key is not None:
            if when is not None:
                raise bail(
                    ReasonCode.UNSUPPORTED_DESCENDANT_OVERRIDE,
                    f"conditional value inside descendant override ({when})",
                )
            for override in self._model.descendant_overrides:
                if override.key == placement.override_key:
                    return override.props, None
        if when is None:
            return self._model.base, None
        self._model.bucket_style_keys.setdefault(when, style_key_for(self._model.style_key, when))
        return self._model.bucket(when), self._model.base

    def _emit(self, placement: Placement, when: str | None, prop: str, value: Any) -> None:
        target, fallback = self._target(placement, when)
        place_value(target, prop, value, placement, fallback)

    def _emit_block(self, placement: Placement, when: str | None, block: ResolvedBlock) -> None:
        for prop, value in block.declarations:
            self._emit(placement, when, prop, value)
        for expr in block.style_args:
            self._add_style_arg(placement, expr, when)
        self._model.add_imports(block.imports)

    def _emit_resolved(self, placement: Placement, when: str | None, prop: str, result) -> None:
        """Route one resolved branch for a property-context declaration."""
        if isinstance(result, ResolvedEmpty):
            return
        if isinstance(result, ResolvedValue):
            self._emit(placement, when, prop, result.value)
            self._model.add_imports(result.imports)
            return
        if isinstance(result, ResolvedStyles):
            self._add_style_arg(placement, result.expr, when)
            self._model.add_imports(result.imports)
            return
        raise bail(ReasonCode.UNRESOLVABLE_BRANCH, f"{prop}: branch is not a single value")

    def _add_style_arg(self, placement: Placement, expr: str, when: str | None) -> None:
        if not placement.is_plain() or placement.override_key is not None:
            raise bail(
                ReasonCode.UNRESOLVABLE_CALL,
                f"style-object helper {expr} used under a nested selector",
            )
        self._model.style_args.append(StyleArg(expr=expr, condition=when))

    def _use_condition(self, condition: Condition) -> None:
        for info in condition:
            if not info.prop_name.startswith(constants.THEME_SEGMENT + "."):
                self._model.use_prop(info.prop_name)

    # ── declarations with a property ─────────────────────────────

    def _process_declaration(self, decl: Declaration, placement: Placement) -> None:
        prop = to_camel(decl.property)
        if decl.value.is_static():
            value = coerce_value(prop, decl.value.static_text())
            self._emit(placement, None, prop, with_important(value, decl.important))
            return
        if decl.important:
            raise bail(
                ReasonCode.IMPORTANT_WITH_DYNAMIC_VALUE,
                f"!important on dynamic {decl.property}",
                decl.source_location,
            )
        slots = decl.value.slot_ids()
        if len(slots) > 1:
            self._process_multi_slot(decl, prop, placement)
            return
        raw = str(decl.value)
        prefix, _, suffix = raw.partition(constants.SLOT_PLACEHOLDER_TEMPLATE.format(id=slots[0]))
        classified = classify(self._slot(slots[0]))
        self._apply_value_kind(classified, prop, prefix, suffix, placement, decl.source_location)

    def _process_multi_slot(self, decl: Declaration, prop: str, placement: Placement) -> None:
        """Several slots in one value: only static / themed / value-call slots combine."""
        parts: list[Any] = []
        imports: list = []
        for part in decl.value.parts:
            if part.kind == "static":
                parts.append(part.text)
                continue
            expr = self._slot(part.slot_id)
            binding, body = (expr.params, expr.body) if isinstance(expr, Arrow) else (NO_BINDING, expr)
            result = BranchResolver(self._session, binding, prop, decl.source_location).resolve(body)
            if not isinstance(result, ResolvedValue):
                raise bail(
                    ReasonCode.MULTIPLE_SLOTS,
                    f"{decl.property} combines several dynamic slots",
                    decl.source_location,
                    slots=decl.value.slot_ids(),
                )
            parts.append(result.value)
            imports.extend(result.imports)
        if all(not isinstance(p, StyleExpr) for p in parts):
            value: Any = coerce_value(prop, "".join(str(p) for p in parts))
        else:
            value = StyleExpr(
                "`"
                + "".join("${" + p.code + "}" if isinstance(p, StyleExpr) else str(p) for p in parts)
                + "`"
            )
        self._emit(placement, None, prop, value)
        self._model.add_imports(imports)

    def _apply_value_kind(
        self,
        classified: Classified,
        prop: str,
        prefix: str,
        suffix: str,
        placement: Placement,
        loc: SourceLocation,
    ) -> None:
        kind = classified.kind
        resolver = BranchResolver(self._session, classified.binding, prop, loc, prefix, suffix)

        if isinstance(kind, EmptyValue):
            return
        if isinstance(kind, StaticValue):
            self._emit_resolved(placement, None, prop, resolver.resolve_static(kind.value))
            return
        if isinstance(kind, ThemedPath):
            self._emit_resolved(placement, None, prop, self._ok(resolver.resolve_theme(kind.path), loc))
            return
        if isinstance(kind, TemplateValue):
            self._emit_resolved(placement, None, prop, self._ok(resolver.resolve(kind.template), loc))
            return
        if isinstance(kind, HelperCall):
            self._emit_resolved(placement, None, prop, self._ok(resolver.resolve(kind.call), loc))
            return
        if isinstance(kind, PropValue):
            self._add_prop_style_function(kind, prop, prefix, suffix, placement, resolver, loc)
            return
        if isinstance(kind, IndexedThemeLookup):
            self._add_indexed_theme_function(kind, prop, prefix, suffix, placement, loc)
            return
        if isinstance(kind, ConditionalBranches):
            cons = self._ok(resolver.resolve(kind.consequent), loc)
            alt = self._ok(resolver.resolve(kind.alternate), loc)
            self._use_condition(kind.condition)
            when = condition_key(kind.condition)
            if isinstance(cons, ResolvedEmpty):
                self._emit_resolved(placement, negated_condition_key(kind.condition), prop, alt)
                return
            self._emit_resolved(placement, None, prop, alt)
            self._emit_resolved(placement, when, prop, cons)
            return
        if isinstance(kind, ChainedTernary):
            resolved = [(info, self._ok(resolver.resolve(expr), loc)) for info, expr in kind.cases]
            default = self._ok(resolver.resolve(kind.default), loc)
            self._model.use_prop(kind.prop)
            self._emit_resolved(placement, None, prop, default)
            keys = chain_conditions([info for info, _ in resolved])
            for (_, result), when in zip(resolved, keys):
                if when is not None:
                    self._emit_resolved(placement, when, prop, result)
            return
        if isinstance(kind, GuardedBlock):
            if is_theme_condition(kind.condition):
                raise bail(ReasonCode.UNSUPPORTED_INTERPOLATION, "theme-guarded value", loc)
            result = self._ok(resolver.resolve(kind.body), loc)
            self._use_condition(kind.condition)
            self._emit_resolved(placement, condition_key(kind.condition), prop, result)
            return
        if isinstance(kind, ThemeConditional):
            self._apply_theme_conditional(kind, prop, placement, resolver, loc)
            return
        if isinstance(kind, Unclassified):
            raise bail(kind.reason_code, f"{prop}: {kind.reason}", loc)
        raise bail(
            ReasonCode.UNSUPPORTED_INTERPOLATION,
            f"{prop}: {type(kind).__name__} cannot be used as a value",
            loc,
        )

    def _ok(self, result, loc: SourceLocation):
        if isinstance(result, ResolutionFailure):
            raise bail(result.reason_code, result.message, loc)
        return result

    def _apply_theme_conditional(
        self,
        kind: ThemeConditional,
        prop: str | None,
        placement: Placement,
        resolver: BranchResolver,
        loc: SourceLocation,
    ) -> None:
        plan = self._ok(
            plan_theme_conditional(resolver, kind.flag, kind.consequent, kind.alternate), loc
        )
        flag = ".".join(kind.flag)
        self._model.needs_theme_hook = True
        if isinstance(plan, ThemeBranchPlan):
            for when, result in ((flag, plan.when_true), (f"!{flag}", plan.when_false)):
                if isinstance(result, ResolvedBlock):
                    self._emit_block(placement, when, result)
                elif prop is not None:
                    self._emit_resolved(placement, when, prop, result)
                elif not isinstance(result, ResolvedEmpty):
                    raise bail(ReasonCode.UNSUPPORTED_CSS_BLOCK, "theme branch is not a CSS block", loc)
            return
        assert isinstance(plan, InlineFallbackPlan)
        if prop is None or not placement.is_plain() or placement.override_key is not None:
            raise bail(
                ReasonCode.UNRESOLVABLE_BRANCH,
                "theme conditional fallback needs a plain property",
                loc,
            )
        self._emit_resolved(placement, None, prop, plan.base)
        self._model.inline_styles.append(InlineStyle(css_prop=prop, expr=plan.inline_expr))
        logger.debug("Inline theme fallback for %s: %s", prop, plan.inline_expr)

    # ── style functions ──────────────────────────────────────────

    def _style_function(
        self,
        prop_name: str,
        css_prop: str,
        code: str,
        placement: Placement,
        loc: SourceLocation,
    ) -> None:
        if placement.override_key is not None:
            raise bail(
                ReasonCode.UNSUPPORTED_DESCENDANT_OVERRIDE,
                "prop-driven value inside descendant override",
                loc,
            )
        param = prop_name.lstrip(constants.TRANSIENT_PROP_PREFIX)
        key = f"{self._model.style_key}{capitalize(css_prop)}"
        existing = self._model.style_functions.get(key)
        if existing is not None and existing.param != param:
            key = f"{key}From{capitalize(param)}"
            existing = self._model.style_functions.get(key)
        if existing is None:
            existing = StyleFunction(
                key=key, param=param, call_arg=f"props.{prop_name}", body={}
            )
            self._model.style_functions[key] = existing
        place_value(existing.body, css_prop, StyleExpr(code), placement)
        self._model.use_prop(prop_name)

    def _add_prop_style_function(
        self,
        kind: PropValue,
        css_prop: str,
        prefix: str,
        suffix: str,
        placement: Placement,
        resolver: BranchResolver,
        loc: SourceLocation,
    ) -> None:
        if kind.fallback is not None:
            self._emit_resolved(placement, None, css_prop, self._ok(resolver.resolve(kind.fallback), loc))
        param = kind.prop.lstrip(constants.TRANSIENT_PROP_PREFIX)
        code = param if not (prefix or kind.prefix or suffix or kind.suffix) else (
            f"`{prefix}{kind.prefix}${{{param}}}{kind.suffix}{suffix}`"
        )
        self._style_function(kind.prop, css_prop, code, placement, loc)

    def _add_indexed_theme_function(
        self,
        kind: IndexedThemeLookup,
        css_prop: str,
        prefix: str,
        suffix: str,
        placement: Placement,
        loc: SourceLocation,
    ) -> None:
        resolution = self._session.adapter.resolve_theme_path(list(kind.theme_path), loc)
        if resolution is None:
            raise bail(
                ReasonCode.UNRESOLVABLE_THEME_PATH,
                f"theme object {'.'.join(kind.theme_path)} has no static token",
                loc,
            )
        param = kind.prop.lstrip(constants.TRANSIENT_PROP_PREFIX)
        lookup = f"{resolution.static_expr}[{param}]"
        code = lookup if not (prefix or suffix) else f"`{prefix}${{{lookup}}}{suffix}`"
        self._style_function(kind.prop, css_prop, code, placement, loc)
        self._model.add_imports(resolution.required_imports)

    # ── standalone slots (mixins, CSS blocks) ────────────────────

    def _block_resolver(self, binding: ParamBinding, loc: SourceLocation) -> BranchResolver:
        return BranchResolver(self._session, binding, None, loc)

    def _emit_block_result(self, placement: Placement, when: str | None, result, loc) -> None:
        result = self._ok(result, loc)
        if isinstance(result, ResolvedEmpty):
            return
        if isinstance(result, ResolvedBlock):
            self._emit_block(placement, when, result)
            return
        if isinstance(result, ResolvedStyles):
            self._add_style_arg(placement, result.expr, when)
            self._model.add_imports(result.imports)
            return
        raise bail(
            ReasonCode.UNSUPPORTED_CSS_BLOCK,
            "standalone interpolation does not produce CSS declarations",
            loc,
        )

    def _process_standalone(self, decl: Declaration, placement: Placement) -> None:
        loc = decl.source_location
        slots = decl.value.slot_ids()
        if len(slots) != 1 or decl.value.static_text().strip():
            raise bail(ReasonCode.MULTIPLE_SLOTS, "malformed standalone interpolation", loc)
        classified = classify(self._slot(slots[0]))
        kind = classified.kind
        resolver = self._block_resolver(classified.binding, loc)

        if isinstance(kind, EmptyValue):
            return
        if isinstance(kind, CssBlock):
            self._emit_block_result(placement, None, resolver.resolve_block(kind.template), loc)
            return
        if isinstance(kind, StaticValue) and isinstance(kind.value, str) and ":" in kind.value:
            self._emit_block_result(
                placement, None, resolver.resolve_block(TemplateLiteral((kind.value,))), loc
            )
            return
        if isinstance(kind, TemplateValue):
            self._emit_block_result(placement, None, resolver.resolve_block(kind.template), loc)
            return
        if isinstance(kind, HelperCall):
            self._emit_block_result(placement, None, resolver.resolve(kind.call), loc)
            return
        if isinstance(kind, GuardedBlock):
            self._use_condition(kind.condition)
            when = condition_key(kind.condition)
            self._emit_block_result(placement, when, resolver.resolve(kind.body), loc)
            return
        if isinstance(kind, ConditionalBranches):
            cons = self._ok(resolver.resolve(kind.consequent), loc)
            alt = self._ok(resolver.resolve(kind.alternate), loc)
            self._use_condition(kind.condition)
            self._emit_block_result(placement, condition_key(kind.condition), cons, loc)
            self._emit_block_result(placement, negated_condition_key(kind.condition), alt, loc)
            return
        if isinstance(kind, ChainedTernary):
            results = [(info, self._ok(resolver.resolve(expr), loc)) for info, expr in kind.cases]
            default = self._ok(resolver.resolve(kind.default), loc)
            self._model.use_prop(kind.prop)
            whens: list[str] = []
            keys = chain_conditions([info for info, _ in results])
            for (info, result), when in zip(results, keys):
                if when is None:
                    continue
                whens.append(info.canonical())
                self._emit_block_result(placement, when, result, loc)
            self._emit_block_result(placement, default_condition(whens), default, loc)
            return
        if isinstance(kind, ThemeConditional):
            self._apply_theme_conditional(kind, None, placement, resolver, loc)
            return
        if isinstance(kind, Unclassified):
            raise bail(kind.reason_code, kind.reason, loc)
        raise bail(
            ReasonCode.UNSUPPORTED_INTERPOLATION,
            f"{type(kind).__name__} in a standalone position ({render_js(self._slot(slots[0]))})",
            loc,
        )


def default_condition(whens: list[str]) -> str:
    """Condition under which no case of a chain matched: ``!(a || b)``."""
    if len(whens) == 1:
        return negate_condition_string(whens[0])
    return "!(" + " || ".join(whens) + ")"


def to_pseudo_suffix(pseudo: str | None) -> str:
    """``:focus-visible`` → ``FocusVisible``."""
    if not pseudo:
        return ""
    return "".join(capitalize(w) for w in re.split(r"[^A-Za-z0-9]+", pseudo) if w)


def finalize_component(
    component: ComponentInput,
    slot_exprs: dict[int, Expr],
    session: ResolutionSession,
) -> StyleModel:
    """Run the finalizer for one component (see ``DeclarationFinalizer``)."""
    return DeclarationFinalizer(component, slot_exprs, session).finalize()
