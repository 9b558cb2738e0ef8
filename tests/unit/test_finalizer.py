"""Tests for the declaration finalizer: placement, buckets, style functions and bails."""

import pytest

from stylelift.adapter import ImportName, ImportSpec, TokenTableAdapter
from stylelift.finalizer import (
    Placement,
    default_condition,
    finalize_component,
    place_value,
    to_pseudo_suffix,
)
from stylelift.ir import NO_SOURCE_LOCATION, ComponentInput, Declaration, Rule, SourceLocation
from stylelift.model import DescendantOverride, InlineStyle, StyleArg, StyleExpr
from stylelift.parser import parse_slot_expression
from stylelift.session import MalformedInputError, ReasonCode, ResolutionSession

TOKENS = {
    "color": {"primary": "#0af", "text": "#111"},
    "colors": {"info": "#00f", "danger": "#f00"},
    "space": {"sm": "4px", "md": "8px"},
}
TOKENS_IMPORT = ImportSpec(source="./tokens.stylex", names=(ImportName("themeVars"),))


def _decl(prop: str, value: str, important: bool = False) -> Declaration:
    return Declaration.parse(prop, value, important)


def _slot_decl(slot_id: int = 0) -> Declaration:
    return Declaration.parse("", f"__SC_EXPR_{slot_id}__")


def _rule(*declarations: Declaration, selector: str = "&", at_rules=(), loc=None) -> Rule:
    return Rule(
        selector=selector,
        at_rule_stack=list(at_rules),
        declarations=list(declarations),
        source_location=loc or NO_SOURCE_LOCATION,
    )


def _finalize(rules, slots=None, name="Button", adapter=None):
    component = ComponentInput(name=name, rules=rules, slots=slots or {})
    session = ResolutionSession(adapter or TokenTableAdapter(tokens=TOKENS))
    slot_exprs = {i: parse_slot_expression(src) for i, src in component.slots.items()}
    return finalize_component(component, slot_exprs, session), session


class TestPlaceValue:
    def test_plain_assignment(self):
        target = {}
        place_value(target, "color", "red", Placement())
        assert target == {"color": "red"}

    def test_pseudo_keeps_existing_scalar_as_default(self):
        target = {"color": "red"}
        place_value(target, "color", "blue", Placement(pseudos=(":hover",)))
        assert target == {"color": {"default": "red", ":hover": "blue"}}

    def test_later_plain_value_updates_default(self):
        target = {"color": {"default": "red", ":hover": "blue"}}
        place_value(target, "color", "green", Placement())
        assert target == {"color": {"default": "green", ":hover": "blue"}}

    def test_bucket_default_comes_from_fallback(self):
        target = {}
        place_value(target, "color", "green", Placement(pseudos=(":hover",)), {"color": "red"})
        assert target == {"color": {"default": "red", ":hover": "green"}}

    def test_at_rule_inside_pseudo(self):
        target = {"color": "red"}
        place_value(target, "color", "blue", Placement(pseudos=(":hover",), at_rule="@media x"))
        assert target == {
            "color": {"default": "red", ":hover": {"default": None, "@media x": "blue"}}
        }

    def test_pseudo_element_nests(self):
        target = {}
        place_value(target, "content", '""', Placement(pseudo_element="::before"))
        assert target == {"::before": {"content": '""'}}


class TestStaticRules:
    def test_base_declarations(self):
        model, _ = _finalize(
            [_rule(_decl("color", "red"), _decl("z-index", "10"), _decl("padding", "4px 8px"))]
        )
        assert model.base == {"color": "red", "zIndex": 10, "padding": "4px 8px"}
        assert not model.bailed

    def test_static_important(self):
        model, _ = _finalize([_rule(_decl("color", "red", important=True))])
        assert model.base == {"color": "red !important"}

    def test_hover_rule_merges_into_base(self):
        model, _ = _finalize(
            [_rule(_decl("color", "red")), _rule(_decl("color", "blue"), selector="&:hover")]
        )
        assert model.base == {"color": {"default": "red", ":hover": "blue"}}

    def test_hover_without_base_value(self):
        model, _ = _finalize([_rule(_decl("color", "blue"), selector="&:hover")])
        assert model.base == {"color": {"default": None, ":hover": "blue"}}

    def test_comma_pseudos(self):
        model, _ = _finalize([_rule(_decl("outline", "none"), selector="&:hover, &:focus")])
        assert model.base == {"outline": {"default": None, ":hover": "none", ":focus": "none"}}

    def test_media_query(self):
        model, _ = _finalize(
            [
                _rule(_decl("width", "100%")),
                _rule(_decl("width", "50%"), at_rules=["@media (min-width: 600px)"]),
            ]
        )
        assert model.base == {"width": {"default": "100%", "@media (min-width: 600px)": "50%"}}

    def test_pseudo_element(self):
        model, _ = _finalize([_rule(_decl("content", '""'), selector="&::before")])
        assert model.base == {"::before": {"content": '""'}}


class TestDynamicValues:
    def test_theme_token(self):
        model, session = _finalize(
            [_rule(_decl("color", "__SC_EXPR_0__"))],
            {0: "props => props.theme.color.primary"},
        )
        assert model.base == {"color": StyleExpr("themeVars.color.primary")}
        assert model.required_imports == [TOKENS_IMPORT]
        assert session.imports == [TOKENS_IMPORT]

    def test_boolean_ternary(self):
        model, _ = _finalize(
            [_rule(_decl("color", "__SC_EXPR_0__"))],
            {0: 'p => p.primary ? "blue" : "gray"'},
        )
        assert model.base == {"color": "gray"}
        assert model.buckets == {"primary": {"color": "blue"}}
        assert model.bucket_style_keys == {"primary": "buttonPrimary"}
        assert model.styling_props == ["primary"]

    def test_ternary_with_empty_consequent(self):
        model, _ = _finalize(
            [_rule(_decl("text-decoration", "__SC_EXPR_0__"))],
            {0: 'p => p.plain ? null : "underline"'},
        )
        assert model.base == {}
        assert model.buckets == {"!plain": {"textDecoration": "underline"}}

    def test_chained_ternary_value(self):
        model, _ = _finalize(
            [_rule(_decl("height", "__SC_EXPR_0__"))],
            {0: 'p => p.size === "small" ? "24px" : p.size === "large" ? "48px" : "32px"'},
        )
        assert model.base == {"height": "32px"}
        assert model.buckets == {
            'size === "small"': {"height": "24px"},
            'size === "large"': {"height": "48px"},
        }

    def test_overlapping_chain_links_keep_first_match(self):
        model, _ = _finalize(
            [_rule(_decl("height", "__SC_EXPR_0__"))],
            {0: 'p => p.size === "small" ? "1px" : p.size ? "2px" : "3px"'},
        )
        assert model.base == {"height": "3px"}
        assert model.buckets == {
            'size === "small"': {"height": "1px"},
            'size !== "small" && size': {"height": "2px"},
        }
        assert model.bucket_style_keys['size !== "small" && size'] == "buttonSizeNotSmallSize"

    def test_repeated_chain_link_is_dropped(self):
        model, _ = _finalize(
            [_rule(_decl("height", "__SC_EXPR_0__"))],
            {0: 'p => p.size === "sm" ? "1px" : p.size === "sm" ? "2px" : "3px"'},
        )
        assert model.buckets == {'size === "sm"': {"height": "1px"}}

    def test_string_in_url_is_a_value(self):
        model, _ = _finalize(
            [_rule(_decl("background-image", "url(__SC_EXPR_0__)"))],
            {0: '"http://x/a.png"'},
        )
        assert model.base == {"backgroundImage": "url(http://x/a.png)"}

    def test_bucket_under_hover_takes_base_default(self):
        model, _ = _finalize(
            [
                _rule(_decl("color", "red")),
                _rule(_decl("color", "__SC_EXPR_0__"), selector="&:hover"),
            ],
            {0: 'p => p.active && "green"'},
        )
        assert model.buckets == {"active": {"color": {"default": "red", ":hover": "green"}}}

    def test_theme_conditional(self):
        model, _ = _finalize(
            [_rule(_decl("background-color", "__SC_EXPR_0__"))],
            {0: 'p => p.theme.isDark ? "black" : "white"'},
        )
        assert model.buckets == {
            "theme.isDark": {"backgroundColor": "black"},
            "!theme.isDark": {"backgroundColor": "white"},
        }
        assert model.needs_theme_hook
        assert model.styling_props == []

    def test_theme_conditional_inline_fallback(self):
        model, _ = _finalize(
            [_rule(_decl("background-color", "__SC_EXPR_0__"))],
            {0: 'p => p.theme.isDark ? darken(p.theme.color.text) : "white"'},
        )
        assert model.base == {"backgroundColor": "white"}
        assert model.inline_styles == [
            InlineStyle("backgroundColor", "theme.isDark ? darken(theme.color.text) : undefined")
        ]
        assert model.needs_theme_hook

    def test_multiple_static_slots(self):
        model, _ = _finalize(
            [_rule(_decl("padding", "__SC_EXPR_0__ __SC_EXPR_1__"))],
            {0: "p => p.theme.space.sm", 1: "p => p.theme.space.md"},
        )
        assert model.base == {"padding": StyleExpr("`${themeVars.space.sm} ${themeVars.space.md}`")}


class TestStyleFunctions:
    def test_prop_value(self):
        model, _ = _finalize([_rule(_decl("width", "__SC_EXPR_0__"))], {0: "p => p.$width"})
        fn = model.style_functions["buttonWidth"]
        assert fn.param == "width"
        assert fn.call_arg == "props.$width"
        assert fn.body == {"width": StyleExpr("width")}
        assert model.styling_props == ["$width"]

    def test_prop_value_with_unit(self):
        model, _ = _finalize([_rule(_decl("width", "__SC_EXPR_0__px"))], {0: "p => p.size"})
        assert model.style_functions["buttonWidth"].body == {"width": StyleExpr("`${size}px`")}

    def test_fallback_goes_to_base(self):
        model, _ = _finalize([_rule(_decl("gap", "__SC_EXPR_0__"))], {0: 'p => p.gap ?? "8px"'})
        assert model.base == {"gap": "8px"}
        assert model.style_functions["buttonGap"].body == {"gap": StyleExpr("gap")}

    def test_indexed_theme_lookup(self):
        model, _ = _finalize(
            [_rule(_decl("color", "__SC_EXPR_0__"))], {0: "p => p.theme.colors[p.tone]"}
        )
        fn = model.style_functions["buttonColor"]
        assert fn.body == {"color": StyleExpr("themeVars.colors[tone]")}
        assert model.required_imports == [TOKENS_IMPORT]

    def test_key_clash_appends_param(self):
        model, _ = _finalize(
            [
                _rule(_decl("width", "__SC_EXPR_0__")),
                _rule(_decl("width", "__SC_EXPR_1__"), selector="&:hover"),
            ],
            {0: "p => p.w", 1: "p => p.hoverWidth"},
        )
        assert set(model.style_functions) == {"buttonWidth", "buttonWidthFromHoverWidth"}
        assert model.style_functions["buttonWidthFromHoverWidth"].body == {
            "width": {"default": None, ":hover": StyleExpr("hoverWidth")}
        }


class TestStandaloneSlots:
    def test_guarded_block(self):
        model, _ = _finalize(
            [_rule(_slot_decl())],
            {0: 'p => p.disabled && "opacity: 0.5; cursor: not-allowed;"'},
        )
        assert model.buckets == {"disabled": {"opacity": 0.5, "cursor": "not-allowed"}}

    def test_ternary_blocks(self):
        model, _ = _finalize(
            [_rule(_slot_decl())],
            {0: "p => p.active ? css`color: red;` : css`color: blue;`"},
        )
        assert model.buckets == {"active": {"color": "red"}, "!active": {"color": "blue"}}

    def test_chained_blocks_get_default_bucket(self):
        model, _ = _finalize(
            [_rule(_slot_decl())],
            {
                0: 'p => p.size === "sm" ? "padding: 2px;" : p.size === "lg"'
                ' ? "padding: 8px;" : "padding: 4px;"'
            },
        )
        assert model.buckets == {
            'size === "sm"': {"padding": "2px"},
            'size === "lg"': {"padding": "8px"},
            '!(size === "sm" || size === "lg")': {"padding": "4px"},
        }

    def test_overlapping_chain_blocks_keep_first_match(self):
        model, _ = _finalize(
            [_rule(_slot_decl())],
            {
                0: 'p => p.size === "sm" ? "padding: 2px;" : p.size'
                ' ? "padding: 8px;" : "padding: 4px;"'
            },
        )
        assert model.buckets == {
            'size === "sm"': {"padding": "2px"},
            'size !== "sm" && size': {"padding": "8px"},
            '!(size === "sm" || size)': {"padding": "4px"},
        }

    def test_bare_css_string_is_a_block(self):
        model, _ = _finalize([_rule(_slot_decl())], {0: '"display: flex;"'})
        assert model.base == {"display": "flex"}

    def test_css_block_merges_into_base(self):
        model, _ = _finalize([_rule(_slot_decl())], {0: "css`display: flex; gap: 4px;`"})
        assert model.base == {"display": "flex", "gap": "4px"}

    def test_styles_helper_becomes_style_arg(self):
        adapter = TokenTableAdapter(helpers={"truncate": {"kind": "styles", "expr": "text.truncate"}})
        model, _ = _finalize([_rule(_slot_decl())], {0: "truncate()"}, adapter=adapter)
        assert model.style_args == [StyleArg(expr="text.truncate")]

    def test_empty_interpolation(self):
        model, _ = _finalize([_rule(_slot_decl())], {0: "p => false"})
        assert model.is_empty()
        assert not model.bailed


class TestDescendantOverrides:
    def test_descendant_component(self):
        model, _ = _finalize(
            [_rule(_decl("color", "red"), selector="&:hover __SC_EXPR_0__")], {0: "Icon"}
        )
        assert model.descendant_overrides == [
            DescendantOverride(
                key="iconInButton",
                child="Icon",
                parent="Button",
                ancestor_pseudo=":hover",
                props={"color": "red"},
            )
        ]
        assert model.base == {}

    def test_ancestor_component(self):
        model, _ = _finalize([_rule(_decl("opacity", "1"), selector="__SC_EXPR_0__ &")], {0: "Card"})
        override = model.descendant_overrides[0]
        assert (override.key, override.child, override.parent) == ("buttonInCard", "Button", "Card")

    def test_same_pair_with_other_pseudo_gets_suffix(self):
        model, _ = _finalize(
            [
                _rule(_decl("color", "red"), selector="& __SC_EXPR_0__"),
                _rule(_decl("color", "blue"), selector="&:focus-visible __SC_EXPR_0__"),
            ],
            {0: "Icon"},
        )
        assert [o.key for o in model.descendant_overrides] == [
            "iconInButton",
            "iconInButtonFocusVisible",
        ]

    def test_non_component_reference_bails(self):
        model, session = _finalize(
            [_rule(_decl("color", "red"), selector="& __SC_EXPR_0__")], {0: 'p => p.child'}
        )
        assert model.bailed
        assert session.warnings[0].reason_code == ReasonCode.UNSUPPORTED_DESCENDANT_OVERRIDE


class TestBailOuts:
    def test_unsupported_selector(self):
        loc = SourceLocation(start_line=4, start_col=2, end_line=6, end_col=3)
        model, session = _finalize(
            [_rule(_decl("color", "red")), _rule(_decl("color", "blue"), selector="& .label", loc=loc)]
        )
        assert model.bailed
        assert model.is_empty()
        [warning] = session.warnings
        assert warning.reason_code == ReasonCode.UNSUPPORTED_SELECTOR
        assert warning.component == "Button"
        assert warning.loc == loc

    def test_nested_at_rules(self):
        model, session = _finalize(
            [_rule(_decl("color", "red"), at_rules=["@media print", "@supports (display: grid)"])]
        )
        assert model.bailed
        assert session.warnings[0].reason_code == ReasonCode.UNSUPPORTED_AT_RULE

    def test_unknown_at_rule(self):
        model, session = _finalize([_rule(_decl("color", "red"), at_rules=["@layer base"])])
        assert session.warnings[0].reason_code == ReasonCode.UNSUPPORTED_AT_RULE

    def test_important_on_dynamic_value(self):
        model, session = _finalize(
            [_rule(_decl("color", "__SC_EXPR_0__", important=True))],
            {0: "p => p.theme.color.primary"},
        )
        assert model.bailed
        assert session.warnings[0].reason_code == ReasonCode.IMPORTANT_WITH_DYNAMIC_VALUE

    def test_multiple_slots_with_prop_value(self):
        model, session = _finalize(
            [_rule(_decl("margin", "__SC_EXPR_0__ __SC_EXPR_1__"))],
            {0: "p => p.theme.space.sm", 1: "p => p.x"},
        )
        assert session.warnings[0].reason_code == ReasonCode.MULTIPLE_SLOTS

    def test_unresolvable_helper(self):
        model, session = _finalize(
            [_rule(_decl("color", "__SC_EXPR_0__"))],
            {0: 'p => p.primary ? darken("blue") : lighten("red")'},
        )
        assert model.bailed
        assert model.buckets == {}
        assert [w.reason_code for w in session.warnings] == [ReasonCode.UNRESOLVABLE_CALL]

    def test_bail_discards_resolved_imports(self):
        model, session = _finalize(
            [_rule(_decl("color", "__SC_EXPR_0__"), _decl("margin", "__SC_EXPR_1__"))],
            {0: "p => p.theme.color.primary", 1: "p => foo(p)"},
        )
        assert model.bailed
        assert model.required_imports == []
        assert session.imports == []

    def test_unsupported_expression(self):
        model, session = _finalize([_rule(_decl("width", "__SC_EXPR_0__"))], {0: "p => p.a * 2"})
        assert session.warnings[0].reason_code == ReasonCode.UNSUPPORTED_INTERPOLATION

    def test_style_helper_under_pseudo(self):
        adapter = TokenTableAdapter(helpers={"focusRing": {"kind": "styles", "expr": "a11y.ring"}})
        model, session = _finalize(
            [_rule(_slot_decl(), selector="&:focus")], {0: "focusRing()"}, adapter=adapter
        )
        assert model.bailed
        assert session.warnings[0].reason_code == ReasonCode.UNRESOLVABLE_CALL

    def test_missing_slot_is_malformed(self):
        component = ComponentInput(name="Button", rules=[_rule(_decl("color", "__SC_EXPR_3__"))])
        session = ResolutionSession(TokenTableAdapter())
        with pytest.raises(MalformedInputError):
            finalize_component(component, {}, session)


class TestHelpers:
    def test_default_condition_single_case(self):
        assert default_condition(["disabled"]) == "!disabled"

    def test_default_condition_several_cases(self):
        assert default_condition(['a === "x"', 'a === "y"']) == '!(a === "x" || a === "y")'

    def test_pseudo_suffix(self):
        assert to_pseudo_suffix(":focus-visible") == "FocusVisible"
        assert to_pseudo_suffix(None) == ""
