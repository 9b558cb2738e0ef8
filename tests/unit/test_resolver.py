"""Tests for BranchResolver and the themed-boolean fallback planner."""

from stylelift.adapter import (
    CallResolution,
    ImportName,
    ImportSpec,
    ResolutionAdapter,
    ThemeResolution,
    callee_name,
)
from stylelift.model import StyleExpr
from stylelift.parser import parse_slot_expression
from stylelift.resolver import (
    BranchResolver,
    BranchSource,
    InlineFallbackPlan,
    ResolutionFailure,
    ResolvedBlock,
    ResolvedEmpty,
    ResolvedStyles,
    ResolvedValue,
    ThemeBranchPlan,
    plan_theme_conditional,
)
from stylelift.session import ReasonCode, ResolutionSession

TOKENS_IMPORT = ImportSpec(source="./tokens.stylex", names=(ImportName("themeVars"),))


class FakeAdapter(ResolutionAdapter):
    """Adapter with a fixed set of theme paths and helper answers."""

    def __init__(self, paths=(), helpers=None):
        self._paths = {tuple(p.split(".")) for p in paths}
        self._helpers = helpers or {}
        self.calls: list[str] = []

    def resolve_theme_path(self, path, location=None):
        if tuple(path) not in self._paths:
            return None
        return ThemeResolution(
            static_expr="themeVars." + ".".join(path), required_imports=(TOKENS_IMPORT,)
        )

    def resolve_call(self, call, css_property=None):
        name = callee_name(call) or ""
        self.calls.append(name)
        return self._helpers.get(name, CallResolution.unresolved(f"no helper {name}"))


def _resolver(adapter=None, css_prop="color", prefix="", suffix="") -> BranchResolver:
    arrow = parse_slot_expression("props => props")
    session = ResolutionSession(adapter or FakeAdapter())
    return BranchResolver(session, arrow.params, css_prop, None, prefix, suffix)


def _body(source: str):
    return parse_slot_expression(source).body


class TestValues:
    def test_literal(self):
        assert _resolver().resolve(_body('props => "red"')) == ResolvedValue("red")

    def test_numeric_literal_string_is_coerced(self):
        result = _resolver(css_prop="opacity").resolve(_body('props => "0.5"'))
        assert result == ResolvedValue(0.5)

    def test_prefix_and_suffix_wrap_literal(self):
        resolver = _resolver(css_prop="width", prefix="calc(", suffix=" - 4px)")
        assert resolver.resolve(_body('props => "100%"')) == ResolvedValue("calc(100% - 4px)")

    def test_empty(self):
        assert _resolver().resolve(_body("props => null")) == ResolvedEmpty()

    def test_theme_path(self):
        adapter = FakeAdapter(paths=["color.primary"])
        result = _resolver(adapter).resolve(_body("props => props.theme.color.primary"))
        assert result == ResolvedValue(
            StyleExpr("themeVars.color.primary"), BranchSource.THEME, (TOKENS_IMPORT,)
        )

    def test_theme_path_inside_value_text(self):
        adapter = FakeAdapter(paths=["border"])
        resolver = _resolver(adapter, css_prop="border", prefix="1px solid ")
        result = resolver.resolve(_body("props => props.theme.border"))
        assert result.value == StyleExpr("`1px solid ${themeVars.border}`")

    def test_missing_theme_path(self):
        result = _resolver().resolve(_body("props => props.theme.nope"))
        assert isinstance(result, ResolutionFailure)
        assert result.reason_code == ReasonCode.UNRESOLVABLE_THEME_PATH

    def test_value_call(self):
        adapter = FakeAdapter(helpers={"darken": CallResolution.value("colors.dark")})
        result = _resolver(adapter).resolve(_body('props => darken("red")'))
        assert result == ResolvedValue(StyleExpr("colors.dark"), BranchSource.CALL)
        assert adapter.calls == ["darken"]

    def test_styles_call(self):
        adapter = FakeAdapter(helpers={"truncate": CallResolution.styles("helpers.truncate")})
        result = _resolver(adapter, css_prop=None).resolve(_body("props => truncate()"))
        assert result == ResolvedStyles("helpers.truncate")

    def test_styles_call_inside_value_fails(self):
        adapter = FakeAdapter(helpers={"truncate": CallResolution.styles("helpers.truncate")})
        result = _resolver(adapter, prefix="x ").resolve(_body("props => truncate()"))
        assert isinstance(result, ResolutionFailure)

    def test_unresolved_call(self):
        result = _resolver().resolve(_body('props => lighten("red")'))
        assert isinstance(result, ResolutionFailure)
        assert result.reason_code == ReasonCode.UNRESOLVABLE_CALL
        assert result.has_call

    def test_template_with_theme(self):
        adapter = FakeAdapter(paths=["space.sm"])
        result = _resolver(adapter, css_prop="padding").resolve(
            _body("props => `${props.theme.space.sm} 0`")
        )
        assert result == ResolvedValue(
            StyleExpr("`${themeVars.space.sm} 0`"), BranchSource.TEMPLATE, (TOKENS_IMPORT,)
        )

    def test_fully_static_template(self):
        result = _resolver(css_prop="margin").resolve(_body('props => `4px ${"8px"}`'))
        assert result == ResolvedValue("4px 8px", BranchSource.TEMPLATE)

    def test_prop_reference_is_unresolvable(self):
        result = _resolver().resolve(_body("props => props.color"))
        assert isinstance(result, ResolutionFailure)
        assert result.reason_code == ReasonCode.UNRESOLVABLE_BRANCH


class TestBlocks:
    def test_css_block_with_theme_value(self):
        adapter = FakeAdapter(paths=["color.primary"])
        result = _resolver(adapter, css_prop=None).resolve(
            _body("props => css`color: ${props.theme.color.primary}; opacity: 0.5;`")
        )
        assert result == ResolvedBlock(
            (("color", StyleExpr("themeVars.color.primary")), ("opacity", 0.5)),
            (TOKENS_IMPORT,),
        )

    def test_css_string_block(self):
        result = _resolver(css_prop=None).resolve(_body('props => "background-color: red;"'))
        assert result == ResolvedBlock((("backgroundColor", "red"),))

    def test_block_mixin_becomes_style_arg(self):
        adapter = FakeAdapter(helpers={"truncate": CallResolution.styles("helpers.truncate")})
        result = _resolver(adapter, css_prop=None).resolve(
            _body("props => css`${truncate()}; color: red;`")
        )
        assert isinstance(result, ResolvedBlock)
        assert result.style_args == ("helpers.truncate",)
        assert result.declarations == (("color", "red"),)

    def test_block_with_nested_rule(self):
        result = _resolver(css_prop=None).resolve(_body("props => css`&:hover { color: red; }`"))
        assert isinstance(result, ResolutionFailure)
        assert result.reason_code == ReasonCode.UNSUPPORTED_CSS_BLOCK

    def test_important_on_dynamic_value_in_block(self):
        adapter = FakeAdapter(paths=["color.primary"])
        result = _resolver(adapter, css_prop=None).resolve(
            _body("props => css`color: ${props.theme.color.primary} !important;`")
        )
        assert isinstance(result, ResolutionFailure)
        assert result.reason_code == ReasonCode.IMPORTANT_WITH_DYNAMIC_VALUE

    def test_static_important_kept(self):
        result = _resolver(css_prop=None).resolve(_body('props => "color: red !important;"'))
        assert result.declarations == (("color", "red !important"),)


class TestThemeConditionalPlan:
    def test_both_branches_resolve(self):
        resolver = _resolver(css_prop="backgroundColor")
        plan = plan_theme_conditional(
            resolver, ("theme", "isDark"), _body('props => "black"'), _body('props => "white"')
        )
        assert plan == ThemeBranchPlan(ResolvedValue("black"), ResolvedValue("white"))

    def test_unresolvable_call_branch_becomes_inline_style(self):
        resolver = _resolver(css_prop="backgroundColor")
        plan = plan_theme_conditional(
            resolver,
            ("theme", "isDark"),
            _body("props => darken(props.theme.color.bg)"),
            _body('props => "white"'),
        )
        assert plan == InlineFallbackPlan(
            base=ResolvedValue("white"),
            inline_expr="theme.isDark ? darken(theme.color.bg) : undefined",
        )

    def test_unresolvable_alternate(self):
        resolver = _resolver(css_prop="color")
        plan = plan_theme_conditional(
            resolver, ("theme", "isDark"), _body('props => "black"'), _body('props => mix("a")')
        )
        assert isinstance(plan, InlineFallbackPlan)
        assert plan.inline_expr == 'theme.isDark ? undefined : mix("a")'

    def test_both_unresolvable(self):
        resolver = _resolver(css_prop="color")
        plan = plan_theme_conditional(
            resolver, ("theme", "isDark"), _body('props => a("x")'), _body('props => b("y")')
        )
        assert isinstance(plan, ResolutionFailure)
        assert plan.reason_code == ReasonCode.UNRESOLVABLE_CALL

    def test_failure_without_call_is_not_rescued(self):
        resolver = _resolver(css_prop="color")
        plan = plan_theme_conditional(
            resolver, ("theme", "isDark"), _body("props => props.theme.missing"), _body('props => "x"')
        )
        assert isinstance(plan, ResolutionFailure)
        assert plan.reason_code == ReasonCode.UNRESOLVABLE_THEME_PATH
