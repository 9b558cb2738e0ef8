"""Tests for CSS property camel-casing, value coercion and declaration blocks."""

from stylelift.css_props import (
    coerce_value,
    parse_declaration_block,
    split_important,
    split_value_tokens,
    to_camel,
    with_important,
)


class TestToCamel:
    def test_hyphenated(self):
        assert to_camel("background-color") == "backgroundColor"

    def test_single_word(self):
        assert to_camel("color") == "color"

    def test_vendor_prefix(self):
        assert to_camel("-webkit-transition") == "WebkitTransition"

    def test_ms_prefix_is_lowercase(self):
        assert to_camel("-ms-flex") == "msFlex"

    def test_custom_property_unchanged(self):
        assert to_camel("--brand-color") == "--brand-color"


class TestCoerceValue:
    def test_unit_value_stays_string(self):
        assert coerce_value("height", "24px") == "24px"

    def test_integer(self):
        assert coerce_value("zIndex", "10") == 10

    def test_float(self):
        assert coerce_value("opacity", "0.5") == 0.5

    def test_string_only_prop(self):
        assert coerce_value("flex", "1") == "1"
        assert coerce_value("fontWeight", "600") == "600"

    def test_non_string_passthrough(self):
        assert coerce_value("opacity", 1) == 1

    def test_whitespace_trimmed(self):
        assert coerce_value("color", "  red ") == "red"


class TestImportant:
    def test_split(self):
        assert split_important("red !important") == ("red", True)
        assert split_important("red") == ("red", False)

    def test_split_tolerates_spacing(self):
        assert split_important("0 ! IMPORTANT") == ("0", True)

    def test_with_important(self):
        assert with_important("red", True) == "red !important"
        assert with_important(0, False) == 0


class TestSplitValueTokens:
    def test_whitespace(self):
        assert split_value_tokens("4px 8px") == ["4px", "8px"]

    def test_keeps_function_groups(self):
        assert split_value_tokens("calc(1px + 2px) 4px") == ["calc(1px + 2px)", "4px"]


class TestParseDeclarationBlock:
    def test_declarations_in_order(self):
        parsed = parse_declaration_block("color: red; margin: 0 !important;")
        assert parsed == [("color", "red", False), ("margin", "0", True)]

    def test_comments_are_ignored(self):
        assert parse_declaration_block("/* note */ color: red") == [("color", "red", False)]

    def test_semicolon_inside_quotes(self):
        parsed = parse_declaration_block('content: "a;b"; color: red')
        assert parsed == [("content", '"a;b"', False), ("color", "red", False)]

    def test_nested_rule_rejected(self):
        assert parse_declaration_block("&:hover { color: red; }") is None

    def test_junk_rejected(self):
        assert parse_declaration_block("color red") is None

    def test_empty_block(self):
        assert parse_declaration_block("  ") == []
