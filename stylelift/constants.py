"""Named constants — eliminates magic strings across the codebase."""

from __future__ import annotations

SLOT_PLACEHOLDER_PATTERN = r"__SC_EXPR_(\d+)__"
SLOT_PLACEHOLDER_TEMPLATE = "__SC_EXPR_{id}__"

BASE_SELECTOR = "&"
THEME_SEGMENT = "theme"
THEME_HOOK_VAR = "theme"

DEFAULT_VARIANT_KEY = "default"
PSEUDO_DEFAULT_KEY = "default"

VARIANTS_PROP_NAME = "variant"
VARIANTS_OBJECT_SUFFIX = "Variants"
NAMESPACE_ENABLED = "Enabled"
NAMESPACE_DISABLED = "Disabled"

IMPORTANT_SUFFIX = " !important"

SUPPORTED_LANGUAGES: tuple[str, ...] = ("javascript", "typescript")
DEFAULT_LANGUAGE = "typescript"

SUPPORTED_AT_RULES: tuple[str, ...] = ("@media", "@container", "@supports")

# Properties whose numeric-looking values must stay strings (e.g. `flex: 1`
# is a shorthand, not a unitless number).
STRING_ONLY_PROPS: frozenset[str] = frozenset(
    {
        "flex",
        "fontWeight",
        "gridArea",
        "gridColumn",
        "gridRow",
        "content",
    }
)

# Literal expressions that make an interpolation emit nothing.
EMPTY_LITERALS: frozenset[str] = frozenset({"true", "false", "null", "undefined"})

# Name hints that carry no information for style-key suffixes.
GENERIC_NAME_HINTS: frozenset[str] = frozenset({"truthy", "falsy", "default", "match"})

# Box-model shorthands normalized by the shorthand pass.
BOX_SHORTHANDS: tuple[str, ...] = (
    "margin",
    "padding",
    "scrollMargin",
    "scrollPadding",
)
PHYSICAL_EDGES: tuple[str, ...] = ("Top", "Right", "Bottom", "Left")
LOGICAL_AXES: tuple[str, ...] = ("Block", "Inline")
LOGICAL_EDGES: tuple[str, ...] = ("BlockStart", "InlineEnd", "BlockEnd", "InlineStart")
INLINE_EDGES: tuple[str, ...] = ("InlineStart", "InlineEnd")

# DOM attributes that stay forwarded even when used for styling.
DEFAULT_FORWARDED_PROPS: frozenset[str] = frozenset(
    {
        "checked",
        "disabled",
        "href",
        "hidden",
        "readOnly",
        "required",
        "selected",
        "type",
    }
)

TRANSIENT_PROP_PREFIX = "$"
