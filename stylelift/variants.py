"""Variant Dimension Grouper — folds enum-comparison buckets into variant dimensions.

Decisions are made per component (``group_variants``); naming collisions and
sharing across the components of one file are settled afterwards by
``DimensionRegistry``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from . import constants
from .conditions import ConditionInfo, capitalize, parse_condition
from .model import PropMap, StyleModel, VariantDimension
from .run_types import LoweringConfig

logger = logging.getLogger(__name__)


@dataclass
class _EnumCase:
    when: str
    value: str
    styles: PropMap


def dimension_name(prop_name: str, namespace: str | None = None) -> str:
    """``size`` → ``sizeVariants``; ``variant`` → ``variants`` (no ``variantVariants``)."""
    stripped = prop_name.lstrip(constants.TRANSIENT_PROP_PREFIX)
    if stripped == constants.VARIANTS_PROP_NAME:
        head = namespace.lower() if namespace else ""
        return f"{head}{constants.VARIANTS_OBJECT_SUFFIX}" if head else "variants"
    return f"{stripped}{namespace or ''}{constants.VARIANTS_OBJECT_SUFFIX}"


def _collect_enum_groups(model: StyleModel) -> dict[str, list[_EnumCase]]:
    groups: dict[str, list[_EnumCase]] = {}
    for when, styles in model.buckets.items():
        parsed = parse_condition(when)
        if parsed.type != "equality":
            continue
        info = ConditionInfo.comparison(parsed.prop_name, parsed.value, parsed.operator)
        # only === cases are mutually exclusive
        if info.is_compatible_with(ConditionInfo.comparison(info.prop_name, parsed.value)):
            groups.setdefault(info.prop_name, []).append(
                _EnumCase(when=when, value=parsed.value, styles=styles)
            )
    return groups


def _collect_boolean_buckets(model: StyleModel) -> dict[str, PropMap]:
    """Boolean buckets (either polarity) keyed by their condition string."""
    return {
        when: styles
        for when, styles in model.buckets.items()
        if parse_condition(when).type == "boolean"
    }


def _overlapping_boolean(
    css_props: set[str], booleans: dict[str, PropMap]
) -> tuple[str, PropMap] | None:
    for when, styles in booleans.items():
        if css_props & set(styles):
            return when, styles
    return None


def _default_entry(
    cases: list[_EnumCase], base: PropMap, union: list[str] | None
) -> tuple[str | None, PropMap]:
    """Name and styles of the fallback case, taken from base."""
    overridden: list[str] = []
    for case in cases:
        for css_prop in case.styles:
            if css_prop not in overridden:
                overridden.append(css_prop)
    defaults = {p: base[p] for p in overridden if p in base}
    if not defaults:
        return None, {}
    if union:
        explicit = {c.value for c in cases}
        remaining = [v for v in union if v not in explicit]
        if len(remaining) == 1:
            return remaining[0], defaults
    return constants.DEFAULT_VARIANT_KEY, defaults


def _merge_boolean_into(variant_styles: PropMap, bool_styles: PropMap) -> PropMap:
    """Boolean styles override the variant's, except the variant keeps its pseudo entries."""
    merged = dict(variant_styles)
    for css_prop, bool_value in bool_styles.items():
        current = merged.get(css_prop)
        if isinstance(current, dict) and not isinstance(bool_value, dict):
            merged[css_prop] = {**current, constants.PSEUDO_DEFAULT_KEY: bool_value}
        else:
            merged[css_prop] = bool_value
    return merged


def _drop_buckets(model: StyleModel, whens: list[str]) -> None:
    for when in whens:
        model.buckets.pop(when, None)
        model.bucket_style_keys.pop(when, None)


def group_variants(
    model: StyleModel,
    prop_types: dict[str, list[str]] | None = None,
    config: LoweringConfig = LoweringConfig(),
) -> list[VariantDimension]:
    """Group the model's ``prop === "x"`` buckets into dimensions.

    A prop's buckets become one dimension when there are at least two of
    them (tested values pairwise distinct), none of their CSS properties is
    also overridden by a boolean bucket, and their property set is disjoint
    from every dimension already built for this component.  Grouped
    properties are stripped from base; base's values live on as the
    dimension's default case.

    With ``config.namespace_dimensions`` a boolean overlap instead yields an
    enabled/disabled pair of dimensions that consumes the boolean bucket, and
    a single case over a two-value union may form a dimension.
    """
    prop_types = prop_types or {}
    groups = _collect_enum_groups(model)
    booleans = _collect_boolean_buckets(model)
    recipe_pattern = any(
        _overlapping_boolean({p for c in cases for p in c.styles}, booleans) is not None
        for cases in groups.values()
    )
    claimed: set[str] = {p for dim in model.dimensions for v in dim.variants.values() for p in v}
    built: list[VariantDimension] = []

    for prop_name, cases in groups.items():
        union = prop_types.get(prop_name)
        values = [c.value for c in cases]
        if len(set(values)) != len(values):
            logger.debug("Not grouping %s: repeated case values", prop_name)
            continue
        css_props = {p for c in cases for p in c.styles}
        overlap = _overlapping_boolean(css_props, booleans)

        if len(cases) == 1:
            single_ok = (
                config.namespace_dimensions
                and recipe_pattern
                and union is not None
                and len(union) == 2
                and values[0] in union
            )
            if not single_ok:
                continue
        if overlap is not None and not config.namespace_dimensions:
            logger.debug("Not grouping %s: overlaps boolean bucket %s", prop_name, overlap[0])
            continue
        if css_props & claimed:
            logger.debug("Not grouping %s: properties already in another dimension", prop_name)
            continue

        variant_map: dict[str, PropMap] = {c.value: c.styles for c in cases}
        default_value, default_styles = _default_entry(cases, model.base, union)
        if default_value is not None:
            variant_map[default_value] = default_styles

        if overlap is not None:
            bool_when, bool_styles = overlap
            bool_prop = parse_condition(bool_when).prop_name
            built.append(
                VariantDimension(
                    name=dimension_name(prop_name, constants.NAMESPACE_ENABLED),
                    prop_name=prop_name,
                    variants=variant_map,
                    default_value=default_value,
                    namespace_boolean_prop=bool_prop,
                )
            )
            built.append(
                VariantDimension(
                    name=dimension_name(prop_name, constants.NAMESPACE_DISABLED),
                    prop_name=prop_name,
                    variants={
                        value: _merge_boolean_into(styles, bool_styles)
                        for value, styles in variant_map.items()
                    },
                    default_value=default_value,
                    namespace_boolean_prop=bool_prop,
                    is_disabled_namespace=True,
                )
            )
            _drop_buckets(model, [bool_when])
            booleans.pop(bool_when, None)
        else:
            built.append(
                VariantDimension(
                    name=dimension_name(prop_name),
                    prop_name=prop_name,
                    variants=variant_map,
                    default_value=default_value,
                )
            )

        _drop_buckets(model, [c.when for c in cases])
        if default_value is not None:
            for css_prop in default_styles:
                model.base.pop(css_prop, None)
        claimed |= css_props
        logger.debug("Grouped %s into %d case(s)", prop_name, len(variant_map))

    model.dimensions.extend(built)
    return built


# ── per-file sharing ─────────────────────────────────────────────


@dataclass
class DimensionRegistry:
    """File-level dimension table.

    Identical name and content across components are emitted once; same
    name with different content is renamed with the component's style-key
    prefix.
    """

    dimensions: dict[str, VariantDimension] = field(default_factory=dict)
    shared: int = 0

    def register(self, model: StyleModel) -> None:
        for dim in model.dimensions:
            existing = self.dimensions.get(dim.name)
            if existing is None:
                self.dimensions[dim.name] = dim
                continue
            if existing.content_key() == dim.content_key():
                self.shared += 1
                logger.debug("Sharing dimension %s with %s", dim.name, model.component)
                continue
            renamed = f"{model.style_key}{capitalize(dim.name)}"
            logger.debug("Renaming dimension %s to %s", dim.name, renamed)
            dim.name = renamed
            self.dimensions[renamed] = dim

    def to_dict(self) -> dict[str, dict]:
        return {name: dim.to_dict() for name, dim in self.dimensions.items()}
