"""Compound variant synthesis — keeps pseudo-state entries winning over boolean buckets.

In nested CSS a ``:hover`` rule outranks a later root-level declaration from a
boolean interpolation; atomic buckets applied in sequence do not, so a bucket
that overrides a pseudo-carrying property would wipe the pseudo entries.
"""

from __future__ import annotations

import logging
from typing import Any

from . import constants
from .conditions import ConditionInfo, compound, parse_condition, style_key_for
from .model import PropMap, StyleModel, is_nested_map
from .run_types import LoweringConfig

logger = logging.getLogger(__name__)


def _merge_over(source: dict[str, Any], override: Any) -> dict[str, Any]:
    """``source``'s pseudo entries with ``override`` as the new default.

    When ``override`` is itself a nested map its explicit keys win.
    """
    merged = dict(source)
    if is_nested_map(override):
        merged.update(override)
    else:
        merged[constants.PSEUDO_DEFAULT_KEY] = override
    return merged


def _enum_buckets_for(model: StyleModel, css_prop: str) -> dict[str, list[tuple[str, str]]]:
    """Enum prop → ``[(when, value)]`` for ``===`` buckets overriding ``css_prop``."""
    found: dict[str, list[tuple[str, str]]] = {}
    for when, styles in model.buckets.items():
        parsed = parse_condition(when)
        if parsed.type != "equality" or parsed.operator != "===":
            continue
        if css_prop in styles:
            found.setdefault(parsed.prop_name, []).append((when, parsed.value))
    return found


def _enum_case_count(
    prop_name: str, buckets: list[tuple[str, str]], prop_types: dict[str, list[str]]
) -> int:
    union = prop_types.get(prop_name)
    if union:
        return len(union)
    return len(buckets) + 1


def _uses_namespace_dimension(
    model: StyleModel,
    bool_styles: PropMap,
    prop_types: dict[str, list[str]],
) -> bool:
    """True when the grouper will fold this boolean bucket into namespace dimensions."""
    for when, styles in model.buckets.items():
        parsed = parse_condition(when)
        if parsed.type != "equality" or parsed.operator != "===":
            continue
        if len(prop_types.get(parsed.prop_name, [])) != 2:
            continue
        if set(styles) & set(bool_styles):
            return True
    return False


def synthesize_compounds(
    model: StyleModel,
    prop_types: dict[str, list[str]] | None = None,
    config: LoweringConfig = LoweringConfig(),
) -> int:
    """Rewrite boolean-bucket overrides of pseudo-carrying properties.

    For each boolean bucket overriding a property whose base value is a
    pseudo map:

    - with no enum bucket touching the property, the bucket value becomes
      the base map with the bucket value as ``default``;
    - with exactly one ``prop === "x"`` bucket whose value for the property
      is a pseudo map (and at most two cases for that enum), the override
      moves into two compound buckets ``bool && prop === "x"`` (pseudo
      entries from the enum bucket) and ``bool && prop !== "x"`` (pseudo
      entries from base).

    Returns the number of compound buckets created.
    """
    prop_types = prop_types or {}
    created = 0
    for when in list(model.buckets):
        parsed = parse_condition(when)
        if parsed.type != "boolean":
            continue
        bool_styles = model.buckets[when]
        if config.namespace_dimensions and _uses_namespace_dimension(model, bool_styles, prop_types):
            logger.debug("Skipping compounds for %s: namespace dimensions apply", when)
            continue
        for css_prop in list(bool_styles):
            base_value = model.base.get(css_prop)
            if not is_nested_map(base_value):
                continue
            override = bool_styles[css_prop]
            enums = _enum_buckets_for(model, css_prop)
            if not enums:
                bool_styles[css_prop] = _merge_over(base_value, override)
                logger.debug("Kept %s pseudo entries under %s", css_prop, when)
                continue
            if len(enums) != 1:
                continue
            enum_prop, cases = next(iter(enums.items()))
            if len(cases) != 1 or _enum_case_count(enum_prop, cases, prop_types) > 2:
                logger.debug("No compound for %s: %s has more than two cases", when, enum_prop)
                continue
            enum_when, enum_value = cases[0]
            enum_map = model.buckets[enum_when][css_prop]
            if not is_nested_map(enum_map):
                continue
            matching = ConditionInfo.comparison(enum_prop, enum_value, "===")
            pairs = (
                (compound(when, matching), enum_map),
                (compound(when, matching.negate()), base_value),
            )
            for compound_when, source in pairs:
                target = model.bucket(compound_when)
                target[css_prop] = _merge_over(source, override)
                model.bucket_style_keys.setdefault(
                    compound_when, style_key_for(model.style_key, compound_when)
                )
                created += 1
            del bool_styles[css_prop]
            logger.debug("Synthesized compounds for %s && %s on %s", when, enum_when, css_prop)
        if not bool_styles:
            del model.buckets[when]
            model.bucket_style_keys.pop(when, None)
    return created