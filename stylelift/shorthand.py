"""Shorthand/Longhand Conflict Normalizer.

Atomic styles merge per property, so ``margin`` in one map and
``marginBottom`` in another do not override each other the way a cascade
would.  When that mix is seen across a component's maps, the shorthand is
expanded into the longhand family the other maps already use.
"""

from __future__ import annotations

import logging
from enum import Enum

from . import constants
from .css_props import coerce_value, split_important, split_value_tokens, with_important
from .model import PropMap, StyleModel

logger = logging.getLogger(__name__)


class LonghandFamily(str, Enum):
    PHYSICAL = "physical"
    LOGICAL_AXES = "logical-axes"
    LOGICAL_EDGES = "logical-edges"
    MIXED_INLINE = "mixed-inline"


_FAMILY_EDGES: dict[LonghandFamily, tuple[str, ...]] = {
    LonghandFamily.PHYSICAL: constants.PHYSICAL_EDGES,
    LonghandFamily.LOGICAL_AXES: constants.LOGICAL_AXES,
    LonghandFamily.LOGICAL_EDGES: constants.LOGICAL_EDGES,
    LonghandFamily.MIXED_INLINE: ("Top", "InlineEnd", "Bottom", "InlineStart"),
}


def quad_values(tokens: list[str]) -> tuple[str, str, str, str]:
    """Box values (top, right, bottom, left) for a 1–4 token shorthand."""
    top = tokens[0]
    right = tokens[1] if len(tokens) > 1 else top
    bottom = tokens[2] if len(tokens) > 2 else top
    left = tokens[3] if len(tokens) > 3 else right
    return top, right, bottom, left


def _pair(first: str, second: str) -> str:
    return first if first == second else f"{first} {second}"


def expand_shorthand(
    shorthand: str,
    value: str | int | float,
    family: LonghandFamily,
) -> list[tuple[str, str | int | float]] | None:
    """Longhand ``(prop, value)`` pairs for one simple shorthand value.

    Returns None when the value cannot be split safely (not 1–4 tokens).
    """
    if isinstance(value, (int, float)):
        raw, important = str(value), False
    else:
        raw, important = split_important(value)
    tokens = split_value_tokens(raw)
    if not 1 <= len(tokens) <= 4:
        return None
    top, right, bottom, left = quad_values(tokens)
    if family == LonghandFamily.LOGICAL_AXES:
        parts = [_pair(top, bottom), _pair(left, right)]
    else:
        parts = [top, right, bottom, left]
    expanded: list[tuple[str, str | int | float]] = []
    for edge, part in zip(_FAMILY_EDGES[family], parts):
        prop = f"{shorthand}{edge}"
        expanded.append((prop, with_important(coerce_value(prop, part), important)))
    return expanded


def _longhand_family_in(
    shorthand: str, maps: list[PropMap], prefer_inline: bool
) -> LonghandFamily | None:
    keys = {k for m in maps for k in m}
    physical = any(f"{shorthand}{e}" in keys for e in constants.PHYSICAL_EDGES)
    logical_edges = any(f"{shorthand}{e}" in keys for e in constants.LOGICAL_EDGES)
    axes = any(f"{shorthand}{a}" in keys for a in constants.LOGICAL_AXES)
    if physical:
        return LonghandFamily.MIXED_INLINE if prefer_inline else LonghandFamily.PHYSICAL
    if logical_edges:
        return LonghandFamily.LOGICAL_EDGES
    if axes:
        return LonghandFamily.LOGICAL_AXES
    return None


def _replace_in_order(target: PropMap, key: str, expanded: list[tuple[str, object]]) -> None:
    rebuilt: PropMap = {}
    for k, v in target.items():
        if k == key:
            rebuilt.update(expanded)
        else:
            rebuilt[k] = v
    target.clear()
    target.update(rebuilt)


def normalize_shorthands(model: StyleModel, prefer_inline: bool = False) -> int:
    """Expand conflicting box shorthands in place; returns the number expanded."""
    maps = model.property_maps()
    expanded_count = 0
    for shorthand in constants.BOX_SHORTHANDS:
        for index, target in enumerate(maps):
            value = target.get(shorthand)
            if not isinstance(value, (str, int, float)) or isinstance(value, bool):
                continue
            others = [m for i, m in enumerate(maps) if i != index]
            family = _longhand_family_in(shorthand, others, prefer_inline)
            if family is None:
                continue
            expanded = expand_shorthand(shorthand, value, family)
            if expanded is None:
                logger.debug("Leaving %s: %r is not a 1-4 value box", shorthand, value)
                continue
            _replace_in_order(target, shorthand, expanded)
            expanded_count += 1
            logger.debug("Expanded %s=%r into %s longhands", shorthand, value, family.value)
    return expanded_count
