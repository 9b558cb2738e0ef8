"""Wrapper-Necessity Analyzer — runtime wrapper function vs. direct element substitution."""

from __future__ import annotations

import logging
from enum import Enum

from . import constants
from .ir import WrapperHints
from .model import StyleModel
from .run_types import LoweringConfig

logger = logging.getLogger(__name__)


class WrapperReason(str, Enum):
    VARIANTS = "variants"
    STYLE_FUNCTIONS = "style-functions"
    INLINE_STYLES = "inline-styles"
    THEME_HOOK = "theme-hook"
    STYLE_ARGS = "style-args"
    DROP_PROPS = "drop-props"
    SHOULD_FORWARD_PROP = "should-forward-prop"
    EXPORTED = "exported"
    EXTERNAL_STYLES = "external-styles"
    POLYMORPHIC_AS = "polymorphic-as"
    CONDITIONAL_ATTRS = "conditional-attrs"
    DEFAULT_ATTRS = "default-attrs"


def compute_drop_props(model: StyleModel, forwarded_props: frozenset[str]) -> list[str]:
    """Styling props that must not reach the DOM element.

    Transient ``$`` props are always dropped; everything else is dropped
    unless it is a forwarded DOM attribute.
    """
    return [
        prop
        for prop in model.styling_props
        if prop.startswith(constants.TRANSIENT_PROP_PREFIX) or prop not in forwarded_props
    ]


def wrapper_reasons(model: StyleModel, hints: WrapperHints) -> list[WrapperReason]:
    """Every reason the component must stay a runtime function, in a stable order."""
    checks = [
        (bool(model.buckets or model.dimensions), WrapperReason.VARIANTS),
        (bool(model.style_functions), WrapperReason.STYLE_FUNCTIONS),
        (bool(model.inline_styles), WrapperReason.INLINE_STYLES),
        (model.needs_theme_hook, WrapperReason.THEME_HOOK),
        (bool(model.style_args), WrapperReason.STYLE_ARGS),
        (bool(model.drop_props), WrapperReason.DROP_PROPS),
        (hints.should_forward_prop, WrapperReason.SHOULD_FORWARD_PROP),
        (hints.exported, WrapperReason.EXPORTED),
        (hints.external_styles, WrapperReason.EXTERNAL_STYLES),
        (hints.polymorphic_as, WrapperReason.POLYMORPHIC_AS),
        (hints.has_conditional_attrs, WrapperReason.CONDITIONAL_ATTRS),
        (hints.has_default_attrs, WrapperReason.DEFAULT_ATTRS),
    ]
    return [reason for present, reason in checks if present]


def analyze_wrapper(
    model: StyleModel,
    hints: WrapperHints | None = None,
    config: LoweringConfig = LoweringConfig(),
) -> bool:
    """Fill ``drop_props``, ``wrapper_reasons`` and ``needs_wrapper`` on the model.

    A bailed model is left untouched: the component is not rewritten at all.
    """
    if model.bailed:
        return False
    hints = hints or WrapperHints()
    model.drop_props = compute_drop_props(model, config.forwarded_props)
    reasons = wrapper_reasons(model, hints)
    model.wrapper_reasons = [r.value for r in reasons]
    model.needs_wrapper = bool(reasons)
    if reasons:
        logger.debug(
            "%s needs a wrapper: %s", model.component, ", ".join(model.wrapper_reasons)
        )
    return model.needs_wrapper
