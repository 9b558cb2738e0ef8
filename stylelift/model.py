"""Style model — the per-component result handed to the emitter."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union

from .adapter import ImportSpec


@dataclass(frozen=True)
class StyleExpr:
    """A JS expression value (token reference, helper result, template)."""

    code: str

    def to_dict(self) -> dict[str, str]:
        return {"$expr": self.code}


# A property value: scalar, expression, or a nested pseudo/at-rule map.
StyleValue = Union[str, int, float, None, StyleExpr, dict]
PropMap = dict[str, Any]


@dataclass
class VariantDimension:
    """Mutually exclusive buckets over one enum prop, emitted as one object."""

    name: str
    prop_name: str
    variants: dict[str, PropMap]
    default_value: str | None = None
    namespace_boolean_prop: str | None = None
    is_disabled_namespace: bool = False

    def content_key(self) -> str:
        return json.dumps(
            {
                "prop": self.prop_name,
                "variants": _serialize(self.variants),
                "default": self.default_value,
                "ns": [self.namespace_boolean_prop, self.is_disabled_namespace],
            },
            sort_keys=True,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "propName": self.prop_name,
            "variants": _serialize(self.variants),
        }
        if self.default_value is not None:
            data["defaultValue"] = self.default_value
        if self.namespace_boolean_prop is not None:
            data["namespaceBooleanProp"] = self.namespace_boolean_prop
            data["isDisabledNamespace"] = self.is_disabled_namespace
        return data


@dataclass
class StyleFunction:
    """Parameterized style for an irreducibly dynamic value.

    ``body`` values are JS expressions over ``param``; ``call_arg`` is the
    prop expression passed at the call site.  When ``guard_undefined`` the
    call is skipped while the prop is undefined.
    """

    key: str
    param: str
    call_arg: str
    body: PropMap
    guard_undefined: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "param": self.param,
            "callArg": self.call_arg,
            "body": _serialize(self.body),
            "guardUndefined": self.guard_undefined,
        }


@dataclass
class InlineStyle:
    """Runtime-conditional inline style (themed-boolean fallback)."""

    css_prop: str
    expr: str

    def to_dict(self) -> dict[str, str]:
        return {"cssProp": self.css_prop, "expr": self.expr}


@dataclass
class StyleArg:
    """Extra style argument produced by a ``styles``-kind helper result."""

    expr: str
    condition: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"expr": self.expr, "condition": self.condition}


@dataclass
class DescendantOverride:
    """Styles one component applies to another; owned by neither bucket map."""

    key: str
    child: str
    parent: str
    ancestor_pseudo: str | None
    props: PropMap = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "child": self.child,
            "parent": self.parent,
            "ancestorPseudo": self.ancestor_pseudo,
            "props": _serialize(self.props),
        }


class FrozenModelError(RuntimeError):
    pass


@dataclass
class StyleModel:
    """Per-component resolved style model.

    Created empty at the start of finalization, mutated by each pass, then
    frozen; a bailed model stays empty.
    """

    component: str
    style_key: str
    base: PropMap = field(default_factory=dict)
    buckets: dict[str, PropMap] = field(default_factory=dict)
    bucket_style_keys: dict[str, str] = field(default_factory=dict)
    dimensions: list[VariantDimension] = field(default_factory=list)
    style_functions: dict[str, StyleFunction] = field(default_factory=dict)
    inline_styles: list[InlineStyle] = field(default_factory=list)
    style_args: list[StyleArg] = field(default_factory=list)
    descendant_overrides: list[DescendantOverride] = field(default_factory=list)
    required_imports: list[ImportSpec] = field(default_factory=list)
    styling_props: list[str] = field(default_factory=list)
    drop_props: list[str] = field(default_factory=list)
    needs_theme_hook: bool = False
    needs_wrapper: bool = False
    wrapper_reasons: list[str] = field(default_factory=list)
    bailed: bool = False
    _frozen: bool = field(default=False, repr=False)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise FrozenModelError(f"StyleModel for {self.component} is frozen")
        super().__setattr__(name, value)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> StyleModel:
        object.__setattr__(self, "_frozen", True)
        return self

    def bucket(self, when: str) -> PropMap:
        """Return the bucket for ``when``, creating it on first use."""
        if when not in self.buckets:
            self.buckets[when] = {}
        return self.buckets[when]

    def add_imports(self, specs) -> None:
        for spec in specs:
            if spec not in self.required_imports:
                self.required_imports.append(spec)

    def use_prop(self, prop_name: str) -> None:
        """Note a prop read by a condition or style function."""
        if prop_name not in self.styling_props:
            self.styling_props.append(prop_name)

    def is_empty(self) -> bool:
        return not (
            self.base
            or self.buckets
            or self.dimensions
            or self.style_functions
            or self.inline_styles
            or self.style_args
            or self.descendant_overrides
        )

    def reset(self) -> None:
        """Discard everything gathered so far (bail)."""
        fresh = StyleModel(component=self.component, style_key=self.style_key)
        for name, value in vars(fresh).items():
            if name != "_frozen":
                setattr(self, name, value)
        self.bailed = True

    def property_maps(self) -> list[PropMap]:
        """``base`` plus every bucket and dimension case, in emission order."""
        maps: list[PropMap] = [self.base, *self.buckets.values()]
        for dim in self.dimensions:
            maps.extend(dim.variants.values())
        return maps

    def to_dict(self) -> dict[str, Any]:
        return {
            "component": self.component,
            "styleKey": self.style_key,
            "base": _serialize(self.base),
            "buckets": {
                when: {"styleKey": self.bucket_style_keys.get(when), "styles": _serialize(m)}
                for when, m in self.buckets.items()
            },
            "dimensions": [d.to_dict() for d in self.dimensions],
            "styleFunctions": [f.to_dict() for f in self.style_functions.values()],
            "inlineStyles": [s.to_dict() for s in self.inline_styles],
            "styleArgs": [a.to_dict() for a in self.style_args],
            "descendantOverrides": [o.to_dict() for o in self.descendant_overrides],
            "requiredImports": [i.to_dict() for i in self.required_imports],
            "stylingProps": list(self.styling_props),
            "dropProps": list(self.drop_props),
            "needsThemeHook": self.needs_theme_hook,
            "needsWrapper": self.needs_wrapper,
            "wrapperReasons": list(self.wrapper_reasons),
            "bailed": self.bailed,
        }


def _serialize(value: Any) -> Any:
    if isinstance(value, StyleExpr):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


def is_nested_map(value: Any) -> bool:
    """True for a pseudo/at-rule map (``{"default": ..., ":hover": ...}``)."""
    return isinstance(value, dict)
