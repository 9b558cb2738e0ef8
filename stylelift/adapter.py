"""Expression-resolution adapters — pluggable strategies for theme paths and helper calls."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .expr import Call, Expr, Identifier, Literal, Member, render_js
from .ir import SourceLocation

logger = logging.getLogger(__name__)


class ImportSourceKind(str, Enum):
    ABSOLUTE_PATH = "absolutePath"
    SPECIFIER = "specifier"


@dataclass(frozen=True)
class ImportName:
    imported: str
    local: str | None = None


@dataclass(frozen=True)
class ImportSpec:
    """One import the emitter must add for a resolved expression to be valid."""

    source: str
    names: tuple[ImportName, ...]
    source_kind: ImportSourceKind = ImportSourceKind.SPECIFIER

    def dedup_key(self) -> tuple:
        return (self.source_kind.value, self.source, self.names)

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": {"kind": self.source_kind.value, "value": self.source},
            "names": [
                {"imported": n.imported, **({"local": n.local} if n.local else {})}
                for n in self.names
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImportSpec:
        src = data["from"]
        if isinstance(src, str):
            src = {"kind": ImportSourceKind.SPECIFIER.value, "value": src}
        names = tuple(
            ImportName(n) if isinstance(n, str) else ImportName(n["imported"], n.get("local"))
            for n in data.get("names", [])
        )
        return cls(
            source=src["value"],
            names=names,
            source_kind=ImportSourceKind(src.get("kind", ImportSourceKind.SPECIFIER.value)),
        )


@dataclass(frozen=True)
class ThemeResolution:
    static_expr: str
    required_imports: tuple[ImportSpec, ...] = ()


class CallResultKind(str, Enum):
    VALUE = "value"
    STYLES = "styles"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class CallResolution:
    """Adapter answer for a helper call.

    ``VALUE`` results are a single CSS value expression merged into the
    property map; ``STYLES`` results are a whole style-object reference that
    becomes an extra style argument.
    """

    kind: CallResultKind
    expr: str = ""
    required_imports: tuple[ImportSpec, ...] = ()
    css_text: str | None = None
    reason: str = ""

    @classmethod
    def value(cls, expr: str, required_imports: tuple[ImportSpec, ...] = ()) -> CallResolution:
        return cls(kind=CallResultKind.VALUE, expr=expr, required_imports=required_imports)

    @classmethod
    def styles(
        cls,
        expr: str,
        required_imports: tuple[ImportSpec, ...] = (),
        css_text: str | None = None,
    ) -> CallResolution:
        return cls(
            kind=CallResultKind.STYLES,
            expr=expr,
            required_imports=required_imports,
            css_text=css_text,
        )

    @classmethod
    def unresolved(cls, reason: str) -> CallResolution:
        return cls(kind=CallResultKind.UNRESOLVED, reason=reason)

    @property
    def is_resolved(self) -> bool:
        return self.kind != CallResultKind.UNRESOLVED


def callee_name(call: Call) -> str | None:
    """Dotted name of the helper, looking through curried calls."""
    node: Expr = call.callee
    while isinstance(node, Call):
        node = node.callee
    parts: list[str] = []
    while isinstance(node, Member) and not node.computed:
        parts.append(render_js(node.property))
        node = node.object
    if not isinstance(node, Identifier):
        return None
    parts.append(node.name)
    return ".".join(reversed(parts))


def helper_arguments(call: Call) -> tuple[Expr, ...]:
    """Arguments of the first application: ``h("a")(props)`` → ``("a",)``."""
    node = call
    while isinstance(node.callee, Call):
        node = node.callee
    return node.arguments


class ResolutionAdapter(ABC):
    """Strategy answering the two questions the engine cannot answer itself."""

    @abstractmethod
    def resolve_theme_path(
        self, path: list[str], location: SourceLocation | None = None
    ) -> ThemeResolution | None:
        """Return the static token expression for ``theme.<path>``, or None."""
        ...

    @abstractmethod
    def resolve_call(self, call: Call, css_property: str | None = None) -> CallResolution:
        """Resolve a helper call in the context of an optional CSS property."""
        ...


class TokenTableAdapter(ResolutionAdapter):
    """Resolves theme paths against a nested token table and helpers by name.

    ``tokens`` mirrors the theme object shape; any path present in it (leaf or
    subtree) resolves to ``<var_name>.<path>``.  ``helpers`` maps a callee
    name to ``{"kind": "value"|"styles", "expr": str, "imports": [...]}``
    where ``expr`` may use ``{0}``, ``{1}``... for the helper's literal
    arguments and ``{args}`` for all of them rendered as source.
    """

    def __init__(
        self,
        tokens: dict[str, Any] | None = None,
        var_name: str = "themeVars",
        import_from: str = "./tokens.stylex",
        helpers: dict[str, dict[str, Any]] | None = None,
    ):
        self._tokens = tokens or {}
        self._var_name = var_name
        self._import = ImportSpec(source=import_from, names=(ImportName(var_name),))
        self._helpers = helpers or {}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenTableAdapter:
        return cls(
            tokens=data.get("tokens", {}),
            var_name=data.get("varName", "themeVars"),
            import_from=data.get("importFrom", "./tokens.stylex"),
            helpers=data.get("helpers", {}),
        )

    def resolve_theme_path(
        self, path: list[str], location: SourceLocation | None = None
    ) -> ThemeResolution | None:
        node: Any = self._tokens
        for segment in path:
            if not isinstance(node, dict) or segment not in node:
                logger.debug("Theme path %s not in token table (%s)", path, location)
                return None
            node = node[segment]
        return ThemeResolution(
            static_expr=".".join([self._var_name, *path]),
            required_imports=(self._import,),
        )

    def resolve_call(self, call: Call, css_property: str | None = None) -> CallResolution:
        name = callee_name(call)
        spec = self._helpers.get(name or "")
        if spec is None:
            return CallResolution.unresolved(f"unknown helper {name or render_js(call.callee)}")
        args = helper_arguments(call)
        positional = [
            str(a.value) if isinstance(a, Literal) and a.value is not None else render_js(a)
            for a in args
        ]
        try:
            expr = spec["expr"].format(*positional, args=", ".join(render_js(a) for a in args))
        except (IndexError, KeyError) as exc:
            return CallResolution.unresolved(f"helper {name} template mismatch: {exc}")
        imports = tuple(ImportSpec.from_dict(i) for i in spec.get("imports", []))
        if spec.get("kind", CallResultKind.VALUE.value) == CallResultKind.STYLES.value:
            return CallResolution.styles(expr, imports, css_text=spec.get("cssText"))
        return CallResolution.value(expr, imports)
