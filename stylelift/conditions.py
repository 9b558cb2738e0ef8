"""Branching conditions — normalized shape, canonical strings and style-key suffixes."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, replace
from enum import Enum

from . import constants

_IDENT_RE = r"[A-Za-z_$][A-Za-z0-9_$]*"
_EQUALITY_RE = re.compile(rf"^({_IDENT_RE})\s*(===|!==)\s*\"([^\"]*)\"$")
_BOOLEAN_RE = re.compile(rf"^{_IDENT_RE}$")
_COMPOUND_SEPARATOR = " && "


class ConditionKind(str, Enum):
    BOOLEAN = "boolean"
    COMPARISON = "comparison"


@dataclass(frozen=True)
class ConditionInfo:
    """Normalized branching test over one prop (or a dotted theme flag)."""

    prop_name: str
    kind: ConditionKind = ConditionKind.BOOLEAN
    negated: bool = False
    operator: str | None = None
    rhs_value: str | int | float | None = None

    @classmethod
    def boolean(cls, prop_name: str, negated: bool = False) -> ConditionInfo:
        return cls(prop_name=prop_name, negated=negated)

    @classmethod
    def comparison(
        cls, prop_name: str, rhs_value: str | int | float, operator: str = "==="
    ) -> ConditionInfo:
        return cls(
            prop_name=prop_name,
            kind=ConditionKind.COMPARISON,
            operator=operator,
            rhs_value=rhs_value,
        )

    def negate(self) -> ConditionInfo:
        if self.kind == ConditionKind.BOOLEAN:
            return replace(self, negated=not self.negated)
        return replace(self, operator="!==" if self.operator == "===" else "===")

    def is_compatible_with(self, other: ConditionInfo) -> bool:
        """Same prop and operator family: the pair may share a dimension."""
        return (
            self.prop_name == other.prop_name
            and self.kind == other.kind
            and self.operator == other.operator
        )

    def canonical(self) -> str:
        if self.kind == ConditionKind.BOOLEAN:
            return f"!{self.prop_name}" if self.negated else self.prop_name
        return f"{self.prop_name} {self.operator} {json.dumps(self.rhs_value)}"

    def __str__(self) -> str:
        return self.canonical()


def compound(*conditions: ConditionInfo | str) -> str:
    """Join conditions into one ``a && b`` bucket key."""
    return _COMPOUND_SEPARATOR.join(str(c) for c in conditions)


def chain_conditions(links: list[ConditionInfo]) -> list[str | None]:
    """Bucket key for each link of a ternary chain; None marks an unreachable repeat.

    Distinct ``===`` literals over one prop are mutually exclusive and keep
    their plain keys.  Any other chain prefixes each link with the negation of
    every earlier link so the first matching link still wins.
    """
    exclusive = all(
        info.kind == ConditionKind.COMPARISON and info.operator == "===" for info in links
    )
    keys: list[str | None] = []
    earlier: list[ConditionInfo] = []
    for info in links:
        if info in earlier:
            keys.append(None)
            continue
        keys.append(
            info.canonical() if exclusive else compound(*(p.negate() for p in earlier), info)
        )
        earlier.append(info)
    return keys


def negate_condition_string(when: str) -> str:
    """Negate a canonical condition string; ``!(!x)`` collapses to ``x``."""
    parsed = parse_condition(when)
    if parsed.type == "boolean":
        return parsed.prop_name if parsed.negated else f"!{parsed.prop_name}"
    if parsed.type == "equality":
        op = "!==" if parsed.operator == "===" else "==="
        return f"{parsed.prop_name} {op} {json.dumps(parsed.value)}"
    if " " not in when:
        return when[1:] if when.startswith("!") else f"!{when}"
    if when.startswith("!(") and when.endswith(")"):
        return when[2:-1]
    return f"!({when})"


# ── parsing canonical strings back ───────────────────────────────


@dataclass(frozen=True)
class ParsedCondition:
    type: str  # "equality" | "boolean" | "compound" | "unknown"
    prop_name: str = ""
    operator: str = ""
    value: str = ""
    negated: bool = False


def parse_condition(when: str) -> ParsedCondition:
    trimmed = when.strip()
    if "&&" in trimmed:
        return ParsedCondition(type="compound")
    if trimmed.startswith("!"):
        inner = trimmed[1:].strip()
        if inner.startswith("(") and inner.endswith(")"):
            inner = inner[1:-1]
        if _BOOLEAN_RE.match(inner):
            return ParsedCondition(type="boolean", prop_name=inner, negated=True)
        return ParsedCondition(type="unknown")
    match = _EQUALITY_RE.match(trimmed)
    if match:
        return ParsedCondition(
            type="equality",
            prop_name=match.group(1),
            operator=match.group(2),
            value=match.group(3),
        )
    if _BOOLEAN_RE.match(trimmed):
        return ParsedCondition(type="boolean", prop_name=trimmed)
    return ParsedCondition(type="unknown")


# ── style-key naming ─────────────────────────────────────────────


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def _identifier_suffix(text: str) -> str:
    words = [w for w in re.split(r"[^A-Za-z0-9]+", text) if w]
    return "".join(capitalize(w) for w in words)


def to_suffix_from_prop(when: str) -> str:
    """Style-key suffix for a condition string.

    ``$isActive`` → ``Active``, ``size === "large"`` → ``SizeLarge``,
    ``!disabled`` → ``NotDisabled``, ``a && b`` → suffixes concatenated.
    """
    raw = when[1:] if when.startswith(constants.TRANSIENT_PROP_PREFIX) else when
    trimmed = raw.strip()
    if not trimmed:
        return "Variant"
    if "&&" in trimmed:
        parts = [p.strip() for p in trimmed.split("&&") if p.strip()]
        return "".join(to_suffix_from_prop(p) for p in parts)
    if trimmed.startswith("!"):
        inner = trimmed[1:].strip()
        if inner.startswith("(") and inner.endswith(")"):
            inner = inner[1:-1]
        return f"Not{to_suffix_from_prop(inner)}"
    eq = "!==" if "!==" in trimmed else "===" if "===" in trimmed else None
    if eq:
        lhs, _, rhs = trimmed.partition(eq)
        lhs = lhs.strip().lstrip(constants.TRANSIENT_PROP_PREFIX) or "Variant"
        rhs_raw = rhs.strip().strip("'\"")
        rhs_suffix = _identifier_suffix(rhs_raw) or ("NotMatch" if eq == "!==" else "Match")
        lhs_suffix = capitalize(lhs)
        return f"{lhs_suffix}Not{rhs_suffix}" if eq == "!==" else f"{lhs_suffix}{rhs_suffix}"
    if "." in trimmed:
        return "".join(capitalize(seg) for seg in trimmed.split("."))
    if trimmed.startswith("is") and len(trimmed) > 2 and trimmed[2].isupper():
        return trimmed[2:]
    return capitalize(trimmed)


def style_key_for(base_key: str, when: str) -> str:
    return f"{base_key}{to_suffix_from_prop(when)}"


def lower_first(text: str) -> str:
    return text[:1].lower() + text[1:]
