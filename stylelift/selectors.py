"""Selector parsing — which nested-rule selectors map onto static style keys."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from . import constants

_SLOT_RE = re.compile(constants.SLOT_PLACEHOLDER_PATTERN)
_PSEUDO_NAME_RE = re.compile(r"[A-Za-z-]+")
_WS_RE = re.compile(r"\s+")

# Attribute selectors on inputs that have an equivalent pseudo-class.
_ATTRIBUTE_PSEUDOS: dict[str, str] = {
    "disabled": ":disabled",
    "readonly": ":read-only",
    "readOnly": ":read-only",
    "checked": ":checked",
}


@dataclass(frozen=True)
class BaseSelector:
    pass


@dataclass(frozen=True)
class PseudoSelector:
    """``&:hover`` / ``&:hover, &:focus`` / ``&::before`` / ``&:hover::before``.

    Each entry of ``pseudos`` is one map key (chained pseudo-classes stay one
    key); ``pseudo_element`` nests the declarations in a pseudo-element block.
    """

    pseudos: tuple[str, ...] = ()
    pseudo_element: str | None = None


@dataclass(frozen=True)
class DescendantComponent:
    """``&:hover ${Child}``: style another component nested inside this one."""

    slot_id: int
    ancestor_pseudo: str | None = None


@dataclass(frozen=True)
class AncestorComponent:
    """``${Parent}:hover &``: style this component when inside another one."""

    slot_id: int
    ancestor_pseudo: str | None = None


@dataclass(frozen=True)
class UnsupportedSelector:
    reason: str


ParsedSelector = Union[
    BaseSelector,
    PseudoSelector,
    DescendantComponent,
    AncestorComponent,
    UnsupportedSelector,
]


def _read_paren_group(text: str, pos: int) -> int:
    """Return the index just past the ``)`` matching ``text[pos] == "("``."""
    depth = 0
    for i in range(pos, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return i + 1
    return -1


def _scan_pseudos(text: str) -> tuple[str, str | None] | str:
    """Scan a run of ``:pseudo`` / ``::element`` tokens.

    Returns ``(pseudo_classes, pseudo_element)`` or an error reason string.
    """
    pos = 0
    classes: list[str] = []
    element: str | None = None
    while pos < len(text):
        if element is not None:
            return "pseudo-class after pseudo-element"
        if text.startswith("::", pos):
            match = _PSEUDO_NAME_RE.match(text, pos + 2)
            if match is None:
                return "malformed pseudo-element"
            element = "::" + match.group(0)
            pos = match.end()
            continue
        if text[pos] != ":":
            return _describe_unsupported(text[pos:])
        match = _PSEUDO_NAME_RE.match(text, pos + 1)
        if match is None:
            return "malformed pseudo-class"
        end = match.end()
        if end < len(text) and text[end] == "(":
            end = _read_paren_group(text, end)
            if end < 0:
                return "unbalanced parentheses"
        classes.append(text[pos:end])
        pos = end
    return "".join(classes), element


def _describe_unsupported(rest: str) -> str:
    head = rest[:1]
    if head == ".":
        return "class selector"
    if head == "#":
        return "id selector"
    if head == "[":
        return "attribute selector"
    if head == "*":
        return "universal selector"
    if head in (" ", ">", "+", "~"):
        return "descendant/child/sibling selector"
    return f"unsupported selector fragment {rest!r}"


def _normalize_attribute(selector: str) -> str:
    match = re.match(r"^&\[\s*([A-Za-z-]+)\s*\](.*)$", selector)
    if match and match.group(1) in _ATTRIBUTE_PSEUDOS:
        return "&" + _ATTRIBUTE_PSEUDOS[match.group(1)] + match.group(2)
    return selector


def _parse_single(selector: str) -> ParsedSelector:
    selector = _normalize_attribute(selector.strip())
    if selector in ("", constants.BASE_SELECTOR):
        return BaseSelector()
    if not selector.startswith(constants.BASE_SELECTOR):
        return UnsupportedSelector("selector does not target the component root")
    scanned = _scan_pseudos(selector[1:])
    if isinstance(scanned, str):
        return UnsupportedSelector(scanned)
    classes, element = scanned
    if "&" in classes:
        return UnsupportedSelector("multi-level nested selector")
    return PseudoSelector(pseudos=(classes,) if classes else (), pseudo_element=element)


def _parse_component_reference(selector: str) -> ParsedSelector:
    """``&:hover ${X}`` / ``& ${X}`` / ``${X}:hover &`` / ``${X} &``."""
    text = _WS_RE.sub(" ", selector.strip())
    descendant = re.match(
        r"^&((?::[A-Za-z-]+(?:\([^)]*\))?)*) " + constants.SLOT_PLACEHOLDER_PATTERN + r"$",
        text,
    )
    if descendant:
        return DescendantComponent(
            slot_id=int(descendant.group(2)), ancestor_pseudo=descendant.group(1) or None
        )
    ancestor = re.match(
        "^" + constants.SLOT_PLACEHOLDER_PATTERN + r"((?::[A-Za-z-]+(?:\([^)]*\))?)*) &$",
        text,
    )
    if ancestor:
        return AncestorComponent(
            slot_id=int(ancestor.group(1)), ancestor_pseudo=ancestor.group(2) or None
        )
    return UnsupportedSelector("interpolated selector")


def parse_selector(selector: str) -> ParsedSelector:
    """Classify a nested-rule selector for placement in a static style object."""
    if _SLOT_RE.search(selector):
        return _parse_component_reference(selector)
    parts = [p.strip() for p in selector.split(",")]
    if len(parts) == 1:
        return _parse_single(parts[0])
    pseudos: list[str] = []
    for part in parts:
        parsed = _parse_single(part)
        if (
            not isinstance(parsed, PseudoSelector)
            or parsed.pseudo_element is not None
            or len(parsed.pseudos) != 1
        ):
            return UnsupportedSelector("comma-separated selectors must all be simple pseudos")
        pseudos.append(parsed.pseudos[0])
    return PseudoSelector(pseudos=tuple(pseudos))


def slot_ids_in(selector: str) -> list[int]:
    return [int(m.group(1)) for m in _SLOT_RE.finditer(selector)]
