"""CSS property names and values — camel-casing, coercion, declaration blocks."""

from __future__ import annotations

import re

from . import constants

_NUMERIC_RE = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)$")
_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_IMPORTANT_RE = re.compile(r"\s*!\s*important\s*$", re.IGNORECASE)


def to_camel(prop: str) -> str:
    """``background-color`` → ``backgroundColor``; ``-webkit-x`` → ``WebkitX``.

    Custom properties (``--brand``) are returned unchanged.
    """
    prop = prop.strip()
    if prop.startswith("--"):
        return prop
    if prop.startswith("-ms-"):
        prop = prop[1:]
    head, *rest = prop.split("-")
    camel = head + "".join(p[:1].upper() + p[1:] for p in rest)
    return camel


def coerce_value(prop: str, raw: str | int | float) -> str | int | float:
    """Turn purely numeric strings into numbers, except for string-only props."""
    if not isinstance(raw, str):
        return raw
    text = raw.strip()
    if prop in constants.STRING_ONLY_PROPS or not _NUMERIC_RE.match(text):
        return text
    number = float(text)
    return int(number) if number.is_integer() and "." not in text else number


def with_important(value: str | int | float, important: bool) -> str | int | float:
    if not important:
        return value
    return f"{value}{constants.IMPORTANT_SUFFIX}"


def split_important(raw: str) -> tuple[str, bool]:
    match = _IMPORTANT_RE.search(raw)
    if match is None:
        return raw.strip(), False
    return raw[: match.start()].strip(), True


def _split_top_level(text: str, separator: str) -> list[str]:
    """Split on ``separator`` outside parentheses and quotes."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for ch in text:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(depth - 1, 0)
        elif ch == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def split_value_tokens(value: str) -> list[str]:
    """Whitespace-split a value, keeping ``calc(a + b)`` style groups intact."""
    tokens: list[str] = []
    for chunk in _split_top_level(value.strip(), " "):
        if chunk.strip():
            tokens.append(chunk.strip())
    return tokens


def parse_declaration_block(text: str) -> list[tuple[str, str, bool]] | None:
    """Parse ``color: red; margin: 0 !important`` into (prop, value, important).

    Property names stay as written.  Returns None when the block contains
    nested rules or a segment that is not a declaration.
    """
    body = _COMMENT_RE.sub("", text)
    if "{" in body or "}" in body:
        return None
    declarations: list[tuple[str, str, bool]] = []
    for segment in _split_top_level(body, ";"):
        if not segment.strip():
            continue
        prop, sep, value = segment.partition(":")
        if not sep or not prop.strip() or not value.strip():
            return None
        value, important = split_important(value)
        declarations.append((prop.strip(), value, important))
    return declarations
