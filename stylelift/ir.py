"""Rule IR — pre-parsed CSS rule tree with dynamic-slot references."""

from __future__ import annotations

import re
from typing import Literal, Union

from pydantic import BaseModel, Field, field_validator

from . import constants


class SourceLocation(BaseModel):
    """Structured source span of a rule, declaration or slot expression."""

    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def is_unknown(self) -> bool:
        return (
            self.start_line == 0
            and self.start_col == 0
            and self.end_line == 0
            and self.end_col == 0
        )

    def __str__(self) -> str:
        if self.is_unknown():
            return "<unknown>"
        return f"{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


NO_SOURCE_LOCATION = SourceLocation(start_line=0, start_col=0, end_line=0, end_col=0)


class StaticPart(BaseModel):
    kind: Literal["static"] = "static"
    text: str


class SlotPart(BaseModel):
    kind: Literal["slot"] = "slot"
    slot_id: int


ValuePart = Union[StaticPart, SlotPart]


class DeclarationValue(BaseModel):
    """Ordered static-text / slot-reference parts of one declaration value."""

    parts: list[ValuePart] = Field(default_factory=list)

    @classmethod
    def from_text(cls, text: str) -> DeclarationValue:
        """Split raw value text on ``__SC_EXPR_<n>__`` placeholders."""
        parts: list[ValuePart] = []
        pos = 0
        for match in re.finditer(constants.SLOT_PLACEHOLDER_PATTERN, text):
            if match.start() > pos:
                parts.append(StaticPart(text=text[pos : match.start()]))
            parts.append(SlotPart(slot_id=int(match.group(1))))
            pos = match.end()
        if pos < len(text):
            parts.append(StaticPart(text=text[pos:]))
        return cls(parts=parts)

    def is_static(self) -> bool:
        return all(isinstance(p, StaticPart) for p in self.parts)

    def slot_ids(self) -> list[int]:
        return [p.slot_id for p in self.parts if isinstance(p, SlotPart)]

    def static_text(self) -> str:
        return "".join(p.text for p in self.parts if isinstance(p, StaticPart))

    def __str__(self) -> str:
        return "".join(
            p.text
            if isinstance(p, StaticPart)
            else constants.SLOT_PLACEHOLDER_TEMPLATE.format(id=p.slot_id)
            for p in self.parts
        )


class Declaration(BaseModel):
    """One CSS declaration. ``property == ""`` marks a standalone slot (mixin)."""

    property: str
    value: DeclarationValue
    important: bool = False
    source_location: SourceLocation = NO_SOURCE_LOCATION

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_raw_value(cls, value):
        if isinstance(value, str):
            return DeclarationValue.from_text(value)
        return value

    @classmethod
    def parse(
        cls,
        property: str,
        raw_value: str,
        important: bool = False,
        source_location: SourceLocation = NO_SOURCE_LOCATION,
    ) -> Declaration:
        return cls(
            property=property,
            value=DeclarationValue.from_text(raw_value),
            important=important,
            source_location=source_location,
        )

    def is_standalone_slot(self) -> bool:
        return self.property == ""

    def __str__(self) -> str:
        suffix = constants.IMPORTANT_SUFFIX if self.important else ""
        if self.is_standalone_slot():
            return f"{self.value}{suffix};"
        return f"{self.property}: {self.value}{suffix};"


class Rule(BaseModel):
    selector: str = constants.BASE_SELECTOR
    at_rule_stack: list[str] = Field(default_factory=list)
    declarations: list[Declaration] = Field(default_factory=list)
    source_location: SourceLocation = NO_SOURCE_LOCATION


class WrapperHints(BaseModel):
    """Facts about the component's usage that the rule tree cannot show."""

    exported: bool = False
    external_styles: bool = False
    polymorphic_as: bool = False
    has_conditional_attrs: bool = False
    has_default_attrs: bool = False
    should_forward_prop: bool = False


class ComponentInput(BaseModel):
    """One styled component: its rules, its slot expressions and prop types."""

    name: str
    rules: list[Rule] = Field(default_factory=list)
    slots: dict[int, str] = Field(default_factory=dict)
    prop_types: dict[str, list[str]] = Field(default_factory=dict)
    hints: WrapperHints = Field(default_factory=WrapperHints)
    source_location: SourceLocation = NO_SOURCE_LOCATION
