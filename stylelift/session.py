"""Resolution session — warnings, reason codes and import bookkeeping for one run."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .adapter import ImportSpec, ResolutionAdapter
from .ir import SourceLocation

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ReasonCode(str, Enum):
    UNSUPPORTED_INTERPOLATION = "unsupported-interpolation"
    UNRESOLVABLE_THEME_PATH = "unresolvable-theme-path"
    UNRESOLVABLE_CALL = "unresolvable-call"
    UNRESOLVABLE_BRANCH = "unresolvable-branch"
    MISMATCHED_TERNARY_CHAIN = "mismatched-ternary-chain"
    UNSUPPORTED_SELECTOR = "unsupported-selector"
    UNSUPPORTED_AT_RULE = "unsupported-at-rule"
    IMPORTANT_WITH_DYNAMIC_VALUE = "important-with-dynamic-value"
    MULTIPLE_SLOTS = "multiple-slots"
    UNSUPPORTED_CSS_BLOCK = "unsupported-css-block"
    UNSUPPORTED_DESCENDANT_OVERRIDE = "unsupported-descendant-override"


class StyleWarning(BaseModel):
    """Structured diagnostic handed to the emitter alongside the style models."""

    severity: Severity = Severity.WARNING
    reason_code: ReasonCode
    message: str = ""
    component: str = ""
    loc: SourceLocation | None = None
    context: dict[str, Any] = Field(default_factory=dict)

    def __str__(self) -> str:
        where = f" at {self.loc}" if self.loc is not None else ""
        return f"[{self.reason_code.value}] {self.component}{where}: {self.message}"


class MalformedInputError(ValueError):
    """Upstream parser handed the engine something it could never produce legally."""


class BailOut(Exception):
    """Abort the current component; carries the one warning to record."""

    def __init__(self, warning: StyleWarning):
        super().__init__(warning.message)
        self.warning = warning


def bail(
    reason_code: ReasonCode,
    message: str,
    loc: SourceLocation | None = None,
    **context: Any,
) -> BailOut:
    """Build a ``BailOut`` ready to raise."""
    return BailOut(
        StyleWarning(
            reason_code=reason_code,
            message=message,
            loc=loc if loc is not None and not loc.is_unknown() else None,
            context=context,
        )
    )


class ResolutionSession:
    """Mutable context threaded explicitly through one file's lowering.

    Holds the adapter, the structured warning list and the import dedup map;
    nothing in the engine keeps state in module scope.
    """

    def __init__(self, adapter: ResolutionAdapter):
        self.adapter = adapter
        self.warnings: list[StyleWarning] = []
        self._imports: dict[tuple, ImportSpec] = {}

    def warn(self, warning: StyleWarning) -> None:
        self.warnings.append(warning)
        if warning.severity == Severity.INFO:
            logger.debug("%s", warning)
        else:
            logger.warning("%s", warning)

    def add_imports(self, specs: tuple[ImportSpec, ...] | list[ImportSpec]) -> list[ImportSpec]:
        """Record imports, returning only the ones not seen before in this session."""
        fresh: list[ImportSpec] = []
        for spec in specs:
            key = spec.dedup_key()
            if key in self._imports:
                continue
            self._imports[key] = spec
            fresh.append(spec)
        return fresh

    @property
    def imports(self) -> list[ImportSpec]:
        return list(self._imports.values())
