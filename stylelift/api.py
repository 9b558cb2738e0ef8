"""Composable API functions for the lowering pipeline.

Each function corresponds to a CLI workflow but is callable programmatically
without argparse.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from . import constants
from .adapter import ImportSpec, ResolutionAdapter, TokenTableAdapter
from .cascade import synthesize_compounds
from .expr import Expr
from .finalizer import finalize_component
from .ir import ComponentInput
from .model import StyleModel
from .parser import ParserFactory, parse_slot_expression
from .run_types import LoweringConfig, PipelineStats
from .selectors import slot_ids_in
from .session import MalformedInputError, ResolutionSession, StyleWarning
from .shorthand import normalize_shorthands
from .variants import DimensionRegistry, group_variants
from .wrapper import analyze_wrapper

logger = logging.getLogger(__name__)


@dataclass
class FileResult:
    """Everything lowered from one file, ready for the emitter."""

    models: list[StyleModel]
    dimensions: DimensionRegistry
    warnings: list[StyleWarning]
    imports: list[ImportSpec]
    stats: PipelineStats = field(default_factory=PipelineStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "models": [m.to_dict() for m in self.models],
            "dimensions": self.dimensions.to_dict(),
            "warnings": [w.model_dump(mode="json") for w in self.warnings],
            "imports": [i.to_dict() for i in self.imports],
        }


def referenced_slot_ids(component: ComponentInput) -> list[int]:
    """Slot ids used by the component's selectors and declaration values."""
    ids: list[int] = []
    for rule in component.rules:
        ids.extend(slot_ids_in(rule.selector))
        for at_rule in rule.at_rule_stack:
            ids.extend(slot_ids_in(at_rule))
        for decl in rule.declarations:
            ids.extend(decl.value.slot_ids())
    return sorted(set(ids))


def parse_slots(
    component: ComponentInput,
    language: str = constants.DEFAULT_LANGUAGE,
    parser_factory: ParserFactory | None = None,
) -> dict[int, Expr]:
    """Parse every slot expression the component's rules reference.

    Args:
        component: The component whose ``slots`` hold expression source text.
        language: Grammar for the expressions.
        parser_factory: Override the tree-sitter factory (tests).

    Returns:
        Slot id → parsed expression.

    Raises:
        MalformedInputError: A referenced slot id has no expression.
    """
    exprs: dict[int, Expr] = {}
    for slot_id in referenced_slot_ids(component):
        if slot_id not in component.slots:
            raise MalformedInputError(
                f"{component.name}: slot {slot_id} is referenced but has no expression"
            )
        exprs[slot_id] = parse_slot_expression(component.slots[slot_id], language, parser_factory)
    return exprs


def lower_component(
    component: ComponentInput,
    adapter: ResolutionAdapter | None = None,
    config: LoweringConfig = LoweringConfig(),
    session: ResolutionSession | None = None,
    parser_factory: ParserFactory | None = None,
    stats: PipelineStats | None = None,
) -> StyleModel:
    """Lower one component's rule tree to a frozen StyleModel.

    Args:
        component: The parsed component.
        adapter: Expression-resolution adapter; defaults to an empty token table.
        config: Pass switches.
        session: Shared session when lowering several components of a file.
        parser_factory: Override the tree-sitter factory (tests).
        stats: Accumulates stage timings and output sizes when given.

    Returns:
        The frozen model; ``bailed`` is set (and the model empty) when the
        component could not be lowered, with the reason in ``session.warnings``.
    """
    session = session or ResolutionSession(adapter or TokenTableAdapter())
    stats = stats or PipelineStats()

    t0 = time.perf_counter()
    slot_exprs = parse_slots(component, config.language, parser_factory)
    stats.parse_time += time.perf_counter() - t0
    stats.slots += len(slot_exprs)

    t0 = time.perf_counter()
    model = finalize_component(component, slot_exprs, session)
    stats.finalize_time += time.perf_counter() - t0

    if not model.bailed:
        if config.synthesize_compounds:
            t0 = time.perf_counter()
            stats.compounds += synthesize_compounds(model, component.prop_types, config)
            stats.compound_time += time.perf_counter() - t0
        if config.group_variants:
            t0 = time.perf_counter()
            group_variants(model, component.prop_types, config)
            stats.group_time += time.perf_counter() - t0
        if config.normalize_shorthands:
            t0 = time.perf_counter()
            stats.expanded_shorthands += normalize_shorthands(model, config.prefer_inline)
            stats.shorthand_time += time.perf_counter() - t0
    analyze_wrapper(model, component.hints, config)

    stats.components += 1
    stats.bailed += int(model.bailed)
    stats.buckets += len(model.buckets)
    stats.dimensions += len(model.dimensions)
    stats.style_functions += len(model.style_functions)
    stats.wrappers += int(model.needs_wrapper)
    logger.info(
        "Lowered %s: %d buckets, %d dimensions, %d style functions%s",
        component.name,
        len(model.buckets),
        len(model.dimensions),
        len(model.style_functions),
        " (bailed)" if model.bailed else "",
    )
    return model.freeze()


def lower_file(
    components: list[ComponentInput],
    adapter: ResolutionAdapter | None = None,
    config: LoweringConfig = LoweringConfig(),
    parser_factory: ParserFactory | None = None,
) -> FileResult:
    """Lower every component of one file with a shared session.

    A bail on one component never affects its siblings.  Dimensions are
    registered per file so identical ones are shared and clashing names are
    prefixed with the owning component's style key.
    """
    pipeline_start = time.perf_counter()
    session = ResolutionSession(adapter or TokenTableAdapter())
    stats = PipelineStats(language=config.language)
    registry = DimensionRegistry()
    models: list[StyleModel] = []
    for component in components:
        model = lower_component(component, config=config, session=session,
                                parser_factory=parser_factory, stats=stats)
        registry.register(model)
        models.append(model)
    stats.shared_dimensions = registry.shared
    stats.warnings = len(session.warnings)
    stats.total_time = time.perf_counter() - pipeline_start
    logger.info("Lowered %d components in %.1fms", len(models), stats.total_time * 1000)
    return FileResult(
        models=models,
        dimensions=registry,
        warnings=list(session.warnings),
        imports=session.imports,
        stats=stats,
    )


def load_components(source: str | Path | dict[str, Any]) -> list[ComponentInput]:
    """Load ``{"components": [...]}`` from a JSON path, JSON text or a dict.

    Raises:
        MalformedInputError: The fixture does not describe valid components.
    """
    if isinstance(source, dict):
        data = source
    else:
        text = Path(source).read_text() if isinstance(source, Path) or _is_path(source) else source
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedInputError(f"fixture is not valid JSON: {exc}") from exc
    if not isinstance(data, dict) or not isinstance(data.get("components"), list):
        raise MalformedInputError('fixture must be an object with a "components" list')
    try:
        return [ComponentInput.model_validate(c) for c in data["components"]]
    except ValidationError as exc:
        raise MalformedInputError(f"invalid component in fixture: {exc}") from exc


def _is_path(text: str) -> bool:
    return not text.lstrip().startswith("{") and Path(text).exists()


def dump_models(result: FileResult, indent: int = 2) -> str:
    """Serialize a file's lowering result as JSON text."""
    return json.dumps(result.to_dict(), indent=indent)
