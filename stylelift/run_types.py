"""Lowering run data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass

from . import constants


@dataclass(frozen=True)
class LoweringConfig:
    """Groups the pass switches for one lowering run."""

    language: str = constants.DEFAULT_LANGUAGE
    group_variants: bool = True
    synthesize_compounds: bool = True
    normalize_shorthands: bool = True
    namespace_dimensions: bool = False
    prefer_inline: bool = False
    forwarded_props: frozenset[str] = constants.DEFAULT_FORWARDED_PROPS


@dataclass
class PipelineStats:
    """Timing and size statistics for each lowering stage of one file."""

    components: int = 0
    bailed: int = 0
    slots: int = 0
    language: str = ""

    # Stage timings (seconds)
    parse_time: float = 0.0
    finalize_time: float = 0.0
    compound_time: float = 0.0
    group_time: float = 0.0
    shorthand_time: float = 0.0
    total_time: float = 0.0

    # Output sizes
    buckets: int = 0
    dimensions: int = 0
    shared_dimensions: int = 0
    style_functions: int = 0
    compounds: int = 0
    expanded_shorthands: int = 0
    wrappers: int = 0
    warnings: int = 0

    def report(self) -> str:
        lines = [
            "═══ Lowering Statistics ═══",
            f"  Input: {self.components} components, {self.slots} slots ({self.language})",
            "",
            f"  {'Stage':<20} {'Time':>10}  {'Output':>30}",
            f"  {'─' * 20} {'─' * 10}  {'─' * 30}",
        ]

        stages = [
            ("Parse slots", self.parse_time, f"{self.slots} expressions"),
            (
                "Finalize",
                self.finalize_time,
                f"{self.buckets} buckets, {self.style_functions} functions",
            ),
            ("Compound variants", self.compound_time, f"{self.compounds} compounds"),
            (
                "Group variants",
                self.group_time,
                f"{self.dimensions} dimensions ({self.shared_dimensions} shared)",
            ),
            ("Shorthands", self.shorthand_time, f"{self.expanded_shorthands} expanded"),
        ]
        for name, t, output in stages:
            time_str = f"{t * 1000:>8.1f}ms"
            lines.append(f"  {name:<20} {time_str:>10}  {output:>30}")

        lines.append(f"  {'─' * 20} {'─' * 10}  {'─' * 30}")
        lines.append(f"  {'Total':<20} {self.total_time * 1000:>8.1f}ms")
        lines.append("")
        lines.append(
            f"  Result: {self.bailed} bailed,"
            f" {self.wrappers} wrappers,"
            f" {self.warnings} warnings"
        )
        return "\n".join(lines)
