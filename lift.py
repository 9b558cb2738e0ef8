#!/usr/bin/env python3
"""stylelift — lower styled-components rule trees to static style models.

Reads a JSON fixture of parsed components, resolves every declaration
against an optional token table and prints the resulting style models,
shared variant dimensions and warnings as JSON.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys

from stylelift import constants
from stylelift.adapter import TokenTableAdapter
from stylelift.api import dump_models, load_components, lower_file
from stylelift.run_types import LoweringConfig
from stylelift.session import MalformedInputError


def main():
    parser = argparse.ArgumentParser(
        description="Lower styled-components CSS to static style models")
    parser.add_argument("fixture",
                        help='JSON file with {"components": [...]}')
    parser.add_argument("--tokens", "-t", default=None,
                        help="JSON token table / helper map for the adapter")
    parser.add_argument("--language", "-l", default=constants.DEFAULT_LANGUAGE,
                        choices=list(constants.SUPPORTED_LANGUAGES),
                        help="Grammar for slot expressions (default: typescript)")
    parser.add_argument("--no-group", action="store_true",
                        help="Do not group enum buckets into variant dimensions")
    parser.add_argument("--no-compounds", action="store_true",
                        help="Do not synthesize compound variant buckets")
    parser.add_argument("--no-shorthands", action="store_true",
                        help="Do not expand conflicting box shorthands")
    parser.add_argument("--namespace-dimensions", action="store_true",
                        help="Fold overlapping boolean buckets into enabled/disabled dimensions")
    parser.add_argument("--prefer-inline", action="store_true",
                        help="Expand quad shorthands with InlineStart/InlineEnd edges")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log per-component progress")
    parser.add_argument("--stats", action="store_true",
                        help="Print lowering statistics to stderr")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    adapter = TokenTableAdapter()
    if args.tokens:
        with open(args.tokens) as f:
            adapter = TokenTableAdapter.from_dict(json.load(f))

    config = LoweringConfig(
        language=args.language,
        group_variants=not args.no_group,
        synthesize_compounds=not args.no_compounds,
        normalize_shorthands=not args.no_shorthands,
        namespace_dimensions=args.namespace_dimensions,
        prefer_inline=args.prefer_inline,
    )

    try:
        with open(args.fixture) as f:
            components = load_components(f.read())
        result = lower_file(components, adapter, config)
    except MalformedInputError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)

    print(dump_models(result))
    if args.stats:
        print(result.stats.report(), file=sys.stderr)


if __name__ == "__main__":
    main()
