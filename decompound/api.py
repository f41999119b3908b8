"""Composable API functions for the conversion pipeline.

Each function corresponds to a CLI workflow (convert, --dump-registry,
--dump-sites, --dump-plan) but is callable programmatically without argparse.
"""

from __future__ import annotations

import logging

from .config import DEFAULT_CONFIG, ConvertConfig
from .emitter import Emitter
from .locator import CompoundLiteralSite, locate_sites
from .parser import CParser, ParserFactory, TranslationUnit
from .planner import RewritePlan, plan_rewrites
from .registry import DeclarationRegistry, build_registry

logger = logging.getLogger(__name__)


def parse_source(
    source: str | bytes, parser_factory: ParserFactory | None = None
) -> TranslationUnit:
    """Parse C source into a TranslationUnit (tree + token stream)."""
    return CParser(parser_factory).parse(source)


def build_registry_from_source(source: str | bytes) -> DeclarationRegistry:
    """Parse *source* and populate its declaration registry."""
    return build_registry(parse_source(source))


def locate_sites_in_source(source: str | bytes) -> list[CompoundLiteralSite]:
    """Parse *source* and return every compound literal it contains."""
    return locate_sites(parse_source(source))


def plan_source(
    source: str | bytes, config: ConvertConfig = DEFAULT_CONFIG
) -> RewritePlan:
    """Run registry, locator and planner over *source*; no text is emitted."""
    unit = parse_source(source)
    return _plan_unit(unit, config)


def _plan_unit(unit: TranslationUnit, config: ConvertConfig) -> RewritePlan:
    registry = build_registry(unit)
    sites = locate_sites(unit)
    return plan_rewrites(unit, registry, sites, config)


def convert_source(
    source: str | bytes, config: ConvertConfig = DEFAULT_CONFIG
) -> str:
    """Rewrite every compound literal of *source* into a hoisted temporary.

    Every phase completes before the next starts, and the result is built
    fully in memory: a failure raises a DecompoundError and yields no text.

    Args:
        source: C source text.
        config: Conversion knobs.

    Returns:
        The converted source; byte-identical to *source* when it contains
        no compound literals.
    """
    unit = parse_source(source)
    plan = _plan_unit(unit, config)
    if plan.is_empty():
        logger.info("No compound literals; passing source through")
    return Emitter(unit.tokens).emit(plan)


def dump_registry(source: str | bytes) -> str:
    """Human-readable listing of the struct / enum / typedef tables."""
    return build_registry_from_source(source).dump()


def dump_sites(source: str | bytes) -> str:
    """One line per located compound literal: position, role, type, nesting."""
    unit = parse_source(source)
    lines = []
    for site in locate_sites(unit):
        row, col = site.node.start_point
        extra = ""
        if site.index_node is not None:
            extra = f" index={unit.text(site.index_node)}"
        elif site.member:
            extra = f" member={site.member}"
        lines.append(
            f"{'  ' * site.depth}{row + 1}:{col} {site.role.value} "
            f"({unit.text(site.type_node)}) in {site.function_name or '<file>'}{extra}"
        )
    return "\n".join(lines)


def dump_plan(source: str | bytes, config: ConvertConfig = DEFAULT_CONFIG) -> str:
    """The rewrite plan as indented JSON."""
    return plan_source(source, config).model_dump_json(indent=2)
