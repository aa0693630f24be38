"""
Spread graph resolution.

A type that spreads another type depends on it: the spread target must be
fully materialized first. This module builds that dependency graph, reports
unknown targets and cycles, and yields a topological materialization order.
"""

from __future__ import annotations

import graphlib
import logging
from collections.abc import Iterator

from ...errors import Diagnostic
from ..schema_ast.nodes import FieldBlockNode, Position, TypeDeclNode

logger = logging.getLogger(__name__)


def iter_spreads(block: FieldBlockNode) -> Iterator[tuple[str, Position]]:
    """Yield every spread of a block, including spreads inside its inline objects."""
    for spread in block.spreads:
        yield spread, block.position
    for field in block.fields:
        expr = field.type_expr
        while expr is not None:
            if expr.inline is not None:
                yield from iter_spreads(expr.inline)
                break
            expr = expr.map_value


class SpreadResolver:
    """Orders type declarations so spread targets come before their users."""

    def __init__(self, types: dict[str, TypeDeclNode]):
        """
        Initialize the resolver.

        Args:
            types: Type declarations by name
        """
        self.types = types
        self.diagnostics: list[Diagnostic] = []

    def check_targets(self, block: FieldBlockNode, owner: str) -> list[str]:
        """Return the known spread targets of ``block``, reporting unknown ones."""
        targets = []
        for spread, position in iter_spreads(block):
            if spread in self.types:
                targets.append(spread)
                continue
            self.diagnostics.append(
                Diagnostic(
                    position.file,
                    position.line,
                    position.column,
                    "E202",
                    f"spread target {spread!r} in {owner!r} is not a declared type",
                )
            )
        return targets

    def resolve_order(self) -> list[str] | None:
        """
        Compute the materialization order of all types.

        Returns:
            Type names with every spread target before its users, or None when
            the spread graph has a cycle (a diagnostic is recorded)
        """
        sorter: graphlib.TopologicalSorter[str] = graphlib.TopologicalSorter()
        for name in sorted(self.types):
            sorter.add(name, *sorted(set(self.check_targets(self.types[name].body, name))))

        try:
            order = list(sorter.static_order())
        except graphlib.CycleError as e:
            # CycleError lists each node before the node that spreads it
            cycle = list(reversed(e.args[1]))
            position = self.types[cycle[0]].position
            self.diagnostics.append(
                Diagnostic(
                    position.file,
                    position.line,
                    position.column,
                    "E204",
                    "circular spread: " + " -> ".join(cycle),
                )
            )
            return None

        logger.debug("Spread materialization order: %s", order)
        return order
