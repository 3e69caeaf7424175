"""Dependency graph over named declarations and a safe declaration order.

A declaration depends on every schema its expression mentions through a
``named_ref``. Those references are evaluated when the declaration itself is
evaluated, so the dependency has to be emitted first. ``lazy_ref``s are only
followed when a value is validated; they are tracked for reporting but never
constrain the order.

The translator only emits a ``named_ref`` to a schema whose translation has
already completed, so the non-lazy graph is acyclic by construction. A cycle
found here is reported as :class:`~zodspec.exceptions.InternalCycleError`.
"""

from __future__ import annotations

import heapq
import logging
from collections import defaultdict
from typing import Iterable

from zodspec.exceptions import InternalCycleError
from zodspec.models import ExprKind, ValidationExpression

logger = logging.getLogger(__name__)


def collect_references(expression: ValidationExpression) -> tuple[set[str], set[str]]:
    """Return ``(named, lazy)``: the schema names *expression* references.

    Walks the whole expression tree; a name can appear in both sets.
    """
    named: set[str] = set()
    lazy: set[str] = set()
    pending = [expression]
    while pending:
        current = pending.pop()
        if current.kind == ExprKind.NAMED_REF and current.ref is not None:
            named.add(current.ref)
        elif current.kind == ExprKind.LAZY_REF and current.ref is not None:
            lazy.add(current.ref)
        pending.extend(current.children())
    return named, lazy


class DependencyGraph:
    """Reference graph between named declarations.

    Args:
        names: Declaration names in registry order; the order used to break
            ties so the result is stable across runs.
        declarations: Translated expression for every name.
    """

    def __init__(
        self, names: Iterable[str], declarations: dict[str, ValidationExpression]
    ) -> None:
        self.nodes: list[str] = list(names)
        self.edges: dict[str, set[str]] = {}  # node -> eager dependencies
        self.lazy_edges: dict[str, set[str]] = {}  # node -> lazily referenced names
        self.reverse_edges: dict[str, set[str]] = defaultdict(set)
        self._build(declarations)

    def _build(self, declarations: dict[str, ValidationExpression]) -> None:
        known = set(self.nodes)
        for name in self.nodes:
            named, lazy = collect_references(declarations[name])
            self.edges[name] = named & known
            self.lazy_edges[name] = lazy & known
            for dependency in self.edges[name]:
                self.reverse_edges[dependency].add(name)

    def topological_order(self) -> list[str]:
        """Order the nodes so each one follows all of its eager dependencies.

        Kahn's algorithm; among the nodes that are ready at the same time the
        one registered first is emitted first.

        Raises:
            InternalCycleError: If eager edges alone form a cycle.
        """
        position = {name: index for index, name in enumerate(self.nodes)}
        in_degree = {name: len(self.edges[name]) for name in self.nodes}
        ready = [position[name] for name in self.nodes if in_degree[name] == 0]
        heapq.heapify(ready)

        order: list[str] = []
        while ready:
            name = self.nodes[heapq.heappop(ready)]
            order.append(name)
            for dependent in self.reverse_edges.get(name, ()):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, position[dependent])

        if len(order) != len(self.nodes):
            stuck = [name for name in self.nodes if in_degree[name] > 0]
            raise InternalCycleError(self._find_cycle(stuck))

        lazy_count = sum(len(targets) for targets in self.lazy_edges.values())
        if lazy_count:
            logger.debug("Ordered %d declarations (%d lazy edges)", len(order), lazy_count)
        return order

    def _find_cycle(self, stuck: list[str]) -> list[str]:
        """Walk eager edges among *stuck* nodes until one repeats."""
        stuck_set = set(stuck)
        path: list[str] = []
        current = stuck[0]
        while current not in path:
            path.append(current)
            current = min(
                (dep for dep in self.edges[current] if dep in stuck_set),
                key=self.nodes.index,
            )
        return path[path.index(current):] + [current]


def order_declarations(
    names: Iterable[str], declarations: dict[str, ValidationExpression]
) -> list[str]:
    """Return *names* in a safe declaration order. See :class:`DependencyGraph`."""
    return DependencyGraph(names, declarations).topological_order()
