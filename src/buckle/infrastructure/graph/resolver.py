"""Package graph resolution — validation, cycle detection, ordering.

The graph is a NetworkX DiGraph over package ids with an edge
``need -> package`` for every ``needs`` entry. Packages themselves stay
in the id-keyed arena; the graph only holds ids.

Ordering is ``lexicographical_topological_sort``: whenever several
packages are ready, the lexically smallest id goes first, so the plan is
identical across runs.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import IntEnum
from typing import TypeAlias

import networkx as nx

from buckle.domain.package import Package
from buckle.errors import DependencyError

_Graph: TypeAlias = nx.DiGraph


class _Color(IntEnum):
    WHITE = 0
    GRAY = 1
    BLACK = 2


def build_graph(packages: Mapping[str, Package]) -> _Graph:
    """Build the dependency graph, rejecting references to unknown ids."""
    g: _Graph = nx.DiGraph()
    for pkg_id in sorted(packages):
        g.add_node(pkg_id)
    for pkg_id in sorted(packages):
        for need in sorted(packages[pkg_id].needs):
            if need not in packages:
                msg = f"Package '{pkg_id}' needs '{need}', which does not exist"
                raise DependencyError(msg, package=pkg_id, ids=[need])
            g.add_edge(need, pkg_id)
    return g


def find_cycle(g: _Graph) -> list[str] | None:
    """Return the shortest cycle through the first back edge found, or None.

    Depth-first search with white/gray/black coloring, visiting nodes and
    their dependencies in lexical order. On hitting a back edge
    ``u -> v`` (``v`` still gray), the cycle reported is ``v ... u`` along
    the shortest path, which is the minimal cycle containing that edge.
    The returned ids are in "needs" order (each needs the next, the last
    needs the first), rotated to start at the smallest id.
    """
    color = dict.fromkeys(g.nodes, _Color.WHITE)

    def visit(start: str) -> tuple[str, str] | None:
        # Iterative DFS so deep graphs don't hit the recursion limit.
        color[start] = _Color.GRAY
        stack = [(start, iter(sorted(g.predecessors(start))))]
        while stack:
            node, deps = stack[-1]
            for dep in deps:
                if color[dep] is _Color.GRAY:
                    return node, dep
                if color[dep] is _Color.WHITE:
                    color[dep] = _Color.GRAY
                    stack.append((dep, iter(sorted(g.predecessors(dep)))))
                    break
            else:
                color[node] = _Color.BLACK
                stack.pop()
        return None

    for node in sorted(g.nodes):
        if color[node] is not _Color.WHITE:
            continue
        back_edge = visit(node)
        if back_edge is None:
            continue
        # node needs dep, and dep (transitively) needs node.
        pkg, dep = back_edge
        # Edges point from a need to its dependant, so reverse into "needs" order.
        path = nx.shortest_path(g, pkg, dep)
        cycle = [str(n) for n in reversed(path)]
        pivot = cycle.index(min(cycle))
        return cycle[pivot:] + cycle[:pivot]
    return None


def resolve_order(packages: Mapping[str, Package]) -> list[str]:
    """Return package ids in a dependency-respecting, reproducible order.

    Raises:
        DependencyError: A ``needs`` entry names an unknown package, or the
            ``needs`` graph contains a cycle.
    """
    g = build_graph(packages)
    cycle = find_cycle(g)
    if cycle is not None:
        chain = " -> ".join([*cycle, cycle[0]])
        msg = f"Circular package dependency: {chain}"
        raise DependencyError(msg, package=cycle[0], ids=cycle)
    return list(nx.lexicographical_topological_sort(g))
