# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Publish-order graph of workspace crates.

Key Concepts (ELI5)::

    ┌─────────────────────────┬─────────────────────────────────────────────┐
    │ Concept                 │ ELI5 Explanation                            │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Edge                    │ "Publish me first." If ``app`` depends on  │
    │                         │ ``core``, the edge is ``core → app``.      │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Topological order       │ A list where every crate comes after all   │
    │                         │ crates it needs. crates.io rejects a crate │
    │                         │ whose dependency version does not exist.   │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Cycle                   │ ``a → b → a``. No order works; publishing  │
    │                         │ stops before anything is uploaded.         │
    └─────────────────────────┴─────────────────────────────────────────────┘

Edge Direction::

    edges["core"]         = ["app", "cli"]     (core must go before them)
    reverse_edges["app"]  = ["core"]           (app waits for core)

Which dependencies become edges::

    normal / build           always, when the dependency is a node
    dev with a version       yes (cargo publish keeps it)
    dev without a version    no  (cargo publish strips path-only dev-deps)

Only publishable crates are nodes. For a concrete target the graph keeps
the target with its transitive dependants, plus whatever any of them
need; ``"*"`` keeps every publishable crate.

Usage::

    from cargo_mono.graph import build_graph, topo_sort

    graph = build_graph(workspace.packages, target='app')
    for pkg in topo_sort(graph):
        print(pkg.name)
"""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field

from cargo_mono.errors import CargoMonoError, E
from cargo_mono.logging import get_logger
from cargo_mono.workspace import WILDCARD_REQ, Dependency, DependencyKind, Package, can_publish

logger = get_logger(__name__)

#: Target meaning "every publishable crate".
ALL_TARGETS = '*'


@dataclass
class DependencyGraph:
    """A directed graph of publish-before relations.

    Attributes:
        packages: Mapping from crate name to :class:`Package`.
        edges: Dependency → dependants that must be published after it.
        reverse_edges: Dependant → dependencies it waits for.
    """

    packages: dict[str, Package] = field(default_factory=dict)
    edges: dict[str, list[str]] = field(default_factory=dict)
    reverse_edges: dict[str, list[str]] = field(default_factory=dict)

    @property
    def names(self) -> list[str]:
        """Sorted list of all crate names in the graph."""
        return sorted(self.packages)

    def edge_list(self) -> list[tuple[str, str]]:
        """Return every ``(dependency, dependant)`` pair, sorted."""
        return sorted((dep, dependant) for dep, dependants in self.edges.items() for dependant in dependants)

    def __len__(self) -> int:
        """Return the number of crates in the graph."""
        return len(self.packages)


def is_publish_edge(dep: Dependency) -> bool:
    """Return ``True`` if ``dep`` forces its target to be published first."""
    return dep.kind is not DependencyKind.DEV or dep.req != WILDCARD_REQ


def _link(packages: Sequence[Package]) -> DependencyGraph:
    graph = DependencyGraph()
    for pkg in packages:
        graph.packages[pkg.name] = pkg
        graph.edges[pkg.name] = []
        graph.reverse_edges[pkg.name] = []

    for pkg in packages:
        for dep in pkg.dependencies:
            if dep.name == pkg.name or dep.name not in graph.packages or not is_publish_edge(dep):
                continue
            # The same crate may appear as both a normal and a dev dependency.
            if dep.name in graph.reverse_edges[pkg.name]:
                continue
            graph.edges[dep.name].append(pkg.name)
            graph.reverse_edges[pkg.name].append(dep.name)

    for adjacency in (graph.edges, graph.reverse_edges):
        for names in adjacency.values():
            names.sort()
    return graph


def _walk(adjacency: dict[str, list[str]], name: str) -> set[str]:
    visited: set[str] = set()
    queue: deque[str] = deque(adjacency.get(name, []))
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        queue.extend(adjacency.get(current, []))
    return visited


def dependencies_of(graph: DependencyGraph, name: str) -> set[str]:
    """Return every crate ``name`` transitively waits for (not ``name`` itself)."""
    return _walk(graph.reverse_edges, name)


def dependants_of(graph: DependencyGraph, name: str) -> set[str]:
    """Return every crate that transitively waits for ``name`` (not ``name`` itself)."""
    return _walk(graph.edges, name)


def build_graph(
    packages: Sequence[Package],
    *,
    target: str = ALL_TARGETS,
    wildcard_unpublishable: bool = True,
) -> DependencyGraph:
    """Build the publish graph of the publishable crates in ``packages``.

    Args:
        packages: All workspace packages.
        target: Crate to publish, or ``"*"`` for all of them.
        wildcard_unpublishable: Passed to :func:`can_publish`.

    Returns:
        The graph. For a concrete target it keeps the target with
        its transitive dependants, plus everything they need.

    Raises:
        CargoMonoError: If ``target`` is not a workspace member or is not
            publishable.
    """
    if target != ALL_TARGETS and not any(p.name == target for p in packages):
        raise CargoMonoError(
            code=E.WORKSPACE_PACKAGE_NOT_FOUND,
            message=f"Package '{target}' is not a member of the workspace",
        )

    publishable = [p for p in packages if can_publish(p, wildcard_unpublishable=wildcard_unpublishable)]
    graph = _link(publishable)

    if target != ALL_TARGETS:
        if target not in graph.packages:
            raise CargoMonoError(
                code=E.WORKSPACE_PACKAGE_UNPUBLISHABLE,
                message=f"Package '{target}' cannot be published",
            )
        keep = dependants_of(graph, target) | {target}
        for name in list(keep):
            keep |= dependencies_of(graph, name)
        graph = _link([graph.packages[name] for name in sorted(keep)])

    logger.debug(
        'built_publish_graph',
        target=target,
        packages=len(graph),
        edges=len(graph.edge_list()),
    )
    return graph


def detect_cycles(graph: DependencyGraph) -> list[list[str]]:
    """Find cycles with a depth-first search.

    Returns:
        Each cycle as a list of names that starts and ends with the same
        crate, following edge direction. Empty if the graph is acyclic.
    """
    white, gray, black = 0, 1, 2
    color: dict[str, int] = dict.fromkeys(graph.packages, white)
    cycles: list[list[str]] = []

    for root in graph.names:
        if color[root] != white:
            continue
        path: list[str] = [root]
        color[root] = gray
        stack: list[tuple[str, int]] = [(root, 0)]
        while stack:
            node, index = stack[-1]
            successors = graph.edges[node]
            if index == len(successors):
                stack.pop()
                path.pop()
                color[node] = black
                continue
            stack[-1] = (node, index + 1)
            nxt = successors[index]
            if color[nxt] == gray:
                cycles.append([*path[path.index(nxt) :], nxt])
            elif color[nxt] == white:
                color[nxt] = gray
                path.append(nxt)
                stack.append((nxt, 0))

    if cycles:
        logger.warning('cycles_detected', count=len(cycles))
    return cycles


def topo_sort(graph: DependencyGraph) -> list[Package]:
    """Order the graph so every crate follows the crates it waits for.

    Kahn's algorithm; ties are broken by name so the order is stable
    between runs.

    Raises:
        CargoMonoError: ``GRAPH_CYCLE_DETECTED`` naming the edges of
            every cycle found.
    """
    in_degree = {name: len(graph.reverse_edges[name]) for name in graph.packages}
    ready = sorted(name for name, degree in in_degree.items() if degree == 0)
    order: list[Package] = []

    while ready:
        name = ready.pop(0)
        order.append(graph.packages[name])
        for dependant in graph.edges[name]:
            in_degree[dependant] -= 1
            if in_degree[dependant] == 0:
                ready.append(dependant)
                ready.sort()

    if len(order) != len(graph.packages):
        cycles = detect_cycles(graph)
        edges = sorted({f'{a} → {b}' for cycle in cycles for a, b in zip(cycle, cycle[1:], strict=False)})
        raise CargoMonoError(
            code=E.GRAPH_CYCLE_DETECTED,
            message=f'Circular dependency detected: {", ".join(edges)}',
            hint='Remove one of the listed dependencies, or make it a path-only dev-dependency.',
        )

    logger.debug('topo_sort_complete', order=[p.name for p in order])
    return order


__all__ = [
    'ALL_TARGETS',
    'DependencyGraph',
    'build_graph',
    'dependants_of',
    'dependencies_of',
    'detect_cycles',
    'is_publish_edge',
    'topo_sort',
]
