"""Structural health checks over a relation graph."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from ..schema.model import Schema
from ..validation.diagnostics import Diagnostic

if TYPE_CHECKING:
    from .graph import DocGraph

COMPONENT_SAMPLE = 3


class GraphHealth:
    """Runs the graph checks in a fixed order: self-references, cycles,
    orphans, disconnected components, dangling references."""

    def __init__(self, graph: "DocGraph", schema: Schema):
        self.graph = graph
        self.schema = schema

    def run_all(self) -> list[Diagnostic]:
        results: list[Diagnostic] = []
        results.extend(self.check_self_references())
        results.extend(self.check_cycles())
        results.extend(self.check_orphans())
        results.extend(self.check_disconnected())
        results.extend(self.check_dangling())
        return results

    def check_self_references(self) -> list[Diagnostic]:
        return [
            Diagnostic.warning(
                "G011",
                f"{edge.source} has self-reference via '{edge.relation}'",
                edge.source,
            )
            for edge in self.graph.edges
            if edge.source == edge.target
        ]

    def check_cycles(self) -> list[Diagnostic]:
        """G010 for every back-edge found while walking acyclic relations depth-first."""
        acyclic = self.schema.acyclic_relation_names()
        if not acyclic:
            return []

        adjacency: dict[str, list[str]] = defaultdict(list)
        for edge in self.graph.edges:
            if edge.relation not in acyclic or edge.source == edge.target:
                continue
            source, target = edge.source, edge.target
            found = self.schema.find_relation(edge.relation)
            # an inverse edge states the forward edge from the other end
            if found is not None and found[1]:
                source, target = target, source
            if target not in adjacency[source]:
                adjacency[source].append(target)

        results: list[Diagnostic] = []
        visited: set[str] = set()
        on_stack: set[str] = set()
        path: list[str] = []

        for root in sorted(adjacency):
            if root in visited:
                continue
            visited.add(root)
            on_stack.add(root)
            path.append(root)
            stack = [(root, iter(adjacency.get(root, [])))]
            while stack:
                node, neighbors = stack[-1]
                neighbor = next(neighbors, None)
                if neighbor is None:
                    stack.pop()
                    path.pop()
                    on_stack.discard(node)
                elif neighbor not in visited:
                    visited.add(neighbor)
                    on_stack.add(neighbor)
                    path.append(neighbor)
                    stack.append((neighbor, iter(adjacency.get(neighbor, []))))
                elif neighbor in on_stack:
                    cycle = path[path.index(neighbor):] + [neighbor]
                    results.append(
                        Diagnostic.error(
                            "G010",
                            "cycle detected in acyclic relation: " + " -> ".join(cycle),
                            neighbor,
                        )
                    )
        return results

    def check_orphans(self) -> list[Diagnostic]:
        connected: set[str] = set()
        for edge in self.graph.edges:
            connected.add(edge.source)
            connected.add(edge.target)
        return [
            Diagnostic.info(
                "G020",
                f"{node_id} is an orphan (no incoming or outgoing edges)",
                node_id,
            )
            for node_id in self.graph.nodes
            if node_id not in connected
        ]

    def components(self) -> list[list[str]]:
        """Weakly connected components over known nodes, each sorted."""
        neighbors: dict[str, set[str]] = defaultdict(set)
        for edge in self.graph.edges:
            if edge.source in self.graph.nodes and edge.target in self.graph.nodes:
                neighbors[edge.source].add(edge.target)
                neighbors[edge.target].add(edge.source)

        seen: set[str] = set()
        components: list[list[str]] = []
        for start in self.graph.nodes:
            if start in seen:
                continue
            component = []
            stack = [start]
            seen.add(start)
            while stack:
                current = stack.pop()
                component.append(current)
                for nxt in neighbors.get(current, ()):
                    if nxt not in seen:
                        seen.add(nxt)
                        stack.append(nxt)
            components.append(sorted(component))
        return components

    def check_disconnected(self) -> list[Diagnostic]:
        components = self.components()
        if len(components) <= 1:
            return []
        summary = []
        for component in components:
            if len(component) <= COMPONENT_SAMPLE:
                summary.append(", ".join(component))
            else:
                summary.append(", ".join(component[:2]) + f", ... ({len(component)} nodes)")
        return [
            Diagnostic.warning(
                "G021",
                f"graph has {len(components)} disconnected components: [" + "] [".join(summary) + "]",
                "graph",
            )
        ]

    def check_dangling(self) -> list[Diagnostic]:
        return [
            Diagnostic.error(
                "G030",
                f"{edge.source} references unknown document {edge.target} via '{edge.relation}'",
                edge.source,
            )
            for edge in self.graph.edges
            if edge.target not in self.graph.nodes
        ]
