"""Mermaid and Graphviz DOT renderings of a :class:`DocGraph`."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .graph import DocGraph


def _mermaid_label(s: str) -> str:
    return s.replace('"', "#quot;")


def to_mermaid(graph: "DocGraph", doc_type: str | None = None) -> str:
    nodes, edges = graph.filtered(doc_type)
    lines = ["graph LR"]
    for node in nodes:
        label = _mermaid_label(node.title or node.id)
        if node.is_inactive:
            lines.append(f'  {node.id}[/"{label}"/]')
        else:
            lines.append(f'  {node.id}["{label}"]')
    for edge in edges:
        lines.append(f"  {edge.source} -->|{edge.relation}| {edge.target}")
    return "\n".join(lines) + "\n"


def to_dot(graph: "DocGraph", doc_type: str | None = None) -> str:
    def esc(s: str) -> str:
        return s.replace("\\", "\\\\").replace('"', '\\"')

    nodes, edges = graph.filtered(doc_type)
    lines = [
        "digraph docs {",
        "  rankdir=LR;",
        "  node [shape=box];",
        "",
    ]
    for node in nodes:
        style = " style=dashed" if node.is_inactive else ""
        lines.append(f'  "{esc(node.id)}" [label="{esc(node.title or node.id)}"{style}];')
    lines.append("")
    for edge in edges:
        lines.append(f'  "{esc(edge.source)}" -> "{esc(edge.target)}" [label="{esc(edge.relation)}"];')
    lines.append("}")
    return "\n".join(lines) + "\n"
