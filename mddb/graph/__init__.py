"""Relation graph: construction, queries, rendering and health checks."""

from .graph import DocGraph, Edge, Node
from .health import GraphHealth
from .ids import is_string_id, path_to_id

__all__ = ["DocGraph", "Edge", "GraphHealth", "Node", "is_string_id", "path_to_id"]
