"""
Graph Exporters

Text renderings of a RelationshipGraph for diagram tools. Output is ordered
by table name, then relationship id, so unchanged graphs diff cleanly.
"""
from __future__ import annotations

import re
from typing import Dict, List, Set

from ..schema import TableSchema
from .discovery import HIGH_CONFIDENCE, MEDIUM_CONFIDENCE
from .graph import RelationshipGraph
from .models import GraphEdge, Multiplicity

MERMAID_SYMBOLS: Dict[Multiplicity, str] = {
    Multiplicity.ONE_TO_ONE: "||--||",
    Multiplicity.ONE_TO_MANY: "||--o{",
    Multiplicity.MANY_TO_ONE: "}o--||",
    Multiplicity.MANY_TO_MANY: "}o--o{",
}

_NON_WORD = re.compile(r'[^A-Za-z0-9_]+')


def _mermaid_type(data_type: str) -> str:
    # mermaid attribute types must be a single word
    return _NON_WORD.sub("_", data_type).strip("_") or "unknown"


def _dot_string(text: str) -> str:
    """Escape text for a double-quoted DOT string"""
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _mermaid_label(text: str) -> str:
    # mermaid labels cannot contain a raw double quote
    return text.replace('"', "#quot;")


def _sorted_edges(graph: RelationshipGraph) -> List[GraphEdge]:
    return sorted(graph.edges, key=lambda e: e.id)


def _sorted_tables(graph: RelationshipGraph) -> List[TableSchema]:
    return sorted(graph.schema.tables, key=lambda t: t.name)


def export_mermaid_er(graph: RelationshipGraph) -> str:
    """Mermaid ``erDiagram`` listing key columns and relationship multiplicities"""
    fk_columns: Dict[str, Set[str]] = {}
    for edge in graph.edges:
        fk_columns.setdefault(edge.from_node, set()).add(edge.relationship.from_column)

    lines = ["erDiagram"]

    for table in _sorted_tables(graph):
        keys = [
            col for col in table.columns
            if col.name in table.primary_key or col.name in fk_columns.get(table.name, set())
        ]
        lines.append(f"    {table.name} {{")
        for col in keys:
            markers = []
            if col.name in table.primary_key:
                markers.append("PK")
            if col.name in fk_columns.get(table.name, set()):
                markers.append("FK")
            lines.append(f"        {_mermaid_type(col.data_type)} {col.name} {','.join(markers)}")
        lines.append("    }")

    for edge in _sorted_edges(graph):
        rel = edge.relationship
        prefix = "" if rel.is_explicit else "(inferred) "
        label = _mermaid_label(f"{prefix}{rel.from_column} {rel.multiplicity.value}")
        lines.append(
            f"    {rel.from_table} {MERMAID_SYMBOLS[rel.multiplicity]} {rel.to_table} : \"{label}\""
        )

    return "\n".join(lines) + "\n"


def _confidence_color(confidence: float) -> str:
    if confidence >= HIGH_CONFIDENCE:
        return "green"
    if confidence >= MEDIUM_CONFIDENCE:
        return "blue"
    return "orange"


def export_graphviz(graph: RelationshipGraph) -> str:
    """GraphViz DOT digraph; dashed edges are inferred"""
    lines = [
        "digraph relationships {",
        "    rankdir=LR;",
        "    node [shape=box];",
        "",
    ]

    for node in sorted(graph.nodes, key=lambda n: n.id):
        rows = "?" if node.row_count is None else str(node.row_count)
        name = _dot_string(node.id)
        lines.append(f"    \"{name}\" [label=\"{name}\\n{rows} rows\"];")

    if graph.edges:
        lines.append("")

    for edge in _sorted_edges(graph):
        rel = edge.relationship
        style = "solid" if rel.is_explicit else "dashed"
        lines.append(
            f"    \"{_dot_string(edge.from_node)}\" -> \"{_dot_string(edge.to_node)}\" "
            f"[label=\"{rel.multiplicity.value}\", style={style}, "
            f"color={_confidence_color(rel.confidence)}, tooltip=\"{_dot_string(rel.id)}\"];"
        )

    lines.append("}")
    return "\n".join(lines) + "\n"
