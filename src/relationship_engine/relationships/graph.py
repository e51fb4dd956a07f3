"""
Relationship Graph

Tables become nodes and relationships become weighted, directed edges. A
built graph is read-only: rebuilding yields a new RelationshipGraph, so a
reader traversing the old one is never affected.
"""
from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import networkx as nx

from ..schema import DatabaseSchema, TableSchema
from ..utils import EngineMetrics, TableNotFoundError, get_logger, time_operation
from .models import (
    DroppedEdge,
    GraphEdge,
    GraphNode,
    RelatedTable,
    Relationship,
)

logger = get_logger(__name__)

BASE_EDGE_WEIGHT = 1.0
UNCERTAINTY_WEIGHT = 10.0  # cost of a fully uncertain link relative to a certain one


def calculate_edge_weight(confidence: float, row_count: Optional[int]) -> float:
    """
    Join cost of traversing one relationship.

    Grows with uncertainty (1 - confidence) and with the size of the larger
    table on either side; always >= 1 so path search can rely on positive
    weights.
    """
    uncertainty = max(0.0, 1.0 - confidence)
    rows = max(row_count or 0, 0)
    return BASE_EDGE_WEIGHT + UNCERTAINTY_WEIGHT * uncertainty + math.log10(1 + rows)


class RelationshipGraph:
    """
    Immutable weighted relationship graph

    Edges keep their direction (from_table -> to_table); navigation treats
    them as traversable both ways.
    """

    def __init__(
        self,
        schema: DatabaseSchema,
        nodes: Sequence[GraphNode],
        edges: Sequence[GraphEdge],
        dropped_edges: Sequence[DroppedEdge] = (),
    ):
        self._schema = schema
        self._nodes: Tuple[GraphNode, ...] = tuple(nodes)
        self._edges: Tuple[GraphEdge, ...] = tuple(edges)
        self._dropped: Tuple[DroppedEdge, ...] = tuple(dropped_edges)
        self._tables: Dict[str, TableSchema] = {t.name: t for t in schema.tables}

        graph = nx.MultiDiGraph()
        for node in self._nodes:
            graph.add_node(node.id, row_count=node.row_count)
        for edge in self._edges:
            graph.add_edge(edge.from_node, edge.to_node, key=edge.id, edge=edge, weight=edge.weight)
        self._graph = nx.freeze(graph)
        self._undirected = self._graph.to_undirected(as_view=True)

    @property
    def schema(self) -> DatabaseSchema:
        return self._schema

    @property
    def nodes(self) -> Tuple[GraphNode, ...]:
        return self._nodes

    @property
    def edges(self) -> Tuple[GraphEdge, ...]:
        return self._edges

    @property
    def dropped_edges(self) -> Tuple[DroppedEdge, ...]:
        return self._dropped

    def has_node(self, table_name: str) -> bool:
        return self._graph.has_node(table_name)

    def require_node(self, table_name: str) -> None:
        if not self.has_node(table_name):
            raise TableNotFoundError(table_name)

    def get_table(self, table_name: str) -> Optional[TableSchema]:
        return self._tables.get(table_name)

    def incident_edges(self, table_name: str) -> List[Tuple[str, GraphEdge]]:
        """(neighbor, edge) pairs in both directions, sorted by neighbor then edge id"""
        self.require_node(table_name)
        pairs = [
            (neighbor, data["edge"])
            for _, neighbor, data in self._undirected.edges(table_name, data=True)
        ]
        # undirected view reports a self-loop once per direction
        unique = {(neighbor, edge.id): edge for neighbor, edge in pairs}
        return [(neighbor, unique[(neighbor, edge_id)]) for neighbor, edge_id in sorted(unique)]

    def edges_between(self, a: str, b: str) -> List[GraphEdge]:
        """All edges joining two tables in either direction, sorted by id"""
        return sorted(
            (edge for neighbor, edge in self.incident_edges(a) if neighbor == b),
            key=lambda e: e.id,
        )

    def is_connected(self, a: str, b: str) -> bool:
        """True when some path of any length joins the two tables"""
        self.require_node(a)
        self.require_node(b)
        return nx.has_path(self._undirected, a, b)

    def hop_distance(self, a: str, b: str) -> Optional[int]:
        """Fewest relationships between two tables, None when disconnected"""
        if not self.is_connected(a, b):
            return None
        return nx.shortest_path_length(self._undirected, a, b)

    def get_related_tables(self, table_name: str, max_depth: int) -> List[RelatedTable]:
        """
        Tables reachable within ``max_depth`` relationships.

        Each table is reported once at its shortest distance, with the
        relationship through which it was first reached. Ordered by distance,
        then table name.
        """
        self.require_node(table_name)
        if max_depth < 1:
            return []

        depth = {table_name: 0}
        related: List[RelatedTable] = []

        for parent, child in nx.bfs_edges(
            self._undirected,
            table_name,
            depth_limit=max_depth,
            sort_neighbors=sorted,
        ):
            depth[child] = depth[parent] + 1
            related.append(RelatedTable(
                table_name=child,
                relationship=self.edges_between(parent, child)[0].relationship,
                distance=depth[child],
            ))

        return sorted(related, key=lambda r: (r.distance, r.table_name))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [{"id": n.id, "row_count": n.row_count} for n in self._nodes],
            "edges": [
                {
                    "id": e.id,
                    "from": e.from_node,
                    "to": e.to_node,
                    "weight": e.weight,
                    "relationship": e.relationship.to_dict(),
                }
                for e in self._edges
            ],
        }


class GraphBuilder:
    """
    Builds a RelationshipGraph from a schema snapshot and a relationship set

    Usage:
        graph = GraphBuilder().build(schema, relationships)
    """

    def build(self, schema: DatabaseSchema, relationships: Iterable[Relationship]) -> RelationshipGraph:
        with time_operation("graph_build_duration"):
            graph = self._build(schema, relationships)
        EngineMetrics.record_graph(len(graph.nodes), len(graph.edges), len(graph.dropped_edges))
        return graph

    def _build(self, schema: DatabaseSchema, relationships: Iterable[Relationship]) -> RelationshipGraph:
        schema.validate()

        nodes = [GraphNode(id=table.name, row_count=table.row_count) for table in schema.tables]
        row_counts = {node.id: node.row_count for node in nodes}

        edges: List[GraphEdge] = []
        dropped: List[DroppedEdge] = []
        seen_ids = set()

        for rel in relationships:
            missing = [t for t in (rel.from_table, rel.to_table) if t not in row_counts]
            if missing:
                reason = f"missing table(s): {', '.join(missing)}"
                logger.warning(f"Dropping edge {rel.id}: {reason}")
                EngineMetrics.record_dropped_edge("missing_node")
                dropped.append(DroppedEdge(relationship=rel, reason=reason))
                continue

            if rel.id in seen_ids:
                reason = "duplicate relationship id"
                logger.warning(f"Dropping edge {rel.id}: {reason}")
                EngineMetrics.record_dropped_edge("duplicate_id")
                dropped.append(DroppedEdge(relationship=rel, reason=reason))
                continue
            seen_ids.add(rel.id)

            larger = max(row_counts[rel.from_table] or 0, row_counts[rel.to_table] or 0)
            edges.append(GraphEdge(
                id=rel.id,
                from_node=rel.from_table,
                to_node=rel.to_table,
                relationship=rel,
                weight=calculate_edge_weight(rel.confidence, larger),
            ))

        logger.info(
            f"Built relationship graph for {schema.database_name}: "
            f"{len(nodes)} nodes, {len(edges)} edges, {len(dropped)} dropped"
        )
        return RelationshipGraph(schema, nodes, edges, dropped)
