"""
Join Path Finder

Cheapest join path between two tables, bounded by a hop count. Relationships
are traversed in either direction; a path never visits a table twice.
"""
from __future__ import annotations

import heapq
import time
from typing import Dict, List, Optional, Tuple

from ..utils import EngineMetrics, ValidationError, get_logger
from .graph import RelationshipGraph
from .models import (
    ColumnKey,
    GraphEdge,
    JoinPath,
    JoinPathResult,
    JoinStep,
    JoinType,
    PathSearchStatus,
    Relationship,
)

logger = get_logger(__name__)

DEFAULT_MAX_HOPS = 4

# costs within this many decimals are ties
_COST_PRECISION = 9

# (cost, hops, visited tables, edge ids)
_Label = Tuple[float, int, Tuple[str, ...], Tuple[str, ...]]


class JoinPathFinder:
    """
    Weighted shortest-path search over a RelationshipGraph

    Equal-cost paths are ordered by fewer hops, then by the visited table
    names, so repeated searches return the same path.

    Usage:
        finder = JoinPathFinder(graph)
        result = finder.find_join_path("users", "tags", max_hops=3)
        if result.found:
            print(result.path.to_sql())
    """

    def __init__(self, graph: RelationshipGraph):
        self.graph = graph
        self._edges: Dict[str, GraphEdge] = {edge.id: edge for edge in graph.edges}

    def find_join_path(
        self,
        from_table: str,
        to_table: str,
        max_hops: int = DEFAULT_MAX_HOPS,
    ) -> JoinPathResult:
        if max_hops < 1:
            raise ValidationError(f"max_hops must be at least 1, got {max_hops}", field_name="max_hops")
        self.graph.require_node(from_table)
        self.graph.require_node(to_table)

        start = time.time()
        result = self._search(from_table, to_table, max_hops)
        EngineMetrics.record_path_search(time.time() - start, result.status.value)

        logger.debug(
            f"Join path {from_table} -> {to_table} (max_hops={max_hops}): {result.status.value}"
        )
        return result

    def _search(self, from_table: str, to_table: str, max_hops: int) -> JoinPathResult:
        if from_table == to_table:
            return JoinPathResult(
                status=PathSearchStatus.FOUND,
                from_table=from_table,
                to_table=to_table,
                max_hops=max_hops,
                path=JoinPath(from_table=from_table, to_table=to_table),
            )

        label = self._cheapest_label(from_table, to_table, max_hops)
        if label is not None:
            return JoinPathResult(
                status=PathSearchStatus.FOUND,
                from_table=from_table,
                to_table=to_table,
                max_hops=max_hops,
                path=self._build_path(label),
            )

        required = self.graph.hop_distance(from_table, to_table)
        if required is None:
            return JoinPathResult(
                status=PathSearchStatus.NOT_FOUND,
                from_table=from_table,
                to_table=to_table,
                max_hops=max_hops,
            )

        return JoinPathResult(
            status=PathSearchStatus.TOO_LONG,
            from_table=from_table,
            to_table=to_table,
            max_hops=max_hops,
            required_hops=required,
        )

    def _cheapest_label(self, source: str, target: str, max_hops: int) -> Optional[_Label]:
        """
        Label-setting Dijkstra with a hop bound.

        A table is expanded again only when reached with fewer hops than every
        earlier expansion, since a cheaper path may run out of hops where a
        costlier, shorter one does not.
        """
        heap: List[Tuple[float, int, Tuple[str, ...], Tuple[str, ...], float]] = [
            (0.0, 0, (source,), (), 0.0)
        ]
        fewest_hops: Dict[str, int] = {}

        while heap:
            _, hops, tables, edge_ids, cost = heapq.heappop(heap)
            node = tables[-1]

            if node == target:
                return cost, hops, tables, edge_ids

            if node in fewest_hops and fewest_hops[node] <= hops:
                continue
            fewest_hops[node] = hops

            if hops == max_hops:
                continue

            for neighbor, edge in self.graph.incident_edges(node):
                if neighbor in tables:
                    continue
                new_cost = cost + edge.weight
                heapq.heappush(heap, (
                    round(new_cost, _COST_PRECISION),
                    hops + 1,
                    tables + (neighbor,),
                    edge_ids + (edge.id,),
                    new_cost,
                ))

        return None

    def _build_path(self, label: _Label) -> JoinPath:
        cost, _, tables, edge_ids = label
        steps = tuple(
            self._build_step(tables[i], tables[i + 1], self._edges[edge_id].relationship)
            for i, edge_id in enumerate(edge_ids)
        )
        return JoinPath(
            from_table=tables[0],
            to_table=tables[-1],
            steps=steps,
            estimated_cost=cost,
            recommended_indexes=self._recommend_indexes(steps),
        )

    def _build_step(self, from_table: str, to_table: str, rel: Relationship) -> JoinStep:
        join_type = JoinType.INNER
        if self._is_nullable(rel.source_key) or self._is_nullable(rel.target_key):
            join_type = JoinType.LEFT

        return JoinStep(
            from_table=from_table,
            to_table=to_table,
            join_type=join_type,
            on_clause=rel.get_join_sql(),
            relationship=rel,
        )

    def _is_nullable(self, key: ColumnKey) -> bool:
        table = self.graph.get_table(key.table)
        column = table.get_column(key.column) if table else None
        # primary key columns are never null, whatever the snapshot says
        if column is None or column.name in table.primary_key:
            return False
        return column.nullable

    def _recommend_indexes(self, steps: Tuple[JoinStep, ...]) -> Tuple[ColumnKey, ...]:
        """Join columns along the path with no supporting index, in path order"""
        missing: List[ColumnKey] = []
        for step in steps:
            for key in (step.relationship.source_key, step.relationship.target_key):
                table = self.graph.get_table(key.table)
                if table is None or table.is_indexed(key.column) or key in missing:
                    continue
                missing.append(key)
        return tuple(missing)
