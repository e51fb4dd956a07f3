"""
Junction Table Detection

Identifies tables that implement a many-to-many association: exactly two
declared foreign keys and little else besides the primary key and
timestamp bookkeeping.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..schema import DatabaseSchema, TableSchema
from ..utils import get_logger
from .discovery import group_by_table
from .models import JunctionTable, Relationship

logger = get_logger(__name__)

TIMESTAMP_COLUMNS = frozenset({"created_at", "updated_at", "timestamp"})

# payload column count -> confidence; more payload than this disqualifies
JUNCTION_CONFIDENCE: Dict[int, float] = {
    0: 0.95,
    1: 0.80,
    2: 0.65,
}


class JunctionTableDetector:
    """Heuristic many-to-many bridge detection over explicit relationships"""

    def __init__(self, schema: DatabaseSchema):
        self.schema = schema

    def detect(self, relationships: Iterable[Relationship]) -> List[JunctionTable]:
        explicit_by_table = group_by_table(r for r in relationships if r.is_explicit)
        junctions: List[JunctionTable] = []

        for table in self.schema.tables:
            junction = self._classify(table, explicit_by_table.get(table.name, []))
            if junction is not None:
                logger.info(
                    f"Identified junction table: {junction.table_name} "
                    f"({junction.left_table} <-> {junction.right_table}, "
                    f"confidence {junction.confidence:.2f})"
                )
                junctions.append(junction)

        return junctions

    def _classify(self, table: TableSchema, outgoing: List[Relationship]) -> Optional[JunctionTable]:
        if len(outgoing) != 2:
            return None

        left, right = outgoing
        excluded = set(table.primary_key) | {left.from_column, right.from_column}

        other_columns = tuple(
            col.name for col in table.columns
            if col.name not in excluded and col.name.lower() not in TIMESTAMP_COLUMNS
        )

        confidence = JUNCTION_CONFIDENCE.get(len(other_columns))
        if confidence is None:
            logger.debug(f"{table.name} has {len(other_columns)} payload columns; not a junction table")
            return None

        return JunctionTable(
            table_name=table.name,
            left_table=left.to_table,
            left_column=left.from_column,
            right_table=right.to_table,
            right_column=right.from_column,
            additional_columns=other_columns,
            confidence=confidence,
        )
