"""
Relationship Discovery

Two pure passes over a schema snapshot:
1. Explicit foreign keys (declared constraints)
2. Naming conventions (user_id -> users.id, authorId -> authors.id)

Inferred relationships are candidates with a confidence score, never ground
truth. When a naming pattern matches but no target table resolves, nothing
is emitted: a missing link is cheaper than a wrong one.
"""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..schema import DatabaseSchema, ForeignKeySchema, TableSchema
from ..utils import get_logger
from .inflection import InflectInflector, Inflector
from .models import (
    ColumnKey,
    ExplicitOrigin,
    InferredOrigin,
    Multiplicity,
    Relationship,
    RelationshipsByDirection,
    RelationshipStats,
)

logger = get_logger(__name__)

# Heuristic confidence values. Tunable, not statistically derived.
CONFIDENCE_EXACT = 0.95        # base name equals the table name
CONFIDENCE_INFLECTED = 0.90    # equal after singular/plural normalization
CONFIDENCE_PARTIAL = 0.75      # one name contains the other
CONFIDENCE_FLOOR = 0.70

HIGH_CONFIDENCE = 0.9
MEDIUM_CONFIDENCE = 0.7

CASCADE_ACTION = "CASCADE"


def _is_cascade(action: Optional[str]) -> bool:
    return action is not None and action.strip().upper() == CASCADE_ACTION


def _unique_id(base: str, from_column: str, multi_column: bool, taken: Set[str]) -> str:
    """
    Relationship id for one FK column pair, unique within a discovery run.

    Unnamed constraints often arrive under a shared placeholder name, so a
    clash falls back to the column-qualified form and then a numeric suffix.
    """
    rel_id = f"{base}.{from_column}" if multi_column else base
    if rel_id in taken:
        logger.debug(f"Relationship id {rel_id} already taken, qualifying with column")
        rel_id = f"{base}.{from_column}"
    candidate, suffix = rel_id, 2
    while candidate in taken:
        candidate = f"{rel_id}.{suffix}"
        suffix += 1
    taken.add(candidate)
    return candidate


class ExplicitRelationshipDiscoverer:
    """
    Turns declared foreign-key constraints into relationships

    One relationship per ordinal column pair, so a two-column FK yields two
    relationships. Constraints pointing at tables missing from the snapshot
    (e.g. excluded by a table filter) are skipped.
    """

    def __init__(self, schema: DatabaseSchema):
        self.schema = schema

    def discover(self) -> List[Relationship]:
        relationships: List[Relationship] = []
        taken_ids: Set[str] = set()

        for table in self.schema.tables:
            for fk in table.foreign_keys:
                relationships.extend(self._expand_constraint(table, fk, taken_ids))

        return relationships

    def _expand_constraint(
        self,
        table: TableSchema,
        fk: ForeignKeySchema,
        taken_ids: Set[str],
    ) -> List[Relationship]:
        target = self.schema.get_table(fk.referenced_table)
        if target is None:
            logger.warning(
                f"Skipping foreign key {table.name}.{fk.name}: "
                f"referenced table '{fk.referenced_table}' is not in the snapshot"
            )
            return []

        if len(fk.columns) != len(fk.referenced_columns) or not fk.columns:
            logger.warning(
                f"Skipping foreign key {table.name}.{fk.name}: "
                f"{len(fk.columns)} columns vs {len(fk.referenced_columns)} referenced columns"
            )
            return []

        multi_column = len(fk.columns) > 1
        relationships = []

        for from_column, to_column in zip(fk.columns, fk.referenced_columns):
            if not table.has_column(from_column):
                logger.warning(f"Skipping {table.name}.{fk.name}: column '{from_column}' not found")
                continue
            if not target.has_column(to_column):
                logger.warning(
                    f"Skipping {table.name}.{fk.name}: referenced column "
                    f"'{target.name}.{to_column}' not found"
                )
                continue

            rel_id = _unique_id(f"{table.name}.{fk.name}", from_column, multi_column, taken_ids)

            relationships.append(Relationship(
                id=rel_id,
                origin=ExplicitOrigin(constraint_name=fk.name),
                from_table=table.name,
                from_column=from_column,
                to_table=target.name,
                to_column=to_column,
                multiplicity=Multiplicity.MANY_TO_ONE,
                cascade_on_delete=_is_cascade(fk.on_delete),
                cascade_on_update=_is_cascade(fk.on_update),
                confidence=1.0,
            ))

        return relationships


class ImplicitRelationshipInferrer:
    """
    Discovers undeclared relationships based on column naming patterns

    Patterns:
    - user_id  -> users.id   (``_id`` suffix, any case)
    - authorId -> authors.id (camelCase ``Id`` suffix)

    The target table must have a column named exactly ``id``.
    """

    FK_PATTERNS: Tuple[Tuple[str, "re.Pattern[str]"], ...] = (
        ("snake_id", re.compile(r'^(.+)_id$', re.IGNORECASE)),
        ("camel_id", re.compile(r'^([A-Za-z][A-Za-z0-9]*?)Id$')),
    )

    TARGET_COLUMN = "id"

    def __init__(
        self,
        schema: DatabaseSchema,
        explicit: Iterable[Relationship] = (),
        inflector: Optional[Inflector] = None,
    ):
        self.schema = schema
        self.inflector = inflector or InflectInflector()
        # every declared FK column, including constraints discovery had to skip
        self._skip: Set[ColumnKey] = {rel.source_key for rel in explicit} | {
            ColumnKey(table.name, column)
            for table in schema.tables
            for fk in table.foreign_keys
            for column in fk.columns
        }

    def infer(self) -> List[Relationship]:
        relationships: List[Relationship] = []
        seen: Set[ColumnKey] = set()

        for table in self.schema.tables:
            for column in table.columns:
                key = ColumnKey(table.name, column.name)
                if key in self._skip or key in seen:
                    continue

                rel = self._infer_column(table, column.name)
                if rel is not None:
                    seen.add(key)
                    relationships.append(rel)

        return relationships

    def _infer_column(self, table: TableSchema, column_name: str) -> Optional[Relationship]:
        match = self._match_pattern(column_name)
        if match is None:
            return None

        pattern, base_name = match
        target = self.find_target_table(base_name)
        if target is None:
            logger.debug(f"No target table for {table.name}.{column_name} (base '{base_name}')")
            return None

        if not target.has_column(self.TARGET_COLUMN):
            logger.debug(f"Target '{target.name}' for {table.name}.{column_name} has no 'id' column")
            return None

        if target.name == table.name and column_name in table.primary_key:
            return None

        return Relationship(
            id=f"{table.name}.{column_name}_inferred",
            origin=InferredOrigin(pattern=pattern),
            from_table=table.name,
            from_column=column_name,
            to_table=target.name,
            to_column=self.TARGET_COLUMN,
            multiplicity=Multiplicity.MANY_TO_ONE,
            confidence=self.calculate_confidence(base_name, target.name),
        )

    def _match_pattern(self, column_name: str) -> Optional[Tuple[str, str]]:
        """First matching pattern name and the stripped base name"""
        for pattern_name, regex in self.FK_PATTERNS:
            match = regex.match(column_name)
            if match:
                return pattern_name, match.group(1)
        return None

    def find_target_table(self, base_name: str) -> Optional[TableSchema]:
        """Resolve exact, then pluralized, then singularized table name"""
        lower = base_name.lower()
        candidates = (
            lower,
            self.inflector.pluralize(lower),
            self.inflector.singularize(lower),
        )

        for candidate in candidates:
            matches = self.schema.find_tables_ci(candidate)
            if len(matches) == 1:
                return matches[0]
            if len(matches) > 1:
                logger.debug(f"Ambiguous target '{candidate}': {[t.name for t in matches]}")
                return None

        return None

    def calculate_confidence(self, base_name: str, table_name: str) -> float:
        """Confidence that ``base_name`` refers to ``table_name``"""
        base = base_name.lower()
        table = table_name.lower()

        if base == table:
            return CONFIDENCE_EXACT

        if (
            self.inflector.singularize(base) == self.inflector.singularize(table)
            or self.inflector.pluralize(base) == table
        ):
            return CONFIDENCE_INFLECTED

        if base in table or table in base:
            return CONFIDENCE_PARTIAL

        return CONFIDENCE_FLOOR


def merge_relationships(
    explicit: Iterable[Relationship],
    inferred: Iterable[Relationship],
) -> List[Relationship]:
    """
    Combine explicit and inferred relationships.

    Explicit always wins for the same (from_table, from_column): an inferred
    candidate is dropped when any explicit relationship starts at that column.
    Among inferred duplicates the first one is kept. Explicit multi-column
    pairs are all preserved. Order: explicit first, then inferred.
    """
    merged: List[Relationship] = []
    explicit_keys: Set[ColumnKey] = set()
    explicit_ids: Set[str] = set()

    for rel in explicit:
        if rel.id in explicit_ids:
            logger.warning(f"Dropping explicit relationship with duplicate id {rel.id}")
            continue
        explicit_ids.add(rel.id)
        explicit_keys.add(rel.source_key)
        merged.append(rel)

    inferred_keys: Set[ColumnKey] = set()
    for rel in inferred:
        key = rel.source_key
        if key in explicit_keys or key in inferred_keys:
            continue
        inferred_keys.add(key)
        merged.append(rel)

    return merged


def get_table_relationships(
    table_name: str,
    relationships: Iterable[Relationship],
) -> RelationshipsByDirection:
    """All relationships of a table, split into outgoing and incoming"""
    relationships = list(relationships)
    return RelationshipsByDirection(
        outgoing=tuple(r for r in relationships if r.from_table == table_name),
        incoming=tuple(r for r in relationships if r.to_table == table_name),
    )


def group_by_table(relationships: Iterable[Relationship]) -> Dict[str, List[Relationship]]:
    """Outgoing relationships keyed by source table, discovery order preserved"""
    grouped: Dict[str, List[Relationship]] = {}
    for rel in relationships:
        grouped.setdefault(rel.from_table, []).append(rel)
    return grouped


def summarize_relationships(relationships: Iterable[Relationship]) -> RelationshipStats:
    """Counts by kind, multiplicity and confidence band"""
    relationships = list(relationships)

    def count(predicate) -> int:
        return sum(1 for r in relationships if predicate(r))

    return RelationshipStats(
        total=len(relationships),
        explicit=count(lambda r: r.is_explicit),
        inferred=count(lambda r: not r.is_explicit),
        one_to_one=count(lambda r: r.multiplicity == Multiplicity.ONE_TO_ONE),
        one_to_many=count(lambda r: r.multiplicity == Multiplicity.ONE_TO_MANY),
        many_to_one=count(lambda r: r.multiplicity == Multiplicity.MANY_TO_ONE),
        many_to_many=count(lambda r: r.multiplicity == Multiplicity.MANY_TO_MANY),
        high_confidence=count(lambda r: r.confidence >= HIGH_CONFIDENCE),
        medium_confidence=count(lambda r: MEDIUM_CONFIDENCE <= r.confidence < HIGH_CONFIDENCE),
        low_confidence=count(lambda r: r.confidence < MEDIUM_CONFIDENCE),
    )
