"""
Relationship Model Definitions

Derived artifacts computed from a schema snapshot: relationships, junction
tables, graph nodes/edges and join paths. All of them are immutable; a new
snapshot produces new instances rather than patching old ones.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union
import json
import yaml


class Multiplicity(str, Enum):
    """Cardinality of a relationship, read from the source table's side"""
    ONE_TO_ONE = "1:1"
    ONE_TO_MANY = "1:N"
    MANY_TO_ONE = "N:1"
    MANY_TO_MANY = "N:N"


class RelationshipKind(str, Enum):
    """How the relationship was obtained"""
    EXPLICIT = "explicit"
    INFERRED = "inferred"


class JoinType(str, Enum):
    """SQL join types"""
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"


class PathSearchStatus(str, Enum):
    """Outcome of a join path search"""
    FOUND = "found"
    NOT_FOUND = "not_found"   # tables are in disconnected components
    TOO_LONG = "too_long"     # connected, but only beyond max_hops


class ColumnKey(NamedTuple):
    """Composite (table, column) key"""
    table: str
    column: str

    def __str__(self) -> str:
        return f"{self.table}.{self.column}"


@dataclass(frozen=True)
class ExplicitOrigin:
    """Relationship declared by a foreign-key constraint"""
    constraint_name: str

    kind = RelationshipKind.EXPLICIT


@dataclass(frozen=True)
class InferredOrigin:
    """Relationship guessed from naming conventions"""
    pattern: str  # "snake_id" or "camel_id"

    kind = RelationshipKind.INFERRED


RelationshipOrigin = Union[ExplicitOrigin, InferredOrigin]


@dataclass(frozen=True)
class Relationship:
    """A directed link from one column of a source table to one column of a target table"""
    id: str
    origin: RelationshipOrigin
    from_table: str
    from_column: str
    to_table: str
    to_column: str
    multiplicity: Multiplicity = Multiplicity.MANY_TO_ONE
    cascade_on_delete: bool = False
    cascade_on_update: bool = False
    confidence: float = 1.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Relationship '{self.id}': confidence {self.confidence} outside [0, 1]")
        if self.is_explicit and self.confidence != 1.0:
            raise ValueError(f"Explicit relationship '{self.id}' must have confidence 1.0")
        if not self.is_explicit and self.confidence >= 1.0:
            raise ValueError(f"Inferred relationship '{self.id}' must have confidence below 1.0")

    @property
    def kind(self) -> RelationshipKind:
        return self.origin.kind

    @property
    def is_explicit(self) -> bool:
        return isinstance(self.origin, ExplicitOrigin)

    @property
    def constraint_name(self) -> Optional[str]:
        if isinstance(self.origin, ExplicitOrigin):
            return self.origin.constraint_name
        return None

    @property
    def source_key(self) -> ColumnKey:
        return ColumnKey(self.from_table, self.from_column)

    @property
    def target_key(self) -> ColumnKey:
        return ColumnKey(self.to_table, self.to_column)

    def with_multiplicity(self, multiplicity: Multiplicity) -> "Relationship":
        """Copy of this relationship with a refined multiplicity"""
        if multiplicity == self.multiplicity:
            return self
        return replace(self, multiplicity=multiplicity)

    def get_join_sql(self) -> str:
        """SQL join condition for this column pair"""
        return f"{self.from_table}.{self.from_column} = {self.to_table}.{self.to_column}"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "kind": self.kind.value,
            "from_table": self.from_table,
            "from_column": self.from_column,
            "to_table": self.to_table,
            "to_column": self.to_column,
            "multiplicity": self.multiplicity.value,
            "cascade_on_delete": self.cascade_on_delete,
            "cascade_on_update": self.cascade_on_update,
            "confidence": self.confidence,
        }
        if isinstance(self.origin, ExplicitOrigin):
            data["constraint_name"] = self.origin.constraint_name
        else:
            data["pattern"] = self.origin.pattern
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Relationship":
        """Rebuild a relationship from its to_dict() form"""
        if data.get("kind", "explicit") == RelationshipKind.EXPLICIT.value:
            origin: RelationshipOrigin = ExplicitOrigin(data.get("constraint_name", ""))
        else:
            origin = InferredOrigin(data.get("pattern", "snake_id"))

        return cls(
            id=data["id"],
            origin=origin,
            from_table=data["from_table"],
            from_column=data["from_column"],
            to_table=data["to_table"],
            to_column=data["to_column"],
            multiplicity=Multiplicity(data.get("multiplicity", Multiplicity.MANY_TO_ONE.value)),
            cascade_on_delete=data.get("cascade_on_delete", False),
            cascade_on_update=data.get("cascade_on_update", False),
            confidence=data.get("confidence", 1.0),
        )


@dataclass(frozen=True)
class JunctionTable:
    """A table believed to mediate a many-to-many association"""
    table_name: str
    left_table: str
    left_column: str
    right_table: str
    right_column: str
    additional_columns: Tuple[str, ...] = ()
    confidence: float = 0.95

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table_name": self.table_name,
            "left_table": self.left_table,
            "left_column": self.left_column,
            "right_table": self.right_table,
            "right_column": self.right_column,
            "additional_columns": list(self.additional_columns),
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class RelationshipsByDirection:
    """Relationships of one table grouped by direction"""
    outgoing: Tuple[Relationship, ...] = ()
    incoming: Tuple[Relationship, ...] = ()


@dataclass(frozen=True)
class RelationshipStats:
    """Summary counts over a relationship set"""
    total: int = 0
    explicit: int = 0
    inferred: int = 0
    one_to_one: int = 0
    one_to_many: int = 0
    many_to_one: int = 0
    many_to_many: int = 0
    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "explicit": self.explicit,
            "inferred": self.inferred,
            "one_to_one": self.one_to_one,
            "one_to_many": self.one_to_many,
            "many_to_one": self.many_to_one,
            "many_to_many": self.many_to_many,
            "high_confidence": self.high_confidence,
            "medium_confidence": self.medium_confidence,
            "low_confidence": self.low_confidence,
        }


@dataclass(frozen=True)
class GraphNode:
    """One table in the relationship graph"""
    id: str
    row_count: Optional[int] = None


@dataclass(frozen=True)
class GraphEdge:
    """One relationship in the graph, with its traversal cost"""
    id: str
    from_node: str
    to_node: str
    relationship: Relationship
    weight: float


@dataclass(frozen=True)
class DroppedEdge:
    """Diagnostic for a relationship rejected while building the graph"""
    relationship: Relationship
    reason: str


@dataclass(frozen=True)
class RelatedTable:
    """A table reachable from another within some number of hops"""
    table_name: str
    relationship: Relationship
    distance: int


@dataclass(frozen=True)
class JoinStep:
    """One traversal of a relationship while walking a join path"""
    from_table: str
    to_table: str
    join_type: JoinType
    on_clause: str
    relationship: Relationship

    def to_sql(self) -> str:
        return f"{self.join_type.value} JOIN {self.to_table} ON {self.on_clause}"


@dataclass(frozen=True)
class JoinPath:
    """Ordered join steps connecting two tables"""
    from_table: str
    to_table: str
    steps: Tuple[JoinStep, ...] = ()
    estimated_cost: float = 0.0
    recommended_indexes: Tuple[ColumnKey, ...] = ()

    @property
    def hops(self) -> int:
        return len(self.steps)

    @property
    def tables(self) -> List[str]:
        """Visited tables in order, endpoints included"""
        return [self.from_table] + [step.to_table for step in self.steps]

    def to_sql(self) -> str:
        """FROM clause walking the whole path"""
        lines = [f"FROM {self.from_table}"]
        lines.extend(step.to_sql() for step in self.steps)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_table": self.from_table,
            "to_table": self.to_table,
            "steps": [
                {
                    "from_table": s.from_table,
                    "to_table": s.to_table,
                    "join_type": s.join_type.value,
                    "on_clause": s.on_clause,
                    "relationship_id": s.relationship.id,
                }
                for s in self.steps
            ],
            "estimated_cost": self.estimated_cost,
            "recommended_indexes": [str(k) for k in self.recommended_indexes],
        }


@dataclass(frozen=True)
class JoinPathResult:
    """Join path search outcome; callers branch on status"""
    status: PathSearchStatus
    from_table: str
    to_table: str
    max_hops: int
    path: Optional[JoinPath] = None
    required_hops: Optional[int] = None

    @property
    def found(self) -> bool:
        return self.status == PathSearchStatus.FOUND


@dataclass(frozen=True)
class MultiplicitySample:
    """Aggregate counts from one sampling query"""
    unique_from: int
    unique_to: int
    total_rows: int


@dataclass
class RelationshipAnalysis:
    """Everything the analyzer derives from one schema snapshot"""
    database_name: str
    relationships: List[Relationship] = field(default_factory=list)
    junction_tables: List[JunctionTable] = field(default_factory=list)
    sampled: bool = False

    @property
    def explicit(self) -> List[Relationship]:
        return [r for r in self.relationships if r.is_explicit]

    @property
    def inferred(self) -> List[Relationship]:
        return [r for r in self.relationships if not r.is_explicit]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "database_name": self.database_name,
            "relationships": [r.to_dict() for r in self.relationships],
            "junction_tables": [j.to_dict() for j in self.junction_tables],
            "sampled": self.sampled,
        }

    def to_json(self, indent: int = 2) -> str:
        """Export as JSON"""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def to_yaml(self) -> str:
        """Export as YAML"""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
