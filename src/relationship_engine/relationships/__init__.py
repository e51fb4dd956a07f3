"""
Relationship Analysis Package
Discovery, inference, junction detection, multiplicity sampling, graph
construction and join path search over a schema snapshot
"""
from .models import (
    Multiplicity,
    RelationshipKind,
    JoinType,
    PathSearchStatus,
    ColumnKey,
    ExplicitOrigin,
    InferredOrigin,
    Relationship,
    JunctionTable,
    RelationshipsByDirection,
    RelationshipStats,
    GraphNode,
    GraphEdge,
    DroppedEdge,
    RelatedTable,
    JoinStep,
    JoinPath,
    JoinPathResult,
    MultiplicitySample,
    RelationshipAnalysis,
)
from .inflection import Inflector, InflectInflector
from .discovery import (
    ExplicitRelationshipDiscoverer,
    ImplicitRelationshipInferrer,
    merge_relationships,
    get_table_relationships,
    group_by_table,
    summarize_relationships,
)
from .junctions import JunctionTableDetector
from .multiplicity import (
    classify_multiplicity,
    MultiplicityCalculator,
    MultiplicityRefiner,
)
from .graph import calculate_edge_weight, GraphBuilder, RelationshipGraph
from .join_paths import JoinPathFinder
from .export import export_mermaid_er, export_graphviz
from .analyzer import RelationshipAnalyzer

__all__ = [
    # Models
    "Multiplicity",
    "RelationshipKind",
    "JoinType",
    "PathSearchStatus",
    "ColumnKey",
    "ExplicitOrigin",
    "InferredOrigin",
    "Relationship",
    "JunctionTable",
    "RelationshipsByDirection",
    "RelationshipStats",
    "GraphNode",
    "GraphEdge",
    "DroppedEdge",
    "RelatedTable",
    "JoinStep",
    "JoinPath",
    "JoinPathResult",
    "MultiplicitySample",
    "RelationshipAnalysis",
    # Inflection
    "Inflector",
    "InflectInflector",
    # Discovery
    "ExplicitRelationshipDiscoverer",
    "ImplicitRelationshipInferrer",
    "merge_relationships",
    "get_table_relationships",
    "group_by_table",
    "summarize_relationships",
    # Junctions
    "JunctionTableDetector",
    # Multiplicity
    "classify_multiplicity",
    "MultiplicityCalculator",
    "MultiplicityRefiner",
    # Graph
    "calculate_edge_weight",
    "GraphBuilder",
    "RelationshipGraph",
    "JoinPathFinder",
    "export_mermaid_er",
    "export_graphviz",
    # Pipeline
    "RelationshipAnalyzer",
]
