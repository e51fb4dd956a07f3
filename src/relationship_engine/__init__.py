"""
Schema Relationship Engine
==========================

Discovers and analyzes relationships between database tables from a schema
snapshot: declared foreign keys, naming-convention inferences, junction
tables and sampled multiplicities, plus a weighted graph for join path search.

Quick Start:
------------

    from relationship_engine import DatabaseSchema, RelationshipAnalyzer

    schema = DatabaseSchema.from_dict(snapshot)
    analyzer = RelationshipAnalyzer()
    analysis = analyzer.analyze(schema)

    result = analyzer.find_join_path("users", "tags", max_hops=3)
    if result.found:
        print(result.path.to_sql())

    print(analyzer.export_mermaid())

Configuration:
--------------

    Settings come from EngineConfig (pydantic), loaded from the environment
    (REL_* variables), a mapping or a YAML file:

    from relationship_engine import EngineConfig, set_config
    set_config(EngineConfig.from_yaml("relationships.yaml"))
"""

__version__ = "1.0.0"

from .config import (
    DatabaseType,
    LogLevel,
    RelationshipConfig,
    SamplingConfig,
    GraphConfig,
    EngineConfig,
    get_config,
    set_config,
    reset_config,
)
from .schema import (
    ColumnSchema,
    ForeignKeySchema,
    IndexSchema,
    TableSchema,
    DatabaseSchema,
)
from .adapters import BaseQueryExecutor, QueryResult, SQLiteQueryExecutor
from .relationships import (
    Multiplicity,
    JoinType,
    PathSearchStatus,
    ColumnKey,
    Relationship,
    JunctionTable,
    JoinPath,
    JoinPathResult,
    RelationshipAnalysis,
    RelationshipGraph,
    RelationshipAnalyzer,
    GraphBuilder,
    JoinPathFinder,
    export_mermaid_er,
    export_graphviz,
)
from .utils import (
    setup_logging,
    get_logger,
    RelationshipEngineError,
    SchemaValidationError,
    TableNotFoundError,
    ValidationError,
    ConfigurationError,
)

__all__ = [
    "__version__",
    # Config
    "DatabaseType",
    "LogLevel",
    "RelationshipConfig",
    "SamplingConfig",
    "GraphConfig",
    "EngineConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Schema
    "ColumnSchema",
    "ForeignKeySchema",
    "IndexSchema",
    "TableSchema",
    "DatabaseSchema",
    # Executors
    "BaseQueryExecutor",
    "QueryResult",
    "SQLiteQueryExecutor",
    # Relationships
    "Multiplicity",
    "JoinType",
    "PathSearchStatus",
    "ColumnKey",
    "Relationship",
    "JunctionTable",
    "JoinPath",
    "JoinPathResult",
    "RelationshipAnalysis",
    "RelationshipGraph",
    "RelationshipAnalyzer",
    "GraphBuilder",
    "JoinPathFinder",
    "export_mermaid_er",
    "export_graphviz",
    # Utils
    "setup_logging",
    "get_logger",
    "RelationshipEngineError",
    "SchemaValidationError",
    "TableNotFoundError",
    "ValidationError",
    "ConfigurationError",
]
