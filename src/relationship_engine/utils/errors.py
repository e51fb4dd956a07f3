"""
Error Handling Module for the Relationship Engine
Defines custom exceptions and error classification utilities
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime


class ErrorSeverity(str, Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error categories for classification"""
    DATABASE = "database"
    SCHEMA = "schema"
    SAMPLING = "sampling"
    GRAPH = "graph"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Additional context for errors"""
    correlation_id: Optional[str] = None
    database_name: Optional[str] = None
    table_name: Optional[str] = None
    relationship_id: Optional[str] = None
    sql_query: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correlation_id": self.correlation_id,
            "database_name": self.database_name,
            "table_name": self.table_name,
            "relationship_id": self.relationship_id,
            "sql_query": self.sql_query,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class RelationshipEngineError(Exception):
    """Base exception for the relationship engine"""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        recoverable: bool = True,
        suggestions: Optional[List[str]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.recoverable = recoverable
        self.suggestions = suggestions or []
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "suggestions": self.suggestions,
            "context": self.context.to_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }

    def __str__(self) -> str:
        return f"[{self.category.value}] {self.message}"


class SchemaValidationError(RelationshipEngineError):
    """Schema snapshot violates a caller-side invariant (fatal)"""

    def __init__(
        self,
        message: str,
        problems: Optional[List[str]] = None,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.SCHEMA,
            severity=ErrorSeverity.HIGH,
            context=context,
            recoverable=False,
            suggestions=[
                "Re-extract the schema snapshot",
                "Ensure table names are unique within the snapshot",
            ],
        )
        self.problems = problems or []


class TableNotFoundError(RelationshipEngineError):
    """Requested table is not part of the graph"""

    def __init__(
        self,
        table_name: str,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message=f"Table '{table_name}' not found in schema",
            category=ErrorCategory.SCHEMA,
            severity=ErrorSeverity.MEDIUM,
            context=context,
            recoverable=True,
            suggestions=[
                f"Check the spelling of '{table_name}'",
                "Rebuild the graph from a fresh schema snapshot",
            ],
        )
        self.table_name = table_name


class GraphNotBuiltError(RelationshipEngineError):
    """Graph operation attempted before a graph was built"""

    def __init__(self, message: str = "Graph not built. Call build() first."):
        super().__init__(
            message=message,
            category=ErrorCategory.GRAPH,
            severity=ErrorSeverity.MEDIUM,
            recoverable=True,
            suggestions=["Run the analyzer or GraphBuilder.build() before querying the graph"],
        )


class SamplingError(RelationshipEngineError):
    """Data sampling query failed"""

    def __init__(
        self,
        message: str,
        relationship_id: Optional[str] = None,
        sql_query: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        context = context or ErrorContext()
        context.relationship_id = relationship_id
        context.sql_query = sql_query

        super().__init__(
            message=message,
            category=ErrorCategory.SAMPLING,
            severity=ErrorSeverity.LOW,
            context=context,
            recoverable=True,
            suggestions=[
                "Verify the sampled columns exist on the source table",
                "Check for long-running locks on the source table",
            ],
            original_error=original_error
        )
        self.relationship_id = relationship_id


class QueryTimeoutError(RelationshipEngineError):
    """Timeout errors"""

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        operation: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        suggestions = [
            "Increase sampling.query_timeout",
            "Reduce sampling.sample_size",
        ]
        if operation:
            suggestions.append(f"Review '{operation}' operation performance")

        super().__init__(
            message=message,
            category=ErrorCategory.TIMEOUT,
            severity=ErrorSeverity.MEDIUM,
            context=context,
            recoverable=True,
            suggestions=suggestions,
            original_error=original_error
        )
        self.timeout_seconds = timeout_seconds
        self.operation = operation


class ValidationError(RelationshipEngineError):
    """Invalid argument supplied by the caller"""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        context: Optional[ErrorContext] = None,
    ):
        suggestions = ["Check the arguments passed to the engine"]
        if field_name:
            suggestions.append(f"Check value of '{field_name}'")

        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.MEDIUM,
            context=context,
            recoverable=True,
            suggestions=suggestions,
        )
        self.field_name = field_name


class ConfigurationError(RelationshipEngineError):
    """Configuration errors"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        suggestions = ["Review configuration settings"]
        if config_key:
            suggestions.append(f"Check configuration for key: {config_key}")

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.HIGH,
            context=context,
            recoverable=False,
            suggestions=suggestions,
            original_error=original_error
        )
        self.config_key = config_key


def classify_database_error(
    error: Exception,
    relationship_id: Optional[str] = None,
    sql_query: Optional[str] = None,
) -> RelationshipEngineError:
    """Classify a raw database error raised during sampling"""
    if isinstance(error, RelationshipEngineError):
        return error

    error_str = str(error).lower()

    if any(term in error_str for term in ['timeout', 'timed out', 'interrupted', 'canceling statement']):
        return QueryTimeoutError(
            message=str(error),
            operation="multiplicity_sampling",
            context=ErrorContext(relationship_id=relationship_id, sql_query=sql_query),
            original_error=error
        )

    return SamplingError(
        message=str(error),
        relationship_id=relationship_id,
        sql_query=sql_query,
        original_error=error
    )
