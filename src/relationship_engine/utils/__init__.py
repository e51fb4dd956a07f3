"""
Utilities Package for the Relationship Engine
"""
from .logging import (
    setup_logging,
    get_logger,
    set_correlation_id,
    get_correlation_id,
    clear_context,
    log_context,
    log_operation,
)

from .errors import (
    ErrorSeverity,
    ErrorCategory,
    ErrorContext,
    RelationshipEngineError,
    SchemaValidationError,
    TableNotFoundError,
    GraphNotBuiltError,
    SamplingError,
    QueryTimeoutError,
    ValidationError,
    ConfigurationError,
    classify_database_error,
)

from .metrics import (
    MetricsCollector,
    get_metrics_collector,
    counter,
    gauge,
    timer,
    time_operation,
    EngineMetrics,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "set_correlation_id",
    "get_correlation_id",
    "clear_context",
    "log_context",
    "log_operation",
    # Errors
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorContext",
    "RelationshipEngineError",
    "SchemaValidationError",
    "TableNotFoundError",
    "GraphNotBuiltError",
    "SamplingError",
    "QueryTimeoutError",
    "ValidationError",
    "ConfigurationError",
    "classify_database_error",
    # Metrics
    "MetricsCollector",
    "get_metrics_collector",
    "counter",
    "gauge",
    "timer",
    "time_operation",
    "EngineMetrics",
]
