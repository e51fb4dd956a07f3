"""
Query Executor Package
Provides the read-only query boundary used for multiplicity sampling
"""
from .base import (
    BaseQueryExecutor,
    QueryResult,
)
from .sqlite_adapter import SQLiteQueryExecutor

__all__ = [
    "BaseQueryExecutor",
    "QueryResult",
    "SQLiteQueryExecutor",
]
