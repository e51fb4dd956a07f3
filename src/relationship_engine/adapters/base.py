"""
Base Query Executor Module
Defines the read-only query contract the engine consumes for data sampling
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..config import DatabaseType


@dataclass
class QueryResult:
    """Result of a read-only query"""
    success: bool
    columns: List[str] = field(default_factory=list)
    rows: List[Tuple[Any, ...]] = field(default_factory=list)
    row_count: int = 0
    execution_time_ms: float = 0.0
    error_message: Optional[str] = None
    timed_out: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "columns": self.columns,
            "rows": [list(row) for row in self.rows],
            "row_count": self.row_count,
            "execution_time_ms": self.execution_time_ms,
            "error_message": self.error_message,
            "timed_out": self.timed_out,
        }

    def first_row_as_dict(self) -> Optional[Dict[str, Any]]:
        """First row keyed by lower-cased column name"""
        if not self.rows:
            return None
        names = [c.lower() for c in self.columns]
        return dict(zip(names, self.rows[0]))


class BaseQueryExecutor(ABC):
    """
    Abstract read-only query executor

    Implementations run one parameterized read query against the source
    database and return rows. They must never raise for query-level failures;
    a failed or timed-out query comes back as an unsuccessful QueryResult.
    """

    @property
    @abstractmethod
    def database_type(self) -> DatabaseType:
        """Return the database type"""
        pass

    @abstractmethod
    def execute_query(
        self,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> QueryResult:
        """
        Execute a read-only query

        Args:
            sql: Parameterized SQL text
            params: Named parameters
            timeout: Per-query timeout in seconds (None for no limit)
        """
        pass

    def quote_identifier(self, name: str) -> str:
        """Quote a table/column identifier for this dialect"""
        if self.database_type == DatabaseType.MYSQL:
            return "`" + name.replace("`", "``") + "`"
        if self.database_type == DatabaseType.MSSQL:
            return "[" + name.replace("]", "]]") + "]"
        return '"' + name.replace('"', '""') + '"'

    def placeholder(self, name: str) -> str:
        """Named parameter placeholder for this driver"""
        if self.database_type in (DatabaseType.MYSQL, DatabaseType.POSTGRESQL):
            return f"%({name})s"
        if self.database_type == DatabaseType.MSSQL:
            return f"@{name}"
        return f":{name}"

    def limit_clause(self, placeholder: str) -> str:
        """Row-limit clause appended to a sampling subquery"""
        if self.database_type == DatabaseType.MSSQL:
            return f"ORDER BY (SELECT NULL) OFFSET 0 ROWS FETCH NEXT {placeholder} ROWS ONLY"
        if self.database_type == DatabaseType.ORACLE:
            return f"FETCH FIRST {placeholder} ROWS ONLY"
        return f"LIMIT {placeholder}"
