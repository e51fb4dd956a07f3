"""
SQLite Query Executor
Read-only sampling access to a SQLite database file
"""
from __future__ import annotations

import sqlite3
import time
from typing import Any, Dict, Optional

from ..config import DatabaseType
from ..utils import get_logger
from .base import BaseQueryExecutor, QueryResult

logger = get_logger(__name__)

# Number of SQLite VM instructions between deadline checks
_PROGRESS_STEPS = 1000


class SQLiteQueryExecutor(BaseQueryExecutor):
    """
    SQLite read-only query executor

    Each call opens its own read-only connection so the executor can be
    shared by the sampling worker pool without cross-thread cursor reuse.
    """

    def __init__(self, database_path: str, connection_timeout: float = 30.0):
        self.database_path = database_path
        self.connection_timeout = connection_timeout

    @property
    def database_type(self) -> DatabaseType:
        return DatabaseType.SQLITE

    def quote_identifier(self, name: str) -> str:
        # SQLite reads an unknown "double-quoted" name as a string literal
        return "`" + name.replace("`", "``") + "`"

    def _connect(self) -> sqlite3.Connection:
        """Open a read-only connection"""
        uri = f"file:{self.database_path}?mode=ro"
        return sqlite3.connect(uri, uri=True, timeout=self.connection_timeout)

    def execute_query(
        self,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> QueryResult:
        """Execute SQL query, aborting once the timeout elapses"""
        start_time = time.time()
        deadline = start_time + timeout if timeout else None

        try:
            connection = self._connect()
        except sqlite3.Error as e:
            return QueryResult(
                success=False,
                execution_time_ms=(time.time() - start_time) * 1000,
                error_message=str(e),
            )

        try:
            if deadline is not None:
                # non-zero return interrupts the running statement
                connection.set_progress_handler(
                    lambda: 1 if time.time() > deadline else 0,
                    _PROGRESS_STEPS,
                )

            cursor = connection.execute(sql, params or {})
            columns = [desc[0] for desc in cursor.description] if cursor.description else []
            rows = [tuple(row) for row in cursor.fetchall()]

            return QueryResult(
                success=True,
                columns=columns,
                rows=rows,
                row_count=len(rows),
                execution_time_ms=(time.time() - start_time) * 1000,
            )

        except sqlite3.Error as e:
            timed_out = deadline is not None and time.time() > deadline
            logger.debug(f"SQLite query failed (timed_out={timed_out}): {e}")
            return QueryResult(
                success=False,
                execution_time_ms=(time.time() - start_time) * 1000,
                error_message=str(e),
                timed_out=timed_out,
            )

        finally:
            connection.close()
