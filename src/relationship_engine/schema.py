"""
Schema Snapshot Module

Normalized description of a database's structure, as handed over by a
schema-extraction collaborator. Document stores arrive already flattened into
the same table/column shape. Snapshots are treated as immutable input.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import DatabaseType
from .utils.errors import SchemaValidationError


@dataclass
class ColumnSchema:
    """Schema information for a database column"""
    name: str
    data_type: str = "unknown"
    nullable: bool = True
    default_value: Optional[str] = None
    comment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "data_type": self.data_type,
            "nullable": self.nullable,
            "default_value": self.default_value,
            "comment": self.comment,
        }


@dataclass
class ForeignKeySchema:
    """Foreign key constraint with ordered column pairs"""
    name: str
    columns: List[str]
    referenced_table: str
    referenced_columns: List[str]
    on_delete: Optional[str] = None
    on_update: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": self.columns,
            "referenced_table": self.referenced_table,
            "referenced_columns": self.referenced_columns,
            "on_delete": self.on_delete,
            "on_update": self.on_update,
        }


@dataclass
class IndexSchema:
    """Index information"""
    name: str
    columns: List[str]
    is_unique: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": self.columns,
            "is_unique": self.is_unique,
        }


@dataclass
class TableSchema:
    """Schema information for a database table"""
    name: str
    columns: List[ColumnSchema] = field(default_factory=list)
    primary_key: List[str] = field(default_factory=list)
    foreign_keys: List[ForeignKeySchema] = field(default_factory=list)
    indexes: List[IndexSchema] = field(default_factory=list)
    row_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": [c.to_dict() for c in self.columns],
            "primary_key": self.primary_key,
            "foreign_keys": [fk.to_dict() for fk in self.foreign_keys],
            "indexes": [idx.to_dict() for idx in self.indexes],
            "row_count": self.row_count,
        }

    def get_column(self, name: str) -> Optional[ColumnSchema]:
        """Get column by exact name"""
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def has_column(self, name: str) -> bool:
        return self.get_column(name) is not None

    def is_indexed(self, column_name: str) -> bool:
        """True when the column is covered by the primary key or any index"""
        if column_name in self.primary_key:
            return True
        return any(column_name in idx.columns for idx in self.indexes)


@dataclass
class DatabaseSchema:
    """Complete schema snapshot for one extraction run"""
    database_name: str
    database_type: DatabaseType = DatabaseType.POSTGRESQL
    tables: List[TableSchema] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "database_name": self.database_name,
            "database_type": self.database_type.value,
            "tables": [t.to_dict() for t in self.tables],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DatabaseSchema":
        """Create a snapshot from plain data (e.g. a cached JSON/YAML document)"""
        schema = cls(
            database_name=data.get("database_name", "unknown"),
            database_type=DatabaseType(data.get("database_type", DatabaseType.POSTGRESQL.value)),
        )

        for table_data in data.get("tables", []):
            table = TableSchema(
                name=table_data["name"],
                primary_key=list(table_data.get("primary_key", [])),
                row_count=table_data.get("row_count"),
            )
            for col_data in table_data.get("columns", []):
                table.columns.append(ColumnSchema(
                    name=col_data["name"],
                    data_type=col_data.get("data_type", "unknown"),
                    nullable=col_data.get("nullable", True),
                    default_value=col_data.get("default_value"),
                    comment=col_data.get("comment"),
                ))
            for fk_data in table_data.get("foreign_keys", []):
                table.foreign_keys.append(ForeignKeySchema(
                    name=fk_data["name"],
                    columns=list(fk_data.get("columns", [])),
                    referenced_table=fk_data["referenced_table"],
                    referenced_columns=list(fk_data.get("referenced_columns", [])),
                    on_delete=fk_data.get("on_delete"),
                    on_update=fk_data.get("on_update"),
                ))
            for idx_data in table_data.get("indexes", []):
                table.indexes.append(IndexSchema(
                    name=idx_data["name"],
                    columns=list(idx_data.get("columns", [])),
                    is_unique=idx_data.get("is_unique", False),
                ))
            schema.tables.append(table)

        return schema

    def get_table_names(self) -> List[str]:
        """Get all table names in snapshot order"""
        return [t.name for t in self.tables]

    def get_table(self, name: str) -> Optional[TableSchema]:
        """Get table schema by exact name"""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def find_tables_ci(self, name: str) -> List[TableSchema]:
        """All tables whose name matches case-insensitively"""
        name_lower = name.lower()
        return [t for t in self.tables if t.name.lower() == name_lower]

    def validate(self) -> None:
        """
        Reject snapshots that break caller-side invariants.

        Raises:
            SchemaValidationError: duplicate table names, or duplicate column
                names within one table
        """
        problems = []

        counts = Counter(t.name for t in self.tables)
        for name, count in counts.items():
            if count > 1:
                problems.append(f"Duplicate table name '{name}' ({count} occurrences)")

        for table in self.tables:
            col_counts = Counter(c.name for c in table.columns)
            for name, count in col_counts.items():
                if count > 1:
                    problems.append(f"Duplicate column '{table.name}.{name}'")

        if problems:
            raise SchemaValidationError(
                f"Schema snapshot '{self.database_name}' is invalid: {'; '.join(problems)}",
                problems=problems,
            )
