"""
Shared fixtures for relationship engine tests
"""
import pytest
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from relationship_engine.config import DatabaseType, reset_config
from relationship_engine.schema import (
    ColumnSchema,
    DatabaseSchema,
    ForeignKeySchema,
    IndexSchema,
    TableSchema,
)
from relationship_engine.utils import get_metrics_collector


def build_table(name, columns, primary_key=("id",), foreign_keys=(), indexes=(), row_count=None, nullable=()):
    """
    Compact table factory.

    ``foreign_keys`` items are (constraint, [columns], referenced_table,
    [referenced_columns]) with optional on_delete as a fifth element.
    """
    return TableSchema(
        name=name,
        columns=[
            ColumnSchema(name=c, data_type="INTEGER", nullable=c in nullable)
            for c in columns
        ],
        primary_key=list(primary_key),
        foreign_keys=[
            ForeignKeySchema(
                name=fk[0],
                columns=list(fk[1]),
                referenced_table=fk[2],
                referenced_columns=list(fk[3]),
                on_delete=fk[4] if len(fk) > 4 else None,
            )
            for fk in foreign_keys
        ],
        indexes=[IndexSchema(name=i[0], columns=list(i[1])) for i in indexes],
        row_count=row_count,
    )


@pytest.fixture
def make_table():
    return build_table


@pytest.fixture
def make_schema():
    def _make(*tables, name="test_db"):
        return DatabaseSchema(
            database_name=name,
            database_type=DatabaseType.POSTGRESQL,
            tables=list(tables),
        )
    return _make


@pytest.fixture
def blog_schema(make_schema):
    """users <- posts <- post_tags -> tags"""
    return make_schema(
        build_table("users", ["id", "name"], row_count=100),
        build_table(
            "posts", ["id", "user_id", "title"],
            foreign_keys=[("fk_posts_user", ["user_id"], "users", ["id"])],
            row_count=1000,
        ),
        build_table("tags", ["id", "label"], row_count=20),
        build_table(
            "post_tags", ["post_id", "tag_id", "created_at"],
            primary_key=("post_id", "tag_id"),
            foreign_keys=[
                ("fk_post_tags_post", ["post_id"], "posts", ["id"], "CASCADE"),
                ("fk_post_tags_tag", ["tag_id"], "tags", ["id"], "CASCADE"),
            ],
            row_count=3000,
        ),
        name="blog",
    )


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh metrics and configuration for every test"""
    get_metrics_collector().reset()
    reset_config()
    yield
    reset_config()
