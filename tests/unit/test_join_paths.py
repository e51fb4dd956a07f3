"""
Unit Tests for Join Path Search
"""
import pytest
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from relationship_engine.relationships import (
    ColumnKey,
    ExplicitOrigin,
    ExplicitRelationshipDiscoverer,
    GraphBuilder,
    InferredOrigin,
    JoinPathFinder,
    JoinType,
    PathSearchStatus,
    Relationship,
)
from relationship_engine.utils import (
    TableNotFoundError,
    ValidationError,
    get_metrics_collector,
)


def link(rel_id, from_table, from_column, to_table, confidence=1.0):
    origin = ExplicitOrigin("fk") if confidence == 1.0 else InferredOrigin("snake_id")
    return Relationship(
        id=rel_id,
        origin=origin,
        from_table=from_table,
        from_column=from_column,
        to_table=to_table,
        to_column="id",
        confidence=confidence,
    )


@pytest.fixture
def blog_finder(blog_schema):
    graph = GraphBuilder().build(blog_schema, ExplicitRelationshipDiscoverer(blog_schema).discover())
    return JoinPathFinder(graph)


@pytest.fixture
def graph_of(make_table, make_schema):
    """Graph over tables a..e where every table has id plus the given link columns"""
    def _graph(*links):
        columns = {name: ["id"] for name in ("a", "b", "c", "d", "e")}
        for rel in links:
            columns[rel.from_table].append(rel.from_column)
        schema = make_schema(*(make_table(name, cols) for name, cols in sorted(columns.items())))
        return GraphBuilder().build(schema, links)
    return _graph


class TestJoinPathFinder:
    """Tests for JoinPathFinder"""

    def test_three_hop_path(self, blog_finder):
        result = blog_finder.find_join_path("users", "tags", max_hops=3)

        assert result.status == PathSearchStatus.FOUND
        assert result.found
        path = result.path
        assert path.hops == 3
        assert path.tables == ["users", "posts", "post_tags", "tags"]
        assert [s.relationship.id for s in path.steps] == [
            "posts.fk_posts_user",
            "post_tags.fk_post_tags_post",
            "post_tags.fk_post_tags_tag",
        ]
        assert path.estimated_cost == pytest.approx(sum(
            e.weight for e in blog_finder.graph.edges
        ))

    def test_too_long_is_distinct_from_not_found(self, blog_finder):
        result = blog_finder.find_join_path("users", "tags", max_hops=2)

        assert result.status == PathSearchStatus.TOO_LONG
        assert result.path is None
        assert result.required_hops == 3
        assert result.max_hops == 2

    def test_not_found_for_disconnected_tables(self, blog_schema, make_table, make_schema):
        schema = make_schema(*blog_schema.tables, make_table("audit_log", ["id"]))
        graph = GraphBuilder().build(schema, ExplicitRelationshipDiscoverer(schema).discover())

        result = JoinPathFinder(graph).find_join_path("users", "audit_log", max_hops=10)

        assert result.status == PathSearchStatus.NOT_FOUND
        assert result.required_hops is None

    def test_same_table(self, blog_finder):
        result = blog_finder.find_join_path("users", "users")

        assert result.found
        assert result.path.steps == ()
        assert result.path.estimated_cost == 0.0

    def test_unknown_table(self, blog_finder):
        with pytest.raises(TableNotFoundError):
            blog_finder.find_join_path("users", "nope")

    def test_invalid_max_hops(self, blog_finder):
        with pytest.raises(ValidationError):
            blog_finder.find_join_path("users", "tags", max_hops=0)

    def test_cheaper_longer_path_within_bound(self, graph_of):
        graph = graph_of(
            link("a.d_id_inferred", "a", "d_id", "d", confidence=0.7),
            link("b.fk_a", "b", "a_id", "a"),
            link("c.fk_b", "c", "b_id", "b"),
            link("d.fk_c", "d", "c_id", "c"),
        )
        finder = JoinPathFinder(graph)

        wide = finder.find_join_path("a", "d", max_hops=3)
        narrow = finder.find_join_path("a", "d", max_hops=2)

        assert wide.path.tables == ["a", "b", "c", "d"]
        assert narrow.path.tables == ["a", "d"]
        assert narrow.path.estimated_cost > wide.path.estimated_cost

    def test_equal_cost_prefers_fewer_hops(self, graph_of):
        graph = graph_of(
            link("a.d_id_inferred", "a", "d_id", "d", confidence=0.9),
            link("a.fk_b", "a", "b_id", "b"),
            link("b.fk_d", "b", "d_id", "d"),
        )

        result = JoinPathFinder(graph).find_join_path("a", "d")

        assert result.path.tables == ["a", "d"]

    def test_equal_cost_prefers_lexicographic_tables(self, graph_of):
        graph = graph_of(
            link("a.fk_c", "a", "c_id", "c"),
            link("c.fk_d", "c", "d_id", "d"),
            link("a.fk_b", "a", "b_id", "b"),
            link("b.fk_d", "b", "d_id", "d"),
        )
        finder = JoinPathFinder(graph)

        results = {tuple(finder.find_join_path("a", "d").path.tables) for _ in range(5)}

        assert results == {("a", "b", "d")}

    def test_steps_follow_traversal_direction(self, blog_finder):
        path = blog_finder.find_join_path("tags", "users").path

        assert [(s.from_table, s.to_table) for s in path.steps] == [
            ("tags", "post_tags"),
            ("post_tags", "posts"),
            ("posts", "users"),
        ]
        assert path.steps[0].on_clause == "post_tags.tag_id = tags.id"

    def test_inner_join_by_default(self, blog_finder):
        path = blog_finder.find_join_path("users", "posts").path

        assert path.steps[0].join_type == JoinType.INNER
        assert path.to_sql() == "FROM users\nINNER JOIN posts ON posts.user_id = users.id"

    def test_left_join_on_nullable_column(self, make_table, make_schema):
        schema = make_schema(
            make_table("users", ["id"]),
            make_table(
                "posts", ["id", "user_id"],
                foreign_keys=[("fk_posts_user", ["user_id"], "users", ["id"])],
                nullable=("user_id",),
            ),
        )
        graph = GraphBuilder().build(schema, ExplicitRelationshipDiscoverer(schema).discover())

        path = JoinPathFinder(graph).find_join_path("users", "posts").path

        assert path.steps[0].join_type == JoinType.LEFT

    def test_primary_key_is_never_nullable(self, make_table, make_schema):
        """Snapshots that leave nullable at its default still join INNER on keys"""
        schema = make_schema(
            make_table("users", ["id"], nullable=("id",)),
            make_table(
                "posts", ["id", "user_id"],
                foreign_keys=[("fk_posts_user", ["user_id"], "users", ["id"])],
            ),
        )
        graph = GraphBuilder().build(schema, ExplicitRelationshipDiscoverer(schema).discover())

        path = JoinPathFinder(graph).find_join_path("users", "posts").path

        assert path.steps[0].join_type == JoinType.INNER

    def test_recommended_indexes(self, blog_finder):
        path = blog_finder.find_join_path("users", "tags", max_hops=3).path

        assert path.recommended_indexes == (ColumnKey("posts", "user_id"),)
        assert path.to_dict()["recommended_indexes"] == ["posts.user_id"]

    def test_indexed_columns_are_not_recommended(self, make_table, make_schema):
        schema = make_schema(
            make_table("users", ["id"]),
            make_table(
                "posts", ["id", "user_id"],
                foreign_keys=[("fk_posts_user", ["user_id"], "users", ["id"])],
                indexes=[("idx_posts_user", ["user_id"])],
            ),
        )
        graph = GraphBuilder().build(schema, ExplicitRelationshipDiscoverer(schema).discover())

        path = JoinPathFinder(graph).find_join_path("users", "posts").path

        assert path.recommended_indexes == ()

    def test_search_is_counted(self, blog_finder):
        blog_finder.find_join_path("users", "tags", max_hops=2)

        assert get_metrics_collector().get_counter(
            "join_path_searches_total", {"status": "too_long"}
        ) == 1
