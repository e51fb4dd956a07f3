"""
Unit Tests for the Relationship Graph
"""
import math
import pytest
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from relationship_engine.relationships import (
    ExplicitOrigin,
    ExplicitRelationshipDiscoverer,
    GraphBuilder,
    InferredOrigin,
    Relationship,
    calculate_edge_weight,
)
from relationship_engine.utils import (
    SchemaValidationError,
    TableNotFoundError,
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
def blog_graph(blog_schema):
    relationships = ExplicitRelationshipDiscoverer(blog_schema).discover()
    return GraphBuilder().build(blog_schema, relationships)


class TestEdgeWeight:
    """Tests for calculate_edge_weight"""

    def test_certain_link_on_empty_tables(self):
        assert calculate_edge_weight(1.0, 0) == 1.0

    def test_unknown_row_count(self):
        assert calculate_edge_weight(1.0, None) == 1.0

    def test_strictly_positive(self):
        assert calculate_edge_weight(0.0, 0) > 0

    def test_monotonic_in_uncertainty(self):
        assert calculate_edge_weight(0.7, 100) > calculate_edge_weight(0.9, 100)

    def test_monotonic_in_size(self):
        assert calculate_edge_weight(1.0, 1_000_000) > calculate_edge_weight(1.0, 1000)

    def test_formula(self):
        assert calculate_edge_weight(0.9, 999) == pytest.approx(1 + 1.0 + 3.0)


class TestGraphBuilder:
    """Tests for GraphBuilder"""

    def test_nodes_and_edges(self, blog_graph):
        assert sorted(n.id for n in blog_graph.nodes) == ["post_tags", "posts", "tags", "users"]
        assert len(blog_graph.edges) == 3
        assert blog_graph.dropped_edges == ()

        node_ids = {n.id for n in blog_graph.nodes}
        for edge in blog_graph.edges:
            assert edge.from_node in node_ids
            assert edge.to_node in node_ids

    def test_weight_uses_larger_table(self, blog_graph):
        edge = next(e for e in blog_graph.edges if e.id == "posts.fk_posts_user")
        assert edge.weight == pytest.approx(1 + math.log10(1001))

    def test_dangling_edge_is_dropped(self, blog_schema):
        relationships = [
            link("posts.fk_posts_user", "posts", "user_id", "users"),
            link("posts.fk_ghost", "posts", "ghost_id", "ghosts"),
        ]

        graph = GraphBuilder().build(blog_schema, relationships)

        assert [e.id for e in graph.edges] == ["posts.fk_posts_user"]
        assert len(graph.dropped_edges) == 1
        assert graph.dropped_edges[0].relationship.id == "posts.fk_ghost"
        assert "ghosts" in graph.dropped_edges[0].reason
        assert get_metrics_collector().get_counter(
            "graph_edges_dropped_total", {"reason": "missing_node"}
        ) == 1

    def test_duplicate_id_is_dropped(self, blog_schema):
        relationships = [
            link("posts.fk_posts_user", "posts", "user_id", "users"),
            link("posts.fk_posts_user", "posts", "user_id", "users"),
        ]

        graph = GraphBuilder().build(blog_schema, relationships)

        assert len(graph.edges) == 1
        assert graph.dropped_edges[0].reason == "duplicate relationship id"

    def test_duplicate_table_names_are_fatal(self, make_table, make_schema):
        schema = make_schema(make_table("users", ["id"]), make_table("users", ["id"]))

        with pytest.raises(SchemaValidationError):
            GraphBuilder().build(schema, [])

    def test_rebuild_returns_new_graph(self, blog_schema, blog_graph):
        rebuilt = GraphBuilder().build(blog_schema, [])

        assert rebuilt is not blog_graph
        assert len(blog_graph.edges) == 3
        assert rebuilt.edges == ()

    def test_to_dict(self, blog_graph):
        data = blog_graph.to_dict()

        assert len(data["nodes"]) == 4
        assert {e["id"] for e in data["edges"]} == {
            "posts.fk_posts_user",
            "post_tags.fk_post_tags_post",
            "post_tags.fk_post_tags_tag",
        }


class TestGraphNavigation:
    """Tests for neighbourhood queries"""

    def test_edges_are_traversable_both_ways(self, blog_graph):
        assert [n for n, _ in blog_graph.incident_edges("users")] == ["posts"]
        assert [n for n, _ in blog_graph.incident_edges("posts")] == ["post_tags", "users"]

    def test_parallel_edges(self, make_table, make_schema):
        schema = make_schema(
            make_table("users", ["id"]),
            make_table("posts", ["id", "author_id", "editor_id"]),
        )
        graph = GraphBuilder().build(schema, [
            link("posts.fk_editor", "posts", "editor_id", "users"),
            link("posts.fk_author", "posts", "author_id", "users"),
        ])

        assert [e.id for e in graph.edges_between("users", "posts")] == [
            "posts.fk_author",
            "posts.fk_editor",
        ]

    def test_hop_distance(self, blog_graph):
        assert blog_graph.hop_distance("users", "tags") == 3
        assert blog_graph.hop_distance("users", "users") == 0

    def test_disconnected(self, blog_schema, make_table, make_schema):
        schema = make_schema(*blog_schema.tables, make_table("audit_log", ["id"]))
        graph = GraphBuilder().build(schema, ExplicitRelationshipDiscoverer(schema).discover())

        assert graph.is_connected("users", "audit_log") is False
        assert graph.hop_distance("users", "audit_log") is None

    def test_related_tables(self, blog_graph):
        related = blog_graph.get_related_tables("users", max_depth=2)

        assert [(r.table_name, r.distance) for r in related] == [("posts", 1), ("post_tags", 2)]
        assert related[0].relationship.id == "posts.fk_posts_user"
        assert related[1].relationship.id == "post_tags.fk_post_tags_post"

    def test_related_tables_full_depth(self, blog_graph):
        related = blog_graph.get_related_tables("post_tags", max_depth=5)

        assert [(r.table_name, r.distance) for r in related] == [
            ("posts", 1),
            ("tags", 1),
            ("users", 2),
        ]

    def test_related_tables_zero_depth(self, blog_graph):
        assert blog_graph.get_related_tables("users", max_depth=0) == []

    def test_unknown_table(self, blog_graph):
        with pytest.raises(TableNotFoundError):
            blog_graph.get_related_tables("nope", max_depth=1)
