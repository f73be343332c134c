"""
tests/test_analyzer.py
Unit tests for beangen.analyzer (junction and inheritance detection) and
beangen.schema_graph (structural queries over the snapshot).
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

import pytest

from beangen.analyzer import RelationshipClassifier, SchemaAnalyzer
from beangen.exceptions import SchemaConfigurationError
from beangen.models import SchemaDefinition, TableInfo
from beangen.schema_graph import SchemaGraph


def _link_table(**extra: Any) -> Dict[str, Any]:
    table: Dict[str, Any] = {
        "name": "user_group",
        "primary_key_columns": ["user_id", "group_id"],
        "columns": [
            {"name": "user_id", "type": "integer", "nullable": False, "foreign_key": "user.id"},
            {"name": "group_id", "type": "integer", "nullable": False, "foreign_key": "group.id"},
        ],
    }
    table.update(extra)
    return table


# ===========================================================================
# Junction detection
# ===========================================================================


class TestJunctionDetection:
    def test_example_junction(self, example_schema: SchemaDefinition) -> None:
        analyzer = SchemaAnalyzer(example_schema)
        assert [t.name for t in analyzer.detect_junction_tables()] == ["user_group"]

    def test_two_fk_composite_pk(self) -> None:
        assert SchemaAnalyzer.is_junction(TableInfo.model_validate(_link_table()))

    def test_surrogate_key_tolerated(self) -> None:
        table = _link_table(primary_key_columns=["id"])
        table["columns"].insert(
            0,
            {"name": "id", "type": "integer", "autoincrement": True, "nullable": False},
        )
        assert SchemaAnalyzer.is_junction(TableInfo.model_validate(table))

    def test_payload_column_disqualifies(self) -> None:
        table = _link_table()
        table["columns"].append({"name": "joined_on", "type": "date"})
        assert not SchemaAnalyzer.is_junction(TableInfo.model_validate(table))

    def test_pk_must_cover_both_fks(self) -> None:
        table = _link_table(primary_key_columns=["user_id"])
        assert not SchemaAnalyzer.is_junction(TableInfo.model_validate(table))

    def test_single_fk_is_not_junction(self, example_schema: SchemaDefinition) -> None:
        review = example_schema.get_table("review")
        assert review is not None
        # review has two FKs but also payload columns
        assert not SchemaAnalyzer.is_junction(review)
        employee = example_schema.get_table("employee")
        assert employee is not None
        assert not SchemaAnalyzer.is_junction(employee)

    def test_hint_overrides_detection(self) -> None:
        forced_off = TableInfo.model_validate(_link_table(junction=False))
        assert not SchemaAnalyzer.is_junction(forced_off)

        forced_on = TableInfo.model_validate({
            "name": "membership",
            "columns": [
                {"name": "id", "type": "integer", "primary_key": True},
                {"name": "note", "type": "text"},
            ],
            "junction": True,
        })
        assert SchemaAnalyzer.is_junction(forced_on)


# ===========================================================================
# Inheritance detection
# ===========================================================================


class TestInheritance:
    def test_parent_relationships(self, example_schema: SchemaDefinition) -> None:
        analyzer = SchemaAnalyzer(example_schema)
        employee_parent = analyzer.get_parent_relationship("employee")
        assert employee_parent is not None
        assert employee_parent.foreign_table == "user"

        manager_parent = analyzer.get_parent_relationship("manager")
        assert manager_parent is not None
        assert manager_parent.foreign_table == "employee"

        for table in ("user", "review", "country", "group", "user_group"):
            assert analyzer.get_parent_relationship(table) is None

    def test_children(self, example_schema: SchemaDefinition) -> None:
        analyzer = SchemaAnalyzer(example_schema)
        assert [fk.local_table for fk in analyzer.get_children_relationships("user")] == [
            "employee"
        ]
        assert [fk.local_table for fk in analyzer.get_children_relationships("employee")] == [
            "manager"
        ]
        assert analyzer.get_children_relationships("manager") == []

    def test_fk_to_non_pk_is_not_inheritance(
        self, make_schema: Callable[[List[Dict[str, Any]]], SchemaDefinition]
    ) -> None:
        schema = make_schema([
            {
                "name": "user",
                "columns": [
                    {"name": "id", "type": "integer", "primary_key": True},
                    {"name": "login", "type": "string"},
                ],
            },
            {
                "name": "profile",
                "columns": [
                    {"name": "login", "type": "string", "primary_key": True,
                     "foreign_key": "user.login"},
                ],
            },
        ])
        assert SchemaAnalyzer(schema).get_parent_relationship("profile") is None

    def test_ambiguous_parent_raises(
        self, make_schema: Callable[[List[Dict[str, Any]]], SchemaDefinition]
    ) -> None:
        schema = make_schema([
            {"name": "a", "columns": [{"name": "id", "type": "integer", "primary_key": True}]},
            {"name": "b", "columns": [{"name": "id", "type": "integer", "primary_key": True}]},
            {
                "name": "c",
                "columns": [{"name": "id", "type": "integer", "primary_key": True}],
                "foreign_keys": [
                    {"columns": ["id"], "referred_table": "a", "referred_columns": ["id"]},
                    {"columns": ["id"], "referred_table": "b", "referred_columns": ["id"]},
                ],
                "junction": False,
            },
        ])
        with pytest.raises(SchemaConfigurationError, match="ambiguous"):
            SchemaAnalyzer(schema).get_parent_relationship("c")

    def test_unknown_table_raises(self, example_schema: SchemaDefinition) -> None:
        with pytest.raises(SchemaConfigurationError):
            SchemaAnalyzer(example_schema).get_parent_relationship("ghost")

    def test_satisfies_classifier_protocol(self, example_schema: SchemaDefinition) -> None:
        assert isinstance(SchemaAnalyzer(example_schema), RelationshipClassifier)


# ===========================================================================
# SchemaGraph
# ===========================================================================


class TestSchemaGraph:
    def test_table_lookup(self, example_graph: SchemaGraph) -> None:
        assert example_graph.table("user").name == "user"
        assert example_graph.has_table("group")
        assert not example_graph.has_table("ghost")
        with pytest.raises(SchemaConfigurationError, match="not defined"):
            example_graph.table("ghost")

    def test_junction_queries(self, example_graph: SchemaGraph) -> None:
        assert [t.name for t in example_graph.junction_tables()] == ["user_group"]
        assert example_graph.is_junction_table("user_group")
        assert not example_graph.is_junction_table("user")

    def test_inheritance_relationships(self, example_graph: SchemaGraph) -> None:
        links = example_graph.inheritance_relationships()
        assert [(fk.local_table, fk.foreign_table) for fk in links] == [
            ("employee", "user"),
            ("manager", "employee"),
        ]

    def test_incoming_foreign_keys_skip_junctions_and_children(
        self, example_graph: SchemaGraph
    ) -> None:
        incoming = example_graph.incoming_foreign_keys("user")
        assert [(fk.local_table, fk.local_columns) for fk in incoming] == [
            ("review", ["author_id"]),
            ("review", ["reviewer_id"]),
        ]

    def test_incoming_foreign_keys_plain(self, example_graph: SchemaGraph) -> None:
        incoming = example_graph.incoming_foreign_keys("country")
        assert [(fk.local_table, fk.local_columns) for fk in incoming] == [
            ("user", ["country_id"])
        ]
        assert example_graph.incoming_foreign_keys("manager") == []

    def test_foreign_key_for_column(self, example_graph: SchemaGraph) -> None:
        fk = example_graph.foreign_key_for_column("review", "author_id")
        assert fk is not None and fk.foreign_table == "user"
        assert example_graph.foreign_key_for_column("review", "rating") is None

    def test_first_overlapping_fk_wins(
        self, make_graph: Callable[[List[Dict[str, Any]]], SchemaGraph]
    ) -> None:
        graph = make_graph([
            {"name": "a", "columns": [{"name": "id", "type": "integer", "primary_key": True}]},
            {"name": "b", "columns": [{"name": "id", "type": "integer", "primary_key": True}]},
            {
                "name": "c",
                "columns": [
                    {"name": "id", "type": "integer", "primary_key": True},
                    {"name": "ref", "type": "integer"},
                ],
                "foreign_keys": [
                    {"columns": ["ref"], "referred_table": "a", "referred_columns": ["id"]},
                    {"columns": ["ref"], "referred_table": "b", "referred_columns": ["id"]},
                ],
            },
        ])
        first = graph.foreign_key_for_column("c", "ref")
        assert first is not None and first.foreign_table == "a"
        assert [fk.foreign_table for fk in graph.foreign_keys_for_column("c", "ref")] == [
            "a", "b",
        ]

    def test_custom_classifier(self, example_schema: SchemaDefinition) -> None:
        class NoInheritance:
            def detect_junction_tables(self) -> List[TableInfo]:
                return []

            def get_parent_relationship(self, table_name: str) -> None:
                return None

            def get_children_relationships(self, table_name: str) -> list:
                return []

        graph = SchemaGraph(example_schema, NoInheritance())
        assert graph.parent_relationship("employee") is None
        assert graph.junction_tables() == []
        assert len(graph.incoming_foreign_keys("user")) == 4
