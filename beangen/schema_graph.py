# File: beangen/schema_graph.py
"""
beangen - Schema Graph
=======================
Read-only query surface over the schema snapshot, shared by every bean
descriptor of a generation run.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set, Tuple

from beangen.analyzer import RelationshipClassifier, SchemaAnalyzer
from beangen.exceptions import SchemaConfigurationError
from beangen.models import ForeignKeyInfo, SchemaDefinition, TableInfo

logger: logging.Logger = logging.getLogger("beangen.schema_graph")


class SchemaGraph:
    """
    Answers structural questions about a fully loaded schema.

    Args:
        schema: The validated snapshot.
        classifier: Junction / inheritance oracle; defaults to a
            :class:`SchemaAnalyzer` over *schema*.
    """

    def __init__(
        self,
        schema: SchemaDefinition,
        classifier: Optional[RelationshipClassifier] = None,
    ) -> None:
        self._schema: SchemaDefinition = schema
        self._classifier: RelationshipClassifier = classifier or SchemaAnalyzer(schema)
        self._incoming: Optional[Dict[str, List[ForeignKeyInfo]]] = None
        self._junction_names: Optional[Set[str]] = None

    @property
    def schema(self) -> SchemaDefinition:
        return self._schema

    @property
    def classifier(self) -> RelationshipClassifier:
        return self._classifier

    # ------------------------------------------------------------------ #
    # Tables
    # ------------------------------------------------------------------ #

    def table(self, name: str) -> TableInfo:
        """Return the table called *name* or raise ``SchemaConfigurationError``."""
        table: Optional[TableInfo] = self._schema.get_table(name)
        if table is None:
            raise SchemaConfigurationError(
                f"Table '{name}' is not defined in the schema.",
                {"table": name, "available": self._schema.table_names},
            )
        return table

    def tables(self) -> List[TableInfo]:
        return list(self._schema.tables)

    def has_table(self, name: str) -> bool:
        return self._schema.get_table(name) is not None

    # ------------------------------------------------------------------ #
    # Inheritance
    # ------------------------------------------------------------------ #

    def parent_relationship(self, table_name: str) -> Optional[ForeignKeyInfo]:
        self.table(table_name)
        return self._classifier.get_parent_relationship(table_name)

    def child_relationships(self, table_name: str) -> List[ForeignKeyInfo]:
        self.table(table_name)
        return list(self._classifier.get_children_relationships(table_name))

    def inheritance_relationships(self) -> List[ForeignKeyInfo]:
        """Every parent link of the schema, in table declaration order."""
        links: List[ForeignKeyInfo] = []
        for table in self._schema.tables:
            parent: Optional[ForeignKeyInfo] = self._classifier.get_parent_relationship(
                table.name
            )
            if parent is not None:
                links.append(parent)
        return links

    # ------------------------------------------------------------------ #
    # Junction tables
    # ------------------------------------------------------------------ #

    def junction_tables(self) -> List[TableInfo]:
        return list(self._classifier.detect_junction_tables())

    def is_junction_table(self, table_name: str) -> bool:
        if self._junction_names is None:
            self._junction_names = {t.name for t in self.junction_tables()}
        return table_name in self._junction_names

    # ------------------------------------------------------------------ #
    # Foreign keys
    # ------------------------------------------------------------------ #

    def incoming_foreign_keys(self, table_name: str) -> List[ForeignKeyInfo]:
        """
        Foreign keys pointing at *table_name* that denote one-to-many links.

        FKs owned by junction tables and the inheritance links of the table's
        own children are left out.
        """
        self.table(table_name)
        if self._incoming is None:
            incoming: Dict[str, List[ForeignKeyInfo]] = {}
            for table in self._schema.tables:
                if self.is_junction_table(table.name):
                    continue
                for fk in table.foreign_keys:
                    incoming.setdefault(fk.foreign_table, []).append(fk)
            self._incoming = incoming

        children: Set[Tuple[str, Tuple[str, ...]]] = {
            fk.local_key for fk in self.child_relationships(table_name)
        }
        return [
            fk for fk in self._incoming.get(table_name, [])
            if fk.local_key not in children
        ]

    def foreign_key_for_column(
        self, table_name: str, column_name: str
    ) -> Optional[ForeignKeyInfo]:
        """First FK of *table_name* (declaration order) containing the column."""
        for fk in self.table(table_name).foreign_keys:
            if column_name in fk.local_columns:
                return fk
        return None

    def foreign_keys_for_column(
        self, table_name: str, column_name: str
    ) -> List[ForeignKeyInfo]:
        return [
            fk for fk in self.table(table_name).foreign_keys
            if column_name in fk.local_columns
        ]

    def __repr__(self) -> str:
        return f"<SchemaGraph {len(self._schema.tables)} tables>"


__all__: List[str] = ["SchemaGraph"]
