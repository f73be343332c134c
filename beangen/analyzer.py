# File: beangen/analyzer.py
"""
beangen - Relationship Classifier
==================================
Decides which tables are junction (pivot) tables and which foreign keys are
inheritance links between a child table and its parent table.

Any object implementing :class:`RelationshipClassifier` can be handed to
:class:`beangen.schema_graph.SchemaGraph`; :class:`SchemaAnalyzer` is the
default implementation working purely from the schema snapshot.

Rules applied by :class:`SchemaAnalyzer`:

* **Junction table**: ``junction: true`` on the table, or (with no hint)
  exactly two foreign keys over disjoint columns, every column of the table
  belonging to one of them and the primary key being exactly those columns.
  A single auto-increment surrogate key column is tolerated on top.
* **Parent relationship**: the foreign key whose local columns are the
  table's whole primary key and whose referenced columns are the whole
  primary key of the referenced table.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol, Set, runtime_checkable

from beangen.exceptions import SchemaConfigurationError
from beangen.models import ForeignKeyInfo, SchemaDefinition, TableInfo

logger: logging.Logger = logging.getLogger("beangen.analyzer")


@runtime_checkable
class RelationshipClassifier(Protocol):
    """Capability consumed by the schema graph."""

    def detect_junction_tables(self) -> List[TableInfo]:
        ...

    def get_parent_relationship(self, table_name: str) -> Optional[ForeignKeyInfo]:
        ...

    def get_children_relationships(self, table_name: str) -> List[ForeignKeyInfo]:
        ...


class SchemaAnalyzer:
    """
    Default :class:`RelationshipClassifier` over a :class:`SchemaDefinition`.

    Every answer is computed once and cached on the instance; the snapshot is
    frozen so the cache never goes stale.
    """

    def __init__(self, schema: SchemaDefinition) -> None:
        self._schema: SchemaDefinition = schema
        self._junctions: Optional[List[TableInfo]] = None
        self._parents: Dict[str, Optional[ForeignKeyInfo]] = {}
        self._children: Optional[Dict[str, List[ForeignKeyInfo]]] = None

    # ------------------------------------------------------------------ #
    # Junction tables
    # ------------------------------------------------------------------ #

    def detect_junction_tables(self) -> List[TableInfo]:
        if self._junctions is None:
            self._junctions = [t for t in self._schema.tables if self.is_junction(t)]
            logger.debug(
                "Detected %d junction table(s): %s",
                len(self._junctions),
                [t.name for t in self._junctions],
            )
        return list(self._junctions)

    @staticmethod
    def is_junction(table: TableInfo) -> bool:
        if table.junction is not None:
            return table.junction
        if len(table.foreign_keys) != 2:
            return False

        first: Set[str] = set(table.foreign_keys[0].local_columns)
        second: Set[str] = set(table.foreign_keys[1].local_columns)
        if first & second:
            return False

        fk_columns: Set[str] = first | second
        extra: List[str] = [c for c in table.column_names if c not in fk_columns]
        pk: Set[str] = set(table.resolved_primary_keys)

        if not extra:
            return pk == fk_columns

        # Tolerate a lone surrogate key: ``id SERIAL PRIMARY KEY``
        if len(extra) == 1:
            surrogate = table.get_column(extra[0])
            return (
                surrogate is not None
                and surrogate.autoincrement
                and pk == {surrogate.name}
            )
        return False

    # ------------------------------------------------------------------ #
    # Inheritance
    # ------------------------------------------------------------------ #

    def get_parent_relationship(self, table_name: str) -> Optional[ForeignKeyInfo]:
        if table_name in self._parents:
            return self._parents[table_name]

        table: Optional[TableInfo] = self._schema.get_table(table_name)
        if table is None:
            raise SchemaConfigurationError(
                f"Unknown table '{table_name}'.", {"table": table_name}
            )

        parent: Optional[ForeignKeyInfo] = None
        if not self.is_junction(table):
            candidates: List[ForeignKeyInfo] = [
                fk for fk in table.foreign_keys if self._is_inheritance_link(table, fk)
            ]
            if len(candidates) > 1:
                raise SchemaConfigurationError(
                    f"Table '{table_name}' has {len(candidates)} foreign keys "
                    f"covering its whole primary key; inheritance is ambiguous: "
                    f"{[fk.foreign_table for fk in candidates]}",
                    {
                        "table": table_name,
                        "candidates": [fk.constraint_name for fk in candidates],
                    },
                )
            parent = candidates[0] if candidates else None

        self._parents[table_name] = parent
        return parent

    def _is_inheritance_link(self, table: TableInfo, fk: ForeignKeyInfo) -> bool:
        pk: Set[str] = set(table.resolved_primary_keys)
        if not pk or set(fk.local_columns) != pk:
            return False
        target: Optional[TableInfo] = self._schema.get_table(fk.foreign_table)
        if target is None:
            return False
        return set(fk.foreign_columns) == set(target.resolved_primary_keys)

    def get_children_relationships(self, table_name: str) -> List[ForeignKeyInfo]:
        if self._children is None:
            children: Dict[str, List[ForeignKeyInfo]] = {}
            for table in self._schema.tables:
                parent: Optional[ForeignKeyInfo] = self.get_parent_relationship(table.name)
                if parent is not None:
                    children.setdefault(parent.foreign_table, []).append(parent)
            self._children = children
        return list(self._children.get(table_name, []))

    def __repr__(self) -> str:
        return f"<SchemaAnalyzer {len(self._schema.tables)} tables>"


__all__: List[str] = ["RelationshipClassifier", "SchemaAnalyzer"]
