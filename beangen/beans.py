# File: beangen/beans.py
"""
beangen - Bean Descriptor
==========================
:class:`BeanDescriptor` is the per-table analysis result handed to the code
templates.  Building one:

1. walks the inheritance chain up to the root table (cycle-safe), merging
   inherited properties with the table's own;
2. resolves member-name collisions among the table's own properties;
3. derives one-to-many accessors from the foreign keys pointing at the table;
4. derives many-to-many accessors from the junction tables touching it.

Everything happens in the constructor, so a descriptor that exists is valid.
The structured result can be frozen into a :class:`BeanModel` for JSON output.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Set, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from beangen.exceptions import NamingConflictError, SchemaConfigurationError, UnsupportedShapeError
from beangen.models import ColumnInfo, ForeignKeyInfo, TableInfo
from beangen.naming import NamingStrategy, resolve_property_names
from beangen.properties import RelationPropertyDescriptor, ScalarPropertyDescriptor
from beangen.schema_graph import SchemaGraph
from beangen.utils import to_pascal_case

logger: logging.Logger = logging.getLogger("beangen.beans")

AnyProperty = Union[ScalarPropertyDescriptor, RelationPropertyDescriptor]

_FROZEN_CONFIG: ConfigDict = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Relationship accessor specs
# ---------------------------------------------------------------------------


class FilterBinding(BaseModel):
    """One ``<referencing column> = :<parameter>`` condition of a direct accessor."""

    model_config = _FROZEN_CONFIG

    column: str = Field(..., description="Qualified referencing column, 'review.author_id'.")
    parameter: str = Field(..., description="Bound parameter name, 'param0'.")
    source_table: str = Field(..., description="Table holding the bound value.")
    source_column: str = Field(..., description="Column holding the bound value.")

    @property
    def condition(self) -> str:
        return f"{self.column} = :{self.parameter}"


class DirectRelationshipSpec(BaseModel):
    """One-to-many accessor: the rows of another table referencing this bean."""

    model_config = _FROZEN_CONFIG

    method_name: str
    accessor_name: str
    referencing_table: str
    referencing_class: str
    foreign_key: ForeignKeyInfo
    filters: List[FilterBinding]

    @property
    def filter_expression(self) -> str:
        return " AND ".join(f.condition for f in self.filters)


class PivotRelationshipSpec(BaseModel):
    """Many-to-many accessors through one junction table."""

    model_config = _FROZEN_CONFIG

    junction_table: str
    local_foreign_key: ForeignKeyInfo
    remote_foreign_key: ForeignKeyInfo
    remote_table: str
    remote_class: str
    name: str
    plural_name: str
    singular_name: str
    getter_name: str
    adder_name: str
    remover_name: str
    checker_name: str
    variable_name: str

    def method_names(self) -> List[str]:
        return [self.getter_name, self.adder_name, self.remover_name, self.checker_name]


# ---------------------------------------------------------------------------
# Serialisable snapshot
# ---------------------------------------------------------------------------


class PropertyModel(BaseModel):
    """Flattened, JSON-friendly view of one property."""

    model_config = _FROZEN_CONFIG

    key: str
    name: str
    kind: str
    owning_table: str
    columns: List[str]
    value_type: str
    compulsory: bool
    primary_key: bool
    has_default: bool
    default_value: Optional[str] = None
    clone_rule: str = "copy"
    alternative_name: bool
    target_table: Optional[str] = None
    getter_name: str
    setter_name: str


class BeanModel(BaseModel):
    """Deterministic snapshot of a :class:`BeanDescriptor`."""

    model_config = _FROZEN_CONFIG

    table_name: str
    class_name: str
    base_class_name: str
    module_name: str
    parent_table: Optional[str] = None
    parent_class: Optional[str] = None
    properties: List[PropertyModel]
    constructor: List[str]
    parent_constructor: List[str]
    direct_relationships: List[DirectRelationshipSpec]
    pivot_relationships: List[PivotRelationshipSpec]


# ---------------------------------------------------------------------------
# BeanDescriptor
# ---------------------------------------------------------------------------


class BeanDescriptor:
    """
    Analysis of one table into the members of its bean class.

    Args:
        table_name: Table to describe.
        graph: Shared, read-only schema graph.
        naming: Identifier strategy; camelCase with the English inflector
            when omitted.

    Raises:
        SchemaConfigurationError: unknown table, inheritance cycle.
        NamingConflictError: two members end up with the same name.
        UnsupportedShapeError: a junction table touching this table does not
            have exactly one foreign key pointing back to it.
    """

    def __init__(
        self,
        table_name: str,
        graph: SchemaGraph,
        naming: Optional[NamingStrategy] = None,
    ) -> None:
        self._graph: SchemaGraph = graph
        self._naming: NamingStrategy = naming or NamingStrategy()
        self._table: TableInfo = graph.table(table_name)
        self._parent_fk: Optional[ForeignKeyInfo] = graph.parent_relationship(table_name)

        self._chain_maps: Dict[str, "OrderedDict[str, AnyProperty]"] = {}
        self._properties: "OrderedDict[str, AnyProperty]" = self._collect_properties(
            table_name, []
        )
        self._direct: List[DirectRelationshipSpec] = self._build_direct_relationships()
        self._pivots: List[PivotRelationshipSpec] = self._build_pivot_relationships()
        self._method_names: List[str] = self._check_method_names()

        logger.debug(
            "Described bean %s: %d properties, %d direct, %d pivot accessors.",
            self.class_name,
            len(self._properties),
            len(self._direct),
            len(self._pivots),
        )

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    @property
    def table_name(self) -> str:
        return self._table.name

    @property
    def table(self) -> TableInfo:
        return self._table

    @property
    def graph(self) -> SchemaGraph:
        return self._graph

    @property
    def naming(self) -> NamingStrategy:
        return self._naming

    @property
    def parent_table_name(self) -> Optional[str]:
        return self._parent_fk.foreign_table if self._parent_fk else None

    @property
    def class_name(self) -> str:
        return self._naming.bean_class_name(self._table.name)

    @property
    def base_class_name(self) -> str:
        return self._naming.base_bean_class_name(self._table.name)

    @property
    def parent_class_name(self) -> Optional[str]:
        parent: Optional[str] = self.parent_table_name
        return self._naming.bean_class_name(parent) if parent else None

    @property
    def module_name(self) -> str:
        return self._naming.module_name(self._table.name)

    @property
    def base_module_name(self) -> str:
        return self._naming.base_module_name(self._table.name)

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    def _collect_properties(
        self, table_name: str, chain: List[str]
    ) -> "OrderedDict[str, AnyProperty]":
        if table_name in chain:
            cycle: str = " -> ".join(chain[chain.index(table_name):] + [table_name])
            raise SchemaConfigurationError(
                f"Inheritance cycle detected: {cycle}",
                {"table": self._table.name, "cycle": chain + [table_name]},
            )
        chain = chain + [table_name]

        parent_fk: Optional[ForeignKeyInfo] = self._graph.parent_relationship(table_name)
        local: "OrderedDict[str, AnyProperty]" = self._local_properties(table_name)

        if parent_fk is None:
            merged: "OrderedDict[str, AnyProperty]" = local
        else:
            merged = OrderedDict(self._collect_properties(parent_fk.foreign_table, chain))
            for key, prop in local.items():
                # Inherited primary keys always win
                if prop.is_primary_key():
                    continue
                merged[key] = prop

        self._chain_maps[table_name] = merged
        return merged

    def _local_properties(self, table_name: str) -> "OrderedDict[str, AnyProperty]":
        """Properties of *table_name* alone, names resolved, in column order."""
        table: TableInfo = self._graph.table(table_name)
        parent_fk: Optional[ForeignKeyInfo] = self._graph.parent_relationship(table_name)
        ignored: Set[str] = set(parent_fk.local_columns) if parent_fk else set()
        pk: List[str] = table.resolved_primary_keys

        descriptors: List[AnyProperty] = []
        seen_fks: Set[Tuple[str, Tuple[str, ...], str, Tuple[str, ...]]] = set()

        for column in table.columns:
            if column.name in ignored:
                continue
            fk: Optional[ForeignKeyInfo] = self._graph.foreign_key_for_column(
                table_name, column.name
            )
            if fk is None:
                descriptors.append(
                    ScalarPropertyDescriptor(
                        table_name=table_name, primary_key_columns=pk, column=column
                    )
                )
                continue
            if fk.key in seen_fks:
                continue
            if parent_fk is not None and fk.key == parent_fk.key:
                continue
            seen_fks.add(fk.key)
            local_infos: List[ColumnInfo] = [
                info for info in (table.get_column(c) for c in fk.local_columns)
                if info is not None
            ]
            descriptors.append(
                RelationPropertyDescriptor(
                    table_name=table_name,
                    primary_key_columns=pk,
                    foreign_key=fk,
                    local_column_infos=local_infos,
                )
            )

        return resolve_property_names(table_name, descriptors, self._naming)

    def properties(self) -> "OrderedDict[str, AnyProperty]":
        """Every property of the bean, inherited ones first."""
        return OrderedDict(self._properties)

    def exposed_properties(self) -> "OrderedDict[str, AnyProperty]":
        """Properties whose getters and setters live in this bean's class."""
        return OrderedDict(
            (k, p) for k, p in self._properties.items() if p.owning_table() == self.table_name
        )

    def _compulsory_keys(self, table_name: str) -> List[str]:
        return [k for k, p in self._chain_maps[table_name].items() if p.is_compulsory()]

    def constructor_properties(self) -> "OrderedDict[str, AnyProperty]":
        """Compulsory properties of the merged map, in declaration order."""
        return OrderedDict(
            (k, self._properties[k]) for k in self._compulsory_keys(self.table_name)
        )

    def parent_constructor_properties(self) -> "OrderedDict[str, AnyProperty]":
        """Constructor arguments forwarded to the parent bean's constructor."""
        return OrderedDict(
            (k, p) for k, p in self.constructor_properties().items()
            if p.owning_table() != self.table_name
        )

    def local_constructor_properties(self) -> "OrderedDict[str, AnyProperty]":
        """Constructor arguments assigned through this bean's own setters."""
        return OrderedDict(
            (k, p) for k, p in self.constructor_properties().items()
            if p.owning_table() == self.table_name
        )

    def parent_call_arguments(self) -> "OrderedDict[str, bool]":
        """
        Keyword arguments of the parent constructor, mapped to whether this
        bean forwards its own argument.

        A key the parent requires but this bean overrides with an optional
        property maps to ``False``; the generated code passes ``None`` for it
        and the overriding setter takes over.
        """
        if self._parent_fk is None:
            return OrderedDict()
        forwarded: "OrderedDict[str, AnyProperty]" = self.parent_constructor_properties()
        return OrderedDict(
            (k, k in forwarded)
            for k in self._compulsory_keys(self._parent_fk.foreign_table)
        )

    def default_properties(self) -> "OrderedDict[str, AnyProperty]":
        """Exposed properties whose column default is assigned by the constructor."""
        return OrderedDict(
            (k, p) for k, p in self.exposed_properties().items()
            if p.default_assignment() is not None
        )

    def clone_reset_properties(self) -> "OrderedDict[str, AnyProperty]":
        """Exposed properties cleared on the copy returned by ``clone()``."""
        return OrderedDict(
            (k, p) for k, p in self.exposed_properties().items()
            if p.clone_rule() == "reset"
        )

    # ------------------------------------------------------------------ #
    # One-to-many
    # ------------------------------------------------------------------ #

    def incoming_foreign_keys(self) -> List[ForeignKeyInfo]:
        inheritance: Set[Tuple[str, Tuple[str, ...]]] = {
            fk.local_key for fk in self._graph.inheritance_relationships()
        }
        return [
            fk for fk in self._graph.incoming_foreign_keys(self.table_name)
            if fk.local_key not in inheritance
        ]

    def _build_direct_relationships(self) -> List[DirectRelationshipSpec]:
        by_table: "OrderedDict[str, List[ForeignKeyInfo]]" = OrderedDict()
        for fk in self.incoming_foreign_keys():
            by_table.setdefault(fk.local_table, []).append(fk)

        specs: List[DirectRelationshipSpec] = []
        for referencing_table, fks in by_table.items():
            for fk in fks:
                accessor: str = to_pascal_case(referencing_table)
                if len(fks) > 1:
                    accessor += "By" + "And".join(to_pascal_case(c) for c in fk.local_columns)
                filters: List[FilterBinding] = [
                    FilterBinding(
                        column=f"{fk.local_table}.{local_col}",
                        parameter=f"param{i}",
                        source_table=self.table_name,
                        source_column=foreign_col,
                    )
                    for i, (local_col, foreign_col) in enumerate(
                        zip(fk.local_columns, fk.foreign_columns)
                    )
                ]
                specs.append(
                    DirectRelationshipSpec(
                        method_name=self._naming.getter_name(accessor),
                        accessor_name=accessor,
                        referencing_table=referencing_table,
                        referencing_class=self._naming.bean_class_name(referencing_table),
                        foreign_key=fk,
                        filters=filters,
                    )
                )
        return specs

    def direct_relationships(self) -> List[DirectRelationshipSpec]:
        return list(self._direct)

    # ------------------------------------------------------------------ #
    # Many-to-many
    # ------------------------------------------------------------------ #

    def _build_pivot_relationships(self) -> List[PivotRelationshipSpec]:
        groups: "OrderedDict[str, List[Tuple[TableInfo, ForeignKeyInfo, ForeignKeyInfo]]]" = (
            OrderedDict()
        )
        for junction in self._graph.junction_tables():
            fks: List[ForeignKeyInfo] = list(junction.foreign_keys)
            pointing: List[ForeignKeyInfo] = [
                fk for fk in fks if fk.foreign_table == self.table_name
            ]
            if not pointing:
                continue
            if len(fks) != 2:
                raise UnsupportedShapeError(
                    junction.name, f"expected exactly 2 foreign keys, found {len(fks)}"
                )
            if len(pointing) == 2:
                raise UnsupportedShapeError(
                    junction.name,
                    f"both foreign keys reference '{self.table_name}', "
                    f"the local side is ambiguous",
                )
            local_fk: ForeignKeyInfo = pointing[0]
            remote_fk: ForeignKeyInfo = fks[1] if fks[0] is local_fk else fks[0]
            groups.setdefault(remote_fk.foreign_table, []).append(
                (junction, local_fk, remote_fk)
            )

        specs: List[PivotRelationshipSpec] = []
        for remote_table, entries in groups.items():
            remote: str = to_pascal_case(remote_table)
            for junction, local_fk, remote_fk in entries:
                suffix: str = "By" + to_pascal_case(junction.name) if len(entries) > 1 else ""
                plural: str = self._naming.pluralize(remote) + suffix
                singular: str = self._naming.singularize(remote) + suffix
                remote_class: str = self._naming.bean_class_name(remote_table)
                specs.append(
                    PivotRelationshipSpec(
                        junction_table=junction.name,
                        local_foreign_key=local_fk,
                        remote_foreign_key=remote_fk,
                        remote_table=remote_table,
                        remote_class=remote_class,
                        name=remote + suffix,
                        plural_name=plural,
                        singular_name=singular,
                        getter_name=self._naming.method_name("get", plural),
                        adder_name=self._naming.method_name("add", singular),
                        remover_name=self._naming.method_name("remove", singular),
                        checker_name=self._naming.method_name("has", singular),
                        variable_name=self._naming.variable_name(remote_class),
                    )
                )
        return specs

    def pivot_relationships(self) -> List[PivotRelationshipSpec]:
        return list(self._pivots)

    # ------------------------------------------------------------------ #
    # Generated members
    # ------------------------------------------------------------------ #

    def getter_name(self, prop: AnyProperty) -> str:
        return self._naming.getter_name(prop.upper_camel_name())

    def setter_name(self, prop: AnyProperty) -> str:
        return self._naming.setter_name(prop.upper_camel_name())

    def _check_method_names(self) -> List[str]:
        names: List[str] = []
        for prop in self.exposed_properties().values():
            names.append(self.getter_name(prop))
            names.append(self.setter_name(prop))
        names.extend(spec.method_name for spec in self._direct)
        for pivot in self._pivots:
            names.extend(pivot.method_names())

        seen: Set[str] = set()
        duplicates: List[str] = []
        for name in names:
            if name in seen:
                duplicates.append(name)
            seen.add(name)
        if duplicates:
            raise NamingConflictError(
                self.table_name, duplicates, detail="duplicate generated methods"
            )
        return names

    def method_names(self) -> List[str]:
        """Every method generated on the base bean, in emission order."""
        return list(self._method_names)

    # ------------------------------------------------------------------ #
    # Snapshot
    # ------------------------------------------------------------------ #

    def to_model(self) -> BeanModel:
        properties: List[PropertyModel] = [
            PropertyModel(
                key=key,
                name=prop.upper_camel_name(),
                kind=prop.kind,
                owning_table=prop.owning_table(),
                columns=prop.column_names(),
                value_type=prop.value_type(),
                compulsory=prop.is_compulsory(),
                primary_key=prop.is_primary_key(),
                has_default=prop.has_default(),
                default_value=prop.default_assignment(),
                clone_rule=prop.clone_rule(),
                alternative_name=prop.alternative_name,
                target_table=(
                    prop.target_table
                    if isinstance(prop, RelationPropertyDescriptor)
                    else None
                ),
                getter_name=self.getter_name(prop),
                setter_name=self.setter_name(prop),
            )
            for key, prop in self._properties.items()
        ]
        return BeanModel(
            table_name=self.table_name,
            class_name=self.class_name,
            base_class_name=self.base_class_name,
            module_name=self.module_name,
            parent_table=self.parent_table_name,
            parent_class=self.parent_class_name,
            properties=properties,
            constructor=list(self.constructor_properties().keys()),
            parent_constructor=list(self.parent_constructor_properties().keys()),
            direct_relationships=self._direct,
            pivot_relationships=self._pivots,
        )

    def __repr__(self) -> str:
        return f"<BeanDescriptor {self.table_name} ({len(self._properties)} properties)>"


__all__: List[str] = [
    "FilterBinding",
    "DirectRelationshipSpec",
    "PivotRelationshipSpec",
    "PropertyModel",
    "BeanModel",
    "BeanDescriptor",
]
