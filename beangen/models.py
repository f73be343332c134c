# File: beangen/models.py
"""
beangen - Schema Snapshot & Configuration Models
=================================================
Pydantic V2 models describing the database schema fed to the bean
generator, plus the generation configuration.

Schema models are **frozen**: a ``SchemaDefinition`` is an immutable snapshot
loaded once per run, shared read-only by every bean descriptor.  Tables,
columns and foreign keys are addressed by name, so descriptors built from the
snapshot only carry names and frozen values, never live object graphs.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    computed_field,
    field_validator,
    model_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("beangen.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ColumnType(str, Enum):
    """Supported scalar column types."""

    # Numeric
    INTEGER = "integer"
    BIGINTEGER = "biginteger"
    SMALLINTEGER = "smallinteger"
    FLOAT = "float"
    NUMERIC = "numeric"
    DOUBLE = "double"
    BOOLEAN = "boolean"

    # String / Binary
    STRING = "string"
    TEXT = "text"
    VARCHAR = "varchar"
    CHAR = "char"
    BINARY = "binary"
    LARGEBINARY = "largebinary"

    # Date / Time
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    TIMESTAMP = "timestamp"
    INTERVAL = "interval"

    # Special
    UUID = "uuid"
    JSON = "json"
    JSONB = "jsonb"
    ARRAY = "array"
    ENUM = "enum"


class NamingConvention(str, Enum):
    """Member naming style of the generated beans."""

    CAMEL_CASE = "camelCase"
    SNAKE_CASE = "snake_case"


# Python type names used in generated annotations
PYTHON_TYPE_MAP: Dict[str, str] = {
    "integer": "int",
    "biginteger": "int",
    "smallinteger": "int",
    "float": "float",
    "numeric": "Decimal",
    "double": "float",
    "boolean": "bool",
    "string": "str",
    "text": "str",
    "varchar": "str",
    "char": "str",
    "binary": "bytes",
    "largebinary": "bytes",
    "date": "date",
    "datetime": "datetime",
    "time": "time",
    "timestamp": "datetime",
    "interval": "timedelta",
    "uuid": "UUID",
    "json": "Any",
    "jsonb": "Any",
    "array": "List[Any]",
    "enum": "str",
}

# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SNAPSHOT_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)

_SETTINGS_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Columns & foreign keys
# ---------------------------------------------------------------------------


class ColumnInfo(BaseModel):
    """A single table column."""

    model_config = _SNAPSHOT_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    column_type: ColumnType = Field(
        default=ColumnType.STRING, alias="type", description="Scalar type."
    )
    nullable: bool = Field(default=True, description="Whether NULL is allowed.")
    default: Optional[Any] = Field(
        default=None, description="Default value or SQL expression."
    )
    autoincrement: bool = Field(
        default=False, description="Value generated by the database."
    )
    primary_key: bool = Field(default=False, description="Part of the primary key?")
    foreign_key: Optional[str] = Field(
        default=None,
        description="Shorthand single-column FK target, e.g. 'user.id'.",
    )
    comment: Optional[str] = Field(default=None, description="Column comment.")

    @field_validator("foreign_key")
    @classmethod
    def _check_foreign_key_shorthand(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and (v.count(".") != 1 or v.startswith(".") or v.endswith(".")):
            raise ValueError(
                f"Invalid foreign_key shorthand '{v}', expected 'table.column'."
            )
        return v

    @property
    def has_default(self) -> bool:
        return self.default is not None

    @computed_field  # type: ignore[misc]
    @property
    def python_type(self) -> str:
        """Python type name of the column value, without Optional."""
        return PYTHON_TYPE_MAP.get(self.column_type, "Any")

    def __repr__(self) -> str:
        return f"<Column {self.name} {self.column_type}{'' if self.nullable else ' NOT NULL'}>"


class ForeignKeyInfo(BaseModel):
    """
    A (possibly composite) foreign-key constraint.

    A multi-column FK is ONE relationship: ``local_columns[i]`` references
    ``foreign_columns[i]``.
    """

    model_config = _SNAPSHOT_CONFIG

    name: Optional[str] = Field(default=None, description="Constraint name.")
    local_table: str = Field(
        default="", description="Owning table (filled in by TableInfo)."
    )
    local_columns: List[str] = Field(
        ..., min_length=1, alias="columns", description="Ordered local columns."
    )
    foreign_table: str = Field(
        ..., min_length=1, alias="referred_table", description="Referenced table."
    )
    foreign_columns: List[str] = Field(
        ...,
        min_length=1,
        alias="referred_columns",
        description="Ordered referenced columns.",
    )

    @model_validator(mode="after")
    def _same_arity(self) -> "ForeignKeyInfo":
        if len(self.local_columns) != len(self.foreign_columns):
            raise ValueError(
                f"Foreign key {self.local_columns} -> {self.foreign_table}"
                f"{self.foreign_columns} has mismatched column counts."
            )
        if len(set(self.local_columns)) != len(self.local_columns):
            raise ValueError(
                f"Foreign key to '{self.foreign_table}' repeats a local column: "
                f"{self.local_columns}"
            )
        return self

    @property
    def key(self) -> Tuple[str, Tuple[str, ...], str, Tuple[str, ...]]:
        """Identity of the constraint, independent of its optional name."""
        return (
            self.local_table,
            tuple(self.local_columns),
            self.foreign_table,
            tuple(self.foreign_columns),
        )

    @property
    def local_key(self) -> Tuple[str, Tuple[str, ...]]:
        """(local table, local columns): how inheritance links are matched."""
        return (self.local_table, tuple(self.local_columns))

    @property
    def constraint_name(self) -> str:
        if self.name:
            return self.name
        return f"fk_{self.local_table}_{'_'.join(self.local_columns)}"

    def __repr__(self) -> str:
        return (
            f"<FK {self.local_table}({', '.join(self.local_columns)}) → "
            f"{self.foreign_table}({', '.join(self.foreign_columns)})>"
        )


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


class TableInfo(BaseModel):
    """
    One table of the snapshot.

    Column-level ``foreign_key`` shorthands are expanded into single-column
    ``ForeignKeyInfo`` entries and every FK gets its ``local_table`` set
    before field validation runs.
    """

    model_config = _SNAPSHOT_CONFIG

    name: str = Field(..., min_length=1, description="Table name.")
    columns: List[ColumnInfo] = Field(
        ..., min_length=1, description="Ordered columns."
    )
    primary_key_columns: List[str] = Field(
        default_factory=list,
        description="Explicit PK column names (resolved from columns if empty).",
    )
    foreign_keys: List[ForeignKeyInfo] = Field(
        default_factory=list, description="Foreign key constraints."
    )
    junction: Optional[bool] = Field(
        default=None,
        description="Force (True) or forbid (False) junction-table treatment.",
    )
    comment: Optional[str] = Field(default=None, description="Table comment.")

    _column_map: Dict[str, ColumnInfo] = PrivateAttr(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _attach_foreign_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        table_name: Any = data.get("name")

        fks: List[Any] = []
        for fk in data.get("foreign_keys") or []:
            if isinstance(fk, ForeignKeyInfo):
                if not fk.local_table:
                    fk = fk.model_copy(update={"local_table": table_name})
            elif isinstance(fk, dict) and not fk.get("local_table"):
                fk = {**fk, "local_table": table_name}
            fks.append(fk)

        for col in data.get("columns") or []:
            if isinstance(col, ColumnInfo):
                col_name, target = col.name, col.foreign_key
            elif isinstance(col, dict):
                col_name, target = col.get("name"), col.get("foreign_key")
            else:
                continue
            if not target or not isinstance(target, str) or "." not in target:
                continue
            ref_table, ref_column = target.split(".", 1)
            fks.append({
                "local_table": table_name,
                "columns": [col_name],
                "referred_table": ref_table,
                "referred_columns": [ref_column],
            })

        data["foreign_keys"] = fks
        return data

    def model_post_init(self, __context: Any) -> None:
        self._column_map = {c.name: c for c in self.columns}

    @model_validator(mode="after")
    def _validate_columns(self) -> "TableInfo":
        names: List[str] = [c.name for c in self.columns]
        if len(names) != len(set(names)):
            dupes: List[str] = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"Table '{self.name}' has duplicate columns: {dupes}")

        col_set: Set[str] = set(names)
        missing_pk: List[str] = [c for c in self.primary_key_columns if c not in col_set]
        if missing_pk:
            raise ValueError(
                f"Table '{self.name}' declares primary key columns that do not "
                f"exist: {missing_pk}"
            )

        for fk in self.foreign_keys:
            if fk.local_table != self.name:
                raise ValueError(
                    f"Foreign key {fk!r} is declared on table '{self.name}' "
                    f"but names '{fk.local_table}' as its local table."
                )
            missing: List[str] = [c for c in fk.local_columns if c not in col_set]
            if missing:
                raise ValueError(
                    f"Foreign key to '{fk.foreign_table}' references columns "
                    f"{missing} which do not exist in table '{self.name}'. "
                    f"Available columns: {sorted(col_set)}"
                )
        return self

    # -- Helpers ------------------------------------------------------------

    @property
    def resolved_primary_keys(self) -> List[str]:
        """Explicit PK list, or the columns flagged ``primary_key``."""
        if self.primary_key_columns:
            return list(self.primary_key_columns)
        return [c.name for c in self.columns if c.primary_key]

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def get_column(self, name: str) -> Optional[ColumnInfo]:
        """O(1) column lookup by name."""
        return self._column_map.get(name)

    def __repr__(self) -> str:
        return (
            f"<Table {self.name} "
            f"({len(self.columns)} cols, {len(self.foreign_keys)} FKs)>"
        )


# ---------------------------------------------------------------------------
# Schema snapshot
# ---------------------------------------------------------------------------


class SchemaDefinition(BaseModel):
    """
    The whole schema, loaded before any analysis begins.

    Invariant: every FK targets an existing table and existing columns, so
    later lookups by name never dangle on a validated snapshot.
    """

    model_config = _SNAPSHOT_CONFIG

    tables: List[TableInfo] = Field(
        ..., min_length=1, description="All tables in the schema."
    )
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Arbitrary metadata."
    )
    source_file: Optional[str] = Field(
        default=None, description="Schema file the snapshot was loaded from."
    )

    _table_map: Dict[str, TableInfo] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._table_map = {t.name: t for t in self.tables}

    @model_validator(mode="after")
    def _validate_unique_table_names(self) -> "SchemaDefinition":
        names: List[str] = [t.name for t in self.tables]
        if len(names) != len(set(names)):
            dupes: List[str] = [n for n in names if names.count(n) > 1]
            raise ValueError(f"Duplicate table names: {sorted(set(dupes))}")
        return self

    @model_validator(mode="after")
    def _validate_fk_targets_exist(self) -> "SchemaDefinition":
        tables: Dict[str, TableInfo] = {t.name: t for t in self.tables}
        for table in self.tables:
            for fk in table.foreign_keys:
                target: Optional[TableInfo] = tables.get(fk.foreign_table)
                if target is None:
                    raise ValueError(
                        f"Table '{table.name}' has FK to '{fk.foreign_table}' "
                        f"which is not defined in the schema."
                    )
                missing: List[str] = [
                    c for c in fk.foreign_columns if target.get_column(c) is None
                ]
                if missing:
                    raise ValueError(
                        f"Table '{table.name}' has FK to '{fk.foreign_table}' "
                        f"columns {missing} which do not exist."
                    )
        return self

    def get_table(self, name: str) -> Optional[TableInfo]:
        """O(1) table lookup."""
        return self._table_map.get(name)

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def __repr__(self) -> str:
        return (
            f"<SchemaDefinition {len(self.tables)} tables, "
            f"{sum(len(t.foreign_keys) for t in self.tables)} foreign keys>"
        )


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """Settings controlling how beans are named, rendered and written."""

    model_config = _SETTINGS_CONFIG

    project_name: str = Field(
        default="beans", min_length=1, max_length=128, description="Project name."
    )
    bean_package: str = Field(
        default="beans",
        min_length=1,
        description="Python package receiving the generated beans.",
    )
    naming_convention: NamingConvention = Field(
        default=NamingConvention.CAMEL_CASE,
        description="Member naming style of generated beans.",
    )
    base_class_prefix: str = Field(
        default="Base", min_length=1, description="Prefix of generated base classes."
    )
    runtime_module: str = Field(
        default="beangen_runtime",
        min_length=1,
        description="Module providing the runtime bean base class.",
    )
    runtime_base_class: str = Field(
        default="AbstractBean", min_length=1, description="Runtime base class name."
    )
    generate_docstrings: bool = Field(
        default=True, description="Add docstrings to generated code."
    )
    generate_json_serialize: bool = Field(
        default=True, description="Emit json_serialize() on every bean."
    )
    include_junction_tables: bool = Field(
        default=False, description="Also generate beans for junction tables."
    )
    overwrite_beans: bool = Field(
        default=False, description="Overwrite user-editable bean files."
    )
    indent_size: int = Field(default=4, ge=2, le=8, description="Indentation width.")
    output_dir: str = Field(
        default="./generated", description="Root directory for generated code."
    )

    @field_validator("bean_package")
    @classmethod
    def _package_is_identifier(cls, v: str) -> str:
        if not all(part.isidentifier() for part in v.split(".")):
            raise ValueError(f"bean_package '{v}' is not a valid Python package path.")
        return v


__all__: List[str] = [
    "ColumnType",
    "NamingConvention",
    "PYTHON_TYPE_MAP",
    "ColumnInfo",
    "ForeignKeyInfo",
    "TableInfo",
    "SchemaDefinition",
    "GenerationConfig",
]

logger.debug("beangen.models loaded — %d public symbols.", len(__all__))
