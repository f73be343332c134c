# File: beangen/validators.py
"""
beangen - Schema & Configuration Validators
============================================
A **pure-function validation pipeline** operating on the Pydantic V2 models
defined in ``beangen.models``.

Pydantic's validators already guarantee structural correctness (no dangling
foreign keys, no duplicate columns).  This module adds the semantic checks
that decide whether beans can be generated: identifier hygiene, primary keys,
inheritance chains and junction-table shapes.

Usage by downstream modules:
    from beangen.validators import validate_full
    result = validate_full(schema_def, generation_config)
    if not result.is_valid:
        print(result.format_report())
"""

from __future__ import annotations

import keyword
import logging
import re
from typing import Any, Dict, List, Optional, Set, Tuple

from beangen.analyzer import SchemaAnalyzer
from beangen.exceptions import SchemaConfigurationError
from beangen.models import ForeignKeyInfo, GenerationConfig, SchemaDefinition, TableInfo

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("beangen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances produced by the pipeline."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

_SNAKE_CASE_RE: re.Pattern[str] = re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)*$")
_PASCAL_CASE_RE: re.Pattern[str] = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _is_dotted_identifier(value: str) -> bool:
    return all(
        _IDENTIFIER_RE.match(part) and not keyword.iskeyword(part)
        for part in value.split(".")
    )


# ---------------------------------------------------------------------------
# Individual validation functions
# ---------------------------------------------------------------------------


def validate_table_names(schema: SchemaDefinition) -> ValidationResult:
    """
    Validate table names: identifier format, snake_case, Python keywords.

    Generated class and module names derive from the table name, so a name
    that cannot become an identifier is an error.
    """
    result: ValidationResult = ValidationResult()

    for table in schema.tables:
        name: str = table.name
        ctx: Dict[str, Any] = {"table": name}

        if not _IDENTIFIER_RE.match(name):
            result.add_error(
                "INVALID_TABLE_NAME",
                f"Table name '{name}' is not a valid identifier.",
                ctx,
            )
            continue

        if not _SNAKE_CASE_RE.match(name):
            result.add_warning(
                "TABLE_NAME_NOT_SNAKE_CASE",
                f"Table name '{name}' is not snake_case. "
                f"Generated class name may look odd.",
                ctx,
            )

        if keyword.iskeyword(name):
            result.add_warning(
                "TABLE_NAME_PYTHON_RESERVED",
                f"Table name '{name}' is a Python keyword. "
                f"Its bean module will be named '{name}_'.",
                ctx,
            )

    logger.debug(
        "validate_table_names: checked %d tables, %d issue(s).",
        len(schema.tables),
        len(result),
    )
    return result


def validate_column_names(schema: SchemaDefinition) -> ValidationResult:
    """Validate every column name across all tables."""
    result: ValidationResult = ValidationResult()

    for table in schema.tables:
        for col in table.columns:
            ctx: Dict[str, Any] = {"table": table.name, "column": col.name}

            if not _IDENTIFIER_RE.match(col.name):
                result.add_error(
                    "INVALID_COLUMN_NAME",
                    f"Column '{col.name}' in table '{table.name}' "
                    f"is not a valid identifier.",
                    ctx,
                )
                continue

            if not _SNAKE_CASE_RE.match(col.name):
                result.add_warning(
                    "COLUMN_NAME_NOT_SNAKE_CASE",
                    f"Column '{col.name}' in table '{table.name}' "
                    f"is not snake_case.",
                    ctx,
                )

    logger.debug("validate_column_names: completed for %d tables.", len(schema.tables))
    return result


def validate_primary_keys(schema: SchemaDefinition) -> ValidationResult:
    """Every table needs a primary key for its bean to be addressable."""
    result: ValidationResult = ValidationResult()

    for table in schema.tables:
        if not table.resolved_primary_keys:
            result.add_error(
                "MISSING_PRIMARY_KEY",
                f"Table '{table.name}' has no primary key. "
                f"Beans need a primary key to identify their row.",
                {"table": table.name},
            )
            continue

        for pk in table.resolved_primary_keys:
            column = table.get_column(pk)
            if column is not None and column.nullable and not column.autoincrement:
                result.add_warning(
                    "NULLABLE_PRIMARY_KEY",
                    f"Primary key column '{pk}' of table '{table.name}' is "
                    f"declared nullable.",
                    {"table": table.name, "column": pk},
                )

    return result


def validate_foreign_keys(schema: SchemaDefinition) -> ValidationResult:
    """
    Check foreign keys for duplicates, overlaps and non-key targets.

    - The same constraint declared twice is an error.
    - Two FKs sharing a local column are reported: each column maps to the
      first FK declared on it.
    - An FK not targeting the referenced table's primary key is reported.
    """
    result: ValidationResult = ValidationResult()

    for table in schema.tables:
        seen: Set[Tuple[str, Tuple[str, ...], str, Tuple[str, ...]]] = set()
        column_owner: Dict[str, ForeignKeyInfo] = {}

        for fk in table.foreign_keys:
            ctx: Dict[str, Any] = {"table": table.name, "foreign_key": fk.constraint_name}

            if fk.key in seen:
                result.add_error(
                    "DUPLICATE_FOREIGN_KEY",
                    f"Foreign key {fk.local_columns} -> {fk.foreign_table} is "
                    f"declared more than once on table '{table.name}'.",
                    ctx,
                )
                continue
            seen.add(fk.key)

            for col in fk.local_columns:
                owner: Optional[ForeignKeyInfo] = column_owner.get(col)
                if owner is not None:
                    result.add_warning(
                        "OVERLAPPING_FOREIGN_KEYS",
                        f"Column '{table.name}.{col}' belongs to foreign keys "
                        f"'{owner.constraint_name}' and '{fk.constraint_name}'; "
                        f"only the first one becomes a property for this column.",
                        {**ctx, "column": col},
                    )
                else:
                    column_owner[col] = fk

            target: Optional[TableInfo] = schema.get_table(fk.foreign_table)
            if target is not None and set(fk.foreign_columns) != set(
                target.resolved_primary_keys
            ):
                result.add_warning(
                    "FK_TARGET_NOT_PRIMARY_KEY",
                    f"Foreign key {fk.local_columns} of table '{table.name}' "
                    f"references {fk.foreign_table}{fk.foreign_columns}, which is "
                    f"not its primary key.",
                    ctx,
                )

    return result


def validate_inheritance(schema: SchemaDefinition) -> ValidationResult:
    """Detect ambiguous parent relationships and inheritance cycles."""
    result: ValidationResult = ValidationResult()
    analyzer: SchemaAnalyzer = SchemaAnalyzer(schema)

    parents: Dict[str, str] = {}
    for table in schema.tables:
        try:
            parent: Optional[ForeignKeyInfo] = analyzer.get_parent_relationship(table.name)
        except SchemaConfigurationError as exc:
            result.add_error("AMBIGUOUS_INHERITANCE", exc.message, exc.context)
            continue
        if parent is not None:
            parents[table.name] = parent.foreign_table

    reported: Set[str] = set()
    for start in parents:
        chain: List[str] = [start]
        current: Optional[str] = parents.get(start)
        while current is not None:
            if current in chain:
                cycle: List[str] = chain[chain.index(current):] + [current]
                key: str = ",".join(sorted(set(cycle)))
                if key not in reported:
                    reported.add(key)
                    result.add_error(
                        "INHERITANCE_CYCLE",
                        f"Inheritance cycle detected: {' -> '.join(cycle)}",
                        {"tables": cycle},
                    )
                break
            chain.append(current)
            current = parents.get(current)

    return result


def validate_junction_tables(schema: SchemaDefinition) -> ValidationResult:
    """
    Check the shape of junction tables.

    A table forced to be a junction must carry exactly two foreign keys.
    A junction linking a table to itself makes the local side ambiguous, so
    the bean of that table cannot be generated.
    """
    result: ValidationResult = ValidationResult()
    analyzer: SchemaAnalyzer = SchemaAnalyzer(schema)

    for table in analyzer.detect_junction_tables():
        ctx: Dict[str, Any] = {"table": table.name}
        if len(table.foreign_keys) != 2:
            result.add_error(
                "JUNCTION_SHAPE",
                f"Junction table '{table.name}' must have exactly 2 foreign "
                f"keys, found {len(table.foreign_keys)}.",
                ctx,
            )
            continue
        first, second = table.foreign_keys
        if first.foreign_table == second.foreign_table:
            result.add_warning(
                "SELF_REFERENCING_JUNCTION",
                f"Junction table '{table.name}' links '{first.foreign_table}' "
                f"to itself; the bean of '{first.foreign_table}' will be skipped.",
                {**ctx, "referenced_table": first.foreign_table},
            )

    for table in schema.tables:
        if table.junction is False and SchemaAnalyzer.is_junction(
            table.model_copy(update={"junction": None})
        ):
            result.add_info(
                "JUNCTION_DISABLED",
                f"Table '{table.name}' looks like a junction table but is "
                f"marked 'junction: false'.",
                {"table": table.name},
            )

    return result


def validate_generation_config(config: GenerationConfig) -> ValidationResult:
    """Sanity checks for the generation configuration."""
    result: ValidationResult = ValidationResult()

    if not _is_dotted_identifier(config.bean_package):
        result.add_error(
            "INVALID_BEAN_PACKAGE",
            f"bean_package '{config.bean_package}' is not a valid package path.",
            {"bean_package": config.bean_package},
        )

    if not _is_dotted_identifier(config.runtime_module):
        result.add_error(
            "INVALID_RUNTIME_MODULE",
            f"runtime_module '{config.runtime_module}' is not a valid module path.",
            {"runtime_module": config.runtime_module},
        )

    if not _IDENTIFIER_RE.match(config.runtime_base_class):
        result.add_error(
            "INVALID_RUNTIME_BASE_CLASS",
            f"runtime_base_class '{config.runtime_base_class}' is not an identifier.",
            {"runtime_base_class": config.runtime_base_class},
        )

    if not _PASCAL_CASE_RE.match(config.base_class_prefix):
        result.add_error(
            "INVALID_BASE_CLASS_PREFIX",
            f"base_class_prefix '{config.base_class_prefix}' must be PascalCase.",
            {"base_class_prefix": config.base_class_prefix},
        )

    if config.overwrite_beans:
        result.add_warning(
            "OVERWRITE_BEANS_ENABLED",
            "overwrite_beans is enabled: hand-edited bean classes will be replaced.",
        )

    return result


# ---------------------------------------------------------------------------
# Aggregate entry points
# ---------------------------------------------------------------------------


def validate_schema(schema: SchemaDefinition) -> ValidationResult:
    """Run every schema-level validator."""
    result: ValidationResult = ValidationResult()
    for validator in (
        validate_table_names,
        validate_column_names,
        validate_primary_keys,
        validate_foreign_keys,
        validate_inheritance,
        validate_junction_tables,
    ):
        result.merge(validator(schema))
    return result


def validate_config(config: GenerationConfig) -> ValidationResult:
    return validate_generation_config(config)


def validate_full(
    schema: SchemaDefinition,
    config: GenerationConfig,
) -> ValidationResult:
    """
    **Master validation entry point**, called by ``generator.py`` and
    ``cli.py`` before any bean is analysed.
    """
    logger.info("Starting full validation — %d tables", len(schema.tables))

    result: ValidationResult = ValidationResult()
    result.merge(validate_schema(schema))
    result.merge(validate_config(config))

    if result.has_errors:
        logger.error(
            "Validation FAILED with %d error(s). %s",
            result.error_count,
            result.summary(),
        )
    else:
        logger.info("Validation PASSED. %s", result.summary())

    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "validate_table_names",
    "validate_column_names",
    "validate_primary_keys",
    "validate_foreign_keys",
    "validate_inheritance",
    "validate_junction_tables",
    "validate_generation_config",
    "validate_schema",
    "validate_config",
    "validate_full",
]

logger.debug("beangen.validators loaded — %d public symbols.", len(__all__))
