# File: beangen/properties.py
"""
beangen - Property Descriptors
===============================
A bean property is backed either by one scalar column or by one (possibly
multi-column) foreign key.  Both variants are frozen pydantic models tagged
by ``kind`` so a list of them validates and serialises as a discriminated
union.

Descriptors only hold names and frozen snapshot values; turning on the
alternative name yields a *new* descriptor via :meth:`with_alternative_name`.
"""

from __future__ import annotations

import abc
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from beangen.models import ColumnInfo, ForeignKeyInfo
from beangen.utils import to_camel_case, to_pascal_case

logger: logging.Logger = logging.getLogger("beangen.properties")

_DESCRIPTOR_CONFIG: ConfigDict = ConfigDict(
    frozen=True,
    extra="forbid",
    use_enum_values=True,
)

CloneRule = Literal["reset", "copy"]

# Defaults computed by the database, e.g. CURRENT_TIMESTAMP or now()
_SQL_EXPRESSION_RE: re.Pattern[str] = re.compile(
    r"^(?:[A-Z][A-Z0-9_]*|[A-Za-z_][\w.]*\(.*\))$"
)
_BOOL_LITERALS: Dict[str, bool] = {"true": True, "false": False, "1": True, "0": False}


def _literal_default(python_type: str, value: Any) -> Optional[str]:
    """
    Render a column default as a Python expression of *python_type*.

    Returns ``None`` for SQL expressions and for values that do not fit the
    column type; the database then supplies the value on insert.
    """
    if isinstance(value, str):
        text: str = value.strip()
        if _SQL_EXPRESSION_RE.match(text):
            return None
        if len(text) >= 2 and text[0] == text[-1] == "'":
            text = text[1:-1]
        value = text

    if python_type == "str":
        return repr(str(value))
    if python_type == "bool":
        if isinstance(value, bool):
            return repr(value)
        flag: Optional[bool] = _BOOL_LITERALS.get(str(value).lower())
        return None if flag is None else repr(flag)
    if isinstance(value, bool):
        return None
    if python_type == "int":
        if isinstance(value, int):
            return repr(value)
        return repr(int(value)) if str(value).lstrip("-").isdigit() else None
    if python_type in ("float", "Decimal"):
        try:
            number: Decimal = Decimal(str(value))
        except InvalidOperation:
            return None
        if not number.is_finite():
            return None
        if python_type == "float":
            return repr(float(number))
        return f"Decimal({str(number)!r})"
    return None


class _PropertyBase(BaseModel, abc.ABC):
    """Fields and behaviour shared by both descriptor variants."""

    model_config = _DESCRIPTOR_CONFIG

    table_name: str = Field(..., description="Table owning the backing column(s).")
    primary_key_columns: List[str] = Field(
        default_factory=list, description="Primary key of the owning table."
    )
    alternative_name: bool = Field(
        default=False, description="Use the disambiguated name."
    )

    def owning_table(self) -> str:
        return self.table_name

    def display_name(self) -> str:
        """lowerCamel form of :meth:`upper_camel_name`."""
        return to_camel_case(self.upper_camel_name())

    def with_alternative_name(self) -> "_PropertyBase":
        return self.model_copy(update={"alternative_name": True})

    @abc.abstractmethod
    def upper_camel_name(self) -> str:
        """UpperCamel property name, disambiguated when the flag is on."""

    @abc.abstractmethod
    def column_names(self) -> List[str]:
        """Backing column names, in foreign key order for relations."""

    @abc.abstractmethod
    def is_primary_key(self) -> bool:
        """Whether the backing column(s) are exactly the primary key."""

    @abc.abstractmethod
    def default_assignment(self) -> Optional[str]:
        """Python expression assigned by the constructor, or None."""

    def clone_rule(self) -> CloneRule:
        """How ``clone()`` treats the property: primary keys are reset."""
        return "reset" if self.is_primary_key() else "copy"


class ScalarPropertyDescriptor(_PropertyBase):
    """Property backed by a single non-FK column."""

    kind: Literal["scalar"] = "scalar"
    column: ColumnInfo

    def upper_camel_name(self) -> str:
        # Column names are unique per table, so the alternative name is the same.
        return to_pascal_case(self.column.name)

    def column_names(self) -> List[str]:
        return [self.column.name]

    def is_nullable(self) -> bool:
        return self.column.nullable

    def is_compulsory(self) -> bool:
        return (
            not self.column.nullable
            and not self.column.has_default
            and not self.column.autoincrement
        )

    def is_primary_key(self) -> bool:
        return self.column.name in self.primary_key_columns

    def has_default(self) -> bool:
        return self.column.has_default

    def default_assignment(self) -> Optional[str]:
        if not self.column.has_default or self.column.autoincrement:
            return None
        return _literal_default(self.python_type(), self.column.default)

    def python_type(self) -> str:
        return self.column.python_type

    def value_type(self) -> str:
        base: str = self.python_type()
        if self.column.nullable and base != "Any":
            return f"Optional[{base}]"
        return base

    def __repr__(self) -> str:
        return f"<ScalarProperty {self.table_name}.{self.column.name}>"


class RelationPropertyDescriptor(_PropertyBase):
    """Property backed by one foreign key; a composite FK is still one property."""

    kind: Literal["relation"] = "relation"
    foreign_key: ForeignKeyInfo
    local_column_infos: List[ColumnInfo] = Field(default_factory=list)

    @property
    def target_table(self) -> str:
        return self.foreign_key.foreign_table

    def upper_camel_name(self) -> str:
        name: str = to_pascal_case(self.target_table)
        if self.alternative_name:
            name += "By" + "And".join(
                to_pascal_case(c) for c in self.foreign_key.local_columns
            )
        return name

    def column_names(self) -> List[str]:
        return list(self.foreign_key.local_columns)

    def is_nullable(self) -> bool:
        return any(c.nullable for c in self.local_column_infos)

    def is_compulsory(self) -> bool:
        return all(
            not c.nullable and not c.has_default for c in self.local_column_infos
        )

    def is_primary_key(self) -> bool:
        return sorted(self.foreign_key.local_columns) == sorted(self.primary_key_columns)

    def has_default(self) -> bool:
        return False

    def default_assignment(self) -> Optional[str]:
        return None

    def python_type(self) -> str:
        return to_pascal_case(self.target_table)

    def value_type(self) -> str:
        if self.is_nullable():
            return f"Optional[{self.python_type()}]"
        return self.python_type()

    def __repr__(self) -> str:
        return (
            f"<RelationProperty {self.table_name}"
            f"({', '.join(self.foreign_key.local_columns)}) → {self.target_table}>"
        )


PropertyDescriptor = Annotated[
    Union[ScalarPropertyDescriptor, RelationPropertyDescriptor],
    Field(discriminator="kind"),
]


__all__: List[str] = [
    "CloneRule",
    "ScalarPropertyDescriptor",
    "RelationPropertyDescriptor",
    "PropertyDescriptor",
]
