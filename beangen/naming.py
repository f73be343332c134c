# File: beangen/naming.py
"""
beangen - Naming
=================
:class:`NamingStrategy` turns table and property names into the identifiers
used by generated code (class names, module names, accessor names, member
keys) for the configured :class:`~beangen.models.NamingConvention`.

:func:`resolve_property_names` is the two-pass conflict resolver applied to
the local properties of every bean:

1. properties sharing a primary name all switch to their alternative name;
2. if names still collide, :class:`~beangen.exceptions.NamingConflictError`.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence, Union

from beangen.exceptions import NamingConflictError
from beangen.models import NamingConvention
from beangen.properties import RelationPropertyDescriptor, ScalarPropertyDescriptor
from beangen.utils import (
    EnglishInflector,
    Inflector,
    escape_keyword,
    safe_identifier,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
)

logger: logging.Logger = logging.getLogger("beangen.naming")

AnyProperty = Union[ScalarPropertyDescriptor, RelationPropertyDescriptor]


class NamingStrategy:
    """Identifier formatting for one naming convention."""

    def __init__(
        self,
        convention: Union[NamingConvention, str] = NamingConvention.CAMEL_CASE,
        inflector: Optional[Inflector] = None,
        base_class_prefix: str = "Base",
    ) -> None:
        self.convention: NamingConvention = NamingConvention(convention)
        self.inflector: Inflector = inflector or EnglishInflector()
        self.base_class_prefix: str = base_class_prefix

    @property
    def is_snake_case(self) -> bool:
        return self.convention == NamingConvention.SNAKE_CASE

    # -- Classes & modules ---------------------------------------------------

    def bean_class_name(self, table_name: str) -> str:
        return to_pascal_case(table_name)

    def base_bean_class_name(self, table_name: str) -> str:
        return f"{self.base_class_prefix}{self.bean_class_name(table_name)}"

    def module_name(self, table_name: str) -> str:
        return safe_identifier(table_name)

    def base_module_name(self, table_name: str) -> str:
        return f"{to_snake_case(self.base_class_prefix)}_{safe_identifier(table_name)}"

    # -- Members -------------------------------------------------------------

    def method_name(self, verb: str, upper_camel: str) -> str:
        """``get`` + ``ReviewByAuthorId`` → ``getReviewByAuthorId`` / ``get_review_by_author_id``."""
        if self.is_snake_case:
            return escape_keyword(f"{verb}_{to_snake_case(upper_camel)}")
        return escape_keyword(f"{verb}{upper_camel}")

    def getter_name(self, upper_camel: str) -> str:
        return self.method_name("get", upper_camel)

    def setter_name(self, upper_camel: str) -> str:
        return self.method_name("set", upper_camel)

    def variable_name(self, upper_camel: str) -> str:
        if self.is_snake_case:
            return escape_keyword(to_snake_case(upper_camel))
        return escape_keyword(to_camel_case(upper_camel))

    def member_key(self, upper_camel: str) -> str:
        """Key of a property in the bean's property map."""
        return self.variable_name(upper_camel)

    # -- Inflection ----------------------------------------------------------

    def pluralize(self, identifier: str) -> str:
        return self.inflector.pluralize(identifier)

    def singularize(self, identifier: str) -> str:
        return self.inflector.singularize(identifier)

    def __repr__(self) -> str:
        return f"<NamingStrategy {self.convention.value}>"


def resolve_property_names(
    table_name: str,
    descriptors: Sequence[AnyProperty],
    strategy: Optional[NamingStrategy] = None,
) -> "OrderedDict[str, AnyProperty]":
    """
    Resolve name collisions among *descriptors* and key them by member name.

    The input order is kept in the returned mapping.  Descriptors are never
    mutated; colliding ones are replaced by their alternative-name copies.
    """
    strategy = strategy or NamingStrategy()

    by_name: Dict[str, List[int]] = {}
    for index, descriptor in enumerate(descriptors):
        by_name.setdefault(descriptor.upper_camel_name(), []).append(index)

    resolved: List[AnyProperty] = list(descriptors)
    for name, indexes in by_name.items():
        if len(indexes) > 1:
            logger.debug(
                "Table '%s': %d properties named '%s', switching to alternative names.",
                table_name,
                len(indexes),
                name,
            )
            for index in indexes:
                resolved[index] = resolved[index].with_alternative_name()

    final_names: Dict[str, List[AnyProperty]] = {}
    for descriptor in resolved:
        final_names.setdefault(descriptor.upper_camel_name(), []).append(descriptor)
    for name, group in final_names.items():
        if len(group) > 1:
            raise NamingConflictError(
                table_name,
                [name],
                detail="columns " + ", ".join(
                    "/".join(d.column_names()) for d in group
                ),
            )

    result: "OrderedDict[str, AnyProperty]" = OrderedDict()
    for descriptor in resolved:
        key: str = strategy.member_key(descriptor.upper_camel_name())
        if key in result:
            raise NamingConflictError(
                table_name,
                [result[key].upper_camel_name(), descriptor.upper_camel_name()],
                detail=f"both normalise to '{key}'",
            )
        result[key] = descriptor
    return result


__all__: List[str] = ["NamingStrategy", "resolve_property_names"]
