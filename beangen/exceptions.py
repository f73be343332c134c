# File: beangen/exceptions.py
"""
beangen - Error Taxonomy
=========================

Every failure raised by the analysis core is a generation-time contradiction
in the input schema.  None of them is transient, so nothing is retried:

    BeanGenError
    ├── SchemaConfigurationError   dangling reference, inheritance cycle
    ├── NamingConflictError        unresolvable member-name collision
    └── UnsupportedShapeError      junction table with an unexpected shape

``BeanGenError`` derives from ``ValueError`` because every one of these
errors is about a bad input value (the schema), not about the environment.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

logger: logging.Logger = logging.getLogger("beangen.exceptions")


class BeanGenError(ValueError):
    """Base class of every error raised by beangen analysis."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "context": self.context,
        }


class SchemaConfigurationError(BeanGenError):
    """
    The schema itself is inconsistent.

    Raised for foreign keys pointing at missing tables or columns, lookups of
    unknown tables, ambiguous parent relationships and inheritance cycles.
    Aborts the whole generation run.
    """


class NamingConflictError(BeanGenError):
    """Two members of the same bean resolve to the same final name."""

    def __init__(self, table: str, names: Sequence[str], detail: str = "") -> None:
        self.table: str = table
        self.names: List[str] = sorted(set(names))
        message: str = (
            f"Unsolvable name conflict in table '{table}': "
            f"{', '.join(self.names)}"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, {"table": table, "names": self.names})


class UnsupportedShapeError(BeanGenError):
    """A detected junction table does not have the two-foreign-key shape."""

    def __init__(self, table: str, detail: str) -> None:
        self.table: str = table
        super().__init__(
            f"Unsupported junction table '{table}': {detail}",
            {"table": table},
        )


__all__: List[str] = [
    "BeanGenError",
    "SchemaConfigurationError",
    "NamingConflictError",
    "UnsupportedShapeError",
]
