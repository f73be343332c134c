# File: beangen/__init__.py
"""
beangen — Bean Class Generator
==============================

Analyses a relational schema description (JSON/YAML) and generates one
typed Python bean class per table: getters and setters for every column
and foreign key, inherited properties for 1:1 parent tables, reverse
accessors for incoming foreign keys, and list/add/remove/has methods for
many-to-many relations through junction tables.

Architecture overview::

    ┌──────────────┐     ┌───────────────┐     ┌────────────────────┐
    │  CLI / Entry │────▶│ BeanGenerator │────▶│BeanTemplateGenerator│
    │   (cli.py)   │     │(generator.py) │     │   (templates.py)   │
    └──────────────┘     └───────┬───────┘     └────────────────────┘
                                 │
          ┌──────────────┬───────┼────────┬─────────────┐
          ▼              ▼       ▼        ▼             ▼
    ┌──────────┐ ┌────────────┐ ┌──────┐ ┌────────┐ ┌───────────┐
    │validators│ │schema_graph│ │beans │ │ models │ │ exporters │
    │  (.py)   │ │ analyzer   │ │naming│ │ (.py)  │ │  (.py)    │
    └──────────┘ └────────────┘ └──────┘ └────────┘ └───────────┘

Usage::

    # As a library
    from beangen import BeanGenerator, GenerationConfig, SchemaDefinition
    report = BeanGenerator().generate(schema, GenerationConfig())

    # From the command line
    python -m beangen --schema schema.yaml --output ./generated --verbose
"""

from __future__ import annotations

__version__: str = "1.0.0"

from beangen.exceptions import (
    BeanGenError,
    NamingConflictError,
    SchemaConfigurationError,
    UnsupportedShapeError,
)
from beangen.models import (
    ColumnInfo,
    ColumnType,
    ForeignKeyInfo,
    GenerationConfig,
    NamingConvention,
    SchemaDefinition,
    TableInfo,
)
from beangen.analyzer import RelationshipClassifier, SchemaAnalyzer
from beangen.schema_graph import SchemaGraph
from beangen.properties import (
    PropertyDescriptor,
    RelationPropertyDescriptor,
    ScalarPropertyDescriptor,
)
from beangen.naming import NamingStrategy, resolve_property_names
from beangen.beans import BeanDescriptor, BeanModel
from beangen.validators import ValidationResult, validate_full
from beangen.utils import (
    EnglishInflector,
    Inflector,
    Timer,
    to_camel_case,
    to_pascal_case,
    to_plural,
    to_singular,
    to_snake_case,
)
from beangen.templates import BeanTemplateGenerator, GeneratedFile
from beangen.exporters import BeanExporter, ExportManifest, ExportResult
from beangen.generator import (
    AnalysisResult,
    BeanGenerator,
    GenerationReport,
    GeneratorListener,
)

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    "__version__",
    # Core orchestrator
    "AnalysisResult",
    "BeanGenerator",
    "GenerationReport",
    "GeneratorListener",
    # Errors
    "BeanGenError",
    "NamingConflictError",
    "SchemaConfigurationError",
    "UnsupportedShapeError",
    # Schema models
    "ColumnInfo",
    "ColumnType",
    "ForeignKeyInfo",
    "GenerationConfig",
    "NamingConvention",
    "SchemaDefinition",
    "TableInfo",
    # Analysis
    "RelationshipClassifier",
    "SchemaAnalyzer",
    "SchemaGraph",
    "PropertyDescriptor",
    "RelationPropertyDescriptor",
    "ScalarPropertyDescriptor",
    "NamingStrategy",
    "resolve_property_names",
    "BeanDescriptor",
    "BeanModel",
    # Validation
    "validate_full",
    "ValidationResult",
    # Rendering and export
    "BeanTemplateGenerator",
    "GeneratedFile",
    "BeanExporter",
    "ExportManifest",
    "ExportResult",
    # Utilities
    "EnglishInflector",
    "Inflector",
    "Timer",
    "to_camel_case",
    "to_pascal_case",
    "to_plural",
    "to_singular",
    "to_snake_case",
]
