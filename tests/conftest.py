"""
tests/conftest.py
Shared fixtures for the beangen test suite.

No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import logging
import pathlib
from typing import Any, Callable, Dict, Iterator, List

import pytest
import yaml

from beangen.generator import parse_raw_schema
from beangen.models import GenerationConfig, SchemaDefinition
from beangen.schema_graph import SchemaGraph


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SCHEMA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "schema_example.yaml"


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_beangen_logger() -> Iterator[None]:
    """The CLI installs its own handler; undo that after every test."""
    yield
    root_logger = logging.getLogger("beangen")
    root_logger.handlers.clear()
    root_logger.propagate = True
    root_logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Raw schema data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_schema_dict() -> Dict[str, Any]:
    """Load the reference schema_example.yaml once per session and return as dict."""
    assert SCHEMA_EXAMPLE_PATH.exists(), (
        f"Reference schema not found at {SCHEMA_EXAMPLE_PATH}. "
        "Make sure schema_example.yaml is in the project root."
    )
    with open(SCHEMA_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def schema_dict(raw_schema_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_schema_dict)


@pytest.fixture()
def schema_yaml_path(schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the schema dict to a temporary YAML file and return its path."""
    path = tmp_path / "schema.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(schema_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


@pytest.fixture()
def example_schema(schema_dict: Dict[str, Any]) -> SchemaDefinition:
    schema, _ = parse_raw_schema(schema_dict)
    return schema


@pytest.fixture()
def example_config(schema_dict: Dict[str, Any]) -> GenerationConfig:
    _, config = parse_raw_schema(schema_dict)
    return config


@pytest.fixture()
def example_graph(example_schema: SchemaDefinition) -> SchemaGraph:
    return SchemaGraph(example_schema)


# ---------------------------------------------------------------------------
# Schema builders
# ---------------------------------------------------------------------------


def pk_column(name: str = "id", **extra: Any) -> Dict[str, Any]:
    """An auto-incremented integer primary key column."""
    column: Dict[str, Any] = {
        "name": name,
        "type": "integer",
        "primary_key": True,
        "autoincrement": True,
        "nullable": False,
    }
    column.update(extra)
    return column


@pytest.fixture()
def make_schema() -> Callable[[List[Dict[str, Any]]], SchemaDefinition]:
    """Factory turning a list of raw table dicts into a SchemaDefinition."""

    def _make(tables: List[Dict[str, Any]]) -> SchemaDefinition:
        return SchemaDefinition.model_validate({"tables": tables})

    return _make


@pytest.fixture()
def make_graph(
    make_schema: Callable[[List[Dict[str, Any]]], SchemaDefinition],
) -> Callable[[List[Dict[str, Any]]], SchemaGraph]:
    def _make(tables: List[Dict[str, Any]]) -> SchemaGraph:
        return SchemaGraph(make_schema(tables))

    return _make


# ---------------------------------------------------------------------------
# Edge-case table sets
# ---------------------------------------------------------------------------


@pytest.fixture()
def composite_fk_tables() -> List[Dict[str, Any]]:
    """A parcel referencing a shipment through a two-column foreign key."""
    return [
        {
            "name": "shipment",
            "primary_key_columns": ["site", "code"],
            "columns": [
                {"name": "site", "type": "string", "nullable": False},
                {"name": "code", "type": "string", "nullable": False},
                {"name": "label", "type": "string"},
            ],
        },
        {
            "name": "parcel",
            "columns": [
                pk_column(),
                # Declared in the opposite order of the foreign key
                {"name": "code", "type": "string", "nullable": False},
                {"name": "site", "type": "string", "nullable": False},
                {"name": "weight", "type": "float"},
            ],
            "foreign_keys": [
                {
                    "columns": ["site", "code"],
                    "referred_table": "shipment",
                    "referred_columns": ["site", "code"],
                }
            ],
        },
    ]


@pytest.fixture()
def inheritance_cycle_tables() -> List[Dict[str, Any]]:
    """Two tables whose primary keys reference each other."""
    return [
        {
            "name": "alpha",
            "columns": [
                {"name": "id", "type": "integer", "primary_key": True,
                 "nullable": False, "foreign_key": "beta.id"},
            ],
        },
        {
            "name": "beta",
            "columns": [
                {"name": "id", "type": "integer", "primary_key": True,
                 "nullable": False, "foreign_key": "alpha.id"},
            ],
        },
    ]


@pytest.fixture()
def self_junction_tables() -> List[Dict[str, Any]]:
    """A junction linking ``person`` to itself, plus a table inheriting from it."""
    return [
        {
            "name": "person",
            "columns": [
                pk_column(),
                {"name": "name", "type": "string", "nullable": False},
            ],
        },
        {
            "name": "friendship",
            "primary_key_columns": ["person_a", "person_b"],
            "columns": [
                {"name": "person_a", "type": "integer", "nullable": False,
                 "foreign_key": "person.id"},
                {"name": "person_b", "type": "integer", "nullable": False,
                 "foreign_key": "person.id"},
            ],
        },
        {
            "name": "vip",
            "columns": [
                {"name": "id", "type": "integer", "primary_key": True,
                 "nullable": False, "foreign_key": "person.id"},
                {"name": "level", "type": "integer"},
            ],
        },
        {
            "name": "badge",
            "columns": [
                pk_column(),
                {"name": "label", "type": "string"},
            ],
        },
    ]


@pytest.fixture()
def name_clash_tables() -> List[Dict[str, Any]]:
    """Two columns whose names normalise to the same property name."""
    return [
        {
            "name": "account",
            "columns": [
                pk_column(),
                {"name": "user_name", "type": "string"},
                {"name": "userName", "type": "string"},
            ],
        },
        {
            "name": "invoice",
            "columns": [
                pk_column(),
                {"name": "total", "type": "numeric"},
            ],
        },
    ]


@pytest.fixture()
def overridden_column_tables() -> List[Dict[str, Any]]:
    """An ``employee`` redefining the parent's ``name`` column as nullable."""
    return [
        {
            "name": "badge",
            "columns": [pk_column()],
        },
        {
            "name": "person",
            "columns": [
                pk_column(),
                {"name": "name", "type": "string", "nullable": False},
                {"name": "badge_id", "type": "integer", "foreign_key": "badge.id"},
                {"name": "nickname", "type": "string"},
            ],
        },
        {
            "name": "employee",
            "columns": [
                {"name": "id", "type": "integer", "primary_key": True,
                 "nullable": False, "foreign_key": "person.id"},
                {"name": "name", "type": "string"},
                {"name": "title", "type": "string", "nullable": False},
                {"name": "status", "type": "string", "nullable": False,
                 "default": "active"},
            ],
        },
    ]
