# File: beangen/cli.py
"""
beangen - Command-Line Interface
================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Basic generation
    python -m beangen --schema schema.yaml --output ./generated

    # Verbose output with clean package directory
    python -m beangen -s schema.json -o ./output --verbose --clean

    # Snake-case members into a custom package
    python -m beangen -s schema.yaml -o ./out --package models --naming snake_case

    # Validate only (no file output)
    python -m beangen -s schema.yaml --validate-only

    # Inspect the analysed bean of one table
    python -m beangen -s schema.yaml --describe user

Exit codes:
    0 — success
    1 — validation error
    2 — generation error
    3 — export error
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence, Tuple

from beangen.exceptions import SchemaConfigurationError
from beangen.generator import (
    AnalysisResult,
    BeanGenerator,
    GenerationReport,
    load_schema_file,
    parse_raw_schema,
)
from beangen.models import GenerationConfig, NamingConvention, SchemaDefinition
from beangen.utils import Timer
from beangen.validators import ValidationResult, validate_full

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("beangen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root beangen logger based on verbosity level.

    Args:
        verbosity: -1 = ERROR (quiet), 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("beangen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from beangen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="beangen",
        description=(
            "beangen — Bean Class Generator.\n\n"
            "Turns a relational schema description (JSON/YAML) into typed "
            "Python bean classes with getters, setters and relationship "
            "accessors."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s schema.yaml -o ./generated\n"
            "  %(prog)s -s schema.json -o ./out --verbose --clean\n"
            "  %(prog)s -s schema.yaml --validate-only\n"
            "  %(prog)s -s schema.yaml --describe user\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"beangen v{__version__}",
    )

    # --- Required arguments ---
    parser.add_argument(
        "-s", "--schema",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the schema definition file (JSON or YAML).",
    )

    # --- Output ---
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help=(
            "Output directory for the generated beans. "
            "Defaults to the config's output_dir."
        ),
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only validate the schema without generating code.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Run the full pipeline but don't write files to disk.",
    )
    mode_group.add_argument(
        "--describe",
        type=str,
        default=None,
        metavar="TABLE",
        help="Print the analysed bean of TABLE as JSON and exit.",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "--package",
        type=str,
        default=None,
        metavar="NAME",
        help="Override the Python package of the generated beans.",
    )
    config_group.add_argument(
        "--naming",
        type=str,
        default=None,
        choices=[c.value for c in NamingConvention],
        help="Override the member naming convention.",
    )
    config_group.add_argument(
        "--include-junction-tables",
        action="store_true",
        default=False,
        help="Also generate beans for junction tables.",
    )
    config_group.add_argument(
        "--overwrite-beans",
        action="store_true",
        default=False,
        help="Overwrite existing user-editable bean files.",
    )

    # --- Behaviour flags ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--clean",
        action="store_true",
        default=False,
        help="Remove the generated bean package before writing.",
    )
    behaviour_group.add_argument(
        "--no-strict",
        action="store_true",
        default=False,
        help="Continue even if validation has errors.",
    )
    behaviour_group.add_argument(
        "--fail-on-warnings",
        action="store_true",
        default=False,
        help="Treat validation warnings as errors.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Config override builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, Any] = {}

    if args.package is not None:
        overrides["bean_package"] = args.package

    if args.naming is not None:
        overrides["naming_convention"] = args.naming

    if args.include_junction_tables:
        overrides["include_junction_tables"] = True

    if args.overwrite_beans:
        overrides["overwrite_beans"] = True

    return overrides


def _load_and_parse(
    schema_path: Path, overrides: Dict[str, Any]
) -> Optional[Tuple[SchemaDefinition, GenerationConfig]]:
    """Load and parse the schema file, logging failures; None on error."""
    try:
        raw_data: Dict[str, Any] = load_schema_file(schema_path)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load schema: %s", exc)
        return None

    try:
        return parse_raw_schema(raw_data, overrides or None)
    except SchemaConfigurationError as exc:
        logger.error("Failed to parse schema: %s", exc.message)
        return None


# ---------------------------------------------------------------------------
# Validate-only mode
# ---------------------------------------------------------------------------


def _run_validate_only(schema_path: Path, args: argparse.Namespace) -> int:
    """
    Run validation only (no code generation).

    Returns the appropriate exit code.
    """
    logger.info("Running validation-only mode for: %s", schema_path)

    parsed = _load_and_parse(schema_path, _build_config_overrides(args))
    if parsed is None:
        return EXIT_INPUT_ERROR
    schema, config = parsed

    with Timer("validation") as t:
        result: ValidationResult = validate_full(schema, config)

    print(f"\n{'='*50}")
    print("  Schema Validation Report")
    print(f"{'='*50}")
    print(f"  File:     {schema_path.name}")
    print(f"  Tables:   {len(schema.tables)}")
    print(f"  Time:     {t.elapsed:.3f}s")
    print(f"  Valid:    {'Yes' if result.is_valid else 'No'}")

    if result.errors:
        print(f"\n  Errors ({len(result.errors)}):")
        for err in result.errors:
            print(f"    ✗ {err}")

    if result.warnings:
        print(f"\n  Warnings ({len(result.warnings)}):")
        for warn in result.warnings:
            print(f"    ⚠ {warn}")

    if result.is_valid and not result.warnings:
        print("\n  ✅ All validations passed!")

    print(f"{'='*50}\n")

    if not result.is_valid:
        return EXIT_VALIDATION_ERROR
    if args.fail_on_warnings and result.has_warnings:
        return EXIT_VALIDATION_ERROR
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Describe mode
# ---------------------------------------------------------------------------


def _run_describe(schema_path: Path, table_name: str, args: argparse.Namespace) -> int:
    """Print the analysed bean of one table as JSON."""
    parsed = _load_and_parse(schema_path, _build_config_overrides(args))
    if parsed is None:
        return EXIT_INPUT_ERROR
    schema, config = parsed

    if schema.get_table(table_name) is None:
        logger.error("Unknown table '%s'.", table_name)
        return EXIT_INPUT_ERROR

    # Describing a junction table implies generating it.
    config.include_junction_tables = True
    try:
        analysis: AnalysisResult = BeanGenerator().analyse(schema, config)
    except SchemaConfigurationError as exc:
        logger.error("Cannot analyse schema: %s", exc.message)
        return EXIT_GENERATION_ERROR

    bean = analysis.bean(table_name)
    if bean is None:
        logger.error(
            "No bean for table '%s': %s",
            table_name,
            analysis.skipped.get(table_name, "table was not analysed"),
        )
        return EXIT_GENERATION_ERROR

    print(bean.to_model().model_dump_json(indent=2))
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Full generation mode
# ---------------------------------------------------------------------------


def _run_generation(
    schema_path: Path,
    output_dir: Optional[Path],
    args: argparse.Namespace,
) -> int:
    """
    Run the full generation pipeline.

    Returns the appropriate exit code.
    """
    config_overrides: Dict[str, Any] = _build_config_overrides(args)

    generator: BeanGenerator = BeanGenerator(
        strict_validation=not args.no_strict,
        fail_on_warnings=args.fail_on_warnings,
        clean_output=args.clean,
        dry_run=args.dry_run,
    )

    if args.dry_run:
        logger.info("Dry-run mode: files will not be written to disk.")

    report: GenerationReport = generator.generate_from_file(
        schema_path=schema_path,
        output_dir=output_dir,
        config_overrides=config_overrides if config_overrides else None,
    )

    if not args.quiet:
        print(report.summary())

    return _exit_code_for(report)


def _exit_code_for(report: GenerationReport) -> int:
    if report.success:
        return EXIT_SUCCESS
    if report.input_errors:
        return EXIT_INPUT_ERROR
    if report.validation_errors:
        return EXIT_VALIDATION_ERROR
    if report.generation_errors:
        return EXIT_GENERATION_ERROR
    if report.export_errors:
        return EXIT_EXPORT_ERROR
    return EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    schema_path: Path = Path(args.schema).resolve()

    if not schema_path.exists():
        logger.error("Schema file not found: %s", schema_path)
        sys.exit(EXIT_INPUT_ERROR)

    if not schema_path.is_file():
        logger.error("Schema path is not a file: %s", schema_path)
        sys.exit(EXIT_INPUT_ERROR)

    if args.validate_only:
        sys.exit(_run_validate_only(schema_path, args))

    if args.describe is not None:
        sys.exit(_run_describe(schema_path, args.describe, args))

    output_dir: Optional[Path] = Path(args.output).resolve() if args.output else None

    logger.info("Schema:  %s", schema_path)
    logger.info("Output:  %s", output_dir if output_dir is not None else "(from config)")
    logger.info("Clean:   %s", args.clean)
    logger.info("Strict:  %s", not args.no_strict)

    exit_code: int = _run_generation(schema_path, output_dir, args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)

    sys.exit(exit_code)


def main() -> None:
    """Console-script entry point."""
    cli_main()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("beangen.cli loaded.")
