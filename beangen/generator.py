# File: beangen/generator.py
"""
beangen - Master Generation Pipeline (Orchestrator)
====================================================

Connects every phase together:

    Schema Input → Validation → Bean Analysis → Rendering → File Export

The ``BeanGenerator`` class provides both a programmatic API and the
backend for the CLI.

Workflow::

    1. Load schema from JSON/YAML file (or accept in-memory objects).
    2. Parse into ``SchemaDefinition`` + ``GenerationConfig`` (models.py).
    3. Run full validation pipeline (validators.py).
    4. Build the ``SchemaGraph`` and one ``BeanDescriptor`` per table.
    5. Render every bean with ``BeanTemplateGenerator`` (templates.py).
    6. Hand off to ``BeanExporter`` (exporters.py).
    7. Notify registered ``GeneratorListener`` objects.
    8. Return a ``GenerationReport`` with metrics and status.

Error handling strategy:
    - Validation errors are collected and surfaced, not swallowed.
    - Naming conflicts and unsupported junction shapes skip the affected
      bean and every bean inheriting from it; the rest is still generated.
    - Schema configuration errors abort the run.
    - Export errors are recorded in the report.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Protocol,
    Sequence,
    Set,
    Tuple,
    runtime_checkable,
)

import yaml
from pydantic import ValidationError

from beangen.beans import BeanDescriptor
from beangen.exceptions import (
    NamingConflictError,
    SchemaConfigurationError,
    UnsupportedShapeError,
)
from beangen.exporters import ExportManifest, ExportResult, BeanExporter
from beangen.models import GenerationConfig, SchemaDefinition
from beangen.naming import NamingStrategy
from beangen.schema_graph import SchemaGraph
from beangen.templates import BeanTemplateGenerator, GeneratedFile
from beangen.utils import Timer, count_lines
from beangen.validators import ValidationResult, validate_full

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("beangen.generator")

_SCHEMA_KEYS: Tuple[str, ...] = ("schema", "tables", "schema_definition")
_CONFIG_KEYS: Tuple[str, ...] = ("config", "generation_config")


# ---------------------------------------------------------------------------
# Listener capability
# ---------------------------------------------------------------------------


@runtime_checkable
class GeneratorListener(Protocol):
    """Notified once after a run has exported its beans."""

    def on_generate(
        self, config: GenerationConfig, beans: Sequence[BeanDescriptor]
    ) -> None:
        ...


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class AnalysisResult:
    """Beans built by :meth:`BeanGenerator.analyse`, plus the skipped tables."""

    graph: SchemaGraph
    beans: List[BeanDescriptor] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)

    def bean(self, table_name: str) -> Optional[BeanDescriptor]:
        for bean in self.beans:
            if bean.table_name == table_name:
                return bean
        return None


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Comprehensive report produced by ``BeanGenerator.generate()``.

    Contains timing information, file counts, validation results,
    and any errors/warnings encountered.
    """

    success: bool = False
    project_name: str = ""
    output_directory: str = ""
    dry_run: bool = False

    # Metrics
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    total_beans: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)
    generated_beans: List[str] = field(default_factory=list)
    skipped_tables: List[str] = field(default_factory=list)
    kept_files: List[str] = field(default_factory=list)

    # Export manifest reference
    manifest: Optional[ExportManifest] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        if self.dry_run:
            status += " (dry run)"
        lines.append(f"{'='*60}")
        lines.append("  beangen — Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Project:          {self.project_name}")
        lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Beans generated:  {self.total_beans}")
        lines.append(f"  Files:            {self.total_files}")
        lines.append(f"  Total lines:      {self.total_lines:,}")
        lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        sections: Tuple[Tuple[str, List[str], str], ...] = (
            ("Input Errors", self.input_errors, "✗"),
            ("Validation Errors", self.validation_errors, "✗"),
            ("Validation Warnings", self.validation_warnings, "⚠"),
            ("Generation Errors", self.generation_errors, "✗"),
            ("Export Errors", self.export_errors, "✗"),
            ("Skipped Tables", self.skipped_tables, "⊘"),
            ("Kept Editable Beans", self.kept_files, "•"),
        )
        for title, items, icon in sections:
            if not items:
                continue
            lines.append(f"{'─'*60}")
            lines.append(f"  {title} ({len(items)}):")
            for item in items:
                lines.append(f"    {icon} {item}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Schema loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file. Raises ValueError on parse errors."""
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file. Raises ValueError on parse errors."""
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_schema_file(path: Path) -> Dict[str, Any]:
    """
    Load a schema definition file (JSON or YAML).

    Dispatches based on file extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Schema path is not a file: {path}")

    suffix: str = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    if suffix == ".json":
        return _load_json_file(path)

    logger.info("Unknown extension '%s' — trying JSON then YAML.", suffix)
    try:
        return _load_json_file(path)
    except ValueError:
        return _load_yaml_file(path)


def parse_raw_schema(
    raw: Dict[str, Any],
    config_overrides: Optional[Dict[str, Any]] = None,
) -> Tuple[SchemaDefinition, GenerationConfig]:
    """
    Parse a raw dictionary (from JSON/YAML) into validated Pydantic models.

    Expected top-level keys:
        - "schema", "tables" or "schema_definition": the schema definition
        - "config" or "generation_config": the generation settings

    Raises:
        SchemaConfigurationError: If required keys are missing or the
            pydantic validation fails.
    """
    schema_data: Optional[Dict[str, Any]] = None
    for key in _SCHEMA_KEYS:
        if key in raw:
            value: Any = raw[key]
            if isinstance(value, list):
                schema_data = {"tables": value}
            elif isinstance(value, dict):
                schema_data = value
            break

    if schema_data is None:
        raise SchemaConfigurationError(
            "Cannot find schema definition in input. "
            "Expected top-level key: 'schema', 'tables', or 'schema_definition'."
        )

    config_data: Dict[str, Any] = {}
    for key in _CONFIG_KEYS:
        if isinstance(raw.get(key), dict):
            config_data = dict(raw[key])
            break
    else:
        logger.info("No generation config found in input — using defaults.")

    if config_overrides:
        config_data.update(config_overrides)

    try:
        schema: SchemaDefinition = SchemaDefinition.model_validate(schema_data)
    except ValidationError as exc:
        raise SchemaConfigurationError(f"Schema validation failed: {exc}") from exc

    try:
        config: GenerationConfig = GenerationConfig.model_validate(config_data)
    except ValidationError as exc:
        raise SchemaConfigurationError(f"Config validation failed: {exc}") from exc

    return schema, config


# ---------------------------------------------------------------------------
# BeanGenerator: master orchestrator
# ---------------------------------------------------------------------------


class BeanGenerator:
    """
    Master pipeline orchestrator for bean generation.

    Usage::

        generator = BeanGenerator()

        # From a file
        report = generator.generate_from_file(
            schema_path=Path("schema.yaml"),
            output_dir=Path("./generated"),
        )

        # From in-memory objects
        report = generator.generate(schema=schema_def, config=gen_config)

        print(report.summary())

    The generator is reusable — create once, call generate() many times.
    """

    def __init__(
        self,
        *,
        strict_validation: bool = True,
        fail_on_warnings: bool = False,
        clean_output: bool = False,
        dry_run: bool = False,
        listeners: Optional[Sequence[GeneratorListener]] = None,
    ) -> None:
        """
        Initialise the generator.

        Args:
            strict_validation: If True, abort on any validation error.
            fail_on_warnings: If True, treat validation warnings as errors.
            clean_output: If True, remove the bean package before writing.
            dry_run: If True, render everything but write nothing.
            listeners: Objects notified after a successful export.
        """
        self._strict_validation: bool = strict_validation
        self._fail_on_warnings: bool = fail_on_warnings
        self._clean_output: bool = clean_output
        self._dry_run: bool = dry_run
        self._listeners: List[GeneratorListener] = list(listeners or [])

        logger.debug(
            "BeanGenerator initialised: strict=%s, fail_on_warnings=%s, "
            "clean=%s, dry_run=%s.",
            strict_validation,
            fail_on_warnings,
            clean_output,
            dry_run,
        )

    def add_listener(self, listener: GeneratorListener) -> None:
        self._listeners.append(listener)

    # -----------------------------------------------------------------
    # Public: generate from file
    # -----------------------------------------------------------------

    def generate_from_file(
        self,
        schema_path: Path,
        output_dir: Optional[Path] = None,
        *,
        config_overrides: Optional[Dict[str, Any]] = None,
    ) -> GenerationReport:
        """
        Full pipeline: load file → validate → analyse → render → export.

        Args:
            schema_path: Path to JSON/YAML schema file.
            output_dir: Output root; ``config.output_dir`` when omitted.
            config_overrides: Optional dict to override config values.
        """
        report: GenerationReport = GenerationReport(dry_run=self._dry_run)
        pipeline_start: float = time.perf_counter()

        with Timer("load_schema") as t_load:
            try:
                raw_data: Dict[str, Any] = load_schema_file(schema_path)
            except (FileNotFoundError, ValueError) as exc:
                report.input_errors.append(str(exc))
                raw_data = {}

        report.step_metrics.append(GenerationStepMetric(
            step_name="Load Schema File",
            success=not report.input_errors,
            elapsed_seconds=t_load.elapsed,
            detail=report.input_errors[0] if report.input_errors else f"from {schema_path.name}",
        ))
        if report.input_errors:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        with Timer("parse_schema") as t_parse:
            try:
                schema, config = parse_raw_schema(raw_data, config_overrides)
            except SchemaConfigurationError as exc:
                report.input_errors.append(exc.message)

        if report.input_errors:
            report.step_metrics.append(GenerationStepMetric(
                step_name="Parse Schema",
                success=False,
                elapsed_seconds=t_parse.elapsed,
                detail="schema or config rejected",
            ))
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        if schema.source_file is None:
            schema = schema.model_copy(update={"source_file": str(schema_path)})

        report.step_metrics.append(GenerationStepMetric(
            step_name="Parse Schema",
            success=True,
            elapsed_seconds=t_parse.elapsed,
            detail=f"{len(schema.tables)} tables parsed",
        ))
        logger.info(
            "Parsed schema %s: %d tables, project '%s'.",
            schema_path,
            len(schema.tables),
            config.project_name,
        )

        return self._run_pipeline(schema, config, output_dir, report, pipeline_start)

    # -----------------------------------------------------------------
    # Public: generate from in-memory objects
    # -----------------------------------------------------------------

    def generate(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
        output_dir: Optional[Path] = None,
    ) -> GenerationReport:
        """Full pipeline from pre-parsed schema and config objects."""
        report: GenerationReport = GenerationReport(dry_run=self._dry_run)
        return self._run_pipeline(
            schema, config, output_dir, report, time.perf_counter()
        )

    # -----------------------------------------------------------------
    # Public: analysis only
    # -----------------------------------------------------------------

    def analyse(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
    ) -> AnalysisResult:
        """
        Build one :class:`BeanDescriptor` per generated table.

        Junction tables are left out unless ``include_junction_tables``.
        A table whose bean hits a naming conflict or an unsupported junction
        shape is skipped together with every table inheriting from it.

        Raises:
            SchemaConfigurationError: The schema cannot be analysed at all.
        """
        graph: SchemaGraph = SchemaGraph(schema)
        naming: NamingStrategy = NamingStrategy(
            config.naming_convention, base_class_prefix=config.base_class_prefix
        )
        result: AnalysisResult = AnalysisResult(graph=graph)

        candidates: List[str] = [
            t.name for t in graph.tables()
            if config.include_junction_tables or not graph.is_junction_table(t.name)
        ]

        built: Dict[str, BeanDescriptor] = {}
        for table_name in candidates:
            try:
                built[table_name] = BeanDescriptor(table_name, graph, naming)
            except (NamingConflictError, UnsupportedShapeError) as exc:
                logger.warning("Skipping bean for table '%s': %s", table_name, exc.message)
                result.skipped[table_name] = exc.message

        failed: Set[str] = set(result.skipped)
        for table_name in candidates:
            if table_name not in built:
                continue
            ancestor: Optional[str] = self._failed_ancestor(graph, table_name, failed)
            if ancestor is not None:
                reason: str = f"parent table '{ancestor}' could not be generated"
                logger.warning("Skipping bean for table '%s': %s", table_name, reason)
                result.skipped[table_name] = reason
                continue
            result.beans.append(built[table_name])

        return result

    @staticmethod
    def _failed_ancestor(
        graph: SchemaGraph, table_name: str, failed: Set[str]
    ) -> Optional[str]:
        seen: Set[str] = {table_name}
        parent = graph.parent_relationship(table_name)
        while parent is not None and parent.foreign_table not in seen:
            if parent.foreign_table in failed:
                return parent.foreign_table
            seen.add(parent.foreign_table)
            parent = graph.parent_relationship(parent.foreign_table)
        return None

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _run_pipeline(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
        output_dir: Optional[Path],
        report: GenerationReport,
        pipeline_start: float,
    ) -> GenerationReport:
        target: Path = Path(output_dir) if output_dir is not None else Path(config.output_dir)
        report.project_name = config.project_name
        report.output_directory = str(target.resolve())

        if not self._step_validate(schema, config, report) and self._strict_validation:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        analysis: Optional[AnalysisResult] = self._step_analyse(schema, config, report)
        if analysis is None:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        if not analysis.beans:
            report.generation_errors.append("No bean could be generated — aborting export.")
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        generated_files: Dict[str, GeneratedFile] = self._step_render(
            analysis.beans, config, report
        )
        if not generated_files:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        if self._step_export(generated_files, config, target, report):
            self._step_notify(config, analysis.beans, report)

        return self._finalise_report(report, time.perf_counter() - pipeline_start)

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _step_validate(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
        report: GenerationReport,
    ) -> bool:
        """
        Run the full validation pipeline.

        Returns True if validation passed (warnings only count with
        ``fail_on_warnings``).
        """
        with Timer("validation") as t:
            result: ValidationResult = validate_full(schema, config)

        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)

        passed: bool = result.is_valid and not (
            self._fail_on_warnings and result.has_warnings
        )

        if result.has_errors:
            detail: str = f"{result.error_count} error(s)"
        elif result.has_warnings:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"

        report.step_metrics.append(GenerationStepMetric(
            step_name="Validate Schema",
            success=passed,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))

        for err in result.errors:
            logger.error("  ✗ %s", err)
        for warn in result.warnings:
            logger.warning("  ⚠ %s", warn)

        if self._fail_on_warnings and result.has_warnings:
            report.validation_errors.append(
                f"{result.warning_count} warning(s) treated as errors (fail_on_warnings)."
            )
        return passed

    # -----------------------------------------------------------------
    # Pipeline step: Bean analysis
    # -----------------------------------------------------------------

    def _step_analyse(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
        report: GenerationReport,
    ) -> Optional[AnalysisResult]:
        with Timer("analysis") as t:
            try:
                analysis: Optional[AnalysisResult] = self.analyse(schema, config)
            except SchemaConfigurationError as exc:
                report.generation_errors.append(f"Schema configuration error: {exc.message}")
                logger.error("Aborting: %s", exc.message)
                analysis = None

        if analysis is not None:
            report.skipped_tables.extend(
                f"{table}: {reason}" for table, reason in analysis.skipped.items()
            )
            report.generated_beans.extend(b.class_name for b in analysis.beans)
            report.total_beans = len(analysis.beans)

        report.step_metrics.append(GenerationStepMetric(
            step_name="Analyse Beans",
            success=analysis is not None,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{len(analysis.beans)} beans, {len(analysis.skipped)} skipped"
                if analysis is not None
                else "aborted"
            ),
        ))
        return analysis

    # -----------------------------------------------------------------
    # Pipeline step: Rendering
    # -----------------------------------------------------------------

    def _step_render(
        self,
        beans: Sequence[BeanDescriptor],
        config: GenerationConfig,
        report: GenerationReport,
    ) -> Dict[str, GeneratedFile]:
        with Timer("rendering") as t:
            generated_files: Dict[str, GeneratedFile] = BeanTemplateGenerator(
                config
            ).generate_all(beans)

        total_lines: int = sum(count_lines(f.content) for f in generated_files.values())
        detail: str = f"{len(generated_files)} files, ~{total_lines:,} lines"
        report.step_metrics.append(GenerationStepMetric(
            step_name="Render Beans",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))
        logger.info("Rendering complete: %s in %.3fs.", detail, t.elapsed)
        return generated_files

    # -----------------------------------------------------------------
    # Pipeline step: Export
    # -----------------------------------------------------------------

    def _step_export(
        self,
        generated_files: Dict[str, GeneratedFile],
        config: GenerationConfig,
        output_dir: Path,
        report: GenerationReport,
    ) -> bool:
        """Write all generated files; returns the export success flag."""
        with Timer("export") as t:
            exporter: BeanExporter = BeanExporter(
                config=config,
                output_dir=output_dir,
                clean_before_export=self._clean_output,
                dry_run=self._dry_run,
            )
            export_result: ExportResult = exporter.export(generated_files)

        report.total_files = export_result.manifest.total_files
        report.total_bytes = export_result.manifest.total_bytes
        report.total_lines = export_result.manifest.total_lines
        report.export_errors.extend(export_result.errors)
        report.kept_files.extend(export_result.skipped)
        report.manifest = export_result.manifest

        report.step_metrics.append(GenerationStepMetric(
            step_name="Export to Filesystem" if not self._dry_run else "Export (dry run)",
            success=export_result.success,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{len(export_result.written)} written, "
                f"{len(export_result.skipped)} kept"
            ),
        ))
        return export_result.success

    # -----------------------------------------------------------------
    # Pipeline step: Listeners
    # -----------------------------------------------------------------

    def _step_notify(
        self,
        config: GenerationConfig,
        beans: Sequence[BeanDescriptor],
        report: GenerationReport,
    ) -> None:
        if self._dry_run or not self._listeners:
            return
        for listener in self._listeners:
            try:
                listener.on_generate(config, beans)
            except Exception as exc:
                error_msg: str = (
                    f"Listener {type(listener).__name__} failed: "
                    f"{type(exc).__name__}: {exc}"
                )
                report.generation_errors.append(error_msg)
                logger.error(error_msg, exc_info=True)

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    def _finalise_report(
        self,
        report: GenerationReport,
        total_elapsed: float,
    ) -> GenerationReport:
        """Set final status and timing on the report."""
        report.total_elapsed_seconds = total_elapsed
        report.success = not (
            report.input_errors
            or report.validation_errors
            or report.generation_errors
            or report.export_errors
        )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "AnalysisResult",
    "BeanGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "GeneratorListener",
    "load_schema_file",
    "parse_raw_schema",
]

logger.debug("beangen.generator loaded.")
