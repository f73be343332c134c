# File: beangen/exporters.py
"""
beangen - Bean Exporter (File-System Manager)
==============================================

Responsible for:
    1. Writing generated bean files atomically (write-to-temp then replace).
    2. Protecting hand-edited bean classes: an existing editable file is
       never overwritten unless ``overwrite_beans`` is set.
    3. Producing ``beangen-manifest.json`` with SHA-256 checksums.
    4. Dry-run mode, reporting what would be written without touching disk.

If a write fails mid-batch, previously written files remain intact; every
individual file is atomic.
"""

from __future__ import annotations

import json
import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

from beangen.models import GenerationConfig
from beangen.templates import GeneratedFile
from beangen.utils import Timer, count_lines, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("beangen.exporters")

MANIFEST_FILENAME: str = "beangen-manifest.json"

_PRESERVED_ON_CLEAN: Tuple[str, ...] = (".git", ".gitignore", ".gitkeep")


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported file."""

    relative_path: str
    absolute_path: str
    size_bytes: int
    line_count: int
    sha256: str
    status: str = "written"  # "written" | "skipped" | "planned"


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """
    Complete manifest of all exported files.

    Serialisable to JSON for build reproducibility verification.
    """

    project_name: str = ""
    bean_package: str = ""
    generator_version: str = ""
    export_timestamp: str = ""
    output_directory: str = ""
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    files: List[FileRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert manifest to a JSON-serialisable dictionary."""
        return {
            "project_name": self.project_name,
            "bean_package": self.bean_package,
            "generator_version": self.generator_version,
            "export_timestamp": self.export_timestamp,
            "output_directory": self.output_directory,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [
                {
                    "relative_path": f.relative_path,
                    "size_bytes": f.size_bytes,
                    "line_count": f.line_count,
                    "sha256": f.sha256,
                    "status": f.status,
                }
                for f in self.files
            ],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Final result returned by ``BeanExporter.export()``."""

    success: bool
    manifest: ExportManifest
    written: Tuple[str, ...]
    skipped: Tuple[str, ...]
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
    elapsed_seconds: float
    dry_run: bool = False


# ---------------------------------------------------------------------------
# Exporter
# ---------------------------------------------------------------------------


class BeanExporter:
    """
    Writes rendered bean files below an output directory.

    Usage::

        exporter = BeanExporter(config, output_dir=Path("./generated"))
        result = exporter.export(generated_files)
        print(result.manifest.to_json())

    Not thread-safe: use one exporter per output directory.
    """

    def __init__(
        self,
        config: GenerationConfig,
        output_dir: Path,
        *,
        clean_before_export: bool = False,
        dry_run: bool = False,
        atomic_writes: bool = True,
        generate_manifest: bool = True,
    ) -> None:
        self._config: GenerationConfig = config
        self._output_dir: Path = output_dir.resolve()
        self._clean_before_export: bool = clean_before_export
        self._dry_run: bool = dry_run
        self._atomic_writes: bool = atomic_writes
        self._generate_manifest: bool = generate_manifest

        self._errors: List[str] = []
        self._warnings: List[str] = []
        self._records: List[FileRecord] = []

        logger.debug(
            "BeanExporter initialised: output_dir=%s, dry_run=%s.",
            self._output_dir,
            self._dry_run,
        )

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def export(self, generated_files: Dict[str, GeneratedFile]) -> ExportResult:
        """
        Export all generated files to the filesystem.

        Args:
            generated_files: Mapping of relative_path → GeneratedFile.

        Returns:
            ExportResult with success flag, manifest, and error details.
        """
        with Timer("export") as timer:
            try:
                self._pre_export_cleanup()
                for rel_path, generated in generated_files.items():
                    self._export_file(rel_path, generated)
                if self._generate_manifest and not self._dry_run:
                    self._write_manifest_file()
            except OSError as exc:
                error_msg: str = f"Fatal export error: {type(exc).__name__}: {exc}"
                self._errors.append(error_msg)
                logger.error(error_msg, exc_info=True)

        manifest: ExportManifest = self._build_manifest()
        success: bool = not self._errors

        result: ExportResult = ExportResult(
            success=success,
            manifest=manifest,
            written=tuple(
                r.relative_path for r in self._records if r.status in ("written", "planned")
            ),
            skipped=tuple(r.relative_path for r in self._records if r.status == "skipped"),
            errors=tuple(self._errors),
            warnings=tuple(self._warnings),
            elapsed_seconds=timer.elapsed,
            dry_run=self._dry_run,
        )

        if success:
            logger.info(
                "Export %s: %d file(s), %d skipped, %.3fs.",
                "planned (dry run)" if self._dry_run else "completed",
                len(result.written),
                len(result.skipped),
                timer.elapsed,
            )
        else:
            logger.error(
                "Export completed with %d error(s) in %.3fs.",
                len(self._errors),
                timer.elapsed,
            )
        return result

    # -----------------------------------------------------------------
    # Internal: directory management
    # -----------------------------------------------------------------

    def _pre_export_cleanup(self) -> None:
        """Remove the previously generated bean package if configured to."""
        if not self._clean_before_export:
            return

        package_root: Path = self._output_dir / self._config.bean_package.replace(".", "/")
        targets: List[Path] = [package_root, self._output_dir / MANIFEST_FILENAME]
        for item in targets:
            if not item.exists() or item.name in _PRESERVED_ON_CLEAN:
                continue
            if self._dry_run:
                logger.info("Dry run: would remove %s", item)
                continue
            logger.info("Cleaning %s", item)
            try:
                if item.is_dir():
                    shutil.rmtree(item)
                else:
                    item.unlink()
            except OSError as exc:
                warning_msg: str = f"Could not remove {item}: {exc}"
                self._warnings.append(warning_msg)
                logger.warning(warning_msg)

    # -----------------------------------------------------------------
    # Internal: file writing
    # -----------------------------------------------------------------

    def _export_file(self, rel_path: str, generated: GeneratedFile) -> None:
        full_path: Path = self._output_dir / rel_path
        content: str = generated.content

        if generated.editable and full_path.exists() and not self._config.overwrite_beans:
            logger.debug("Keeping existing editable bean %s.", rel_path)
            existing: str = full_path.read_text(encoding="utf-8")
            self._records.append(self._record(rel_path, full_path, existing, "skipped"))
            return

        if self._dry_run:
            self._records.append(self._record(rel_path, full_path, content, "planned"))
            return

        try:
            write_file(full_path, content, atomic=self._atomic_writes)
        except OSError as exc:
            error_msg: str = f"Failed to write {rel_path}: {type(exc).__name__}: {exc}"
            self._errors.append(error_msg)
            logger.error(error_msg)
            return
        self._records.append(self._record(rel_path, full_path, content, "written"))

    @staticmethod
    def _record(rel_path: str, full_path: Path, content: str, status: str) -> FileRecord:
        return FileRecord(
            relative_path=rel_path,
            absolute_path=str(full_path),
            size_bytes=len(content.encode("utf-8")),
            line_count=count_lines(content),
            sha256=sha256_hex(content),
            status=status,
        )

    # -----------------------------------------------------------------
    # Internal: manifest
    # -----------------------------------------------------------------

    def _build_manifest(self) -> ExportManifest:
        """Build the export manifest from collected file records."""
        import beangen

        return ExportManifest(
            project_name=self._config.project_name,
            bean_package=self._config.bean_package,
            generator_version=beangen.__version__,
            export_timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            output_directory=str(self._output_dir),
            total_files=len(self._records),
            total_bytes=sum(r.size_bytes for r in self._records),
            total_lines=sum(r.line_count for r in self._records),
            files=list(self._records),
        )

    def _write_manifest_file(self) -> None:
        manifest_path: Path = self._output_dir / MANIFEST_FILENAME
        try:
            write_file(manifest_path, self._build_manifest().to_json() + "\n")
            logger.debug("Wrote manifest to %s.", manifest_path)
        except OSError as exc:
            self._warnings.append(f"Could not write manifest: {exc}")
            logger.warning("Failed to write manifest: %s", exc)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MANIFEST_FILENAME",
    "BeanExporter",
    "ExportManifest",
    "ExportResult",
    "FileRecord",
]

logger.debug("beangen.exporters loaded.")
