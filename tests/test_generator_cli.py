"""
tests/test_generator_cli.py
Integration tests for beangen.generator (BeanGenerator pipeline) and
beangen.cli (command-line entry point).

All generation runs write into pytest's tmp_path.
"""

from __future__ import annotations

import json
import pathlib
from typing import Any, Callable, Dict, List, Sequence

import pytest
import yaml

from beangen.beans import BeanDescriptor
from beangen.cli import (
    EXIT_GENERATION_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    cli_main,
)
from beangen.exceptions import SchemaConfigurationError
from beangen.exporters import MANIFEST_FILENAME
from beangen.generator import (
    BeanGenerator,
    GeneratorListener,
    load_schema_file,
    parse_raw_schema,
)
from beangen.models import GenerationConfig, SchemaDefinition

SchemaFactory = Callable[[List[Dict[str, Any]]], SchemaDefinition]

EXAMPLE_BEANS: List[str] = ["Country", "User", "Review", "Group", "Employee", "Manager"]


def _dump_yaml(path: pathlib.Path, data: Any) -> pathlib.Path:
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


def _run_cli(argv: List[str]) -> int:
    with pytest.raises(SystemExit) as info:
        cli_main(argv)
    return info.value.code


class RecordingListener:
    def __init__(self) -> None:
        self.calls: List[List[str]] = []

    def on_generate(self, config: GenerationConfig, beans: Sequence[BeanDescriptor]) -> None:
        self.calls.append([bean.class_name for bean in beans])


class FailingListener:
    def on_generate(self, config: GenerationConfig, beans: Sequence[BeanDescriptor]) -> None:
        raise RuntimeError("listener exploded")


# ===========================================================================
# Loaders
# ===========================================================================


class TestLoadSchemaFile:
    def test_yaml(self, schema_yaml_path: pathlib.Path) -> None:
        data = load_schema_file(schema_yaml_path)
        assert "schema" in data and "config" in data

    def test_json(self, schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> None:
        path = tmp_path / "schema.json"
        path.write_text(json.dumps(schema_dict), encoding="utf-8")
        assert load_schema_file(path) == schema_dict

    def test_unknown_extension_falls_back_to_yaml(
        self, schema_dict: Dict[str, Any], tmp_path: pathlib.Path
    ) -> None:
        path = _dump_yaml(tmp_path / "schema.txt", schema_dict)
        assert load_schema_file(path)["config"]["project_name"] == "company"

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_schema_file(tmp_path / "nope.yaml")

    def test_directory_is_rejected(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ValueError, match="not a file"):
            load_schema_file(tmp_path)

    def test_non_mapping_top_level(self, tmp_path: pathlib.Path) -> None:
        path = _dump_yaml(tmp_path / "schema.yaml", ["a", "b"])
        with pytest.raises(ValueError, match="mapping"):
            load_schema_file(path)

    def test_invalid_json(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "schema.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_schema_file(path)


class TestParseRawSchema:
    def test_example(self, schema_dict: Dict[str, Any]) -> None:
        schema, config = parse_raw_schema(schema_dict)
        assert len(schema.tables) == 7
        assert config.project_name == "company"

    def test_table_list_uses_default_config(self) -> None:
        schema, config = parse_raw_schema({
            "tables": [{"name": "t", "columns": [{"name": "id", "primary_key": True}]}]
        })
        assert schema.table_names == ["t"]
        assert config == GenerationConfig()

    def test_alternate_keys(self, schema_dict: Dict[str, Any]) -> None:
        raw = {
            "schema_definition": schema_dict["schema"],
            "generation_config": {"bean_package": "models"},
        }
        _, config = parse_raw_schema(raw)
        assert config.bean_package == "models"

    def test_overrides_win(self, schema_dict: Dict[str, Any]) -> None:
        _, config = parse_raw_schema(schema_dict, {"bean_package": "app.beans"})
        assert config.bean_package == "app.beans"
        assert config.project_name == "company"

    def test_missing_schema(self) -> None:
        with pytest.raises(SchemaConfigurationError, match="Cannot find schema"):
            parse_raw_schema({"config": {}})

    def test_bad_config(self, schema_dict: Dict[str, Any]) -> None:
        schema_dict["config"]["indent_size"] = 1
        with pytest.raises(SchemaConfigurationError, match="Config validation failed"):
            parse_raw_schema(schema_dict)

    def test_bad_schema(self, schema_dict: Dict[str, Any]) -> None:
        schema_dict["schema"]["tables"][1]["columns"][4]["foreign_key"] = "ghost.id"
        with pytest.raises(SchemaConfigurationError, match="Schema validation failed"):
            parse_raw_schema(schema_dict)


# ===========================================================================
# BeanGenerator
# ===========================================================================


class TestGenerateFromFile:
    def test_full_run(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        report = BeanGenerator().generate_from_file(schema_yaml_path, out)

        assert report.success, report.summary()
        assert report.project_name == "company"
        assert report.generated_beans == EXAMPLE_BEANS
        assert report.total_beans == 6
        assert report.total_files == 14
        assert report.kept_files == []

        assert (out / "beans" / "__init__.py").is_file()
        assert (out / "beans" / "base" / "__init__.py").is_file()
        assert (out / "beans" / "base" / "base_user.py").is_file()
        assert (out / "beans" / "user.py").is_file()
        assert not (out / "beans" / "user_group.py").exists()

        manifest = json.loads((out / MANIFEST_FILENAME).read_text(encoding="utf-8"))
        assert manifest["total_files"] == 14
        assert manifest["bean_package"] == "beans"
        paths = [f["relative_path"] for f in manifest["files"]]
        assert "beans/base/base_manager.py" in paths

    def test_editable_beans_are_kept(
        self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        out = tmp_path / "out"
        generator = BeanGenerator()
        generator.generate_from_file(schema_yaml_path, out)

        user = out / "beans" / "user.py"
        user.write_text("# edited by hand\n", encoding="utf-8")
        base = out / "beans" / "base" / "base_user.py"
        base.write_text("# stale\n", encoding="utf-8")

        report = generator.generate_from_file(schema_yaml_path, out)
        assert report.success
        assert "beans/user.py" in report.kept_files
        assert len(report.kept_files) == 6
        assert user.read_text(encoding="utf-8") == "# edited by hand\n"
        assert "class BaseUser" in base.read_text(encoding="utf-8")

    def test_overwrite_beans(
        self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        out = tmp_path / "out"
        BeanGenerator().generate_from_file(schema_yaml_path, out)
        user = out / "beans" / "user.py"
        user.write_text("# edited by hand\n", encoding="utf-8")

        report = BeanGenerator().generate_from_file(
            schema_yaml_path, out, config_overrides={"overwrite_beans": True}
        )
        assert report.success
        assert report.kept_files == []
        assert report.validation_warnings
        assert "class User(BaseUser):" in user.read_text(encoding="utf-8")

    def test_clean_output(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        stale = out / "beans" / "obsolete.py"
        stale.parent.mkdir(parents=True)
        stale.write_text("x = 1\n", encoding="utf-8")
        keep = out / "README.md"
        keep.write_text("not ours\n", encoding="utf-8")

        report = BeanGenerator(clean_output=True).generate_from_file(schema_yaml_path, out)
        assert report.success
        assert not stale.exists()
        assert keep.exists()

    def test_dry_run_writes_nothing(
        self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        out = tmp_path / "out"
        listener = RecordingListener()
        report = BeanGenerator(dry_run=True, listeners=[listener]).generate_from_file(
            schema_yaml_path, out
        )
        assert report.success
        assert report.dry_run
        assert report.total_files == 14
        assert not out.exists()
        assert listener.calls == []
        assert "(dry run)" in report.summary()

    def test_missing_file_is_input_error(self, tmp_path: pathlib.Path) -> None:
        report = BeanGenerator().generate_from_file(tmp_path / "nope.yaml", tmp_path)
        assert not report.success
        assert report.input_errors
        assert report.step_metrics[0].success is False

    def test_invalid_schema_is_input_error(self, tmp_path: pathlib.Path) -> None:
        path = _dump_yaml(tmp_path / "schema.yaml", {"config": {}})
        report = BeanGenerator().generate_from_file(path, tmp_path / "out")
        assert not report.success
        assert "Cannot find schema" in report.input_errors[0]


class TestGenerate:
    def test_in_memory(
        self,
        example_schema: SchemaDefinition,
        example_config: GenerationConfig,
        tmp_path: pathlib.Path,
    ) -> None:
        report = BeanGenerator().generate(example_schema, example_config, tmp_path)
        assert report.success
        assert report.output_directory == str(tmp_path.resolve())
        assert [m.step_name for m in report.step_metrics] == [
            "Validate Schema",
            "Analyse Beans",
            "Render Beans",
            "Export to Filesystem",
        ]

    def test_strict_validation_aborts(
        self,
        make_schema: SchemaFactory,
        inheritance_cycle_tables: List[Dict[str, Any]],
        tmp_path: pathlib.Path,
    ) -> None:
        report = BeanGenerator().generate(
            make_schema(inheritance_cycle_tables), GenerationConfig(), tmp_path / "out"
        )
        assert not report.success
        assert any("INHERITANCE_CYCLE" in e for e in report.validation_errors)
        assert report.generated_beans == []
        assert not (tmp_path / "out").exists()

    def test_lenient_validation_hits_analysis_error(
        self,
        make_schema: SchemaFactory,
        inheritance_cycle_tables: List[Dict[str, Any]],
        tmp_path: pathlib.Path,
    ) -> None:
        report = BeanGenerator(strict_validation=False).generate(
            make_schema(inheritance_cycle_tables), GenerationConfig(), tmp_path / "out"
        )
        assert not report.success
        assert any("Schema configuration error" in e for e in report.generation_errors)

    def test_fail_on_warnings(
        self,
        make_schema: SchemaFactory,
        name_clash_tables: List[Dict[str, Any]],
        tmp_path: pathlib.Path,
    ) -> None:
        report = BeanGenerator(fail_on_warnings=True).generate(
            make_schema(name_clash_tables), GenerationConfig(), tmp_path / "out"
        )
        assert not report.success
        assert any("fail_on_warnings" in e for e in report.validation_errors)

    def test_skipped_tables_do_not_fail_the_run(
        self,
        make_schema: SchemaFactory,
        name_clash_tables: List[Dict[str, Any]],
        tmp_path: pathlib.Path,
    ) -> None:
        report = BeanGenerator().generate(
            make_schema(name_clash_tables), GenerationConfig(), tmp_path
        )
        assert report.success
        assert report.generated_beans == ["Invoice"]
        assert report.skipped_tables[0].startswith("account:")
        assert not (tmp_path / "beans" / "account.py").exists()

    def test_nothing_to_generate(
        self,
        make_schema: SchemaFactory,
        self_junction_tables: List[Dict[str, Any]],
        tmp_path: pathlib.Path,
    ) -> None:
        tables = [t for t in self_junction_tables if t["name"] != "badge"]
        report = BeanGenerator().generate(make_schema(tables), GenerationConfig(), tmp_path)
        assert not report.success
        assert any("No bean could be generated" in e for e in report.generation_errors)


class TestAnalyse:
    def test_example(
        self, example_schema: SchemaDefinition, example_config: GenerationConfig
    ) -> None:
        analysis = BeanGenerator().analyse(example_schema, example_config)
        assert [b.class_name for b in analysis.beans] == EXAMPLE_BEANS
        assert analysis.skipped == {}
        assert analysis.bean("user_group") is None
        user = analysis.bean("user")
        assert user is not None and user.class_name == "User"

    def test_junction_tables_on_request(
        self, example_schema: SchemaDefinition, example_config: GenerationConfig
    ) -> None:
        config = example_config.model_copy(update={"include_junction_tables": True})
        analysis = BeanGenerator().analyse(example_schema, config)
        assert analysis.bean("user_group") is not None

    def test_unsupported_junction_skips_descendants(
        self, make_schema: SchemaFactory, self_junction_tables: List[Dict[str, Any]]
    ) -> None:
        analysis = BeanGenerator().analyse(make_schema(self_junction_tables), GenerationConfig())
        assert [b.table_name for b in analysis.beans] == ["badge"]
        assert set(analysis.skipped) == {"person", "vip"}
        assert analysis.skipped["vip"] == "parent table 'person' could not be generated"
        assert "friendship" in analysis.skipped["person"]

    def test_naming_conflict_skips_table(
        self, make_schema: SchemaFactory, name_clash_tables: List[Dict[str, Any]]
    ) -> None:
        analysis = BeanGenerator().analyse(make_schema(name_clash_tables), GenerationConfig())
        assert [b.table_name for b in analysis.beans] == ["invoice"]
        assert "account" in analysis.skipped

    def test_self_referencing_fk_skips_table(self, make_schema: SchemaFactory) -> None:
        schema = make_schema([
            {
                "name": "category",
                "columns": [
                    {"name": "id", "type": "integer", "primary_key": True,
                     "autoincrement": True, "nullable": False},
                    {"name": "parent_id", "type": "integer", "foreign_key": "category.id"},
                ],
            },
            {
                "name": "tag",
                "columns": [
                    {"name": "id", "type": "integer", "primary_key": True,
                     "autoincrement": True, "nullable": False},
                ],
            },
        ])
        analysis = BeanGenerator().analyse(schema, GenerationConfig())
        assert [b.table_name for b in analysis.beans] == ["tag"]
        assert "getCategory" in analysis.skipped["category"]


class TestListeners:
    def test_protocol(self) -> None:
        assert isinstance(RecordingListener(), GeneratorListener)

    def test_listener_called_after_export(
        self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        listener = RecordingListener()
        generator = BeanGenerator()
        generator.add_listener(listener)
        report = generator.generate_from_file(schema_yaml_path, tmp_path)
        assert report.success
        assert listener.calls == [EXAMPLE_BEANS]

    def test_failing_listener_is_reported(
        self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path
    ) -> None:
        after = RecordingListener()
        generator = BeanGenerator(listeners=[FailingListener(), after])
        report = generator.generate_from_file(schema_yaml_path, tmp_path)
        assert not report.success
        assert "listener exploded" in report.generation_errors[0]
        assert after.calls == [EXAMPLE_BEANS]
        assert (tmp_path / "beans" / "user.py").exists()


# ===========================================================================
# CLI
# ===========================================================================


class TestCli:
    def test_generation(
        self,
        schema_yaml_path: pathlib.Path,
        tmp_path: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        out = tmp_path / "out"
        assert _run_cli(["-s", str(schema_yaml_path), "-o", str(out)]) == EXIT_SUCCESS
        assert (out / "beans" / "base" / "base_review.py").is_file()
        assert "SUCCESS" in capsys.readouterr().out

    def test_quiet_prints_nothing(
        self,
        schema_yaml_path: pathlib.Path,
        tmp_path: pathlib.Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        argv = ["-s", str(schema_yaml_path), "-o", str(tmp_path / "out"), "-q"]
        assert _run_cli(argv) == EXIT_SUCCESS
        assert capsys.readouterr().out == ""

    def test_overrides(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        argv = [
            "-s", str(schema_yaml_path), "-o", str(out),
            "--package", "app.beans", "--naming", "snake_case", "--include-junction-tables",
        ]
        assert _run_cli(argv) == EXIT_SUCCESS
        base_user = (out / "app" / "beans" / "base" / "base_user.py").read_text(encoding="utf-8")
        assert "def get_login(self) -> str:" in base_user
        assert (out / "app" / "beans" / "user_group.py").is_file()

    def test_dry_run(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        assert _run_cli(["-s", str(schema_yaml_path), "-o", str(out), "--dry-run"]) == 0
        assert not out.exists()

    def test_missing_schema(self, tmp_path: pathlib.Path) -> None:
        assert _run_cli(["-s", str(tmp_path / "nope.yaml")]) == EXIT_INPUT_ERROR

    def test_schema_is_directory(self, tmp_path: pathlib.Path) -> None:
        assert _run_cli(["-s", str(tmp_path)]) == EXIT_INPUT_ERROR

    def test_bad_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "schema.yaml"
        path.write_text("tables: [unclosed\n", encoding="utf-8")
        assert _run_cli(["-s", str(path), "-o", str(tmp_path / "out")]) == EXIT_INPUT_ERROR

    def test_validate_only(
        self, schema_yaml_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert _run_cli(["-s", str(schema_yaml_path), "--validate-only"]) == EXIT_SUCCESS
        assert "All validations passed" in capsys.readouterr().out

    def test_validate_only_with_errors(
        self, inheritance_cycle_tables: List[Dict[str, Any]], tmp_path: pathlib.Path
    ) -> None:
        path = _dump_yaml(tmp_path / "schema.yaml", {"tables": inheritance_cycle_tables})
        assert _run_cli(["-s", str(path), "--validate-only"]) == EXIT_VALIDATION_ERROR

    def test_validate_only_fail_on_warnings(
        self, name_clash_tables: List[Dict[str, Any]], tmp_path: pathlib.Path
    ) -> None:
        path = _dump_yaml(tmp_path / "schema.yaml", {"tables": name_clash_tables})
        assert _run_cli(["-s", str(path), "--validate-only"]) == EXIT_SUCCESS
        assert (
            _run_cli(["-s", str(path), "--validate-only", "--fail-on-warnings"])
            == EXIT_VALIDATION_ERROR
        )

    def test_generation_validation_error(
        self, inheritance_cycle_tables: List[Dict[str, Any]], tmp_path: pathlib.Path
    ) -> None:
        path = _dump_yaml(tmp_path / "schema.yaml", {"tables": inheritance_cycle_tables})
        argv = ["-s", str(path), "-o", str(tmp_path / "out"), "-q"]
        assert _run_cli(argv) == EXIT_VALIDATION_ERROR
        assert _run_cli(argv + ["--no-strict"]) == EXIT_GENERATION_ERROR

    def test_describe(
        self, schema_yaml_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert _run_cli(["-s", str(schema_yaml_path), "--describe", "user"]) == EXIT_SUCCESS
        described = json.loads(capsys.readouterr().out)
        assert described["class_name"] == "User"
        assert described["constructor"] == ["login"]

    def test_describe_junction(
        self, schema_yaml_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert _run_cli(["-s", str(schema_yaml_path), "--describe", "user_group"]) == 0
        assert json.loads(capsys.readouterr().out)["class_name"] == "UserGroup"

    def test_describe_unknown_table(self, schema_yaml_path: pathlib.Path) -> None:
        argv = ["-s", str(schema_yaml_path), "--describe", "ghost"]
        assert _run_cli(argv) == EXIT_INPUT_ERROR

    def test_describe_skipped_table(
        self, name_clash_tables: List[Dict[str, Any]], tmp_path: pathlib.Path
    ) -> None:
        path = _dump_yaml(tmp_path / "schema.yaml", {"tables": name_clash_tables})
        assert _run_cli(["-s", str(path), "--describe", "account"]) == EXIT_GENERATION_ERROR
