"""CLI tests for the zodspec Typer application."""

from __future__ import annotations

import json
import re
import textwrap
from pathlib import Path

import pytest

from zodspec import __version__
from zodspec.app import app

FIXTURES_DIR = Path(__file__).parent / "fixtures"

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")

PETSTORE = str(FIXTURES_DIR / "petstore.json")
CIRCULAR = str(FIXTURES_DIR / "circular.json")
PETSTORE_YAML = str(FIXTURES_DIR / "petstore.yaml")


def _strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


# ---------------------------------------------------------------------------
# Root options
# ---------------------------------------------------------------------------


class TestRoot:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"zodspec {__version__}" in result.output

    def test_help_lists_commands(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        text = _strip_ansi(result.output)
        assert "generate" in text
        assert "inspect" in text


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


class TestGenerate:
    def test_to_stdout(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["generate", PETSTORE])
        assert result.exit_code == 0, result.output
        assert "const Pet = z.object({" in result.output
        assert 'path: "/pets/:petId",' in result.output
        assert "export const api = new Zodios(endpoints);" in result.output

    def test_to_file(self, cli_runner, isolated_config: Path) -> None:
        target = isolated_config / "src" / "api.ts"
        result = cli_runner.invoke(app, ["--no-color", "generate", PETSTORE, "-o", str(target)])
        assert result.exit_code == 0, result.output
        assert "Wrote" in result.output
        source = target.read_text(encoding="utf-8")
        assert source.startswith("import { makeApi, Zodios")
        assert "createApiClient" in source

    def test_yaml_document(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["generate", PETSTORE_YAML])
        assert result.exit_code == 0, result.output
        assert 'const Status = z.enum(["ok", "degraded"]);' in result.output
        assert "response: z.string()," in result.output

    def test_flags(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app,
            [
                "generate",
                PETSTORE,
                "--strict-objects",
                "--no-defaults",
                "--exclude-deprecated",
                "--no-export-schemas",
                "--api-name",
                "petstore",
            ],
        )
        assert result.exit_code == 0, result.output
        assert ".strict()" in result.output
        assert ".default(" not in result.output
        assert '"deletePet"' not in result.output
        assert "export const schemas" not in result.output
        assert "export const petstore = new Zodios(endpoints);" in result.output

    def test_project_config(self, cli_runner, isolated_config: Path) -> None:
        (isolated_config / "zodspec.json").write_text(json.dumps({"strict_objects": True}))
        result = cli_runner.invoke(app, ["generate", PETSTORE])
        assert result.exit_code == 0, result.output
        assert ".passthrough()" not in result.output

    def test_cli_flag_beats_project_config(self, cli_runner, isolated_config: Path) -> None:
        (isolated_config / "zodspec.json").write_text(json.dumps({"strict_objects": True}))
        result = cli_runner.invoke(app, ["generate", PETSTORE, "--passthrough-objects"])
        assert result.exit_code == 0, result.output
        assert ".strict()" not in result.output

    def test_circular_document(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["generate", CIRCULAR])
        assert result.exit_code == 0, result.output
        assert "z.lazy(() => Node)" in result.output

    def test_warning_summary(self, cli_runner, isolated_config: Path) -> None:
        spec = isolated_config / "odd.json"
        spec.write_text(
            json.dumps(
                {
                    "openapi": "3.0.3",
                    "info": {"title": "Odd", "version": "1"},
                    "paths": {},
                    "components": {"schemas": {"Neg": {"not": {"type": "string"}}}},
                }
            )
        )
        result = cli_runner.invoke(app, ["--no-color", "generate", str(spec)])
        assert result.exit_code == 0, result.output
        assert "const Neg = z.unknown();" in result.output
        assert "1 warning(s)" in result.output
        assert "inspect schemas --warnings" in result.output

    def test_yaml_dates_render_as_strings(self, cli_runner, isolated_config: Path) -> None:
        spec = isolated_config / "dates.yaml"
        spec.write_text(
            textwrap.dedent(
                """\
                openapi: 3.0.3
                info: {title: Dates, version: "1"}
                paths: {}
                components:
                  schemas:
                    Day:
                      type: string
                      enum: [2020-01-01, 2020-01-02]
                      default: 2020-01-01
                """
            )
        )
        result = cli_runner.invoke(app, ["generate", str(spec)])
        assert result.exit_code == 0, result.output
        assert 'z.enum(["2020-01-01", "2020-01-02"]).default("2020-01-01")' in result.output


class TestGenerateErrors:
    def test_missing_file(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--no-color", "generate", "missing.json"])
        assert result.exit_code == 7
        assert "Spec file not found" in result.output

    def test_unsupported_version(self, cli_runner, isolated_config: Path) -> None:
        spec = isolated_config / "swagger.json"
        spec.write_text(json.dumps({"swagger": "2.0", "info": {}, "paths": {}}))
        result = cli_runner.invoke(app, ["generate", str(spec)])
        assert result.exit_code == 7

    def test_dangling_reference(self, cli_runner, isolated_config: Path) -> None:
        spec = isolated_config / "dangling.json"
        spec.write_text(
            json.dumps(
                {
                    "openapi": "3.1.0",
                    "info": {"title": "Broken", "version": "1"},
                    "paths": {},
                    "components": {
                        "schemas": {"A": {"items": {"$ref": "#/components/schemas/Gone"}}}
                    },
                }
            )
        )
        result = cli_runner.invoke(app, ["--no-color", "generate", str(spec)])
        assert result.exit_code == 8
        assert "Gone" in result.output

    def test_unusable_api_name(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app, ["--no-color", "generate", PETSTORE, "--api-name", "my api"]
        )
        assert result.exit_code == 1
        assert "api_client_name" in result.output
        assert "new Zodios" not in result.output

    def test_bad_environment_value(
        self, cli_runner, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ZODSPEC_STRICT_OBJECTS", "maybe")
        result = cli_runner.invoke(app, ["--no-color", "generate", PETSTORE])
        assert result.exit_code == 1
        assert "must be a boolean" in result.output


# ---------------------------------------------------------------------------
# inspect
# ---------------------------------------------------------------------------


class TestInspectSchemas:
    def test_plain_rows(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--plain", "inspect", "schemas", PETSTORE])
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "Schema\tIdentifier\tKind\tModifiers\tDepends on\tLazy"
        assert lines[1] == "Pet\tPet\tobject\tpassthrough\t-\t-"
        assert lines[2] == "Owner\tOwner\tobject\tpassthrough\tPet\t-"

    def test_lazy_column(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--plain", "inspect", "schemas", CIRCULAR])
        assert result.exit_code == 0, result.output
        assert "Node\tNode\tobject\tpassthrough\tParent\tNode" in result.output.splitlines()

    def test_json(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "inspect", "schemas", PETSTORE])
        assert result.exit_code == 0, result.output
        records = json.loads(result.output)
        assert [r["Schema"] for r in records] == ["Pet", "Owner", "NewPet", "Error"]


class TestInspectEndpoints:
    def test_json(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "inspect", "endpoints", PETSTORE])
        assert result.exit_code == 0, result.output
        records = json.loads(result.output)
        assert [r["Alias"] for r in records] == [
            "listPets",
            "createPet",
            "getPetById",
            "deletePet",
        ]
        assert records[1]["Parameters"] == "body (body)"
        assert records[2] == {
            "Method": "GET",
            "Path": "/pets/{petId}",
            "Alias": "getPetById",
            "Parameters": "petId (path)",
            "Response": "Pet",
            "Errors": "404",
        }

    def test_alias_filter(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app, ["--plain", "inspect", "endpoints", PETSTORE, "--alias", "deletePet"]
        )
        assert result.exit_code == 0, result.output
        assert result.output.splitlines()[1] == "DELETE\t/pets/{petId}\tdeletePet\tpetId (path)\tz.void()\t-"

    def test_unknown_alias(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app, ["--no-color", "inspect", "endpoints", PETSTORE, "-a", "nope"]
        )
        assert result.exit_code == 1
        assert "No endpoint with alias 'nope'" in result.output
