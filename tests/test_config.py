"""Tests for zodspec.config -- data dir, atomic writes, project/env config, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from zodspec.config import (
    _atomic_write,
    get_data_dir,
    load_env_config,
    load_project_config,
    resolve_config,
    write_output,
)
from zodspec.exceptions import ConfigError
from zodspec.models import GeneratorConfig


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


# ---------------------------------------------------------------------------
# Data directory
# ---------------------------------------------------------------------------


class TestDataDir:
    def test_xdg_data_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("zodspec.config.platform.system", lambda: "Linux")
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))
        result = get_data_dir()
        assert result == tmp_path / "xdg" / "zodspec"
        assert result.is_dir()

    def test_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("zodspec.config.platform.system", lambda: "FreeBSD")
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_data_dir() == tmp_path / ".local" / "share" / "zodspec"

    def test_non_xdg_platform(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("zodspec.config.platform.system", lambda: "Darwin")
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_data_dir() == tmp_path / ".zodspec"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_writes_and_creates_parents(self, tmp_path: Path) -> None:
        target = tmp_path / "out" / "api.ts"
        _atomic_write(target, "export {};\n")
        assert target.read_text(encoding="utf-8") == "export {};\n"
        assert [p.name for p in target.parent.iterdir()] == ["api.ts"]

    def test_overwrites(self, tmp_path: Path) -> None:
        target = tmp_path / "api.ts"
        target.write_text("old")
        _atomic_write(target, "new")
        assert target.read_text() == "new"

    def test_failure_keeps_original_and_cleans_up(self, tmp_path: Path) -> None:
        target = tmp_path / "api.ts"
        target.write_text("original")
        with patch("zodspec.config.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                _atomic_write(target, "new")
        assert target.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["api.ts"]


class TestWriteOutput:
    def test_returns_resolved_path(self, tmp_path: Path) -> None:
        path = write_output(tmp_path / "client.ts", "const x = 1;\n")
        assert path == (tmp_path / "client.ts").resolve()
        assert path.read_text() == "const x = 1;\n"

    def test_unwritable_target(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(ConfigError, match="Cannot write output file"):
            write_output(blocker / "client.ts", "x")


# ---------------------------------------------------------------------------
# Project config
# ---------------------------------------------------------------------------


class TestProjectConfig:
    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_project_config(tmp_path) is None

    def test_reads_object(self, tmp_path: Path) -> None:
        _write_json(tmp_path / "zodspec.json", {"strict_objects": True})
        assert load_project_config(tmp_path) == {"strict_objects": True}

    def test_defaults_to_cwd(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "zodspec.json", {"api_client_name": "client"})
        assert load_project_config() == {"api_client_name": "client"}

    def test_invalid_json(self, tmp_path: Path) -> None:
        (tmp_path / "zodspec.json").write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid project config"):
            load_project_config(tmp_path)

    def test_not_an_object(self, tmp_path: Path) -> None:
        _write_json(tmp_path / "zodspec.json", ["strict_objects"])
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_project_config(tmp_path)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


class TestEnvConfig:
    @pytest.mark.parametrize("raw", ["1", "true", "YES", " on "])
    def test_true_values(self, raw: str) -> None:
        assert load_env_config({"ZODSPEC_STRICT_OBJECTS": raw}) == {"strict_objects": True}

    @pytest.mark.parametrize("raw", ["0", "false", "No", "off"])
    def test_false_values(self, raw: str) -> None:
        assert load_env_config({"ZODSPEC_WITH_DEFAULT_VALUES": raw}) == {
            "with_default_values": False
        }

    def test_string_field(self) -> None:
        assert load_env_config({"ZODSPEC_API_CLIENT_NAME": "client"}) == {
            "api_client_name": "client"
        }

    def test_empty_and_unrelated_ignored(self) -> None:
        assert load_env_config({"ZODSPEC_EXPORT_SCHEMAS": "", "ZODSPEC_OTHER": "1"}) == {}

    def test_invalid_boolean(self) -> None:
        with pytest.raises(ConfigError, match="ZODSPEC_EXCLUDE_DEPRECATED must be a boolean"):
            load_env_config({"ZODSPEC_EXCLUDE_DEPRECATED": "maybe"})

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ZODSPEC_EXPORT_SCHEMAS", "0")
        assert load_env_config()["export_schemas"] is False


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_defaults(self, tmp_path: Path) -> None:
        assert resolve_config(environ={}, directory=tmp_path) == GeneratorConfig()

    def test_project_over_defaults(self, tmp_path: Path) -> None:
        _write_json(tmp_path / "zodspec.json", {"strict_objects": True})
        config = resolve_config(environ={}, directory=tmp_path)
        assert config.strict_objects is True
        assert config.with_default_values is True

    def test_env_over_project(self, tmp_path: Path) -> None:
        _write_json(tmp_path / "zodspec.json", {"strict_objects": True, "api_client_name": "a"})
        config = resolve_config(
            environ={"ZODSPEC_STRICT_OBJECTS": "false"}, directory=tmp_path
        )
        assert config.strict_objects is False
        assert config.api_client_name == "a"

    def test_cli_over_env(self, tmp_path: Path) -> None:
        config = resolve_config(
            {"api_client_name": "cli", "strict_objects": None},
            environ={"ZODSPEC_API_CLIENT_NAME": "env", "ZODSPEC_STRICT_OBJECTS": "1"},
            directory=tmp_path,
        )
        assert config.api_client_name == "cli"
        # None means the flag was not given
        assert config.strict_objects is True

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        _write_json(tmp_path / "zodspec.json", {"strict": True})
        with pytest.raises(ConfigError, match="Invalid configuration"):
            resolve_config(environ={}, directory=tmp_path)

    def test_invalid_value_rejected(self, tmp_path: Path) -> None:
        _write_json(tmp_path / "zodspec.json", {"export_schemas": "sometimes"})
        with pytest.raises(ConfigError):
            resolve_config(environ={}, directory=tmp_path)

    @pytest.mark.parametrize("name", ["my api", "2fast", "class", "endpoints", ""])
    def test_unusable_client_name_rejected(self, tmp_path: Path, name: str) -> None:
        with pytest.raises(ConfigError, match="api_client_name"):
            resolve_config({"api_client_name": name}, environ={}, directory=tmp_path)

    def test_default_client_name_accepted(self, tmp_path: Path) -> None:
        assert resolve_config(environ={}, directory=tmp_path).api_client_name == "api"

    def test_uses_process_environment(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ZODSPEC_EXCLUDE_DEPRECATED", "yes")
        assert resolve_config().exclude_deprecated is True
