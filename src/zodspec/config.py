"""Generator configuration, precedence resolution, and atomic output writes.

* **Project config** -- an optional ``./zodspec.json`` holding any of the
  :class:`~zodspec.models.GeneratorConfig` fields.
* **Environment** -- ``ZODSPEC_<FIELD>`` variables, e.g.
  ``ZODSPEC_STRICT_OBJECTS=1``.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, the project config and the model defaults.
* **Output** -- :func:`write_output` writes generated files atomically
  (:func:`_atomic_write`), so a failed run never leaves a half-written
  client behind.
* **Crash logs** -- :func:`get_data_dir` is the XDG data directory used by
  :func:`zodspec.app.main` for crash tracebacks.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from zodspec.compiler.registry import is_client_name
from zodspec.exceptions import ConfigError
from zodspec.models import GeneratorConfig

_APP_NAME = "zodspec"
_PROJECT_CONFIG_FILENAME = "zodspec.json"
_ENV_PREFIX = "ZODSPEC_"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


# --- Directories ---


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/zodspec/`` (default ``~/.local/share/zodspec/``).
    On macOS/Windows: ``~/.zodspec/``.
    """
    system = platform.system()
    if system == "Linux" or system.endswith("BSD"):
        base = os.environ.get("XDG_DATA_HOME", "")
        root = Path(base) if base else Path.home() / ".local" / "share"
        path = root / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* through a temp file in the same directory.

    ``os.replace`` makes the final rename atomic on POSIX; the temp file is
    removed on any failure.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


def write_output(path: str | Path, text: str) -> Path:
    """Atomically write generated source to *path* and return the resolved path.

    Raises:
        ConfigError: If the file cannot be written.
    """
    target = Path(path).expanduser()
    try:
        _atomic_write(target, text)
    except OSError as exc:
        raise ConfigError(f"Cannot write output file {target}: {exc}") from exc
    return target.resolve()


# --- Project-local config ---


def load_project_config(directory: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load ``zodspec.json`` from *directory* (default: the working directory).

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file is not valid JSON or not a JSON object.
    """
    path = (directory or Path.cwd()) / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Environment ---


def _parse_env_value(name: str, raw: str, annotation: Any) -> Any:
    if annotation is bool:
        value = raw.strip().lower()
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        raise ConfigError(f"Environment variable {name} must be a boolean, got {raw!r}")
    return raw


def load_env_config(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Collect ``ZODSPEC_<FIELD>`` overrides from the environment.

    Raises:
        ConfigError: If a boolean variable holds an unrecognised value.
    """
    environ = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for field_name, field in GeneratorConfig.model_fields.items():
        var = f"{_ENV_PREFIX}{field_name.upper()}"
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        overrides[field_name] = _parse_env_value(var, raw, field.annotation)
    return overrides


# --- Precedence resolution ---


def resolve_config(
    cli_overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    directory: Optional[Path] = None,
) -> GeneratorConfig:
    """Resolve the effective :class:`~zodspec.models.GeneratorConfig`.

    Precedence (high to low):
        1. CLI flags (``cli_overrides``; ``None`` values are ignored)
        2. Environment variables (``ZODSPEC_STRICT_OBJECTS`` ...)
        3. Project config (``./zodspec.json``)
        4. Defaults

    Raises:
        ConfigError: If any layer holds an unknown key or an invalid value, or
            ``api_client_name`` is not a usable identifier.
    """
    merged: dict[str, Any] = {}
    # 3. Project-local config
    project = load_project_config(directory)
    if project is not None:
        merged.update(project)
    # 2. Environment variables
    merged.update(load_env_config(environ))
    # 1. CLI flags
    if cli_overrides:
        merged.update({k: v for k, v in cli_overrides.items() if v is not None})

    try:
        config = GeneratorConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    if not is_client_name(config.api_client_name):
        raise ConfigError(
            f"Invalid configuration: api_client_name {config.api_client_name!r} "
            "is not a usable TypeScript identifier"
        )
    return config
