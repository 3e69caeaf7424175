"""Shared test fixtures for zodspec.

Provides fixture documents, a one-call schema translator, isolated config
environments, output state management and a CLI runner. These fixtures are
discovered by pytest and available to every test module.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from zodspec.compiler import SchemaRegistry, TranslationContext, TypeTranslator
from zodspec.exceptions import UnsupportedKeywordWarning
from zodspec.models import GeneratorConfig, OpenAPIDocument, ValidationExpression
from zodspec.output import OutputFormat, OutputManager, reset_output, set_output
from zodspec.parser import extract_document, parse_schema

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the CLI log handler after every test.

    Both hold references to the sys.stdout/sys.stderr that were active when
    they were created; CliRunner closes those streams when a test ends.
    """
    yield
    reset_output()
    logger = logging.getLogger("zodspec")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Raw documents (plain dicts loaded from JSON files)
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_raw() -> dict[str, Any]:
    """Raw petstore 3.0 document."""
    with open(FIXTURES_DIR / "petstore.json") as f:
        return json.load(f)


@pytest.fixture
def circular_raw() -> dict[str, Any]:
    """Raw 3.1 document with a self-referencing and a mutually recursive schema."""
    with open(FIXTURES_DIR / "circular.json") as f:
        return json.load(f)


@pytest.fixture
def petstore_document(petstore_raw: dict[str, Any]) -> OpenAPIDocument:
    return extract_document(petstore_raw, "3.0.3")


@pytest.fixture
def circular_document(circular_raw: dict[str, Any]) -> OpenAPIDocument:
    return extract_document(circular_raw, "3.1.0")


# ---------------------------------------------------------------------------
# Translation helpers
# ---------------------------------------------------------------------------


TranslateFn = Callable[..., tuple[ValidationExpression, list[UnsupportedKeywordWarning]]]


@pytest.fixture
def translate() -> TranslateFn:
    """Translate one raw schema, optionally alongside named ``schemas``.

    Usage::

        expr, warnings = translate({"type": "string"}, schemas={...})
    """

    def _translate(
        raw: Any,
        schemas: Optional[dict[str, Any]] = None,
        config: Optional[GeneratorConfig] = None,
        optional: bool = False,
    ) -> tuple[ValidationExpression, list[UnsupportedKeywordWarning]]:
        warnings: list[UnsupportedKeywordWarning] = []
        registry = SchemaRegistry()
        for name, schema in (schemas or {}).items():
            registry.register(name, parse_schema(schema, f"#/components/schemas/{name}", warnings))
        translator = TypeTranslator(registry, config=config, warnings=warnings)
        node = parse_schema(raw, "#", warnings)
        expression = translator.translate(node, TranslationContext(optional=optional))
        return expression, warnings

    return _translate


@pytest.fixture
def make_translator() -> Callable[..., TypeTranslator]:
    """Build a translator over a registry filled from raw named schemas."""

    def _make(
        schemas: dict[str, Any], config: Optional[GeneratorConfig] = None
    ) -> TypeTranslator:
        warnings: list[UnsupportedKeywordWarning] = []
        registry = SchemaRegistry()
        for name, schema in schemas.items():
            registry.register(name, parse_schema(schema, f"#/components/schemas/{name}", warnings))
        return TypeTranslator(registry, config=config, warnings=warnings)

    return _make


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_DATA_HOME into tmp_path, clears every ZODSPEC_* variable and
    changes the working directory to tmp_path.
    """
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for field_name in GeneratorConfig.model_fields:
        monkeypatch.delenv(f"ZODSPEC_{field_name.upper()}", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a PLAIN-format, colourless output manager."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
