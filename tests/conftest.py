"""Shared test fixtures for specroute.

Provides the petstore descriptions (Swagger 2.0 and OpenAPI 3.0), registries
built from them, an isolated working directory for config tests, and the
output/CLI helpers. Fixtures are discovered by pytest automatically.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from specroute.output import OutputFormat, OutputManager, reset_output, set_output
from specroute.registry import Registry, bootstrap_spec


FIXTURES_DIR = Path(__file__).parent / "fixtures"

BASE_URL = "http://localhost:8888"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager keeps references to sys.stdout/sys.stderr from the
    moment it was created; CliRunner swaps those streams per invocation.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Description fixtures (plain dicts loaded from JSON files)
# ---------------------------------------------------------------------------


@pytest.fixture
def swagger_raw() -> dict[str, Any]:
    """Raw Swagger 2.0 petstore document."""
    with open(FIXTURES_DIR / "petstore_swagger.json") as f:
        return json.load(f)


@pytest.fixture
def openapi_raw() -> dict[str, Any]:
    """Raw OpenAPI 3.0 petstore document."""
    with open(FIXTURES_DIR / "petstore_openapi.json") as f:
        return json.load(f)


@pytest.fixture
def swagger_file() -> Path:
    return FIXTURES_DIR / "petstore_swagger.json"


@pytest.fixture
def openapi_file() -> Path:
    return FIXTURES_DIR / "petstore_openapi.json"


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------


@pytest.fixture
def swagger_registry(swagger_raw: dict[str, Any]) -> Registry:
    """Registry compiled from the Swagger petstore with base URL ``BASE_URL``."""
    return bootstrap_spec(BASE_URL, swagger_raw)


@pytest.fixture
def openapi_registry(openapi_raw: dict[str, Any]) -> Registry:
    """Registry compiled from the OpenAPI petstore with base URL ``BASE_URL``."""
    return bootstrap_spec(BASE_URL, openapi_raw)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the test from an empty temporary directory with no SPECROUTE_* variables.

    Returns:
        The tmp_path root directory, which is also the working directory.
    """
    for var in ["SPECROUTE_SPEC", "SPECROUTE_BASE_URL"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
