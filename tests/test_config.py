"""Tests for specroute.config -- project config, precedence, base URL derivation."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from specroute.config import derive_base_url, load_project_config, resolve_config
from specroute.exceptions import ConfigError
from specroute.models import ProjectConfig


def _write_project_config(directory: Path, data: Any) -> None:
    (directory / "specroute.json").write_text(json.dumps(data), encoding="utf-8")


# ---------------------------------------------------------------------------
# Project-local config
# ---------------------------------------------------------------------------


class TestLoadProjectConfig:

    def test_missing_file(self, isolated_config: Path) -> None:
        assert load_project_config() is None

    def test_reads_working_directory(self, isolated_config: Path) -> None:
        _write_project_config(isolated_config, {"spec": "api.yaml", "base_url": "http://localhost:9000"})
        assert load_project_config() == ProjectConfig(spec="api.yaml", base_url="http://localhost:9000")

    def test_explicit_directory(self, tmp_path: Path) -> None:
        _write_project_config(tmp_path, {"spec": "other.json"})
        assert load_project_config(tmp_path).spec == "other.json"

    def test_unknown_keys_ignored(self, isolated_config: Path) -> None:
        _write_project_config(isolated_config, {"spec": "api.yaml", "colour": "blue"})
        assert load_project_config().spec == "api.yaml"

    def test_invalid_json(self, isolated_config: Path) -> None:
        (isolated_config / "specroute.json").write_text("{nope", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid project config"):
            load_project_config()

    def test_wrong_shape(self, isolated_config: Path) -> None:
        _write_project_config(isolated_config, {"spec": ["not", "a", "string"]})
        with pytest.raises(ConfigError, match="Invalid project config"):
            load_project_config()


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:

    def test_defaults(self, isolated_config: Path) -> None:
        assert resolve_config() == ProjectConfig()

    def test_project_config(self, isolated_config: Path) -> None:
        _write_project_config(isolated_config, {"spec": "project.json", "base_url": "http://project"})
        config = resolve_config()
        assert (config.spec, config.base_url) == ("project.json", "http://project")

    def test_env_beats_project(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_project_config(isolated_config, {"spec": "project.json", "base_url": "http://project"})
        monkeypatch.setenv("SPECROUTE_SPEC", "env.json")
        monkeypatch.setenv("SPECROUTE_BASE_URL", "http://env")
        config = resolve_config()
        assert (config.spec, config.base_url) == ("env.json", "http://env")

    def test_cli_beats_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPECROUTE_SPEC", "env.json")
        monkeypatch.setenv("SPECROUTE_BASE_URL", "http://env")
        config = resolve_config(cli_spec="cli.json", cli_base_url="http://cli")
        assert (config.spec, config.base_url) == ("cli.json", "http://cli")

    def test_layers_resolved_independently(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_project_config(isolated_config, {"spec": "project.json", "base_url": "http://project"})
        monkeypatch.setenv("SPECROUTE_BASE_URL", "http://env")
        config = resolve_config(cli_spec="cli.json")
        assert (config.spec, config.base_url) == ("cli.json", "http://env")

    def test_empty_env_ignored(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_project_config(isolated_config, {"spec": "project.json"})
        monkeypatch.setenv("SPECROUTE_SPEC", "")
        assert resolve_config().spec == "project.json"


# ---------------------------------------------------------------------------
# Base URL derivation
# ---------------------------------------------------------------------------


class TestDeriveBaseUrl:

    def test_swagger(self, swagger_raw: dict[str, Any]) -> None:
        assert derive_base_url(swagger_raw) == "http://localhost:8888"

    def test_swagger_base_path_and_first_scheme(self) -> None:
        document = {"swagger": "2.0", "host": "api.example.com", "basePath": "/v2", "schemes": ["https", "http"]}
        assert derive_base_url(document) == "https://api.example.com/v2"

    def test_swagger_host_from_source(self) -> None:
        document = {"swagger": "2.0", "basePath": "/v2"}
        assert derive_base_url(document, "https://docs.example.com/swagger.json") == "https://docs.example.com/v2"

    def test_swagger_without_host(self) -> None:
        assert derive_base_url({"swagger": "2.0", "basePath": "/v2"}) == "/v2"

    def test_openapi(self, openapi_raw: dict[str, Any]) -> None:
        assert derive_base_url(openapi_raw) == "http://localhost:8888/v1"

    def test_openapi_server_variables(self) -> None:
        document = {
            "openapi": "3.0.3",
            "servers": [{
                "url": "https://{region}.example.com/{version}/",
                "variables": {"region": {"default": "eu"}, "version": {"default": "v3"}},
            }],
        }
        assert derive_base_url(document) == "https://eu.example.com/v3"

    def test_openapi_relative_server(self) -> None:
        document = {"openapi": "3.1.0", "servers": [{"url": "/api"}]}
        assert derive_base_url(document, "https://example.com/spec/openapi.json") == "https://example.com/api"

    def test_openapi_without_servers(self) -> None:
        assert derive_base_url({"openapi": "3.0.0"}) == ""
        assert derive_base_url({"openapi": "3.0.0"}, "https://example.com/openapi.json") == "https://example.com"
