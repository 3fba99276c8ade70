"""Project configuration and base URL resolution.

The ``specroute`` command needs two things: where the API description lives
and which base URL to prefix rendered paths with. Both are resolved through a
precedence chain (high to low):

1. CLI flags (``--spec``, ``--base-url``)
2. Environment variables (``SPECROUTE_SPEC``, ``SPECROUTE_BASE_URL``)
3. Project config (``./specroute.json``)
4. For the base URL only: derived from the description itself by
   :func:`derive_base_url`

A minimal ``specroute.json``::

    {"spec": "openapi.yaml", "base_url": "http://localhost:8080"}
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urljoin, urlsplit

from pydantic import ValidationError

from specroute.exceptions import ConfigError
from specroute.models import ProjectConfig

PROJECT_CONFIG_FILENAME = "specroute.json"
ENV_SPEC = "SPECROUTE_SPEC"
ENV_BASE_URL = "SPECROUTE_BASE_URL"

_SERVER_VARIABLE_RE = re.compile(r"\{([^{}]+)\}")


# --- Project-local config ---


def load_project_config(directory: Optional[Path] = None) -> Optional[ProjectConfig]:
    """Load ``specroute.json`` from *directory* (default: the working directory).

    Returns:
        The parsed :class:`~specroute.models.ProjectConfig`, or ``None`` if the
        file does not exist.

    Raises:
        ConfigError: If the file exists but is not valid JSON or does not
            match the expected shape.
    """
    path = (directory or Path.cwd()) / PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return ProjectConfig.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc


# --- Precedence resolution ---


def resolve_config(
    cli_spec: Optional[str] = None,
    cli_base_url: Optional[str] = None,
) -> ProjectConfig:
    """Resolve the effective description source and base URL.

    ``base_url`` stays ``None`` when no layer sets it; callers then derive it
    from the loaded document.

    Raises:
        ConfigError: If ``./specroute.json`` is invalid.
    """
    project = load_project_config() or ProjectConfig()

    spec = project.spec
    base_url = project.base_url

    env_spec = os.environ.get(ENV_SPEC)
    if env_spec:
        spec = env_spec
    env_base_url = os.environ.get(ENV_BASE_URL)
    if env_base_url:
        base_url = env_base_url

    if cli_spec is not None:
        spec = cli_spec
    if cli_base_url is not None:
        base_url = cli_base_url

    return ProjectConfig(spec=spec, base_url=base_url)


# --- Base URL derivation ---


def derive_base_url(document: dict[str, Any], source_url: Optional[str] = None) -> str:
    """Work out the API base URL declared by *document*.

    * Swagger 2.0: ``<schemes[0]>://<host><basePath>``. A missing scheme or
      host is taken from *source_url* (scheme defaults to ``http``).
    * OpenAPI 3.x: the first ``servers`` entry, with ``{variables}`` replaced
      by their defaults. A relative server URL is resolved against
      *source_url*.

    The result never ends with ``/`` so that route paths can be appended
    directly. Returns ``""`` when nothing can be derived.
    """
    if "swagger" in document:
        base = _swagger_base_url(document, source_url)
    else:
        base = _openapi_base_url(document, source_url)
    return base.rstrip("/")


def _swagger_base_url(document: dict[str, Any], source_url: Optional[str]) -> str:
    source = urlsplit(source_url) if source_url else None
    base_path = document.get("basePath", "") or ""
    host = document.get("host") or (source.netloc if source else "")
    if not host:
        return base_path

    schemes = document.get("schemes") or []
    if schemes:
        scheme = schemes[0]
    elif source is not None and source.scheme:
        scheme = source.scheme
    else:
        scheme = "http"
    return f"{scheme}://{host}{base_path}"


def _openapi_base_url(document: dict[str, Any], source_url: Optional[str]) -> str:
    servers = document.get("servers") or []
    if not servers or not isinstance(servers[0], dict) or not servers[0].get("url"):
        return urljoin(source_url, "/") if source_url else ""

    server = servers[0]
    variables = server.get("variables") or {}

    def _substitute(match: re.Match[str]) -> str:
        variable = variables.get(match.group(1)) or {}
        return str(variable.get("default", match.group(0)))

    url = _SERVER_VARIABLE_RE.sub(_substitute, server["url"])
    if source_url and not urlsplit(url).scheme:
        url = urljoin(source_url, url)
    return url
