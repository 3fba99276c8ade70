"""Read API descriptions from a URL, a local file or stdin.

Each source is read into text plus a format hint (``"json"``, ``"yaml"`` or
``""`` when unknown), then parsed into a plain dict. Only the description is
fetched here; building requests never touches the network.

* :func:`load_spec` -- read and parse a description from any source.
* :func:`detect_version` -- ``"2.0"`` for Swagger, the ``3.x`` string for
  OpenAPI, :class:`~specroute.exceptions.CompileError` for anything else.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from specroute.exceptions import CompileError

logger = logging.getLogger(__name__)

_SUFFIX_HINTS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


def load_spec(source: str) -> dict[str, Any]:
    """Load an API description.

    Args:
        source: An ``http(s)://`` URL, a file path, or ``'-'`` for stdin.

    Returns:
        The parsed document.

    Raises:
        CompileError: If the source cannot be read, is blank, or is not a
            JSON/YAML mapping.
    """
    if source == "-":
        content, hint = _read_stdin()
    elif source.startswith(("http://", "https://")):
        content, hint = _fetch(source)
    else:
        content, hint = _read_file(Path(source))
    return _parse_content(content, hint=hint)


def _read_stdin() -> tuple[str, str]:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise CompileError(f"Failed to read from stdin: {exc}") from exc
    if not content.strip():
        raise CompileError("No input received from stdin")
    return content, ""


def _fetch(url: str) -> tuple[str, str]:
    logger.debug("Fetching API description from %s", url)
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise CompileError(f"HTTP {exc.response.status_code} fetching description from {url}") from exc
    except httpx.RequestError as exc:
        raise CompileError(f"Failed to fetch description from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        return response.text, "json"
    if "yaml" in content_type or "yml" in content_type:
        return response.text, "yaml"
    return response.text, ""


def _read_file(path: Path) -> tuple[str, str]:
    if not path.is_file():
        raise CompileError(f"Description file not found: {path}")
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CompileError(f"Failed to read description file {path}: {exc}") from exc
    if not content.strip():
        raise CompileError(f"Description file is empty: {path}")
    return content, _SUFFIX_HINTS.get(path.suffix.lower(), "")


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse *content* as JSON, falling back to YAML.

    A ``"json"`` hint makes a JSON syntax error final; a ``"yaml"`` hint
    skips the JSON attempt.
    """
    json_error: Exception | None = None
    if hint != "yaml":
        try:
            return _as_document(json.loads(content))
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise CompileError(f"Invalid JSON: {exc}") from exc
            json_error = exc

    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        details = [f"YAML error: {exc}"]
        if json_error is not None:
            details.insert(0, f"JSON error: {json_error}")
        raise CompileError("Failed to parse description as JSON or YAML\n  " + "\n  ".join(details)) from exc
    return _as_document(parsed)


def _as_document(parsed: Any) -> dict[str, Any]:
    if isinstance(parsed, dict):
        return parsed
    kind = "empty document" if parsed is None else type(parsed).__name__
    raise CompileError(f"Description must be a JSON/YAML object (got {kind})")


def detect_version(document: dict[str, Any]) -> str:
    """Return the description format version.

    Returns:
        ``"2.0"`` for Swagger documents, or the ``openapi`` field (e.g.
        ``"3.0.3"``, ``"3.1.0"``) for OpenAPI 3.x documents.

    Raises:
        CompileError: If neither field is present, or the version is not
            Swagger 2.0 or OpenAPI 3.x.
    """
    if "swagger" in document:
        swagger = str(document["swagger"])
        if not swagger.startswith("2."):
            raise CompileError(f"Unsupported Swagger version: {swagger}. Only 2.0 is supported.")
        return "2.0"

    if "openapi" not in document:
        raise CompileError("Missing 'swagger' or 'openapi' field. Is this a Swagger/OpenAPI document?")
    openapi = str(document["openapi"])
    if not openapi.startswith("3."):
        raise CompileError(
            f"Unsupported OpenAPI version: {openapi}. Only Swagger 2.0 and OpenAPI 3.x are supported."
        )
    return openapi
