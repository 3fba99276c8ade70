"""Group an operation's parameter declarations by placement.

Swagger 2.0 and OpenAPI 3.x declare parameters as a flat list tagged with an
``in`` location. :func:`group_parameters` partitions that list into the five
placements of :class:`~specroute.models.Placement` and asks the schema engine
(:func:`specroute.schema.build_model`) for one model per non-empty placement.

**Mapping rules:**

* ``in: path`` parameters are always required, whatever the document says.
* ``in: formData`` (Swagger 2.0) maps to :attr:`Placement.FORM`.
* ``in: cookie`` (OpenAPI 3.x) has no placement and is skipped.
* Only the first ``in: body`` declaration is used; later ones are ignored
  with a warning (one body per operation).
* An OpenAPI 3.x ``requestBody`` becomes the body parameter named ``body``,
  unless its content type is form-encoded, in which case its properties are
  flattened into form parameters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel

from specroute.models import Placement
from specroute.naming import to_class_name
from specroute.parser.resolver import resolve_in
from specroute.schema import FieldSpec, build_model, schema_to_type

logger = logging.getLogger(__name__)

_LOCATIONS: dict[str, Placement] = {
    "path": Placement.PATH,
    "query": Placement.QUERY,
    "header": Placement.HEADER,
    "formData": Placement.FORM,
    "body": Placement.BODY,
}

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

REQUEST_BODY_NAME = "body"
"""Body parameter name used for OpenAPI 3.x ``requestBody`` entries."""

_MODEL_SUFFIXES: dict[Placement, str] = {
    Placement.PATH: "Path",
    Placement.QUERY: "Query",
    Placement.BODY: "Body",
    Placement.FORM: "Form",
    Placement.HEADER: "Headers",
}


@dataclass(frozen=True)
class ParameterGroups:
    """Per-placement schemas for one operation.

    Each schema is ``None`` when the operation declares no parameter in that
    placement. ``body_name`` is the declared name of the body parameter.
    """

    path: Optional[type[BaseModel]] = None
    query: Optional[type[BaseModel]] = None
    body: Optional[type[BaseModel]] = None
    form: Optional[type[BaseModel]] = None
    header: Optional[type[BaseModel]] = None
    body_name: Optional[str] = None
    body_required: bool = False

    @property
    def schemas(self) -> dict[Placement, Optional[type[BaseModel]]]:
        return {
            Placement.PATH: self.path,
            Placement.QUERY: self.query,
            Placement.BODY: self.body,
            Placement.FORM: self.form,
            Placement.HEADER: self.header,
        }


def group_parameters(
    parameters: list[dict[str, Any]],
    model_name: str,
    request_body: Optional[dict[str, Any]] = None,
    root: Optional[dict[str, Any]] = None,
) -> ParameterGroups:
    """Partition *parameters* by placement and build one schema per placement.

    Args:
        parameters: Parameter declarations (Swagger or OpenAPI style).
        model_name: CamelCase prefix for generated model names (e.g.
            ``"GetPet"`` yields ``GetPetPath``, ``GetPetQuery``, ...).
        request_body: OpenAPI 3.x ``requestBody`` object, if any.
        root: The enclosing document. When given, ``$ref`` pointers inside
            *parameters* and *request_body* (shared definitions) are resolved
            against it first.

    Returns:
        A :class:`ParameterGroups` holding the schemas.
    """
    if root is not None:
        parameters = resolve_in(parameters, root)
        request_body = resolve_in(request_body, root) if request_body is not None else None

    fields: dict[Placement, list[FieldSpec]] = {placement: [] for placement in Placement}
    body_name: Optional[str] = None
    body_required = False

    for param in parameters:
        name = param.get("name", "")
        location = param.get("in", "")
        placement = _LOCATIONS.get(location)
        if placement is None:
            logger.debug("Skipping %s parameter '%s' in %s", location or "unplaced", name, model_name)
            continue

        if placement == Placement.BODY:
            if body_name is not None:
                logger.warning(
                    "%s declares more than one body parameter; using '%s', ignoring '%s'",
                    model_name, body_name, name,
                )
                continue
            body_name = name or REQUEST_BODY_NAME
            body_required = bool(param.get("required", False))
            annotation = schema_to_type(param.get("schema", {}), f"{model_name}{to_class_name(body_name)}")
            fields[Placement.BODY].append((body_name, annotation, body_required))
            continue

        # Swagger 2.0 keeps type information on the parameter itself.
        schema = param["schema"] if "schema" in param else param
        annotation = schema_to_type(schema, f"{model_name}{to_class_name(name)}")
        required = placement == Placement.PATH or bool(param.get("required", False))
        fields[placement].append((name, annotation, required))

    if request_body is not None and body_name is None:
        body_name, body_required = _add_request_body(request_body, model_name, fields)

    built = {
        placement: build_model(f"{model_name}{_MODEL_SUFFIXES[placement]}", specs)
        for placement, specs in fields.items()
    }
    return ParameterGroups(
        path=built[Placement.PATH],
        query=built[Placement.QUERY],
        body=built[Placement.BODY],
        form=built[Placement.FORM],
        header=built[Placement.HEADER],
        body_name=body_name if built[Placement.BODY] is not None else None,
        body_required=body_required,
    )


def _add_request_body(
    request_body: dict[str, Any],
    model_name: str,
    fields: dict[Placement, list[FieldSpec]],
) -> tuple[Optional[str], bool]:
    """Add an OpenAPI 3.x ``requestBody`` to *fields* as body or form parameters."""
    content = request_body.get("content") or {}
    required = bool(request_body.get("required", False))
    content_type = request_content_type(content)
    if content_type is None:
        return None, False

    schema = content[content_type].get("schema", {}) if isinstance(content[content_type], dict) else {}
    if content_type in _FORM_CONTENT_TYPES:
        required_props = set(schema.get("required", []))
        for prop_name, prop_schema in (schema.get("properties") or {}).items():
            annotation = schema_to_type(prop_schema, f"{model_name}{to_class_name(prop_name)}")
            fields[Placement.FORM].append((prop_name, annotation, prop_name in required_props))
        return None, False

    annotation = schema_to_type(schema, f"{model_name}RequestBody")
    fields[Placement.BODY].append((REQUEST_BODY_NAME, annotation, required))
    return REQUEST_BODY_NAME, required


def request_content_type(content: dict[str, Any]) -> Optional[str]:
    """Pick the content type a request body is encoded with.

    JSON is preferred, then any ``+json`` type, then form encodings, then the
    first declared type. Returns ``None`` when *content* is empty.
    """
    if not content:
        return None
    if "application/json" in content:
        return "application/json"
    for content_type in content:
        if content_type.endswith("+json"):
            return content_type
    for content_type in _FORM_CONTENT_TYPES:
        if content_type in content:
            return content_type
    return next(iter(content))
