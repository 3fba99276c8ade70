"""Compile API descriptions into :class:`~specroute.models.Route` objects.

Two input shapes are supported:

* :func:`compile_spec` -- a Swagger 2.0 or OpenAPI 3.x document. Every
  path + HTTP method pair with an operation object yields exactly one route,
  in document order.
* :func:`compile_route_table` -- a hand-written list of route dicts, for APIs
  without a machine-readable description.

Compilation is pure: no I/O, no global state. It is also all-or-nothing:
the first problem raises :class:`~specroute.exceptions.CompileError` and no
routes are returned.

Route names are the kebab-case form of the ``operationId``. When two
operations normalise to the same name the one compiled last wins and a
warning is logged.
"""

from __future__ import annotations

import copy
import logging
import typing
from collections.abc import Mapping
from types import UnionType
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from specroute.compiler.params import REQUEST_BODY_NAME, group_parameters
from specroute.compiler.path import join_path, parse_path_parts, path_params, tokenize_path
from specroute.exceptions import CompileError
from specroute.models import HTTPMethod, ResponseSchema, Route
from specroute.naming import to_class_name, to_kebab_case
from specroute.parser.loader import detect_version
from specroute.parser.resolver import lookup_pointer, resolve_refs
from specroute.schema import build_model, schema_to_type

logger = logging.getLogger(__name__)

_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)

_TABLE_SCHEMA_KEYS = ("path_schema", "query_schema", "form_schema", "headers_schema")


# ---------------------------------------------------------------------------
# Swagger / OpenAPI documents
# ---------------------------------------------------------------------------


def compile_spec(document: dict[str, Any]) -> list[Route]:
    """Compile a Swagger 2.0 or OpenAPI 3.x document into routes.

    Path-level parameters are merged into each operation (operation-level
    declarations win on the same ``name`` and ``in``), ``$ref`` pointers are
    inlined, and parameters are grouped into per-placement schemas.

    Args:
        document: The parsed description, as returned by
            :func:`~specroute.parser.loader.load_spec`.

    Returns:
        Routes in the order their paths and methods appear in *document*.

    Raises:
        CompileError: If the document version is unsupported, an operation
            has no ``operationId``, a path template is malformed, or a
            ``$ref`` cannot be resolved.

    Example::

        routes = compile_spec(load_spec("petstore.yaml"))
        [route.route_name for route in routes]
        # ['list-pets', 'create-pet', 'get-pet']
    """
    version = detect_version(document)
    resolved = resolve_refs(document)
    is_swagger = version == "2.0"
    routes: dict[str, Route] = {}

    for path, path_item in (resolved.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            continue
        path_parts = tokenize_path(path)
        shared_params = path_item.get("parameters", [])
        raw_item = _raw_path_item(document, path)

        for method, operation in path_item.items():
            if method not in _HTTP_METHODS or not isinstance(operation, dict):
                continue

            operation_id = operation.get("operationId")
            if not operation_id:
                raise CompileError(
                    f"Operation {method.upper()} {path} has no operationId; "
                    "every operation needs one to be addressable"
                )

            model_name = to_class_name(operation_id)
            parameters = _merge_parameters(shared_params, operation.get("parameters", []))
            parameters += _undeclared_path_params(path_parts, parameters)
            groups = group_parameters(
                parameters,
                model_name,
                request_body=None if is_swagger else operation.get("requestBody"),
            )

            if is_swagger:
                produces = operation.get("produces", resolved.get("produces", []))
                consumes = operation.get("consumes", resolved.get("consumes", []))
            else:
                produces = _openapi_produces(operation)
                consumes = list((operation.get("requestBody") or {}).get("content") or {})

            route = Route(
                route_name=to_kebab_case(operation_id),
                method=HTTPMethod(method),
                path=path,
                path_parts=path_parts,
                path_schema=groups.path,
                query_schema=groups.query,
                body_schema=groups.body,
                form_schema=groups.form,
                headers_schema=groups.header,
                body_name=groups.body_name,
                body_required=groups.body_required,
                responses=_compile_responses(operation.get("responses") or {}, model_name, is_swagger),
                summary=operation.get("summary"),
                description=operation.get("description"),
                produces=tuple(produces),
                consumes=tuple(consumes),
                deprecated=bool(operation.get("deprecated", False)),
                raw_definition=copy.deepcopy(raw_item.get(method, operation)),
            )
            _register(routes, route)

    return list(routes.values())


def _raw_path_item(document: dict[str, Any], path: str) -> dict[str, Any]:
    """The path item as written, following a path-level $ref one level only."""
    item = document["paths"][path]
    if isinstance(item, dict) and isinstance(item.get("$ref"), str):
        item = lookup_pointer(item["$ref"], document)
    return item if isinstance(item, dict) else {}


def _merge_parameters(
    shared: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameter lists.

    Operation-level parameters replace path-level ones with the same
    ``name`` and ``in`` values.
    """
    overridden = {(p.get("name", ""), p.get("in", "")) for p in op_params}
    merged = [p for p in shared if (p.get("name", ""), p.get("in", "")) not in overridden]
    merged.extend(op_params)
    return merged


def _undeclared_path_params(path_parts: tuple[Any, ...], parameters: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Synthesize string declarations for template placeholders nobody declared."""
    declared = {p.get("name") for p in parameters if p.get("in") == "path"}
    missing = [name for name in path_params(path_parts) if name not in declared]
    for name in missing:
        logger.debug("Path parameter '%s' is not declared, treating it as a string", name)
    return [{"name": name, "in": "path", "required": True, "type": "string"} for name in missing]


def _compile_responses(
    responses: dict[str, Any],
    model_name: str,
    is_swagger: bool,
) -> tuple[ResponseSchema, ...]:
    """Build one :class:`ResponseSchema` per declared status code."""
    compiled: list[ResponseSchema] = []
    for status, response in responses.items():
        if not isinstance(response, dict):
            continue
        status_key = str(status)
        if is_swagger:
            schema = response.get("schema")
        else:
            schema = next(
                (info["schema"] for info in (response.get("content") or {}).values()
                 if isinstance(info, dict) and "schema" in info),
                None,
            )
        body_schema = None
        if schema is not None:
            body_schema = schema_to_type(schema, f"{model_name}Response{to_class_name(status_key)}")
        compiled.append(
            ResponseSchema(
                status=int(status_key) if status_key.isdigit() else status_key,
                description=response.get("description"),
                body_schema=body_schema,
            )
        )
    return tuple(compiled)


def _openapi_produces(operation: dict[str, Any]) -> list[str]:
    """Unique response content types of an OpenAPI 3.x operation, in order."""
    seen: dict[str, None] = {}
    for response in (operation.get("responses") or {}).values():
        if isinstance(response, dict):
            for content_type in response.get("content") or {}:
                seen.setdefault(content_type, None)
    return list(seen)


# ---------------------------------------------------------------------------
# Hand-written route tables
# ---------------------------------------------------------------------------


def compile_route_table(entries: Iterable[Any]) -> list[Route]:
    """Compile hand-written route definitions.

    Each entry is either a ready :class:`~specroute.models.Route` or a dict
    with these keys:

    * ``route_name`` (required) -- normalised to kebab-case.
    * ``method`` (required) -- HTTP verb, any case.
    * ``path_parts`` -- list of literals and ``":param"`` placeholders, or
      ``path`` -- a ``{param}`` template string.
    * ``path_schema``, ``query_schema``, ``form_schema``, ``headers_schema``
      -- a pydantic model class, or a dict of wire name to type. Types
      wrapped in ``Optional`` are optional; nested dicts become nested models.
    * ``body_schema`` -- a model class (sent as the body named ``body``), a
      single-entry dict ``{name: model_or_dict}`` naming the body, or a dict
      of field types for an unnamed body.
    * ``interceptors``, ``summary``, ``description``, ``produces``,
      ``consumes`` -- optional.

    Placeholders missing from ``path_schema`` are added as required
    untyped fields when ``path_schema`` is a dict or absent.

    Raises:
        CompileError: On a missing ``route_name``/``method``, an unknown
            method, a malformed path, or an unsupported schema value.
    """
    routes: dict[str, Route] = {}
    for entry in entries:
        route = entry if isinstance(entry, Route) else _compile_table_entry(entry)
        _register(routes, route)
    return list(routes.values())


def _compile_table_entry(entry: Mapping[str, Any]) -> Route:
    name = entry.get("route_name")
    if not name:
        raise CompileError(f"Route definition without route_name: {dict(entry)!r}")
    route_name = to_kebab_case(str(name))
    model_name = to_class_name(route_name)

    try:
        method = HTTPMethod(str(entry.get("method", "")).lower())
    except ValueError:
        raise CompileError(
            f"Route '{route_name}' has invalid method {entry.get('method')!r}"
        ) from None

    if "path_parts" in entry:
        path_parts = parse_path_parts(entry["path_parts"])
    elif "path" in entry:
        path_parts = tokenize_path(entry["path"])
    else:
        raise CompileError(f"Route '{route_name}' has neither path_parts nor path")

    schemas: dict[str, Optional[type[BaseModel]]] = {}
    for key in _TABLE_SCHEMA_KEYS:
        source = entry.get(key)
        if key == "path_schema" and not _is_model(source):
            source = dict(source or {})
            for param in path_params(path_parts):
                source.setdefault(param, Any)
        suffix = to_class_name(key.removesuffix("_schema"))
        schemas[key] = _schema_from_source(source, f"{model_name}{suffix}", route_name)

    body_name, body_schema, body_required = _body_from_source(entry.get("body_schema"), model_name, route_name)

    return Route(
        route_name=route_name,
        method=method,
        path=join_path(path_parts),
        path_parts=path_parts,
        body_schema=body_schema,
        body_name=body_name,
        body_required=body_required,
        summary=entry.get("summary"),
        description=entry.get("description"),
        produces=tuple(entry.get("produces", ())),
        consumes=tuple(entry.get("consumes", ())),
        interceptors=tuple(entry.get("interceptors", ())),
        raw_definition=dict(entry),
        **schemas,
    )


def _schema_from_source(source: Any, model_name: str, route_name: str) -> Optional[type[BaseModel]]:
    if source is None:
        return None
    if _is_model(source):
        return source
    if isinstance(source, Mapping):
        fields = [
            (field_name, _annotation(value, f"{model_name}{to_class_name(field_name)}"), not _is_optional(value))
            for field_name, value in source.items()
        ]
        return build_model(model_name, fields)
    raise CompileError(
        f"Route '{route_name}': unsupported schema {source!r}; "
        "expected a pydantic model or a dict of field types"
    )


def _body_from_source(
    source: Any,
    model_name: str,
    route_name: str,
) -> tuple[Optional[str], Optional[type[BaseModel]], bool]:
    """Return ``(body_name, body_schema, required)`` for a table entry's body."""
    if source is None:
        return None, None, False

    if isinstance(source, Mapping) and len(source) == 1:
        (name, value), = source.items()
        if _is_model(value) or isinstance(value, Mapping):
            body_name = str(name)
            annotation = _annotation(value, f"{model_name}{to_class_name(body_name)}")
            return body_name, build_model(f"{model_name}Body", [(body_name, annotation, True)]), True

    if _is_model(source):
        annotation = source
    elif isinstance(source, Mapping):
        annotation = _schema_from_source(source, f"{model_name}RequestBody", route_name)
    else:
        raise CompileError(f"Route '{route_name}': unsupported body schema {source!r}")
    schema = build_model(f"{model_name}Body", [(REQUEST_BODY_NAME, annotation, True)])
    return REQUEST_BODY_NAME, schema, True


def _annotation(value: Any, model_name: str) -> Any:
    if isinstance(value, Mapping) and not value:
        return dict[str, Any]
    if isinstance(value, Mapping):
        return build_model(model_name, [
            (name, _annotation(inner, f"{model_name}{to_class_name(name)}"), not _is_optional(inner))
            for name, inner in value.items()
        ])
    return value


def _is_model(value: Any) -> bool:
    return isinstance(value, type) and issubclass(value, BaseModel)


def _is_optional(annotation: Any) -> bool:
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is UnionType:
        return type(None) in typing.get_args(annotation)
    return False


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


def _register(routes: dict[str, Route], route: Route) -> None:
    """Add *route*, replacing (and moving to the end) any route of the same name."""
    if route.route_name in routes:
        logger.warning(
            "Duplicate route name '%s' (%s %s); the later definition replaces the earlier one",
            route.route_name, route.method.value.upper(), route.path,
        )
        del routes[route.route_name]
    routes[route.route_name] = route
    logger.debug("Compiled route '%s': %s %s", route.route_name, route.method.value.upper(), route.path)
