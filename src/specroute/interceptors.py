"""The default request-building interceptor chain and helpers to customise it.

:data:`DEFAULT_INTERCEPTORS` turns a context holding ``{"params": ...}`` and a
route into a request descriptor. In chain order:

1. ``request-building-handler`` (leave only) -- on the way out, when nothing
   else produced a response, the accumulated request minus ``params``
   becomes the response. Being first, it runs last.
2. ``normalize-params`` -- rewrites top-level parameter names to kebab-case,
   so ``petId``, ``pet_id`` and ``pet-id`` all address the same parameter.
3. ``method`` -- copies the route's HTTP method.
4. ``url`` -- renders the path with coerced path parameters.
5. ``query-params`` / ``body-params`` / ``form-params`` / ``header-params`` --
   coerce the parameters of one placement and set ``query_params``,
   ``body``, ``form_params`` or ``headers`` when the result is not empty.

Coercion failures raise :class:`~specroute.exceptions.CoercionError` and abort
the build.

The tuple is never modified. Build custom chains by concatenation or with
:func:`inject` and :func:`remove`::

    auth = Interceptor(name="auth", enter=add_token)
    chain = inject(DEFAULT_INTERCEPTORS, auth, "after", "header-params")
"""

from __future__ import annotations

from typing import Any, Iterable, Literal, Mapping

from pydantic import BaseModel

from specroute.models import Placement
from specroute.naming import to_kebab_case
from specroute.pipeline import Context, Interceptor
from specroute.schema import coerce, field_keys

BODY_KEY = "__body__"
"""Reserved parameter name whose value is always used as the request body."""

Position = Literal["before", "after", "replace"]


# ---------------------------------------------------------------------------
# Enter / leave functions
# ---------------------------------------------------------------------------


def _build_response(ctx: Context) -> Context:
    if ctx.response is None and ctx.error is None:
        ctx.response = {key: value for key, value in ctx.request.items() if key != "params"}
    return ctx


def _normalize_params(ctx: Context) -> Context:
    ctx.request["params"] = {
        (key if key == BODY_KEY else to_kebab_case(str(key))): value
        for key, value in ctx.params.items()
    }
    return ctx


def _set_method(ctx: Context) -> Context:
    ctx.request["method"] = ctx.handler.method.value
    return ctx


def _set_url(ctx: Context) -> Context:
    path_values = coerce(ctx.handler.path_schema, ctx.params, Placement.PATH.value)
    ctx.request["url"] = ctx.path_builder(ctx.handler, path_values)
    return ctx


def _placement_setter(schema_attr: str, placement: Placement, request_key: str):
    def _enter(ctx: Context) -> Context:
        schema = getattr(ctx.handler, schema_attr)
        if schema is None:
            return ctx
        coerced = coerce(schema, ctx.params, placement.value)
        if coerced:
            ctx.request[request_key] = coerced
        return ctx

    return _enter


def _set_headers(ctx: Context) -> Context:
    schema = ctx.handler.headers_schema
    if schema is None:
        return ctx
    coerced = coerce(schema, ctx.params, Placement.HEADER.value)
    if coerced:
        ctx.request["headers"] = {str(name): value for name, value in coerced.items()}
    return ctx


def _set_body(ctx: Context) -> Context:
    route = ctx.handler
    if route.body_schema is None or route.body_name is None:
        return ctx
    properties = _body_properties(route.body_schema)
    if not route.body_required and not _body_supplied(ctx.params, route.body_name, properties):
        return ctx
    value = body_value(ctx.params, route.body_name, properties)
    coerced = coerce(route.body_schema, {route.body_name: value}, Placement.BODY.value)
    body = coerced.get(route.body_name)
    if body not in (None, {}, []):
        ctx.request["body"] = body
    return ctx


def _body_properties(body_schema: type[BaseModel]) -> frozenset[str]:
    # Body schemas wrap the payload in a single field named after the body.
    info = next(iter(body_schema.model_fields.values()))
    return field_keys(info.annotation)


def _body_supplied(params: Mapping[str, Any], body_name: str, properties: frozenset[str]) -> bool:
    if BODY_KEY in params or body_name in params or to_kebab_case(body_name) in params:
        return True
    return not properties.isdisjoint(params)


def body_value(
    params: Mapping[str, Any],
    body_name: str,
    properties: frozenset[str] = frozenset(),
) -> Any:
    """Pick the body out of *params*.

    In priority order: the :data:`BODY_KEY` entry, the entry named after the
    body parameter (kebab-case or as declared), or all of *params* (flat
    form, where extra keys are dropped by the body schema).

    *properties* are the keys the body's own model accepts. When the body
    name is also one of them (a body called ``name`` with a ``name``
    property), the named entry is only taken as the whole body if it is a
    mapping; a scalar there is a flat property value.
    """
    if BODY_KEY in params:
        return params[BODY_KEY]
    for key in (to_kebab_case(body_name), body_name):
        if key not in params:
            continue
        if key in properties and not isinstance(params[key], Mapping):
            break
        return params[key]
    return dict(params)


# ---------------------------------------------------------------------------
# Default chain
# ---------------------------------------------------------------------------

request_building_handler = Interceptor(name="request-building-handler", leave=_build_response)
normalize_params = Interceptor(name="normalize-params", enter=_normalize_params)
set_method = Interceptor(name="method", enter=_set_method)
set_url = Interceptor(name="url", enter=_set_url)
set_query_params = Interceptor(
    name="query-params",
    enter=_placement_setter("query_schema", Placement.QUERY, "query_params"),
)
set_body_params = Interceptor(name="body-params", enter=_set_body)
set_form_params = Interceptor(
    name="form-params",
    enter=_placement_setter("form_schema", Placement.FORM, "form_params"),
)
set_header_params = Interceptor(name="header-params", enter=_set_headers)

DEFAULT_INTERCEPTORS: tuple[Interceptor, ...] = (
    request_building_handler,
    normalize_params,
    set_method,
    set_url,
    set_query_params,
    set_body_params,
    set_form_params,
    set_header_params,
)


# ---------------------------------------------------------------------------
# Chain manipulation
# ---------------------------------------------------------------------------


def inject(
    interceptors: Iterable[Interceptor],
    interceptor: Interceptor,
    position: Position,
    relative_to: str,
) -> tuple[Interceptor, ...]:
    """Return a new chain with *interceptor* placed relative to another.

    Args:
        interceptors: The chain to start from (not modified).
        interceptor: The interceptor to add.
        position: ``"before"`` or ``"after"`` the named interceptor, or
            ``"replace"`` to swap it out.
        relative_to: Name of an interceptor in *interceptors*.

    Raises:
        KeyError: If no interceptor is named *relative_to*.
        ValueError: If *position* is not one of the three values.
    """
    if position not in ("before", "after", "replace"):
        raise ValueError(f"Invalid position {position!r}: expected before, after or replace")

    result: list[Interceptor] = []
    found = False
    for existing in interceptors:
        if existing.name != relative_to:
            result.append(existing)
            continue
        found = True
        if position == "before":
            result.extend((interceptor, existing))
        elif position == "after":
            result.extend((existing, interceptor))
        else:
            result.append(interceptor)

    if not found:
        raise KeyError(f"No interceptor named '{relative_to}' in chain")
    return tuple(result)


def remove(interceptors: Iterable[Interceptor], name: str) -> tuple[Interceptor, ...]:
    """Return a new chain without the interceptor(s) called *name*."""
    return tuple(existing for existing in interceptors if existing.name != name)
