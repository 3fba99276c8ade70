"""Route registry: look up compiled routes and build request descriptors.

A :class:`Registry` ties together a base URL, the compiled routes and an
interceptor chain. It is immutable once built, so one instance can serve any
number of threads; every call gets its own :class:`~specroute.pipeline.Context`.

Registries are normally created with one of the bootstrap helpers::

    registry = bootstrap_spec("https://petstore.example.com/v2", document)
    registry.url_for("get-pet", {"id": 123})
    # 'https://petstore.example.com/v2/pets/123'
    registry.request_for("get-pet", {"id": 123})
    # {'method': 'get', 'url': 'https://petstore.example.com/v2/pets/123'}

A route name that is not registered is a normal outcome, not an error:
:meth:`Registry.url_for`, :meth:`Registry.request_for` and
:meth:`Registry.explore` return ``None``.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Union

from specroute.compiler import compile_route_table, compile_spec, render_path
from specroute.interceptors import DEFAULT_INTERCEPTORS
from specroute.models import Route
from specroute.naming import to_kebab_case
from specroute.pipeline import Context, Interceptor, execute
from specroute.schema import coerce, describe

logger = logging.getLogger(__name__)


class Registry:
    """Immutable collection of routes plus the chain used to build requests.

    Args:
        base_url: Prefix for every rendered path (no separator is added).
        routes: Compiled routes. Names must be unique; when they are not the
            last route of a name wins.
        interceptors: The complete chain run by :meth:`request_for`. Defaults
            to :data:`~specroute.interceptors.DEFAULT_INTERCEPTORS`.
    """

    def __init__(
        self,
        base_url: str,
        routes: Iterable[Route],
        interceptors: Optional[Iterable[Interceptor]] = None,
    ) -> None:
        self._base_url = base_url
        self._routes: dict[str, Route] = {route.route_name: route for route in routes}
        self._interceptors: tuple[Interceptor, ...] = tuple(
            DEFAULT_INTERCEPTORS if interceptors is None else interceptors
        )

    def __repr__(self) -> str:
        return f"Registry(base_url={self._base_url!r}, routes={len(self._routes)})"

    def __contains__(self, route_name: object) -> bool:
        return isinstance(route_name, str) and route_name in self._routes

    def __len__(self) -> int:
        return len(self._routes)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def routes(self) -> tuple[Route, ...]:
        """Routes in compilation order."""
        return tuple(self._routes.values())

    @property
    def interceptors(self) -> tuple[Interceptor, ...]:
        return self._interceptors

    @property
    def route_names(self) -> list[str]:
        return list(self._routes)

    def find(self, route_name: str) -> Optional[Route]:
        """Return the route called *route_name*, or ``None``."""
        return self._routes.get(route_name)

    def with_interceptors(self, interceptors: Iterable[Interceptor]) -> Registry:
        """Return a copy of this registry that runs *interceptors* instead."""
        return Registry(self._base_url, self._routes.values(), interceptors)

    # ------------------------------------------------------------------ #
    # Request building
    # ------------------------------------------------------------------ #

    def url_for(self, route_name: str, params: Optional[dict[str, Any]] = None) -> Optional[str]:
        """Render the full URL of a route.

        Only path parameters are used; other keys are ignored.

        Returns:
            The URL, or ``None`` when no route is called *route_name*.

        Raises:
            CoercionError: If a path parameter is missing or has the wrong
                type.
        """
        route = self.find(route_name)
        if route is None:
            logger.debug("url_for: no route named '%s'", route_name)
            return None
        normalized = {to_kebab_case(str(key)): value for key, value in (params or {}).items()}
        return self._render_url(route, coerce(route.path_schema, normalized, "path"))

    def request_for(self, route_name: str, params: Optional[dict[str, Any]] = None) -> Optional[Any]:
        """Run the interceptor chain for a route and return the response.

        With the default chain the response is the request descriptor
        ``{"method", "url", "query_params"?, "body"?, "form_params"?,
        "headers"?}``; optional keys are present only when non-empty. The
        route's own interceptors run after the registry's chain, for this
        build only.

        Returns:
            ``context.response``, or ``None`` when no route is called
            *route_name*.

        Raises:
            CoercionError: If parameters fail validation for any placement.
        """
        route = self.find(route_name)
        if route is None:
            logger.debug("request_for: no route named '%s'", route_name)
            return None

        context = Context(
            request={"params": dict(params or {})},
            handler=route,
            path_builder=self._render_url,
        )
        chain = self._interceptors + tuple(route.interceptors)
        return execute(chain, context).response

    def _render_url(self, route: Route, path_values: dict[str, Any]) -> str:
        return self._base_url + render_path(route.path_parts, path_values)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def explore(self, route_name: Optional[str] = None) -> Union[list[tuple[str, Optional[str]]], dict[str, Any], None]:
        """Describe the registry or a single route.

        Without *route_name*, returns ``(name, summary)`` pairs for every
        route. With it, returns a dict with the route's ``method``, ``path``,
        ``summary``, ``description``, ``deprecated``, the JSON schema of each
        declared ``parameters`` placement, and ``responses`` (status and
        description). Returns ``None`` for an unknown route.
        """
        if route_name is None:
            return [(route.route_name, route.summary) for route in self._routes.values()]

        route = self.find(route_name)
        if route is None:
            return None
        return {
            "route_name": route.route_name,
            "method": route.method.value,
            "path": route.path,
            "summary": route.summary,
            "description": route.description,
            "deprecated": route.deprecated,
            "parameters": {
                placement.value: describe(schema)
                for placement, schema in route.schemas.items()
                if schema is not None
            },
            "responses": [
                {"status": response.status, "description": response.description}
                for response in route.responses
            ],
        }


# ---------------------------------------------------------------------------
# Bootstrap helpers
# ---------------------------------------------------------------------------


def bootstrap(
    base_url: str,
    route_table: Iterable[Any],
    interceptors: Optional[Iterable[Interceptor]] = None,
) -> Registry:
    """Build a registry from a hand-written route table.

    See :func:`~specroute.compiler.routes.compile_route_table` for the
    accepted entry shapes.

    Raises:
        CompileError: If any entry is invalid.
    """
    return Registry(base_url, compile_route_table(route_table), interceptors)


def bootstrap_spec(
    base_url: str,
    document: dict[str, Any],
    interceptors: Optional[Iterable[Interceptor]] = None,
) -> Registry:
    """Build a registry from a Swagger 2.0 or OpenAPI 3.x document.

    Raises:
        CompileError: If the document cannot be compiled.
    """
    return Registry(base_url, compile_spec(document), interceptors)


def bootstrap_from(
    source: str,
    base_url: Optional[str] = None,
    interceptors: Optional[Iterable[Interceptor]] = None,
) -> Registry:
    """Load a description from a file, URL or ``-`` (stdin) and build a registry.

    When *base_url* is omitted it is derived from the document (Swagger
    ``schemes``/``host``/``basePath``, or the first OpenAPI ``servers``
    entry), relative to *source* when that is a URL.

    Raises:
        CompileError: If the description cannot be loaded or compiled.
    """
    from specroute.config import derive_base_url
    from specroute.parser import load_spec

    document = load_spec(source)
    if base_url is None:
        source_url = source if source.startswith(("http://", "https://")) else None
        base_url = derive_base_url(document, source_url)
        logger.debug("Derived base URL %r from %s", base_url, source)
    return bootstrap_spec(base_url, document, interceptors)
