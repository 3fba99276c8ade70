"""specroute -- turn Swagger/OpenAPI descriptions into request descriptors.

The package compiles an API description (a Swagger 2.0 or OpenAPI 3.x
document, or a hand-written route table) into immutable routes, and builds
requests for them by running an interceptor chain. It never performs the
HTTP call itself: the result is a plain dict that any HTTP client can send.

Typical usage::

    from specroute import bootstrap_from

    registry = bootstrap_from("petstore.json")
    registry.request_for("get-pet", {"id": 123})
    # {'method': 'get', 'url': 'http://localhost:8888/pets/123'}

Modules:
    compiler: Path tokenizer, parameter grouper and route compiler.
    pipeline: Interceptor type, build context and chain executor.
    interceptors: The default request-building chain.
    registry: Route lookup and the bootstrap helpers.
    schema: pydantic-backed parameter models and coercion.
    parser: Loading descriptions and resolving ``$ref`` pointers.
    app: The ``specroute`` command line.
"""

__version__ = "0.1.0"

from specroute.exceptions import CoercionError, CompileError, SpecrouteError  # noqa: E402
from specroute.interceptors import BODY_KEY, DEFAULT_INTERCEPTORS, inject, remove  # noqa: E402
from specroute.pipeline import Context, Interceptor, execute  # noqa: E402
from specroute.registry import Registry, bootstrap, bootstrap_from, bootstrap_spec  # noqa: E402

__all__ = [
    "BODY_KEY",
    "DEFAULT_INTERCEPTORS",
    "CoercionError",
    "CompileError",
    "Context",
    "Interceptor",
    "Registry",
    "SpecrouteError",
    "bootstrap",
    "bootstrap_from",
    "bootstrap_spec",
    "execute",
    "inject",
    "remove",
]
