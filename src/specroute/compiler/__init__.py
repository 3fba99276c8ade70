"""Compile API descriptions into immutable routes.

Sub-modules:

* :mod:`~specroute.compiler.path` -- path template tokenizer and renderer.
* :mod:`~specroute.compiler.params` -- groups parameter declarations by
  placement and builds one schema per placement.
* :mod:`~specroute.compiler.routes` -- walks Swagger/OpenAPI documents and
  hand-written route tables and produces :class:`~specroute.models.Route`
  objects.

Typical usage::

    from specroute.compiler import compile_spec

    routes = compile_spec(document)
"""

from specroute.compiler.params import group_parameters
from specroute.compiler.path import join_path, render_path, tokenize_path
from specroute.compiler.routes import compile_route_table, compile_spec

__all__ = [
    "compile_spec",
    "compile_route_table",
    "group_parameters",
    "tokenize_path",
    "join_path",
    "render_path",
]
