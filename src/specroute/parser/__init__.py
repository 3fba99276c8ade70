"""API description loading -- read documents and resolve ``$ref`` pointers.

This sub-package is the I/O edge of specroute: it turns a Swagger 2.0 or
OpenAPI 3.x document (JSON or YAML, local file, stdin or remote URL) into a
plain dict ready for :func:`~specroute.compiler.compile_spec`.

Typical usage::

    from specroute.parser import load_spec, detect_version

    raw = load_spec("https://petstore.swagger.io/v2/swagger.json")
    version = detect_version(raw)   # "2.0"

Sub-modules:

* :mod:`~specroute.parser.loader` -- URL, file and stdin loading plus format
  and version detection.
* :mod:`~specroute.parser.resolver` -- Recursive ``$ref`` resolution with
  circular-reference protection.
"""

from specroute.parser.loader import detect_version, load_spec
from specroute.parser.resolver import resolve_refs

__all__ = ["load_spec", "detect_version", "resolve_refs"]
