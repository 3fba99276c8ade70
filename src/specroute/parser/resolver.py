"""Resolve ``$ref`` JSON Reference pointers in Swagger/OpenAPI descriptions.

Swagger 2.0 documents point into ``#/definitions`` and ``#/parameters``;
OpenAPI 3.x documents point into ``#/components/...``. Both are handled the
same way: :func:`resolve_refs` returns a deep copy of the document in which
every internal pointer is replaced by its target.

External references (anything not starting with ``#/``) raise
:class:`~specroute.exceptions.CompileError`. Self-referencing schemas (tree
shapes, linked lists) are inlined down to the first repetition, where the
``$ref`` dict is left in place; :func:`specroute.schema.schema_to_type`
treats such leftovers as "any value".
"""

from __future__ import annotations

import copy
from typing import Any

from specroute.exceptions import CompileError


def resolve_refs(document: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *document* with all internal ``$ref`` pointers inlined.

    Args:
        document: The raw description as returned by
            :func:`~specroute.parser.loader.load_spec`.

    Returns:
        A new dictionary; the input is left untouched.

    Raises:
        CompileError: If a pointer is external or does not exist.

    Example::

        resolved = resolve_refs(raw)
        resolved["paths"]["/pets"]["post"]["parameters"][0]["schema"]
        # -> {"type": "object", "properties": {...}} instead of a $ref
    """
    root = copy.deepcopy(document)
    return _walk(root, root, frozenset())


def resolve_in(node: Any, root: dict[str, Any]) -> Any:
    """Resolve the pointers below *node* against *root*, returning a new object.

    Used for fragments (a single parameter list, a request body) when the
    surrounding document is available but was not resolved as a whole.
    """
    return _walk(copy.deepcopy(node), root, frozenset())


def lookup_pointer(ref: str, root: dict[str, Any]) -> Any:
    """Follow a single ``#/a/b/c`` pointer inside *root*.

    Handles RFC 6901 escaping (``~1`` for ``/``, ``~0`` for ``~``).

    Raises:
        CompileError: If the pointer is external or any segment is missing.
    """
    if not ref.startswith("#/"):
        raise CompileError(
            f"External $ref not supported: {ref}. "
            "Only internal references (#/...) are handled."
        )

    current: Any = root
    for segment in ref[2:].split("/"):
        segment = segment.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            raise CompileError(f"Cannot resolve $ref '{ref}': '{segment}' not found")
    return current


def _walk(node: Any, root: dict[str, Any], active: frozenset[str]) -> Any:
    """Depth-first replacement of ``$ref`` dicts below *node*.

    *active* holds the pointers currently being expanded on this branch; a
    pointer met again on the same branch is a cycle and is kept as-is.
    Sibling branches each get their own set.
    """
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str):
            if ref in active:
                return node
            return _walk(lookup_pointer(ref, root), root, active | {ref})
        return {key: _walk(value, root, active) for key, value in node.items()}

    if isinstance(node, list):
        return [_walk(item, root, active) for item in node]

    return node
