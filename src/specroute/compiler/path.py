"""Path template tokenizer and renderer.

A path template such as ``/pets/{petId}/photos`` is split into an ordered
tuple of literal strings and :class:`~specroute.models.PathParam` tokens::

    >>> tokenize_path("/pets/{petId}/photos")
    ('/pets/', PathParam(name='petId'), '/photos')

:func:`join_path` is the exact inverse of :func:`tokenize_path`, and
:func:`render_path` substitutes parameter values to produce the request path.
Hand-written route tables describe paths as lists instead of templates;
:func:`parse_path_parts` accepts those, with a leading colon marking a
parameter (``["/pets/", ":id"]``).
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from specroute.exceptions import CoercionError, CompileError
from specroute.models import PathParam, PathPart


def tokenize_path(template: str) -> tuple[PathPart, ...]:
    """Split *template* into literal and parameter tokens.

    Args:
        template: A URL path template using ``{name}`` placeholders.

    Returns:
        Tokens in template order. Empty literals are omitted, so two adjacent
        placeholders yield two adjacent :class:`PathParam` tokens.

    Raises:
        CompileError: On an unclosed ``{``, a stray ``}``, a nested ``{``,
            or an empty ``{}`` placeholder.
    """
    tokens: list[PathPart] = []
    literal_start = 0
    index = 0

    while index < len(template):
        char = template[index]
        if char == "}":
            raise CompileError(f"Unbalanced '}}' at position {index} in path template {template!r}")
        if char != "{":
            index += 1
            continue

        close = template.find("}", index + 1)
        if close == -1:
            raise CompileError(f"Unclosed '{{' at position {index} in path template {template!r}")
        name = template[index + 1:close]
        if "{" in name:
            raise CompileError(f"Nested '{{' at position {index} in path template {template!r}")
        if not name:
            raise CompileError(f"Empty parameter name at position {index} in path template {template!r}")

        if index > literal_start:
            tokens.append(template[literal_start:index])
        tokens.append(PathParam(name))
        index = close + 1
        literal_start = index

    if literal_start < len(template):
        tokens.append(template[literal_start:])
    return tuple(tokens)


def parse_path_parts(parts: Iterable[Any]) -> tuple[PathPart, ...]:
    """Normalise a hand-written list of path parts.

    Strings starting with ``:`` become parameters, :class:`PathParam`
    instances are kept, and every other string is a literal.

    Raises:
        CompileError: On a bare ``":"`` or a part that is neither a string nor
            a :class:`PathParam`.
    """
    tokens: list[PathPart] = []
    for part in parts:
        if isinstance(part, PathParam):
            tokens.append(part)
        elif isinstance(part, str) and part.startswith(":"):
            if len(part) == 1:
                raise CompileError("Empty parameter name ':' in path parts")
            tokens.append(PathParam(part[1:]))
        elif isinstance(part, str):
            tokens.append(part)
        else:
            raise CompileError(f"Invalid path part {part!r}: expected str or PathParam")
    return tuple(tokens)


def join_path(tokens: Iterable[PathPart]) -> str:
    """Rebuild the ``{name}`` template from *tokens*."""
    return "".join(str(token) for token in tokens)


def path_params(tokens: Iterable[PathPart]) -> list[str]:
    """Wire names of the parameters in *tokens*, in order of appearance."""
    return [token.name for token in tokens if isinstance(token, PathParam)]


def render_path(tokens: Iterable[PathPart], values: Mapping[str, Any]) -> str:
    """Substitute parameter values into *tokens*.

    Args:
        tokens: Output of :func:`tokenize_path` or :func:`parse_path_parts`.
        values: Coerced path parameters keyed by wire name.

    Raises:
        CoercionError: If a parameter in the template has no value.
    """
    rendered: list[str] = []
    for token in tokens:
        if isinstance(token, PathParam):
            if token.name not in values:
                raise CoercionError(
                    f"Missing path parameter '{token.name}'",
                    placement="path",
                    errors=[{"loc": (token.name,), "msg": "Field required", "type": "missing"}],
                )
            rendered.append(str(values[token.name]))
        else:
            rendered.append(token)
    return "".join(rendered)
