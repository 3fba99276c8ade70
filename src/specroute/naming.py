"""Name normalisation for routes and parameters.

Callers address routes and parameters by a lowercase-hyphenated form of the
name used in the API description, whatever its original casing:

* ``GetPet`` becomes ``get-pet``
* ``petId`` becomes ``pet-id``
* ``X-Request-ID`` becomes ``x-request-id``

The original wire name is kept by the compiler and used when the request is
rendered. :func:`to_identifier` produces the Python attribute names used on
the generated pydantic models.
"""

from __future__ import annotations

import keyword
import re

# Matches any character that is not alphanumeric.
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]+")


def _split_words(name: str) -> list[str]:
    """Split *name* into lowercase words on case boundaries and separators."""
    # e.g. "petId" -> "pet_Id", "XMLParser" -> "XML_Parser"
    result = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    result = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", result)
    return [word for word in _NON_ALNUM_RE.split(result.lower()) if word]


def to_kebab_case(name: str) -> str:
    """Convert a route or parameter name to its caller-facing kebab-case form.

    Args:
        name: The name as written in the API description (e.g. ``"petId"``,
            ``"GetPet"``, ``"first_name"``).

    Returns:
        The lowercase-hyphenated form (``"pet-id"``, ``"get-pet"``,
        ``"first-name"``). Names without any alphanumeric character are
        returned unchanged.

    Example::

        >>> to_kebab_case("FirstName")
        'first-name'
    """
    words = _split_words(name)
    if not words:
        return name
    return "-".join(words)


def to_identifier(name: str) -> str:
    """Convert a wire name to a valid Python identifier (snake_case).

    A leading digit gets an ``f`` prefix (pydantic reserves leading
    underscores for private attributes). Python keywords get a trailing
    underscore per PEP 8 convention.

    Example::

        >>> to_identifier("X-Request-ID")
        'x_request_id'
        >>> to_identifier("class")
        'class_'
    """
    result = "_".join(_split_words(name)) or "param"
    if result[0].isdigit():
        result = f"f{result}"
    if keyword.iskeyword(result):
        result = f"{result}_"
    return result


def to_class_name(name: str) -> str:
    """CamelCase form of *name*, used for generated model class names.

    Example::

        >>> to_class_name("get-pet")
        'GetPet'
    """
    return "".join(word.capitalize() for word in _split_words(name)) or "Model"
