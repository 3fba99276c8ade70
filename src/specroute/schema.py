"""Schema engine adapter built on pydantic.

The compiler never validates parameters itself. It builds one pydantic model
per parameter placement with :func:`build_model` and, at request time, the
interceptors hand raw parameters to :func:`coerce`, which either returns the
validated and type-coerced mapping keyed by wire names or raises
:class:`~specroute.exceptions.CoercionError`.

Every generated field accepts its caller-facing kebab-case name (and the
original wire name) on input, and serialises under the wire name::

    model = build_model("GetPetQuery", [("pageSize", int, False)])
    coerce(model, {"page-size": "10"})   # -> {"pageSize": 10}

JSON Schema fragments from the description are mapped to Python annotations
by :func:`schema_to_type`:

* ``string``/``integer``/``number``/``boolean`` to ``str``/``int``/
  ``float``/``bool`` (``format: binary`` to ``bytes``)
* ``array`` to ``list[item]``
* ``object`` with ``properties`` to a nested generated model
* ``enum`` to ``Literal[...]``
* anything unrecognised (including unresolved circular ``$ref``) to ``Any``
"""

from __future__ import annotations

import logging
import typing
from types import UnionType
from typing import Any, Iterable, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, create_model

from specroute.exceptions import CoercionError
from specroute.naming import to_class_name, to_identifier, to_kebab_case

logger = logging.getLogger(__name__)

_TYPE_MAP: dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "file": Any,
}

_FORMAT_OVERRIDES: dict[tuple[str, str], Any] = {
    ("string", "binary"): bytes,
    ("integer", "int32"): int,
    ("integer", "int64"): int,
    ("number", "float"): float,
    ("number", "double"): float,
}

_MODEL_CONFIG = ConfigDict(
    extra="ignore",
    protected_namespaces=(),
    coerce_numbers_to_str=True,
)

FieldSpec = tuple[str, Any, bool]
"""``(wire_name, annotation, required)`` triple accepted by :func:`build_model`."""


# ---------------------------------------------------------------------------
# Model construction
# ---------------------------------------------------------------------------


def build_model(name: str, fields: Iterable[FieldSpec]) -> Optional[type[BaseModel]]:
    """Build a pydantic model for one group of parameters.

    Args:
        name: Class name for the generated model (used in error messages and
            JSON schemas).
        fields: ``(wire_name, annotation, required)`` triples. Optional fields
            default to ``None`` and are left out of :func:`coerce` output
            when not supplied.

    Returns:
        The generated model class, or ``None`` when *fields* is empty.
    """
    definitions: dict[str, Any] = {}
    for wire_name, annotation, required in fields:
        attr = _attribute_name(wire_name, definitions)
        kebab = to_kebab_case(wire_name)
        alias: Any = kebab if kebab == wire_name else AliasChoices(kebab, wire_name)
        if required:
            field = Field(validation_alias=alias, serialization_alias=wire_name)
            definitions[attr] = (annotation, field)
        else:
            field = Field(default=None, validation_alias=alias, serialization_alias=wire_name)
            definitions[attr] = (Optional[annotation], field)

    if not definitions:
        return None
    return create_model(name, __config__=_MODEL_CONFIG, **definitions)


def _attribute_name(wire_name: str, taken: dict[str, Any]) -> str:
    """Pick a unique attribute name for *wire_name* on a generated model."""
    base = to_identifier(wire_name)
    if base.startswith("model_") or hasattr(BaseModel, base):
        base = f"{base}_"
    attr = base
    counter = 2
    while attr in taken:
        attr = f"{base}{counter}"
        counter += 1
    return attr


def schema_to_type(schema: Any, name: str) -> Any:
    """Map a resolved JSON Schema fragment to a Python type annotation.

    Args:
        schema: The schema dict (``$ref`` pointers already resolved).
        name: Base name for any nested models generated along the way.

    Returns:
        A type annotation usable as a pydantic field type.
    """
    if not isinstance(schema, dict):
        return Any
    if "$ref" in schema:
        logger.debug("Unresolved $ref %s in %s, accepting any value", schema["$ref"], name)
        return Any

    if "allOf" in schema:
        return schema_to_type(_merge_all_of(schema["allOf"]), name)

    enum_values = schema.get("enum")
    if enum_values and all(isinstance(v, (str, int, float, bool)) for v in enum_values):
        annotation: Any = Literal[tuple(enum_values)]
    else:
        annotation = _base_type(schema, name)

    if schema.get("nullable") or _allows_null(schema.get("type")):
        annotation = Optional[annotation]
    return annotation


def _base_type(schema: dict[str, Any], name: str) -> Any:
    """Return the annotation for *schema* ignoring ``enum`` and nullability."""
    schema_type = _primary_type(schema)

    if schema_type == "array":
        return list[schema_to_type(schema.get("items", {}), f"{name}Item")]

    if schema_type == "object" or (schema_type is None and "properties" in schema):
        properties = schema.get("properties") or {}
        if not properties:
            return dict[str, Any]
        required = set(schema.get("required", []))
        fields = [
            (prop_name, schema_to_type(prop_schema, f"{name}{to_class_name(prop_name)}"), prop_name in required)
            for prop_name, prop_schema in properties.items()
        ]
        return build_model(name, fields)

    if schema_type is None:
        return Any

    schema_format = schema.get("format")
    if schema_format:
        override = _FORMAT_OVERRIDES.get((schema_type, schema_format))
        if override is not None:
            return override
    return _TYPE_MAP.get(schema_type, Any)


def _primary_type(schema: dict[str, Any]) -> Optional[str]:
    """Extract the type string, taking the first non-null entry of a 3.1 type array."""
    type_value = schema.get("type")
    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        return non_null[0] if non_null else None
    return type_value


def _allows_null(type_value: Any) -> bool:
    return isinstance(type_value, list) and "null" in type_value


def _merge_all_of(parts: list[Any]) -> dict[str, Any]:
    """Flatten an ``allOf`` list into a single object schema."""
    merged: dict[str, Any] = {"type": "object", "properties": {}, "required": []}
    for part in parts:
        if not isinstance(part, dict):
            continue
        if "allOf" in part:
            part = _merge_all_of(part["allOf"])
        merged["properties"].update(part.get("properties", {}))
        merged["required"].extend(part.get("required", []))
    return merged


def field_keys(annotation: Any) -> frozenset[str]:
    """Input keys accepted by the model behind *annotation*.

    Covers both the kebab-case and the wire spelling of every field.
    *annotation* may be a model class or an ``Optional`` of one; anything
    else accepts no keys.
    """
    model = _unwrap_model(annotation)
    if model is None:
        return frozenset()
    keys: set[str] = set()
    for attr, info in model.model_fields.items():
        alias = info.validation_alias
        if isinstance(alias, AliasChoices):
            keys.update(choice for choice in alias.choices if isinstance(choice, str))
        else:
            keys.add(alias if isinstance(alias, str) else attr)
    return frozenset(keys)


def _unwrap_model(annotation: Any) -> Optional[type[BaseModel]]:
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is UnionType:
        members = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        annotation = members[0] if len(members) == 1 else None
    if typing.get_origin(annotation) is not None:
        return None
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    return None


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def coerce(
    schema: Optional[type[BaseModel]],
    data: Any,
    placement: Optional[str] = None,
) -> dict[str, Any]:
    """Validate and coerce *data* against *schema*.

    Keys that the schema does not declare are dropped. Values are converted
    to the declared types (``"123"`` to ``123`` for an integer field).

    Args:
        schema: A model built by :func:`build_model`, or ``None`` (in which
            case the result is always empty).
        data: Mapping of caller-supplied parameters.
        placement: Placement name reported on errors.

    Returns:
        The coerced values keyed by wire name, without unset optional fields.

    Raises:
        CoercionError: If a required field is missing or a value cannot be
            converted to its declared type.
    """
    if schema is None:
        return {}
    try:
        instance = schema.model_validate(dict(data or {}))
    except ValidationError as exc:
        errors = [
            {"loc": tuple(err["loc"]), "msg": err["msg"], "type": err["type"]}
            for err in exc.errors()
        ]
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in errors
        )
        where = f"{placement} parameters" if placement else "parameters"
        raise CoercionError(
            f"Invalid {where} for {schema.__name__}: {details}",
            placement=placement,
            errors=errors,
        ) from exc
    return instance.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


def describe(schema: Any) -> dict[str, Any]:
    """Return a JSON Schema for a model class or type annotation, for introspection."""
    if schema is None:
        return {}
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return schema.model_json_schema(by_alias=True)
    return TypeAdapter(schema).json_schema()
