"""Canonical Pydantic models shared across all specroute modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Configuration models** -- read from ``./specroute.json``:
    :class:`ProjectConfig`.

**Compiler output models** -- produced by :mod:`specroute.compiler` and
consumed by :class:`~specroute.registry.Registry`:
    :class:`HTTPMethod`, :class:`Placement`, :class:`PathParam`,
    :class:`ResponseSchema` and :class:`Route`.

Compiler output is immutable: routes are frozen models created once at
compile time, so a registry holding them can be shared between threads.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Project Config ---


class ProjectConfig(BaseModel):
    """Project-local configuration persisted at ``./specroute.json``.

    Lets a repository pin the API description and base URL used by the
    ``specroute`` command so they need not be repeated on every invocation.
    See :func:`~specroute.config.resolve_config` for the precedence chain.
    """

    model_config = ConfigDict(extra="ignore")

    spec: Optional[str] = Field(
        default=None, description="URL or file path to the API description"
    )
    base_url: Optional[str] = Field(
        default=None, description="Override the base URL derived from the description"
    )


# --- Compiler Output Models ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised in Swagger/OpenAPI path-item objects."""

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"


class Placement(str, enum.Enum):
    """Where a parameter travels in the HTTP request.

    Swagger 2.0 ``formData`` parameters map to :attr:`FORM`; OpenAPI 3.x form
    request bodies are flattened into :attr:`FORM` as well.
    """

    PATH = "path"
    QUERY = "query"
    BODY = "body"
    FORM = "form"
    HEADER = "header"


@dataclass(frozen=True)
class PathParam:
    """A named placeholder inside a route's path template.

    ``name`` is the parameter's wire name exactly as written in the template
    (``petId`` in ``/pets/{petId}``).
    """

    name: str

    def __str__(self) -> str:
        return "{" + self.name + "}"


PathPart = Union[str, PathParam]


class ResponseSchema(BaseModel):
    """One declared response of a route.

    ``status`` is the integer status code, or the string ``"default"``.
    ``body_schema`` is an opaque type object built by :mod:`specroute.schema`
    (``None`` when the response declares no body).
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: Union[int, str]
    description: Optional[str] = None
    body_schema: Any = None


class Route(BaseModel):
    """A compiled, immutable description of one API operation.

    Each route corresponds to one path + HTTP method pair of the source
    description (or one entry of a hand-written route table) and is looked up
    by its kebab-case :attr:`route_name`.

    The five ``*_schema`` fields hold pydantic model classes built by
    :func:`~specroute.schema.build_model`; a field is ``None`` when the
    operation declares no parameter in that placement.
    ``interceptors`` holds route-specific
    :class:`~specroute.pipeline.Interceptor` objects appended after the
    registry's chain whenever this route is built.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    route_name: str
    method: HTTPMethod
    path: str
    path_parts: tuple[Any, ...] = ()
    path_schema: Optional[type[BaseModel]] = None
    query_schema: Optional[type[BaseModel]] = None
    body_schema: Optional[type[BaseModel]] = None
    form_schema: Optional[type[BaseModel]] = None
    headers_schema: Optional[type[BaseModel]] = None
    body_name: Optional[str] = Field(
        default=None, description="Declared name of the single body parameter"
    )
    body_required: bool = False
    responses: tuple[ResponseSchema, ...] = ()
    summary: Optional[str] = None
    description: Optional[str] = None
    produces: tuple[str, ...] = ()
    consumes: tuple[str, ...] = ()
    deprecated: bool = False
    interceptors: tuple[Any, ...] = ()
    raw_definition: dict[str, Any] = Field(default_factory=dict)

    @property
    def schemas(self) -> dict[Placement, Optional[type[BaseModel]]]:
        """Placement to schema mapping (``None`` for empty placements)."""
        return {
            Placement.PATH: self.path_schema,
            Placement.QUERY: self.query_schema,
            Placement.BODY: self.body_schema,
            Placement.FORM: self.form_schema,
            Placement.HEADER: self.headers_schema,
        }
