"""Exception hierarchy for specroute.

All exceptions inherit from :class:`SpecrouteError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specroute.exit_codes`.
The command line entry point in :func:`specroute.app.main` catches
``SpecrouteError`` and exits with the appropriate code.

A route that cannot be found is *not* an error for library callers:
:meth:`~specroute.registry.Registry.url_for` and
:meth:`~specroute.registry.Registry.request_for` return ``None``. Only the
command line turns that miss into :class:`RouteNotFoundError`.

Subclass hierarchy::

    SpecrouteError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- RouteNotFoundError  (exit 4)
    +-- CompileError        (exit 7)
    +-- CoercionError       (exit 8)
    +-- ConfigError         (exit 1)
"""

from __future__ import annotations

from typing import Any, Optional

from specroute.exit_codes import (
    EXIT_COERCION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SPEC_COMPILE_ERROR,
)


class SpecrouteError(Exception):
    """Base exception for all specroute errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecrouteError):
    """Raised for invalid CLI arguments (e.g. a ``-p`` value without ``=``)."""

    exit_code = EXIT_INVALID_USAGE


class RouteNotFoundError(SpecrouteError):
    """Raised by the CLI when the requested route name is not registered."""

    exit_code = EXIT_NOT_FOUND


class CompileError(SpecrouteError):
    """Raised when an API description cannot be loaded or compiled.

    Covers malformed path templates (unbalanced braces), operations without an
    ``operationId``, unsupported document versions and unresolvable ``$ref``
    pointers. Compilation is all-or-nothing: no partial registry is produced.
    """

    exit_code = EXIT_SPEC_COMPILE_ERROR


class CoercionError(SpecrouteError):
    """Raised when parameters fail validation against a placement's schema.

    Attributes:
        placement: The parameter placement whose schema rejected the data
            (``"path"``, ``"query"``, ``"body"``, ``"form"`` or ``"header"``),
            or ``None`` when unknown.
        errors: Field-level problems as dicts with ``loc``, ``msg`` and
            ``type`` keys, in the order reported by the schema engine.
    """

    exit_code = EXIT_COERCION_ERROR

    def __init__(
        self,
        message: str,
        placement: Optional[str] = None,
        errors: Optional[list[dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.placement = placement
        self.errors = errors or []

    @property
    def fields(self) -> list[str]:
        """Dotted names of the offending fields, e.g. ``["age", "owner.name"]``."""
        return [".".join(str(part) for part in err.get("loc", ())) for err in self.errors]


class ConfigError(SpecrouteError):
    """Raised for configuration problems (invalid ``specroute.json``, no spec source)."""

    exit_code = EXIT_GENERIC_FAILURE
