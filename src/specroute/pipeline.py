"""Interceptor definitions, build context, and the pipeline executor.

This module provides three core components:

* :class:`Context` -- A mutable dataclass that carries one request build
  through the interceptor chain. ``request`` accumulates the request
  descriptor; ``response`` holds the final result once any interceptor sets
  it.
* :class:`Interceptor` -- An immutable named pair of optional ``enter`` and
  ``leave`` functions, each taking and returning a :class:`Context`.
* :func:`execute` -- Runs a chain of interceptors over a context.

Execution is two-phase. The enter phase calls ``enter`` on each interceptor
in list order and stops early as soon as ``context.response`` is set. The
leave phase then calls ``leave`` on every interceptor whose ``enter`` phase
was reached, in reverse order. An interceptor early in the list therefore
wraps all the ones after it::

    timing = Interceptor(
        name="timing",
        enter=lambda ctx: ctx.with_value("started", time.monotonic()),
        leave=lambda ctx: ctx.with_value("elapsed", time.monotonic() - ctx.values["started"]),
    )
    execute([timing, *DEFAULT_INTERCEPTORS], context)

If an ``enter`` raises, the exception is stored on ``context.error`` and the
leave phase still runs, so that cleanup and logging interceptors observe the
failure. A ``leave`` function may clear ``context.error`` to recover (it
should then set ``context.response``). Whatever is left in ``context.error``
after the last ``leave`` is re-raised.

The executor knows nothing about HTTP; :mod:`specroute.interceptors` holds
the request-building chain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

if TYPE_CHECKING:
    from specroute.models import Route

logger = logging.getLogger(__name__)


@dataclass
class Context:
    """Mutable state threaded through one interceptor chain run.

    Attributes:
        request: Request descriptor under construction. Starts as
            ``{"params": <caller params>}`` and gains ``method``, ``url``,
            ``query_params``, ``body``, ``form_params`` and ``headers``.
        response: ``None`` until an interceptor produces the result. Setting
            it during the enter phase skips every remaining ``enter``.
        handler: The route being built (read-only).
        path_builder: Callable ``(route, path_params) -> url`` that renders
            the route's path with coerced path parameters, prefixed with the
            registry's base URL.
        error: Exception raised during the enter phase, visible to ``leave``
            functions.
        values: Free-form storage for custom interceptors.
    """

    request: dict[str, Any] = field(default_factory=dict)
    response: Any = None
    handler: Optional[Route] = None
    path_builder: Optional[Callable[..., str]] = None
    error: Optional[BaseException] = None
    values: dict[str, Any] = field(default_factory=dict)

    @property
    def params(self) -> dict[str, Any]:
        """The caller-supplied parameters (``request["params"]``)."""
        return self.request.get("params") or {}

    def with_value(self, key: str, value: Any) -> Context:
        """Store *value* under ``values[key]`` and return the context (for lambdas)."""
        self.values[key] = value
        return self


ContextFn = Callable[[Context], Context]


@dataclass(frozen=True)
class Interceptor:
    """A named step of an interceptor chain.

    Either function may be omitted, meaning "pass the context through" for
    that phase; omitting both is an error.

    Args:
        name: Identifier used by :func:`~specroute.interceptors.inject` and in
            log records.
        enter: Called on the way in, in list order.
        leave: Called on the way out, in reverse list order.

    Raises:
        ValueError: If neither *enter* nor *leave* is given.
    """

    name: str
    enter: Optional[ContextFn] = None
    leave: Optional[ContextFn] = None

    def __post_init__(self) -> None:
        if self.enter is None and self.leave is None:
            raise ValueError(f"Interceptor '{self.name}' needs an enter or a leave function")


def execute(interceptors: Iterable[Interceptor], context: Context) -> Context:
    """Run *interceptors* over *context* and return the final context.

    Args:
        interceptors: The chain, in enter order. It is read once and never
            modified.
        context: The initial context.

    Returns:
        The context returned by the last function that ran.

    Raises:
        BaseException: The exception raised by an ``enter`` or ``leave``
            function, re-raised after the leave phase if no ``leave``
            function cleared it.
    """
    chain = tuple(interceptors)
    executed: list[Interceptor] = []

    for interceptor in chain:
        if context.response is not None:
            logger.debug("Response set, skipping %d remaining interceptor(s)", len(chain) - len(executed))
            break
        executed.append(interceptor)
        if interceptor.enter is None:
            continue
        logger.debug("enter %s", interceptor.name)
        try:
            context = interceptor.enter(context)
        except Exception as exc:
            logger.debug("enter %s raised %s", interceptor.name, type(exc).__name__)
            context.error = exc
            break

    while executed:
        interceptor = executed.pop()
        if interceptor.leave is None:
            continue
        logger.debug("leave %s", interceptor.name)
        try:
            context = interceptor.leave(context)
        except Exception as exc:
            logger.debug("leave %s raised %s", interceptor.name, type(exc).__name__)
            context.error = exc

    if context.error is not None:
        raise context.error
    return context
