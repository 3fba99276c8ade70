"""Typer application and CLI entry point for specroute.

The ``specroute`` command exposes the registry from the shell, which is handy
for checking what a description compiles to and what a request would look
like without sending it::

    specroute --spec petstore.json routes
    specroute --spec petstore.json url get-pet -p id=123
    specroute --spec petstore.json request create-pet --body '{"name": "Rex"}'

The API description and base URL are resolved by
:func:`~specroute.config.resolve_config`. :func:`main` is the console-script
entry point declared in ``pyproject.toml``; every
:class:`~specroute.exceptions.SpecrouteError` ends the process with that
error's exit code.
"""

from __future__ import annotations

import json
import logging
import signal
import sys
from typing import Any, List, Optional

import typer

from specroute import __version__
from specroute.exceptions import (
    CoercionError,
    ConfigError,
    InvalidUsageError,
    RouteNotFoundError,
    SpecrouteError,
)
from specroute.exit_codes import EXIT_GENERIC_FAILURE
from specroute.output import debug, error, format_response, print_data, print_table, suggest, warning

app = typer.Typer(
    name="specroute",
    help="Compile Swagger/OpenAPI descriptions into routes and build request descriptors.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

_PARAM_HELP = "Parameter as key=value; the value is parsed as JSON when possible. Repeatable."


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"specroute {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    spec: Optional[str] = typer.Option(
        None, "--spec", "-s", help="URL or file path of the API description ('-' for stdin)."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Override the base URL derived from the description."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~specroute.output.OutputManager` and stores
    the description source and base URL override in ``ctx.obj``.
    """
    from specroute.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(levelname)s:%(name)s:%(message)s",
        )

    ctx.ensure_object(dict)
    ctx.obj["spec"] = spec
    ctx.obj["base_url"] = base_url


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _load_registry(ctx: typer.Context):  # noqa: ANN202
    """Build a :class:`~specroute.registry.Registry` from the resolved config."""
    from specroute.config import resolve_config
    from specroute.registry import bootstrap_from

    obj = ctx.obj or {}
    config = resolve_config(cli_spec=obj.get("spec"), cli_base_url=obj.get("base_url"))
    if not config.spec:
        raise ConfigError(
            "No API description configured. Pass --spec, set SPECROUTE_SPEC, "
            "or add \"spec\" to ./specroute.json"
        )
    debug(f"Loading API description from {config.spec}")
    registry = bootstrap_from(config.spec, base_url=config.base_url)
    debug(f"Compiled {len(registry)} route(s), base URL {registry.base_url!r}")
    return registry


def parse_params(pairs: Optional[List[str]]) -> dict[str, Any]:
    """Turn ``key=value`` strings into a params dict.

    Values that parse as JSON (``3``, ``true``, ``{"a": 1}``) are used as
    parsed; anything else is kept as a string.

    Raises:
        InvalidUsageError: If a pair has no ``=`` or an empty key.
    """
    params: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise InvalidUsageError(f"Invalid parameter {pair!r}: expected key=value")
        try:
            params[key] = json.loads(raw)
        except json.JSONDecodeError:
            params[key] = raw
    return params


def _warn_if_deprecated(registry, route_name: str) -> None:  # noqa: ANN001
    route = registry.find(route_name)
    if route is not None and route.deprecated:
        warning(f"Route '{route_name}' is deprecated")


def _report(exc: SpecrouteError) -> None:
    """Print *exc* and exit with its code."""
    error(str(exc))
    if isinstance(exc, CoercionError) and exc.fields:
        suggest(f"Check parameter(s): {', '.join(exc.fields)}")
    elif isinstance(exc, RouteNotFoundError):
        suggest("Run 'specroute routes' to list the available routes")
    raise typer.Exit(code=exc.exit_code)


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("routes")
def routes_command(ctx: typer.Context) -> None:
    """List every route compiled from the description.

    Example::

        specroute --spec petstore.json routes
    """
    try:
        registry = _load_registry(ctx)
    except SpecrouteError as exc:
        _report(exc)

    rows = [
        [route.route_name, route.method.value.upper(), route.path, route.summary or "-"]
        for route in registry.routes
    ]
    print_table(["Route", "Method", "Path", "Summary"], rows, title=f"Routes ({len(rows)})")


@app.command("explore")
def explore_command(
    ctx: typer.Context,
    route_name: str = typer.Argument(..., help="Route name, e.g. get-pet."),
) -> None:
    """Show a route's method, path, parameter schemas and responses."""
    try:
        registry = _load_registry(ctx)
        details = registry.explore(route_name)
        if details is None:
            raise RouteNotFoundError(f"No route named '{route_name}'")
    except SpecrouteError as exc:
        _report(exc)
    format_response(details)


@app.command("url")
def url_command(
    ctx: typer.Context,
    route_name: str = typer.Argument(..., help="Route name, e.g. get-pet."),
    param: Optional[List[str]] = typer.Option(None, "--param", "-p", help=_PARAM_HELP),
) -> None:
    """Print the URL of a route with its path parameters filled in.

    Example::

        specroute url get-pet -p id=123
    """
    try:
        params = parse_params(param)
        registry = _load_registry(ctx)
        url = registry.url_for(route_name, params)
        if url is None:
            raise RouteNotFoundError(f"No route named '{route_name}'")
    except SpecrouteError as exc:
        _report(exc)
    _warn_if_deprecated(registry, route_name)
    print_data(url)


@app.command("request")
def request_command(
    ctx: typer.Context,
    route_name: str = typer.Argument(..., help="Route name, e.g. create-pet."),
    param: Optional[List[str]] = typer.Option(None, "--param", "-p", help=_PARAM_HELP),
    body: Optional[str] = typer.Option(
        None, "--body", "-b", help="Request body as JSON; takes precedence over body parameters."
    ),
) -> None:
    """Print the request descriptor a route builds, without sending it.

    Example::

        specroute request create-pet -p name=Rex -p type=Dog -p age=3
    """
    from specroute.interceptors import BODY_KEY

    try:
        params = parse_params(param)
        if body is not None:
            try:
                params[BODY_KEY] = json.loads(body)
            except json.JSONDecodeError as exc:
                raise InvalidUsageError(f"--body is not valid JSON: {exc}") from None
        registry = _load_registry(ctx)
        descriptor = registry.request_for(route_name, params)
        if descriptor is None:
            raise RouteNotFoundError(f"No route named '{route_name}'")
    except SpecrouteError as exc:
        _report(exc)
    _warn_if_deprecated(registry, route_name)
    format_response(descriptor)


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``specroute`` console script.

    :class:`~specroute.exceptions.SpecrouteError` instances that escape a
    command exit with their ``exit_code``; any other exception is reported
    and exits with :data:`~specroute.exit_codes.EXIT_GENERIC_FAILURE`.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except SpecrouteError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error: {type(exc).__name__}: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
