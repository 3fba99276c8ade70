"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specroute.exceptions.SpecrouteError` subclass.
Only the ``specroute`` command line uses them; library callers catch the
exception types instead.

Example::

    $ specroute url get-pet --spec petstore.json
    $ echo $?
    8   # EXIT_COERCION_ERROR -- the required ``id`` parameter was missing
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_NOT_FOUND = 4
"""The requested route does not exist in the compiled registry."""

EXIT_SPEC_COMPILE_ERROR = 7
"""The API description could not be loaded or compiled."""

EXIT_COERCION_ERROR = 8
"""Supplied parameters failed validation against a route's schema."""
