"""Numeric process exit codes for the ``repofetch`` command line.

Each constant maps to an error category and is referenced by the
corresponding :class:`~repofetch.exceptions.RepofetchError` subclass.
Shell scripts can branch on the exit code without parsing stderr, e.g. to
back off after a rate-limit failure.

Example::

    $ repofetch get https://api.github.com/repos/acme/presets
    $ echo $?
    8   # EXIT_RATE_LIMITED -- the upstream API refused further requests
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_AUTH_FAILURE = 3
"""The upstream API rejected the request as unauthenticated or forbidden."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The upstream API returned an HTTP 5xx server error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_RATE_LIMITED = 8
"""The upstream API rate limit was exceeded (HTTP 429, or 403 with rate-limit wording)."""

EXIT_IMPORT_FAILED = 9
"""A repository source could not be imported."""
