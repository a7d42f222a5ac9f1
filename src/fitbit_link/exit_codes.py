"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~fitbit_link.exceptions.FitbitError` subclass.
Shell wrappers around ``fitbit-link`` can inspect the exit code to tell a
rejected token request from a network outage without parsing stderr.

Example::

    $ fitbit-link refresh
    $ echo $?
    3   # EXIT_PROVIDER_ERROR -- the token endpoint rejected the request
"""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing local state."""

EXIT_PROVIDER_ERROR = 3
"""The token endpoint answered with an error response."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_TOKEN_UPDATE_ERROR = 7
"""A refreshed token was issued but could not be persisted."""
