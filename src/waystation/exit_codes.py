"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~waystation.exceptions.WaystationError` subclass.
Shell wrappers can inspect the exit code to decide whether to send the
user back through ``waystation auth login`` without parsing stderr.

Example::

    $ waystation auth refresh
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- no stored session to refresh
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_CONFIG_ERROR = 2
"""The OAuth configuration is malformed (bad endpoint URL, invalid config file)."""

EXIT_AUTH_FAILURE = 3
"""The callback was rejected or there is no usable stored session."""

EXIT_PROTOCOL_ERROR = 5
"""The authorization server answered with a non-2xx status or an unusable body."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CORRUPT_CREDENTIAL = 7
"""The stored credential file could not be read or parsed."""

EXIT_CAPABILITY_ERROR = 8
"""A platform capability (browser launch, token file) failed."""
