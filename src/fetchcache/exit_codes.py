"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~fetchcache.exceptions.FetchCacheError` subclass.
Shell wrappers can inspect the exit code to tell a network failure from a
corrupted cache without parsing stderr.

Example::

    $ fetchcache fetch https://api.example.com/items
    $ echo $?
    6   # EXIT_CONNECTION_ERROR -- the host could not be reached
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments (bad URL, negative TTL)."""

EXIT_UPSTREAM_STATUS = 5
"""The remote API answered with a status other than 2xx or 304."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, TLS, connection refused)."""

EXIT_CACHE_ERROR = 8
"""The local cache could not be read or written."""

EXIT_DESERIALIZATION_ERROR = 9
"""A response body did not match the expected shape."""
