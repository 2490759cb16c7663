"""Exception hierarchy for fetchcache.

All exceptions inherit from :class:`FetchCacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`fetchcache.exit_codes`.
The top-level error handler in :func:`fetchcache.app.main` catches
``FetchCacheError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    FetchCacheError (exit 1)
    +-- InvalidUsageError      (exit 2)
    +-- InvalidUrlError        (exit 2)
    +-- ConfigError            (exit 1)
    +-- TransportError         (exit 6)
    +-- UpstreamStatusError    (exit 5)
    +-- CacheError             (exit 8)
    |   +-- CacheReadError
    |   |   +-- DecodingError
    |   +-- CacheWriteError
    +-- DeserializationError   (exit 9)
    +-- NotFetchedError        (exit 1)
"""

from fetchcache.exit_codes import (
    EXIT_CACHE_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_DESERIALIZATION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_UPSTREAM_STATUS,
)


class FetchCacheError(Exception):
    """Base exception for all fetchcache errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`fetchcache.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(FetchCacheError):
    """Raised for invalid CLI arguments such as a negative TTL."""

    exit_code = EXIT_INVALID_USAGE


class InvalidUrlError(FetchCacheError):
    """Raised when a URL cannot be normalised into a cache key."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(FetchCacheError):
    """Raised for configuration problems (invalid JSON, bad environment values)."""

    exit_code = EXIT_GENERIC_FAILURE


class TransportError(FetchCacheError):
    """Raised on network-level failures (timeout, DNS resolution, TLS, connection refused).

    A timeout enforced by the HTTP client surfaces as this error as well.
    """

    exit_code = EXIT_CONNECTION_ERROR


class UpstreamStatusError(FetchCacheError):
    """Raised when the server answers with a status that is neither 2xx nor 304.

    Args:
        url: The requested URL.
        status_code: The HTTP status code received.
    """

    exit_code = EXIT_UPSTREAM_STATUS

    def __init__(self, url: str, status_code: int):
        super().__init__(f"Request to {url} returned HTTP {status_code}")
        self.url = url
        self.status_code = status_code


class CacheError(FetchCacheError):
    """Base class for failures of the local cache store."""

    exit_code = EXIT_CACHE_ERROR


class CacheReadError(CacheError):
    """Raised when a cache entry is missing, unreadable, or corrupted."""


class DecodingError(CacheReadError):
    """Raised when a cached payload is not valid UTF-8 text."""


class CacheWriteError(CacheError):
    """Raised when an entry cannot be serialised or persisted."""


class DeserializationError(FetchCacheError):
    """Raised when a response body does not match the expected typed shape."""

    exit_code = EXIT_DESERIALIZATION_ERROR


class NotFetchedError(FetchCacheError):
    """Raised when reading a :class:`~fetchcache.fetchable.Fetchable` that was never fetched."""

    exit_code = EXIT_GENERIC_FAILURE
