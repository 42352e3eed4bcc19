"""Exception hierarchy for warmcache.

All exceptions inherit from :class:`WarmcacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`warmcache.exit_codes`.
The CLI entry point :func:`warmcache.app.main` catches ``WarmcacheError``
and exits with the appropriate code.

Producer failures raised inside :meth:`~warmcache.cache.AdaptiveCache.get_or_fetch`
are never wrapped in these types: they reach the caller unchanged.

Subclass hierarchy::

    WarmcacheError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- NotFoundError       (exit 4)
    +-- StorageError        (exit 8)
    +-- ConfigError         (exit 1)
"""

from warmcache.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_STORAGE_ERROR,
)


class WarmcacheError(Exception):
    """Base exception for all warmcache errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(WarmcacheError):
    """Raised for invalid arguments, e.g. a non-positive TTL or unknown invalidation group."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(WarmcacheError):
    """Raised when a requested durable record does not exist."""

    exit_code = EXIT_NOT_FOUND


class StorageError(WarmcacheError):
    """Raised by durable backends when the underlying store fails.

    The durable mirror catches this and logs it; only the CLI lets it
    escape to the user.
    """

    exit_code = EXIT_STORAGE_ERROR


class ConfigError(WarmcacheError):
    """Raised for configuration problems (invalid JSON, failed validation, bad env values)."""

    exit_code = EXIT_GENERIC_FAILURE
