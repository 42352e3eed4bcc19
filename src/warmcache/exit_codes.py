"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~warmcache.exceptions.WarmcacheError` subclass.
Only the diagnostic CLI (:mod:`warmcache.app`) turns these into process
exit statuses; library callers see the exceptions themselves.

Example::

    $ warmcache durable show missing_key
    $ echo $?
    4   # EXIT_NOT_FOUND -- no durable record under that key
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or options."""

EXIT_NOT_FOUND = 4
"""The requested key or record does not exist."""

EXIT_STORAGE_ERROR = 8
"""The durable key-value backend could not be read or written."""
