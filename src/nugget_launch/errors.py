"""
Nugget Launch - Error Taxonomy.

None of these are user-visible. The worst observable effect of any of
them is a feature silently falling back to defaults.

- TransientFetchError: a prefetch task failed; its fallback is used
- PermissionDenied: notification permission refused; registration skipped
- PersistenceError: flag read/write failed; reads fall back to defaults

A late result from a superseded prefetch generation is not an error and
has no exception type: it is discarded.
"""

import asyncio

from nugget_launch.models import FailureKind


class LaunchError(Exception):
    """Base class for launch subsystem errors."""


class TransientFetchError(LaunchError):
    """A remote-backed fetch failed in a way that is safe to ignore."""

    def __init__(self, message: str, kind: FailureKind = FailureKind.NETWORK):
        super().__init__(message)
        self.kind = kind


class PermissionDenied(LaunchError):
    """The user refused notification permission."""


class PersistenceError(LaunchError):
    """Reading or writing persisted onboarding flags failed."""


def classify_error(exc: BaseException) -> FailureKind:
    """
    Map an exception raised by a prefetch operation to a FailureKind.

    Args:
        exc: The exception the operation raised (or the timeout)

    Returns:
        The coarse failure kind used for logging and result tagging
    """
    if isinstance(exc, TransientFetchError):
        return exc.kind
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return FailureKind.TIMEOUT
    if isinstance(exc, asyncio.CancelledError):
        return FailureKind.CANCELLED
    if isinstance(exc, ConnectionError):
        return FailureKind.NETWORK
    if isinstance(exc, (PersistenceError, OSError)):
        return FailureKind.STORAGE
    return FailureKind.UNKNOWN
