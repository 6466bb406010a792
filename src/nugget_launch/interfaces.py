"""
Collaborator Protocols.

The launch orchestrator talks to remote-backed services only through
these interfaces. Concrete implementations (network client, keychain,
share extension, OS notification center) live outside this package and
are injected at construction time, so tests substitute fakes.

Every async method is a suspension point: none of them may block the
event loop that owns launch state.
"""

from typing import Callable, Protocol, runtime_checkable

from nugget_launch.models import PersistedFlags, Preferences


@runtime_checkable
class AuthProvider(Protocol):
    """Source of truth for authentication. Read-only from here."""

    def is_authenticated(self) -> bool:
        ...

    def on_change(self, callback: Callable[[bool], None]) -> None:
        """Register a callback invoked with the new authenticated flag."""
        ...


@runtime_checkable
class PreferencesStore(Protocol):
    async def get(self) -> Preferences:
        """Fetch the user's preferences. May raise on network/storage failure."""
        ...


@runtime_checkable
class ContentLister(Protocol):
    async def warm(self) -> None:
        """Prime the content list cache. The result is not consumed."""
        ...


@runtime_checkable
class PendingShareService(Protocol):
    async def process_pending(self) -> bool:
        """Flush content queued by the share extension. True if anything was flushed."""
        ...


@runtime_checkable
class NotificationRegistrar(Protocol):
    """Push notification permission, device registration and app badge."""

    async def request_authorization(self) -> bool:
        ...

    async def register(self) -> None:
        ...

    async def reset_badge(self) -> None:
        ...


@runtime_checkable
class PersistedFlagStore(Protocol):
    """
    Durable onboarding flags.

    Implementations raise PersistenceError on read/write failure; callers
    decide how to degrade.
    """

    def get_flags(self) -> PersistedFlags:
        ...

    def mark_seen(self, flag_name: str) -> None:
        ...

    def reset(self, flag_name: str) -> None:
        ...
