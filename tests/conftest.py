"""
Pytest configuration and fixtures for launch orchestrator tests.

Fakes here implement the collaborator protocols in memory and record
every call, so tests assert on effects rather than on mocks.
"""

import asyncio
import os

import pytest

# Keep the shell environment from leaking into test settings
os.environ.pop("NUGGET_PREFETCH_TIMEOUT_SECONDS", None)
os.environ.pop("NUGGET_BETA_WELCOME_ELIGIBLE", None)

from nugget_launch.config import LaunchSettings
from nugget_launch.errors import PersistenceError
from nugget_launch.models import PersistedFlags, Preferences
from nugget_launch.orchestrator import LaunchOrchestrator
from nugget_launch.scheduler import ManualScheduler
from nugget_launch.signals import CONTENT_CHANGED, SignalBus
from nugget_launch.stores import InMemoryFlagStore


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class FakePreferencesStore:
    """Returns `values` in order (last one repeats). Optional per-call gates."""

    def __init__(self, values=None, error: Exception | None = None):
        self.values = list(values or [Preferences(interests=["technology"], daily_nugget_limit=3)])
        self.error = error
        self.gates: list[asyncio.Event] = []
        self.calls = 0

    async def get(self) -> Preferences:
        index = self.calls
        self.calls += 1
        if index < len(self.gates):
            await self.gates[index].wait()
        if self.error is not None:
            raise self.error
        return self.values[min(index, len(self.values) - 1)]


class FakeContentLister:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls = 0

    async def warm(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error


class FakePendingShares:
    """Each call pops the next queued flush result; False once empty."""

    def __init__(self, results=None, error: Exception | None = None):
        self.results = list(results or [])
        self.error = error
        self.calls = 0

    async def process_pending(self) -> bool:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.results.pop(0) if self.results else False


class FakeNotifications:
    def __init__(self, granted: bool = True, error: Exception | None = None):
        self.granted = granted
        self.error = error
        self.badge = 5
        self.badge_error: Exception | None = None
        self.authorization_requests = 0
        self.registrations = 0
        self.badge_resets = 0

    async def request_authorization(self) -> bool:
        self.authorization_requests += 1
        if self.error is not None:
            raise self.error
        return self.granted

    async def register(self) -> None:
        self.registrations += 1

    async def reset_badge(self) -> None:
        self.badge_resets += 1
        if self.badge_error is not None:
            raise self.badge_error
        self.badge = 0


class FakeAuth:
    def __init__(self, authenticated: bool = False):
        self.authenticated = authenticated
        self.callbacks = []

    def is_authenticated(self) -> bool:
        return self.authenticated

    def on_change(self, callback) -> None:
        self.callbacks.append(callback)

    def set(self, authenticated: bool) -> None:
        self.authenticated = authenticated
        for callback in self.callbacks:
            callback(authenticated)


class BrokenFlagStore:
    """Every read and write raises `error` (PersistenceError by default)."""

    def __init__(self, error: Exception | None = None):
        self.error = error or PersistenceError("disk unavailable")
        self.writes = 0

    def get_flags(self) -> PersistedFlags:
        raise self.error

    def mark_seen(self, flag_name: str) -> None:
        self.writes += 1
        raise self.error

    def reset(self, flag_name: str) -> None:
        raise self.error


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings():
    return LaunchSettings(_env_file=None, screen_chain_delay_seconds=0.3)


@pytest.fixture
def preferences():
    return FakePreferencesStore()


@pytest.fixture
def content():
    return FakeContentLister()


@pytest.fixture
def pending_shares():
    return FakePendingShares()


@pytest.fixture
def notifications():
    return FakeNotifications()


@pytest.fixture
def flag_store():
    return InMemoryFlagStore()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def signals():
    return SignalBus()


@pytest.fixture
def broadcasts(signals):
    """List that collects every CONTENT_CHANGED emission."""
    received = []
    signals.subscribe(CONTENT_CHANGED, received.append)
    return received


@pytest.fixture
def make_orchestrator(
    preferences, content, pending_shares, notifications, flag_store, scheduler, signals, settings
):
    """Factory so tests can swap single collaborators."""

    def _make(**overrides) -> LaunchOrchestrator:
        kwargs = dict(
            preferences=preferences,
            content=content,
            pending_shares=pending_shares,
            notifications=notifications,
            flags=flag_store,
            signals=signals,
            scheduler=scheduler,
            settings=settings,
        )
        kwargs.update(overrides)
        return LaunchOrchestrator(**kwargs)

    return _make


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()
