"""
Simulated collaborators for `nugget-launch simulate`.

Each service sleeps for a configurable latency before answering, so a
simulated launch shows real concurrency. Failures are switched on per
service.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable

from nugget_launch.errors import TransientFetchError
from nugget_launch.models import FailureKind, Preferences


@dataclass
class SimulationScript:
    """What the simulated backend does."""
    latency_seconds: float = 0.05
    fail_preferences: bool = False
    fail_content: bool = False
    pending_shares: int = 0
    grant_notifications: bool = True
    preferences: Preferences = field(
        default_factory=lambda: Preferences(interests=["technology", "science"], daily_nugget_limit=3)
    )


class SimulatedAuth:
    def __init__(self, authenticated: bool = False) -> None:
        self._authenticated = authenticated
        self._callbacks: list[Callable[[bool], None]] = []

    def is_authenticated(self) -> bool:
        return self._authenticated

    def on_change(self, callback: Callable[[bool], None]) -> None:
        self._callbacks.append(callback)

    def set(self, authenticated: bool) -> None:
        self._authenticated = authenticated
        for callback in list(self._callbacks):
            callback(authenticated)


class SimulatedBackend:
    """Implements every remote-backed collaborator protocol at once."""

    def __init__(self, script: SimulationScript) -> None:
        self.script = script
        self.pending = script.pending_shares
        self.badge = 3
        self.registered = False
        self.calls: list[str] = []

    async def _latency(self, call: str) -> None:
        self.calls.append(call)
        await asyncio.sleep(self.script.latency_seconds)

    # PreferencesStore
    async def get(self) -> Preferences:
        await self._latency("preferences.get")
        if self.script.fail_preferences:
            raise TransientFetchError("preferences service unavailable", FailureKind.NETWORK)
        return self.script.preferences

    # ContentLister
    async def warm(self) -> None:
        await self._latency("content.warm")
        if self.script.fail_content:
            raise ConnectionError("content list fetch failed")

    # PendingShareService
    async def process_pending(self) -> bool:
        await self._latency("shares.process_pending")
        flushed = self.pending > 0
        self.pending = 0
        return flushed

    # NotificationRegistrar
    async def request_authorization(self) -> bool:
        await self._latency("notifications.request_authorization")
        return self.script.grant_notifications

    async def register(self) -> None:
        await self._latency("notifications.register")
        self.registered = True

    async def reset_badge(self) -> None:
        self.calls.append("notifications.reset_badge")
        self.badge = 0
