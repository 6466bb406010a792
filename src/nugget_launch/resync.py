"""
Foreground Resync.

Runs every time the app becomes active while the user is signed in:
1. Reset the app badge (fire-and-forget, failure ignored)
2. Flush content queued by the share extension
3. Broadcast CONTENT_CHANGED only if the flush actually processed something

Safe to invoke repeatedly in quick succession. Never touches LaunchPhase.
"""

import logging
from dataclasses import dataclass

from nugget_launch.interfaces import NotificationRegistrar, PendingShareService
from nugget_launch.models import AuthState
from nugget_launch.signals import CONTENT_CHANGED, SignalBus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResyncOutcome:
    ran: bool = False
    badge_reset: bool = False
    flushed: bool = False


class ForegroundResyncHandler:
    def __init__(
        self,
        notifications: NotificationRegistrar,
        pending_shares: PendingShareService,
        signals: SignalBus,
    ) -> None:
        self.notifications = notifications
        self.pending_shares = pending_shares
        self.signals = signals

    async def run(self, auth_state: AuthState) -> ResyncOutcome:
        """Resync after the app became active. No-op unless authenticated."""
        if auth_state != AuthState.AUTHENTICATED:
            return ResyncOutcome()

        badge_reset = True
        try:
            await self.notifications.reset_badge()
        except Exception as e:
            badge_reset = False
            logger.debug(f"Badge reset failed (ignored): {e!r}")

        try:
            flushed = bool(await self.pending_shares.process_pending())
        except Exception as e:
            logger.warning(f"Pending share flush failed: {e!r}")
            flushed = False

        if flushed:
            logger.info("Pending shares flushed on activation, broadcasting content change")
            self.signals.emit(CONTENT_CHANGED)

        return ResyncOutcome(ran=True, badge_reset=badge_reset, flushed=flushed)
