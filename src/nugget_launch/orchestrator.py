"""
Nugget Launch - Launch Orchestrator.

Top-level launch state machine. Owns LaunchPhase and the generation
token, both mutated only on the event loop that calls into it.

Flow per authenticated generation:
    on_auth_changed(AUTHENTICATED)
      -> phase PREFETCHING, PrefetchCoordinator runs tagged with generation N
      -> on_prefetch_complete(N, results)
           stale N  -> discarded, nothing changes
           current  -> ONBOARDING_EVAL -> gate decision -> READY

App activation goes to ForegroundResyncHandler and never touches phase.
Screen dismissal marks the flag seen and re-runs the gate in-session,
presenting any follow-up screen through the scheduler.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from nugget_launch.config import LaunchSettings, get_settings
from nugget_launch.errors import PermissionDenied
from nugget_launch.gate import decide, flag_for
from nugget_launch.interfaces import (
    AuthProvider,
    ContentLister,
    NotificationRegistrar,
    PendingShareService,
    PersistedFlagStore,
    PreferencesStore,
)
from nugget_launch.models import (
    AuthState,
    LaunchPhase,
    OnboardingDecision,
    OnboardingEligibility,
    PersistedFlags,
    PrefetchTaskResult,
    Preferences,
)
from nugget_launch.prefetch import PrefetchBatch, PrefetchCoordinator, PrefetchTask
from nugget_launch.resync import ForegroundResyncHandler, ResyncOutcome
from nugget_launch.scheduler import AsyncioScheduler, ScheduledHandle, Scheduler
from nugget_launch.signals import CONTENT_CHANGED, SignalBus
from nugget_launch.state import LaunchState, LaunchStateStore

logger = logging.getLogger(__name__)


class LaunchOrchestrator:
    """
    Coordinates launch prefetch, onboarding and foreground resync.

    All collaborators are injected; nothing here reaches for globals
    except settings when none are passed.
    """

    def __init__(
        self,
        *,
        preferences: PreferencesStore,
        content: ContentLister,
        pending_shares: PendingShareService,
        notifications: NotificationRegistrar,
        flags: PersistedFlagStore,
        signals: SignalBus | None = None,
        scheduler: Scheduler | None = None,
        store: LaunchStateStore | None = None,
        settings: LaunchSettings | None = None,
    ) -> None:
        self.preferences = preferences
        self.content = content
        self.pending_shares = pending_shares
        self.notifications = notifications
        self.flags = flags
        self.signals = signals or SignalBus()
        self.scheduler = scheduler or AsyncioScheduler()
        self.store = store or LaunchStateStore()
        self.settings = settings or get_settings()
        self.resync = ForegroundResyncHandler(notifications, pending_shares, self.signals)

        self._generation = 0
        self._auth = AuthState.UNAUTHENTICATED
        self._prefetch_task: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()
        self._pending_screen: ScheduledHandle | None = None
        # Flags marked seen this session, applied even if the write failed
        self._seen_this_session: set[str] = set()

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def auth_state(self) -> AuthState:
        return self._auth

    @property
    def state(self) -> LaunchState:
        return self.store.current

    # =========================================================================
    # Entry points
    # =========================================================================

    def bind(self, auth: AuthProvider) -> asyncio.Task | None:
        """
        Follow an AuthProvider: apply its current state now and every change after.

        Must be called from within the running event loop.
        """
        auth.on_change(
            lambda authenticated: self.on_auth_changed(
                AuthState.AUTHENTICATED if authenticated else AuthState.UNAUTHENTICATED
            )
        )
        initial = AuthState.AUTHENTICATED if auth.is_authenticated() else AuthState.UNAUTHENTICATED
        return self.on_auth_changed(initial)

    def on_auth_changed(self, auth_state: AuthState) -> asyncio.Task | None:
        """
        React to an auth transition by starting a fresh generation.

        Any prefetch still in flight from an earlier generation is left to
        finish; its completion is discarded by the generation check.

        Returns:
            The prefetch task for the new generation, or None when signed out
        """
        self._generation += 1
        generation = self._generation
        was_authenticated = self._auth == AuthState.AUTHENTICATED
        self._auth = auth_state
        self._cancel_pending_screen()

        if auth_state == AuthState.UNAUTHENTICATED:
            if was_authenticated:
                self._forget_session()
            self.store.start_generation(generation, LaunchPhase.LOGIN)
            logger.info(f"Signed out, generation {generation} waiting at login")
            return None

        self.store.start_generation(generation, LaunchPhase.PREFETCHING)
        logger.info(f"Authenticated, starting prefetch generation {generation}")

        self._spawn(self._register_notifications())
        self._prefetch_task = self._spawn(self._run_prefetch(generation))
        return self._prefetch_task

    def on_prefetch_complete(
        self, generation: int, results: Mapping[str, PrefetchTaskResult]
    ) -> bool:
        """
        Apply a settled prefetch batch if it belongs to the current generation.

        Returns:
            True if the batch advanced state, False if it was discarded
        """
        if generation != self._generation:
            logger.debug(
                f"Discarding prefetch results of generation {generation} "
                f"(current is {self._generation})"
            )
            return False

        if self.store.current.phase != LaunchPhase.PREFETCHING:
            logger.debug(f"Generation {generation} already past prefetch, ignoring repeat completion")
            return False

        values = {name: result.value for name, result in results.items()}
        self.store.advance(LaunchPhase.ONBOARDING_EVAL, prefetched=values)

        decision = self._evaluate_gate()
        self.store.advance(LaunchPhase.READY, decision=decision)
        logger.info(f"Launch generation {generation} ready (onboarding: {decision.value})")
        return True

    async def on_app_activated(self) -> ResyncOutcome:
        """App came to the foreground."""
        return await self.resync.run(self._auth)

    def on_screen_dismissed(self, dismissed: OnboardingDecision) -> OnboardingDecision:
        """
        Record that an onboarding screen was dismissed and decide what follows.

        The follow-up decision (if any) is presented after
        `screen_chain_delay_seconds` via the scheduler, and is dropped if a
        new generation starts first.

        Dismissals outside a ready, signed-in launch are ignored.

        Returns:
            The follow-up decision, NONE when ignored
        """
        if self._auth != AuthState.AUTHENTICATED or self.state.phase != LaunchPhase.READY:
            logger.debug(f"Ignoring dismissal of {dismissed.value} in phase {self.state.phase.value}")
            return OnboardingDecision.NONE

        flag = flag_for(dismissed)
        if flag is not None:
            self._seen_this_session.add(flag)
            try:
                self.flags.mark_seen(flag)
            except Exception as e:
                logger.warning(f"Could not persist {flag}: {e!r}")

        self._cancel_pending_screen()
        self.store.set_decision(OnboardingDecision.NONE)

        follow_up = self._evaluate_gate()
        if follow_up != OnboardingDecision.NONE:
            generation = self._generation
            self._pending_screen = self.scheduler.call_later(
                self.settings.screen_chain_delay_seconds,
                lambda: self._present(generation, follow_up),
            )
        return follow_up

    async def wait_idle(self) -> None:
        """Wait for every in-flight prefetch and background task to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # =========================================================================
    # Prefetch
    # =========================================================================

    def build_prefetch_tasks(self) -> list[PrefetchTask]:
        """The fixed set of launch prefetch tasks."""
        return [
            PrefetchTask("preferences", self.preferences.get, Preferences.default()),
            PrefetchTask("content", self.content.warm, None),
            PrefetchTask("pending_shares", self._flush_pending_shares, False),
        ]

    async def _run_prefetch(self, generation: int) -> PrefetchBatch:
        coordinator = PrefetchCoordinator(
            self.build_prefetch_tasks(),
            timeout_seconds=self.settings.prefetch_timeout_seconds,
        )
        batch = await coordinator.run(generation)
        self.on_prefetch_complete(batch.generation, batch.results)
        return batch

    async def _flush_pending_shares(self) -> bool:
        processed = await self.pending_shares.process_pending()
        if not processed:
            return False

        logger.info("Processed pending shares during launch")
        try:
            await self.content.warm()
        except Exception as e:
            logger.warning(f"Content refresh after share flush failed: {e!r}")
        self.signals.emit(CONTENT_CHANGED)
        return True

    # =========================================================================
    # Onboarding
    # =========================================================================

    def _read_flags(self) -> PersistedFlags:
        try:
            flags = self.flags.get_flags()
        except Exception as e:
            logger.warning(f"Onboarding flags unreadable, using defaults: {e!r}")
            flags = PersistedFlags()
        if self._seen_this_session:
            flags = flags.model_copy(update={name: True for name in self._seen_this_session})
        return flags

    def _evaluate_gate(self) -> OnboardingDecision:
        flags = self._read_flags()
        eligibility = OnboardingEligibility.from_flags(flags, self.settings.beta_welcome_eligible)
        return decide(flags, eligibility)

    def _present(self, generation: int, decision: OnboardingDecision) -> None:
        self._pending_screen = None
        if generation != self._generation:
            return
        logger.debug(f"Presenting chained onboarding screen: {decision.value}")
        self.store.set_decision(decision)

    def _cancel_pending_screen(self) -> None:
        if self._pending_screen is not None:
            self._pending_screen.cancel()
            self._pending_screen = None

    def _forget_session(self) -> None:
        """Sign-out cleanup: the next user sees the tutorial again."""
        self._seen_this_session.clear()
        try:
            self.flags.reset("has_seen_tutorial")
        except Exception as e:
            logger.warning(f"Could not reset tutorial flag on sign-out: {e!r}")

    # =========================================================================
    # Notifications
    # =========================================================================

    async def _register_notifications(self) -> None:
        try:
            if not await self.notifications.request_authorization():
                raise PermissionDenied("notification permission denied")
            await self.notifications.register()
        except PermissionDenied as e:
            logger.info(f"Push registration skipped: {e}")
        except Exception as e:
            logger.warning(f"Push registration failed: {e!r}")

    def _spawn(self, coro: Any) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task
