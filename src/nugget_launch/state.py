"""
Observable Launch State.

The presentation layer subscribes here to learn the current LaunchPhase
and OnboardingDecision. Only LaunchOrchestrator writes to the store.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from nugget_launch.models import LaunchPhase, OnboardingDecision, Preferences

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LaunchState:
    """Immutable snapshot handed to subscribers."""
    phase: LaunchPhase = LaunchPhase.AWAITING_AUTH
    decision: OnboardingDecision = OnboardingDecision.NONE
    generation: int = 0
    prefetched: dict[str, Any] = field(default_factory=dict)

    @property
    def preferences(self) -> Preferences | None:
        return self.prefetched.get("preferences")


StateListener = Callable[[LaunchState], None]


class LaunchStateStore:
    """Holds the current LaunchState and notifies subscribers on every change."""

    def __init__(self) -> None:
        self._state = LaunchState()
        self._listeners: list[StateListener] = []

    @property
    def current(self) -> LaunchState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Subscribe to state changes. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start_generation(self, generation: int, phase: LaunchPhase) -> LaunchState:
        """Overwrite the state for a fresh generation. Nothing carries over."""
        return self._publish(LaunchState(phase=phase, generation=generation))

    def advance(self, phase: LaunchPhase, **changes: Any) -> LaunchState:
        """
        Move the current generation forward.

        Raises:
            ValueError: If `phase` would regress within the generation
        """
        if phase.rank < self._state.phase.rank:
            raise ValueError(
                f"Launch phase cannot regress from {self._state.phase.value} "
                f"to {phase.value} in generation {self._state.generation}"
            )
        return self._publish(replace(self._state, phase=phase, **changes))

    def set_decision(self, decision: OnboardingDecision) -> LaunchState:
        return self._publish(replace(self._state, decision=decision))

    def _publish(self, state: LaunchState) -> LaunchState:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Launch state listener failed")
        return state
