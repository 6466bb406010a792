"""
Tests for the observable launch state and the signal bus.
"""

import pytest

from nugget_launch.models import LaunchPhase, OnboardingDecision
from nugget_launch.signals import CONTENT_CHANGED, SignalBus
from nugget_launch.state import LaunchStateStore


class TestLaunchStateStore:
    def test_advance_notifies_subscribers(self):
        store = LaunchStateStore()
        received = []
        store.subscribe(received.append)

        store.start_generation(1, LaunchPhase.PREFETCHING)
        store.advance(LaunchPhase.READY, decision=OnboardingDecision.TUTORIAL)

        assert [s.phase for s in received] == [LaunchPhase.PREFETCHING, LaunchPhase.READY]
        assert received[-1].decision == OnboardingDecision.TUTORIAL
        assert store.current.phase == LaunchPhase.READY

    def test_phase_cannot_regress_within_generation(self):
        store = LaunchStateStore()
        store.start_generation(1, LaunchPhase.PREFETCHING)
        store.advance(LaunchPhase.ONBOARDING_EVAL)
        with pytest.raises(ValueError, match="cannot regress"):
            store.advance(LaunchPhase.PREFETCHING)

    def test_new_generation_overwrites(self):
        store = LaunchStateStore()
        store.start_generation(1, LaunchPhase.PREFETCHING)
        store.advance(LaunchPhase.READY, prefetched={"content": None})

        state = store.start_generation(2, LaunchPhase.LOGIN)
        assert state.generation == 2
        assert state.prefetched == {}
        assert state.decision == OnboardingDecision.NONE

    def test_unsubscribe(self):
        store = LaunchStateStore()
        received = []
        unsubscribe = store.subscribe(received.append)
        unsubscribe()
        store.start_generation(1, LaunchPhase.PREFETCHING)
        assert received == []

    def test_failing_listener_does_not_block_others(self):
        store = LaunchStateStore()
        received = []

        def broken(state):
            raise RuntimeError("render failed")

        store.subscribe(broken)
        store.subscribe(received.append)
        store.start_generation(1, LaunchPhase.PREFETCHING)
        assert len(received) == 1


class TestSignalBus:
    def test_emit_counts_listeners(self):
        bus = SignalBus()
        received = []
        bus.subscribe(CONTENT_CHANGED, received.append)
        bus.subscribe(CONTENT_CHANGED, received.append)

        assert bus.emit(CONTENT_CHANGED, "x") == 2
        assert received == ["x", "x"]

    def test_emit_without_listeners(self):
        assert SignalBus().emit("nothing") == 0

    def test_unsubscribe_and_failing_listener(self):
        bus = SignalBus()
        received = []

        def broken(_):
            raise RuntimeError("boom")

        bus.subscribe(CONTENT_CHANGED, broken)
        unsubscribe = bus.subscribe(CONTENT_CHANGED, received.append)
        bus.emit(CONTENT_CHANGED)
        unsubscribe()
        bus.emit(CONTENT_CHANGED)
        assert received == [None]
