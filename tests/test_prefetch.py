"""
Tests for the prefetch coordinator: fan-out, wait-for-all, fallbacks.
"""

import asyncio

import pytest

from nugget_launch.errors import TransientFetchError
from nugget_launch.models import FailureKind
from nugget_launch.prefetch import PrefetchCoordinator, PrefetchTask


def returning(value):
    async def op():
        return value
    return op


def raising(exc):
    async def op():
        raise exc
    return op


class TestPrefetchCoordinator:
    """Tests for PrefetchCoordinator.run()."""

    async def test_all_succeed(self):
        coordinator = PrefetchCoordinator([
            PrefetchTask("a", returning(1), fallback=0),
            PrefetchTask("b", returning("x"), fallback=""),
        ])
        batch = await coordinator.run(generation=7)

        assert batch.generation == 7
        assert batch.values() == {"a": 1, "b": "x"}
        assert batch.failures == {}
        assert all(result.ok for result in batch.results.values())

    async def test_failure_substitutes_fallback_without_aborting_siblings(self):
        coordinator = PrefetchCoordinator([
            PrefetchTask("prefs", raising(TransientFetchError("down", FailureKind.STORAGE)), fallback="default"),
            PrefetchTask("content", returning("warm"), fallback=None),
            PrefetchTask("other", raising(ValueError("boom")), fallback=False),
        ])
        batch = await coordinator.run(generation=1)

        assert batch.values() == {"prefs": "default", "content": "warm", "other": False}
        assert batch.failures == {"prefs": FailureKind.STORAGE, "other": FailureKind.UNKNOWN}
        assert isinstance(batch.results["other"].error, ValueError)

    async def test_result_order_follows_task_order(self):
        async def slow():
            await asyncio.sleep(0.02)
            return "slow"

        coordinator = PrefetchCoordinator([
            PrefetchTask("slow", slow),
            PrefetchTask("fast", returning("fast")),
        ])
        batch = await coordinator.run(generation=1)
        assert list(batch.results) == ["slow", "fast"]

    async def test_tasks_run_concurrently(self):
        """Every task must be in flight before any of them can finish."""
        started = 0
        all_started = asyncio.Event()

        async def op():
            nonlocal started
            started += 1
            if started == 3:
                all_started.set()
            await all_started.wait()
            return started

        coordinator = PrefetchCoordinator([PrefetchTask(str(i), op) for i in range(3)])
        batch = await asyncio.wait_for(coordinator.run(generation=1), timeout=1)
        assert batch.values() == {"0": 3, "1": 3, "2": 3}

    async def test_timeout_falls_back(self):
        async def hang():
            await asyncio.sleep(10)

        coordinator = PrefetchCoordinator(
            [PrefetchTask("hung", hang, fallback="fb"), PrefetchTask("ok", returning(1))],
            timeout_seconds=0.01,
        )
        batch = await coordinator.run(generation=1)

        assert batch.values() == {"hung": "fb", "ok": 1}
        assert batch.failures == {"hung": FailureKind.TIMEOUT}

    async def test_connection_error_classified_as_network(self):
        coordinator = PrefetchCoordinator([PrefetchTask("c", raising(ConnectionError("reset")))])
        batch = await coordinator.run(generation=1)
        assert batch.failures == {"c": FailureKind.NETWORK}

    async def test_task_cancelling_itself_is_a_failure(self):
        coordinator = PrefetchCoordinator([
            PrefetchTask("c", raising(asyncio.CancelledError()), fallback=0),
            PrefetchTask("ok", returning(1)),
        ])
        batch = await coordinator.run(generation=1)
        assert batch.failures == {"c": FailureKind.CANCELLED}
        assert batch.values()["ok"] == 1

    async def test_cancelling_the_batch_propagates(self):
        async def hang():
            await asyncio.sleep(10)

        coordinator = PrefetchCoordinator([PrefetchTask("hung", hang)])
        task = asyncio.create_task(coordinator.run(generation=1))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    async def test_empty_batch(self):
        batch = await PrefetchCoordinator([]).run(generation=4)
        assert batch.generation == 4
        assert batch.results == {}


class TestPrefetchCoordinatorValidation:
    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            PrefetchCoordinator([PrefetchTask("a", returning(1)), PrefetchTask("a", returning(2))])

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError):
            PrefetchCoordinator([], timeout_seconds=0)
