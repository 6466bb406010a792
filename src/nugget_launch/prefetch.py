"""
Nugget Launch - Prefetch Coordinator.

Runs a fixed set of independent async fetches concurrently and waits for
every one of them to settle. A failing or slow task never aborts its
siblings: its error is classified, its fallback substituted, and the
batch completes with one PrefetchTaskResult per task.

Usage:
    coordinator = PrefetchCoordinator([
        PrefetchTask("preferences", prefs_store.get, Preferences.default()),
        PrefetchTask("content", lister.warm),
    ])
    batch = await coordinator.run(generation=3)
    batch.values()["preferences"]  # fetched value or the default
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from nugget_launch.errors import classify_error
from nugget_launch.models import FailureKind, PrefetchTaskResult

logger = logging.getLogger(__name__)


@dataclass
class PrefetchTask:
    """
    Descriptor for one prefetch operation.

    Attributes:
        name: Key of this task's result in the batch (unique per batch)
        operation: Zero-argument coroutine function performing the fetch
        fallback: Value substituted when the operation fails or times out
    """

    name: str
    operation: Callable[[], Awaitable[Any]]
    fallback: Any = None


@dataclass
class PrefetchBatch:
    """All task outcomes of one run, tagged with the generation it ran under."""

    generation: int
    results: dict[str, PrefetchTaskResult] = field(default_factory=dict)
    duration_ms: float = 0.0

    def values(self) -> dict[str, Any]:
        """Fallback-substituted values keyed by task name."""
        return {name: result.value for name, result in self.results.items()}

    @property
    def failures(self) -> dict[str, FailureKind]:
        return {
            name: result.kind
            for name, result in self.results.items()
            if result.kind is not None
        }


class PrefetchCoordinator:
    """
    Fan-out / wait-for-all barrier over PrefetchTasks.

    Task order has no execution meaning; it only fixes the iteration
    order of the returned results.
    """

    def __init__(
        self,
        tasks: list[PrefetchTask],
        timeout_seconds: float | None = None,
    ) -> None:
        names = [task.name for task in tasks]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate prefetch task names: {', '.join(duplicates)}")
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0 or None")

        self.tasks = list(tasks)
        self.timeout_seconds = timeout_seconds

    async def run(self, generation: int) -> PrefetchBatch:
        """
        Launch every task concurrently and collect their outcomes.

        Args:
            generation: Launch generation this run belongs to

        Returns:
            PrefetchBatch with one result per task, in task order
        """
        started = time.perf_counter()
        outcomes = await asyncio.gather(*(self._settle(task) for task in self.tasks))

        batch = PrefetchBatch(
            generation=generation,
            results={task.name: outcome for task, outcome in zip(self.tasks, outcomes)},
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        logger.debug(
            f"Prefetch generation {generation} settled in {batch.duration_ms:.0f}ms "
            f"({len(batch.failures)}/{len(self.tasks)} fell back)"
        )
        return batch

    async def _settle(self, task: PrefetchTask) -> PrefetchTaskResult:
        """Run one task to completion, turning any failure into a fallback result."""
        try:
            if self.timeout_seconds is None:
                value = await task.operation()
            else:
                value = await asyncio.wait_for(task.operation(), self.timeout_seconds)
        except asyncio.CancelledError as e:
            # Cancellation of the whole batch must propagate
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return self._fallback(task, e)
        except Exception as e:
            return self._fallback(task, e)

        return PrefetchTaskResult.success(value)

    def _fallback(self, task: PrefetchTask, error: BaseException) -> PrefetchTaskResult:
        kind = classify_error(error)
        logger.warning(f"Prefetch task '{task.name}' failed ({kind.value}): {error!r}")
        return PrefetchTaskResult.failure(kind, task.fallback, error)
