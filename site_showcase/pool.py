"""Bounded-concurrency dispatcher for capture tasks."""

from __future__ import annotations

import asyncio
import enum
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

from .config import WorkerPoolConfig
from .exceptions import CaptureError, NavigationTimeout, RenderSurfaceLaunchFailure
from .models import CaptureTask, Segment, TaskResult, TaskStatus

logger = logging.getLogger("site_showcase")


class CaptureWorker(Protocol):
    """Interface the pool expects from a worker owning one render process."""

    worker_id: int

    async def start(self) -> None: ...

    async def run(self, task: CaptureTask) -> Union[Segment, Path]: ...

    async def close(self) -> None: ...


WorkerFactory = Callable[[int], CaptureWorker]


class PoolState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


class WorkerPool:
    """Run capture tasks on at most ``max_concurrency`` workers at once.

    All tasks are queued by :meth:`submit` before any worker starts. Retryable
    capture errors re-queue the same task until ``retry_limit`` retries are
    spent; other failures are recorded and the pool moves on. A
    :class:`RenderSurfaceLaunchFailure` aborts the whole pool and is re-raised
    from :meth:`close`, which is the only synchronisation barrier.
    """

    def __init__(self, config: WorkerPoolConfig, worker_factory: WorkerFactory) -> None:
        self.config = config
        self._factory = worker_factory
        self._state = PoolState.IDLE
        self._queue: Optional[asyncio.Queue] = None
        self._aborted: Optional[asyncio.Event] = None
        self._attempts: Dict[int, int] = {}
        self._results: Dict[int, TaskResult] = {}
        self._workers: List[CaptureWorker] = []
        self._loops: List[asyncio.Task] = []
        self._fatal: Optional[BaseException] = None
        self.active_count = 0
        self.peak_active = 0

    @property
    def state(self) -> PoolState:
        return self._state

    async def __aenter__(self) -> "WorkerPool":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._state is PoolState.CLOSED:
            return
        if exc_type is None:
            await self.close()
        else:
            await self._shutdown()

    async def submit(self, tasks: Iterable[CaptureTask]) -> None:
        """Queue every task, then start the workers."""
        if self._state is not PoolState.IDLE:
            raise RuntimeError(f"Cannot submit tasks to a {self._state.value} pool")
        self._queue = asyncio.Queue()
        self._aborted = asyncio.Event()
        for position, task in enumerate(tasks):
            self._attempts[position] = 0
            self._queue.put_nowait((position, task))
        self._state = PoolState.RUNNING

        worker_count = min(self.config.max_concurrency, self._queue.qsize())
        logger.info(
            "Dispatching %d task(s) to %d worker(s)", self._queue.qsize(), worker_count
        )
        self._loops = [
            asyncio.create_task(self._worker_loop(worker_id))
            for worker_id in range(1, worker_count + 1)
        ]

    async def close(self) -> List[TaskResult]:
        """Wait for every task to finish, release the workers and return results."""
        if self._state is PoolState.CLOSED:
            raise RuntimeError("Worker pool is already closed")
        if self._state is PoolState.IDLE:
            self._state = PoolState.CLOSED
            return []

        queue, abort_event = self._started()
        self._state = PoolState.DRAINING
        drained = asyncio.ensure_future(queue.join())
        aborted = asyncio.ensure_future(abort_event.wait())
        try:
            await asyncio.wait({drained, aborted}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            drained.cancel()
            aborted.cancel()
            await asyncio.gather(drained, aborted, return_exceptions=True)
            await self._shutdown()

        if self._fatal is not None:
            raise self._fatal
        return [self._results[position] for position in sorted(self._results)]

    def _started(self) -> Tuple[asyncio.Queue, asyncio.Event]:
        if self._queue is None or self._aborted is None:
            raise RuntimeError("Worker pool has no submitted tasks")
        return self._queue, self._aborted

    async def _shutdown(self) -> None:
        for loop in self._loops:
            loop.cancel()
        await asyncio.gather(*self._loops, return_exceptions=True)
        for worker in self._workers:
            try:
                await worker.close()
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Failed to release worker %d: %s", worker.worker_id, exc)
        self._workers.clear()
        self._state = PoolState.CLOSED

    def _abort(self, error: BaseException) -> None:
        if self._fatal is None:
            self._fatal = error
            logger.error("Aborting worker pool: %s", error)
        _, abort_event = self._started()
        abort_event.set()

    async def _worker_loop(self, worker_id: int) -> None:
        queue, _ = self._started()
        worker = self._factory(worker_id)
        self._workers.append(worker)
        try:
            await worker.start()
        except RenderSurfaceLaunchFailure as exc:
            self._abort(exc)
            return
        except Exception as exc:  # pylint: disable=broad-except
            self._abort(RenderSurfaceLaunchFailure(f"Worker {worker_id} failed to start: {exc}"))
            return

        while True:
            position, task = await queue.get()
            try:
                await self._execute(worker, position, task)
            except RenderSurfaceLaunchFailure as exc:
                self._abort(exc)
                return
            finally:
                queue.task_done()

    async def _execute(self, worker: CaptureWorker, position: int, task: CaptureTask) -> None:
        queue, _ = self._started()
        self._attempts[position] += 1
        attempt = self._attempts[position]
        timeout = self.config.per_task_timeout

        error: BaseException
        self.active_count += 1
        self.peak_active = max(self.peak_active, self.active_count)
        try:
            output = await asyncio.wait_for(worker.run(task), timeout=timeout)
        except asyncio.TimeoutError:
            error = NavigationTimeout(
                f"{task.describe()} exceeded {timeout:.0f}s"
            )
        except RenderSurfaceLaunchFailure:
            raise
        except CaptureError as exc:
            error = exc
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error while capturing %s", task.describe())
            error = exc
        else:
            logger.debug("Captured %s on attempt %d", task.describe(), attempt)
            self._results[position] = TaskResult(task, TaskStatus.SUCCEEDED, attempt, output)
            return
        finally:
            self.active_count -= 1

        retryable = isinstance(error, CaptureError) and error.retryable
        if retryable and attempt <= self.config.retry_limit:
            logger.warning(
                "Encountered an error while capturing %s (attempt %d/%d): %s. "
                "This task will be retried",
                task.describe(),
                attempt,
                self.config.retry_limit + 1,
                error,
            )
            queue.put_nowait((position, task))
            return

        logger.error(
            "Failed to capture %s after %d attempt(s): %s", task.describe(), attempt, error
        )
        self._results[position] = TaskResult(
            task, TaskStatus.FAILED, attempt, error=error
        )


async def run_tasks(
    config: WorkerPoolConfig,
    worker_factory: WorkerFactory,
    tasks: Sequence[CaptureTask],
) -> List[TaskResult]:
    """Submit ``tasks`` to a fresh pool and wait for all of them."""
    async with WorkerPool(config, worker_factory) as pool:
        await pool.submit(tasks)
        return await pool.close()


def split_results(results: Iterable[TaskResult]) -> Tuple[List[TaskResult], List[TaskResult]]:
    succeeded = [result for result in results if result.ok]
    failed = [result for result in results if not result.ok]
    return succeeded, failed
