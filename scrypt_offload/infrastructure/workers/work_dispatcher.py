"""Bounded worker pool for CPU-bound derivation jobs.

Scrypt is deliberately expensive, so hash and compare calls must never run on
the thread that accepts requests. The dispatcher runs them on a bounded set of
worker threads. The worker bound is the admission control: when every worker
is busy, new jobs wait in a FIFO queue.

The derivation primitive releases the GIL while it works, so threads give real
parallelism here without the serialization cost of a process pool.

Used on both sides:
- Server: every /hash and /compare request runs on the dispatcher
- Client: the local fallback when the remote service is unavailable

Unlike concurrent.futures.ThreadPoolExecutor, this pool keeps ``min_workers``
threads warm, lets extra threads retire after ``idle_timeout`` seconds, and can
be sized to zero to mean "no local capability" (submit fails immediately).
"""

import asyncio
import logging
import os
import threading
from collections import deque
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any, TypeVar

from scrypt_offload.application.exceptions import NoWorkersAvailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

AUTO_WORKERS = -1
DEFAULT_IDLE_TIMEOUT = 60.0


def resolve_worker_count(requested: int, fraction: int = 4) -> int:
    """
    Turn a configured worker count into an actual one.

    ``-1`` ("auto") becomes one ``fraction``-th of the available CPUs, minimum
    one. Other negative values are treated as zero (disabled).

    Args:
        requested: Configured count, or AUTO_WORKERS
        fraction: Divisor applied to the CPU count in auto mode

    Returns:
        Number of workers, zero meaning disabled
    """
    if requested == AUTO_WORKERS:
        return max(1, (os.cpu_count() or 1) // fraction)
    return max(0, requested)


class _WorkItem:
    """One queued job and the future that reports its outcome."""

    def __init__(self, future: Future, fn: Callable[..., Any], args: tuple, kwargs: dict):
        self.future = future
        self.fn = fn
        self.args = args
        self.kwargs = kwargs

    def run(self) -> None:
        # A job cancelled while queued is skipped
        if not self.future.set_running_or_notify_cancel():
            return
        try:
            result = self.fn(*self.args, **self.kwargs)
        except BaseException as exc:
            self.future.set_exception(exc)
        else:
            self.future.set_result(result)


class WorkDispatcher:
    """
    Thread pool with warm minimum, lazy growth and idle retirement.

    Usage:
        dispatcher = WorkDispatcher(min_workers=1, max_workers=4)

        future = dispatcher.submit(service.hash, "secret", params)
        encoded = future.result()

        # from a coroutine
        encoded = await dispatcher.run(service.hash, "secret", params)

        dispatcher.shutdown()

    Thread safety:
        The queue, the worker set and the idle counter are guarded by one
        condition variable. Callers never touch them directly.
    """

    def __init__(
        self,
        min_workers: int = 0,
        max_workers: int = 1,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        name: str = "scrypt-worker",
    ):
        """
        Initialize the pool and start the warm workers.

        Args:
            min_workers: Workers kept alive even when idle
            max_workers: Upper bound on concurrently running jobs; 0 disables
                the dispatcher
            idle_timeout: Seconds an extra worker may stay idle before it exits
            name: Thread name prefix

        Raises:
            ValueError: min_workers < 0 or max_workers < min_workers
        """
        if min_workers < 0:
            raise ValueError("min_workers must be >= 0")
        if max_workers < min_workers:
            raise ValueError("max_workers must be >= min_workers")

        self._min_workers = min_workers
        self._max_workers = max_workers
        self._idle_timeout = idle_timeout
        self._name = name

        self._condition = threading.Condition()
        self._queue: deque[_WorkItem] = deque()
        self._workers: set[threading.Thread] = set()
        self._idle_workers = 0
        self._started = 0
        self._shutdown = False

        with self._condition:
            for _ in range(min_workers):
                self._start_worker()

    @property
    def min_workers(self) -> int:
        return self._min_workers

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def enabled(self) -> bool:
        return self._max_workers > 0

    @property
    def worker_count(self) -> int:
        with self._condition:
            return len(self._workers)

    @property
    def pending_count(self) -> int:
        with self._condition:
            return len(self._queue)

    @property
    def is_shutdown(self) -> bool:
        with self._condition:
            return self._shutdown

    def submit(self, fn: Callable[..., T], /, *args: Any, **kwargs: Any) -> "Future[T]":
        """
        Queue a job.

        Jobs start in arrival order as workers become free.

        Returns:
            Future resolving to the job's return value or exception

        Raises:
            NoWorkersAvailableError: The dispatcher is disabled (max_workers=0)
                or shut down
        """
        if not self.enabled:
            raise NoWorkersAvailableError("Local workers are disabled")

        future: Future = Future()
        with self._condition:
            if self._shutdown:
                raise NoWorkersAvailableError("Dispatcher has been shut down")

            self._queue.append(_WorkItem(future, fn, args, kwargs))
            if len(self._queue) > self._idle_workers and len(self._workers) < self._max_workers:
                self._start_worker()
            self._condition.notify()
        return future

    async def run(self, fn: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
        """Submit a job and await its result from a coroutine."""
        return await asyncio.wrap_future(self.submit(fn, *args, **kwargs))

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        """
        Stop accepting jobs and release the workers.

        Jobs already running always finish: the derivation primitive cannot be
        interrupted. Queued jobs either run to completion (default) or are
        cancelled.

        Safe to call more than once and from teardown code.

        Args:
            wait: Block until every worker thread has exited
            cancel_futures: Cancel jobs that have not started yet
        """
        with self._condition:
            if not self._shutdown:
                logger.debug("Shutting down %s pool", self._name)
            self._shutdown = True
            if cancel_futures:
                while self._queue:
                    self._queue.popleft().future.cancel()
            self._condition.notify_all()
            workers = list(self._workers)

        if wait:
            current = threading.current_thread()
            for worker in workers:
                if worker is not current:
                    worker.join()

    def __enter__(self) -> "WorkDispatcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown(wait=True)

    def _start_worker(self) -> None:
        # Caller holds self._condition
        self._started += 1
        worker = threading.Thread(
            target=self._worker_loop,
            name=f"{self._name}-{self._started}",
            daemon=True,
        )
        self._workers.add(worker)
        worker.start()

    def _worker_loop(self) -> None:
        current = threading.current_thread()
        while True:
            with self._condition:
                while not self._queue:
                    if self._shutdown:
                        self._workers.discard(current)
                        return

                    self._idle_workers += 1
                    notified = self._condition.wait(timeout=self._idle_timeout)
                    self._idle_workers -= 1

                    if (
                        not notified
                        and not self._queue
                        and not self._shutdown
                        and len(self._workers) > self._min_workers
                    ):
                        self._workers.discard(current)
                        logger.debug("%s retired after idle timeout", current.name)
                        return

                item = self._queue.popleft()

            item.run()
