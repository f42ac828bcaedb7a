"""Background job queue abstraction.

Provides a protocol for enqueueing named jobs with JSON payloads and
tracking their execution, with an in-process asyncio implementation.
The HTTP layer only ever enqueues; registered handlers do the work.
Enables a future swap to a Redis-backed queue without service layer changes.
"""

import asyncio
import enum
import uuid
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from loguru import logger

JobHandler = Callable[[dict[str, Any]], Awaitable[Any]]


class JobStatus(enum.StrEnum):
    """Status of a queued job delivery."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobQueue(Protocol):
    """Protocol for job queue transports."""

    def enqueue(self, job_name: str, payload: dict[str, Any], *, key: str | None = None) -> str:
        """Enqueue a job for background execution.

        Args:
            job_name: Registered job name (selects the handler).
            payload: JSON-serializable job payload.
            key: Optional job identity; deliveries sharing a key never run concurrently.

        Returns:
            A handle string for tracking.
        """
        ...

    def get_status(self, handle: str) -> JobStatus:
        """Get the current status of a job delivery.

        Args:
            handle: The handle returned by enqueue.

        Returns:
            The current job status.
        """
        ...


class InProcessJobQueue:
    """In-process job queue using asyncio tasks.

    Suitable for development and single-node deployments. Deliveries run in
    the same event loop as the API server. Deliveries that share a key are
    serialized so a job is never processed by two workers at once. A key's
    lock is dropped once no delivery holds or waits on it, and only the
    newest ``max_finished`` finished statuses are kept for ``get_status``.

    Args:
        max_finished: Number of finished delivery statuses to remember.
    """

    def __init__(self, max_finished: int = 1000) -> None:
        self._handlers: dict[str, JobHandler] = {}
        self._jobs: dict[str, JobStatus] = {}
        self._tasks: dict[str, asyncio.Task[Any]] = {}
        self._key_locks: dict[str, asyncio.Lock] = {}
        self._key_users: dict[str, int] = {}
        self._finished: deque[str] = deque()
        self._max_finished = max_finished

    def register(self, job_name: str, handler: JobHandler) -> None:
        """Register the coroutine function that processes ``job_name`` payloads."""
        self._handlers[job_name] = handler

    def enqueue(self, job_name: str, payload: dict[str, Any], *, key: str | None = None) -> str:
        """Enqueue a job for background execution.

        Args:
            job_name: Registered job name.
            payload: Job payload passed to the handler.
            key: Optional job identity used to serialize deliveries.

        Returns:
            A handle string for tracking.

        Raises:
            KeyError: If no handler is registered for ``job_name``.
        """
        handler = self._handlers.get(job_name)
        if handler is None:
            msg = f"No handler registered for job {job_name!r}"
            raise KeyError(msg)

        handle = str(uuid.uuid4())
        self._jobs[handle] = JobStatus.PENDING
        lock = self._claim_key(key) if key is not None else None

        async def _run() -> None:
            if lock is not None:
                await lock.acquire()
            self._jobs[handle] = JobStatus.RUNNING
            try:
                await handler(payload)
                self._jobs[handle] = JobStatus.COMPLETED
                logger.debug(f"Job {job_name} ({handle}) completed")
            except Exception:
                self._jobs[handle] = JobStatus.FAILED
                logger.exception(f"Job {job_name} ({handle}) failed")
            finally:
                if lock is not None:
                    lock.release()
                    self._release_key(key)  # type: ignore[arg-type]
                self._record_finished(handle)

        task = asyncio.create_task(_run())
        self._tasks[handle] = task
        task.add_done_callback(lambda _: self._tasks.pop(handle, None))
        return handle

    def _claim_key(self, key: str) -> asyncio.Lock:
        self._key_users[key] = self._key_users.get(key, 0) + 1
        return self._key_locks.setdefault(key, asyncio.Lock())

    def _release_key(self, key: str) -> None:
        remaining = self._key_users[key] - 1
        if remaining:
            self._key_users[key] = remaining
        else:
            del self._key_users[key]
            del self._key_locks[key]

    def _record_finished(self, handle: str) -> None:
        self._finished.append(handle)
        while len(self._finished) > self._max_finished:
            self._jobs.pop(self._finished.popleft(), None)

    def get_status(self, handle: str) -> JobStatus:
        """Get the current status of a job delivery.

        Raises:
            KeyError: If the handle is not found.
        """
        return self._jobs[handle]

    async def drain(self) -> None:
        """Wait until every delivery enqueued so far has finished."""
        pending = [task for task in self._tasks.values() if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


# Singleton instance for the application
job_queue = InProcessJobQueue()
