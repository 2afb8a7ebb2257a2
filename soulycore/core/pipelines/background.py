"""
soulycore.core.pipelines.background - Background task runner

Fire-and-forget work (memory extraction after a chat reply) is submitted here
instead of being left as an unawaited coroutine. The runner keeps a strong
reference to every in-flight task, logs failures when a task finishes, and
lets shutdown code or tests wait for outstanding work.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any


class BackgroundTaskRunner:
    """
    Owns the lifecycle of background tasks.

    Failures never propagate to the submitter; they are logged with the task
    name and counted in ``failed_count``.

    Example:
        >>> runner = BackgroundTaskRunner()
        >>> runner.submit("memory-extraction", pipeline.run(turn_text))
        >>> await runner.drain()
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._tasks: set[asyncio.Task[Any]] = set()
        self.completed_count = 0
        self.failed_count = 0

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    def submit(self, name: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """
        Schedule ``coro`` on the running loop.

        Must be called from within a running event loop.
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        self.logger.debug(f"Submitted background task {name}", extra={"task_name": name})
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        name = task.get_name()

        if task.cancelled():
            self.logger.info(f"Background task {name} cancelled", extra={"task_name": name})
            return

        error = task.exception()
        if error is not None:
            self.failed_count += 1
            self.logger.error(
                f"Background task {name} failed: {error}",
                exc_info=error,
                extra={"task_name": name, "error_type": type(error).__name__},
            )
            return

        self.completed_count += 1

    async def drain(self, timeout: float | None = None) -> None:
        """
        Wait for all in-flight tasks to finish.

        Task failures are already logged by the done-callback and are not
        re-raised here.

        Raises:
            TimeoutError: If tasks are still running after ``timeout`` seconds
        """
        while self._tasks:
            pending = list(self._tasks)
            _, not_done = await asyncio.wait(pending, timeout=timeout)
            if not_done:
                raise TimeoutError(f"{len(not_done)} background task(s) still running")

    async def shutdown(self) -> None:
        """Cancel every in-flight task and wait for them to settle."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


__all__ = ["BackgroundTaskRunner"]
