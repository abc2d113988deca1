"""Background task registry: tracks dispatch tasks so failures get logged and sessions can be cancelled."""

import asyncio
import itertools
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class TaskRegistry:
    """Registry for background asyncio tasks.

    - Logs exceptions from tasks that would otherwise be silently swallowed
    - Tracks active tasks for graceful shutdown
    - Supports cancelling every task that belongs to a session
    """

    def __init__(self):
        self._tasks: dict[str, asyncio.Task] = {}
        self._task_meta: dict[str, dict] = {}  # name → {session_id, ...}
        self._seq = itertools.count(1)

    def create_task(
        self,
        coro,
        *,
        name: str,
        session_id: Optional[str] = None,
    ) -> asyncio.Task:
        """Create and track a background task.

        Args:
            coro: The coroutine to run.
            name: Task label (e.g., "dispatch-<message_id>"); made unique internally.
            session_id: Session the task is working for.

        Returns:
            The created asyncio.Task.
        """
        name = f"{name}#{next(self._seq)}"
        task = asyncio.create_task(coro, name=name)
        self._tasks[name] = task
        self._task_meta[name] = {"session_id": session_id}
        task.add_done_callback(lambda t: self._on_task_done(t, name, session_id))
        logger.debug(f"Background task created: '{name}' (session={session_id})")
        return task

    def _on_task_done(self, task: asyncio.Task, name: str, session_id: Optional[str]):
        self._tasks.pop(name, None)
        self._task_meta.pop(name, None)
        if task.cancelled():
            logger.info(f"Background task '{name}' was cancelled (session={session_id})")
        elif exc := task.exception():
            logger.error(
                f"Background task '{name}' failed (session={session_id}): {exc}",
                exc_info=exc,
            )
        else:
            logger.debug(f"Background task '{name}' completed (session={session_id})")

    def cancel_session(self, session_id: str) -> int:
        """Cancel all running tasks of a session. Returns how many were cancelled."""
        cancelled = 0
        for name, meta in list(self._task_meta.items()):
            if meta.get("session_id") != session_id:
                continue
            task = self._tasks.get(name)
            if task and not task.done():
                task.cancel()
                cancelled += 1
        if cancelled:
            logger.info(f"Cancelled {cancelled} in-flight tasks for closed session {session_id}")
        return cancelled

    def __len__(self) -> int:
        return len(self._tasks)

    async def cancel_all(self, timeout: float = 10.0):
        """Cancel all active tasks and wait for them to finish."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        logger.info(f"Cancelling {len(tasks)} background tasks...")
        for task in tasks:
            task.cancel()
        await asyncio.wait(tasks, timeout=timeout)
        logger.info("Background task cleanup complete")
