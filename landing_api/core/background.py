"""Detached asyncio tasks with their own error channel.

The response path never awaits these. Failures are logged from a done
callback, and strong references are held until completion so the event
loop cannot garbage-collect a task mid-flight.
"""
import asyncio
import logging
from typing import Any, Coroutine, Dict, Optional, Set

logger = logging.getLogger(__name__)


class BackgroundTasks:
    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        name: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        log_context = dict(context or {})

        def _on_done(done: asyncio.Task) -> None:
            self._tasks.discard(done)
            if done.cancelled():
                logger.info(
                    "Background task cancelled: %s",
                    name,
                    extra={"event_type": "background_task_cancelled", "task": name, **log_context},
                )
                return
            exc = done.exception()
            if exc is not None:
                logger.error(
                    "Background task failed: %s error=%s",
                    name,
                    exc,
                    exc_info=(type(exc), exc, exc.__traceback__),
                    extra={"event_type": "background_task_failed", "task": name, **log_context},
                )

        task.add_done_callback(_on_done)
        return task

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Give pending tasks a moment to finish, then cancel the rest."""
        if not self._tasks:
            return
        pending = list(self._tasks)
        _, still_pending = await asyncio.wait(pending, timeout=timeout)
        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)
            logger.warning("Cancelled %d background task(s) on shutdown", len(still_pending))
