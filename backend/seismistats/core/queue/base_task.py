"""Base task class for sync tasks."""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from celery import Task

from seismistats.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class SyncTask(Task):
    """
    Base class for Celery tasks that run async ingestion code.

    Each invocation gets a fresh event loop; outcomes are logged with the
    task id so worker logs line up with sync-status rows.
    """

    abstract = True

    def run_async(self, factory: Callable[[], Awaitable[T]]) -> T:
        """Run the coroutine produced by factory on a new event loop."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(factory())
        finally:
            loop.close()
            asyncio.set_event_loop(None)

    def on_success(self, retval: Any, task_id: str, args: tuple, kwargs: dict) -> None:
        logger.info(
            "sync_task_succeeded",
            task_name=self.name,
            task_id=task_id,
            result=retval if isinstance(retval, dict) else str(retval)[:200],
        )

    def on_failure(
        self,
        exc: Exception,
        task_id: str,
        args: tuple,
        kwargs: dict,
        einfo: Any,
    ) -> None:
        logger.error(
            "sync_task_failed",
            task_name=self.name,
            task_id=task_id,
            error=str(exc),
            error_type=type(exc).__name__,
        )
