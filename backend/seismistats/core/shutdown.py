"""Graceful shutdown coordinator.

Handles:
- Signal handlers for SIGTERM and SIGINT
- A bounded wait for cleanup (an in-flight backfill chunk, open clients)
- Callback registration for cleanup tasks
"""

import asyncio
import inspect
import signal
from typing import Awaitable, Callable

from seismistats.core.logging import get_logger

logger = get_logger(__name__)

ShutdownCallback = Callable[[], Awaitable[None] | None]


class ShutdownCoordinator:
    """
    Coordinates graceful shutdown across application components.

    Usage:
        coordinator = get_shutdown_coordinator()
        coordinator.setup_signal_handlers()
        coordinator.register_callback(cancel_backfill)

        if coordinator.is_shutdown_requested():
            # refuse to start a new backfill
            ...
    """

    def __init__(self, timeout: int = 30):
        self.timeout = timeout
        self.shutdown_event = asyncio.Event()
        self.is_shutting_down = False
        self._shutdown_callbacks: list[ShutdownCallback] = []
        logger.info("shutdown_coordinator_initialized", timeout_seconds=timeout)

    def register_callback(self, callback: ShutdownCallback) -> None:
        """Register a callback to run during shutdown (sync or async)."""
        self._shutdown_callbacks.append(callback)
        logger.debug(
            "shutdown_callback_registered",
            callback_name=getattr(callback, "__name__", repr(callback)),
        )

    def is_shutdown_requested(self) -> bool:
        return self.is_shutting_down

    def setup_signal_handlers(self) -> None:
        """Register SIGTERM and SIGINT handlers."""

        def signal_handler(signum: int, frame) -> None:
            sig_name = signal.Signals(signum).name
            logger.warning(
                "shutdown_signal_received",
                signal=sig_name,
                timeout_seconds=self.timeout,
            )
            self.is_shutting_down = True

            try:
                asyncio.get_running_loop().create_task(self.run_callbacks())
            except RuntimeError:
                # No running loop: the lifespan handles cleanup
                logger.debug("shutdown_no_event_loop", signal=sig_name)

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

        logger.info("shutdown_handlers_registered", signals=["SIGTERM", "SIGINT"])

    async def run_callbacks(self) -> None:
        """Run every registered callback once and set the shutdown event."""
        if self.shutdown_event.is_set():
            return

        self.is_shutting_down = True
        logger.info("shutdown_initiated", timeout_seconds=self.timeout)

        callbacks, self._shutdown_callbacks = self._shutdown_callbacks, []
        for callback in callbacks:
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "shutdown_callback_error",
                    callback_name=getattr(callback, "__name__", repr(callback)),
                    error=str(e),
                )

        self.shutdown_event.set()

    async def wait_for_shutdown(self) -> None:
        await self.shutdown_event.wait()

    async def shutdown_with_timeout(self, coro: Awaitable[None]) -> bool:
        """Await coro for at most the configured timeout.

        Returns:
            True if coro completed in time, False on timeout
        """
        try:
            await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "shutdown_timeout_exceeded",
                timeout_seconds=self.timeout,
                message="Some tasks may not have completed",
            )
            return False

        logger.info("shutdown_completed_gracefully")
        return True


# Global singleton
_coordinator: ShutdownCoordinator | None = None


def get_shutdown_coordinator() -> ShutdownCoordinator:
    """Get the global shutdown coordinator."""
    global _coordinator
    if _coordinator is None:
        from seismistats.config import settings

        _coordinator = ShutdownCoordinator(timeout=settings.shutdown_timeout_seconds)
    return _coordinator
