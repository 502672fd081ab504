# game_review/utils/signal_manager.py
"""
Provides an asynchronous context manager for graceful shutdown signal handling.

By using the `AsyncSignalManager` in an `async with` block, the application
can listen for SIGINT (Ctrl+C) and SIGTERM and respond by setting a shared
`asyncio.Event` and running an optional callback, such as cancelling the
analysis in progress.
"""

import asyncio
import signal
from typing import Callable, Optional, Set

import structlog

logger = structlog.get_logger(__name__)


class AsyncSignalManager:
    """
    An async context manager that listens for shutdown signals and sets an event.

    Usage:
        shutdown_event = asyncio.Event()
        async with AsyncSignalManager(shutdown_event, on_signal=task.cancel):
            await task
    """

    def __init__(self, shutdown_event: asyncio.Event, on_signal: Optional[Callable[[], object]] = None):
        """
        Args:
            shutdown_event: Set when SIGINT or SIGTERM is caught.
            on_signal: Called once, on the first signal.
        """
        self._shutdown_event = shutdown_event
        self._on_signal = on_signal
        self._signals_to_catch: Set[signal.Signals] = {signal.SIGINT, signal.SIGTERM}

    def _signal_handler(self, sig: signal.Signals) -> None:
        if self._shutdown_event.is_set():
            logger.info("Multiple shutdown signals received, already shutting down.", signal_name=sig.name)
            return
        logger.warning("Shutdown signal received. Initiating graceful shutdown.", signal_name=sig.name)
        self._shutdown_event.set()
        if self._on_signal:
            self._on_signal()

    async def __aenter__(self) -> "AsyncSignalManager":
        """Registers the signal handlers with the running asyncio event loop."""
        loop = asyncio.get_running_loop()
        for sig in self._signals_to_catch:
            try:
                loop.add_signal_handler(sig, self._signal_handler, sig)
                logger.debug("Registered signal handler.", signal_name=sig.name)
            except (ValueError, AttributeError, RuntimeError, NotImplementedError) as e:
                # Not every platform supports loop signal handlers.
                logger.warning("Could not register signal handler.", signal_name=sig.name, error=str(e))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        loop = asyncio.get_running_loop()
        for sig in self._signals_to_catch:
            try:
                loop.remove_signal_handler(sig)
            except (ValueError, AttributeError, RuntimeError, NotImplementedError):
                logger.debug("Could not remove signal handler.", signal_name=sig.name)
