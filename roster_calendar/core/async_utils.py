"""Async orchestration for aggregation.

Source fetches run concurrently under one overall timeout; synchronous
callers reach ``EventAggregator.aggregate`` through ``run_coroutine_from_sync``.
"""

import asyncio
import concurrent.futures
import logging
from collections.abc import Callable
from typing import Any, Optional

logger = logging.getLogger(__name__)


class AsyncOrchestratorError(Exception):
    """Base exception for AsyncOrchestrator errors."""


class AsyncTimeoutError(AsyncOrchestratorError):
    """Raised when the gathered source fetches exceed their timeout."""


class AsyncOrchestrator:
    """Runs source fetches together and bridges sync callers onto the loop."""

    def __init__(self, default_timeout: float = 30.0):
        self.default_timeout = default_timeout
        logger.debug("AsyncOrchestrator initialized: default_timeout=%.1fs", default_timeout)

    async def gather_with_timeout(
        self,
        *coroutines: Any,
        timeout: Optional[float] = None,
        return_exceptions: bool = False,
    ) -> list[Any]:
        """Gather coroutines under one overall timeout.

        Cancelling the caller, or running out of time, cancels every
        gathered coroutine.

        Args:
            *coroutines: Coroutines to gather
            timeout: Timeout in seconds (default_timeout when None)
            return_exceptions: Return source exceptions as results instead of raising

        Returns:
            Results in argument order

        Raises:
            AsyncTimeoutError: If the coroutines do not finish in time
        """
        effective_timeout = timeout if timeout is not None else self.default_timeout
        gather_future = asyncio.gather(*coroutines, return_exceptions=return_exceptions)

        try:
            return await asyncio.wait_for(gather_future, timeout=effective_timeout)
        except asyncio.TimeoutError as e:
            gather_future.cancel()
            logger.warning("Source fetches timed out after %.1fs", effective_timeout)
            raise AsyncTimeoutError(f"Operation exceeded timeout of {effective_timeout}s") from e

    def run_coroutine_from_sync(self, coro_func: Callable[[], Any]) -> Any:
        """Run a coroutine to completion from synchronous code.

        Without a running loop in this thread asyncio.run() is used; under a
        running loop the coroutine gets a fresh loop on a worker thread.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(coro_func())

        logger.debug("Detected running event loop - using worker thread")

        def run_in_new_loop() -> Any:
            new_loop = asyncio.new_event_loop()
            asyncio.set_event_loop(new_loop)
            try:
                return new_loop.run_until_complete(coro_func())
            finally:
                new_loop.close()

        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            return executor.submit(run_in_new_loop).result()


_global_orchestrator: Optional[AsyncOrchestrator] = None


def get_global_orchestrator(default_timeout: float = 30.0) -> AsyncOrchestrator:
    """Get or create the shared AsyncOrchestrator instance."""
    global _global_orchestrator
    if _global_orchestrator is None:
        _global_orchestrator = AsyncOrchestrator(default_timeout=default_timeout)
    return _global_orchestrator


def reset_global_orchestrator() -> None:
    global _global_orchestrator
    _global_orchestrator = None
