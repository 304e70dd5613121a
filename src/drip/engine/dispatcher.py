"""Bounded fire-and-forget dispatch of execution processing."""

import asyncio
from collections.abc import Awaitable, Callable
from uuid import UUID

from src.drip.core.logging import bind_execution_context, clear_execution_context, get_logger

logger = get_logger(__name__)

ProcessFn = Callable[[UUID], Awaitable[object]]
ErrorFn = Callable[[UUID, Exception], Awaitable[object]]


class ExecutionDispatcher:
    """Runs execution processing on a pool of at most ``max_concurrency`` tasks.

    ``submit`` returns immediately; callers observe completion through the
    execution store. An exception escaping ``process`` is logged and handed to
    ``on_error`` for that execution only.
    """

    def __init__(
        self,
        process: ProcessFn,
        max_concurrency: int = 20,
        on_error: ErrorFn | None = None,
    ) -> None:
        self._process = process
        self._on_error = on_error
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: set[asyncio.Task[None]] = set()
        self._queued: set[UUID] = set()
        self._closed = False

    @property
    def in_flight_count(self) -> int:
        return len(self._tasks)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def submit(self, execution_id: UUID) -> bool:
        """Queue an execution for processing.

        Returns:
            False if the dispatcher is draining or the id is already queued here.
        """
        if self._closed:
            logger.warning(
                "Dispatcher closed, execution not submitted", execution_id=str(execution_id)
            )
            return False
        if execution_id in self._queued:
            return False

        self._queued.add(execution_id)
        task = asyncio.create_task(self._run(execution_id), name=f"execution-{execution_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _run(self, execution_id: UUID) -> None:
        async with self._semaphore:
            bind_execution_context(execution_id)
            try:
                await self._process(execution_id)
            except Exception as e:
                logger.exception("Execution dispatch failed", error=str(e))
                if self._on_error is not None:
                    try:
                        await self._on_error(execution_id, e)
                    except Exception as handler_error:
                        logger.exception("Dispatch error handler failed", error=str(handler_error))
            finally:
                self._queued.discard(execution_id)
                clear_execution_context()

    async def join(self) -> None:
        """Wait until every submitted execution has been processed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def drain(self, timeout: float) -> bool:
        """Stop accepting work and wait for in-flight executions.

        Tasks still running after ``timeout`` seconds are cancelled; their
        executions stay RUNNING for the watchdog.

        Returns:
            True if everything finished within the timeout.
        """
        self._closed = True
        if not self._tasks:
            return True

        logger.info("Draining execution dispatcher", in_flight=len(self._tasks))
        _, pending = await asyncio.wait(list(self._tasks), timeout=timeout)
        if not pending:
            logger.info("Execution dispatcher drained")
            return True

        logger.warning(
            f"Dispatcher drain timeout after {timeout}s - cancelling {len(pending)} executions"
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        return False
