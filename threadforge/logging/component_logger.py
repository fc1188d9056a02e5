"""Per-component wrapper around the global ``EventLogger``.

``ComponentLogger`` binds a ``LogComponent`` once so services can log
without repeating it.  ``ComponentLogger.timed()`` returns a
``TimedOperation`` that records how long an upstream call took and
whether it failed.
"""

import time
from typing import Any, Dict, Optional

from threadforge.logging.event_logger import get_logger
from threadforge.logging.models import LogComponent


class ComponentLogger:
    """Logger bound to one component::

        self.log = ComponentLogger(LogComponent.THREAD_GENERATION)
        await self.log.info("Thread generated", data={"tweets": 8})
    """

    def __init__(self, component: LogComponent) -> None:
        self.component = component

    async def debug(self, message: str, **kwargs: Any) -> None:
        await get_logger().debug(self.component, message, **kwargs)

    async def info(self, message: str, **kwargs: Any) -> None:
        await get_logger().info(self.component, message, **kwargs)

    async def warning(self, message: str, **kwargs: Any) -> None:
        await get_logger().warning(self.component, message, **kwargs)

    async def error(
        self, message: str, error: Optional[BaseException] = None, **kwargs: Any
    ) -> None:
        await get_logger().error(self.component, message, error=error, **kwargs)

    async def critical(
        self, message: str, error: Optional[BaseException] = None, **kwargs: Any
    ) -> None:
        await get_logger().critical(self.component, message, error=error, **kwargs)

    def timed(self, message: str, data: Optional[Dict[str, Any]] = None) -> "TimedOperation":
        """Async context manager logging the duration of a block::

            async with self.log.timed("xAI chat completion", data={"model": model}):
                result = await self._post(payload)
        """
        return TimedOperation(self, message, data)


class TimedOperation:
    """Logs ``Starting:`` at DEBUG, then ``Completed:`` (INFO) or
    ``Failed:`` (ERROR) with ``duration_ms``.  Exceptions are re-raised.

    Extra fields added to ``data`` inside the block (for example token
    counts) are included in the completion entry.
    """

    def __init__(
        self,
        logger: ComponentLogger,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.logger = logger
        self.message = message
        self.data: Dict[str, Any] = dict(data or {})
        self._started: Optional[float] = None

    async def __aenter__(self) -> "TimedOperation":
        self._started = time.monotonic()
        await self.logger.debug(f"Starting: {self.message}", data=dict(self.data))
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> None:
        assert self._started is not None
        duration_ms = int((time.monotonic() - self._started) * 1000)

        if exc_type is not None:
            await self.logger.error(
                f"Failed: {self.message}",
                error=exc_val,
                data=self.data,
                duration_ms=duration_ms,
            )
        else:
            await self.logger.info(
                f"Completed: {self.message}",
                data=self.data,
                duration_ms=duration_ms,
            )
