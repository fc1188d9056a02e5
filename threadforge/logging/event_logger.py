"""Structured event logger with file and Supabase outputs.

``EventLogger`` writes every entry as one JSON line (via ``aiofiles``) to
``api.log``; errors are duplicated into ``errors.log`` and debug entries
into ``debug.log``.  When a database is attached, entries at or above
``min_level`` are mirrored into the ``api_logs`` table in tracked
background tasks.  A ring buffer backs ``get_recent()``.

Global helpers:
    - ``init_logger()``           -- create and register the singleton
    - ``get_logger()``            -- retrieve it (raises if not initialised)
    - ``is_logger_initialized()`` -- check without raising
"""

import asyncio
import logging
from collections import deque
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional, Set

import aiofiles

from threadforge.logging.context import current_client_id, current_request_id
from threadforge.logging.models import LogComponent, LogEntry, LogLevel
from threadforge.utils import utc_now

_stdlib_logger = logging.getLogger(__name__)


class EventLogger:
    """Central structured logger for the API.

    Parameters:
        log_dir: Directory for the JSON log files (created if missing).
        db: Optional ``SupabaseDB`` exposing ``save_api_log()``.
        min_level: Entries below this level are dropped entirely.
        db_min_level: Minimum level mirrored to the database.
        max_recent: Size of the in-memory ring buffer.
    """

    def __init__(
        self,
        log_dir: str = "logs",
        db: Any = None,
        min_level: LogLevel = LogLevel.DEBUG,
        db_min_level: LogLevel = LogLevel.WARNING,
        max_recent: int = 1000,
    ) -> None:
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.db = db
        self.min_level = min_level
        self.db_min_level = db_min_level

        self._main_log = self.log_dir / "api.log"
        self._error_log = self.log_dir / "errors.log"
        self._debug_log = self.log_dir / "debug.log"

        self._recent: Deque[LogEntry] = deque(maxlen=max_recent)
        self._pending_tasks: Set["asyncio.Task[None]"] = set()

    def attach_db(self, db: Any) -> None:
        """Start mirroring to the database once it is available."""
        self.db = db

    async def log(
        self,
        level: LogLevel,
        component: LogComponent,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[BaseException] = None,
        duration_ms: Optional[int] = None,
    ) -> Optional[LogEntry]:
        """Record one event. Returns the entry, or ``None`` when filtered out."""
        if level.value < self.min_level.value:
            return None

        entry = LogEntry(
            timestamp=utc_now(),
            level=level,
            component=component,
            message=message,
            request_id=current_request_id(),
            client_id=current_client_id(),
            data=data or {},
            duration_ms=duration_ms,
        )
        if error is not None:
            entry.error_type = type(error).__name__
            entry.error_message = str(error)

        self._recent.append(entry)
        await self._write_to_file(entry)

        if self.db is not None and level.value >= self.db_min_level.value:
            task = asyncio.create_task(self._write_to_db(entry))
            self._pending_tasks.add(task)
            task.add_done_callback(self._pending_tasks.discard)

        return entry

    async def debug(
        self, component: LogComponent, message: str, **kwargs: Any
    ) -> Optional[LogEntry]:
        return await self.log(LogLevel.DEBUG, component, message, **kwargs)

    async def info(
        self, component: LogComponent, message: str, **kwargs: Any
    ) -> Optional[LogEntry]:
        return await self.log(LogLevel.INFO, component, message, **kwargs)

    async def warning(
        self, component: LogComponent, message: str, **kwargs: Any
    ) -> Optional[LogEntry]:
        return await self.log(LogLevel.WARNING, component, message, **kwargs)

    async def error(
        self, component: LogComponent, message: str, **kwargs: Any
    ) -> Optional[LogEntry]:
        return await self.log(LogLevel.ERROR, component, message, **kwargs)

    async def critical(
        self, component: LogComponent, message: str, **kwargs: Any
    ) -> Optional[LogEntry]:
        return await self.log(LogLevel.CRITICAL, component, message, **kwargs)

    def get_recent(
        self,
        limit: int = 20,
        level: Optional[LogLevel] = None,
        component: Optional[LogComponent] = None,
        request_id: Optional[str] = None,
    ) -> List[LogEntry]:
        """Filter the ring buffer; newest entries last."""
        entries = list(self._recent)
        if level is not None:
            entries = [e for e in entries if e.level == level]
        if component is not None:
            entries = [e for e in entries if e.component == component]
        if request_id is not None:
            entries = [e for e in entries if e.request_id == request_id]
        return entries[-limit:]

    async def flush(self) -> None:
        """Wait for pending database writes. Call before shutdown."""
        if self._pending_tasks:
            await asyncio.gather(*self._pending_tasks, return_exceptions=True)
            self._pending_tasks.clear()

    async def _write_to_file(self, entry: LogEntry) -> None:
        line = entry.to_json() + "\n"

        async with aiofiles.open(self._main_log, "a", encoding="utf-8") as f:
            await f.write(line)

        if entry.level.value >= LogLevel.ERROR.value:
            async with aiofiles.open(self._error_log, "a", encoding="utf-8") as f:
                await f.write(line)

        if entry.level == LogLevel.DEBUG:
            async with aiofiles.open(self._debug_log, "a", encoding="utf-8") as f:
                await f.write(line)

    async def _write_to_db(self, entry: LogEntry) -> None:
        try:
            await self.db.save_api_log(entry.to_dict())
        except Exception as exc:
            # The database sink must never break request handling.
            _stdlib_logger.warning("Failed to mirror log entry to Supabase: %s", exc)


# ======================================================================
# GLOBAL LOGGER SINGLETON
# ======================================================================

_logger: Optional[EventLogger] = None


def init_logger(
    log_dir: str = "logs",
    db: Any = None,
    min_level: LogLevel = LogLevel.DEBUG,
    db_min_level: LogLevel = LogLevel.WARNING,
) -> EventLogger:
    """Create and register the global ``EventLogger``."""
    global _logger
    _logger = EventLogger(
        log_dir=log_dir, db=db, min_level=min_level, db_min_level=db_min_level
    )
    return _logger


def get_logger() -> EventLogger:
    """Return the global ``EventLogger``.

    Raises:
        RuntimeError: If ``init_logger()`` has not been called yet.
    """
    if _logger is None:
        raise RuntimeError("Logger not initialized. Call init_logger() first.")
    return _logger


def is_logger_initialized() -> bool:
    return _logger is not None


def reset_logger() -> None:
    """Drop the global logger (tests)."""
    global _logger
    _logger = None
