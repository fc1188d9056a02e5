"""Structured logging for the ThreadForge API."""
from threadforge.logging.models import LogLevel, LogComponent, LogEntry
from threadforge.logging.context import (
    bind_request_context,
    current_client_id,
    current_request_id,
    reset_request_context,
)
from threadforge.logging.event_logger import (
    EventLogger,
    get_logger,
    init_logger,
    is_logger_initialized,
    reset_logger,
)
from threadforge.logging.component_logger import ComponentLogger, TimedOperation

__all__ = [
    "LogLevel", "LogComponent", "LogEntry",
    "bind_request_context", "reset_request_context",
    "current_request_id", "current_client_id",
    "EventLogger", "init_logger", "get_logger", "is_logger_initialized", "reset_logger",
    "ComponentLogger", "TimedOperation",
]
