"""Structured log models: LogLevel, LogComponent, LogEntry."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class LogLevel(Enum):
    """Severity levels.

    Integer values keep comparisons numeric; comparing the names as strings
    would put "debug" above "critical".
    """

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @property
    def name_str(self) -> str:
        return self.name.lower()

    @classmethod
    def from_name(cls, name: str) -> "LogLevel":
        """Resolve ``"info"`` / ``"INFO"`` style names; unknown names give INFO."""
        return cls.__members__.get(name.strip().upper(), cls.INFO)


class LogComponent(Enum):
    """Subsystems that emit structured log events."""

    API = "api"
    RATE_LIMITER = "rate_limiter"
    XAI_CLIENT = "xai_client"
    SERPER = "serper"
    THREAD_GENERATION = "thread_generation"
    THREAD_HISTORY = "thread_history"
    PROFILE_ANALYSIS = "profile_analysis"
    TWEET_IMPROVER = "tweet_improver"
    WEB_SEARCH = "web_search"
    BRAND_GUIDELINES = "brand_guidelines"
    STARTUP = "startup"


@dataclass
class LogEntry:
    """A single structured log event.

    ``request_id`` and ``client_id`` are copied from the active request
    context when the entry is created.
    """

    timestamp: datetime
    level: LogLevel
    component: LogComponent
    message: str

    request_id: Optional[str] = None
    client_id: Optional[str] = None

    data: Dict[str, Any] = field(default_factory=dict)

    error_type: Optional[str] = None
    error_message: Optional[str] = None

    duration_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Row shape shared by the JSON files and the ``api_logs`` table."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "level_name": self.level.name_str,
            "component": self.component.value,
            "message": self.message,
            "request_id": self.request_id,
            "client_id": self.client_id,
            "data": self.data,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "duration_ms": self.duration_ms,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def to_readable(self) -> str:
        """One-line console form, e.g. ``[WARN] [12:00:01] [serper] ...``."""
        indicator = {
            LogLevel.DEBUG: "[DEBUG]",
            LogLevel.INFO: "[INFO]",
            LogLevel.WARNING: "[WARN]",
            LogLevel.ERROR: "[ERROR]",
            LogLevel.CRITICAL: "[CRIT]",
        }[self.level]
        line = (
            f"{indicator} [{self.timestamp:%H:%M:%S}] "
            f"[{self.component.value}] {self.message}"
        )
        if self.request_id:
            line += f" req={self.request_id}"
        if self.duration_ms is not None:
            line += f" ({self.duration_ms}ms)"
        return line
