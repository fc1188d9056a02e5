"""
Shared utility functions used throughout the ThreadForge codebase.

Provides:
    - utc_now(): Timezone-aware UTC datetime (for Supabase TIMESTAMPTZ columns)
    - generate_id(): UUID4 string generator (for database primary keys)
    - ensure_utc(dt): Convert any datetime to timezone-aware UTC
    - strip_code_fences(text): Remove markdown fences around LLM JSON output
    - truncate(text, limit): Shorten text for previews and log lines
    - @with_retry: Decorator with exponential backoff for transient failures
"""

import asyncio
import inspect
import logging
import re
import uuid
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from threadforge.exceptions import RetryExhaustedError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Type variable for generic return types in the retry decorator
# ---------------------------------------------------------------------------
T = TypeVar("T")


# ===========================================================================
# TIMEZONE UTILITIES
# All timestamps stored in Supabase must be timezone-aware (TIMESTAMPTZ)
# ===========================================================================


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime in UTC.
    """
    return datetime.now(timezone.utc)


def generate_id() -> str:
    """
    Generate a unique ID for database records.

    Returns:
        A unique UUID4 string (compatible with Supabase UUID type).
    """
    return str(uuid.uuid4())


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure a datetime is timezone-aware in UTC.

    Args:
        dt: Datetime to convert (naive or aware).

    Returns:
        Timezone-aware datetime in UTC.
    """
    if dt.tzinfo is None:
        # Assume naive datetime is UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


_FRACTION_RE = re.compile(r"(?<=:\d\d)\.(\d+)")


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a Supabase timestamp (ISO string or datetime) into aware UTC.

    PostgREST may return ``Z`` suffixes and fractional seconds with
    trailing zeros trimmed; older ``fromisoformat`` implementations reject
    both, so the suffix is rewritten and the fraction padded to six digits.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return ensure_utc(datetime.fromisoformat(text))


# ===========================================================================
# TEXT HELPERS
# ===========================================================================


def strip_code_fences(text: str) -> str:
    """
    Strip markdown code fences (```json ... ```) from model output.

    Args:
        text: Raw model output.

    Returns:
        The fenced content, or the stripped input when no fence is present.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        # Remove opening fence (e.g. ```json)
        first_newline = cleaned.find("\n")
        if first_newline != -1:
            cleaned = cleaned[first_newline + 1 :]
        else:
            cleaned = cleaned[3:]
        # Remove closing fence
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Shorten *text* to *limit* characters, appending *suffix* when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + suffix


# ===========================================================================
# RETRY DECORATOR WITH EXPONENTIAL BACKOFF
# Retries are for transient failures (connection drops, timeouts).
# Eventually raises if all attempts fail.
# ===========================================================================


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    operation_name: Optional[str] = None,
) -> Callable:
    """
    Decorator for async retry logic with exponential backoff.

    Only exception types listed in ``retryable_exceptions`` are retried;
    anything else propagates on the first attempt. Every retry is logged.

    Args:
        max_attempts: Maximum number of attempts (default ``3``).
        base_delay: Delay in seconds before the first retry. Subsequent
            delays double: ``base_delay * 2 ** (attempt - 1)``.
        retryable_exceptions: Exception types that trigger a retry.
        operation_name: Name used in log messages. Defaults to the wrapped
            function's ``__name__``.

    Raises:
        RetryExhaustedError: When every attempt failed. The final exception
            is kept as ``last_error`` and chained as ``__cause__``.

    Usage::

        @with_retry(max_attempts=3, retryable_exceptions=(httpx.TransportError,))
        async def post_payload(payload: dict) -> dict:
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"with_retry requires an async function, got {func!r}")
        op_name = operation_name or func.__name__

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            last_error: Optional[Exception] = None
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_error = e
                    if attempt == max_attempts:
                        logger.error(
                            "[RETRY EXHAUSTED] %s failed after %d attempts: %s",
                            op_name,
                            max_attempts,
                            e,
                        )
                        break
                    delay = base_delay * (2 ** (attempt - 1))
                    logger.warning(
                        "[RETRY] %s attempt %d/%d failed: %s. Retrying in %.1fs...",
                        op_name,
                        attempt,
                        max_attempts,
                        e,
                        delay,
                    )
                    await asyncio.sleep(delay)
            raise RetryExhaustedError(
                op_name, max_attempts, last_error  # type: ignore[arg-type]
            ) from last_error

        return wrapper

    return decorator
