"""
Tests for threadforge.utils module.

Covers:
    - utc_now(), generate_id(), ensure_utc(), parse_timestamp()
    - strip_code_fences(), truncate()
    - with_retry(): exponential backoff decorator for async functions
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch
from uuid import UUID

import pytest

from threadforge.exceptions import RetryExhaustedError
from threadforge.models import ThreadDraft
from threadforge.utils import (
    ensure_utc,
    generate_id,
    parse_timestamp,
    strip_code_fences,
    truncate,
    utc_now,
    with_retry,
)


# ===========================================================================
# Time and ids
# ===========================================================================


def test_utc_now_returns_timezone_aware_utc():
    result = utc_now()
    assert result.tzinfo == timezone.utc


def test_generate_id_returns_valid_uuid4_string():
    """generate_id() must return a string that parses as a valid UUID4."""
    result = generate_id()
    assert isinstance(result, str)
    assert UUID(result).version == 4


def test_generate_id_returns_unique_values():
    ids = {generate_id() for _ in range(100)}
    assert len(ids) == 100


def test_ensure_utc_naive_datetime_adds_utc():
    """A naive datetime gets UTC attached without shifting the clock."""
    result = ensure_utc(datetime(2025, 6, 15, 12, 0, 0))
    assert result.tzinfo == timezone.utc
    assert result.hour == 12


def test_ensure_utc_non_utc_aware_converts_to_utc():
    plus_five = timezone(timedelta(hours=5))
    result = ensure_utc(datetime(2025, 6, 15, 17, 0, 0, tzinfo=plus_five))
    assert result.tzinfo == timezone.utc
    assert result.hour == 12


def test_parse_timestamp_accepts_z_suffix(sample_utc_now):
    """PostgREST timestamps ending in ``Z`` parse to aware UTC."""
    assert parse_timestamp("2025-06-15T12:00:00Z") == sample_utc_now


def test_parse_timestamp_accepts_offset_and_datetime(sample_utc_now):
    assert parse_timestamp("2025-06-15T14:00:00+02:00") == sample_utc_now
    assert parse_timestamp(sample_utc_now) == sample_utc_now


@pytest.mark.parametrize(
    "text, micros",
    [
        ("2025-06-15T12:00:00.12345+00:00", 123450),
        ("2025-06-15T12:00:00.5Z", 500000),
        ("2025-06-15T12:00:00.1234567+00:00", 123456),
    ],
)
def test_parse_timestamp_normalises_fraction(text, micros):
    """Postgres trims trailing zeros from fractional seconds."""
    result = parse_timestamp(text)
    assert result.microsecond == micros
    assert result.tzinfo == timezone.utc


def test_thread_draft_from_row_with_trimmed_fraction():
    draft = ThreadDraft.from_row({"id": "d-1", "created_at": "2025-06-15T12:00:00.12345+00:00"})
    assert draft.created_at.microsecond == 123450


# ===========================================================================
# Text helpers
# ===========================================================================


class TestStripCodeFences:
    def test_removes_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_removes_bare_fence(self):
        assert strip_code_fences('```\n{"a": 1}```') == '{"a": 1}'

    def test_leaves_plain_text(self):
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate("hello", 10) == "hello"

    def test_long_text_cut_with_suffix(self):
        assert truncate("abcdefghij", 4) == "abcd..."

    def test_custom_suffix(self):
        assert truncate("abcdefghij", 4, suffix="…") == "abcd…"


# ===========================================================================
# with_retry()
# ===========================================================================


@pytest.mark.asyncio
async def test_with_retry_succeeds_first_try():
    """Function that succeeds immediately is not retried."""
    with patch("threadforge.utils.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:

        @with_retry(max_attempts=3, base_delay=2.0)
        async def succeed():
            return "ok"

        assert await succeed() == "ok"
        mock_sleep.assert_not_called()


@pytest.mark.asyncio
async def test_with_retry_retries_and_succeeds_second_try():
    with patch("threadforge.utils.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        call_count = 0

        @with_retry(max_attempts=3, base_delay=2.0)
        async def flaky():
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise ValueError("transient")
            return "recovered"

        assert await flaky() == "recovered"
        assert call_count == 2
        mock_sleep.assert_called_once_with(2.0)


@pytest.mark.asyncio
async def test_with_retry_exhausts_retries():
    """Always-failing function raises RetryExhaustedError after max_attempts."""
    with patch("threadforge.utils.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:

        @with_retry(max_attempts=3, base_delay=1.0, operation_name="async_op")
        async def always_fail():
            raise RuntimeError("permanent")

        with pytest.raises(RetryExhaustedError) as exc_info:
            await always_fail()

        err = exc_info.value
        assert err.operation == "async_op"
        assert err.attempts == 3
        assert isinstance(err.last_error, RuntimeError)
        assert err.__cause__ is err.last_error

        # Slept after attempts 1 and 2, not after the final one.
        assert mock_sleep.call_count == 2
        mock_sleep.assert_any_call(1.0)
        mock_sleep.assert_any_call(2.0)


@pytest.mark.asyncio
async def test_with_retry_respects_retryable_exceptions():
    """Non-retryable exceptions propagate immediately."""
    with patch("threadforge.utils.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:

        @with_retry(max_attempts=3, base_delay=1.0, retryable_exceptions=(ValueError,))
        async def raise_type_error():
            raise TypeError("not retryable")

        with pytest.raises(TypeError, match="not retryable"):
            await raise_type_error()
        mock_sleep.assert_not_called()


def test_with_retry_rejects_sync_function():
    with pytest.raises(TypeError):

        @with_retry(max_attempts=2)
        def sync_function():
            pass


def test_with_retry_preserves_function_name():
    @with_retry(max_attempts=2)
    async def my_async_function():
        pass

    assert my_async_function.__name__ == "my_async_function"
