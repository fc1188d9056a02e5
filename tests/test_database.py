"""Tests for the threadforge.database module.

Covers:
- validate_not_empty / validate_positive / is_uuid helpers.
- SupabaseDB.create configuration checks.
- SupabaseDB table operations against a mocked async Supabase client.
"""

from unittest.mock import MagicMock

import pytest

from threadforge.config import SupabaseConfig
from threadforge.database import (
    API_LOGS,
    BRAND_GUIDELINES,
    THREAD_DRAFTS,
    SupabaseDB,
    is_uuid,
    validate_not_empty,
    validate_positive,
)
from threadforge.exceptions import ConfigurationError, DatabaseError, ValidationError
from threadforge.utils import generate_id

CREATED_AT = "2025-06-15T12:00:00+00:00"


def draft_row(**overrides):
    row = {
        "id": generate_id(),
        "client_id": "client-1",
        "prompt_json": {"topic": "Pricing"},
        "output_json": {"tweets": ["a", "b", "c"]},
        "provider": "xai",
        "model": "grok-2-latest",
        "created_at": CREATED_AT,
        "rating": None,
        "regeneration_count": 0,
        "was_final_version": False,
        "feedback_tags": None,
        "parent_thread_id": None,
    }
    row.update(overrides)
    return row


# =============================================================================
# Validation helpers
# =============================================================================


class TestValidateNotEmpty:
    def test_none_raises(self):
        with pytest.raises(ValidationError, match="cannot be None"):
            validate_not_empty(None, "field")

    def test_blank_string_raises(self):
        with pytest.raises(ValidationError, match="cannot be empty string"):
            validate_not_empty("   ", "field")

    def test_value_passes(self):
        validate_not_empty("x", "field")
        validate_not_empty(0, "field")


class TestValidatePositive:
    def test_zero_raises(self):
        with pytest.raises(ValidationError, match="must be positive"):
            validate_positive(0, "limit")

    def test_positive_passes(self):
        validate_positive(1, "limit")


class TestIsUuid:
    def test_valid(self):
        assert is_uuid(generate_id()) is True

    def test_invalid(self):
        assert is_uuid("not-a-uuid") is False


# =============================================================================
# SupabaseDB
# =============================================================================


class TestSupabaseDBCreate:
    @pytest.mark.asyncio
    async def test_create_requires_configuration(self):
        with pytest.raises(ConfigurationError, match="SUPABASE_URL"):
            await SupabaseDB.create(SupabaseConfig())


class TestThreadDrafts:
    @pytest.mark.asyncio
    async def test_save_returns_id(self, mock_supabase_client, draft_factory):
        draft = draft_factory()
        mock_supabase_client.table_mock.execute_result.data = [{"id": draft.id}]
        db = SupabaseDB(mock_supabase_client)

        assert await db.save_thread_draft(draft) == draft.id
        mock_supabase_client.table.assert_called_with(THREAD_DRAFTS)
        row = mock_supabase_client.table_mock.insert.call_args.args[0]
        assert row["output_json"]["tweets"] == draft.tweets
        assert row["feedback_tags"] is None

    @pytest.mark.asyncio
    async def test_save_without_data_raises(self, mock_supabase_client, draft_factory):
        db = SupabaseDB(mock_supabase_client)
        with pytest.raises(DatabaseError):
            await db.save_thread_draft(draft_factory())

    @pytest.mark.asyncio
    async def test_get_returns_draft(self, mock_supabase_client):
        row = draft_row(feedback_tags="too_long,weak_hook", rating=4)
        mock_supabase_client.table_mock.execute_result.data = [row]
        db = SupabaseDB(mock_supabase_client)

        draft = await db.get_thread_draft(row["id"])

        assert draft.id == row["id"]
        assert draft.tweets == ["a", "b", "c"]
        assert draft.feedback_tags == ["too_long", "weak_hook"]
        assert draft.rating == 4
        assert draft.created_at.tzinfo is not None
        mock_supabase_client.table_mock.eq.assert_called_with("id", row["id"])

    @pytest.mark.asyncio
    async def test_get_non_uuid_skips_query(self, mock_supabase_client):
        db = SupabaseDB(mock_supabase_client)
        assert await db.get_thread_draft("abc") is None
        mock_supabase_client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, mock_supabase_client):
        db = SupabaseDB(mock_supabase_client)
        assert await db.get_thread_draft(generate_id()) is None

    @pytest.mark.asyncio
    async def test_list_orders_and_pages(self, mock_supabase_client):
        mock_supabase_client.table_mock.execute_result.data = [draft_row(), draft_row()]
        db = SupabaseDB(mock_supabase_client)

        drafts = await db.list_thread_drafts(limit=10, offset=20)

        assert len(drafts) == 2
        mock_supabase_client.table_mock.order.assert_called_with("created_at", desc=True)
        mock_supabase_client.table_mock.range.assert_called_with(20, 29)

    @pytest.mark.asyncio
    async def test_list_rejects_negative_offset(self, mock_supabase_client):
        db = SupabaseDB(mock_supabase_client)
        with pytest.raises(ValidationError):
            await db.list_thread_drafts(limit=10, offset=-1)

    @pytest.mark.asyncio
    async def test_update_feedback(self, mock_supabase_client):
        row = draft_row(rating=5, feedback_tags="too_generic", was_final_version=True)
        mock_supabase_client.table_mock.execute_result.data = [row]
        db = SupabaseDB(mock_supabase_client)

        draft = await db.update_thread_feedback(row["id"], 5, ["too_generic"], True)

        assert draft.rating == 5
        assert draft.was_final_version is True
        mock_supabase_client.table_mock.update.assert_called_with(
            {"rating": 5, "feedback_tags": "too_generic", "was_final_version": True}
        )

    @pytest.mark.asyncio
    async def test_update_feedback_empty_tags_stored_as_null(self, mock_supabase_client):
        db = SupabaseDB(mock_supabase_client)
        assert await db.update_thread_feedback(generate_id(), None, [], False) is None
        updates = mock_supabase_client.table_mock.update.call_args.args[0]
        assert updates["feedback_tags"] is None


class TestBrandGuidelines:
    @pytest.mark.asyncio
    async def test_get_none_when_empty(self, mock_supabase_client):
        db = SupabaseDB(mock_supabase_client)
        assert await db.get_brand_guideline() is None
        mock_supabase_client.table.assert_called_with(BRAND_GUIDELINES)

    @pytest.mark.asyncio
    async def test_upsert_inserts_first_row(self, mock_supabase_client):
        table = mock_supabase_client.table_mock
        responses = iter([[], [{"id": generate_id(), "text": "Be direct", "updated_at": CREATED_AT}]])
        table.execute.side_effect = lambda: MagicMock(data=next(responses))
        db = SupabaseDB(mock_supabase_client)

        guideline = await db.upsert_brand_guideline("Be direct")

        assert guideline.text == "Be direct"
        table.insert.assert_called_once()
        table.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_upsert_updates_existing_row(self, mock_supabase_client):
        existing_id = generate_id()
        mock_supabase_client.table_mock.execute_result.data = [
            {"id": existing_id, "text": "Old", "updated_at": CREATED_AT}
        ]
        db = SupabaseDB(mock_supabase_client)

        await db.upsert_brand_guideline("New")

        mock_supabase_client.table_mock.update.assert_called_once()
        mock_supabase_client.table_mock.eq.assert_called_with("id", existing_id)

    @pytest.mark.asyncio
    async def test_upsert_blank_rejected(self, mock_supabase_client):
        db = SupabaseDB(mock_supabase_client)
        with pytest.raises(ValidationError):
            await db.upsert_brand_guideline("  ")

    @pytest.mark.asyncio
    async def test_delete_without_row_returns_false(self, mock_supabase_client):
        db = SupabaseDB(mock_supabase_client)
        assert await db.delete_brand_guideline() is False
        mock_supabase_client.table_mock.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_existing_row(self, mock_supabase_client):
        mock_supabase_client.table_mock.execute_result.data = [
            {"id": generate_id(), "text": "Old", "updated_at": CREATED_AT}
        ]
        db = SupabaseDB(mock_supabase_client)
        assert await db.delete_brand_guideline() is True
        mock_supabase_client.table_mock.delete.assert_called_once()


class TestApiLogs:
    @pytest.mark.asyncio
    async def test_requires_timestamp_and_level(self, mock_supabase_client):
        db = SupabaseDB(mock_supabase_client)
        with pytest.raises(ValidationError):
            await db.save_api_log({"message": "hi"})

    @pytest.mark.asyncio
    async def test_inserts_entry(self, mock_supabase_client):
        mock_supabase_client.table_mock.execute_result.data = [{"id": "log-1"}]
        db = SupabaseDB(mock_supabase_client)
        assert await db.save_api_log({"timestamp": CREATED_AT, "level": 20}) == "log-1"
        mock_supabase_client.table.assert_called_with(API_LOGS)
