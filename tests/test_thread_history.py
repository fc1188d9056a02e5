"""
Tests for threadforge.services.thread_history and
threadforge.services.brand_guidelines against the in-memory FakeDB.
"""

from datetime import timedelta

import pytest

from threadforge.exceptions import NotFoundError, ValidationError
from threadforge.logging import LogComponent
from threadforge.schemas import ThreadFeedbackRequest
from threadforge.services.brand_guidelines import BrandGuidelineService
from threadforge.services.thread_history import ThreadHistoryService, to_detail, to_list_item
from threadforge.utils import generate_id


@pytest.fixture
def history(fake_db):
    return ThreadHistoryService(fake_db)


@pytest.fixture
def stored_draft(fake_db, draft_factory):
    draft = draft_factory()
    fake_db.drafts[draft.id] = draft
    return draft


# =============================================================================
# Listing
# =============================================================================


class TestListThreads:
    @pytest.mark.asyncio
    async def test_newest_first_with_paging(self, history, fake_db, draft_factory, sample_utc_now):
        for hours, topic in enumerate(["oldest", "middle", "newest"]):
            draft = draft_factory(topic=topic, created_at=sample_utc_now + timedelta(hours=hours))
            fake_db.drafts[draft.id] = draft

        first_page = await history.list_threads(limit=2)
        second_page = await history.list_threads(limit=2, offset=2)

        assert [item.topic_preview for item in first_page] == ["newest", "middle"]
        assert [item.topic_preview for item in second_page] == ["oldest"]

    @pytest.mark.asyncio
    async def test_empty(self, history):
        assert await history.list_threads() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "limit, offset, message",
        [
            (101, 0, "Limit must not exceed 100"),
            (0, 0, "Limit must be at least 1"),
            (10, -1, "Offset must not be negative"),
        ],
    )
    async def test_paging_validation(self, history, limit, offset, message):
        with pytest.raises(ValidationError) as exc_info:
            await history.list_threads(limit=limit, offset=offset)
        assert str(exc_info.value) == message


class TestToListItem:
    def test_previews_are_truncated(self, draft_factory):
        draft = draft_factory(topic="t" * 200, tweets=["w" * 300, "second"])
        item = to_list_item(draft)

        assert item.topic_preview == "t" * 80 + "..."
        assert item.first_tweet_preview == "w" * 120 + "..."
        assert item.tweet_count == 2

    def test_no_tweets(self, draft_factory):
        item = to_list_item(draft_factory(tweets=[]))
        assert item.first_tweet_preview == ""
        assert item.tweet_count == 0

    def test_serialises_camel_case(self, draft_factory):
        data = to_list_item(draft_factory()).model_dump(by_alias=True)
        assert {"createdAt", "topicPreview", "firstTweetPreview", "tweetCount"} <= set(data)


# =============================================================================
# Detail
# =============================================================================


class TestGet:
    @pytest.mark.asyncio
    async def test_returns_detail(self, history, stored_draft):
        detail = await history.get(stored_draft.id)

        assert detail.id == stored_draft.id
        assert detail.tweets == stored_draft.tweets
        assert detail.request["topic"] == "Shipping side projects"
        assert detail.quality.hook_score == 70

    @pytest.mark.asyncio
    async def test_missing(self, history):
        with pytest.raises(NotFoundError, match="Thread not found"):
            await history.get(generate_id())

    def test_detail_without_quality(self, draft_factory):
        draft = draft_factory()
        del draft.output_json["quality"]
        assert to_detail(draft).quality is None


# =============================================================================
# Feedback
# =============================================================================


class TestSubmitFeedback:
    @pytest.mark.asyncio
    async def test_records_feedback(self, history, stored_draft, event_logger):
        request = ThreadFeedbackRequest(
            rating=4,
            feedback_tags=[" Too_Long", "weak_hook", "too_long"],
            was_final_version=True,
        )

        detail = await history.submit_feedback(stored_draft.id, request)

        assert detail.rating == 4
        assert detail.feedback_tags == ["too_long", "weak_hook"]
        assert detail.was_final_version is True
        entry = event_logger.get_recent(limit=1)[0]
        assert entry.message == "Thread feedback recorded"
        assert entry.component == LogComponent.THREAD_HISTORY

    @pytest.mark.asyncio
    async def test_rating_is_optional(self, history, stored_draft):
        detail = await history.submit_feedback(stored_draft.id, ThreadFeedbackRequest())
        assert detail.rating is None
        assert detail.feedback_tags == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [0, 6])
    async def test_rating_range(self, history, stored_draft, rating):
        with pytest.raises(ValidationError, match="Rating must be between 1 and 5"):
            await history.submit_feedback(stored_draft.id, ThreadFeedbackRequest(rating=rating))

    @pytest.mark.asyncio
    async def test_unknown_tags(self, history, stored_draft):
        request = ThreadFeedbackRequest(feedback_tags=["boring", "too_long", "bland"])

        with pytest.raises(ValidationError) as exc_info:
            await history.submit_feedback(stored_draft.id, request)

        assert str(exc_info.value) == "Unknown feedback tags: bland, boring"
        assert exc_info.value.errors == [
            "Unknown feedback tag: bland",
            "Unknown feedback tag: boring",
        ]
        assert stored_draft.feedback_tags == []

    @pytest.mark.asyncio
    async def test_missing_draft(self, history):
        with pytest.raises(NotFoundError):
            await history.submit_feedback(generate_id(), ThreadFeedbackRequest(rating=3))


# =============================================================================
# Brand guideline
# =============================================================================


class TestBrandGuidelineService:
    @pytest.mark.asyncio
    async def test_empty_by_default(self, fake_db):
        assert await BrandGuidelineService(fake_db).get_text() == ""

    @pytest.mark.asyncio
    async def test_update_trims_and_stores(self, fake_db):
        service = BrandGuidelineService(fake_db)

        assert await service.update("  Plain words. No hype.  ") == "Plain words. No hype."
        assert await service.get_text() == "Plain words. No hype."

    @pytest.mark.asyncio
    async def test_update_keeps_single_row(self, fake_db):
        service = BrandGuidelineService(fake_db)
        await service.update("first")
        first_id = fake_db.guideline.id
        await service.update("second")

        assert fake_db.guideline.id == first_id
        assert fake_db.guideline.text == "second"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("blank", ["", "   ", None])
    async def test_blank_clears(self, fake_db, blank):
        service = BrandGuidelineService(fake_db)
        await service.update("something")

        assert await service.update(blank) == ""
        assert fake_db.guideline is None

    @pytest.mark.asyncio
    async def test_too_long(self, fake_db):
        with pytest.raises(ValidationError, match="1500"):
            await BrandGuidelineService(fake_db).update("x" * 1501)

    @pytest.mark.asyncio
    async def test_limit_applies_after_trimming(self, fake_db):
        text = await BrandGuidelineService(fake_db).update("  " + "x" * 1500 + "  ")
        assert len(text) == 1500
