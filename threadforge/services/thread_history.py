"""
Browsing stored drafts and recording user feedback on them.
"""

from typing import List

from threadforge.database import SupabaseDB
from threadforge.exceptions import NotFoundError, ValidationError
from threadforge.logging import ComponentLogger, LogComponent
from threadforge.models import FEEDBACK_TAGS, ThreadDraft, ThreadQualityReport
from threadforge.schemas import (
    ThreadFeedbackRequest,
    ThreadHistoryDetail,
    ThreadHistoryListItem,
    ThreadQualityReportSchema,
)
from threadforge.utils import truncate

MAX_PAGE_SIZE = 100
TOPIC_PREVIEW_CHARS = 80
TWEET_PREVIEW_CHARS = 120


class ThreadHistoryService:
    def __init__(self, db: SupabaseDB) -> None:
        self.db = db
        self.log = ComponentLogger(LogComponent.THREAD_HISTORY)

    async def list_threads(self, limit: int = 20, offset: int = 0) -> List[ThreadHistoryListItem]:
        if limit > MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must not exceed {MAX_PAGE_SIZE}")
        if limit < 1:
            raise ValidationError("Limit must be at least 1")
        if offset < 0:
            raise ValidationError("Offset must not be negative")

        drafts = await self.db.list_thread_drafts(limit=limit, offset=offset)
        return [to_list_item(d) for d in drafts]

    async def get(self, draft_id: str) -> ThreadHistoryDetail:
        draft = await self.db.get_thread_draft(draft_id)
        if draft is None:
            raise NotFoundError("Thread not found")
        return to_detail(draft)

    async def submit_feedback(
        self, draft_id: str, request: ThreadFeedbackRequest
    ) -> ThreadHistoryDetail:
        """Store rating, tags and the final-version flag for a draft.

        Raises:
            ValidationError: Rating outside 1-5 or an unknown tag.
            NotFoundError: No draft with this id.
        """
        if request.rating is not None and not 1 <= request.rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")

        tags = [t.strip().lower() for t in request.feedback_tags or [] if t and t.strip()]
        unknown = sorted(set(tags) - FEEDBACK_TAGS)
        if unknown:
            raise ValidationError(
                f"Unknown feedback tags: {', '.join(unknown)}",
                [f"Unknown feedback tag: {t}" for t in unknown],
            )
        # Keep first-seen order, drop repeats.
        tags = list(dict.fromkeys(tags))

        draft = await self.db.update_thread_feedback(
            draft_id, request.rating, tags, request.was_final_version
        )
        if draft is None:
            raise NotFoundError("Thread not found")

        await self.log.info(
            "Thread feedback recorded",
            data={
                "draft_id": draft.id,
                "rating": request.rating,
                "tags": tags,
                "was_final_version": request.was_final_version,
            },
        )
        return to_detail(draft)


def to_list_item(draft: ThreadDraft) -> ThreadHistoryListItem:
    tweets = draft.tweets
    return ThreadHistoryListItem(
        id=draft.id,
        created_at=draft.created_at,
        topic_preview=truncate(draft.topic, TOPIC_PREVIEW_CHARS),
        tweet_count=len(tweets),
        first_tweet_preview=truncate(tweets[0], TWEET_PREVIEW_CHARS) if tweets else "",
        provider=draft.provider,
        model=draft.model,
    )


def to_detail(draft: ThreadDraft) -> ThreadHistoryDetail:
    quality = draft.output_json.get("quality")
    return ThreadHistoryDetail(
        id=draft.id,
        created_at=draft.created_at,
        request=draft.prompt_json,
        tweets=draft.tweets,
        provider=draft.provider,
        model=draft.model,
        quality=(
            ThreadQualityReportSchema.model_validate(ThreadQualityReport.from_dict(quality).to_dict())
            if isinstance(quality, dict)
            else None
        ),
        rating=draft.rating,
        feedback_tags=draft.feedback_tags,
        was_final_version=draft.was_final_version,
        regeneration_count=draft.regeneration_count,
        parent_thread_id=draft.parent_thread_id,
    )
