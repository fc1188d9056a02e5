"""Shared fixtures for the ThreadForge test suite."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from threadforge.config import reset_settings
from threadforge.logging import init_logger, reset_logger
from threadforge.models import BrandGuideline, ChatCompletionResult, SearchResult, ThreadDraft
from threadforge.utils import generate_id, utc_now


# ---------------------------------------------------------------------------
# Ensure we don't hit real APIs during tests
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _block_env_keys(monkeypatch):
    """Clear all API keys and overrides so tests never hit real services."""
    keys = [
        "XAI_API_KEY",
        "XAI_BASE_URL",
        "XAI_MODEL",
        "XAI_LIGHT_MODEL",
        "XAI_TIMEOUT_SECONDS",
        "SERPER_API_KEY",
        "SERPER_BASE_URL",
        "SERPER_TIMEOUT_SECONDS",
        "SUPABASE_URL",
        "SUPABASE_SERVICE_KEY",
        "GATEWAY_TOKEN",
        "CORS_ALLOWED_ORIGINS",
        "STATIC_DIR",
        "LOG_LEVEL",
        "LOG_DIR",
        "APP_ENV",
        "THREADGEN_RATE_LIMIT",
        "HOST",
        "PORT",
    ]
    for key in keys:
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def event_logger(tmp_path):
    """A fresh global EventLogger writing into the test's tmp dir."""
    logger = init_logger(log_dir=str(tmp_path / "logs"))
    yield logger
    reset_logger()


# ---------------------------------------------------------------------------
# Common datetime fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def sample_utc_now():
    """A fixed UTC datetime for deterministic tests."""
    return datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Mock Supabase client
# ---------------------------------------------------------------------------
@pytest.fixture
def mock_supabase_client():
    """A mock Supabase async client.

    ``client.table_mock.execute_result.data`` controls what every query
    returns; the chain methods are recorded on ``client.table_mock``.
    """
    client = MagicMock()
    table_mock = MagicMock()
    for method in ("select", "insert", "update", "delete", "eq", "order", "limit", "range"):
        getattr(table_mock, method).return_value = table_mock

    table_mock.execute_result = MagicMock(data=[], count=0)
    table_mock.execute = AsyncMock(side_effect=lambda: table_mock.execute_result)
    client.table.return_value = table_mock
    client.table_mock = table_mock
    return client


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------
class FakeChatClient:
    """Replays canned completions and records every call."""

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def queue(self, content: Any) -> None:
        self.responses.append(content)

    async def create_chat_completion(self, model, messages, options=None):
        self.calls.append({"model": model, "messages": messages, "options": options})
        if not self.responses:
            raise AssertionError("FakeChatClient has no queued response")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        content = item if isinstance(item, str) else json.dumps(item)
        return ChatCompletionResult(
            content=content, prompt_tokens=10, completion_tokens=20, total_tokens=30
        )

    @property
    def last_user_prompt(self) -> str:
        return self.calls[-1]["messages"][-1].content


class FakeSearchClient:
    def __init__(self, results: Optional[Dict[str, List[SearchResult]]] = None, configured=True):
        self.results = results or {}
        self.is_configured = configured
        self.queries: List[str] = []

    async def search(self, query: str, num: int = 10) -> List[SearchResult]:
        self.queries.append(query)
        item = self.results.get(query, [])
        if isinstance(item, BaseException):
            raise item
        return list(item)


class FakeDB:
    """In-memory stand-in for ``SupabaseDB``."""

    def __init__(self) -> None:
        self.drafts: Dict[str, ThreadDraft] = {}
        self.guideline: Optional[BrandGuideline] = None
        self.api_logs: List[Dict[str, Any]] = []

    async def save_thread_draft(self, draft: ThreadDraft) -> str:
        self.drafts[draft.id] = draft
        return draft.id

    async def get_thread_draft(self, draft_id: str) -> Optional[ThreadDraft]:
        return self.drafts.get(draft_id)

    async def list_thread_drafts(self, limit: int = 20, offset: int = 0) -> List[ThreadDraft]:
        ordered = sorted(self.drafts.values(), key=lambda d: d.created_at, reverse=True)
        return ordered[offset : offset + limit]

    async def update_thread_feedback(self, draft_id, rating, feedback_tags, was_final_version):
        draft = self.drafts.get(draft_id)
        if draft is None:
            return None
        draft.rating = rating
        draft.feedback_tags = list(feedback_tags)
        draft.was_final_version = was_final_version
        return draft

    async def get_brand_guideline(self) -> Optional[BrandGuideline]:
        return self.guideline

    async def upsert_brand_guideline(self, text: str) -> BrandGuideline:
        guideline_id = self.guideline.id if self.guideline else generate_id()
        self.guideline = BrandGuideline(id=guideline_id, text=text, updated_at=utc_now())
        return self.guideline

    async def delete_brand_guideline(self) -> bool:
        existed = self.guideline is not None
        self.guideline = None
        return existed

    async def save_api_log(self, log_entry: Dict[str, Any]) -> str:
        self.api_logs.append(log_entry)
        return generate_id()


@pytest.fixture
def fake_chat():
    return FakeChatClient()


@pytest.fixture
def fake_search():
    return FakeSearchClient()


@pytest.fixture
def fake_db():
    return FakeDB()


def make_draft(
    topic: str = "Shipping side projects",
    tweets: Optional[List[str]] = None,
    created_at: Optional[datetime] = None,
    **kwargs: Any,
) -> ThreadDraft:
    """Build a stored draft with sensible defaults."""
    tweets = tweets if tweets is not None else ["Hook tweet", "Body tweet", "Follow for more"]
    return ThreadDraft(
        id=kwargs.pop("id", generate_id()),
        client_id=kwargs.pop("client_id", "client-1"),
        prompt_json={"topic": topic, "tweetCount": len(tweets)},
        output_json={
            "tweets": tweets,
            "quality": {
                "hookScore": 70,
                "ctaScore": 60,
                "overallScore": 67,
                "warnings": [],
                "suggestions": [],
            },
        },
        provider="xai",
        model="grok-2-latest",
        created_at=created_at or utc_now(),
        **kwargs,
    )


@pytest.fixture
def draft_factory():
    return make_draft
