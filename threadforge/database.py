"""
Async Supabase client for every ThreadForge table.

ALL database access goes through ``SupabaseDB``; services never touch the
Supabase table API directly.

Tables (see ``supabase/schema.sql``):
    - ``thread_drafts``     -- one row per generated thread
    - ``brand_guidelines``  -- single global brand-voice guideline
    - ``api_logs``          -- mirrored structured log entries

Usage::

    db = await SupabaseDB.create(settings.supabase)
    draft_id = await db.save_thread_draft(draft)
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from supabase import AsyncClient, create_async_client

from threadforge.config import SupabaseConfig
from threadforge.exceptions import ConfigurationError, DatabaseError, ValidationError
from threadforge.models import BrandGuideline, ThreadDraft
from threadforge.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

THREAD_DRAFTS = "thread_drafts"
BRAND_GUIDELINES = "brand_guidelines"
API_LOGS = "api_logs"


# =============================================================================
# VALIDATION HELPERS
# =============================================================================


def validate_not_empty(value: Any, name: str) -> None:
    """Raise ``ValidationError`` if *value* is ``None`` or a blank string."""
    if value is None:
        raise ValidationError(f"{name} cannot be None")
    if isinstance(value, str) and not value.strip():
        raise ValidationError(f"{name} cannot be empty string")


def validate_positive(value: Union[int, float], name: str) -> None:
    """Raise ``ValidationError`` unless *value* is strictly positive."""
    if value is None:
        raise ValidationError(f"{name} cannot be None")
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")


def is_uuid(value: str) -> bool:
    """``True`` when *value* parses as a UUID (the id column type)."""
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


# =============================================================================
# SUPABASE DATABASE CLIENT
# =============================================================================


class SupabaseDB:
    """Async database client.

    Use :meth:`create`; the underlying async client needs an ``await``
    during initialisation.
    """

    def __init__(self, client: AsyncClient) -> None:
        self.client = client

    @classmethod
    async def create(cls, config: Optional[SupabaseConfig] = None) -> "SupabaseDB":
        """Create a connected instance.

        Raises:
            ConfigurationError: If the URL or service key is missing.
        """
        config = config or SupabaseConfig()
        if not config.is_configured:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
        client = await create_async_client(config.url, config.key)
        return cls(client)

    # -----------------------------------------------------------------
    # THREAD DRAFTS
    # -----------------------------------------------------------------

    async def save_thread_draft(self, draft: ThreadDraft) -> str:
        """Insert a draft row.

        Returns:
            The draft id.

        Raises:
            ValidationError: If the draft has no id or client id.
            DatabaseError: When the insert returns no data.
        """
        validate_not_empty(draft.id, "draft.id")
        validate_not_empty(draft.client_id, "draft.client_id")

        result = await self.client.table(THREAD_DRAFTS).insert(draft.to_row()).execute()
        if not result.data:
            raise DatabaseError("Insert succeeded but returned no data")
        return result.data[0]["id"]

    async def get_thread_draft(self, draft_id: str) -> Optional[ThreadDraft]:
        """Fetch one draft, or ``None`` when it does not exist."""
        validate_not_empty(draft_id, "draft_id")
        if not is_uuid(draft_id):
            return None

        result = await (
            self.client.table(THREAD_DRAFTS).select("*").eq("id", draft_id).execute()
        )
        return ThreadDraft.from_row(result.data[0]) if result.data else None

    async def list_thread_drafts(self, limit: int = 20, offset: int = 0) -> List[ThreadDraft]:
        """Drafts ordered newest first, paged by ``limit``/``offset``."""
        validate_positive(limit, "limit")
        if offset < 0:
            raise ValidationError(f"offset must not be negative, got {offset}")

        result = await (
            self.client.table(THREAD_DRAFTS)
            .select("*")
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        return [ThreadDraft.from_row(row) for row in result.data or []]

    async def update_thread_feedback(
        self,
        draft_id: str,
        rating: Optional[int],
        feedback_tags: List[str],
        was_final_version: bool,
    ) -> Optional[ThreadDraft]:
        """Store user feedback on a draft.

        Returns:
            The updated draft, or ``None`` when no row matched.
        """
        validate_not_empty(draft_id, "draft_id")
        if not is_uuid(draft_id):
            return None

        updates: Dict[str, Any] = {
            "rating": rating,
            "feedback_tags": ",".join(feedback_tags) or None,
            "was_final_version": was_final_version,
        }
        result = await (
            self.client.table(THREAD_DRAFTS).update(updates).eq("id", draft_id).execute()
        )
        return ThreadDraft.from_row(result.data[0]) if result.data else None

    # -----------------------------------------------------------------
    # BRAND GUIDELINES
    # -----------------------------------------------------------------

    async def get_brand_guideline(self) -> Optional[BrandGuideline]:
        """Most recently updated guideline, if any."""
        result = await (
            self.client.table(BRAND_GUIDELINES)
            .select("*")
            .order("updated_at", desc=True)
            .limit(1)
            .execute()
        )
        return BrandGuideline.from_row(result.data[0]) if result.data else None

    async def upsert_brand_guideline(self, text: str) -> BrandGuideline:
        """Replace the guideline text, creating the row on first use.

        Raises:
            ValidationError: If *text* is blank.
            DatabaseError: When the write returns no data.
        """
        validate_not_empty(text, "text")

        existing = await self.get_brand_guideline()
        row = {"text": text, "updated_at": utc_now().isoformat()}
        if existing is None:
            row["id"] = generate_id()
            result = await self.client.table(BRAND_GUIDELINES).insert(row).execute()
        else:
            result = await (
                self.client.table(BRAND_GUIDELINES).update(row).eq("id", existing.id).execute()
            )
        if not result.data:
            raise DatabaseError("Brand guideline write returned no data")
        return BrandGuideline.from_row(result.data[0])

    async def delete_brand_guideline(self) -> bool:
        """Delete the stored guideline. Returns ``False`` if none existed."""
        existing = await self.get_brand_guideline()
        if existing is None:
            return False
        await self.client.table(BRAND_GUIDELINES).delete().eq("id", existing.id).execute()
        logger.info("Deleted brand guideline %s", existing.id)
        return True

    # -----------------------------------------------------------------
    # API LOGS
    # -----------------------------------------------------------------

    async def save_api_log(self, log_entry: Dict[str, Any]) -> str:
        """Insert a structured log entry.

        Raises:
            ValidationError: If ``timestamp`` or ``level`` is missing.
            DatabaseError: When the insert returns no data.
        """
        if not log_entry:
            raise ValidationError("log_entry cannot be None or empty")
        if "timestamp" not in log_entry or "level" not in log_entry:
            raise ValidationError("log_entry must have 'timestamp' and 'level'")

        result = await self.client.table(API_LOGS).insert(log_entry).execute()
        if not result.data:
            raise DatabaseError("Insert succeeded but returned no data")
        return result.data[0]["id"]
