"""
The single global brand-voice guideline.

Thread generation falls back to this text when a request carries no
``brandGuidelines`` of its own.
"""

from typing import Optional

from threadforge.database import SupabaseDB
from threadforge.exceptions import ValidationError
from threadforge.logging import ComponentLogger, LogComponent

MAX_GUIDELINE_CHARS = 1500


class BrandGuidelineService:
    def __init__(self, db: SupabaseDB) -> None:
        self.db = db
        self.log = ComponentLogger(LogComponent.BRAND_GUIDELINES)

    async def get_text(self) -> str:
        record = await self.db.get_brand_guideline()
        return record.text if record else ""

    async def update(self, text: Optional[str]) -> str:
        """Store the trimmed *text*; a blank value deletes the guideline."""
        trimmed = (text or "").strip()
        if len(trimmed) > MAX_GUIDELINE_CHARS:
            raise ValidationError(
                f"Brand guideline must not exceed {MAX_GUIDELINE_CHARS} characters"
            )

        if not trimmed:
            deleted = await self.db.delete_brand_guideline()
            await self.log.info("Brand guideline cleared", data={"deleted": deleted})
            return ""

        record = await self.db.upsert_brand_guideline(trimmed)
        await self.log.info("Brand guideline updated", data={"chars": len(record.text)})
        return record.text
