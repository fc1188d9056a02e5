"""
Brand analysis of an X profile from pasted material.

No X API is involved: the caller pastes the bio and 5-30 recent tweets and
the model turns them into a structured ``BrandDescription``.  Fields the
model leaves out get permissive defaults; output that is not JSON at all
is an error.
"""

import json
import re
from typing import Any, List, Optional

import pydantic

from threadforge.config import XaiConfig
from threadforge.exceptions import ProfileAnalysisError, ValidationError
from threadforge.logging import ComponentLogger, LogComponent
from threadforge.schemas import BrandDescription, ProfileAnalysisRequest, ProfileAnalysisResponse
from threadforge.tools.xai_client import XaiChatClient, system_and_user
from threadforge.utils import strip_code_fences, utc_now

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
MAX_USERNAME_CHARS = 15
MAX_BIO_CHARS = 400
MIN_TWEETS = 5
MAX_TWEETS = 30
MAX_TWEET_CHARS = 500

ANALYSIS_FAILED = "Brand analysis failed. Try again."

SYSTEM_PROMPT = """You are a brand strategist analyzing a Twitter profile. Generate a comprehensive brand description document as JSON.

Return ONLY valid JSON matching this exact structure (no markdown, no extra text):
{
  "overview": "2-3 paragraphs summarizing the brand",
  "brandVoice": {
    "tone": "Description of overall tone",
    "style": "Description of writing style",
    "personality": "Description of personality traits"
  },
  "targetAudience": {
    "primary": "Primary audience description",
    "demographics": "Age, profession, background",
    "painPoints": ["pain point 1", "pain point 2", "pain point 3"]
  },
  "contentPillars": ["topic 1", "topic 2", "topic 3"],
  "contentPatterns": {
    "format": "Format distribution",
    "length": "Typical length",
    "structure": "Common structure"
  },
  "engagementInsights": {
    "topPerformingContent": ["type 1", "type 2"],
    "callToActionStyle": "CTA style description",
    "postingFrequency": "Frequency description"
  },
  "uniqueDifferentiators": ["differentiator 1", "differentiator 2"],
  "recommendedStrategy": {
    "contentTypes": ["type 1", "type 2"],
    "toneGuidance": "Guidance on tone",
    "topicsToExplore": ["topic 1", "topic 2", "topic 3"]
  }
}"""

USER_PROMPT_TEMPLATE = """Analyze the X profile @{username} and create a comprehensive brand description based ONLY on the provided bio and tweets.

Do NOT invent or assume any facts (follower count, engagement, posting frequency, etc.). If information is missing, state it as unknown.

Profile bio:
{bio}

Recent tweets (use these as the sole source of truth):
{tweets}

Return a complete brand profile that could be used for content strategy."""


class ProfileAnalysisService:
    def __init__(self, chat_client: XaiChatClient, config: Optional[XaiConfig] = None) -> None:
        self.chat = chat_client
        self.config = config or XaiConfig()
        self.log = ComponentLogger(LogComponent.PROFILE_ANALYSIS)

    async def analyze(self, request: ProfileAnalysisRequest) -> ProfileAnalysisResponse:
        """Validate the pasted profile and ask the model for a brand description.

        Raises:
            ValidationError: On invalid username, bio or tweets.
            ProfileAnalysisError: When the model output is not a JSON object.
        """
        username = normalize_username(request.username)
        bio = validate_bio(request.profile_bio)
        tweets = clean_recent_tweets(request.recent_tweets)

        model = self.config.effective_model
        prompt = USER_PROMPT_TEMPLATE.format(
            username=username,
            bio=bio,
            tweets="\n".join(f"- {t}" for t in tweets),
        )
        result = await self.chat.create_chat_completion(
            model, system_and_user(SYSTEM_PROMPT, prompt)
        )

        try:
            description = parse_brand_description(result.content)
        except ProfileAnalysisError as exc:
            await self.log.warning("Brand description could not be parsed", error=exc)
            raise

        await self.log.info(
            "Profile analyzed",
            data={"tweets": len(tweets), "bio_chars": len(bio), "total_tokens": result.total_tokens},
        )
        return ProfileAnalysisResponse(
            username=username,
            profile_url=f"https://x.com/{username}",
            analyzed_at=utc_now(),
            tweet_count=len(tweets),
            brand_description=description,
        )


def normalize_username(username: Optional[str]) -> str:
    if username is None or not username.strip():
        raise ValidationError("Username is required")
    normalized = username.strip().lstrip("@").strip()
    if not 1 <= len(normalized) <= MAX_USERNAME_CHARS:
        raise ValidationError("Username must be 1-15 characters")
    if not USERNAME_PATTERN.match(normalized):
        raise ValidationError("Username can only contain letters, numbers, and underscores")
    return normalized


def validate_bio(bio: Optional[str]) -> str:
    trimmed = (bio or "").strip()
    if not trimmed:
        raise ValidationError("Please paste the profile bio")
    if len(trimmed) > MAX_BIO_CHARS:
        raise ValidationError(f"Profile bio must not exceed {MAX_BIO_CHARS} characters")
    return trimmed


def clean_recent_tweets(tweets: Optional[List[Optional[str]]]) -> List[str]:
    cleaned = [t.strip() for t in tweets or [] if t and t.strip()]
    if len(cleaned) < MIN_TWEETS:
        raise ValidationError(f"Please paste at least {MIN_TWEETS} recent tweets")
    if len(cleaned) > MAX_TWEETS:
        raise ValidationError(f"Please paste no more than {MAX_TWEETS} tweets")
    if any(len(t) > MAX_TWEET_CHARS for t in cleaned):
        raise ValidationError(f"Each tweet must not exceed {MAX_TWEET_CHARS} characters")
    return cleaned


def _drop_nulls(value: Any) -> Any:
    """Remove ``null`` members so the model's gaps fall back to defaults."""
    if isinstance(value, dict):
        return {k: _drop_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_nulls(v) for v in value if v is not None]
    return value


def parse_brand_description(raw: str) -> BrandDescription:
    try:
        data = json.loads(strip_code_fences(raw or ""))
    except json.JSONDecodeError as exc:
        raise ProfileAnalysisError(ANALYSIS_FAILED) from exc
    if not isinstance(data, dict):
        raise ProfileAnalysisError(ANALYSIS_FAILED)

    try:
        return BrandDescription.model_validate(_drop_nulls(data))
    except pydantic.ValidationError as exc:
        raise ProfileAnalysisError(ANALYSIS_FAILED) from exc
