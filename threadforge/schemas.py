"""
Request and response bodies of the HTTP API.

All models serialise camelCase (``tweetCount``, ``createdAt``) and accept
either camelCase or snake_case on input.  Request fields are deliberately
lenient (mostly optional) so the services can apply their own validation
rules and messages; pydantic only rejects structurally wrong payloads.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# ERRORS / HEALTH
# =============================================================================


class ErrorResponse(CamelModel):
    message: str
    errors: Optional[List[str]] = None


class HealthResponse(CamelModel):
    status: str = "ok"
    version: str
    database: bool
    web_search: bool


# =============================================================================
# THREADS
# =============================================================================


class StylePreferences(CamelModel):
    """Formatting knobs. ``use_emojis=None`` lets the model decide."""

    use_emojis: Optional[bool] = None
    use_numbering: Optional[bool] = True
    max_chars_per_tweet: Optional[int] = 260
    hook_strength: Optional[str] = None  # bold | question | story | stat
    cta_type: Optional[str] = None  # soft | direct | question


class GenerateThreadRequest(CamelModel):
    topic: Optional[str] = None
    tone: Optional[str] = None
    audience: Optional[str] = None
    tweet_count: int = 0
    key_points: Optional[List[str]] = None
    feedback: Optional[str] = None
    brand_guidelines: Optional[str] = None
    example_threads: Optional[List[str]] = None
    style_preferences: Optional[StylePreferences] = None
    use_web_research: bool = False
    parent_thread_id: Optional[str] = None


class ThreadQualityReportSchema(CamelModel):
    hook_score: int
    cta_score: int
    overall_score: int
    warnings: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class GenerateThreadResponse(CamelModel):
    id: str
    tweets: List[str]
    created_at: datetime
    provider: str
    model: str
    quality: ThreadQualityReportSchema
    parent_thread_id: Optional[str] = None
    used_web_research: bool = False


class RegenerateTweetRequest(CamelModel):
    tweets: Optional[List[str]] = None
    tweet_index: int = 0
    feedback: Optional[str] = None
    tone: Optional[str] = None
    max_chars: Optional[int] = None


class RegenerateTweetResponse(CamelModel):
    tweet: str
    index: int
    model: str


class ThreadQualityRequest(CamelModel):
    tweets: List[str] = Field(default_factory=list)
    tone: Optional[str] = None


class ThreadHistoryListItem(CamelModel):
    id: str
    created_at: datetime
    topic_preview: str
    tweet_count: int
    first_tweet_preview: str
    provider: str
    model: str


class ThreadHistoryDetail(CamelModel):
    id: str
    created_at: datetime
    request: Dict[str, Any]
    tweets: List[str]
    provider: str
    model: str
    quality: Optional[ThreadQualityReportSchema] = None
    rating: Optional[int] = None
    feedback_tags: List[str] = Field(default_factory=list)
    was_final_version: bool = False
    regeneration_count: int = 0
    parent_thread_id: Optional[str] = None


class ThreadFeedbackRequest(CamelModel):
    rating: Optional[int] = None
    feedback_tags: Optional[List[str]] = None
    was_final_version: bool = False


# =============================================================================
# PROFILES
# =============================================================================


class ProfileAnalysisRequest(CamelModel):
    username: Optional[str] = None
    profile_bio: Optional[str] = None
    recent_tweets: Optional[List[Optional[str]]] = None


class BrandVoice(CamelModel):
    tone: str = "Professional"
    style: str = "Informative"
    personality: str = "Authoritative"


class TargetAudience(CamelModel):
    primary: str = "General audience"
    demographics: str = "Various demographics"
    pain_points: List[str] = Field(
        default_factory=lambda: ["Information seeking", "Staying updated"]
    )


class ContentPatterns(CamelModel):
    format: str = "Mixed content"
    length: str = "Variable length"
    structure: str = "Standard structure"


class EngagementInsights(CamelModel):
    top_performing_content: List[str] = Field(
        default_factory=lambda: ["Informative content"]
    )
    call_to_action_style: str = "Direct engagement"
    posting_frequency: str = "Regular posting"


class RecommendedStrategy(CamelModel):
    content_types: List[str] = Field(default_factory=lambda: ["Educational content"])
    tone_guidance: str = "Maintain authenticity"
    topics_to_explore: List[str] = Field(default_factory=lambda: ["Related topics"])


class BrandDescription(CamelModel):
    """Brand profile produced by the analyzer; every field has a fallback."""

    overview: str = "Unable to generate overview"
    brand_voice: BrandVoice = Field(default_factory=BrandVoice)
    target_audience: TargetAudience = Field(default_factory=TargetAudience)
    content_pillars: List[str] = Field(default_factory=lambda: ["General topics"])
    content_patterns: ContentPatterns = Field(default_factory=ContentPatterns)
    engagement_insights: EngagementInsights = Field(default_factory=EngagementInsights)
    unique_differentiators: List[str] = Field(
        default_factory=lambda: ["Unique perspective"]
    )
    recommended_strategy: RecommendedStrategy = Field(default_factory=RecommendedStrategy)


class ProfileAnalysisResponse(CamelModel):
    username: str
    profile_url: str
    analyzed_at: datetime
    tweet_count: int
    brand_description: BrandDescription


# =============================================================================
# TWEETS
# =============================================================================


class ImproveTweetRequest(CamelModel):
    draft: Optional[str] = None
    improvement_type: Optional[str] = None
    tone: Optional[str] = None
    preserve_elements: Optional[str] = None
    additional_instructions: Optional[str] = None


class ImproveTweetResponse(CamelModel):
    original: str
    improved: str
    alternatives: List[str]
    explanation: str
    character_count: int
    is_within_limit: bool
    model: str


# =============================================================================
# BRAND GUIDELINES
# =============================================================================


class BrandGuidelineBody(CamelModel):
    text: Optional[str] = ""
