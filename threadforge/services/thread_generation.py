"""
Thread generation: request validation, prompt assembly, model call,
tolerant parsing, length enforcement and persistence.

Flow of ``generate``::

    validate -> [web research] -> build prompt -> xAI -> extract tweets
      -> enforce length / numbering -> score quality -> save draft -> response

The model is asked for ``{"tweets": [...]}``; when it ignores that, the
raw text is split into lines and list markers are stripped.  Tweets over
the limit are split at a word boundary rather than rejected.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from threadforge.config import XaiConfig
from threadforge.database import SupabaseDB
from threadforge.exceptions import GenerationError, ValidationError
from threadforge.logging import ComponentLogger, LogComponent
from threadforge.models import PROVIDER_XAI, ThreadDraft, describe_tone
from threadforge.schemas import (
    GenerateThreadRequest,
    GenerateThreadResponse,
    RegenerateTweetRequest,
    RegenerateTweetResponse,
    StylePreferences,
    ThreadQualityReportSchema,
)
from threadforge.services.thread_quality import ThreadQualityService
from threadforge.services.web_search import WebSearchService
from threadforge.tools.xai_client import XaiChatClient, system_and_user
from threadforge.utils import generate_id, strip_code_fences, utc_now

logger = logging.getLogger(__name__)

# =============================================================================
# LIMITS
# =============================================================================

TWITTER_CHAR_LIMIT = 280
MIN_CHARS_PER_TWEET = 200
DEFAULT_STYLED_CHARS_PER_TWEET = 260
MIN_TWEETS = 3
MAX_TWEETS = 25
MAX_TOPIC_CHARS = 500
MAX_AUDIENCE_CHARS = 100
MAX_TONE_CHARS = 50
MAX_KEY_POINTS = 20
MAX_KEY_POINT_CHARS = 200
MAX_FEEDBACK_CHARS = 1000
MAX_BRAND_GUIDELINE_CHARS = 1500
MAX_EXAMPLE_THREADS = 3
MAX_EXAMPLE_THREAD_CHARS = 5000

MAX_REGENERATE_TWEET_CHARS = 1000
MAX_REGENERATE_FEEDBACK_CHARS = 500

# A split point earlier than this share of the limit wastes too much of the
# tweet, so the text is hard-cut instead.
MIN_SPLIT_RATIO = 0.6

NO_OUTPUT = "(No output)"

# =============================================================================
# PROMPTS
# =============================================================================

SYSTEM_PROMPT = (
    "You are ThreadForge. Generate a Twitter/X thread as JSON only. "
    'Return exactly: {"tweets":["...","..."]}. No extra keys, no markdown.'
)

REGENERATE_SYSTEM_PROMPT = (
    "You are ThreadForge. Rewrite a single tweet of an existing Twitter/X thread "
    "so it fits the surrounding tweets. "
    'Return JSON only: {"tweet":"..."}. No extra keys, no markdown.'
)

HOOK_STYLES = {
    "bold": "Open tweet 1 with a bold, confident claim.",
    "question": "Open tweet 1 with a provocative question.",
    "story": "Open tweet 1 with a short, personal story moment.",
    "stat": "Open tweet 1 with a surprising statistic or specific number.",
}

CTA_STYLES = {
    "soft": "End with a soft, low-pressure invitation to follow along.",
    "direct": "End with a direct call-to-action.",
    "question": "End with a question that invites replies.",
}

# "3/8", "(3/8)" at the end of a tweet
_TRAILING_NUMBERING = re.compile(r"\s*\(?\d{1,3}\s*/\s*\d{1,3}\)?\s*$")
_LEADING_NUMBERING = re.compile(r"^\d+[\.\)\-\s]*")
_BULLET_CHARS = "-•* "


@dataclass
class LengthPolicy:
    """Effective per-tweet limit and numbering for one request."""

    max_chars: int = TWITTER_CHAR_LIMIT
    numbering: bool = False

    @classmethod
    def from_preferences(cls, prefs: Optional[StylePreferences]) -> "LengthPolicy":
        # Without explicit preferences the plain 280 limit applies, unnumbered.
        if prefs is None:
            return cls()
        max_chars = prefs.max_chars_per_tweet or DEFAULT_STYLED_CHARS_PER_TWEET
        numbering = True if prefs.use_numbering is None else prefs.use_numbering
        return cls(max_chars=max_chars, numbering=numbering)


class ThreadGenerationService:
    """Generates threads and single-tweet rewrites.

    Args:
        chat_client: xAI chat client.
        db: ``SupabaseDB`` (drafts and the stored brand guideline).
        quality: Quality scorer attached to every generated thread.
        web_search: Optional research service used when a request sets
            ``useWebResearch``.
        config: Supplies the model name.
    """

    def __init__(
        self,
        chat_client: XaiChatClient,
        db: SupabaseDB,
        quality: Optional[ThreadQualityService] = None,
        web_search: Optional[WebSearchService] = None,
        config: Optional[XaiConfig] = None,
    ) -> None:
        self.chat = chat_client
        self.db = db
        self.quality = quality or ThreadQualityService()
        self.web_search = web_search
        self.config = config or XaiConfig()
        self.log = ComponentLogger(LogComponent.THREAD_GENERATION)

    # ------------------------------------------------------------------
    # Generate
    # ------------------------------------------------------------------

    async def generate(
        self, request: GenerateThreadRequest, client_id: str
    ) -> GenerateThreadResponse:
        """Generate, score and persist a thread.

        Raises:
            ValidationError: On invalid input.
            ChatCompletionError / RetryExhaustedError: When xAI fails.
            DatabaseError: When the draft cannot be stored.
        """
        validate_generate_request(request)
        model = self.config.effective_model
        policy = LengthPolicy.from_preferences(request.style_preferences)

        parent = None
        if request.parent_thread_id:
            parent = await self.db.get_thread_draft(request.parent_thread_id)
            if parent is None:
                await self.log.warning(
                    "Parent thread not found; generating as a new thread",
                    data={"parent_thread_id": request.parent_thread_id},
                )

        brand_guidelines = (request.brand_guidelines or "").strip()
        if not brand_guidelines:
            stored = await self.db.get_brand_guideline()
            brand_guidelines = stored.text if stored else ""

        research = ""
        if request.use_web_research and self.web_search is not None:
            research = await self.web_search.research(request.topic.strip())

        prompt = build_user_prompt(request, policy, brand_guidelines, research)

        # Prompts are never logged, only their size.
        result = await self.chat.create_chat_completion(
            model, system_and_user(SYSTEM_PROMPT, prompt)
        )

        tweets = apply_length_policy(extract_tweets(result.content), policy)
        report = self.quality.analyze(tweets, request.tone)

        draft = ThreadDraft(
            id=generate_id(),
            client_id=client_id,
            prompt_json=request.model_dump(by_alias=True, mode="json"),
            output_json={"tweets": tweets, "quality": report.to_dict()},
            provider=PROVIDER_XAI,
            model=model,
            created_at=utc_now(),
            regeneration_count=parent.regeneration_count + 1 if parent else 0,
            parent_thread_id=parent.id if parent else None,
        )
        await self.db.save_thread_draft(draft)

        await self.log.info(
            "Thread generated",
            data={
                "draft_id": draft.id,
                "tweets": len(tweets),
                "requested": request.tweet_count,
                "prompt_chars": len(prompt),
                "total_tokens": result.total_tokens,
                "used_web_research": bool(research),
                "overall_score": report.overall_score,
            },
        )

        return GenerateThreadResponse(
            id=draft.id,
            tweets=tweets,
            created_at=draft.created_at,
            provider=draft.provider,
            model=draft.model,
            quality=ThreadQualityReportSchema.model_validate(report.to_dict()),
            parent_thread_id=draft.parent_thread_id,
            used_web_research=bool(research),
        )

    # ------------------------------------------------------------------
    # Regenerate a single tweet
    # ------------------------------------------------------------------

    async def regenerate_tweet(self, request: RegenerateTweetRequest) -> RegenerateTweetResponse:
        """Rewrite ``tweets[tweet_index]`` in the context of the whole thread.

        Raises:
            ValidationError: On invalid input.
            GenerationError: When the model returns nothing usable.
        """
        validate_regenerate_request(request)
        model = self.config.effective_model
        max_chars = request.max_chars or TWITTER_CHAR_LIMIT

        prompt = build_regenerate_prompt(request, max_chars)
        result = await self.chat.create_chat_completion(
            model, system_and_user(REGENERATE_SYSTEM_PROMPT, prompt)
        )

        tweet = extract_single_tweet(result.content)
        if not tweet:
            raise GenerationError("Failed to regenerate tweet. Please try again.")
        tweet = truncate_at_word(tweet, max_chars)

        await self.log.info(
            "Tweet regenerated",
            data={"index": request.tweet_index, "chars": len(tweet), "total_tokens": result.total_tokens},
        )
        return RegenerateTweetResponse(tweet=tweet, index=request.tweet_index, model=model)


# =============================================================================
# VALIDATION
# =============================================================================


def _raise_if_errors(errors: List[str]) -> None:
    if errors:
        raise ValidationError(errors[0], errors)


def validate_generate_request(request: GenerateThreadRequest) -> None:
    """Collect every problem; the first one becomes the error message."""
    errors: List[str] = []
    topic = (request.topic or "").strip()

    if not topic:
        errors.append("Topic is required")
    elif len(request.topic) > MAX_TOPIC_CHARS:
        errors.append("Topic is too long")

    if not MIN_TWEETS <= request.tweet_count <= MAX_TWEETS:
        errors.append(f"TweetCount must be between {MIN_TWEETS} and {MAX_TWEETS}")

    if request.key_points and len(request.key_points) > MAX_KEY_POINTS:
        errors.append("Too many key points")
    elif request.key_points and any(len(p) > MAX_KEY_POINT_CHARS for p in request.key_points):
        errors.append(f"Each key point must not exceed {MAX_KEY_POINT_CHARS} characters")

    if request.feedback and len(request.feedback) > MAX_FEEDBACK_CHARS:
        errors.append("Feedback is too long")
    if request.audience and len(request.audience) > MAX_AUDIENCE_CHARS:
        errors.append("Audience is too long")
    if request.tone and len(request.tone) > MAX_TONE_CHARS:
        errors.append("Tone is too long")
    if request.brand_guidelines and len(request.brand_guidelines) > MAX_BRAND_GUIDELINE_CHARS:
        errors.append(
            f"Brand guidelines must not exceed {MAX_BRAND_GUIDELINE_CHARS} characters"
        )

    if request.example_threads:
        if len(request.example_threads) > MAX_EXAMPLE_THREADS:
            errors.append(f"No more than {MAX_EXAMPLE_THREADS} example threads are allowed")
        elif any(len(t) > MAX_EXAMPLE_THREAD_CHARS for t in request.example_threads):
            errors.append(
                f"Each example thread must not exceed {MAX_EXAMPLE_THREAD_CHARS} characters"
            )

    prefs = request.style_preferences
    if prefs is not None:
        if prefs.max_chars_per_tweet is not None and not (
            MIN_CHARS_PER_TWEET <= prefs.max_chars_per_tweet <= TWITTER_CHAR_LIMIT
        ):
            errors.append(
                f"MaxCharsPerTweet must be between {MIN_CHARS_PER_TWEET} and {TWITTER_CHAR_LIMIT}"
            )
        if prefs.hook_strength and prefs.hook_strength.lower() not in HOOK_STYLES:
            errors.append(f"HookStrength must be one of: {', '.join(HOOK_STYLES)}")
        if prefs.cta_type and prefs.cta_type.lower() not in CTA_STYLES:
            errors.append(f"CtaType must be one of: {', '.join(CTA_STYLES)}")

    _raise_if_errors(errors)


def validate_regenerate_request(request: RegenerateTweetRequest) -> None:
    errors: List[str] = []
    tweets = request.tweets or []

    if not tweets:
        errors.append("Tweets are required")
    elif len(tweets) > MAX_TWEETS:
        errors.append(f"No more than {MAX_TWEETS} tweets are allowed")
    elif any(len(t) > MAX_REGENERATE_TWEET_CHARS for t in tweets):
        errors.append(f"Each tweet must not exceed {MAX_REGENERATE_TWEET_CHARS} characters")

    if tweets and not 0 <= request.tweet_index < len(tweets):
        errors.append("TweetIndex is out of range")

    if request.feedback and len(request.feedback) > MAX_REGENERATE_FEEDBACK_CHARS:
        errors.append("Feedback is too long")
    if request.tone and len(request.tone) > MAX_TONE_CHARS:
        errors.append("Tone is too long")
    if request.max_chars is not None and not (
        MIN_CHARS_PER_TWEET <= request.max_chars <= TWITTER_CHAR_LIMIT
    ):
        errors.append(f"MaxChars must be between {MIN_CHARS_PER_TWEET} and {TWITTER_CHAR_LIMIT}")

    _raise_if_errors(errors)


# =============================================================================
# PROMPT ASSEMBLY
# =============================================================================


def build_user_prompt(
    request: GenerateThreadRequest,
    policy: LengthPolicy,
    brand_guidelines: str = "",
    research: str = "",
) -> str:
    tone = describe_tone(request.tone, "clear, practical")
    audience = (request.audience or "").strip() or "builders"

    parts = [
        f"Topic: {request.topic.strip()}\n"
        f"Audience: {audience}\n"
        f"Tone: {tone}\n"
        f"Tweet count: {request.tweet_count}\n"
    ]

    key_points = [p.strip() for p in request.key_points or [] if p and p.strip()]
    if key_points:
        parts.append("\nKey points:\n- " + "\n- ".join(key_points))

    if request.feedback and request.feedback.strip():
        parts.append(f"\nRegeneration feedback: {request.feedback.strip()}")

    style_rules = _style_rules(request.style_preferences)
    if style_rules:
        parts.append("\nStyle preferences:\n- " + "\n- ".join(style_rules))

    if brand_guidelines:
        parts.append(f"\nBrand guidelines (follow this voice):\n{brand_guidelines}")

    examples = [t.strip() for t in request.example_threads or [] if t and t.strip()]
    if examples:
        blocks = [f"--- Example {i} ---\n{text}" for i, text in enumerate(examples, start=1)]
        parts.append(
            "\nExample threads (match their style and structure, not their content):\n"
            + "\n\n".join(blocks)
        )

    if research:
        parts.append(
            "\nResearch context (use specific facts from here where relevant):\n" + research
        )

    parts.append(
        f"\n\nRules: Each tweet must be <= {policy.max_chars} characters. "
        "Include a strong hook in tweet 1 and a concise CTA in the last tweet."
    )
    return "".join(parts)


def _style_rules(prefs: Optional[StylePreferences]) -> List[str]:
    if prefs is None:
        return []
    rules: List[str] = []
    if prefs.use_emojis is True:
        rules.append("Use a few relevant emojis to add personality.")
    elif prefs.use_emojis is False:
        rules.append("Do not use emojis.")
    if prefs.use_numbering is not False:
        rules.append("Do not number the tweets; numbering is added automatically.")
    if prefs.hook_strength:
        rules.append(HOOK_STYLES[prefs.hook_strength.lower()])
    if prefs.cta_type:
        rules.append(CTA_STYLES[prefs.cta_type.lower()])
    return rules


def build_regenerate_prompt(request: RegenerateTweetRequest, max_chars: int) -> str:
    tweets = request.tweets or []
    index = request.tweet_index
    thread = "\n".join(f"{i}. {text}" for i, text in enumerate(tweets, start=1))

    lines = [
        f"Thread:\n{thread}",
        "",
        f"Rewrite tweet {index + 1} of {len(tweets)}.",
    ]
    if index == 0:
        lines.append("It is the hook: make it scroll-stopping.")
    elif index == len(tweets) - 1:
        lines.append("It is the closing tweet: end with a concise CTA.")
    if request.tone and request.tone.strip():
        lines.append(f"Tone: {describe_tone(request.tone, '')}")
    if request.feedback and request.feedback.strip():
        lines.append(f"Feedback: {request.feedback.strip()}")
    lines.append("")
    lines.append(f"Rules: The tweet must be <= {max_chars} characters.")
    return "\n".join(lines)


# =============================================================================
# PARSING
# =============================================================================


def extract_tweets(raw: str) -> List[str]:
    """Strict ``{"tweets": [...]}`` first, then line-splitting."""
    if not raw or not raw.strip():
        return [NO_OUTPUT]

    text = strip_code_fences(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, dict) and isinstance(data.get("tweets"), list):
        return [t.strip() for t in data["tweets"] if isinstance(t, str) and t.strip()]

    logger.debug("Model output is not tweets JSON; falling back to line splitting")
    return _split_lines(text)


def _split_lines(text: str) -> List[str]:
    lines = []
    for line in text.splitlines():
        line = strip_leading_numbering(line.strip().lstrip(_BULLET_CHARS))
        if line:
            lines.append(line)
    return lines


def strip_leading_numbering(line: str) -> str:
    """``"1) foo"``, ``"2. bar"``, ``"3 - baz"`` -> ``"foo"``, ``"bar"``, ``"baz"``."""
    return _LEADING_NUMBERING.sub("", line, count=1).strip()


def extract_single_tweet(raw: str) -> str:
    if not raw or not raw.strip():
        return ""
    text = strip_code_fences(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, dict) and isinstance(data.get("tweet"), str):
        return data["tweet"].strip()

    lines = _split_lines(text)
    return lines[0].strip('"') if lines else ""


# =============================================================================
# LENGTH ENFORCEMENT
# =============================================================================


def split_to_max_length(text: str, max_len: int) -> List[str]:
    """Split at the last space at or before *max_len*; hard-cut when that
    space falls before ``MIN_SPLIT_RATIO`` of the limit."""
    parts: List[str] = []
    remaining = text.strip()

    while len(remaining) > max_len:
        cut = remaining.rfind(" ", 0, max_len + 1)
        if cut < max_len * MIN_SPLIT_RATIO:
            cut = max_len
        part = remaining[:cut].strip()
        if part:
            parts.append(part)
        remaining = remaining[cut:].strip()

    if remaining:
        parts.append(remaining)
    return parts


def enforce_tweet_length(tweets: Sequence[str], max_len: int) -> List[str]:
    result: List[str] = []
    for tweet in tweets:
        if len(tweet) <= max_len:
            result.append(tweet)
        else:
            result.extend(split_to_max_length(tweet, max_len))
    return result


def strip_trailing_numbering(tweet: str) -> str:
    return _TRAILING_NUMBERING.sub("", tweet).strip()


def apply_length_policy(tweets: Sequence[str], policy: LengthPolicy) -> List[str]:
    """Split over-long tweets and, when enabled, append `` i/n`` markers.

    The marker width depends on the final count, which depends on the
    splitting, so the reserve grows until both agree.
    """
    if not policy.numbering:
        return enforce_tweet_length(tweets, policy.max_chars)

    cleaned = [t for t in (strip_trailing_numbering(t) for t in tweets) if t]
    if not cleaned:
        return []

    reserve = 0
    while True:
        parts = enforce_tweet_length(cleaned, policy.max_chars - reserve)
        needed = len(f" {len(parts)}/{len(parts)}")
        if needed <= reserve:
            break
        reserve = needed

    total = len(parts)
    return [f"{text} {i}/{total}" for i, text in enumerate(parts, start=1)]


def truncate_at_word(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    cut = text.rfind(" ", 0, max_len + 1)
    if cut < max_len * MIN_SPLIT_RATIO:
        cut = max_len
    return text[:cut].rstrip()
